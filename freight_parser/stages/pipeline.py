"""
Order Extraction Pipeline - Оркестратор 7 этапов.

Координирует выполнение этапов над нормализованными строками:
1. Reference → 2. Freight → 3. Customer → 4. Stops → 5. Cargo
→ 6. Comment → 7. Assembly

LineNormalizer выполняется один раз до этапов. Этапы 1-6 читают
строки независимо (только чтение), Stage 7 собирает OrderPayload.

Возвращает PipelineResult (OrderPayload + provenance + промежуточные данные).
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Union
from loguru import logger

from config.settings import DEFAULT_TEMPLATE
from contracts.order_payload_dto import FieldSource, OrderPayload
from contracts.raw_document_dto import RawDocument

from ..domain.interfaces import IOrderSink
from ..extraction.line_normalizer import LineNormalizer
from ..templates.config_loader import TemplateConfig, TemplateConfigLoader
from .stage_1_reference import ReferenceResolver, ReferenceResult
from .stage_2_freight import FreightExtractor, FreightResult
from .stage_3_customer import CustomerExtractor, CustomerResult
from .stage_4_stops import StopExtractor, StopsResult
from .stage_5_cargo import CargoExtractor, CargoResult
from .stage_6_comment import CommentAggregator, CommentResult
from .stage_7_assembly import PayloadAssembler


@dataclass
class PipelineResult:
    """
    Полный результат пайплайна со всеми промежуточными данными.

    Используется для отладки и анализа.
    """
    # Финальный результат (контракт Parser -> Persistence)
    payload: OrderPayload
    provenance: Dict[str, FieldSource] = field(default_factory=dict)
    template: str = DEFAULT_TEMPLATE

    # Промежуточные результаты этапов
    reference: Optional[ReferenceResult] = None
    freight: Optional[FreightResult] = None
    customer: Optional[CustomerResult] = None
    stops: Optional[StopsResult] = None
    cargo: Optional[CargoResult] = None
    comment: Optional[CommentResult] = None

    # Метрики
    processing_time_ms: float = 0.0
    stages_completed: int = 0

    def to_dict(self) -> dict:
        return {
            "payload": self.payload.to_schema_dict() if self.payload else None,
            "provenance": {k: v.value for k, v in self.provenance.items()},
            "template": self.template,
            "reference": self.reference.to_dict() if self.reference else None,
            "freight": self.freight.to_dict() if self.freight else None,
            "customer": self.customer.to_dict() if self.customer else None,
            "stops": self.stops.to_dict() if self.stops else None,
            "cargo": self.cargo.to_dict() if self.cargo else None,
            "comment": self.comment.to_dict() if self.comment else None,
            "processing_time_ms": self.processing_time_ms,
            "stages_completed": self.stages_completed,
        }


class OrderExtractionPipeline:
    """
    Пайплайн извлечения заявки на перевозку.

    Координирует 7 этапов в строгом порядке:
    1. Reference
    2. Freight
    3. Customer
    4. Stops
    5. Cargo
    6. Comment
    7. Assembly

    ЦКП: OrderPayload, валидный по схеме при любом входе.
    """

    def __init__(
        self,
        config: Union[TemplateConfig, str, None] = None,
        normalizer: Optional[LineNormalizer] = None,
        reference_stage: Optional[ReferenceResolver] = None,
        freight_stage: Optional[FreightExtractor] = None,
        customer_stage: Optional[CustomerExtractor] = None,
        stops_stage: Optional[StopExtractor] = None,
        cargo_stage: Optional[CargoExtractor] = None,
        comment_stage: Optional[CommentAggregator] = None,
        assembler: Optional[PayloadAssembler] = None,
        config_loader: Optional[TemplateConfigLoader] = None,
        sink: Optional[IOrderSink] = None,
    ):
        """
        Инициализация пайплайна.

        Args:
            config: TemplateConfig или имя шаблона (по умолчанию DEFAULT_TEMPLATE)
            Все этапы опциональны - по умолчанию создаются стандартные.
            config_loader: Загрузчик YAML шаблонов
            sink: Внешнее хранилище заявок (createOrder)
        """
        if not isinstance(config, TemplateConfig):
            loader = config_loader or TemplateConfigLoader()
            config = loader.load(config or DEFAULT_TEMPLATE)
        self.config = config

        self.normalizer = normalizer or LineNormalizer()
        self.reference_stage = reference_stage or ReferenceResolver()
        self.freight_stage = freight_stage or FreightExtractor()
        self.customer_stage = customer_stage or CustomerExtractor()
        self.stops_stage = stops_stage or StopExtractor()
        self.cargo_stage = cargo_stage or CargoExtractor()
        self.comment_stage = comment_stage or CommentAggregator()
        self.assembler = assembler or PayloadAssembler(freight_extractor=self.freight_stage)
        self.sink = sink

        logger.info(f"[Pipeline] Инициализирован (7 этапов, шаблон '{self.config.template}')")

    def process(
        self,
        lines: Sequence[str],
        attachment_filename: Optional[str] = None,
    ) -> PipelineResult:
        """
        Обрабатывает строки документа через все 7 этапов.

        Args:
            lines: Сырые строки документа (до нормализации)
            attachment_filename: Имя исходного PDF

        Returns:
            PipelineResult: OrderPayload + промежуточные данные
        """
        start_time = time.time()
        config = self.config

        logger.info(f"[Pipeline] Старт обработки: {attachment_filename or '<без имени>'} ({config.template})")

        normalized = self.normalizer.normalize(lines)
        stages_completed = 0

        # Stage 1: Reference
        logger.debug("[Pipeline] Stage 1/7: Reference")
        reference = self.reference_stage.process(normalized, config, attachment_filename)
        stages_completed += 1

        # Stage 2: Freight
        logger.debug("[Pipeline] Stage 2/7: Freight")
        freight = self.freight_stage.process(normalized, config)
        stages_completed += 1

        # Stage 3: Customer
        logger.debug("[Pipeline] Stage 3/7: Customer")
        customer = self.customer_stage.process(normalized, config)
        stages_completed += 1

        # Stage 4: Stops (строка заказчика не может быть остановкой)
        logger.debug("[Pipeline] Stage 4/7: Stops")
        exclude = (customer.header_index,) if customer.header_index >= 0 else ()
        stops = self.stops_stage.process(normalized, config, exclude_indices=exclude)
        stages_completed += 1

        # Stage 5: Cargo
        logger.debug("[Pipeline] Stage 5/7: Cargo")
        cargo = self.cargo_stage.process(normalized, config)
        stages_completed += 1

        # Stage 6: Comment
        logger.debug("[Pipeline] Stage 6/7: Comment")
        comment = self.comment_stage.process(normalized, config, reference=reference.reference)
        stages_completed += 1

        # Stage 7: Assembly
        logger.debug("[Pipeline] Stage 7/7: Assembly")
        assembly = self.assembler.process(
            normalized,
            config,
            reference=reference,
            freight=freight,
            customer=customer,
            stops=stops,
            cargo=cargo,
            comment=comment,
            attachment_filename=attachment_filename,
        )
        stages_completed += 1

        if self.sink is not None:
            logger.debug("[Pipeline] Передача заявки во внешнее хранилище")
            self.sink.create_order(assembly.payload.to_schema_dict())

        processing_time_ms = (time.time() - start_time) * 1000
        logger.info(
            f"[Pipeline] Завершено за {processing_time_ms:.1f}ms: "
            f"ref={assembly.payload.order_reference}, {len(normalized)} строк"
        )

        return PipelineResult(
            payload=assembly.payload,
            provenance=assembly.provenance,
            template=config.template,
            reference=reference,
            freight=freight,
            customer=customer,
            stops=stops,
            cargo=cargo,
            comment=comment,
            processing_time_ms=processing_time_ms,
            stages_completed=stages_completed,
        )

    def process_document(self, document: RawDocument) -> PipelineResult:
        """Обрабатывает RawDocument (контракт PDF-to-text -> Parser)."""
        return self.process(document.lines, document.attachment_filename)
