"""
Stage 7: Assembly

ЦКП: Структурно валидный OrderPayload при ЛЮБОМ входе.

Входные данные: результаты Stage 1-6, LineSequence, TemplateConfig
Выходные данные: AssemblyResult (payload + provenance)

Политика обязательных полей:
- order_reference: кандидат Stage 1 → REFERENCE_PLACEHOLDER
- freight_price: Stage 2 → loose_scan → DEFAULT_FREIGHT_PRICE (0.0)
- freight_currency: валюта суммы → валюта без суммы → валюта шаблона
- loading/destination_locations: найденные → одна пустая остановка
- cargos: найденный груз → заглушка шаблона

Для каждого поля верхнего уровня фиксируется FieldSource.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from loguru import logger
from pydantic import ValidationError

from config.settings import DEFAULT_FREIGHT_PRICE, REFERENCE_PLACEHOLDER
from contracts.order_payload_dto import (
    Address,
    Cargo,
    Customer,
    FieldSource,
    OrderPayload,
    Stop,
)

from ..domain.exceptions import PayloadValidationError
from ..templates.config_loader import TemplateConfig
from .stage_1_reference import ReferenceResult
from .stage_2_freight import FreightExtractor, FreightResult
from .stage_3_customer import CustomerResult
from .stage_4_stops import StopsResult
from .stage_5_cargo import CargoResult
from .stage_6_comment import CommentResult


@dataclass
class AssemblyResult:
    """
    Результат Stage 7: Assembly.

    ЦКП: OrderPayload + происхождение каждого поля.
    """
    payload: OrderPayload
    provenance: Dict[str, FieldSource] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "payload": self.payload.to_schema_dict(),
            "provenance": {k: v.value for k, v in self.provenance.items()},
        }


class PayloadAssembler:
    """
    Stage 7: Assembly.

    ЦКП: Слияние результатов стадий с заглушками обязательных полей.
    """

    def __init__(self, freight_extractor: Optional[FreightExtractor] = None):
        """
        Args:
            freight_extractor: Для вторичного прохода по цене (loose_scan)
        """
        self.freight_extractor = freight_extractor or FreightExtractor()

    def process(
        self,
        lines: Sequence[str],
        config: TemplateConfig,
        reference: Optional[ReferenceResult] = None,
        freight: Optional[FreightResult] = None,
        customer: Optional[CustomerResult] = None,
        stops: Optional[StopsResult] = None,
        cargo: Optional[CargoResult] = None,
        comment: Optional[CommentResult] = None,
        attachment_filename: Optional[str] = None,
    ) -> AssemblyResult:
        """
        Собирает OrderPayload.

        Любой результат стадии может отсутствовать (None) - тогда
        срабатывает цепочка заглушек.

        Raises:
            PayloadValidationError: Собранный payload не прошёл валидацию схемы
        """
        provenance: Dict[str, FieldSource] = {}

        order_reference, provenance["order_reference"] = self._reference(reference)
        price, currency, provenance["freight_price"], provenance["freight_currency"] = self._freight(
            lines, config, freight
        )

        if customer is not None:
            customer_model = customer.customer
            provenance["customer"] = customer.source
        else:
            customer_model = Customer()
            provenance["customer"] = FieldSource.PLACEHOLDER

        loading, delivery, stops_source = self._stops(stops)
        provenance["loading_locations"] = stops_source if stops and stops.loading else FieldSource.PLACEHOLDER
        provenance["destination_locations"] = stops_source if stops and stops.delivery else FieldSource.PLACEHOLDER

        cargos, provenance["cargos"] = self._cargos(cargo, config)

        comment_text = comment.comment if comment else None
        provenance["comment"] = FieldSource.HEURISTIC if comment_text else FieldSource.PLACEHOLDER

        try:
            payload = OrderPayload(
                attachment_filenames=[attachment_filename] if attachment_filename else [],
                customer=customer_model,
                order_reference=order_reference,
                freight_price=float(price),
                freight_currency=currency,
                loading_locations=loading,
                destination_locations=delivery,
                cargos=cargos,
                comment=comment_text,
            )
        except ValidationError as e:
            raise PayloadValidationError(
                f"Собранный OrderPayload не прошёл валидацию: {e.error_count()} ошибок",
                component="Stage 7: Assembly",
                original_error=e,
            )

        placeholders = [k for k, v in provenance.items() if v == FieldSource.PLACEHOLDER]
        logger.info(
            f"[Stage 7: Assembly] ref={payload.order_reference}, "
            f"price={payload.freight_price} {payload.freight_currency}, "
            f"stops={len(payload.loading_locations)}/{len(payload.destination_locations)}, "
            f"заглушки: {placeholders}"
        )
        return AssemblyResult(payload=payload, provenance=provenance)

    @staticmethod
    def _reference(reference: Optional[ReferenceResult]):
        if reference is not None and reference.reference:
            return reference.reference, reference.source
        logger.warning(f"[Stage 7: Assembly] Номер заказа → заглушка '{REFERENCE_PLACEHOLDER}'")
        return REFERENCE_PLACEHOLDER, FieldSource.PLACEHOLDER

    def _freight(self, lines: Sequence[str], config: TemplateConfig, freight: Optional[FreightResult]):
        """(цена, валюта, источник цены, источник валюты)."""
        hint = freight.currency_hint if freight else None

        if freight is not None and freight.price is not None:
            currency = freight.currency or hint
            return (
                freight.price,
                currency or config.default_currency,
                freight.source,
                freight.source if freight.currency else (FieldSource.HEURISTIC if hint else FieldSource.FALLBACK),
            )

        loose = self.freight_extractor.loose_scan(lines, config)
        if loose is not None:
            amount, currency, index = loose
            logger.warning(f"[Stage 7: Assembly] Цена из вторичного прохода: {amount} (строка {index})")
            currency = currency or hint
            return (
                amount,
                currency or config.default_currency,
                FieldSource.FALLBACK,
                FieldSource.HEURISTIC if currency else FieldSource.FALLBACK,
            )

        logger.warning(f"[Stage 7: Assembly] Цена не найдена → {DEFAULT_FREIGHT_PRICE}")
        return (
            Decimal(str(DEFAULT_FREIGHT_PRICE)),
            hint or config.default_currency,
            FieldSource.PLACEHOLDER,
            FieldSource.HEURISTIC if hint else FieldSource.FALLBACK,
        )

    @staticmethod
    def _stops(stops: Optional[StopsResult]):
        loading: List[Stop] = list(stops.loading) if stops else []
        delivery: List[Stop] = list(stops.delivery) if stops else []
        source = stops.source if stops else FieldSource.PLACEHOLDER

        if not loading:
            logger.warning("[Stage 7: Assembly] Места погрузки → пустая остановка")
            loading = [Stop(company_address=Address())]
        if not delivery:
            logger.warning("[Stage 7: Assembly] Места выгрузки → пустая остановка")
            delivery = [Stop(company_address=Address())]
        return loading, delivery, source

    @staticmethod
    def _cargos(cargo: Optional[CargoResult], config: TemplateConfig):
        if cargo is not None and cargo.cargo is not None:
            source = FieldSource.HEURISTIC if cargo.title_source != "label" else FieldSource.EXPLICIT
            return [cargo.cargo], source

        placeholder = config.cargo_placeholder
        logger.warning(f"[Stage 7: Assembly] Груз → заглушка '{placeholder.title}'")
        return [Cargo(title=placeholder.title, package_count=placeholder.package_count)], FieldSource.PLACEHOLDER
