"""
7 этапов пайплайна извлечения заявки.

Порядок выполнения строгий:
1. Reference - номер заказа / букинга
2. Freight - ставка и валюта фрахта
3. Customer - реквизиты заказчика
4. Stops - места погрузки и выгрузки
5. Cargo - атрибуты груза
6. Comment - инструкции и условия
7. Assembly - OrderPayload с заглушками обязательных полей

Каждый этап имеет:
- Свой ЦКП
- Единственную ответственность (SRP)
- Результат-dataclass с to_dict() для отладки
"""

from .stage_1_reference import ReferenceResolver, ReferenceResult
from .stage_2_freight import FreightExtractor, FreightResult
from .stage_3_customer import CustomerExtractor, CustomerResult
from .stage_4_stops import StopCandidate, StopExtractor, StopsResult
from .stage_5_cargo import CargoAttributes, CargoExtractor, CargoResult
from .stage_6_comment import CommentAggregator, CommentResult
from .stage_7_assembly import AssemblyResult, PayloadAssembler
from .pipeline import OrderExtractionPipeline, PipelineResult

__all__ = [
    # Pipeline
    "OrderExtractionPipeline",
    "PipelineResult",
    # Stage 1
    "ReferenceResolver",
    "ReferenceResult",
    # Stage 2
    "FreightExtractor",
    "FreightResult",
    # Stage 3
    "CustomerExtractor",
    "CustomerResult",
    # Stage 4
    "StopExtractor",
    "StopsResult",
    "StopCandidate",
    # Stage 5
    "CargoExtractor",
    "CargoResult",
    "CargoAttributes",
    # Stage 6
    "CommentAggregator",
    "CommentResult",
    # Stage 7
    "PayloadAssembler",
    "AssemblyResult",
]
