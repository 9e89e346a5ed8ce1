"""
Контракты DTO проекта Freight Order Parser.

Все контракты используют Pydantic v2 для валидации.

Контракты:
- PDF-to-text -> Parser: RawDocument (raw_document_dto.py)
- Parser -> Persistence: OrderPayload (order_payload_dto.py)
"""

# PDF-to-text -> Parser
from .raw_document_dto import RawDocument

# Parser -> Persistence
from .order_payload_dto import (
    Address,
    Cargo,
    Customer,
    FieldSource,
    OrderPayload,
    PackageType,
    Stop,
    TimeWindow,
)

__all__ = [
    # PDF-to-text -> Parser
    "RawDocument",
    # Parser -> Persistence
    "Address",
    "Cargo",
    "Customer",
    "FieldSource",
    "OrderPayload",
    "PackageType",
    "Stop",
    "TimeWindow",
]
