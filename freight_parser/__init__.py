"""
Freight Order Parser: текст подтверждения перевозки → OrderPayload.

Вход: contracts.RawDocument (строки от PDF-to-text)
Выход: contracts.OrderPayload (для внешнего createOrder)

Пример:
    strategy = StrategyFactory().detect(lines)
    payload = strategy.extract(lines, attachment_filename="order.pdf")
"""

from .stages.pipeline import OrderExtractionPipeline, PipelineResult
from .strategies import StrategyFactory, TemplateStrategy

__all__ = [
    "OrderExtractionPipeline",
    "PipelineResult",
    "StrategyFactory",
    "TemplateStrategy",
]
