"""
Strategies: по одной стратегии на шаблон перевозчика.

Реализует Strategy Pattern поверх общего пайплайна извлечения.
"""

from .base import TemplateStrategy
from .generic import GenericStrategy
from .transalliance import TransallianceStrategy
from .ziegler import ZieglerStrategy
from .factory import StrategyFactory

__all__ = [
    "TemplateStrategy",
    "GenericStrategy",
    "TransallianceStrategy",
    "ZieglerStrategy",
    "StrategyFactory",
]
