"""
Generic Strategy - документ не опознан ни одним перевозчиком.

Характеристики:
- Опознаёт любой документ (detection.always)
- Маркеры остановок в начале строки (Collection / Delivery / Loading ...)
- Общие паттерны номера заказа из base.yaml
"""

from .base import TemplateStrategy


class GenericStrategy(TemplateStrategy):
    """Стратегия по умолчанию."""

    TEMPLATE = "generic"

    @property
    def name(self) -> str:
        return "Generic"
