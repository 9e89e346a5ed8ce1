"""
Transalliance Strategy - Chartering Confirmation.

Характеристики:
- Номер заказа FUSM + 10 цифр (в тексте или в имени файла)
- Маркеры LOADING / DELIVERY внутри строки, а не в начале
- Комментарий с префиксом "Order Ref:"
"""

from .base import TemplateStrategy


class TransallianceStrategy(TemplateStrategy):
    """Стратегия для подтверждений фрахта Transalliance."""

    TEMPLATE = "transalliance"

    @property
    def name(self) -> str:
        return "Transalliance"
