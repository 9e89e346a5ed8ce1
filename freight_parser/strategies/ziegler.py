"""
Ziegler Strategy - Booking Instruction Ziegler UK.

Характеристики:
- "ZIEGLER UK LTD" в шапке, адрес головного офиса по умолчанию
- Секции "Collection ..." / "Delivery ..." с датой в строке "Booked for"
- "Ziegler Ref" с наивысшим приоритетом
"""

from .base import TemplateStrategy


class ZieglerStrategy(TemplateStrategy):
    """Стратегия для букинг-инструкций Ziegler UK."""

    TEMPLATE = "ziegler"

    @property
    def name(self) -> str:
        return "Ziegler"
