"""
Интерфейсы (абстрактные классы) для домена Freight Parser.

Домен отвечает за:
1. Опознание шаблона перевозчика по строкам документа
2. Извлечение заявки на перевозку из строк
3. Передачу заявки во внешнее хранилище
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from contracts.order_payload_dto import OrderPayload


class ITemplateExtractor(ABC):
    """Интерфейс экстрактора одного шаблона перевозчика."""

    @abstractmethod
    def matches_template(self, lines: Sequence[str]) -> bool:
        """
        Проверяет, относится ли документ к шаблону.

        Args:
            lines: Строки документа

        Returns:
            True если документ принадлежит шаблону
        """
        pass

    @abstractmethod
    def extract(self, lines: List[str], attachment_filename: Optional[str] = None) -> OrderPayload:
        """
        Извлекает заявку из строк документа.

        Args:
            lines: Строки документа (сырые, до нормализации)
            attachment_filename: Имя исходного PDF

        Returns:
            OrderPayload, всегда валидный по схеме
        """
        pass


class IOrderSink(ABC):
    """Интерфейс внешнего хранилища заявок (createOrder)."""

    @abstractmethod
    def create_order(self, payload: Dict[str, Any]) -> Any:
        """
        Принимает итоговую заявку.

        Args:
            payload: JSON-совместимый словарь в форме OrderPayload

        Returns:
            Результат хранилища (идентификатор, ответ API и т.п.)
        """
        pass
