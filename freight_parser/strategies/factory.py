"""
Strategy Factory - выбор стратегии шаблона перевозчика.

По имени шаблона, по содержимому документа (detect) или по обоим сразу:
имя задаёт стратегию, строки документа сверяются с её правилами detection.
"""

from typing import Dict, List, Optional, Sequence
from loguru import logger

from .base import TemplateStrategy
from .generic import GenericStrategy
from .transalliance import TransallianceStrategy
from .ziegler import ZieglerStrategy


class StrategyFactory:
    """
    Фабрика стратегий перевозчиков.

    Пример:
        factory = StrategyFactory()
        strategy = factory.get(lines=lines)
        payload = strategy.extract(lines, "FUSM2024061234.pdf")
    """

    # Порядок важен: detect() проверяет перевозчиков в порядке регистрации
    STRATEGY_MAP: Dict[str, TemplateStrategy] = {
        "transalliance": TransallianceStrategy(),
        "ziegler": ZieglerStrategy(),
    }

    def get(
        self,
        template: Optional[str] = None,
        lines: Optional[Sequence[str]] = None,
    ) -> TemplateStrategy:
        """
        Стратегия по имени шаблона и/или строкам документа.

        Args:
            template: Имя шаблона (trim + нижний регистр). Без имени при
                      переданных строках шаблон опознаётся detect().
            lines: Строки документа. При заданном имени документ сверяется
                   с правилами detection шаблона, расхождение логируется.

        Returns:
            TemplateStrategy; неизвестное имя → GenericStrategy
        """
        if not template:
            if lines is not None:
                return self.detect(lines)
            logger.debug("[StrategyFactory] Шаблон не задан → Generic")
            return GenericStrategy()

        key = template.strip().lower()
        strategy = self.STRATEGY_MAP.get(key)
        if strategy is None:
            if key != GenericStrategy.TEMPLATE:
                logger.warning(
                    f"[StrategyFactory] Неизвестный шаблон '{template}', "
                    f"доступны: {self.available()} → Generic"
                )
            return GenericStrategy()

        if lines is not None and not strategy.matches_template(lines):
            logger.warning(
                f"[StrategyFactory] Документ не похож на шаблон '{strategy.TEMPLATE}' "
                f"({strategy.name}), извлечение по запрошенному шаблону"
            )
        else:
            logger.debug(f"[StrategyFactory] Стратегия {strategy.name} (шаблон '{strategy.TEMPLATE}')")
        return strategy

    def detect(self, lines: Sequence[str]) -> TemplateStrategy:
        """
        Опознать шаблон по строкам документа.

        Returns:
            Первая стратегия, чей matches_template вернул True, иначе Generic
        """
        for strategy in self.STRATEGY_MAP.values():
            if strategy.matches_template(lines):
                logger.info(f"[StrategyFactory] Документ опознан: {strategy.name}")
                return strategy

        logger.info("[StrategyFactory] Шаблон не опознан → Generic")
        return GenericStrategy()

    def available(self) -> List[str]:
        return list(self.STRATEGY_MAP) + [GenericStrategy.TEMPLATE]

    def register(self, strategy: TemplateStrategy, template: Optional[str] = None) -> None:
        """
        Зарегистрировать стратегию нового перевозчика.

        Конфиг шаблона загружается сразу: отсутствующий или битый
        template.yaml обнаруживается при регистрации, а не на первом документе.

        Args:
            strategy: Экземпляр TemplateStrategy
            template: Ключ в фабрике (по умолчанию strategy.TEMPLATE)

        Raises:
            TemplateNotFoundError: Нет template.yaml для strategy.TEMPLATE
            TemplateConfigurationError: template.yaml некорректен
        """
        key = (template or strategy.TEMPLATE).strip().lower()
        config = strategy.config
        self.STRATEGY_MAP[key] = strategy
        logger.info(
            f"[StrategyFactory] Зарегистрирована стратегия {strategy.name}: "
            f"'{key}' → шаблон '{config.template}'"
        )
