"""
Базовая стратегия шаблона перевозчика.

Каждая стратегия знает свой шаблон (TEMPLATE) и:
- опознаёт документ по правилам detection из YAML
- извлекает OrderPayload общим пайплайном с TemplateConfig шаблона

Новый перевозчик = новый template.yaml + тонкий подкласс с TEMPLATE.
"""

import re
from abc import abstractmethod
from typing import List, Optional, Sequence
from loguru import logger

from contracts.order_payload_dto import OrderPayload

from ..domain.interfaces import ITemplateExtractor
from ..extraction.line_normalizer import LineNormalizer
from ..stages.pipeline import OrderExtractionPipeline, PipelineResult
from ..templates.config_loader import TemplateConfig, TemplateConfigLoader


class TemplateStrategy(ITemplateExtractor):
    """
    Стратегия одного шаблона перевозчика.

    Конфиг и пайплайн создаются лениво при первом обращении.
    """

    # Имя каталога шаблона - определяется в подклассах
    TEMPLATE: str = "generic"

    def __init__(
        self,
        config_loader: Optional[TemplateConfigLoader] = None,
        pipeline: Optional[OrderExtractionPipeline] = None,
    ):
        self._config_loader = config_loader or TemplateConfigLoader()
        self._config: Optional[TemplateConfig] = pipeline.config if pipeline else None
        self._pipeline = pipeline
        self._normalizer = LineNormalizer()

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя стратегии (для логирования)."""
        pass

    @property
    def config(self) -> TemplateConfig:
        if self._config is None:
            self._config = self._config_loader.load(self.TEMPLATE)
        return self._config

    @property
    def pipeline(self) -> OrderExtractionPipeline:
        if self._pipeline is None:
            self._pipeline = OrderExtractionPipeline(config=self.config)
        return self._pipeline

    def matches_template(self, lines: Sequence[str]) -> bool:
        """
        Опознание документа по DetectionConfig.

        Все заданные группы правил должны выполниться:
        - required_markers (все) и any_markers (хотя бы один) в первых head_lines строках
        - hard_markers: не меньше min_hard_hits строк с маркером
        - soft_marker_groups: счёт строк не меньше min_soft_score
        """
        detection = self.config.detection
        if detection.always:
            return True

        normalized = self._normalizer.normalize(lines)
        if not normalized:
            return False

        head = normalized[:detection.head_lines] if detection.head_lines else normalized
        head_text = "\n".join(head).upper()

        if detection.required_markers:
            if not all(self._contains(head_text, marker) for marker in detection.required_markers):
                logger.trace(f"[{self.name}] Нет обязательных маркеров")
                return False
        if detection.any_markers:
            if not any(self._contains(head_text, marker) for marker in detection.any_markers):
                logger.trace(f"[{self.name}] Нет ни одного из any_markers")
                return False

        if detection.hard_markers:
            hard_hits = sum(
                1 for line in normalized
                if any(self._contains(line.upper(), marker) for marker in detection.hard_markers)
            )
            if hard_hits < detection.min_hard_hits:
                logger.trace(f"[{self.name}] hard_hits={hard_hits} < {detection.min_hard_hits}")
                return False

        if detection.soft_marker_groups:
            score = self.soft_score(normalized, detection.soft_marker_groups)
            if score < detection.min_soft_score:
                logger.trace(f"[{self.name}] soft_score={score} < {detection.min_soft_score}")
                return False

        has_rules = any((
            detection.required_markers, detection.any_markers,
            detection.hard_markers, detection.soft_marker_groups,
        ))
        if has_rules:
            logger.debug(f"[{self.name}] Документ опознан")
        return has_rules

    def soft_score(self, lines: Sequence[str], groups: List[List[str]]) -> int:
        """+1 за каждую строку и каждую группу, слово которой есть в строке."""
        score = 0
        for line in lines:
            upper = line.upper()
            for group in groups:
                if any(self._contains(upper, str(word)) for word in group):
                    score += 1
        return score

    def extract(self, lines: List[str], attachment_filename: Optional[str] = None) -> OrderPayload:
        return self.process(lines, attachment_filename).payload

    def process(self, lines: Sequence[str], attachment_filename: Optional[str] = None) -> PipelineResult:
        """Полный результат пайплайна (payload + provenance + этапы)."""
        logger.debug(f"[{self.name}] Извлечение заявки")
        return self.pipeline.process(lines, attachment_filename)

    @staticmethod
    def _contains(text: str, marker: str) -> bool:
        """Маркер как отдельное слово (границы - не буквы, цифры после маркера допустимы: FUSM2024...)."""
        pattern = r"(?<![A-Z])" + re.escape(marker.upper()) + r"(?![A-Z])"
        return re.search(pattern, text) is not None
