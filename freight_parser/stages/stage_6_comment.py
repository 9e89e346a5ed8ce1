"""
Stage 6: Comment

ЦКП: Свободный комментарий заказа (инструкции, условия).

Входные данные: LineSequence, TemplateConfig, номер заказа
Выходные данные: CommentResult

Алгоритм:
1. Область поиска: весь документ либо секция инструкций
   (между section_start и section_end шаблона)
2. Строки с ключевыми словами шаблона, без повторов, через separator
3. Заметки по regex-правилам шаблона, через rules_separator с точкой в конце
4. Опциональный префикс "Order Ref: <ref>" (только если есть содержимое)
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
from loguru import logger

from config.settings import REFERENCE_PLACEHOLDER
from ..templates.config_loader import TemplateConfig


@dataclass
class CommentResult:
    """
    Результат Stage 6: Comment.

    ЦКП: Текст комментария или None.
    """
    comment: Optional[str] = None
    keyword_lines: List[int] = field(default_factory=list)
    rule_notes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "comment": self.comment,
            "keyword_lines": self.keyword_lines,
            "rule_notes": self.rule_notes,
        }


class CommentAggregator:
    """Stage 6: Comment."""

    def process(
        self,
        lines: Sequence[str],
        config: TemplateConfig,
        reference: Optional[str] = None,
    ) -> CommentResult:
        """
        Args:
            lines: LineSequence
            config: Конфигурация шаблона (comment)
            reference: Выбранный номер заказа (для префикса)

        Returns:
            CommentResult
        """
        settings = config.comment
        start, end = self.section_bounds(lines, settings.section_start, settings.section_end)

        keyword_lines = self._keyword_lines(lines, start, end, settings.keywords)
        rule_notes = self._rule_notes(lines, settings.rules)

        parts = []
        seen = set()
        for index in keyword_lines:
            text = lines[index].strip()
            if text.upper() not in seen:
                seen.add(text.upper())
                parts.append(text)

        if rule_notes:
            parts.append(settings.rules_separator.join(rule_notes).rstrip(".") + ".")

        if not parts:
            logger.debug("[Stage 6: Comment] Комментарий пуст")
            return CommentResult()

        comment = settings.separator.join(parts)
        if settings.reference_prefix and reference and reference != REFERENCE_PLACEHOLDER:
            comment = f"Order Ref: {reference}{settings.separator}{comment}"

        logger.info(f"[Stage 6: Comment] {len(keyword_lines)} строк инструкций, {len(rule_notes)} заметок")
        return CommentResult(comment=comment, keyword_lines=keyword_lines, rule_notes=rule_notes)

    @staticmethod
    def section_bounds(
        lines: Sequence[str],
        section_start: Sequence[str],
        section_end: Sequence[str],
    ) -> Tuple[int, int]:
        """
        Границы секции инструкций [start, end).

        Без section_start - весь документ. Если маркер начала не найден,
        тоже весь документ.
        """
        if not section_start:
            return 0, len(lines)

        starts = [s.upper() for s in section_start]
        ends = [e.upper() for e in section_end]
        for i, line in enumerate(lines):
            if any(marker in line.upper() for marker in starts):
                for j in range(i + 1, len(lines)):
                    if any(marker in lines[j].upper() for marker in ends):
                        return i + 1, j
                return i + 1, len(lines)
        return 0, len(lines)

    @staticmethod
    def _keyword_lines(lines: Sequence[str], start: int, end: int, keywords: Sequence[str]) -> List[int]:
        if not keywords:
            return []
        pattern = re.compile(r"\b(?:" + "|".join(re.escape(k.upper()) for k in keywords) + r")\b")
        return [i for i in range(start, end) if pattern.search(lines[i].upper())]

    @staticmethod
    def _rule_notes(lines: Sequence[str], rules) -> List[str]:
        """Первая заметка каждого правила, без повторов."""
        notes = []
        for rule in rules:
            for line in lines:
                note = rule.apply(line)
                if note:
                    if note not in notes:
                        notes.append(note)
                    break
        return notes
