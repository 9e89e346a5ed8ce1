"""
LineNormalizer - первичная очистка строк документа.

ЦКП: Нормализованная последовательность строк (LineSequence).

Операции:
- Unicode NFKC (NBSP, узкие пробелы → обычный пробел)
- Удаление zero-width символов
- Trim + схлопывание пробелов
- Удаление пустых строк
- Переписывание неформального времени: 8h00 → 08:00
"""

import re
import unicodedata
from typing import Iterable, Optional, Tuple
from loguru import logger


LineSequence = Tuple[str, ...]


class LineNormalizer:
    """
    Элемент-функция: сырые строки → LineSequence.

    Результат - кортеж (неизменяемый), порядок строк сохраняется.
    """

    ZERO_WIDTH_PATTERN = re.compile(r'[​‌‍⁠﻿]')
    WHITESPACE_PATTERN = re.compile(r'\s+')
    # 8h00, 14H30 → 08:00, 14:30
    INFORMAL_TIME_PATTERN = re.compile(r'\b(\d{1,2})[hH](\d{2})\b')

    def normalize(self, lines: Optional[Iterable[str]]) -> LineSequence:
        """
        Args:
            lines: Сырые строки от PDF-to-text (None допустим)

        Returns:
            LineSequence без пустых строк
        """
        if not lines:
            return tuple()

        result = []
        for raw in lines:
            line = self.normalize_line(raw)
            if line:
                result.append(line)

        # Диагностический дамп. Только trace, обработку не прерывает
        logger.trace(f"[LineNormalizer] {len(result)} строк: {result}")
        return tuple(result)

    def normalize_line(self, raw: Optional[str]) -> str:
        """Нормализует одну строку."""
        if raw is None:
            return ""

        line = unicodedata.normalize("NFKC", str(raw))
        line = self.ZERO_WIDTH_PATTERN.sub("", line)
        line = self.WHITESPACE_PATTERN.sub(" ", line).strip()
        return self.INFORMAL_TIME_PATTERN.sub(self._rewrite_time, line)

    @staticmethod
    def _rewrite_time(match: re.Match) -> str:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            return match.group(0)
        return f"{hours:02d}:{minutes:02d}"
