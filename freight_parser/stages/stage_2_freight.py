"""
Stage 2: Freight

ЦКП: Ставка фрахта (Decimal) + валюта.

Входные данные: LineSequence, TemplateConfig
Выходные данные: FreightResult

Алгоритм:
1. Суммы с явной валютой в каждой строке (AmountParser.find_money)
2. Ранжирование: строка с ценовым словом (RATE, PRICE, ...) → priority 1,
   прочие суммы с валютой → priority 2
3. Строки с валютой без суммы запоминаются как подсказка валюты
4. loose_scan - вторичный проход для Stage 7 (фолбэк)
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from loguru import logger

from config.settings import FREIGHT_AMOUNT_MAX, FREIGHT_AMOUNT_MIN
from contracts.order_payload_dto import FieldSource

from ..extraction.amount_parser import AmountParser
from ..extraction.candidates import Candidate, pick_best, rank
from ..extraction.temporal_parser import TemporalWindowParser
from ..templates.config_loader import TemplateConfig


@dataclass
class FreightResult:
    """
    Результат Stage 2: Freight.

    ЦКП: Цена и валюта фрахта.
    """
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    currency_hint: Optional[str] = None   # Валюта, упомянутая без суммы
    source: FieldSource = FieldSource.PLACEHOLDER
    matched_in_line: int = -1
    candidates: List[Candidate] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "price": str(self.price) if self.price is not None else None,
            "currency": self.currency,
            "currency_hint": self.currency_hint,
            "source": self.source.value,
            "matched_in_line": self.matched_in_line,
            "candidates": [c.to_dict() for c in self.candidates],
        }


class FreightExtractor:
    """
    Stage 2: Freight.

    ЦКП: Ставка фрахта по ранжированным кандидатам.
    """

    DECIMAL_NUMBER_PATTERN = re.compile(r"(?<![\d.,])\d{1,3}(?:[ .,]\d{3})*[.,]\d{2}(?![\d])|(?<![\d.,])\d+[.,]\d{2}(?![\d])")

    def __init__(
        self,
        amount_parser: Optional[AmountParser] = None,
        temporal_parser: Optional[TemporalWindowParser] = None,
    ):
        self.amount_parser = amount_parser or AmountParser()
        self.temporal_parser = temporal_parser or TemporalWindowParser()

    def process(self, lines: Sequence[str], config: TemplateConfig) -> FreightResult:
        """
        Args:
            lines: LineSequence
            config: Конфигурация шаблона (price_keywords)

        Returns:
            FreightResult (price=None если суммы с валютой нет)
        """
        price_pattern = self._keyword_pattern(config.price_keywords)
        candidates = []
        currency_hint = None

        for i, line in enumerate(lines):
            money = self.amount_parser.find_money(line)
            if money is None:
                if currency_hint is None:
                    currency_hint = self.amount_parser.detect_currency(line)
                continue

            if not self._in_range(money.amount):
                logger.trace(f"[Stage 2: Freight] Сумма вне диапазона: {money.amount} в строке {i}")
                continue

            labelled = self._has_price_keyword(price_pattern, line) or (
                i > 0 and self._is_label_only(price_pattern, lines[i - 1])
            )
            priority = 1 if labelled else 2
            candidates.append(Candidate(
                priority=priority,
                value=(money.amount, money.currency),
                source_index=i,
                source=FieldSource.EXPLICIT if labelled else FieldSource.HEURISTIC,
                label=money.raw,
            ))
            logger.debug(f"[Stage 2: Freight] Кандидат {money.amount} {money.currency} p={priority} в строке {i}")

        best = pick_best(candidates)
        if best is None:
            logger.debug(f"[Stage 2: Freight] Сумма с валютой не найдена (hint={currency_hint})")
            return FreightResult(currency_hint=currency_hint)

        amount, currency = best.value
        logger.info(f"[Stage 2: Freight] Выбрано {amount} {currency} (строка {best.source_index})")
        return FreightResult(
            price=amount,
            currency=currency,
            currency_hint=currency_hint,
            source=best.source,
            matched_in_line=best.source_index,
            candidates=rank(candidates),
        )

    def loose_scan(
        self,
        lines: Sequence[str],
        config: TemplateConfig,
    ) -> Optional[Tuple[Decimal, Optional[str], int]]:
        """
        Вторичный проход: число рядом с ценовым словом, затем первое
        число с дробной частью. Даты и время исключаются.

        Returns:
            (сумма, валюта или None, строка) либо None
        """
        price_pattern = self._keyword_pattern(config.price_keywords)

        for i, line in enumerate(lines):
            if not self._has_price_keyword(price_pattern, line):
                continue
            for text, index in ((line, i), (lines[i + 1] if i + 1 < len(lines) else "", i + 1)):
                amount = self._first_amount(text)
                if amount is not None:
                    currency = self.amount_parser.detect_currency(line) or self.amount_parser.detect_currency(text)
                    logger.debug(f"[Stage 2: Freight] loose_scan: {amount} рядом с ценовым словом, строка {index}")
                    return amount, currency, index

        for i, line in enumerate(lines):
            text = self._without_dates_and_times(line)
            for match in self.DECIMAL_NUMBER_PATTERN.finditer(text):
                if self.temporal_parser.parse_time_range(match.group(0))[0] is not None:
                    continue
                amount = self.amount_parser.parse(match.group(0))
                if amount is not None and self._in_range(amount):
                    logger.debug(f"[Stage 2: Freight] loose_scan: число {amount} в строке {i}")
                    return amount, self.amount_parser.detect_currency(line), i

        return None

    def _first_amount(self, text: str) -> Optional[Decimal]:
        if not text:
            return None
        for amount in self.amount_parser.find_amounts(self._without_dates_and_times(text)):
            if self._in_range(amount):
                return amount
        return None

    def _without_dates_and_times(self, text: str) -> str:
        cleaned = self.temporal_parser.strip_dates(text)
        cleaned = self.temporal_parser.RANGE_PATTERN.sub(" ", cleaned)
        return self.temporal_parser.SINGLE_TIME_PATTERN.sub(" ", cleaned)

    @staticmethod
    def _in_range(amount: Decimal) -> bool:
        return Decimal(str(FREIGHT_AMOUNT_MIN)) <= amount <= Decimal(str(FREIGHT_AMOUNT_MAX))

    @staticmethod
    def _keyword_pattern(keywords: List[str]) -> Optional[re.Pattern]:
        if not keywords:
            return None
        return re.compile(r"\b(?:" + "|".join(re.escape(k.upper()) for k in keywords) + r")\b")

    @staticmethod
    def _has_price_keyword(pattern: Optional[re.Pattern], line: str) -> bool:
        return bool(pattern and pattern.search(line.upper()))

    def _is_label_only(self, pattern: Optional[re.Pattern], line: str) -> bool:
        """Строка-метка без числа: 'Agreed rate:'."""
        return self._has_price_keyword(pattern, line) and not re.search(r"\d", line)
