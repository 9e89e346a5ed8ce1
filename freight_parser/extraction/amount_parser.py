"""
AmountParser - разбор денежных сумм с неоднозначной локалью.

ЦКП: Decimal сумма + ISO валюта, либо None.

Разделители определяются по позиции, а не по локали:
- "1.475,00" → 1475.00 (EU)
- "1,475.00" → 1475.00 (US)
- "1 475"    → 1475
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from loguru import logger


CURRENCY_SYMBOLS = {"€": "EUR", "£": "GBP", "$": "USD"}
CURRENCY_CODES = ("EUR", "GBP", "USD", "PLN", "CHF", "SEK", "DKK", "NOK", "CZK", "HUF", "RON")

_CODES = "|".join(CURRENCY_CODES)
_SYMBOLS = "".join(re.escape(s) for s in CURRENCY_SYMBOLS)

# Число: либо с группировкой тысяч (1.475,00 / 1,475.00 / 1 475), либо простое (1475.5)
AMOUNT_TOKEN = r'(?:\d{1,3}(?:[ .,]\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?)(?![\d])'
_AMT = r'(?<![\d.,])(?P<amt>' + AMOUNT_TOKEN + r')'


@dataclass(frozen=True)
class MoneyMatch:
    """Сумма с явной валютой, найденная в строке."""
    amount: Decimal
    currency: str
    start: int
    raw: str

    def to_dict(self) -> dict:
        return {
            "amount": str(self.amount),
            "currency": self.currency,
            "start": self.start,
            "raw": self.raw,
        }


class AmountParser:
    """
    Элемент-функция: строка → Decimal / валюта.

    Порядок поиска суммы с валютой в строке:
    1. Код перед суммой:      EUR 1,475.00 / Price: EUR 1000
    2. Сумма перед кодом:     1,475.00 EUR
    3. Символ перед суммой:   € 1.475,00 / Rate € 1,000
    4. Сумма перед символом:  1 475 €
    """

    MONEY_PATTERNS = [
        re.compile(r'\b(?P<cur>' + _CODES + r')\b\s*[:.]?\s*' + _AMT, re.IGNORECASE),
        re.compile(_AMT + r'\s*(?P<cur>' + _CODES + r')\b', re.IGNORECASE),
        re.compile(r'(?P<sym>[' + _SYMBOLS + r'])\s*' + _AMT),
        re.compile(_AMT + r'\s*(?P<sym>[' + _SYMBOLS + r'])'),
    ]
    AMOUNT_PATTERN = re.compile(_AMT)
    CURRENCY_CODE_PATTERN = re.compile(r'\b(' + _CODES + r')\b', re.IGNORECASE)
    CURRENCY_SYMBOL_PATTERN = re.compile(r'[' + _SYMBOLS + r']')
    VALID_NUMBER_PATTERN = re.compile(r'^\d+(\.\d+)?$')

    def parse(self, raw: Optional[str]) -> Optional[Decimal]:
        """
        ЦКП: Decimal или None (не число).

        Args:
            raw: Числоподобная подстрока

        Returns:
            Decimal: Сумма или None
        """
        if not raw:
            return None

        cleaned = re.sub(r'[^\d.,\s]', '', raw)
        cleaned = re.sub(r'\s+', '', cleaned)
        if not cleaned:
            return None

        has_dot = "." in cleaned
        has_comma = "," in cleaned

        if has_dot and has_comma:
            # Правый разделитель - десятичный, левый - тысячи
            if cleaned.rfind(".") > cleaned.rfind(","):
                cleaned = cleaned.replace(",", "")
            else:
                cleaned = cleaned.replace(".", "").replace(",", ".")
        elif has_comma:
            if cleaned.count(",") == 1 and re.search(r',\d{2}$', cleaned):
                cleaned = cleaned.replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif cleaned.count(".") > 1:
            # 1.250.000 - точки как группировка тысяч
            cleaned = cleaned.replace(".", "")

        if not self.VALID_NUMBER_PATTERN.match(cleaned):
            logger.trace(f"[AmountParser] Не число: '{raw}' → '{cleaned}'")
            return None

        try:
            return Decimal(cleaned)
        except InvalidOperation:
            logger.trace(f"[AmountParser] InvalidOperation: '{cleaned}'")
            return None

    def find_money(self, text: str) -> Optional[MoneyMatch]:
        """Первая сумма с явной валютой в строке (по порядку MONEY_PATTERNS)."""
        if not text:
            return None

        for pattern in self.MONEY_PATTERNS:
            for match in pattern.finditer(text):
                amount = self.parse(match.group("amt"))
                if amount is None:
                    continue
                currency = self._currency_from_match(match)
                return MoneyMatch(
                    amount=amount,
                    currency=currency,
                    start=match.start("amt"),
                    raw=match.group(0),
                )
        return None

    def find_amounts(self, text: str) -> List[Decimal]:
        """Все числоподобные суммы в строке, слева направо."""
        if not text:
            return []
        amounts = []
        for match in self.AMOUNT_PATTERN.finditer(text):
            amount = self.parse(match.group("amt"))
            if amount is not None:
                amounts.append(amount)
        return amounts

    def detect_currency(self, text: str) -> Optional[str]:
        """Валюта по коду или символу (самое левое вхождение)."""
        if not text:
            return None

        found = []
        code_match = self.CURRENCY_CODE_PATTERN.search(text)
        if code_match:
            found.append((code_match.start(), code_match.group(1).upper()))
        symbol_match = self.CURRENCY_SYMBOL_PATTERN.search(text)
        if symbol_match:
            found.append((symbol_match.start(), CURRENCY_SYMBOLS[symbol_match.group(0)]))

        if not found:
            return None
        return min(found)[1]

    def is_amount(self, token: str) -> bool:
        """Токен целиком выглядит как денежная сумма с дробной частью или валютой."""
        if not token:
            return False
        token = token.strip()
        if self.detect_currency(token):
            return True
        return bool(re.fullmatch(r'\d{1,3}(?:[ .,]\d{3})*[.,]\d{2}', token))

    @staticmethod
    def _currency_from_match(match: re.Match) -> str:
        groups = match.groupdict()
        if groups.get("cur"):
            return groups["cur"].upper()
        return CURRENCY_SYMBOLS.get(groups.get("sym"), "USD")
