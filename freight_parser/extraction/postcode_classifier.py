"""
PostcodeClassifier - распознавание почтовых индексов по странам.

ЦКП: (индекс, ISO страна) по грамматикам GB / FR / LT.

Грамматики:
- GB: outward + inward код (SS17 9FJ, SW1A 1AA)
- LT: 5 цифр с необязательным префиксом LT- (LT-01100)
- FR: 5 цифр (75001)

5 цифр без префикса неоднозначны (FR или LT). Порядок разрешения:
префикс LT- → подсказка страны из окна → город по газеттиру →
таблица префиксов газеттира → FR.
"""

import re
from dataclasses import dataclass
from typing import Optional
from loguru import logger

from .gazetteer import Gazetteer


FIVE_DIGIT_COUNTRIES = ("FR", "LT")


@dataclass(frozen=True)
class PostcodeMatch:
    """Найденный в тексте индекс."""
    postal_code: str
    country: Optional[str]
    start: int
    end: int

    def to_dict(self) -> dict:
        return {
            "postal_code": self.postal_code,
            "country": self.country,
            "start": self.start,
            "end": self.end,
        }


class PostcodeClassifier:
    """
    Элемент-функция: токен/строка → индекс + страна.
    """

    GB_PATTERN = re.compile(r'\b([A-Z]{1,2}\d{1,2}[A-Z]?)\s?(\d[A-Z]{2})\b')
    LT_PATTERN = re.compile(r'\bLT\s?-?\s?(\d{5})\b')
    FIVE_DIGIT_PATTERN = re.compile(r'(?<![\d.,:/])(\d{5})(?![\d.,:/]\d)(?!\d)')

    def __init__(self, gazetteer: Optional[Gazetteer] = None):
        self.gazetteer = gazetteer or Gazetteer.load()

    def classify(
        self,
        token: Optional[str],
        hint: Optional[str] = None,
        city: Optional[str] = None,
    ) -> Optional[str]:
        """
        ISO страна, если токен целиком является индексом, иначе None.

        Args:
            token: Кандидат в индекс
            hint: Страна, упомянутая рядом (из окна адреса)
            city: Город рядом с индексом
        """
        if not token:
            return None
        text = token.strip().upper()

        if self.GB_PATTERN.fullmatch(text):
            return "GB"
        if self.LT_PATTERN.fullmatch(text):
            return "LT"
        if re.fullmatch(r'\d{5}', text):
            return self.resolve_five_digit(text, hint=hint, city=city)
        return None

    def is_postcode(self, token: Optional[str]) -> bool:
        return self.classify(token) is not None

    def find(
        self,
        text: Optional[str],
        hint: Optional[str] = None,
    ) -> Optional[PostcodeMatch]:
        """
        Первый индекс в строке.

        Приоритет грамматик: LT- префикс → GB → 5 цифр.
        """
        if not text:
            return None
        upper = text.upper()

        match = self.LT_PATTERN.search(upper)
        if match:
            return PostcodeMatch(f"LT-{match.group(1)}", "LT", match.start(), match.end())

        match = self.GB_PATTERN.search(upper)
        if match:
            postal_code = f"{match.group(1)} {match.group(2)}"
            return PostcodeMatch(postal_code, "GB", match.start(), match.end())

        match = self.FIVE_DIGIT_PATTERN.search(upper)
        if match:
            city = self._city_after(upper, match.end())
            country = self.resolve_five_digit(match.group(1), hint=hint, city=city)
            return PostcodeMatch(match.group(1), country, match.start(), match.end())

        return None

    def normalize(self, token: str) -> str:
        """GB → "OUT IN", LT → "LT-NNNNN", прочее без изменений."""
        text = token.strip().upper()
        gb = self.GB_PATTERN.fullmatch(text)
        if gb:
            return f"{gb.group(1)} {gb.group(2)}"
        lt = self.LT_PATTERN.fullmatch(text)
        if lt:
            return f"LT-{lt.group(1)}"
        return text

    def resolve_five_digit(
        self,
        code: str,
        hint: Optional[str] = None,
        city: Optional[str] = None,
    ) -> str:
        """Разрешает неоднозначный 5-значный индекс FR/LT."""
        if hint in FIVE_DIGIT_COUNTRIES:
            logger.trace(f"[PostcodeClassifier] {code} → {hint} (подсказка окна)")
            return hint

        city_country = self.gazetteer.country_for_city(city)
        if city_country in FIVE_DIGIT_COUNTRIES:
            logger.trace(f"[PostcodeClassifier] {code} → {city_country} (город {city})")
            return city_country

        prefix_country = self.gazetteer.country_for_postcode_prefix(code)
        if prefix_country in FIVE_DIGIT_COUNTRIES:
            logger.trace(f"[PostcodeClassifier] {code} → {prefix_country} (префикс)")
            return prefix_country

        return "FR"

    @staticmethod
    def _city_after(text: str, position: int) -> Optional[str]:
        tail = text[position:].strip(" ,;-")
        if not tail:
            return None
        return tail.split(",")[0].strip() or None
