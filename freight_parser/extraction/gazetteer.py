"""
Gazetteer - справочник стран и городов.

ЦКП: ISO код страны по названию страны, города или префиксу индекса.

Загружается один раз из gazetteer.yaml, далее только чтение.
"""

import re
import yaml
from pathlib import Path
from typing import ClassVar, Dict, List, Optional, Tuple
from loguru import logger

from config.settings import GAZETTEER_FILE
from ..domain.exceptions import GazetteerError


class Gazetteer:
    """
    Справочник стран/городов.

    Пример:
        gazetteer = Gazetteer.load()
        gazetteer.find_country("12 RUE X, FRANCE")  # "FR"
    """

    _cache: ClassVar[Dict[str, "Gazetteer"]] = {}

    def __init__(
        self,
        countries: Dict[str, List[str]],
        cities: Dict[str, List[str]],
        ambiguous_prefixes: Optional[Dict[str, str]] = None,
    ):
        self._country_names = self._invert(countries)
        self._city_names = self._invert(cities)
        self.ambiguous_prefixes = {str(k): v for k, v in (ambiguous_prefixes or {}).items()}

        # Длинные названия первыми: UNITED KINGDOM раньше UK
        names = sorted(self._country_names, key=len, reverse=True)
        self._country_pattern = (
            re.compile(r'\b(' + "|".join(re.escape(n) for n in names) + r')\b')
            if names else None
        )

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Gazetteer":
        """Загружает газеттир из YAML (с кешем по пути)."""
        path = Path(path or GAZETTEER_FILE)
        key = str(path)
        if key in cls._cache:
            return cls._cache[key]

        if not path.exists():
            raise GazetteerError(f"Файл не найден: {path}", component="Gazetteer")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise GazetteerError(f"Некорректный YAML: {path}", component="Gazetteer", original_error=e)

        if not isinstance(data.get("countries"), dict):
            raise GazetteerError(f"Отсутствует секция countries в {path}", component="Gazetteer")

        gazetteer = cls(
            countries=data["countries"],
            cities=data.get("cities") or {},
            ambiguous_prefixes=data.get("ambiguous_postcode_prefixes") or {},
        )
        cls._cache[key] = gazetteer

        logger.debug(
            f"[Gazetteer] Загружен {path.name}: {len(gazetteer._country_names)} стран, "
            f"{len(gazetteer._city_names)} городов"
        )
        return gazetteer

    @staticmethod
    def _invert(mapping: Dict[str, List[str]]) -> Dict[str, str]:
        inverted = {}
        for code, names in mapping.items():
            for name in names or []:
                inverted[str(name).upper()] = str(code).upper()
        return inverted

    def find_country(self, text: str) -> Optional[str]:
        """ISO код первой упомянутой в тексте страны."""
        match = self.find_country_mention(text)
        return match[1] if match else None

    def find_country_mention(self, text: str) -> Optional[Tuple[str, str]]:
        """(название как в тексте, ISO код) первой упомянутой страны."""
        if not text or self._country_pattern is None:
            return None
        match = self._country_pattern.search(text.upper())
        if not match:
            return None
        return match.group(1), self._country_names[match.group(1)]

    def country_for_city(self, city: Optional[str]) -> Optional[str]:
        """ISO код страны по названию города (точное совпадение)."""
        if not city:
            return None
        return self._city_names.get(city.strip().upper())

    def country_for_postcode_prefix(self, postcode: str) -> Optional[str]:
        """ISO код по префиксу неоднозначного 5-значного индекса."""
        for prefix in sorted(self.ambiguous_prefixes, key=len, reverse=True):
            if postcode.startswith(prefix):
                return self.ambiguous_prefixes[prefix]
        return None

    def is_country_name(self, text: str) -> bool:
        return bool(text) and text.strip().upper() in self._country_names
