"""
AddressResolver - сборка адреса из окна строк.

ЦКП: AddressResult (company, street, city, postcode, country, vat, email, contact).

Порядок правил для каждой строки окна (первое сработавшее правило
закрывает строку):
1. Пропуск инструкций (длинная строка, ключевое слово, маркер списка)
2. Пропуск не-адресных строк (дата/время, цена, единицы груза, телефон)
3. Улица (ключевые слова ROAD, RUE, CHEMIN, ...)
4. Индекс + город ("75001 PARIS", "STANFORD LE HOPE SS17 9FJ")
5. Email / VAT / контакт
6. Строка-страна ("FRANCE")
7. Название компании

Каждое поле заполняется один раз (first-non-null). Исключение - улица:
строка с двумя и более ключевыми словами улицы заменяет более слабую.
"""

import re
from dataclasses import dataclass, fields
from typing import Callable, List, Optional, Sequence, Tuple
from loguru import logger

from config.settings import COMPANY_LINE_MAX_LENGTH, INSTRUCTION_LINE_MAX_LENGTH
from contracts.order_payload_dto import Address

from .amount_parser import AmountParser
from .candidates import merge_first_non_null
from .gazetteer import Gazetteer
from .postcode_classifier import PostcodeClassifier
from .temporal_parser import TemporalWindowParser


@dataclass(frozen=True)
class AddressResult:
    """Частичный или итоговый результат сборки адреса."""
    company: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    vat_code: Optional[str] = None
    email: Optional[str] = None
    contact_person: Optional[str] = None
    comment: Optional[str] = None

    def merge(self, other: "AddressResult") -> "AddressResult":
        """Пустые поля заполняются из other, заполненные сохраняются."""
        return merge_first_non_null(self, other)

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) in (None, "") for f in fields(self))

    def to_address(self) -> Address:
        return Address(**self.to_dict())

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class AddressResolver:
    """
    Собирает адрес из ограниченного окна строк после строки-заголовка.
    """

    STREET_PATTERN = re.compile(
        r"\b(ROAD|RD|STREET|ST|LANE|LN|AVENUE|AVE|RUE|CHEMIN|CHEM|WAY|PARK|COURT|CT|"
        r"ROUTE|RTE|DRIVE|DR|PLACE|BOULEVARD|BLVD|BD|GATEWAY|CROSSING|ZI|ZA|ZAC|QUAI|"
        r"ALLEE|IMPASSE|CLOSE|CRESCENT|TERRACE|ESTATE|COURSE|GATVE|PLENTAS|PR|G)\b\.?"
    )
    FR_STREET_WORDS = {"RUE", "CHEMIN", "CHEM", "AVENUE", "BOULEVARD", "BD", "ROUTE", "RTE",
                       "QUAI", "ALLEE", "IMPASSE", "ZI", "ZA", "ZAC"}
    GB_STREET_WORDS = {"ROAD", "RD", "LANE", "STREET", "WAY", "CLOSE", "CRESCENT", "TERRACE",
                       "ESTATE", "DRIVE", "GATEWAY", "CROSSING"}
    LT_STREET_WORDS = {"GATVE", "PLENTAS", "PR", "G"}
    # Улица, которая начинается с ключевого слова (RUE DE PARIS)
    LEADING_STREET_WORDS = {"RUE", "CHEMIN", "CHEM", "AVENUE", "ROUTE", "QUAI", "ALLEE",
                            "IMPASSE", "BOULEVARD", "ZI", "ZA", "ZAC"}

    REGION_PATTERN = re.compile(r"\b(APSKRITIS|REGION|COUNTY|PROVINCE|DEPARTMENT|DEPARTEMENT)\b")
    LEGAL_SUFFIX_PATTERN = re.compile(
        r"(?<![A-Z])(LTD|LIMITED|INC|SAS|SARL|GMBH|SRL|BV|B\.V\.|NV|UAB|PLC|LLC|S\.A\.|SPA|C/O)(?![A-Z])"
    )
    COMPANY_PATTERN = re.compile(r"^[A-Z0-9 '\-&/.,()]{3,}$")
    LABEL_PATTERN = re.compile(
        r"^(?:OUR\s+|YOUR\s+)?(?:REF|REFERENCE|ORDER|BOOKING|BOOKED|DATE|TIME|TEL|PHONE|FAX|MOB|MOBILE|GSM|PAGE)\b"
    )
    PHONE_PATTERN = re.compile(r"^[+\d\s()\-./]{7,}$")
    BULLET_PATTERN = re.compile(r"^\s*(?:[-•*▪►·]|\d{1,2}[.)])\s+")

    EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}")
    VAT_PATTERN = re.compile(
        r"\b(?:VAT|TVA)(?:\s*(?:NUMBER|NR|NO|N°)\.?)?\s*[:#\-]?\s*([A-Z]{2}[A-Z0-9\-]{2,})"
    )
    CONTACT_PATTERN = re.compile(
        r"\b(?:CONTACT\s+PERSON|CONTACT|ATTN|ATTENTION)\b\.?\s*[:\-]?\s*(.+)", re.IGNORECASE
    )
    CONTACT_CUT_PATTERN = re.compile(r"(?i)\b(?:tel|phone|mob|mobile|fax|e-?mail)\b|\+|\S+@")

    def __init__(
        self,
        postcode_classifier: Optional[PostcodeClassifier] = None,
        gazetteer: Optional[Gazetteer] = None,
        instruction_keywords: Optional[List[str]] = None,
        non_address_hints: Optional[List[str]] = None,
        known_companies: Optional[List[str]] = None,
        amount_parser: Optional[AmountParser] = None,
        temporal_parser: Optional[TemporalWindowParser] = None,
    ):
        """
        Args:
            postcode_classifier: Классификатор индексов
            gazetteer: Справочник стран/городов
            instruction_keywords: Ключевые слова инструкций (шаблон)
            non_address_hints: Единицы груза и прочие не-адресные слова
            known_companies: Известные компании (allow-list шаблона)
        """
        self.gazetteer = gazetteer or Gazetteer.load()
        self.postcode_classifier = postcode_classifier or PostcodeClassifier(self.gazetteer)
        self.amount_parser = amount_parser or AmountParser()
        self.temporal_parser = temporal_parser or TemporalWindowParser()
        self.known_companies = [c.upper() for c in (known_companies or [])]

        self._instruction_pattern = self._word_pattern(instruction_keywords or [])
        self._non_address_pattern = self._word_pattern(non_address_hints or [])

    @classmethod
    def from_config(cls, config, **kwargs) -> "AddressResolver":
        """
        Резолвер со списками шаблона (instruction_keywords, non_address_hints,
        known_companies). Остальные зависимости передаются через kwargs.
        """
        return cls(
            instruction_keywords=config.instruction_keywords,
            non_address_hints=config.non_address_hints,
            known_companies=config.known_companies,
            **kwargs,
        )

    @staticmethod
    def _word_pattern(words: List[str]) -> Optional[re.Pattern]:
        if not words:
            return None
        escaped = sorted((re.escape(w.upper()) for w in words), key=len, reverse=True)
        return re.compile(r"(?<![A-Z0-9])(?:" + "|".join(escaped) + r")(?![A-Z])")

    # ------------------------------------------------------------------
    # Классификаторы строк
    # ------------------------------------------------------------------
    def is_instruction_line(self, line: str) -> bool:
        """Инструкция / условия: длинная строка, ключевое слово или маркер списка."""
        if not line:
            return False
        if len(line) > INSTRUCTION_LINE_MAX_LENGTH:
            return True
        if self.BULLET_PATTERN.match(line):
            return True
        return bool(self._instruction_pattern and self._instruction_pattern.search(line.upper()))

    def is_non_address_line(self, line: str) -> bool:
        """Дата/время, цена, единицы груза, телефон, строка-метка."""
        upper = line.upper()
        if self.EMAIL_PATTERN.search(line) or self.VAT_PATTERN.search(upper):
            return False
        if self.LABEL_PATTERN.match(upper) or self.PHONE_PATTERN.match(line):
            return True
        if self.temporal_parser.has_date_or_time(line):
            return True
        if self.amount_parser.find_money(line):
            return True
        return bool(self._non_address_pattern and self._non_address_pattern.search(upper))

    def street_keyword_count(self, line: str) -> int:
        return len(self.STREET_PATTERN.findall(line.upper()))

    def looks_like_street(self, line: str) -> bool:
        if not line or "@" in line:
            return False
        upper = line.upper()
        if self.LEGAL_SUFFIX_PATTERN.search(upper):
            return False
        words = self.STREET_PATTERN.findall(upper)
        if not words:
            return False
        first_word = upper.split()[0].rstrip(".,")
        return (
            bool(re.search(r"\d", line))
            or len(words) >= 2
            or first_word in self.LEADING_STREET_WORDS
        )

    def is_likely_company(self, line: str) -> bool:
        """Строка похожа на название компании."""
        text = (line or "").strip()
        if not text or len(text) > COMPANY_LINE_MAX_LENGTH:
            return False
        upper = text.upper()
        if text.endswith(":") and "REF" not in upper:
            return False
        if "@" in text or self.LABEL_PATTERN.match(upper):
            return False
        if self.LEGAL_SUFFIX_PATTERN.search(upper):
            return True
        if any(company in upper for company in self.known_companies):
            return True
        if not self.COMPANY_PATTERN.match(text) or not re.search(r"[A-Z]{2}", text):
            return False
        if self.postcode_classifier.find(text) or self.temporal_parser.has_date_or_time(text):
            return False
        if self.looks_like_street(text):
            return False
        if self.gazetteer.is_country_name(text) or self.gazetteer.country_for_city(text):
            return False
        return True

    # ------------------------------------------------------------------
    # Сборка адреса
    # ------------------------------------------------------------------
    def resolve(
        self,
        lines: Sequence[str],
        start: int = 0,
        end: Optional[int] = None,
        initial: Optional[AddressResult] = None,
        stop_when: Optional[Callable[[str], bool]] = None,
        country_hint: Optional[str] = None,
    ) -> AddressResult:
        """
        Собирает адрес из строк [start, end).

        Args:
            lines: LineSequence
            start: Первая строка окна
            end: Конец окна (не включая)
            initial: Уже известные поля (например, компания из строки-маркера)
            stop_when: Предикат досрочного завершения окна
            country_hint: Страна, известная заранее

        Returns:
            AddressResult (очищенный)
        """
        end = len(lines) if end is None else min(end, len(lines))
        window: List[str] = []
        for i in range(max(start, 0), end):
            if stop_when and stop_when(lines[i]):
                break
            window.append(lines[i])

        hint = country_hint or self._window_country_hint(window)
        result = initial or AddressResult()
        street_strength = 1 if result.street_address else 0

        for line in window:
            parsed = self.parse_line(line, hint)
            if parsed is None:
                continue
            partial, strength = parsed

            if partial.street_address and result.street_address and strength >= 2 > street_strength:
                logger.trace(f"[AddressResolver] Улица заменена: '{result.street_address}' → '{partial.street_address}'")
                result = AddressResult(**{**result.to_dict(), "street_address": partial.street_address})
                street_strength = strength
            elif partial.street_address and not result.street_address:
                street_strength = strength

            result = result.merge(partial)

        result = self._infer_country(result)
        return self.sanitize(result)

    def parse_line(self, line: str, hint: Optional[str] = None) -> Optional[Tuple[AddressResult, int]]:
        """
        Применяет правила к одной строке.

        Returns:
            (частичный AddressResult, сила улицы) или None
        """
        if not line:
            return None
        upper = line.upper()

        if self.is_instruction_line(line):
            logger.trace(f"[AddressResolver] Инструкция пропущена: '{line[:60]}'")
            return None
        if self.is_non_address_line(line):
            return None

        if self.looks_like_street(line):
            return self._parse_street_line(line, hint), self.street_keyword_count(line)

        is_contact_line = bool(
            self.EMAIL_PATTERN.search(line) or self.VAT_PATTERN.search(upper) or self.CONTACT_PATTERN.search(line)
        )
        if not is_contact_line:
            postcode_line = self._parse_postcode_line(line, hint)
            if postcode_line:
                return postcode_line, 0

        if is_contact_line:
            return self._parse_contact_line(line), 0

        mention = self.gazetteer.find_country_mention(line)
        if mention:
            remainder = re.sub(r"[\s,.;:()\-]", "", upper.replace(mention[0], "", 1))
            if len(remainder) <= 3:
                return AddressResult(country=mention[1]), 0

        if self.is_likely_company(line):
            return AddressResult(company=line.strip()), 0

        return None

    def _parse_street_line(self, line: str, hint: Optional[str]) -> AddressResult:
        match = self.postcode_classifier.find(line, hint)
        if not match:
            return AddressResult(street_address=line.strip(" ,;"))

        before = line[:match.start].strip(" ,;-")
        after = line[match.end:].strip(" ,;-")
        segments = [s.strip() for s in before.split(",") if s.strip()]
        city = self.clean_city(after) if after else None
        if city is None and len(segments) > 1:
            city = self.clean_city(segments.pop())
        return AddressResult(
            street_address=", ".join(segments) or None,
            postal_code=match.postal_code,
            city=city,
            country=match.country,
        )

    def _parse_postcode_line(self, line: str, hint: Optional[str]) -> Optional[AddressResult]:
        match = self.postcode_classifier.find(line, hint)
        if not match:
            return None

        before = line[:match.start].strip(" ,;-")
        after = line[match.end:].strip(" ,;-")
        city = self.clean_city(after) if after else None
        street = None

        segments = [s.strip() for s in before.split(",") if s.strip()]
        # "F-75001": однобуквенный префикс страны не является городом
        segments = [s for s in segments if len(s) > 1]
        if city is None and segments:
            city = self.clean_city(segments.pop())
        if segments and self.looks_like_street(", ".join(segments)):
            street = ", ".join(segments)

        country = match.country
        if match.country == "FR" and city:
            # Город мог уточнить страну для 5-значного индекса
            country = self.postcode_classifier.resolve_five_digit(match.postal_code, hint=hint, city=city)

        logger.trace(f"[AddressResolver] Индекс {match.postal_code} ({country}), город {city}")
        return AddressResult(postal_code=match.postal_code, city=city, country=country, street_address=street)

    def _parse_contact_line(self, line: str) -> AddressResult:
        upper = line.upper()
        email_match = self.EMAIL_PATTERN.search(line)
        vat_match = self.VAT_PATTERN.search(upper)
        contact = None

        contact_match = self.CONTACT_PATTERN.search(line)
        if contact_match:
            value = self.CONTACT_CUT_PATTERN.split(contact_match.group(1))[0].strip(" ,;:-")
            if re.search(r"[A-Za-z]{2}", value):
                contact = value

        return AddressResult(
            email=email_match.group(0) if email_match else None,
            vat_code=vat_match.group(1) if vat_match else None,
            contact_person=contact,
        )

    def _window_country_hint(self, window: Sequence[str]) -> Optional[str]:
        for line in window:
            if self.is_instruction_line(line):
                continue
            country = self.gazetteer.find_country(line)
            if country:
                return country
        return None

    def _infer_country(self, result: AddressResult) -> AddressResult:
        """Страна по улице (язык ключевых слов), затем по городу."""
        if result.country:
            return result

        country = None
        if result.street_address:
            words = set(self.STREET_PATTERN.findall(result.street_address.upper()))
            if words & self.FR_STREET_WORDS:
                country = "FR"
            elif words & self.GB_STREET_WORDS:
                country = "GB"
            elif words & self.LT_STREET_WORDS:
                country = "LT"
        if country is None:
            country = self.gazetteer.country_for_city(result.city)

        if country is None:
            return result
        return AddressResult(**{**result.to_dict(), "country": country})

    # ------------------------------------------------------------------
    # Очистка
    # ------------------------------------------------------------------
    def clean_city(self, text: Optional[str]) -> Optional[str]:
        """
        Город из остатка строки после индекса.

        Удаляются упоминания страны и сегменты с регионами,
        схлопывается задвоение ("LONDON LONDON").
        """
        if not text:
            return None

        for segment in text.split(","):
            candidate = segment.strip()
            mention = self.gazetteer.find_country_mention(candidate)
            if mention:
                candidate = re.sub(re.escape(mention[0]), "", candidate, count=1, flags=re.IGNORECASE)
            candidate = re.sub(r"\(\s*[A-Z]{2}\s*\)", "", candidate)
            candidate = candidate.strip(" -;:.")
            if not candidate or self.REGION_PATTERN.search(candidate.upper()):
                continue
            return self._valid_city(self.collapse_doubled(candidate))

        return None

    @staticmethod
    def collapse_doubled(value: str) -> str:
        """'LONDON LONDON' → 'LONDON', 'LONDON, LONDON' → 'LONDON'."""
        parts = [p.strip() for p in value.split(",")]
        if len(parts) == 2 and parts[0].upper() == parts[1].upper():
            return parts[0]
        tokens = value.split()
        half = len(tokens) // 2
        if tokens and len(tokens) % 2 == 0 and [t.upper() for t in tokens[:half]] == [t.upper() for t in tokens[half:]]:
            return " ".join(tokens[:half])
        return value

    @staticmethod
    def _valid_city(value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        value = value.strip()
        if len(value) < 2 or not re.search(r"[^\W\d_]", value):
            return None
        return value

    def sanitize(self, result: AddressResult) -> AddressResult:
        """Trim, задвоенный город, мусорный город, невалидный индекс."""
        values = {}
        for name, value in result.to_dict().items():
            if isinstance(value, str):
                value = value.strip(" ,;")
            values[name] = value or None

        if values["city"]:
            values["city"] = self._valid_city(self.collapse_doubled(values["city"]))

        if values["postal_code"] and not self.postcode_classifier.is_postcode(values["postal_code"]):
            logger.trace(f"[AddressResolver] Невалидный индекс отброшен: {values['postal_code']}")
            values["postal_code"] = None

        return AddressResult(**values)
