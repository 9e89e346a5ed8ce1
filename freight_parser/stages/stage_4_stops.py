"""
Stage 4: Stops

ЦКП: Места погрузки (loading) и выгрузки (delivery).

Входные данные: LineSequence, TemplateConfig
Выходные данные: StopsResult

Автомат для каждой роли:
    SCANNING → SECTION_FOUND → FIELD_COLLECTION → EMIT

- SCANNING: ищем строку-маркер роли (префикс или подстрока, по шаблону)
- SECTION_FOUND: компания из остатка строки-маркера
  ("Collection ACME FACTORY REF" → "ACME FACTORY")
- FIELD_COLLECTION: окно из N строк, AddressResolver + TemporalWindowParser.
  Окно закрывается на следующем маркере, строке с ценой или строке-терминаторе
- EMIT: Stop. В strict режиме остановка без компании и без времени отбрасывается

Две стратегии поиска:
1. По маркерам (priority 0)
2. Эвристика, только если маркеры не дали ни одной остановки:
   строка-компания, за которой идут адресные строки
   (allow-list компаний → priority 1, структура → priority 2)

Затем дедупликация (компания без LTD/C/O + индекс + время) и лимит на роль.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple
from loguru import logger

from contracts.order_payload_dto import Address, FieldSource, Stop, TimeWindow

from ..extraction.address_resolver import AddressResolver, AddressResult
from ..extraction.amount_parser import AmountParser
from ..extraction.candidates import Candidate, rank
from ..extraction.temporal_parser import TemporalWindowParser
from ..templates.config_loader import TemplateConfig


LOADING = "loading"
DELIVERY = "delivery"

MARKER_PRIORITY = 0
KNOWN_COMPANY_PRIORITY = 1
STRUCTURAL_PRIORITY = 2


@dataclass(frozen=True)
class StopCandidate:
    """Найденная остановка до дедупликации."""
    role: Optional[str]
    stop: Stop
    line_index: int
    priority: int
    source: FieldSource = FieldSource.EXPLICIT

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "line_index": self.line_index,
            "priority": self.priority,
            "source": self.source.value,
            "stop": self.stop.model_dump(mode="json", exclude_none=True),
        }


@dataclass
class StopsResult:
    """
    Результат Stage 4: Stops.

    ЦКП: Списки остановок по ролям.
    """
    loading: List[Stop] = field(default_factory=list)
    delivery: List[Stop] = field(default_factory=list)
    strategy: str = "none"            # markers | heuristic | none
    candidates_found: int = 0

    @property
    def source(self) -> FieldSource:
        if self.strategy == "markers":
            return FieldSource.EXPLICIT
        if self.strategy == "heuristic":
            return FieldSource.HEURISTIC
        return FieldSource.PLACEHOLDER

    def to_dict(self) -> dict:
        return {
            "loading": [s.model_dump(mode="json", exclude_none=True) for s in self.loading],
            "delivery": [s.model_dump(mode="json", exclude_none=True) for s in self.delivery],
            "strategy": self.strategy,
            "candidates_found": self.candidates_found,
        }


class StopExtractor:
    """
    Stage 4: Stops.

    ЦКП: Дедуплицированные остановки по ролям.
    """

    # Остаток строки-маркера длиннее - это предложение, а не заголовок секции
    MAX_MARKER_REMAINDER_WORDS = 8

    FILLER_PATTERN = re.compile(
        r"^(?:(?:PLACE|POINT|ADDRESS|ADDR|DETAILS|LOCATION|SITE|DATE|TIME|HOURS|ON|AT|FROM|TO)\b\.?\s*)+[:\-]?\s*",
        re.IGNORECASE,
    )
    LEGAL_NOISE_PATTERN = re.compile(r"(?<![A-Z])(?:LTD|LIMITED|C/O|CO)\.?(?![A-Z])")

    def __init__(
        self,
        resolver: Optional[AddressResolver] = None,
        temporal_parser: Optional[TemporalWindowParser] = None,
        amount_parser: Optional[AmountParser] = None,
    ):
        """
        Args:
            resolver: AddressResolver (по умолчанию создаётся из конфига шаблона)
            temporal_parser: Парсер дат/времени
            amount_parser: Парсер сумм (для строк-цен, закрывающих секцию)
        """
        self._resolver = resolver
        self._resolvers: Dict[str, AddressResolver] = {}
        self.temporal_parser = temporal_parser or TemporalWindowParser()
        self.amount_parser = amount_parser or AmountParser()

    def _resolver_for(self, config: TemplateConfig) -> AddressResolver:
        if self._resolver is not None:
            return self._resolver
        if config.template not in self._resolvers:
            self._resolvers[config.template] = AddressResolver.from_config(
                config,
                amount_parser=self.amount_parser,
                temporal_parser=self.temporal_parser,
            )
        return self._resolvers[config.template]

    def process(
        self,
        lines: Sequence[str],
        config: TemplateConfig,
        exclude_indices: Sequence[int] = (),
    ) -> StopsResult:
        """
        Args:
            lines: LineSequence
            config: Конфигурация шаблона
            exclude_indices: Строки, которые не могут быть остановкой (шапка заказчика)

        Returns:
            StopsResult
        """
        resolver = self._resolver_for(config)

        candidates = self._marker_pass(lines, config, resolver)
        strategy = "markers"
        if not candidates and config.stops.heuristic_fallback:
            logger.debug("[Stage 4: Stops] Маркеры не дали остановок → эвристика")
            candidates = self._heuristic_pass(lines, config, resolver, exclude_indices)
            strategy = "heuristic"

        if not candidates:
            logger.warning("[Stage 4: Stops] Остановки не найдены")
            return StopsResult()

        result = StopsResult(
            loading=self._select(candidates, LOADING, config.stops.max_stops),
            delivery=self._select(candidates, DELIVERY, config.stops.max_stops),
            strategy=strategy,
            candidates_found=len(candidates),
        )
        logger.info(
            f"[Stage 4: Stops] {strategy}: loading={len(result.loading)}, "
            f"delivery={len(result.delivery)} (кандидатов {len(candidates)})"
        )
        return result

    # ------------------------------------------------------------------
    # SCANNING
    # ------------------------------------------------------------------
    def marker_role(
        self,
        line: str,
        config: TemplateConfig,
        resolver: AddressResolver,
    ) -> Optional[Tuple[str, str]]:
        """(роль, остаток строки после маркера) или None."""
        if resolver.is_instruction_line(line):
            return None

        upper = line.upper()
        for role, markers in ((LOADING, config.stops.loading_markers), (DELIVERY, config.stops.delivery_markers)):
            for marker in sorted(markers, key=len, reverse=True):
                escaped = re.escape(marker.upper())
                if config.stops.marker_mode == "prefix":
                    match = re.match(escaped + r"(?![A-Z])", upper)
                else:
                    match = re.search(r"(?<![A-Z])" + escaped + r"(?![A-Z])", upper)
                if not match:
                    continue
                remainder = line[match.end():].strip(" :-–")
                if len(remainder.split()) > self.MAX_MARKER_REMAINDER_WORDS:
                    continue
                return role, remainder
        return None

    def _is_section_break(self, line: str, config: TemplateConfig, resolver: AddressResolver) -> bool:
        if self.marker_role(line, config, resolver):
            return True
        upper = line.upper()
        if any(marker.upper() in upper for marker in config.stops.section_end_markers):
            return True
        return self.amount_parser.find_money(line) is not None

    def _is_continuation(self, line: str, role: str, config: TemplateConfig, resolver: AddressResolver) -> bool:
        """'LOADING DATE: ...' внутри открытой секции той же роли."""
        found = self.marker_role(line, config, resolver)
        return bool(found and found[0] == role and self.FILLER_PATTERN.match(found[1]))

    # ------------------------------------------------------------------
    # Стратегия 1: маркеры
    # ------------------------------------------------------------------
    def _marker_pass(
        self,
        lines: Sequence[str],
        config: TemplateConfig,
        resolver: AddressResolver,
    ) -> List[StopCandidate]:
        candidates = []
        i = 0
        while i < len(lines):
            found = self.marker_role(lines[i], config, resolver)
            if not found:
                i += 1
                continue

            role, remainder = found
            company = self._company_from_remainder(remainder, config, resolver)
            candidate, section_end = self._parse_section(lines, i, role, company, config, resolver)
            if candidate:
                candidates.append(candidate)
            i = max(section_end, i + 1)

        return candidates

    def _company_from_remainder(
        self,
        remainder: str,
        config: TemplateConfig,
        resolver: AddressResolver,
    ) -> Optional[str]:
        text = self.FILLER_PATTERN.sub("", remainder).strip(" :-–")
        for suffix in config.stops.company_strip_suffixes:
            text = re.sub(r"\s+" + re.escape(suffix) + r"\b\.?$", "", text, flags=re.IGNORECASE)
        text = text.strip(" ,;:-")

        if not text or text.endswith(":") or not re.search(r"[A-Za-z]{2}", text):
            return None
        if self.temporal_parser.has_date_or_time(text):
            return None
        if resolver.postcode_classifier.find(text) or resolver.looks_like_street(text):
            return None
        return text

    def _parse_section(
        self,
        lines: Sequence[str],
        index: int,
        role: str,
        company: Optional[str],
        config: TemplateConfig,
        resolver: AddressResolver,
    ) -> Tuple[Optional[StopCandidate], int]:
        """
        FIELD_COLLECTION + EMIT для секции, открытой в строке index.

        Returns:
            (кандидат или None, индекс строки, закрывшей секцию)
        """
        window_end = min(index + 1 + config.stops.window, len(lines))
        section_end = window_end
        for j in range(index + 1, window_end):
            if self._is_continuation(lines[j], role, config, resolver):
                continue
            if self._is_section_break(lines[j], config, resolver):
                section_end = j
                break

        body = [
            line for line in lines[index + 1:section_end]
            if not self._is_continuation(line, role, config, resolver)
        ]
        address = resolver.resolve(body, initial=AddressResult(company=company))
        time = self.temporal_parser.find_window(lines, index, section_end)

        notes = self._notes(lines[index:section_end], config, address.company)
        if notes:
            address = AddressResult(**{**address.to_dict(), "comment": notes})

        stop = self._emit(address, time, config.stops.strict)
        if stop is None:
            logger.debug(f"[Stage 4: Stops] Секция {role} в строке {index} отброшена (нет компании и времени)")
            return None, section_end

        logger.debug(f"[Stage 4: Stops] {role} в строке {index}: {address.company} {address.postal_code}")
        return StopCandidate(role, stop, index, MARKER_PRIORITY, FieldSource.EXPLICIT), section_end

    @staticmethod
    def _emit(address: AddressResult, time: Optional[TimeWindow], strict: bool) -> Optional[Stop]:
        if strict and not address.company and time is None:
            return None
        if address.is_empty() and time is None:
            return None
        return Stop(company_address=address.to_address(), time=time)

    @staticmethod
    def _notes(section: Sequence[str], config: TemplateConfig, company: Optional[str]) -> Optional[str]:
        notes = []
        for line in section:
            for rule in config.stops.note_rules:
                note = rule.apply(line, company=company or "")
                if note and note not in notes:
                    notes.append(note)
        return "; ".join(notes) or None

    # ------------------------------------------------------------------
    # Стратегия 2: эвристика
    # ------------------------------------------------------------------
    def _heuristic_pass(
        self,
        lines: Sequence[str],
        config: TemplateConfig,
        resolver: AddressResolver,
        exclude_indices: Sequence[int],
    ) -> List[StopCandidate]:
        found = []
        known = [c.upper() for c in config.known_companies]
        i = 0
        while i < len(lines):
            line = lines[i]
            if i in exclude_indices or not resolver.is_likely_company(line) or not self._has_address_after(lines, i, resolver):
                i += 1
                continue

            end = self._heuristic_block_end(lines, i, config.stops.heuristic_window, resolver)
            address = resolver.resolve(lines, i + 1, end, initial=AddressResult(company=line.strip()))
            time = self.temporal_parser.find_window(lines, i, end)
            stop = self._emit(address, time, strict=False)
            if stop:
                is_known = any(company in line.upper() for company in known)
                priority = KNOWN_COMPANY_PRIORITY if is_known else STRUCTURAL_PRIORITY
                found.append(StopCandidate(None, stop, i, priority, FieldSource.HEURISTIC))
                logger.debug(f"[Stage 4: Stops] Эвристика: '{line}' в строке {i} (priority={priority})")
            i = max(end, i + 1)

        if not found:
            return []

        # Первый по документу → loading, последний → delivery
        ranked = rank(Candidate(c.priority, c, c.line_index) for c in found)
        chosen = sorted((c.value for c in ranked[:2]), key=lambda c: c.line_index)
        assigned = [replace(chosen[0], role=LOADING)]
        if len(chosen) > 1:
            assigned.append(replace(chosen[-1], role=DELIVERY))
        return assigned

    def _heuristic_block_end(
        self,
        lines: Sequence[str],
        index: int,
        window: int,
        resolver: AddressResolver,
    ) -> int:
        """Конец окна строки-компании: размер окна или следующий блок компании."""
        end = min(index + window, len(lines))
        for j in range(index + 1, end):
            if resolver.is_likely_company(lines[j]) and self._has_address_after(lines, j, resolver):
                return j
        return end

    @staticmethod
    def _has_address_after(lines: Sequence[str], index: int, resolver: AddressResolver) -> bool:
        for line in lines[index + 1:index + 3]:
            if resolver.looks_like_street(line) or resolver.postcode_classifier.find(line):
                return True
        return False

    # ------------------------------------------------------------------
    # Дедупликация и выбор
    # ------------------------------------------------------------------
    def normalize_company(self, company: Optional[str]) -> str:
        """Компания без LTD / LIMITED / CO / C/O и пунктуации."""
        if not company:
            return ""
        text = self.LEGAL_NOISE_PATTERN.sub(" ", company.upper())
        text = re.sub(r"[^\w\s]", " ", text)
        return re.sub(r"\s+", " ", text).strip().lower()

    def dedup_key(self, stop: Stop) -> tuple:
        address = stop.company_address
        return (
            self.normalize_company(address.company),
            (address.postal_code or "").replace(" ", "").lower(),
            stop.time.datetime_from.isoformat() if stop.time else "",
            stop.time.datetime_to.isoformat() if stop.time and stop.time.datetime_to else "",
        )

    def deduplicate(self, candidates: Sequence[StopCandidate]) -> List[StopCandidate]:
        """
        Схлопывает остановки с одинаковым ключом.

        Первая остановка сохраняется, пустые поля дополняются из дубликата.
        """
        kept: List[StopCandidate] = []
        positions: Dict[tuple, int] = {}

        for candidate in candidates:
            key = (candidate.role,) + self.dedup_key(candidate.stop)
            if key not in positions:
                positions[key] = len(kept)
                kept.append(candidate)
                continue

            position = positions[key]
            logger.debug(f"[Stage 4: Stops] Дубликат в строке {candidate.line_index} схлопнут")
            kept[position] = replace(kept[position], stop=self._merge_stops(kept[position].stop, candidate.stop))

        return kept

    @staticmethod
    def _merge_stops(first: Stop, second: Stop) -> Stop:
        merged = AddressResult(**first.company_address.model_dump()).merge(
            AddressResult(**second.company_address.model_dump())
        )
        return Stop(company_address=Address(**merged.to_dict()), time=first.time or second.time)

    def _select(self, candidates: Sequence[StopCandidate], role: str, max_stops: int) -> List[Stop]:
        """Дедупликация → ранжирование → лимит → порядок документа."""
        role_candidates = self.deduplicate([c for c in candidates if c.role == role])
        ranked = rank(Candidate(c.priority, c, c.line_index) for c in role_candidates)
        chosen = sorted((c.value for c in ranked[:max_stops]), key=lambda c: c.line_index)
        return [c.stop for c in chosen]
