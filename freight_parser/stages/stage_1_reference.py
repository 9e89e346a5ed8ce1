"""
Stage 1: Reference

ЦКП: Номер заказа / букинга (order_reference).

Входные данные: LineSequence, TemplateConfig, имя файла вложения
Выходные данные: ReferenceResult

Приоритеты кандидатов (меньше = важнее):
1. Метка перевозчика (Ziegler Ref, REF.:, FUSM...)
2. Our Ref / Reference:
3. Ref
4. Order / Booking
5. Паттерн имени файла шаблона, затем самый длинный правдоподобный токен
6. Стем имени файла

Все кандидаты документа собираются вместе с номером строки,
побеждает наименьший priority, при равенстве - более ранняя строка.
Если кандидатов нет - reference=None, заглушку ставит Stage 7.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence
from loguru import logger

from config.settings import REFERENCE_MAX_LENGTH, REFERENCE_MIN_LENGTH
from contracts.order_payload_dto import FieldSource

from ..extraction.amount_parser import AmountParser
from ..extraction.candidates import Candidate, pick_best, rank
from ..extraction.postcode_classifier import PostcodeClassifier
from ..extraction.temporal_parser import TemporalWindowParser
from ..templates.config_loader import TemplateConfig


POSITIONAL_PRIORITY = 5
FILENAME_STEM_PRIORITY = 6


@dataclass
class ReferenceResult:
    """
    Результат Stage 1: Reference.

    ЦКП: Лучший кандидат номера заказа.
    """
    reference: Optional[str] = None
    source: FieldSource = FieldSource.PLACEHOLDER
    matched_in_line: int = -1
    candidates: List[Candidate] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "reference": self.reference,
            "source": self.source.value,
            "matched_in_line": self.matched_in_line,
            "candidates": [c.to_dict() for c in self.candidates],
        }


class ReferenceResolver:
    """
    Stage 1: Reference.

    ЦКП: Номер заказа по ранжированным кандидатам.
    """

    TOKEN_PATTERN = re.compile(r"[A-Z0-9/\-]+")

    def __init__(
        self,
        amount_parser: Optional[AmountParser] = None,
        temporal_parser: Optional[TemporalWindowParser] = None,
        postcode_classifier: Optional[PostcodeClassifier] = None,
    ):
        self.amount_parser = amount_parser or AmountParser()
        self.temporal_parser = temporal_parser or TemporalWindowParser()
        self.postcode_classifier = postcode_classifier or PostcodeClassifier()

    def process(
        self,
        lines: Sequence[str],
        config: TemplateConfig,
        attachment_filename: Optional[str] = None,
    ) -> ReferenceResult:
        """
        Args:
            lines: LineSequence
            config: Конфигурация шаблона
            attachment_filename: Имя исходного PDF (для фолбэка)

        Returns:
            ReferenceResult
        """
        candidates = self._labelled_candidates(lines, config)
        candidates.extend(self._fallback_candidates(lines, config, attachment_filename))

        best = pick_best(candidates)
        if best is None:
            logger.warning("[Stage 1: Reference] Номер заказа не найден")
            return ReferenceResult()

        logger.info(
            f"[Stage 1: Reference] Выбран '{best.value}' "
            f"(priority={best.priority}, line={best.source_index}, {best.label})"
        )
        return ReferenceResult(
            reference=best.value,
            source=best.source,
            matched_in_line=best.source_index,
            candidates=rank(candidates),
        )

    def _labelled_candidates(self, lines: Sequence[str], config: TemplateConfig) -> List[Candidate]:
        candidates = []
        compiled = [(p, re.compile(p.pattern, re.IGNORECASE)) for p in config.reference_patterns]

        for i, line in enumerate(lines):
            for ref_pattern, regex in compiled:
                for match in regex.finditer(line):
                    value = self._clean_value(match.group(ref_pattern.group), ref_pattern.strip)
                    if not value:
                        continue
                    logger.debug(f"[Stage 1: Reference] Кандидат '{value}' p={ref_pattern.priority} в строке {i}")
                    candidates.append(Candidate(
                        priority=ref_pattern.priority,
                        value=value,
                        source_index=i,
                        source=FieldSource.EXPLICIT,
                        label=ref_pattern.pattern,
                    ))
        return candidates

    def _fallback_candidates(
        self,
        lines: Sequence[str],
        config: TemplateConfig,
        attachment_filename: Optional[str],
    ) -> List[Candidate]:
        candidates = []

        if attachment_filename and config.filename_reference_pattern:
            match = re.search(config.filename_reference_pattern, attachment_filename, re.IGNORECASE)
            if match:
                candidates.append(Candidate(
                    POSITIONAL_PRIORITY, match.group(0).upper(), -1, FieldSource.FALLBACK, "filename_pattern"
                ))

        positional = self._positional_candidate(lines)
        if positional:
            candidates.append(positional)

        if attachment_filename:
            stem = re.sub(r"[^A-Z0-9\-/]", "", Path(attachment_filename).stem.upper())
            if stem:
                candidates.append(Candidate(FILENAME_STEM_PRIORITY, stem, -1, FieldSource.FALLBACK, "filename_stem"))

        return candidates

    def _positional_candidate(self, lines: Sequence[str]) -> Optional[Candidate]:
        """Самый длинный правдоподобный токен (с цифрой, не дата/сумма/индекс)."""
        best: Optional[Candidate] = None

        for i, line in enumerate(lines):
            for raw in line.upper().split():
                token = raw.strip(".,;:()[]")
                if not (REFERENCE_MIN_LENGTH <= len(token) <= REFERENCE_MAX_LENGTH):
                    continue
                if not self.TOKEN_PATTERN.fullmatch(token) or not re.search(r"\d", token):
                    continue
                if self._is_noise(token):
                    continue
                if best is None or len(token) > len(best.value):
                    best = Candidate(POSITIONAL_PRIORITY, token, i, FieldSource.HEURISTIC, "positional")

        return best

    def _clean_value(self, value: Optional[str], strip: str = "") -> Optional[str]:
        if not value:
            return None
        value = value.strip().upper().rstrip("-/." + strip)
        if len(value) < 3 or not re.search(r"\d", value):
            return None
        if self._is_noise(value, check_postcode=False):
            return None
        return value

    def _is_noise(self, token: str, check_postcode: bool = True) -> bool:
        """Дата, время, сумма или индекс - не номер заказа."""
        if self.temporal_parser.parse_date(token):
            return True
        if self.temporal_parser.parse_time_range(token)[0] is not None:
            return True
        if self.amount_parser.is_amount(token):
            return True
        return check_postcode and self.postcode_classifier.is_postcode(token)
