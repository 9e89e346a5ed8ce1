"""
Ранжированные кандидаты для эвристик "выбери лучшее из нескольких".

Кандидат = (priority, value, source_index). Меньший priority важнее,
при равенстве побеждает более ранняя строка. Сортировка стабильная.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Iterable, List, Optional

from contracts.order_payload_dto import FieldSource


@dataclass(frozen=True)
class Candidate:
    """Один кандидат значения поля."""
    priority: int
    value: Any
    source_index: int
    source: FieldSource = FieldSource.EXPLICIT
    label: str = ""

    def sort_key(self) -> tuple:
        return (self.priority, self.source_index)

    def to_dict(self) -> dict:
        return {
            "priority": self.priority,
            "value": str(self.value),
            "source_index": self.source_index,
            "source": self.source.value,
            "label": self.label,
        }


def rank(candidates: Iterable[Candidate]) -> List[Candidate]:
    """Кандидаты по убыванию важности."""
    return sorted(candidates, key=Candidate.sort_key)


def pick_best(candidates: Iterable[Candidate]) -> Optional[Candidate]:
    ranked = rank(candidates)
    return ranked[0] if ranked else None


def first_non_null(*values: Any) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def merge_first_non_null(base: Any, other: Any) -> Any:
    """
    Слияние двух frozen dataclass: поле base сохраняется,
    пустые поля заполняются из other.
    """
    updates = {}
    for f in fields(base):
        if getattr(base, f.name) in (None, "") and getattr(other, f.name) not in (None, ""):
            updates[f.name] = getattr(other, f.name)
    return replace(base, **updates) if updates else base
