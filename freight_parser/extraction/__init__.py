"""
Общие примитивы извлечения, разделяемые всеми шаблонами перевозчиков.

- LineNormalizer: очистка строк
- AmountParser: суммы с учётом локали разделителей
- PostcodeClassifier + Gazetteer: индексы и страны
- TemporalWindowParser: даты и временные окна
- AddressResolver: сборка адреса из окна строк
- Candidate: ранжирование кандидатов по priority и номеру строки
"""

from .line_normalizer import LineNormalizer, LineSequence
from .amount_parser import AmountParser, MoneyMatch
from .gazetteer import Gazetteer
from .postcode_classifier import PostcodeClassifier, PostcodeMatch
from .temporal_parser import TemporalWindowParser
from .address_resolver import AddressResolver, AddressResult
from .candidates import Candidate, first_non_null, merge_first_non_null, pick_best, rank

__all__ = [
    "LineNormalizer",
    "LineSequence",
    "AmountParser",
    "MoneyMatch",
    "Gazetteer",
    "PostcodeClassifier",
    "PostcodeMatch",
    "TemporalWindowParser",
    "AddressResolver",
    "AddressResult",
    "Candidate",
    "first_non_null",
    "merge_first_non_null",
    "pick_best",
    "rank",
]
