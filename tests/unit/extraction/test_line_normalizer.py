"""
Unit-тесты для LineNormalizer.

ЦКП: Кортеж чистых непустых строк в исходном порядке.
"""

import pytest

from freight_parser.extraction.line_normalizer import LineNormalizer


@pytest.fixture
def normalizer():
    return LineNormalizer()


class TestNormalize:
    """Очистка последовательности строк."""

    def test_drops_empty_and_none_lines(self, normalizer):
        result = normalizer.normalize(["  ACME  ", "", "   ", None, "PARIS"])
        assert result == ("ACME", "PARIS")

    def test_returns_tuple(self, normalizer):
        assert isinstance(normalizer.normalize(["A"]), tuple)

    def test_none_input_gives_empty_sequence(self, normalizer):
        assert normalizer.normalize(None) == ()
        assert normalizer.normalize([]) == ()

    def test_whitespace_collapsed(self, normalizer):
        assert normalizer.normalize_line("12\u00a0RUE   DE\tPARIS") == "12 RUE DE PARIS"

    def test_non_breaking_space_replaced(self, normalizer):
        assert normalizer.normalize(["  A\u00a0 B ", "", None, "8h00 - 12h30"]) == ("A B", "08:00 - 12:30")

    def test_zero_width_removed(self, normalizer):
        assert normalizer.normalize_line("FUSM\u200b2025061234") == "FUSM2025061234"


class TestInformalTime:
    """8h00 → 08:00."""

    def test_informal_time_rewritten(self, normalizer):
        assert normalizer.normalize_line("8h00 - 12H30") == "08:00 - 12:30"

    def test_invalid_informal_time_kept(self, normalizer):
        assert normalizer.normalize_line("25h99") == "25h99"
