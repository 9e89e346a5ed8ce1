"""
Unit-тесты для AmountParser.

ЦКП: Разделители тысяч и дробной части определяются по позиции.
"""

from decimal import Decimal

import pytest

from freight_parser.extraction.amount_parser import AmountParser


@pytest.fixture
def parser():
    return AmountParser()


class TestParse:
    """Разбор числоподобной подстроки."""

    @pytest.mark.parametrize("raw, expected", [
        ("1.475,00", Decimal("1475.00")),
        ("1,475.00", Decimal("1475.00")),
        ("1 475", Decimal("1475")),
        ("1,50", Decimal("1.50")),
        ("1,500", Decimal("1500")),
        ("1.250.000", Decimal("1250000")),
        ("850", Decimal("850")),
    ])
    def test_locale_disambiguation(self, parser, raw, expected):
        assert parser.parse(raw) == expected

    def test_non_numeric_returns_none(self, parser):
        assert parser.parse("abc") is None
        assert parser.parse("") is None
        assert parser.parse(None) is None


class TestFindMoney:
    """Сумма с явной валютой в строке."""

    def test_code_before_amount(self, parser):
        match = parser.find_money("Price: EUR 1000")
        assert match.amount == Decimal("1000")
        assert match.currency == "EUR"

    def test_amount_before_code(self, parser):
        match = parser.find_money("Total 1,475.00 GBP")
        assert match.amount == Decimal("1475.00")
        assert match.currency == "GBP"

    def test_symbol_before_amount(self, parser):
        match = parser.find_money("Rate € 1.250,50")
        assert match.amount == Decimal("1250.50")
        assert match.currency == "EUR"

    def test_amount_before_symbol(self, parser):
        match = parser.find_money("1 475 €")
        assert match.amount == Decimal("1475")
        assert match.currency == "EUR"

    def test_no_currency_no_match(self, parser):
        assert parser.find_money("10 PALLETS 1250.00") is None


class TestCurrencyAndAmounts:
    """Вспомогательные проверки."""

    def test_detect_currency_leftmost(self, parser):
        assert parser.detect_currency("All prices in GBP") == "GBP"
        assert parser.detect_currency("£ or EUR") == "GBP"
        assert parser.detect_currency("no currency") is None

    def test_find_amounts(self, parser):
        assert parser.find_amounts("Rate 1250.50 and 80") == [Decimal("1250.50"), Decimal("80")]

    def test_is_amount(self, parser):
        assert parser.is_amount("1.250,50")
        assert parser.is_amount("EUR")
        assert not parser.is_amount("2025")
