"""
Unit-тесты для PostcodeClassifier.

ЦКП: (индекс, страна) по грамматикам GB / FR / LT.
"""

import pytest

from freight_parser.extraction.postcode_classifier import PostcodeClassifier


@pytest.fixture
def classifier():
    return PostcodeClassifier()


class TestClassify:
    """Токен целиком - индекс."""

    @pytest.mark.parametrize("token, country", [
        ("SS17 9FJ", "GB"),
        ("SW1A 1AA", "GB"),
        ("NN11 8RD", "GB"),
        ("LT-01100", "LT"),
        ("75001", "FR"),
    ])
    def test_grammar(self, classifier, token, country):
        assert classifier.classify(token) == country

    def test_not_a_postcode(self, classifier):
        assert classifier.classify("ABC") is None
        assert classifier.classify("1234") is None
        assert classifier.classify(None) is None


class TestFiveDigitResolution:
    """Неоднозначный 5-значный индекс: FR или LT."""

    def test_hint_wins(self, classifier):
        assert classifier.classify("44280", hint="LT") == "LT"

    def test_city_gazetteer(self, classifier):
        assert classifier.classify("44280", city="KAUNAS") == "LT"
        assert classifier.classify("59140", city="DUNKERQUE") == "FR"

    def test_prefix_table(self, classifier):
        assert classifier.classify("01100") == "LT"

    def test_default_is_fr(self, classifier):
        assert classifier.resolve_five_digit("38070") == "FR"


class TestFind:
    """Первый индекс в строке."""

    def test_five_digit_with_city_after(self, classifier):
        match = classifier.find("59140 DUNKERQUE")
        assert match.postal_code == "59140"
        assert match.country == "FR"

    def test_lt_prefix(self, classifier):
        match = classifier.find("LT-44280 KAUNAS")
        assert match.postal_code == "LT-44280"
        assert match.country == "LT"

    def test_gb_inside_line(self, classifier):
        match = classifier.find("STANFORD LE HOPE SS17 9FJ")
        assert match.postal_code == "SS17 9FJ"
        assert match.country == "GB"

    def test_time_is_not_postcode(self, classifier):
        assert classifier.find("08:00 - 12:00") is None

    def test_normalize_gb(self, classifier):
        assert classifier.normalize("ss179fj") == "SS17 9FJ"
