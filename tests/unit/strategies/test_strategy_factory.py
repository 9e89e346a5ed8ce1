"""
Unit-тесты для StrategyFactory и опознания шаблонов.

ЦКП: Правильная стратегия перевозчика по имени или по содержимому.
"""

import pytest

from freight_parser.domain.exceptions import TemplateNotFoundError
from freight_parser.strategies import (
    GenericStrategy,
    StrategyFactory,
    TemplateStrategy,
    TransallianceStrategy,
    ZieglerStrategy,
)


TRANSALLIANCE_LINES = [
    "TRANSALLIANCE",
    "CHARTERING CONFIRMATION",
    "REF.: FUSM2025061234",
    "Agreed rate: EUR 1,475.00",
    "LOADING",
    "DELIVERY",
]

ZIEGLER_LINES = [
    "ZIEGLER UK LTD",
    "BOOKING INSTRUCTION",
    "Ziegler Ref 1234567",
]

GENERIC_LINES = ["ACME LOGISTICS LTD", "Rate € 1.250,50"]


class UnknownCarrierStrategy(TemplateStrategy):
    TEMPLATE = "no_such_carrier"

    @property
    def name(self) -> str:
        return "Unknown carrier"


@pytest.fixture
def factory():
    return StrategyFactory()


class TestGet:
    """Выбор по имени шаблона."""

    def test_known_templates(self, factory):
        assert isinstance(factory.get("transalliance"), TransallianceStrategy)
        assert isinstance(factory.get(" Ziegler "), ZieglerStrategy)

    def test_none_and_generic(self, factory):
        assert isinstance(factory.get(None), GenericStrategy)
        assert isinstance(factory.get("generic"), GenericStrategy)

    def test_unknown_falls_back_to_generic(self, factory):
        assert isinstance(factory.get("nonexistent"), GenericStrategy)

    def test_lines_without_name_are_detected(self, factory):
        assert factory.get(lines=ZIEGLER_LINES).name == "Ziegler"
        assert factory.get(lines=GENERIC_LINES).name == "Generic"

    def test_name_wins_over_document_content(self, factory):
        assert isinstance(factory.get("transalliance", lines=ZIEGLER_LINES), TransallianceStrategy)

    def test_available(self, factory):
        assert factory.available() == ["transalliance", "ziegler", "generic"]


class TestDetect:
    """Опознание по содержимому."""

    def test_transalliance(self, factory):
        assert factory.detect(TRANSALLIANCE_LINES).name == "Transalliance"

    def test_ziegler(self, factory):
        assert factory.detect(ZIEGLER_LINES).name == "Ziegler"

    def test_unknown_document(self, factory):
        assert factory.detect(GENERIC_LINES).name == "Generic"

    def test_empty_document(self, factory):
        assert factory.detect([]).name == "Generic"


class TestMatchesTemplate:
    """Правила detection отдельных стратегий."""

    def test_ziegler_requires_company_marker(self):
        assert not ZieglerStrategy().matches_template(["BOOKING INSTRUCTION", "Ziegler Ref 1234567"])

    def test_transalliance_needs_two_hard_markers(self):
        assert not TransallianceStrategy().matches_template(["TRANSALLIANCE", "LOADING", "DELIVERY"])

    def test_marker_followed_by_digits(self):
        strategy = TransallianceStrategy()
        assert strategy._contains("REF FUSM2024061234", "FUSM")
        assert not strategy._contains("FUSMX", "FUSM")

    def test_generic_always_matches(self):
        assert GenericStrategy().matches_template([])

    def test_soft_score(self):
        strategy = TransallianceStrategy()
        groups = [["ORDER", "REF"], ["EUR"]]
        assert strategy.soft_score(["ORDER REF EUR", "nothing"], groups) == 2


class TestRegister:
    """Регистрация новой стратегии."""

    def test_register_and_get(self, factory):
        strategy = ZieglerStrategy()
        factory.register(strategy, "Ziegler2")
        try:
            assert factory.get("ziegler2") is strategy
        finally:
            StrategyFactory.STRATEGY_MAP.pop("ziegler2", None)

    def test_default_key_is_template(self, factory):
        original = StrategyFactory.STRATEGY_MAP["ziegler"]
        strategy = ZieglerStrategy()
        factory.register(strategy)
        try:
            assert factory.get("ziegler") is strategy
        finally:
            StrategyFactory.STRATEGY_MAP["ziegler"] = original

    def test_missing_template_not_registered(self, factory):
        with pytest.raises(TemplateNotFoundError):
            factory.register(UnknownCarrierStrategy())
        assert "no_such_carrier" not in StrategyFactory.STRATEGY_MAP


class TestExtract:
    """Стратегия как фасад пайплайна."""

    def test_extract_returns_payload(self):
        payload = ZieglerStrategy().extract(ZIEGLER_LINES, "booking.pdf")
        assert payload.order_reference == "1234567"
        assert payload.attachment_filenames == ["booking.pdf"]
        assert payload.customer.details.company == "ZIEGLER UK LTD"
