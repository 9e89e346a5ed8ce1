"""
Unit-тесты для Stage 3: Customer.
"""

import pytest

from contracts.order_payload_dto import FieldSource
from freight_parser.stages.stage_3_customer import CustomerExtractor
from freight_parser.templates.config_loader import TemplateConfigLoader


@pytest.fixture
def extractor():
    return CustomerExtractor()


class TestGenericCustomer:
    """Заказчик по строке с юридическим суффиксом."""

    def test_full_address(self, extractor):
        config = TemplateConfigLoader().load("generic")
        result = extractor.process(["ACME LOGISTICS LTD", "1 HIGH STREET", "LEEDS LS1 4AP"], config)
        details = result.customer.details
        assert result.header_index == 0
        assert result.source == FieldSource.EXPLICIT
        assert details.company == "ACME LOGISTICS LTD"
        assert details.street_address == "1 HIGH STREET"
        assert details.city == "LEEDS"
        assert details.postal_code == "LS1 4AP"
        assert details.country == "GB"

    def test_no_header_gives_placeholder(self, extractor):
        config = TemplateConfigLoader().load("generic")
        result = extractor.process(["hello world"], config)
        assert result.header_index == -1
        assert result.source == FieldSource.PLACEHOLDER
        assert result.customer.details.is_empty()
        assert result.customer.side == "none"


class TestTemplateDefaults:
    """Реквизиты по умолчанию из шаблона."""

    def test_ziegler_defaults_and_comment(self, extractor):
        config = TemplateConfigLoader().load("ziegler")
        lines = [
            "ZIEGLER UK LTD",
            "BOOKING INSTRUCTION",
            "PLEASE QUOTE OUR REFERENCE NUMBER ON ALL INVOICES",
        ]
        details = extractor.process(lines, config).customer.details
        assert details.company == "ZIEGLER UK LTD"
        assert details.city == "STANFORD LE HOPE"
        assert details.postal_code == "SS17 9FJ"
        assert details.country == "GB"
        assert details.comment == "Please quote our reference on invoice."
