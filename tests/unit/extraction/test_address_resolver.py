"""
Unit-тесты для AddressResolver.

ЦКП: Адрес из окна строк (компания, улица, индекс, город, страна, контакты).
"""

from dataclasses import replace

import pytest

from freight_parser.extraction.address_resolver import AddressResolver, AddressResult
from freight_parser.templates.config_loader import TemplateConfigLoader


@pytest.fixture
def generic_config():
    return TemplateConfigLoader().load("generic")


@pytest.fixture
def resolver(generic_config):
    return AddressResolver.from_config(generic_config)


class TestResolveBlocks:
    """Сборка адреса из блока строк."""

    def test_street_line_with_embedded_postcode(self, resolver):
        result = resolver.resolve(["UNIT 5 MILL ROAD, DAVENTRY NN11 8RD"])
        assert result.street_address == "UNIT 5 MILL ROAD"
        assert result.city == "DAVENTRY"
        assert result.postal_code == "NN11 8RD"
        assert result.country == "GB"

    def test_lithuanian_block(self, resolver):
        result = resolver.resolve(["ACME UAB", "Savanoriu pr. 12", "LT-44280 Kaunas"])
        assert result.company == "ACME UAB"
        assert result.street_address == "Savanoriu pr. 12"
        assert result.postal_code == "LT-44280"
        assert result.country == "LT"

    def test_stronger_street_replaces_weaker(self, resolver):
        result = resolver.resolve(["MAIN ST 5", "LONDON GATEWAY LOGISTICS PARK"])
        assert result.street_address == "LONDON GATEWAY LOGISTICS PARK"

    def test_contact_block(self, resolver):
        result = resolver.resolve([
            "ACME SAS",
            "Contact: Jean Dupont Tel +33 1 23",
            "jean@acme.fr",
            "TVA FR12345678901",
        ])
        assert result.company == "ACME SAS"
        assert result.contact_person == "Jean Dupont"
        assert result.email == "jean@acme.fr"
        assert result.vat_code == "FR12345678901"

    def test_five_digit_postcode_resolved_by_city(self, resolver):
        result = resolver.resolve(["44280 KAUNAS"])
        assert result.country == "LT"

    def test_country_line_sets_country(self, resolver):
        result = resolver.resolve(["12 GEDIMINO PR.", "01103 VILNIUS", "LITHUANIA"])
        assert result.country == "LT"

    def test_initial_fields_kept(self, resolver):
        result = resolver.resolve(["OTHER LTD", "75001 PARIS"], initial=AddressResult(company="ACME LTD"))
        assert result.company == "ACME LTD"
        assert result.city == "PARIS"

    def test_stop_when_ends_window(self, resolver):
        result = resolver.resolve(
            ["ACME LTD", "DELIVERY", "75001 PARIS"],
            stop_when=lambda line: line == "DELIVERY",
        )
        assert result.company == "ACME LTD"
        assert result.postal_code is None


class TestLineClassifiers:
    """Классификация отдельных строк."""

    def test_bullet_is_instruction(self, resolver):
        assert resolver.is_instruction_line("- PAYMENT terms 30 days")

    def test_keyword_is_instruction(self, resolver):
        assert resolver.is_instruction_line("SIGNED CMR MANDATORY")

    def test_cargo_line_is_not_address(self, resolver):
        assert resolver.is_non_address_line("10 PALLETS")

    def test_date_line_is_not_address(self, resolver):
        assert resolver.is_non_address_line("27/06/2025 08:00")

    def test_company_with_legal_suffix(self, resolver):
        assert resolver.is_likely_company("BALTIC FREIGHT UAB")

    def test_city_is_not_company(self, resolver):
        assert not resolver.is_likely_company("PARIS")


class TestCleanCity:
    """Очистка города."""

    def test_doubled_city_collapsed(self, resolver):
        assert resolver.clean_city("LONDON LONDON") == "LONDON"

    def test_region_segment_skipped(self, resolver):
        assert resolver.clean_city("VILNIUS APSKRITIS, VILNIUS") == "VILNIUS"

    def test_country_mention_removed(self, resolver):
        assert resolver.clean_city("PARIS FRANCE") == "PARIS"

    def test_numeric_city_rejected(self, resolver):
        assert resolver.clean_city("123") is None


class TestTemplateWordLists:
    """Списки инструкций и не-адресных слов берутся из шаблона."""

    def test_without_template_lists_keyword_is_not_instruction(self):
        assert not AddressResolver().is_instruction_line("SIGNED CMR MANDATORY")
        assert not AddressResolver().is_non_address_line("EPAL EXCHANGE")

    def test_template_lists_used(self, generic_config):
        assert "SIGNED CMR" in generic_config.instruction_keywords
        assert "PALLETS" in generic_config.non_address_hints

    def test_custom_template_keyword(self, generic_config):
        custom = replace(generic_config, instruction_keywords=["HAZMAT"], non_address_hints=["DRUMS"])
        resolver = AddressResolver.from_config(custom)
        assert resolver.is_instruction_line("HAZMAT CLASS 3")
        assert not resolver.is_instruction_line("SIGNED CMR MANDATORY")
        assert resolver.is_non_address_line("4 DRUMS")
