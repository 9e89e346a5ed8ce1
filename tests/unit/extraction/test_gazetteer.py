"""
Unit-тесты для Gazetteer.
"""

import pytest

from freight_parser.domain.exceptions import GazetteerError
from freight_parser.extraction.gazetteer import Gazetteer


@pytest.fixture
def gazetteer():
    return Gazetteer.load()


class TestLookups:
    """Поиск стран и городов."""

    def test_longest_country_name_first(self, gazetteer):
        assert gazetteer.find_country_mention("DARTFORD, UNITED KINGDOM") == ("UNITED KINGDOM", "GB")

    def test_country_in_text(self, gazetteer):
        assert gazetteer.find_country("12 rue x, France") == "FR"
        assert gazetteer.find_country("no country here") is None

    def test_city(self, gazetteer):
        assert gazetteer.country_for_city(" kaunas ") == "LT"
        assert gazetteer.country_for_city("ATLANTIS") is None
        assert gazetteer.country_for_city(None) is None

    def test_postcode_prefix(self, gazetteer):
        assert gazetteer.country_for_postcode_prefix("01100") == "LT"
        assert gazetteer.country_for_postcode_prefix("75001") is None

    def test_is_country_name(self, gazetteer):
        assert gazetteer.is_country_name("Lithuania")
        assert not gazetteer.is_country_name("VILNIUS")

    def test_load_is_cached(self, gazetteer):
        assert Gazetteer.load() is gazetteer


class TestLoadErrors:
    """Ошибки загрузки YAML."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(GazetteerError):
            Gazetteer.load(tmp_path / "missing.yaml")

    def test_missing_countries_section(self, tmp_path):
        path = tmp_path / "gazetteer.yaml"
        path.write_text("cities:\n  FR:\n    - PARIS\n", encoding="utf-8")
        with pytest.raises(GazetteerError):
            Gazetteer.load(path)

    def test_custom_file(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("countries:\n  DE:\n    - GERMANY\ncities:\n  DE:\n    - BERLIN\n", encoding="utf-8")
        gazetteer = Gazetteer.load(path)
        assert gazetteer.find_country("BERLIN, GERMANY") == "DE"
        assert gazetteer.country_for_city("BERLIN") == "DE"
