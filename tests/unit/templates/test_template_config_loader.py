"""
Unit-тесты для TemplateConfigLoader.

ЦКП: TemplateConfig из YAML с наследованием списков через $extends.
"""

import pytest

from freight_parser.domain.exceptions import TemplateConfigurationError, TemplateNotFoundError
from freight_parser.templates.config_loader import TemplateConfigLoader


BASE_YAML = """
price_keywords:
  - RATE
  - PRICE
loading_markers:
  - LOADING
reference_patterns:
  - pattern: '\\bREF\\s+(\\d{5,})'
    priority: 3
"""

CUSTOM_YAML = """
template: custom
name: Custom Carrier
detection:
  any_markers:
    - CUSTOM CARRIER
stops:
  loading_markers:
    - PICKUP
    - $extends: loading_markers
  delivery_markers:
    - DROP
  marker_mode: substring
price_keywords:
  - $extends: price_keywords
  - TARIFF
reference_patterns:
  - pattern: '\\bCC(\\d{6})\\b'
    priority: 1
  - $extends: reference_patterns
cargo_placeholder:
  title: Mixed goods
"""


@pytest.fixture(autouse=True)
def clear_cache():
    TemplateConfigLoader.clear_cache()
    yield
    TemplateConfigLoader.clear_cache()


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "base.yaml").write_text(BASE_YAML, encoding="utf-8")
    (tmp_path / "custom").mkdir()
    (tmp_path / "custom" / "template.yaml").write_text(CUSTOM_YAML, encoding="utf-8")
    return tmp_path


class TestLoadCustomTemplate:
    """Загрузка шаблона из временной директории."""

    def test_extends_inlines_base_list(self, config_dir):
        config = TemplateConfigLoader(config_dir).load("custom")
        assert config.stops.loading_markers == ["PICKUP", "LOADING"]
        assert config.price_keywords == ["RATE", "PRICE", "TARIFF"]

    def test_reference_patterns_merged(self, config_dir):
        config = TemplateConfigLoader(config_dir).load("custom")
        assert [p.priority for p in config.reference_patterns] == [1, 3]
        assert config.reference_patterns[0].group == 1

    def test_sections_and_defaults(self, config_dir):
        config = TemplateConfigLoader(config_dir).load("custom")
        assert config.template == "custom"
        assert config.name == "Custom Carrier"
        assert config.stops.marker_mode == "substring"
        assert config.stops.strict is True
        assert config.stops.heuristic_window == 6
        assert config.detection.any_markers == ["CUSTOM CARRIER"]
        assert config.cargo_placeholder.title == "Mixed goods"
        assert config.cargo_placeholder.package_count is None
        assert config.default_currency == "EUR"

    def test_cached(self, config_dir):
        loader = TemplateConfigLoader(config_dir)
        assert loader.load("custom") is loader.load("custom")

    def test_available_templates(self, config_dir):
        assert TemplateConfigLoader(config_dir).available_templates() == ["custom"]


class TestConfigErrors:
    """Ошибки конфигурации."""

    def test_missing_template(self, config_dir):
        with pytest.raises(TemplateNotFoundError):
            TemplateConfigLoader(config_dir).load("unknown")

    def test_missing_name(self, config_dir):
        (config_dir / "broken").mkdir()
        (config_dir / "broken" / "template.yaml").write_text("template: broken\n", encoding="utf-8")
        with pytest.raises(TemplateConfigurationError):
            TemplateConfigLoader(config_dir).load("broken")

    def test_bad_marker_mode(self, config_dir):
        (config_dir / "bad").mkdir()
        (config_dir / "bad" / "template.yaml").write_text(
            "template: bad\nname: Bad\nstops:\n  marker_mode: anywhere\n", encoding="utf-8"
        )
        with pytest.raises(TemplateConfigurationError):
            TemplateConfigLoader(config_dir).load("bad")

    def test_heuristic_window_too_small(self, config_dir):
        (config_dir / "narrow").mkdir()
        (config_dir / "narrow" / "template.yaml").write_text(
            "template: narrow\nname: Narrow\nstops:\n  heuristic_window: 1\n", encoding="utf-8"
        )
        with pytest.raises(TemplateConfigurationError):
            TemplateConfigLoader(config_dir).load("narrow")

    def test_reference_pattern_without_priority(self, config_dir):
        (config_dir / "nopriority").mkdir()
        (config_dir / "nopriority" / "template.yaml").write_text(
            "template: nopriority\nname: X\nreference_patterns:\n  - pattern: 'REF (\\\\d+)'\n",
            encoding="utf-8",
        )
        with pytest.raises(TemplateConfigurationError):
            TemplateConfigLoader(config_dir).load("nopriority")

    def test_invalid_yaml(self, config_dir):
        (config_dir / "invalid").mkdir()
        (config_dir / "invalid" / "template.yaml").write_text("template: [unclosed\n", encoding="utf-8")
        with pytest.raises(TemplateConfigurationError):
            TemplateConfigLoader(config_dir).load("invalid")


class TestBundledTemplates:
    """Шаблоны, поставляемые с пакетом."""

    def test_all_bundled_templates_load(self):
        loader = TemplateConfigLoader()
        names = loader.available_templates()
        assert names == ["generic", "transalliance", "ziegler"]
        for name in names:
            assert loader.load(name).template == name

    def test_ziegler(self):
        config = TemplateConfigLoader().load("ziegler")
        assert config.customer.defaults["postal_code"] == "SS17 9FJ"
        assert config.detection.required_markers == ["ZIEGLER UK LTD"]
        assert config.stops.loading_markers == ["COLLECTION"]
        assert "RATE" in config.price_keywords

    def test_generic_always_matches(self):
        config = TemplateConfigLoader().load("generic")
        assert config.detection.always is True
        assert "COLLECTION" in config.stops.loading_markers
