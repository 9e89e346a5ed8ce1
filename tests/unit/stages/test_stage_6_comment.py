"""
Unit-тесты для Stage 6: Comment.
"""

import pytest

from config.settings import REFERENCE_PLACEHOLDER
from freight_parser.stages.stage_6_comment import CommentAggregator
from freight_parser.templates.config_loader import TemplateConfigLoader


@pytest.fixture
def aggregator():
    return CommentAggregator()


@pytest.fixture
def loader():
    return TemplateConfigLoader()


class TestKeywordLines:
    """Строки с ключевыми словами."""

    def test_keyword_lines_deduplicated(self, aggregator, loader):
        lines = ["INSURANCE COVER REQUIRED", "PALLET EXCHANGE", "insurance cover required"]
        result = aggregator.process(lines, loader.load("generic"))
        assert result.comment == "INSURANCE COVER REQUIRED | PALLET EXCHANGE"
        assert result.keyword_lines == [0, 1, 2]

    def test_no_content(self, aggregator, loader):
        result = aggregator.process(["ACME LTD", "75001 PARIS"], loader.load("generic"))
        assert result.comment is None


class TestRuleNotes:
    """Заметки по regex-правилам шаблона."""

    def test_ziegler_rules(self, aggregator, loader):
        lines = ["Carrier BALTIC FREIGHT UAB", "Date 20/06/2025"]
        result = aggregator.process(lines, loader.load("ziegler"))
        assert result.comment == "Carrier: BALTIC FREIGHT UAB. Booking created on 20/06/2025."
        assert result.rule_notes == ["Carrier: BALTIC FREIGHT UAB", "Booking created on 20/06/2025"]


class TestReferencePrefix:
    """Префикс "Order Ref"."""

    def test_prefix_added(self, aggregator, loader):
        result = aggregator.process(["PALLET EXCHANGE REQUIRED"], loader.load("transalliance"), reference="FUSM2025061234")
        assert result.comment == "Order Ref: FUSM2025061234 | PALLET EXCHANGE REQUIRED"

    def test_no_prefix_for_placeholder_reference(self, aggregator, loader):
        result = aggregator.process(
            ["PALLET EXCHANGE REQUIRED"], loader.load("transalliance"), reference=REFERENCE_PLACEHOLDER
        )
        assert result.comment == "PALLET EXCHANGE REQUIRED"

    def test_no_prefix_without_content(self, aggregator, loader):
        result = aggregator.process(["EP GROUP"], loader.load("transalliance"), reference="FUSM2025061234")
        assert result.comment is None


class TestSectionBounds:
    """Границы секции инструкций."""

    def test_without_start_marker_whole_document(self):
        assert CommentAggregator.section_bounds(["A", "B"], [], []) == (0, 2)

    def test_start_and_end(self):
        lines = ["HEADER", "INSTRUCTIONS", "NOTE 1", "NOTE 2", "TERMS", "FOOTER"]
        assert CommentAggregator.section_bounds(lines, ["INSTRUCTIONS"], ["TERMS"]) == (2, 4)

    def test_missing_start_marker(self):
        assert CommentAggregator.section_bounds(["A", "B", "C"], ["NOTES"], []) == (0, 3)
