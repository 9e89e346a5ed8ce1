"""
Integration тесты: OrderExtractionPipeline (7 этапов) end-to-end.

ЦКП: Валидный OrderPayload для любого входа, включая пустой документ.
"""

from datetime import datetime

import pytest

from config.settings import REFERENCE_PLACEHOLDER
from contracts.order_payload_dto import FieldSource, OrderPayload
from contracts.raw_document_dto import RawDocument
from freight_parser import OrderExtractionPipeline
from freight_parser.domain.interfaces import IOrderSink


GENERIC_LINES = [
    "ACME LOGISTICS LTD",
    "Rate € 1.250,50",
    "Collection ACME FACTORY",
    "12 RUE DE PARIS",
    "75001 PARIS",
    "27/06/2025 08:00 - 12:00",
    "Delivery BETA WAREHOUSE",
    "SS17 9FJ STANFORD LE HOPE",
    "10 PALLETS",
]


class RecordingSink(IOrderSink):
    """Хранилище заявок в памяти."""

    def __init__(self):
        self.orders = []

    def create_order(self, payload):
        self.orders.append(payload)
        return len(self.orders)


@pytest.fixture
def pipeline():
    return OrderExtractionPipeline()


@pytest.mark.integration
class TestGenericDocument:
    """Документ без известного перевозчика."""

    def test_freight(self, pipeline):
        payload = pipeline.process(GENERIC_LINES).payload
        assert payload.freight_price == 1250.5
        assert payload.freight_currency == "EUR"

    def test_customer(self, pipeline):
        payload = pipeline.process(GENERIC_LINES).payload
        assert payload.customer.details.company == "ACME LOGISTICS LTD"
        assert payload.customer.side == "none"

    def test_loading_stop(self, pipeline):
        stop = pipeline.process(GENERIC_LINES).payload.loading_locations[0]
        assert stop.company_address.company == "ACME FACTORY"
        assert stop.company_address.street_address == "12 RUE DE PARIS"
        assert stop.company_address.postal_code == "75001"
        assert stop.company_address.city == "PARIS"
        assert stop.company_address.country == "FR"
        assert stop.time.datetime_from == datetime(2025, 6, 27, 8, 0)
        assert stop.time.datetime_to == datetime(2025, 6, 27, 12, 0)

    def test_loading_stop_with_dotted_time_range(self, pipeline):
        lines = [
            "27.06.2025 08.00-12.00" if line == "27/06/2025 08:00 - 12:00" else line
            for line in GENERIC_LINES
        ]
        stop = pipeline.process(lines).payload.loading_locations[0]
        assert stop.company_address.postal_code == "75001"
        assert stop.time.datetime_from == datetime(2025, 6, 27, 8, 0)
        assert stop.time.datetime_to == datetime(2025, 6, 27, 12, 0)

    def test_delivery_stop(self, pipeline):
        stop = pipeline.process(GENERIC_LINES).payload.destination_locations[0]
        assert stop.company_address.company == "BETA WAREHOUSE"
        assert stop.company_address.postal_code == "SS17 9FJ"
        assert stop.company_address.city == "STANFORD LE HOPE"
        assert stop.company_address.country == "GB"
        assert stop.time is None

    def test_cargo(self, pipeline):
        cargo = pipeline.process(GENERIC_LINES).payload.cargos[0]
        assert cargo.title == "Palletized goods"
        assert cargo.package_count == 10
        assert cargo.package_type.value == "pallet"
        assert cargo.palletized is True

    def test_reference_placeholder_without_filename(self, pipeline):
        result = pipeline.process(GENERIC_LINES)
        assert result.payload.order_reference == REFERENCE_PLACEHOLDER
        assert result.provenance["order_reference"] == FieldSource.PLACEHOLDER
        assert result.payload.comment is None

    def test_pipeline_metadata(self, pipeline):
        result = pipeline.process(GENERIC_LINES)
        assert result.stages_completed == 7
        assert result.template == "generic"
        assert result.processing_time_ms >= 0

        data = result.to_dict()
        assert data["payload"]["freight_price"] == 1250.5
        assert data["provenance"]["loading_locations"] == "explicit"
        assert data["stops"]["strategy"] == "markers"

    def test_idempotent(self, pipeline):
        first = pipeline.process(GENERIC_LINES).payload
        second = pipeline.process(GENERIC_LINES).payload
        assert first == second


@pytest.mark.integration
class TestFallbackDocuments:
    """Документы без данных: payload остаётся валидным."""

    @pytest.mark.parametrize("lines", [
        ["Hello team", "Please see attached", "Thanks and regards"],
        [],
        ["", "   ", None],
    ])
    def test_placeholders(self, pipeline, lines):
        payload = pipeline.process(lines).payload
        assert isinstance(payload, OrderPayload)
        assert payload.order_reference == REFERENCE_PLACEHOLDER
        assert payload.freight_price == 0.0
        assert payload.freight_currency == "EUR"
        assert len(payload.loading_locations) == 1
        assert len(payload.destination_locations) == 1
        assert payload.cargos[0].title == "General cargo"
        assert payload.cargos[0].package_count == 1

    def test_schema_dict_is_json_ready(self, pipeline):
        data = pipeline.process([]).payload.to_schema_dict()
        assert data["order_reference"] == REFERENCE_PLACEHOLDER
        assert data["loading_locations"] == [{"company_address": {}}]
        assert "comment" not in data


@pytest.mark.integration
class TestDocumentAndSink:
    """RawDocument на входе и передача во внешнее хранилище."""

    def test_raw_document(self, pipeline):
        document = RawDocument(lines=["ACME LOGISTICS LTD", None, "Rate € 1.250,50"], attachment_filename="booking-4455.pdf")
        result = pipeline.process_document(document)
        assert result.payload.freight_price == 1250.5
        assert result.payload.attachment_filenames == ["booking-4455.pdf"]
        assert result.payload.order_reference == "BOOKING-4455"

    def test_sink_receives_schema_dict(self):
        sink = RecordingSink()
        pipeline = OrderExtractionPipeline(sink=sink)
        result = pipeline.process(GENERIC_LINES, "acme.pdf")
        assert sink.orders == [result.payload.to_schema_dict()]

    def test_template_by_name(self):
        pipeline = OrderExtractionPipeline("ziegler")
        assert pipeline.config.template == "ziegler"
