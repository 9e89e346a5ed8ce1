"""
Integration тесты: опознание перевозчика + извлечение на полных документах.

Документы лежат в tests/fixtures как текст после PDF-to-text.
"""

from datetime import datetime
from pathlib import Path

import pytest

from contracts.order_payload_dto import FieldSource, PackageType
from freight_parser import StrategyFactory


FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


def read_lines(name: str) -> list:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8").splitlines()


@pytest.fixture(scope="module")
def transalliance():
    filename = "transalliance_FUSM2025061234.txt"
    lines = read_lines(filename)
    strategy = StrategyFactory().detect(lines)
    return strategy, strategy.process(lines, filename.replace(".txt", ".pdf"))


@pytest.fixture(scope="module")
def ziegler():
    lines = read_lines("ziegler_booking_instruction.txt")
    strategy = StrategyFactory().detect(lines)
    return strategy, strategy.process(lines, "ziegler_booking_instruction.pdf")


@pytest.mark.integration
class TestTransallianceDocument:
    """Chartering Confirmation."""

    def test_detected(self, transalliance):
        strategy, result = transalliance
        assert strategy.name == "Transalliance"
        assert result.template == "transalliance"

    def test_reference_and_freight(self, transalliance):
        _, result = transalliance
        payload = result.payload
        assert payload.order_reference == "FUSM2025061234"
        assert result.provenance["order_reference"] == FieldSource.EXPLICIT
        assert payload.freight_price == 1475.0
        assert payload.freight_currency == "EUR"

    def test_customer(self, transalliance):
        _, result = transalliance
        assert result.payload.customer.details.company == "TRANSALLIANCE"

    def test_loading(self, transalliance):
        _, result = transalliance
        stops = result.payload.loading_locations
        assert len(stops) == 1
        address = stops[0].company_address
        assert address.company == "EP GROUP"
        assert address.street_address == "ZI DES BRUYERES"
        assert address.city == "SAINT-QUENTIN-FALLAVIER"
        assert address.postal_code == "38070"
        assert address.country == "FR"
        assert stops[0].time.datetime_from == datetime(2025, 6, 27, 8, 0)
        assert stops[0].time.datetime_to == datetime(2025, 6, 27, 12, 0)

    def test_delivery(self, transalliance):
        _, result = transalliance
        stops = result.payload.destination_locations
        assert len(stops) == 1
        address = stops[0].company_address
        assert address.company == "ICONEX"
        assert address.street_address == "UNIT 2 ORBITAL PARK"
        assert address.city == "DARTFORD"
        assert address.postal_code == "DA1 5PD"
        assert address.country == "GB"
        assert address.comment == "BOOKING 54321 REQUIRED"
        assert stops[0].time.datetime_from == datetime(2025, 6, 30, 9, 0)
        assert stops[0].time.datetime_to == datetime(2025, 6, 30, 14, 0)

    def test_cargo(self, transalliance):
        _, result = transalliance
        cargo = result.payload.cargos[0]
        assert cargo.title == "Palletized goods"
        assert cargo.package_count == 33
        assert cargo.package_type == PackageType.EPAL
        assert cargo.weight == 12000.0
        assert cargo.adr is False
        assert cargo.palletized is True

    def test_comment_with_reference_prefix(self, transalliance):
        _, result = transalliance
        assert result.payload.comment == "Order Ref: FUSM2025061234 | PALLET EXCHANGE REQUIRED"


@pytest.mark.integration
class TestZieglerDocument:
    """Booking Instruction."""

    def test_detected(self, ziegler):
        strategy, result = ziegler
        assert strategy.name == "Ziegler"
        assert result.template == "ziegler"

    def test_reference_and_freight(self, ziegler):
        _, result = ziegler
        assert result.payload.order_reference == "1234567"
        assert result.payload.freight_price == 850.0
        assert result.payload.freight_currency == "GBP"

    def test_customer(self, ziegler):
        _, result = ziegler
        details = result.payload.customer.details
        assert details.company == "ZIEGLER UK LTD"
        assert details.street_address == "LONDON GATEWAY LOGISTICS PARK"
        assert details.city == "STANFORD LE HOPE"
        assert details.postal_code == "SS17 9FJ"
        assert details.country == "GB"

    def test_loading(self, ziegler):
        _, result = ziegler
        stop = result.payload.loading_locations[0]
        address = stop.company_address
        assert address.company == "ACME PAPER MILL"
        assert address.street_address == "UNIT 4 INDUSTRIAL ESTATE"
        assert address.city == "DAVENTRY"
        assert address.postal_code == "NN11 8RD"
        assert address.country == "GB"
        assert address.comment == "ACME PAPER MILL REF 556677; Booked for 27/06/2025"
        assert stop.time.datetime_from == datetime(2025, 6, 27, 9, 0)
        assert stop.time.datetime_to is None

    def test_delivery(self, ziegler):
        _, result = ziegler
        stop = result.payload.destination_locations[0]
        address = stop.company_address
        assert address.company == "C/O DP WORLD"
        assert address.street_address == "12 RUE DU PORT"
        assert address.city == "DUNKERQUE"
        assert address.postal_code == "59140"
        assert address.country == "FR"
        assert stop.time.datetime_from == datetime(2025, 6, 28, 8, 0)
        assert stop.time.datetime_to == datetime(2025, 6, 28, 16, 0)

    def test_cargo(self, ziegler):
        _, result = ziegler
        cargo = result.payload.cargos[0]
        assert cargo.title == "Paper products"
        assert cargo.package_count == 22
        assert cargo.package_type == PackageType.PALLET
        assert cargo.weight == 18500.0
        assert cargo.palletized is True

    def test_comment_from_rules(self, ziegler):
        _, result = ziegler
        assert result.payload.comment == (
            "Carrier: BALTIC FREIGHT UAB. Booking created on 20/06/2025. "
            "Notes: Delivery to any address other than listed is prohibited without permission; "
            "signed POD required for payment."
        )
