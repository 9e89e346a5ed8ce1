"""
Stage 5: Cargo

ЦКП: Атрибуты груза (Cargo) или None, если ничего не найдено.

Входные данные: LineSequence, TemplateConfig
Выходные данные: CargoResult

Один проход по строкам. Каждая строка даёт частичный CargoAttributes,
частичные результаты сливаются по правилу first-non-null:
первое найденное значение атрибута в документе выигрывает.

Атрибуты:
- title: явная метка (Commodity:, Goods:, M. nature:) → таксономия → по упаковке
- package_count + package_type: "10 PALLETS", "3 x EPAL", "25 cartons"
- weight / volume / ldm: число + единица, тонны только при метке рядом
- value + currency: "Goods value: EUR 25 000"
- габариты: "120 x 80 x 150 cm"
- температура: "+2 - +8 °C", "Temp: -18°C"
- type: FTL / LTL
- флаги: adr, tail_lift, palletized, manual_load
"""

import re
from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple
from loguru import logger

from contracts.order_payload_dto import Cargo, PackageType

from ..extraction.amount_parser import AmountParser
from ..extraction.candidates import merge_first_non_null
from ..templates.config_loader import TemplateConfig


@dataclass(frozen=True)
class CargoAttributes:
    """Частичный набор атрибутов груза (из одной строки или слитый)."""
    title: Optional[str] = None
    type: Optional[str] = None
    package_count: Optional[int] = None
    package_type: Optional[PackageType] = None
    weight: Optional[float] = None
    ldm: Optional[float] = None
    volume: Optional[float] = None
    value: Optional[float] = None
    currency: Optional[str] = None
    pkg_length: Optional[float] = None
    pkg_width: Optional[float] = None
    pkg_height: Optional[float] = None
    temperature_min: Optional[float] = None
    temperature_max: Optional[float] = None
    adr: Optional[bool] = None
    tail_lift: Optional[bool] = None
    palletized: Optional[bool] = None
    manual_load: Optional[bool] = None

    def merge(self, other: "CargoAttributes") -> "CargoAttributes":
        return merge_first_non_null(self, other)

    def found(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]


@dataclass
class CargoResult:
    """
    Результат Stage 5: Cargo.

    ЦКП: Cargo или None (тогда Stage 7 ставит заглушку).
    """
    cargo: Optional[Cargo] = None
    found_attributes: List[str] = field(default_factory=list)
    title_source: str = "none"   # label | taxonomy | packaging | placeholder | none

    def to_dict(self) -> dict:
        return {
            "cargo": self.cargo.model_dump(mode="json", exclude_none=True) if self.cargo else None,
            "found_attributes": self.found_attributes,
            "title_source": self.title_source,
        }


class CargoExtractor:
    """
    Stage 5: Cargo.

    ЦКП: Один Cargo со всеми найденными атрибутами.
    """

    TITLE_LABEL_PATTERN = re.compile(
        r"\b(?:COMMODITY|NATURE\s+OF\s+GOODS|DESCRIPTION\s+OF\s+GOODS|GOODS\s+DESCRIPTION|GOODS|"
        r"M\.\s*NATURE|MERCHANDISE|PACKAGING)\b\s*[:\-]\s*([A-Za-z][A-Za-z \-/&]{2,})",
        re.IGNORECASE,
    )
    TAXONOMY: Dict[str, str] = {
        "PAPER": "Paper products",
        "CARDBOARD": "Paper products",
        "STEEL": "Steel",
        "ALUMINIUM": "Metals",
        "METAL": "Metals",
        "FOOD": "Foodstuffs",
        "FOODSTUFF": "Foodstuffs",
        "BEVERAGE": "Beverages",
        "DRINKS": "Beverages",
        "CHEMICAL": "Chemicals",
        "CHEMICALS": "Chemicals",
        "MACHINERY": "Machinery",
        "MACHINE PARTS": "Machinery",
        "TEXTILE": "Textiles",
        "TEXTILES": "Textiles",
        "FURNITURE": "Furniture",
        "ELECTRONICS": "Electronics",
        "CAR PARTS": "Automotive parts",
        "AUTOMOTIVE": "Automotive parts",
        "PLASTIC": "Plastics",
        "PLASTICS": "Plastics",
        "BUILDING MATERIALS": "Building materials",
        "TIMBER": "Timber",
        "CONSUMER GOODS": "Consumer goods",
    }

    PACKAGE_UNITS: Tuple[Tuple[str, PackageType], ...] = (
        (r"EURO[\s\-]?PALLETS?|EUR[\s\-]?PAL(?:LETS?)?|EPALS?", PackageType.EPAL),
        (r"PALLETS?|PLTS?|PAL", PackageType.PALLET),
        (r"PACKAGES?|PKGS?|PACKS?|PARCELS?", PackageType.PACKAGE),
        (r"CARTONS?|CTNS?", PackageType.CARTON),
        (r"BOXES|BOX", PackageType.BOX),
        (r"COLLI|COLL", PackageType.COLLI),
        (r"CRATES?", PackageType.CRATE),
        (r"DRUMS?", PackageType.DRUM),
        (r"ROLLS?", PackageType.ROLL),
    )
    PACKAGE_PATTERN = re.compile(
        r"(?<![\d.,])(\d{1,4})\s*(?:X\s*)?(" + "|".join(p for p, _ in PACKAGE_UNITS) + r")\b",
        re.IGNORECASE,
    )

    NUMBER = r"(\d{1,3}(?:[ .,]\d{3})+(?:[.,]\d{1,3})?|\d+(?:[.,]\d{1,3})?)"
    WEIGHT_PATTERN = re.compile(NUMBER + r"\s*(KGS?|KILOS?|KILOGRAMS?|TONNES?|TONS?|T)\b", re.IGNORECASE)
    WEIGHT_LABEL_PATTERN = re.compile(r"\b(?:WEIGHT|GROSS|POIDS|GEWICHT|TONNAGE)\b", re.IGNORECASE)
    WEIGHT_LABEL_VALUE_PATTERN = re.compile(r"\b(?:WEIGHT|GROSS\s+WEIGHT|POIDS)\b\s*[:\-]?\s*" + NUMBER + r"(?!\s*[A-Z%])", re.IGNORECASE)
    VOLUME_PATTERN = re.compile(NUMBER + r"\s*(?:M3|M³|CBM|CUBIC\s+MET(?:ER|RE)S?)\b", re.IGNORECASE)
    LDM_PATTERN = re.compile(NUMBER + r"\s*(?:LDM|LOADING\s+MET(?:ER|RE)S?)\b", re.IGNORECASE)
    LDM_LABEL_PATTERN = re.compile(r"\b(?:LDM|LOADING\s+MET(?:ER|RE)S?)\b\s*[:\-]?\s*" + NUMBER, re.IGNORECASE)
    VALUE_LABEL_PATTERN = re.compile(
        r"\b(?:GOODS\s+VALUE|VALUE\s+OF\s+GOODS|CARGO\s+VALUE|DECLARED\s+VALUE|INVOICE\s+VALUE)\b\s*[:\-]?\s*(.+)",
        re.IGNORECASE,
    )
    DIMENSIONS_PATTERN = re.compile(
        r"(\d+(?:[.,]\d+)?)\s*[X×*]\s*(\d+(?:[.,]\d+)?)\s*[X×*]\s*(\d+(?:[.,]\d+)?)\s*(CM|MM|M)?\b",
        re.IGNORECASE,
    )
    TEMPERATURE_RANGE_PATTERN = re.compile(
        r"([+\-]?\d{1,2}(?:[.,]\d)?)\s*(?:°\s*C?)?\s*(?:-|–|TO|/)\s*([+\-]?\d{1,2}(?:[.,]\d)?)\s*°\s*C\b",
        re.IGNORECASE,
    )
    TEMPERATURE_SINGLE_PATTERN = re.compile(
        r"\bTEMP(?:ERATURE)?\b[^\d+\-]*([+\-]?\d{1,2}(?:[.,]\d)?)\s*°?\s*C\b", re.IGNORECASE
    )
    FTL_PATTERN = re.compile(r"\b(?:FTL|FULL\s+TRUCK(?:\s*LOAD)?|COMPLETE\s+TRUCK|FULL\s+LOAD)\b", re.IGNORECASE)
    LTL_PATTERN = re.compile(r"\b(?:LTL|GROUPAGE|PART\s+LOAD|PARTIAL\s+LOAD|LESS\s+THAN\s+TRUCK)\b", re.IGNORECASE)

    ADR_NEGATIVE_PATTERN = re.compile(r"\b(?:NON[\s\-]?ADR|NOT\s+ADR|NO\s+ADR|NON[\s\-]?HAZARDOUS|NOT\s+DANGEROUS)\b", re.IGNORECASE)
    ADR_PATTERN = re.compile(r"\b(?:ADR|UN\s?\d{4}|DANGEROUS\s+GOODS|HAZARDOUS|IMDG)\b", re.IGNORECASE)
    TAIL_LIFT_NEGATIVE_PATTERN = re.compile(r"\b(?:NO|WITHOUT)\s+TAIL[\s\-]?LIFT\b", re.IGNORECASE)
    TAIL_LIFT_PATTERN = re.compile(r"\b(?:TAIL[\s\-]?LIFT|HAYON|LIFTGATE)\b", re.IGNORECASE)
    PALLETIZED_NEGATIVE_PATTERN = re.compile(r"\b(?:NOT\s+PALLETI[SZ]ED|NON[\s\-]?PALLETI[SZ]ED)\b", re.IGNORECASE)
    PALLETIZED_PATTERN = re.compile(r"\bPALLETI[SZ]ED\b", re.IGNORECASE)
    MANUAL_LOAD_PATTERN = re.compile(
        r"\b(?:MANUAL(?:LY)?\s+(?:LOAD(?:ING|ED)?|UNLOAD(?:ING)?|HANDLING)|HAND\s+BALL(?:ED)?|LOOSE\s+LOADED|FLOOR\s+LOADED)\b",
        re.IGNORECASE,
    )

    def __init__(self, amount_parser: Optional[AmountParser] = None):
        self.amount_parser = amount_parser or AmountParser()

    def process(self, lines: Sequence[str], config: TemplateConfig) -> CargoResult:
        """
        Args:
            lines: LineSequence
            config: Конфигурация шаблона (заглушка title)

        Returns:
            CargoResult (cargo=None если ни одного атрибута)
        """
        attributes = CargoAttributes()
        for i, line in enumerate(lines):
            previous = lines[i - 1] if i > 0 else ""
            attributes = attributes.merge(self.parse_line(line, previous))

        title_source = "label" if attributes.title else "none"
        if attributes.title is None:
            title, title_source = self._derive_title(lines, attributes, config)
            attributes = CargoAttributes(**{**self._as_dict(attributes), "title": title})

        if attributes.palletized is None and attributes.package_type in (PackageType.PALLET, PackageType.EPAL):
            attributes = CargoAttributes(**{**self._as_dict(attributes), "palletized": True})

        found = [name for name in attributes.found() if name != "title"]
        if not found and title_source in ("none", "placeholder"):
            logger.debug("[Stage 5: Cargo] Атрибуты груза не найдены")
            return CargoResult(cargo=None, found_attributes=[], title_source="none")

        cargo = Cargo(**{k: v for k, v in self._as_dict(attributes).items() if v is not None})
        logger.info(f"[Stage 5: Cargo] '{cargo.title}' ({title_source}), атрибуты: {found}")
        return CargoResult(cargo=cargo, found_attributes=found, title_source=title_source)

    def parse_line(self, line: str, previous: str = "") -> CargoAttributes:
        """Частичные атрибуты груза из одной строки (с учётом предыдущей для меток)."""
        values = {}

        title = self.TITLE_LABEL_PATTERN.search(line)
        if title:
            values["title"] = title.group(1).strip(" -/&")

        package = self.PACKAGE_PATTERN.search(line)
        if package and int(package.group(1)) > 0:
            values["package_count"] = int(package.group(1))
            values["package_type"] = self._package_type(package.group(2))

        values["weight"] = self._weight(line, previous)

        volume = self.VOLUME_PATTERN.search(line)
        if volume:
            values["volume"] = self._number(volume.group(1))

        ldm = self.LDM_PATTERN.search(line) or self.LDM_LABEL_PATTERN.search(line)
        if ldm:
            values["ldm"] = self._number(ldm.group(1))

        value_label = self.VALUE_LABEL_PATTERN.search(line)
        if value_label:
            money = self.amount_parser.find_money(value_label.group(1))
            if money:
                values["value"] = float(money.amount)
                values["currency"] = money.currency
            else:
                amounts = self.amount_parser.find_amounts(value_label.group(1))
                if amounts:
                    values["value"] = float(amounts[0])

        dimensions = self.DIMENSIONS_PATTERN.search(line)
        if dimensions:
            factor = {"MM": 0.1, "M": 100.0}.get((dimensions.group(4) or "CM").upper(), 1.0)
            length, width, height = (self._number(dimensions.group(n)) for n in (1, 2, 3))
            if None not in (length, width, height):
                values["pkg_length"] = round(length * factor, 2)
                values["pkg_width"] = round(width * factor, 2)
                values["pkg_height"] = round(height * factor, 2)

        temperature = self.TEMPERATURE_RANGE_PATTERN.search(line)
        if temperature:
            low, high = self._number(temperature.group(1), signed=True), self._number(temperature.group(2), signed=True)
            if low is not None and high is not None:
                values["temperature_min"], values["temperature_max"] = min(low, high), max(low, high)
        else:
            single = self.TEMPERATURE_SINGLE_PATTERN.search(line)
            if single:
                value = self._number(single.group(1), signed=True)
                values["temperature_min"] = values["temperature_max"] = value

        if self.FTL_PATTERN.search(line):
            values["type"] = "FTL"
        elif self.LTL_PATTERN.search(line):
            values["type"] = "LTL"

        values["adr"] = self._flag(line, self.ADR_PATTERN, self.ADR_NEGATIVE_PATTERN)
        values["tail_lift"] = self._flag(line, self.TAIL_LIFT_PATTERN, self.TAIL_LIFT_NEGATIVE_PATTERN)
        values["palletized"] = self._flag(line, self.PALLETIZED_PATTERN, self.PALLETIZED_NEGATIVE_PATTERN)
        if self.MANUAL_LOAD_PATTERN.search(line):
            values["manual_load"] = True

        return CargoAttributes(**{k: v for k, v in values.items() if v is not None})

    def _weight(self, line: str, previous: str) -> Optional[float]:
        """
        Вес в кг. Тонны принимаются только при метке веса
        в этой или предыдущей строке.
        """
        has_label = bool(self.WEIGHT_LABEL_PATTERN.search(line) or self.WEIGHT_LABEL_PATTERN.search(previous))

        for match in self.WEIGHT_PATTERN.finditer(line):
            value = self._number(match.group(1))
            if value is None:
                continue
            unit = match.group(2).upper()
            if unit.startswith("K"):
                return value
            if has_label:
                return value * 1000

        if has_label:
            labelled = self.WEIGHT_LABEL_VALUE_PATTERN.search(line)
            if labelled:
                return self._number(labelled.group(1))
        return None

    def _number(self, raw: str, signed: bool = False) -> Optional[float]:
        if raw is None:
            return None
        sign = -1.0 if signed and raw.strip().startswith("-") else 1.0
        amount = self.amount_parser.parse(raw)
        if amount is None:
            return None
        return sign * float(amount)

    def _package_type(self, unit: str) -> PackageType:
        for pattern, package_type in self.PACKAGE_UNITS:
            if re.fullmatch(pattern, unit, re.IGNORECASE):
                return package_type
        return PackageType.OTHER

    @staticmethod
    def _flag(line: str, positive: re.Pattern, negative: re.Pattern) -> Optional[bool]:
        if negative.search(line):
            return False
        if positive.search(line):
            return True
        return None

    def _derive_title(
        self,
        lines: Sequence[str],
        attributes: CargoAttributes,
        config: TemplateConfig,
    ) -> Tuple[str, str]:
        """Таксономия → по типу упаковки → заглушка шаблона."""
        for line in lines:
            upper = line.upper()
            for keyword, title in self.TAXONOMY.items():
                if re.search(r"\b" + re.escape(keyword) + r"\b", upper):
                    return title, "taxonomy"

        if attributes.package_type in (PackageType.PALLET, PackageType.EPAL):
            return "Palletized goods", "packaging"
        if attributes.package_type is not None:
            return "Packaged goods", "packaging"
        return config.cargo_placeholder.title, "placeholder"

    @staticmethod
    def _as_dict(attributes: CargoAttributes) -> dict:
        return {f.name: getattr(attributes, f.name) for f in fields(attributes)}
