"""
Stage 3: Customer

ЦКП: Заказчик перевозки (customer.details).

Входные данные: LineSequence, TemplateConfig
Выходные данные: CustomerResult

Алгоритм:
1. Строка-заголовок: маркер шаблона (TRANSALLIANCE, ZIEGLER UK LTD)
   либо первая строка с юр. суффиксом (LTD, GMBH, SAS, ...)
2. AddressResolver по окну после заголовка (до первой строки-маркера остановки)
3. Дефолты шаблона для пустых полей
4. Комментарий заказчика по правилам шаблона (условия заказа)
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence
from loguru import logger

from contracts.order_payload_dto import Address, Customer, FieldSource

from ..extraction.address_resolver import AddressResolver, AddressResult
from ..templates.config_loader import NoteRule, TemplateConfig


@dataclass
class CustomerResult:
    """
    Результат Stage 3: Customer.

    ЦКП: Customer с реквизитами.
    """
    customer: Customer
    header_index: int = -1
    source: FieldSource = FieldSource.PLACEHOLDER

    def to_dict(self) -> dict:
        return {
            "customer": self.customer.model_dump(exclude_none=True),
            "header_index": self.header_index,
            "source": self.source.value,
        }


class CustomerExtractor:
    """
    Stage 3: Customer.

    ЦКП: Реквизиты заказчика из блока-шапки документа.
    """

    def __init__(self, resolver: Optional[AddressResolver] = None):
        """
        Args:
            resolver: AddressResolver (по умолчанию создаётся из конфига шаблона)
        """
        self._resolver = resolver

    def process(self, lines: Sequence[str], config: TemplateConfig) -> CustomerResult:
        resolver = self._resolver or AddressResolver.from_config(config)

        header_index = self.find_header(lines, config, resolver)
        details = AddressResult()
        source = FieldSource.PLACEHOLDER

        if header_index >= 0:
            stop_pattern = self._keyword_pattern(
                list(config.customer.stop_keywords) + config.stops.loading_markers + config.stops.delivery_markers
            )
            details = resolver.resolve(
                lines,
                start=header_index + 1,
                end=header_index + 1 + config.customer.window,
                initial=AddressResult(company=self._company_name(lines[header_index], config)),
                stop_when=(lambda line: bool(stop_pattern.search(line.upper()))) if stop_pattern else None,
            )
            source = FieldSource.EXPLICIT
            logger.debug(f"[Stage 3: Customer] Заголовок в строке {header_index}: {details.company}")

        if config.customer.defaults:
            defaults = AddressResult(**{
                k: v for k, v in config.customer.defaults.items() if k in AddressResult.__dataclass_fields__
            })
            before = details
            details = details.merge(defaults)
            if details != before and source == FieldSource.PLACEHOLDER:
                source = FieldSource.FALLBACK

        comment = self._customer_comment(lines, config.customer.comment_rules)
        if comment:
            details = AddressResult(**{**details.to_dict(), "comment": comment})

        logger.info(f"[Stage 3: Customer] {details.company} ({details.city}, {details.country}) source={source.value}")
        return CustomerResult(
            customer=Customer(side="none", details=Address(**details.to_dict())),
            header_index=header_index,
            source=source,
        )

    @staticmethod
    def find_header(lines: Sequence[str], config: TemplateConfig, resolver: AddressResolver) -> int:
        """Индекс строки-заголовка заказчика или -1."""
        markers = [m.upper() for m in config.customer.markers]
        for i, line in enumerate(lines):
            upper = line.upper()
            if any(marker in upper for marker in markers) and not resolver.is_instruction_line(line):
                return i

        for i, line in enumerate(lines):
            if resolver.is_instruction_line(line):
                continue
            if resolver.LEGAL_SUFFIX_PATTERN.search(line.upper()) and resolver.is_likely_company(line):
                return i

        return -1

    @staticmethod
    def _company_name(line: str, config: TemplateConfig) -> str:
        """Известное имя из маркера, иначе строка целиком."""
        upper = line.upper()
        for company in config.known_companies:
            if company.upper() in upper:
                return company
        return line.strip()

    @staticmethod
    def _keyword_pattern(keywords) -> Optional[re.Pattern]:
        if not keywords:
            return None
        return re.compile(r"\b(?:" + "|".join(re.escape(k.upper()) for k in keywords) + r")\b")

    @staticmethod
    def _customer_comment(lines: Sequence[str], rules: Sequence[NoteRule]) -> Optional[str]:
        """Заметки по правилам: уникальные, через '. ', с точкой в конце."""
        notes = []
        for line in lines:
            for rule in rules:
                note = rule.apply(line)
                if note and note not in notes:
                    notes.append(note)
        if not notes:
            return None
        return ". ".join(n.rstrip(".") for n in notes) + "."
