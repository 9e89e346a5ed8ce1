"""Доменный слой: интерфейсы и исключения."""

from .exceptions import (
    GazetteerError,
    ParsingError,
    PayloadValidationError,
    TemplateConfigurationError,
    TemplateNotFoundError,
)
from .interfaces import IOrderSink, ITemplateExtractor
