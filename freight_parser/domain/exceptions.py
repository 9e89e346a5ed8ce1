"""
Исключения для домена Freight Parser.

ВАЖНО: на данных движок не падает. Промахи полей обрабатываются
фолбэками, исключения бросаются только при ошибках конфигурации.
"""


class ParsingError(Exception):
    """Базовое исключение для ошибок домена Freight Parser."""

    def __init__(self, message: str, component: str = None, original_error: Exception = None):
        self.message = message
        self.component = component
        self.original_error = original_error
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Parsing Error: {self.message}"
        if self.component:
            msg += f" (Component: {self.component})"
        if self.original_error:
            msg += f" [Original: {type(self.original_error).__name__}: {str(self.original_error)}]"
        return msg


class TemplateConfigurationError(ParsingError):
    """Некорректный YAML шаблона перевозчика."""
    pass


class TemplateNotFoundError(TemplateConfigurationError):
    """YAML шаблона не найден."""
    pass


class GazetteerError(ParsingError):
    """Газеттир стран/городов не загружен или повреждён."""
    pass


class PayloadValidationError(ParsingError):
    """Собранная заявка не прошла валидацию схемы."""
    pass
