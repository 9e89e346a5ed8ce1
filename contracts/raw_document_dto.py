"""
DTO контракт: PDF-to-text -> Freight Parser

Входной артефакт: упорядоченные строки текста документа
и (опционально) имя исходного файла вложения.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RawDocument(BaseModel):
    """
    Сырой документ, как его отдаёт внешний конвертер PDF → текст.

    Порядок строк значим: близость строк кодирует раскладку документа.
    """

    lines: list[str] = Field(default_factory=list, description="Строки текста в порядке документа")
    attachment_filename: str | None = Field(None, description="Имя исходного PDF файла")

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @field_validator("lines", mode="before")
    @classmethod
    def coerce_lines(cls, v):
        # None и не-строки приводим к строкам, чтобы нормализатор не падал
        if v is None:
            return []
        return ["" if line is None else str(line) for line in v]
