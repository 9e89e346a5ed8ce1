"""
DTO контракт: Freight Parser -> Persistence (createOrder)

Нормализованная заявка на перевозку. Имена полей и вложенность
зафиксированы внешней схемой заказа.

ВАЖНО: order_reference и freight_price обязательны и не могут быть null,
loading_locations / destination_locations / cargos не могут быть пустыми.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PackageType(str, Enum):
    """Категория упаковки груза."""

    PALLET = "pallet"
    EPAL = "epal"
    PACKAGE = "package"
    CARTON = "carton"
    BOX = "box"
    COLLI = "colli"
    CRATE = "crate"
    DRUM = "drum"
    ROLL = "roll"
    OTHER = "other"


class FieldSource(str, Enum):
    """
    Происхождение значения поля.

    explicit    - найдено по явной метке в документе
    heuristic   - найдено эвристикой (позиция, структура строк)
    fallback    - синтезировано из вторичного источника (имя файла, дефолт шаблона)
    placeholder - подставлена заглушка, данных нет
    """

    EXPLICIT = "explicit"
    HEURISTIC = "heuristic"
    FALLBACK = "fallback"
    PLACEHOLDER = "placeholder"


class Address(BaseModel):
    """Адрес участника перевозки (заказчик, место погрузки/выгрузки)."""

    company: str | None = Field(None, description="Название компании")
    street_address: str | None = Field(None, description="Улица и номер дома")
    city: str | None = Field(None, description="Город")
    postal_code: str | None = Field(None, description="Почтовый индекс")
    country: str | None = Field(None, description="ISO код страны (GB, FR, LT)")
    vat_code: str | None = Field(None, description="VAT / TVA номер")
    email: str | None = Field(None, description="Email контакта")
    contact_person: str | None = Field(None, description="Контактное лицо")
    comment: str | None = Field(None, description="Комментарий к адресу")

    model_config = ConfigDict(frozen=True, from_attributes=True)

    def is_empty(self) -> bool:
        return not any(self.model_dump(exclude_none=True).values())


class TimeWindow(BaseModel):
    """Временное окно остановки. datetime_to только при явном времени окончания."""

    datetime_from: datetime = Field(..., description="Начало окна (локальное время)")
    datetime_to: datetime | None = Field(None, description="Конец окна (локальное время)")

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Stop(BaseModel):
    """Остановка: место погрузки или выгрузки + временное окно."""

    company_address: Address = Field(default_factory=Address, description="Адрес остановки")
    time: TimeWindow | None = Field(None, description="Временное окно")

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Customer(BaseModel):
    """Заказчик перевозки."""

    side: str = Field("none", description="Сторона заказчика в перевозке")
    details: Address = Field(default_factory=Address, description="Реквизиты заказчика")

    model_config = ConfigDict(frozen=True, from_attributes=True)


class Cargo(BaseModel):
    """
    Груз. Гибкий набор атрибутов, обязателен только title.

    Неизвестные атрибуты разрешены (extra="allow") - шаблоны могут
    добавлять свои поля.
    """

    title: str = Field(..., min_length=1, description="Наименование груза")
    type: str | None = Field(None, description="FTL / LTL")
    package_count: int | None = Field(None, description="Количество мест")
    package_type: PackageType | None = Field(None, description="Тип упаковки")
    weight: float | None = Field(None, description="Вес, кг")
    ldm: float | None = Field(None, description="Погрузочные метры")
    volume: float | None = Field(None, description="Объём, м3")
    value: float | None = Field(None, description="Стоимость груза")
    currency: str | None = Field(None, description="Валюта стоимости груза")
    pkg_length: float | None = Field(None, description="Длина места, см")
    pkg_width: float | None = Field(None, description="Ширина места, см")
    pkg_height: float | None = Field(None, description="Высота места, см")
    temperature_min: float | None = Field(None, description="Мин. температура, °C")
    temperature_max: float | None = Field(None, description="Макс. температура, °C")
    adr: bool | None = Field(None, description="Опасный груз (ADR)")
    tail_lift: bool | None = Field(None, description="Нужен гидроборт")
    palletized: bool | None = Field(None, description="Груз на паллетах")
    manual_load: bool | None = Field(None, description="Ручная погрузка")

    model_config = ConfigDict(frozen=True, from_attributes=True, extra="allow")

    @field_validator("package_count")
    @classmethod
    def validate_package_count(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("package_count must be positive")
        return v

    @field_validator("weight", "ldm", "volume", "value")
    @classmethod
    def validate_non_negative(cls, v: float | None) -> float | None:
        if v is not None and v < 0:
            raise ValueError("Cargo measures must be non-negative")
        return v


class OrderPayload(BaseModel):
    """
    Итоговая заявка на перевозку.

    Это output движка извлечения. Передаётся во внешний createOrder.
    """

    attachment_filenames: list[str] = Field(default_factory=list, description="Исходные файлы")
    customer: Customer = Field(default_factory=Customer, description="Заказчик")
    order_reference: str = Field(..., min_length=1, description="Номер заказа / букинга")
    freight_price: float = Field(..., description="Ставка фрахта")
    freight_currency: str = Field("EUR", description="Валюта фрахта (ISO 4217)")
    loading_locations: list[Stop] = Field(..., min_length=1, description="Места погрузки")
    destination_locations: list[Stop] = Field(..., min_length=1, description="Места выгрузки")
    cargos: list[Cargo] = Field(..., min_length=1, description="Грузы")
    comment: str | None = Field(None, description="Свободный комментарий / инструкции")

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @field_validator("freight_price")
    @classmethod
    def validate_freight_price(cls, v: float) -> float:
        if v < 0:
            raise ValueError("freight_price must be non-negative")
        return v

    @field_validator("freight_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError(f"Invalid currency code: {v}")
        return v

    def to_schema_dict(self) -> dict:
        """Словарь в форме внешней схемы заказа (JSON-совместимый)."""
        return self.model_dump(mode="json", exclude_none=True)
