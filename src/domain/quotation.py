from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Annotated, Any, Literal, Mapping, NewType, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializationInfo,
    SerializerFunctionWrapHandler,
    computed_field,
    field_validator,
    model_serializer,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ValidationError

QuotationId = NewType("QuotationId", str)
CurrencyCode = NewType("CurrencyCode", str)


class RecordModel(BaseModel):
    """Base for models exchanged as plain camelCase records."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuotationStatus(StrEnum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class MarkupType(StrEnum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class VersionStatus(StrEnum):
    DRAFT = "DRAFT"
    SAVED = "SAVED"
    LOCKED = "LOCKED"


def _normalise_code(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().upper()
    return value


class Client(RecordModel):
    name: str
    email: str | None = None
    phone: str | None = None
    reference_no: str | None = None


class ItineraryEvent(RecordModel):
    """A single itinerary item.

    Only the fields the engine relies on are modelled; any other keys
    (flight numbers, hotel details, images...) are kept as-is.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    category: str = "other"
    title: str
    description: str = ""
    price: Decimal | None = None

    @field_validator("price")
    @classmethod
    def _validate_price(cls, value: Decimal | None) -> Decimal | None:
        if value is not None and value < 0:
            raise ValueError("event price must be >= 0")
        return value


class ItineraryDay(RecordModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    day: int
    date: str = ""
    title: str = ""
    description: str | None = None
    events: list[ItineraryEvent] = Field(default_factory=list)


class PercentageMarkup(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["percentage"] = "percentage"
    value: Decimal = Field(default=Decimal(0), ge=0)


class FixedMarkup(BaseModel):
    """Markup expressed as an amount in the base currency."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["fixed"] = "fixed"
    amount: Decimal = Field(default=Decimal(0), ge=0)


Markup = Annotated[Union[PercentageMarkup, FixedMarkup], Field(discriminator="kind")]

_FLAT_MARKUP_KEYS = frozenset({"markupType", "markup_type", "markupValue", "markup_value"})


def build_markup(markup_type: str | MarkupType, value: Decimal | int | str) -> PercentageMarkup | FixedMarkup:
    try:
        if markup_type == MarkupType.PERCENTAGE:
            return PercentageMarkup(value=value)
        if markup_type == MarkupType.FIXED:
            return FixedMarkup(amount=value)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid markup value {value!r}", field="markupValue", value=value) from exc
    raise ValidationError(f"Unknown markup type {markup_type!r}", field="markupType", value=markup_type)


class PricingOptions(RecordModel):
    """Display toggles plus the markup rule.

    On the wire the markup is flattened into ``markupType`` / ``markupValue``
    as in the stored documents; in memory it is a closed variant so a
    negative or mistyped markup cannot be represented.
    """

    show_individual_prices: bool = True
    show_subtotals: bool = True
    show_total: bool = True
    markup: Markup = Field(default_factory=PercentageMarkup)
    original_total_price: Decimal = Decimal(0)
    final_total_price: Decimal = Decimal(0)

    @model_validator(mode="before")
    @classmethod
    def _lift_flat_markup(cls, data: Any) -> Any:
        if not isinstance(data, Mapping) or "markup" in data:
            return data
        if not _FLAT_MARKUP_KEYS.intersection(data):
            return data

        markup_type = data.get("markupType", data.get("markup_type")) or MarkupType.PERCENTAGE
        markup_value = data.get("markupValue", data.get("markup_value"))
        if markup_value is None:
            markup_value = 0

        lifted = {key: value for key, value in data.items() if key not in _FLAT_MARKUP_KEYS}
        if markup_type == MarkupType.FIXED:
            lifted["markup"] = {"kind": "fixed", "amount": markup_value}
        else:
            lifted["markup"] = {"kind": str(markup_type), "value": markup_value}
        return lifted

    @model_serializer(mode="wrap")
    def _flatten_markup(self, handler: SerializerFunctionWrapHandler, info: SerializationInfo) -> dict[str, Any]:
        data = handler(self)
        data.pop("markup", None)
        type_key, value_key = ("markupType", "markupValue") if info.by_alias else ("markup_type", "markup_value")
        data[type_key] = self.markup_type.value
        data[value_key] = str(self.markup_value) if info.mode_is_json() else self.markup_value
        return data

    @property
    def markup_type(self) -> MarkupType:
        return MarkupType(self.markup.kind)

    @property
    def markup_value(self) -> Decimal:
        if isinstance(self.markup, FixedMarkup):
            return self.markup.amount
        return self.markup.value


class CurrencySettings(RecordModel):
    """Exchange rates are units of the keyed currency per 1 unit of base currency."""

    base_currency: str = "USD"
    display_currency: str = "USD"
    exchange_rates: dict[str, Decimal] = Field(default_factory=dict)

    @field_validator("base_currency", "display_currency", mode="before")
    @classmethod
    def _upper_codes(cls, value: Any) -> Any:
        return _normalise_code(value)

    @model_validator(mode="after")
    def _validate_rates(self) -> CurrencySettings:
        rates: dict[str, Decimal] = {}
        for code_raw, rate in self.exchange_rates.items():
            code = code_raw.strip().upper()
            if rate <= 0:
                raise ValueError(f"exchange rate for {code} must be > 0")
            if code == self.base_currency:
                # The base rate is implicitly 1 and never stored.
                if rate != 1:
                    raise ValueError(f"exchange rate for base currency {code} must be 1")
                continue
            rates[code] = rate
        self.exchange_rates = rates
        return self


class QuotationState(RecordModel):
    """Snapshot of the priced content of a quotation."""

    days: list[ItineraryDay] = Field(default_factory=list)
    pricing_options: PricingOptions = Field(default_factory=PricingOptions)
    subtotal: Decimal = Decimal(0)
    markup: Decimal = Decimal(0)
    total: Decimal = Decimal(0)
    currency_settings: CurrencySettings = Field(default_factory=CurrencySettings)


class VersionRecord(RecordModel):
    version_number: int = Field(ge=1)
    created_at: datetime
    description: str = ""
    is_locked: bool = False
    locked_by: str | None = None
    locked_at: datetime | None = None
    is_draft: bool = True
    state: QuotationState | None = None

    @property
    def status(self) -> VersionStatus:
        if self.is_locked:
            return VersionStatus.LOCKED
        if self.is_draft:
            return VersionStatus.DRAFT
        return VersionStatus.SAVED


class Quotation(RecordModel):
    id: QuotationId = Field(default_factory=lambda: QuotationId(uuid4().hex))
    itinerary_id: str | None = None
    title: str = ""
    description: str = ""
    destination: str = ""
    client: Client
    currency: str = "USD"
    days: list[ItineraryDay] = Field(default_factory=list)
    pricing_options: PricingOptions = Field(default_factory=PricingOptions)
    subtotal: Decimal = Field(default=Decimal(0), ge=0)
    markup: Decimal = Field(default=Decimal(0), ge=0)
    total: Decimal = Field(default=Decimal(0), ge=0)
    currency_settings: CurrencySettings = Field(default_factory=CurrencySettings)
    version_history: list[VersionRecord] = Field(default_factory=list)
    current_version: int = Field(default=1, ge=1)
    status: QuotationStatus = QuotationStatus.DRAFT
    generated_date: datetime | None = None
    valid_until: datetime | None = None
    notes: str = ""
    revision: int = Field(default=0, ge=0)

    @field_validator("currency", mode="before")
    @classmethod
    def _upper_currency(cls, value: Any) -> Any:
        return _normalise_code(value)

    @model_validator(mode="after")
    def _validate_history(self) -> Quotation:
        for expected, record in enumerate(self.version_history, start=1):
            if record.version_number != expected:
                raise ValueError(
                    f"versionHistory must be gapless from 1: found {record.version_number} at position {expected}"
                )
        latest = self.version_history[-1].version_number if self.version_history else 1
        if self.current_version != latest:
            raise ValueError(f"currentVersion={self.current_version} must name the latest version ({latest})")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_locked(self) -> bool:
        record = self.find_version(self.current_version)
        return record is not None and record.is_locked

    def find_version(self, version_number: int) -> VersionRecord | None:
        for record in self.version_history:
            if record.version_number == version_number:
                return record
        return None

    def working_state(self) -> QuotationState:
        return QuotationState(
            days=[day.model_copy(deep=True) for day in self.days],
            pricing_options=self.pricing_options.model_copy(deep=True),
            subtotal=self.subtotal,
            markup=self.markup,
            total=self.total,
            currency_settings=self.currency_settings.model_copy(deep=True),
        )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Quotation:
        try:
            return cls.model_validate(record)
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid quotation record: {exc}", value=record) from exc

    def to_record(self, *, json_mode: bool = True) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json" if json_mode else "python")


class Itinerary(RecordModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    title: str = ""
    description: str = ""
    destination: str = ""
    currency: str = "USD"
    days: list[ItineraryDay] = Field(default_factory=list)

    @field_validator("currency", mode="before")
    @classmethod
    def _upper_currency(cls, value: Any) -> Any:
        return _normalise_code(value)


class ClientInfo(RecordModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    reference_no: str | None = None
    notes: str | None = None


class QuotationPatch(RecordModel):
    """Changes to the working fields of the active version. ``None`` means unchanged."""

    title: str | None = None
    client: Client | None = None
    days: list[ItineraryDay] | None = None
    pricing_options: PricingOptions | None = None
    subtotal: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None
    status: QuotationStatus | None = None
    valid_until: datetime | None = None

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set if getattr(self, name) is not None}


def parse_record(model: type[RecordModel], record: Mapping[str, Any]) -> Any:
    """Validate a plain record, reporting failures as engine validation errors."""
    try:
        return model.model_validate(record)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__} record: {exc}", value=record) from exc


__all__ = [
    "Client",
    "ClientInfo",
    "CurrencyCode",
    "CurrencySettings",
    "FixedMarkup",
    "Itinerary",
    "ItineraryDay",
    "ItineraryEvent",
    "Markup",
    "MarkupType",
    "PercentageMarkup",
    "PricingOptions",
    "Quotation",
    "QuotationId",
    "QuotationPatch",
    "QuotationState",
    "QuotationStatus",
    "RecordModel",
    "VersionRecord",
    "VersionStatus",
    "build_markup",
    "parse_record",
]
