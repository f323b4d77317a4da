from decimal import Decimal
from typing import Any

import pytest
from pydantic import ValidationError as PydanticValidationError

from domain.errors import ValidationError
from domain.quotation import (
    CurrencySettings,
    FixedMarkup,
    Itinerary,
    ItineraryEvent,
    PercentageMarkup,
    PricingOptions,
    Quotation,
    QuotationPatch,
    VersionRecord,
    VersionStatus,
    parse_record,
)
from tests.helpers.clock import START


def test_record_uses_camel_case_and_flat_markup(quotation: Quotation) -> None:
    record = quotation.to_record()

    assert record["currentVersion"] == 1
    assert record["isLocked"] is False
    assert record["pricingOptions"]["markupType"] == "percentage"
    assert record["pricingOptions"]["markupValue"] == "10"
    assert record["pricingOptions"]["showIndividualPrices"] is True
    assert "markup" not in record["pricingOptions"]
    assert record["versionHistory"][0]["versionNumber"] == 1
    assert record["currencySettings"]["exchangeRates"] == {"EUR": "0.92", "INR": "83.13"}


def test_record_loads_back(quotation: Quotation) -> None:
    record = quotation.to_record()

    loaded = Quotation.from_record(record)

    assert loaded.to_record() == record
    assert loaded.total == Decimal("1100.00")


def test_flat_markup_fields_are_parsed() -> None:
    fixed = PricingOptions.model_validate({"markupType": "fixed", "markupValue": 250})
    percentage = PricingOptions.model_validate({"markup_type": "percentage", "markup_value": "12.5"})

    assert fixed.markup == FixedMarkup(amount=Decimal("250"))
    assert percentage.markup == PercentageMarkup(value=Decimal("12.5"))
    assert PricingOptions.model_validate({"showTotal": False}).markup == PercentageMarkup()


def test_python_dump_keeps_decimals(quotation: Quotation) -> None:
    options = quotation.pricing_options.model_dump()

    assert options["markup_type"] == "percentage"
    assert options["markup_value"] == Decimal("10")


@pytest.mark.parametrize(
    "pricing_options",
    [
        {"markupType": "discount", "markupValue": 5},
        {"markupType": "percentage", "markupValue": -5},
        {"markupType": "fixed", "markupValue": "lots"},
    ],
)
def test_invalid_markup_is_rejected(pricing_options: dict[str, Any]) -> None:
    with pytest.raises(PydanticValidationError):
        PricingOptions.model_validate(pricing_options)


def test_from_record_reports_engine_validation_error(quotation: Quotation) -> None:
    record = quotation.to_record()
    record["pricingOptions"]["markupType"] = "discount"

    with pytest.raises(ValidationError):
        Quotation.from_record(record)


def test_is_locked_is_derived_not_read(quotation: Quotation) -> None:
    record = quotation.to_record()
    record["isLocked"] = True

    assert Quotation.from_record(record).is_locked is False


def test_history_must_be_gapless(quotation: Quotation) -> None:
    record = quotation.to_record()
    third = dict(record["versionHistory"][0], versionNumber=3)
    record["versionHistory"].append(third)
    record["currentVersion"] = 3

    with pytest.raises(ValidationError):
        Quotation.from_record(record)


def test_current_version_must_name_latest(quotation: Quotation) -> None:
    record = quotation.to_record()
    second = dict(record["versionHistory"][0], versionNumber=2)
    record["versionHistory"].append(second)

    with pytest.raises(ValidationError):
        Quotation.from_record(record)


def test_currency_settings_are_normalised() -> None:
    settings = CurrencySettings.model_validate(
        {"baseCurrency": " usd", "displayCurrency": "eur", "exchangeRates": {"usd": 1, "eur": "0.92"}}
    )

    assert settings.base_currency == "USD"
    assert settings.display_currency == "EUR"
    assert settings.exchange_rates == {"EUR": Decimal("0.92")}


@pytest.mark.parametrize("rates", [{"EUR": 0}, {"EUR": "-0.5"}, {"USD": 2}])
def test_currency_settings_reject_bad_rates(rates: dict[str, Any]) -> None:
    with pytest.raises(PydanticValidationError):
        CurrencySettings(base_currency="USD", exchange_rates=rates)


def test_event_keeps_unmodelled_fields() -> None:
    event = ItineraryEvent.model_validate(
        {"id": "flight-1", "category": "flight", "title": "DEL to JAI", "price": "120", "flightNumber": "AI-491"}
    )

    dumped = event.model_dump(by_alias=True, mode="json")

    assert dumped["flightNumber"] == "AI-491"
    assert dumped["price"] == "120"


def test_negative_event_price_is_rejected() -> None:
    with pytest.raises(ValidationError):
        parse_record(ItineraryEvent, {"id": "e", "title": "Refund", "price": "-1"})


def test_itinerary_ignores_unknown_fields() -> None:
    itinerary = parse_record(Itinerary, {"id": "it-1", "currency": "eur", "createdBy": "agent"})

    assert itinerary.currency == "EUR"
    assert not hasattr(itinerary, "createdBy")


def test_version_status_follows_flags() -> None:
    record = VersionRecord(version_number=1, created_at=START)
    assert record.status == VersionStatus.DRAFT

    record.is_draft = False
    assert record.status == VersionStatus.SAVED

    record.is_locked = True
    assert record.status == VersionStatus.LOCKED


def test_patch_changes_skip_unset_and_none() -> None:
    patch = QuotationPatch(title="New title", notes=None)

    assert patch.changes() == {"title": "New title"}
