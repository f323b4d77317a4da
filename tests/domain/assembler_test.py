from datetime import timedelta
from decimal import Decimal

import pytest

from domain.assembler import DEFAULT_CLIENT_NAME, QUOTATION_VALIDITY, QuotationAssembler
from domain.errors import ValidationError
from domain.quotation import ClientInfo, CurrencySettings, Itinerary, MarkupType, Quotation, QuotationStatus, VersionStatus
from tests.constants import CLIENT_EMAIL, CLIENT_NAME
from tests.helpers.clock import START


def test_prices_the_itinerary(quotation: Quotation) -> None:
    assert quotation.subtotal == Decimal("1000")
    assert quotation.markup == Decimal("100.00")
    assert quotation.total == Decimal("1100.00")
    assert quotation.pricing_options.original_total_price == Decimal("1000")
    assert quotation.pricing_options.final_total_price == Decimal("1100.00")


def test_copies_itinerary_details(quotation: Quotation, itinerary: Itinerary) -> None:
    assert quotation.itinerary_id == itinerary.id
    assert quotation.title == itinerary.title
    assert quotation.destination == "Rajasthan"
    assert quotation.currency == "USD"
    assert quotation.days == itinerary.days
    assert quotation.client.name == CLIENT_NAME
    assert quotation.client.email == CLIENT_EMAIL


def test_days_are_copied_not_shared(assembler: QuotationAssembler, itinerary: Itinerary) -> None:
    quotation = assembler.from_itinerary(itinerary)

    itinerary.days[0].events[0].title = "Changed afterwards"

    assert quotation.days[0].events[0].title != "Changed afterwards"


def test_dates_and_status(quotation: Quotation) -> None:
    assert quotation.status == QuotationStatus.DRAFT
    assert quotation.generated_date == START
    assert quotation.valid_until == START + QUOTATION_VALIDITY
    assert QUOTATION_VALIDITY == timedelta(days=30)


def test_seeds_version_one(quotation: Quotation) -> None:
    assert quotation.current_version == 1
    assert quotation.version_history[0].status == VersionStatus.DRAFT


def test_defaults_without_client_or_options(assembler: QuotationAssembler, itinerary: Itinerary) -> None:
    quotation = assembler.from_itinerary(itinerary, ClientInfo())

    assert quotation.client.name == DEFAULT_CLIENT_NAME
    assert quotation.client.email == ""
    assert quotation.client.phone == ""
    assert quotation.client.reference_no == ""
    assert quotation.notes == ""

    options = quotation.pricing_options
    assert options.show_individual_prices and options.show_subtotals and options.show_total
    assert options.markup_type == MarkupType.PERCENTAGE
    assert options.markup_value == Decimal(0)
    assert quotation.total == quotation.subtotal

    assert quotation.currency_settings.base_currency == "USD"
    assert quotation.currency_settings.exchange_rates == {}


def test_client_notes_become_quotation_notes(assembler: QuotationAssembler, itinerary: Itinerary) -> None:
    quotation = assembler.from_itinerary(itinerary, ClientInfo(name="Lin", notes="Honeymoon"))

    assert quotation.notes == "Honeymoon"


def test_rejects_settings_in_another_base(assembler: QuotationAssembler, itinerary: Itinerary) -> None:
    with pytest.raises(ValidationError) as exc_info:
        assembler.from_itinerary(itinerary, currency_settings=CurrencySettings(base_currency="EUR"))

    assert exc_info.value.field == "currencySettings.baseCurrency"


def test_empty_itinerary_costs_nothing(assembler: QuotationAssembler) -> None:
    quotation = assembler.from_itinerary(Itinerary(id="empty", currency="inr"))

    assert quotation.currency == "INR"
    assert quotation.subtotal == Decimal(0)
    assert quotation.total == Decimal(0)
    assert quotation.currency_settings.base_currency == "INR"
