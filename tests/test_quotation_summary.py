from decimal import Decimal

from domain.currency import CurrencyConverter
from domain.engine import QuotationEngine
from domain.quotation import FixedMarkup, PricingOptions, Quotation, VersionStatus
from utils.quotation_summary import compute_quotation_summary, render_quotation_summary


def test_summary_in_display_currency(quotation: Quotation) -> None:
    view = CurrencyConverter().convert_quotation(quotation, "EUR")

    summary = compute_quotation_summary(quotation, view)

    assert summary.client_name == "Ada Traveller"
    assert summary.markup_label == "percentage 10%"
    assert summary.display_currency == "EUR"
    assert [value for _, value in summary.lines] == ["€368.00", "€230.00", "€322.00"]
    assert summary.totals == [("Subtotal", "€920.00"), ("Markup", "€92.00"), ("Total", "€1012.00")]
    assert summary.rates == [("EUR", "0.92"), ("INR", "83.13")]
    assert [(v.version_number, v.status) for v in summary.versions] == [(1, VersionStatus.DRAFT)]


def test_summary_respects_display_toggles(quotation_engine: QuotationEngine, quotation: Quotation) -> None:
    options = PricingOptions(
        show_individual_prices=False,
        show_subtotals=False,
        markup=FixedMarkup(amount=Decimal("40")),
    )
    updated = quotation_engine.recalculate(quotation, options)
    view = quotation_engine.convert_for_display(updated)

    summary = compute_quotation_summary(updated, view)

    assert summary.lines == []
    assert summary.totals == [("Total", "$1040.00")]
    assert summary.markup_label == "fixed $40.00"


def test_render_summary(quotation_engine: QuotationEngine, quotation: Quotation) -> None:
    locked = quotation_engine.lock_version(quotation, "alice")
    view = quotation_engine.convert_for_display(locked, "INR")

    rendered = render_quotation_summary(compute_quotation_summary(locked, view))

    assert f"Quotation {locked.id}: Rajasthan Highlights" in rendered
    assert "Version: v1 (locked)" in rendered
    assert "Prices in INR (stored in USD)" in rendered
    assert "₹91443.00" in rendered
    assert "v1 LOCKED by alice" in rendered
