from __future__ import annotations

from dataclasses import dataclass, field

from domain.currency import QuotationView, format_money
from domain.quotation import FixedMarkup, Quotation, VersionStatus

from .formatting import format_decimal, format_percentage, format_timestamp


@dataclass
class VersionSummary:
    version_number: int
    status: VersionStatus
    description: str
    created: str
    locked_by: str | None = None


@dataclass
class QuotationSummary:
    quotation_id: str
    title: str
    client_name: str
    currency: str
    display_currency: str
    markup_label: str
    lines: list[tuple[str, str]] = field(default_factory=list)
    totals: list[tuple[str, str]] = field(default_factory=list)
    rates: list[tuple[str, str]] = field(default_factory=list)
    versions: list[VersionSummary] = field(default_factory=list)
    current_version: int = 1
    is_locked: bool = False


def compute_quotation_summary(quotation: Quotation, view: QuotationView) -> QuotationSummary:
    options = quotation.pricing_options
    if isinstance(options.markup, FixedMarkup):
        markup_label = f"fixed {format_money(options.markup.amount, quotation.currency)}"
    else:
        markup_label = f"percentage {format_percentage(options.markup.value)}"

    lines: list[tuple[str, str]] = []
    if options.show_individual_prices:
        for event in view.events:
            if event.display_price is None:
                continue
            lines.append((f"Day {event.day}: {event.title}", view.formatted(event.display_price)))

    totals: list[tuple[str, str]] = []
    if options.show_subtotals:
        totals.append(("Subtotal", view.formatted(view.display_subtotal)))
        totals.append(("Markup", view.formatted(view.display_markup)))
    if options.show_total:
        totals.append(("Total", view.formatted(view.display_total)))

    rates = [
        (code, format_decimal(rate))
        for code, rate in sorted(quotation.currency_settings.exchange_rates.items(), key=lambda item: item[0])
    ]

    versions = [
        VersionSummary(
            version_number=record.version_number,
            status=record.status,
            description=record.description,
            created=format_timestamp(record.created_at),
            locked_by=record.locked_by,
        )
        for record in quotation.version_history
    ]

    return QuotationSummary(
        quotation_id=quotation.id,
        title=quotation.title,
        client_name=quotation.client.name,
        currency=quotation.currency,
        display_currency=view.display_currency,
        markup_label=markup_label,
        lines=lines,
        totals=totals,
        rates=rates,
        versions=versions,
        current_version=quotation.current_version,
        is_locked=quotation.is_locked,
    )


def _render_table(rows: list[tuple[str, str]], *, label: str, value_label: str) -> list[str]:
    label_width = max(len(label), max((len(name) for name, _ in rows), default=0))
    value_width = max(len(value_label), max((len(value) for _, value in rows), default=0))
    header = f"{label:<{label_width}} {value_label:>{value_width}}"
    lines = [header, "-" * len(header)]
    for name, value in rows:
        lines.append(f"{name:<{label_width}} {value:>{value_width}}")
    lines.append("-" * len(header))
    return lines


def render_quotation_summary(summary: QuotationSummary) -> str:
    lock_text = " (locked)" if summary.is_locked else ""
    output = [
        f"Quotation {summary.quotation_id}: {summary.title or '(untitled)'}",
        f"  Client: {summary.client_name}",
        f"  Version: v{summary.current_version}{lock_text}",
        f"  Markup: {summary.markup_label}",
        f"  Prices in {summary.display_currency} (stored in {summary.currency})",
        "",
    ]

    if summary.lines:
        output.extend(_render_table(summary.lines, label="Item", value_label=summary.display_currency))
    if summary.totals:
        output.extend(_render_table(summary.totals, label="Totals", value_label="Amount"))

    if summary.rates:
        output.append(f"Exchange rates per 1 {summary.currency}:")
        output.extend(f"  {code}: {rate}" for code, rate in summary.rates)

    output.append("Versions:")
    for version in summary.versions:
        locked = f" by {version.locked_by}" if version.locked_by else ""
        output.append(
            f"  v{version.version_number} {version.status.value}{locked} {version.created} {version.description}"
        )
    return "\n".join(output)

