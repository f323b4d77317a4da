from __future__ import annotations

import logging
from decimal import Decimal
from typing import Mapping

from pydantic import Field

from .errors import ConversionError
from .pricing import round_money
from .quotation import FixedMarkup, Quotation, RecordModel

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "INR": "₹",
    "GBP": "£",
    "JPY": "¥",
    "AUD": "A$",
    "CAD": "C$",
    "SGD": "S$",
}


def convert(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    rates: Mapping[str, Decimal],
    base: str = "USD",
    *,
    fallback_rate: Decimal | None = None,
) -> Decimal:
    """Convert ``amount`` using rates quoted against ``base``.

    A currency missing from ``rates`` raises ConversionError unless the
    caller opts into ``fallback_rate``.
    """
    source = from_currency.strip().upper()
    target = to_currency.strip().upper()
    base_code = base.strip().upper()
    if source == target:
        return amount

    table = {code.strip().upper(): rate for code, rate in rates.items()}
    if source == base_code:
        return amount * _resolve_rate(target, table, base_code, amount=amount, fallback_rate=fallback_rate)
    if target == base_code:
        return amount / _resolve_rate(source, table, base_code, amount=amount, fallback_rate=fallback_rate)

    amount_in_base = amount / _resolve_rate(source, table, base_code, amount=amount, fallback_rate=fallback_rate)
    return amount_in_base * _resolve_rate(target, table, base_code, amount=amount, fallback_rate=fallback_rate)


def _resolve_rate(
    currency: str,
    rates: Mapping[str, Decimal],
    base: str,
    *,
    amount: Decimal,
    fallback_rate: Decimal | None,
) -> Decimal:
    if currency == base:
        return Decimal(1)

    rate = rates.get(currency)
    if rate is None:
        if fallback_rate is None:
            raise ConversionError(
                f"No exchange rate for {currency} against base {base}",
                currency=currency,
                amount=amount,
            )
        logger.warning("Missing exchange rate for %s against %s; using fallback rate %s", currency, base, fallback_rate)
        rate = fallback_rate

    if rate <= 0:
        raise ConversionError(f"Exchange rate for {currency} must be > 0, got {rate}", currency=currency, amount=amount)
    return rate


def format_money(amount: Decimal, currency: str) -> str:
    code = currency.strip().upper()
    symbol = CURRENCY_SYMBOLS.get(code, code)
    return f"{symbol}{round_money(amount):.2f}"


class DisplayEvent(RecordModel):
    day: int
    event_id: str
    title: str
    price: Decimal | None = None
    display_price: Decimal | None = None


class QuotationView(RecordModel):
    """Stored figures next to their display-currency counterparts."""

    quotation_id: str
    base_currency: str
    display_currency: str
    subtotal: Decimal
    markup: Decimal
    total: Decimal
    display_subtotal: Decimal
    display_markup: Decimal
    display_total: Decimal
    display_original_total_price: Decimal
    display_final_total_price: Decimal
    display_markup_value: Decimal | None = None
    events: list[DisplayEvent] = Field(default_factory=list)

    def formatted(self, amount: Decimal) -> str:
        return format_money(amount, self.display_currency)


class CurrencyConverter:
    def __init__(self, *, fallback_rate: Decimal | None = None) -> None:
        self._fallback_rate = fallback_rate

    def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        rates: Mapping[str, Decimal],
        base: str = "USD",
    ) -> Decimal:
        return convert(amount, from_currency, to_currency, rates, base, fallback_rate=self._fallback_rate)

    def format(self, amount: Decimal, currency: str) -> str:
        return format_money(amount, currency)

    def convert_quotation(self, quotation: Quotation, display_currency: str | None = None) -> QuotationView:
        settings = quotation.currency_settings
        base = settings.base_currency
        target = (display_currency or settings.display_currency).strip().upper()

        def to_display(amount: Decimal) -> Decimal:
            return round_money(self.convert(amount, base, target, settings.exchange_rates, base))

        options = quotation.pricing_options
        events = [
            DisplayEvent(
                day=day.day,
                event_id=event.id,
                title=event.title,
                price=event.price,
                display_price=to_display(event.price) if event.price is not None else None,
            )
            for day in quotation.days
            for event in day.events
        ]
        display_markup_value = to_display(options.markup.amount) if isinstance(options.markup, FixedMarkup) else None

        return QuotationView(
            quotation_id=quotation.id,
            base_currency=base,
            display_currency=target,
            subtotal=quotation.subtotal,
            markup=quotation.markup,
            total=quotation.total,
            display_subtotal=to_display(quotation.subtotal),
            display_markup=to_display(quotation.markup),
            display_total=to_display(quotation.total),
            display_original_total_price=to_display(options.original_total_price),
            display_final_total_price=to_display(options.final_total_price),
            display_markup_value=display_markup_value,
            events=events,
        )


__all__ = [
    "CURRENCY_SYMBOLS",
    "CurrencyConverter",
    "DisplayEvent",
    "QuotationView",
    "convert",
    "format_money",
]
