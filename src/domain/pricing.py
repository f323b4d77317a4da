from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from .errors import ValidationError
from .quotation import FixedMarkup, ItineraryDay, PercentageMarkup, PricingOptions

CENT = Decimal("0.01")
HUNDRED = Decimal(100)


def round_money(value: Decimal) -> Decimal:
    """Round half-up to 2 decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingResult:
    subtotal: Decimal
    markup: Decimal
    total: Decimal
    options: PricingOptions


class PricingCalculator:
    """Derive markup and total from a subtotal and the markup rule.

    Percentage markups are rounded half-up to cents, fixed markups are taken
    as-is. Feeding a result back in yields the same result.
    """

    def recalculate(self, subtotal: Decimal | None, options: PricingOptions | None) -> PricingResult:
        if subtotal is None:
            raise ValidationError("subtotal is required", field="subtotal")
        if options is None:
            raise ValidationError("pricing options are required", field="pricingOptions")
        if subtotal < 0:
            raise ValidationError(f"subtotal must be >= 0, got {subtotal}", field="subtotal", value=subtotal)
        if options.markup_value < 0:
            raise ValidationError(
                f"markup value must be >= 0, got {options.markup_value}",
                field="markupValue",
                value=options.markup_value,
            )

        markup = self.markup_for(subtotal, options.markup)
        total = subtotal + markup
        updated_options = options.model_copy(
            update={"original_total_price": subtotal, "final_total_price": total},
        )
        return PricingResult(subtotal=subtotal, markup=markup, total=total, options=updated_options)

    @staticmethod
    def markup_for(subtotal: Decimal, markup: PercentageMarkup | FixedMarkup) -> Decimal:
        if subtotal == 0:
            return Decimal(0)
        if isinstance(markup, FixedMarkup):
            return markup.amount
        return round_money(subtotal * markup.value / HUNDRED)

    @staticmethod
    def subtotal_of(days: Iterable[ItineraryDay]) -> Decimal:
        return sum(
            (event.price for day in days for event in day.events if event.price is not None),
            start=Decimal(0),
        )


__all__ = ["CENT", "PricingCalculator", "PricingResult", "round_money"]
