from __future__ import annotations

import logging
from decimal import Decimal

from .currency import CurrencyConverter, QuotationView
from .errors import ValidationError
from .pricing import PricingCalculator
from .quotation import CurrencySettings, PricingOptions, Quotation, QuotationPatch, VersionRecord
from .versioning import VersionManager

logger = logging.getLogger(__name__)


class QuotationEngine:
    """Operations applied to a loaded quotation.

    Every method returns a new aggregate (or a view) and never mutates its
    input. Mutations of a locked version fail before anything is returned.
    """

    def __init__(
        self,
        *,
        calculator: PricingCalculator | None = None,
        converter: CurrencyConverter | None = None,
        versions: VersionManager | None = None,
    ) -> None:
        self._calculator = calculator or PricingCalculator()
        self._converter = converter or CurrencyConverter()
        self._versions = versions or VersionManager()

    @property
    def versions(self) -> VersionManager:
        return self._versions

    def recalculate(self, quotation: Quotation, options: PricingOptions) -> Quotation:
        updated = self.edit(quotation, QuotationPatch(pricing_options=options))
        logger.info(
            "Quotation %s: recalculated markup=%s total=%s (%s %s)",
            quotation.id,
            updated.markup,
            updated.total,
            options.markup_type,
            options.markup_value,
        )
        return updated

    def edit(self, quotation: Quotation, patch: QuotationPatch) -> Quotation:
        self._versions.ensure_editable(quotation)

        changes = patch.changes()
        if "subtotal" in changes:
            subtotal = changes["subtotal"]
        elif "days" in changes:
            subtotal = self._calculator.subtotal_of(changes["days"])
        else:
            subtotal = quotation.subtotal

        pricing = self._calculator.recalculate(subtotal, changes.get("pricing_options", quotation.pricing_options))
        changes.update(
            subtotal=pricing.subtotal,
            markup=pricing.markup,
            total=pricing.total,
            pricing_options=pricing.options,
        )
        return self._versions.edit(quotation, changes)

    def update_currency_settings(self, quotation: Quotation, settings: CurrencySettings) -> Quotation:
        if settings.base_currency != quotation.currency:
            raise ValidationError(
                f"Base currency {settings.base_currency} does not match quotation currency {quotation.currency}",
                field="currencySettings.baseCurrency",
                value=settings.base_currency,
            )
        return self._versions.edit(quotation, {"currency_settings": settings})

    def convert_for_display(
        self,
        quotation: Quotation,
        display_currency: str | None = None,
        *,
        fallback_rate: Decimal | None = None,
    ) -> QuotationView:
        converter = self._converter if fallback_rate is None else CurrencyConverter(fallback_rate=fallback_rate)
        return converter.convert_quotation(quotation, display_currency)

    def save_draft(self, quotation: Quotation) -> Quotation:
        return self._versions.save_draft(quotation)

    def lock_version(self, quotation: Quotation, locked_by: str | None = None) -> Quotation:
        return self._versions.lock_version(quotation, locked_by)

    def create_version(self, quotation: Quotation, description: str) -> Quotation:
        return self._versions.create_version(quotation, description)

    def view_version(self, quotation: Quotation, version_number: int) -> VersionRecord:
        return self._versions.view(quotation, version_number)

    def restore_version(self, quotation: Quotation, version_number: int) -> Quotation:
        restored = self._versions.restore(quotation, version_number)
        pricing = self._calculator.recalculate(restored.subtotal, restored.pricing_options)
        return restored.model_copy(
            update={"markup": pricing.markup, "total": pricing.total, "pricing_options": pricing.options},
        )


__all__ = ["QuotationEngine"]
