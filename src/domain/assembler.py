from __future__ import annotations

import logging
from datetime import timedelta

from .errors import ValidationError
from .pricing import PricingCalculator
from .quotation import Client, ClientInfo, CurrencySettings, Itinerary, PricingOptions, Quotation, QuotationStatus
from .versioning import Clock, VersionManager, utc_now

logger = logging.getLogger(__name__)

QUOTATION_VALIDITY = timedelta(days=30)
DEFAULT_CLIENT_NAME = "Client"


class QuotationAssembler:
    """Build a draft quotation (version 1) from an itinerary."""

    def __init__(
        self,
        *,
        calculator: PricingCalculator | None = None,
        versions: VersionManager | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._calculator = calculator or PricingCalculator()
        self._versions = versions or VersionManager(clock=clock)
        self._clock = clock

    def from_itinerary(
        self,
        itinerary: Itinerary,
        client_info: ClientInfo | None = None,
        pricing_options: PricingOptions | None = None,
        *,
        currency_settings: CurrencySettings | None = None,
    ) -> Quotation:
        settings = currency_settings or CurrencySettings(
            base_currency=itinerary.currency,
            display_currency=itinerary.currency,
        )
        if settings.base_currency != itinerary.currency:
            raise ValidationError(
                f"Base currency {settings.base_currency} does not match itinerary currency {itinerary.currency}",
                field="currencySettings.baseCurrency",
                value=settings.base_currency,
            )

        days = [day.model_copy(deep=True) for day in itinerary.days]
        subtotal = self._calculator.subtotal_of(days)
        pricing = self._calculator.recalculate(subtotal, pricing_options or PricingOptions())

        info = client_info or ClientInfo()
        client = Client(
            name=info.name or DEFAULT_CLIENT_NAME,
            email=info.email or "",
            phone=info.phone or "",
            reference_no=info.reference_no or "",
        )

        now = self._clock()
        quotation = Quotation(
            itinerary_id=itinerary.id,
            title=itinerary.title,
            description=itinerary.description,
            destination=itinerary.destination,
            client=client,
            currency=itinerary.currency,
            days=days,
            pricing_options=pricing.options,
            subtotal=pricing.subtotal,
            markup=pricing.markup,
            total=pricing.total,
            currency_settings=settings,
            status=QuotationStatus.DRAFT,
            generated_date=now,
            valid_until=now + QUOTATION_VALIDITY,
            notes=info.notes or "",
        )
        logger.info(
            "Assembled quotation %s from itinerary %s: subtotal=%s total=%s %s",
            quotation.id,
            itinerary.id,
            pricing.subtotal,
            pricing.total,
            itinerary.currency,
        )
        return self._versions.create(quotation)


__all__ = ["QUOTATION_VALIDITY", "QuotationAssembler"]
