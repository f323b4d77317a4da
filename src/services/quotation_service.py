from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, Iterable, Protocol

from domain.assembler import QuotationAssembler
from domain.currency import QuotationView
from domain.engine import QuotationEngine
from domain.errors import ConflictError
from domain.quotation import (
    ClientInfo,
    CurrencySettings,
    Itinerary,
    PricingOptions,
    Quotation,
    QuotationPatch,
    VersionRecord,
    parse_record,
)

from .exchange_rates import ExchangeRatesProvider, build_default_provider

logger = logging.getLogger(__name__)


class QuotationStore(Protocol):
    def load(self, quotation_id: str) -> Quotation: ...

    def store(self, quotation: Quotation, expected_revision: int | None = None) -> Quotation: ...


class QuotationService:
    """Load a quotation, apply one engine operation, store it back.

    Engine errors surface before the store is touched; the store is always
    given the revision that was loaded.
    """

    def __init__(
        self,
        store: QuotationStore,
        *,
        engine: QuotationEngine | None = None,
        assembler: QuotationAssembler | None = None,
        rates_provider: ExchangeRatesProvider | None = None,
    ) -> None:
        self.store = store
        self.engine = engine or QuotationEngine()
        self.assembler = assembler or QuotationAssembler()
        self._rates_provider = rates_provider

    @property
    def rates_provider(self) -> ExchangeRatesProvider:
        if self._rates_provider is None:
            self._rates_provider = build_default_provider()
        return self._rates_provider

    def get(self, quotation_id: str) -> Quotation:
        return self.store.load(quotation_id)

    def create_from_itinerary(
        self,
        itinerary: Itinerary,
        client_info: ClientInfo | None = None,
        pricing_options: PricingOptions | None = None,
        *,
        currency_settings: CurrencySettings | None = None,
    ) -> Quotation:
        quotation = self.assembler.from_itinerary(
            itinerary,
            client_info,
            pricing_options,
            currency_settings=currency_settings,
        )
        return self.store.store(quotation)

    def recalculate(
        self, quotation_id: str, options: PricingOptions, *, expected_revision: int | None = None
    ) -> Quotation:
        return self._apply(quotation_id, lambda q: self.engine.recalculate(q, options), expected_revision)

    def edit(self, quotation_id: str, patch: QuotationPatch, *, expected_revision: int | None = None) -> Quotation:
        return self._apply(quotation_id, lambda q: self.engine.edit(q, patch), expected_revision)

    def update_currency_settings(
        self, quotation_id: str, settings: CurrencySettings, *, expected_revision: int | None = None
    ) -> Quotation:
        return self._apply(
            quotation_id,
            lambda q: self.engine.update_currency_settings(q, settings),
            expected_revision,
        )

    def refresh_exchange_rates(
        self,
        quotation_id: str,
        currencies: Iterable[str] | None = None,
        *,
        expected_revision: int | None = None,
    ) -> Quotation:
        def refresh(quotation: Quotation) -> Quotation:
            current = quotation.currency_settings
            wanted = set(currencies) if currencies is not None else set(current.exchange_rates)
            wanted.add(current.display_currency)
            rates = self.rates_provider.rates_for(current.base_currency, wanted)
            settings = parse_record(
                CurrencySettings,
                {
                    "baseCurrency": current.base_currency,
                    "displayCurrency": current.display_currency,
                    "exchangeRates": rates,
                },
            )
            return self.engine.update_currency_settings(quotation, settings)

        return self._apply(quotation_id, refresh, expected_revision)

    def save_draft(self, quotation_id: str, *, expected_revision: int | None = None) -> Quotation:
        return self._apply(quotation_id, self.engine.save_draft, expected_revision)

    def lock_version(
        self, quotation_id: str, locked_by: str | None = None, *, expected_revision: int | None = None
    ) -> Quotation:
        return self._apply(quotation_id, lambda q: self.engine.lock_version(q, locked_by), expected_revision)

    def create_version(
        self, quotation_id: str, description: str, *, expected_revision: int | None = None
    ) -> Quotation:
        return self._apply(quotation_id, lambda q: self.engine.create_version(q, description), expected_revision)

    def restore_version(
        self, quotation_id: str, version_number: int, *, expected_revision: int | None = None
    ) -> Quotation:
        return self._apply(
            quotation_id,
            lambda q: self.engine.restore_version(q, version_number),
            expected_revision,
        )

    def view_version(self, quotation_id: str, version_number: int) -> VersionRecord:
        return self.engine.view_version(self.store.load(quotation_id), version_number)

    def convert_for_display(
        self,
        quotation_id: str,
        display_currency: str | None = None,
        *,
        fallback_rate: Decimal | None = None,
    ) -> QuotationView:
        quotation = self.store.load(quotation_id)
        return self.engine.convert_for_display(quotation, display_currency, fallback_rate=fallback_rate)

    def _apply(
        self,
        quotation_id: str,
        operation: Callable[[Quotation], Quotation],
        expected_revision: int | None,
    ) -> Quotation:
        quotation = self.store.load(quotation_id)
        if expected_revision is not None and expected_revision != quotation.revision:
            raise ConflictError(
                quotation_id=quotation_id,
                expected_revision=expected_revision,
                actual_revision=quotation.revision,
            )

        updated = operation(quotation)
        stored = self.store.store(updated, expected_revision=quotation.revision)
        logger.debug("Quotation %s: revision %d -> %d", quotation_id, quotation.revision, stored.revision)
        return stored


__all__ = ["QuotationService", "QuotationStore"]
