from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Mapping, Protocol

from config import config
from domain.errors import ConversionError

from .open_exchange_rates_client import OpenExchangeRatesClient

logger = logging.getLogger(__name__)


class ExchangeRatesProvider(Protocol):
    """Rate tables in the CurrencySettings convention: units of currency per 1 unit of base."""

    def rates_for(self, base_currency: str, currencies: Iterable[str]) -> dict[str, Decimal]: ...


def rebase_rates(
    *,
    source_base: str,
    source_rates: Mapping[str, Decimal],
    base_currency: str,
    currencies: Iterable[str],
) -> dict[str, Decimal]:
    """Re-express rates quoted against ``source_base`` against ``base_currency``.

    The base currency itself is never included in the result.
    """
    source_base = source_base.upper()
    base = base_currency.upper()

    def resolve(currency: str) -> Decimal:
        if currency == source_base:
            return Decimal(1)
        try:
            return source_rates[currency]
        except KeyError as exc:
            msg = f"Currency {currency} not available in rates quoted against {source_base}"
            raise ConversionError(msg, currency=currency) from exc

    base_rate = resolve(base)
    rates: dict[str, Decimal] = {}
    for code in {code.strip().upper() for code in currencies}:
        if code == base:
            continue
        rates[code] = resolve(code) / base_rate
    return rates


class StaticRatesProvider(ExchangeRatesProvider):
    def __init__(self, *, base: str, rates: Mapping[str, Decimal]) -> None:
        self.base = base.upper()
        self.rates = {code.upper(): rate for code, rate in rates.items()}

    def rates_for(self, base_currency: str, currencies: Iterable[str]) -> dict[str, Decimal]:
        return rebase_rates(
            source_base=self.base,
            source_rates=self.rates,
            base_currency=base_currency,
            currencies=currencies,
        )


class OpenExchangeRatesProvider(ExchangeRatesProvider):
    def __init__(self, *, client: OpenExchangeRatesClient) -> None:
        self.client = client

    def rates_for(self, base_currency: str, currencies: Iterable[str]) -> dict[str, Decimal]:
        wanted = {code.strip().upper() for code in currencies}
        snapshot = self.client.get_latest_rates(symbols=wanted | {base_currency.strip().upper()})
        logger.info("Fetched %d latest rates against %s (%s)", len(snapshot.rates), snapshot.base, snapshot.timestamp)
        return rebase_rates(
            source_base=snapshot.base,
            source_rates=snapshot.rates,
            base_currency=base_currency,
            currencies=wanted,
        )


def build_default_provider() -> ExchangeRatesProvider:
    settings = config()
    if settings.open_exchange_rates_app_id:
        client = OpenExchangeRatesClient(
            app_id=settings.open_exchange_rates_app_id,
            base_url=settings.open_exchange_rates_base_url,
            timeout=settings.http_timeout_seconds,
        )
        return OpenExchangeRatesProvider(client=client)
    return StaticRatesProvider(base=settings.default_base_currency, rates=settings.default_exchange_rates)


__all__ = [
    "ExchangeRatesProvider",
    "OpenExchangeRatesProvider",
    "StaticRatesProvider",
    "build_default_provider",
    "rebase_rates",
]
