from decimal import Decimal
from typing import Generator

import pytest

from config import config
from domain.errors import ConversionError
from services.exchange_rates import (
    OpenExchangeRatesProvider,
    StaticRatesProvider,
    build_default_provider,
    rebase_rates,
)

SOURCE = {"EUR": Decimal("0.8"), "GBP": Decimal("0.5"), "INR": Decimal("80")}


@pytest.fixture()
def fresh_config(monkeypatch: pytest.MonkeyPatch) -> Generator[pytest.MonkeyPatch, None, None]:
    monkeypatch.delenv("QUOTATION_OPEN_EXCHANGE_RATES_APP_ID", raising=False)
    config.cache_clear()
    yield monkeypatch
    config.cache_clear()


def test_rebase_to_source_base_is_identity() -> None:
    rates = rebase_rates(source_base="USD", source_rates=SOURCE, base_currency="usd", currencies=["eur", "INR"])

    assert rates == {"EUR": Decimal("0.8"), "INR": Decimal("80")}


def test_rebase_to_other_base() -> None:
    rates = rebase_rates(source_base="USD", source_rates=SOURCE, base_currency="EUR", currencies=["USD", "GBP", "EUR"])

    assert rates == {"USD": Decimal("1.25"), "GBP": Decimal("0.625")}


def test_rebase_missing_currency() -> None:
    with pytest.raises(ConversionError) as exc_info:
        rebase_rates(source_base="USD", source_rates=SOURCE, base_currency="USD", currencies=["JPY"])

    assert exc_info.value.currency == "JPY"


def test_rebase_missing_base() -> None:
    with pytest.raises(ConversionError) as exc_info:
        rebase_rates(source_base="USD", source_rates=SOURCE, base_currency="AUD", currencies=["EUR"])

    assert exc_info.value.currency == "AUD"


def test_static_provider() -> None:
    provider = StaticRatesProvider(base="eur", rates={"usd": Decimal("1.25")})

    assert provider.rates_for("USD", ["EUR"]) == {"EUR": Decimal("0.8")}


def test_default_provider_uses_configured_rates(fresh_config: pytest.MonkeyPatch) -> None:
    fresh_config.setenv("QUOTATION_DEFAULT_EXCHANGE_RATES", '{"EUR": "0.5"}')

    provider = build_default_provider()

    assert isinstance(provider, StaticRatesProvider)
    assert provider.rates_for("USD", ["EUR"]) == {"EUR": Decimal("0.5")}


def test_default_provider_uses_open_exchange_rates_when_configured(fresh_config: pytest.MonkeyPatch) -> None:
    fresh_config.setenv("QUOTATION_OPEN_EXCHANGE_RATES_APP_ID", "app-123")

    provider = build_default_provider()

    assert isinstance(provider, OpenExchangeRatesProvider)
    assert provider.client.app_id == "app-123"
