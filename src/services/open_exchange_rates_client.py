from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openexchangerates.org/api"


# API docs: https://docs.openexchangerates.org/reference/latest-json
# API keys: https://openexchangerates.org/account/app-ids
class OpenExchangeRatesAPIError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


@dataclass(frozen=True)
class LatestRates:
    """Units of each currency per 1 unit of ``base``, as published at ``timestamp``."""

    timestamp: datetime
    base: str
    rates: dict[str, Decimal]


def parse_latest_rates(payload: dict[str, Any]) -> LatestRates:
    try:
        published = datetime.fromtimestamp(int(payload["timestamp"]), tz=timezone.utc)
        base = str(payload["base"]).upper()
        rates = {str(code).upper(): Decimal(str(rate)) for code, rate in payload["rates"].items()}
    except (KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as exc:
        raise OpenExchangeRatesAPIError("Malformed latest rates payload", payload=payload) from exc
    return LatestRates(timestamp=published, base=base, rates=rates)


class OpenExchangeRatesClient:
    def __init__(
        self,
        *,
        app_id: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        if not app_id:
            raise ValueError("app_id must be provided")

        self.app_id = app_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def get_latest_rates(self, *, symbols: Iterable[str] | None = None) -> LatestRates:
        """Latest rates against USD, the only base the free plan serves."""
        params: dict[str, str] = {}
        if symbols:
            params["symbols"] = ",".join(sorted({code.upper() for code in symbols}))

        latest = parse_latest_rates(self._get("/latest.json", params))
        logger.debug("Open Exchange Rates: %d rates against %s at %s", len(latest.rates), latest.base, latest.timestamp)
        return latest

    def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            response = self._session.get(
                f"{self.base_url}{path}",
                params={"app_id": self.app_id, **params},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise OpenExchangeRatesAPIError(
                f"Open Exchange Rates request to {path} failed",
                status_code=getattr(exc.response, "status_code", None),
                payload=_error_body(exc.response),
            ) from exc
        except requests.RequestException as exc:
            raise OpenExchangeRatesAPIError(f"Open Exchange Rates request to {path} failed") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise OpenExchangeRatesAPIError("Open Exchange Rates returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload, dict):
            raise OpenExchangeRatesAPIError("Open Exchange Rates returned a non-object payload", payload=payload)
        if payload.get("error"):
            raise OpenExchangeRatesAPIError(
                payload.get("description") or payload.get("message") or "Open Exchange Rates error",
                status_code=payload.get("status"),
                payload=payload,
            )
        return payload


def _error_body(response: requests.Response | None) -> Any | None:
    if response is None:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


__all__ = ["LatestRates", "OpenExchangeRatesAPIError", "OpenExchangeRatesClient", "parse_latest_rates"]
