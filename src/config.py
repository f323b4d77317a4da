from __future__ import annotations

from decimal import Decimal
from functools import cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DB_FILE = ARTIFACTS_DIR / "quotations.db"


class AppSettings(BaseSettings):
    database_url: str = f"sqlite:///{DB_FILE}"
    default_base_currency: str = "USD"
    default_exchange_rates: dict[str, Decimal] = Field(
        default_factory=lambda: {"EUR": Decimal("0.92"), "INR": Decimal("83.36")}
    )
    open_exchange_rates_app_id: str | None = None
    open_exchange_rates_base_url: str = "https://openexchangerates.org/api"
    http_timeout_seconds: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="QUOTATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@cache
def config() -> AppSettings:
    return AppSettings()
