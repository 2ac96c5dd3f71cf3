from __future__ import annotations

from decimal import Decimal
from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DB_FILE = ARTIFACTS_DIR / "validator_accounting.db"


class AppSettings(BaseSettings):
    coingecko_api_key: str | None = None
    fallback_sol_price: Decimal = Decimal("170")
    reconciliation_tolerance_lamports: int = 100_000
    include_offchain_costs_in_reconciliation: bool = True

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
