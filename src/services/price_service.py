from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Protocol

from .coingecko_client import CoinGeckoAPIError, CoinGeckoClient
from .price_store import JsonlPriceStore, PriceStore
from .price_types import DailyPrice

logger = logging.getLogger(__name__)


class DailyPriceSource(Protocol):
    def get_daily_prices(self, start: date, end: date) -> list[DailyPrice]: ...


class PriceSeriesService:
    """Builds the daily SOL/USD series, reading the store first and fetching only gaps."""

    def __init__(self, source: DailyPriceSource | None, store: PriceStore, *, quote_id: str = "USD") -> None:
        self.source = source
        self.store = store
        self.quote_id = quote_id

    def series_for(self, dates: Iterable[date]) -> dict[date, Decimal]:
        wanted = set(dates)
        if not wanted:
            return {}

        cached = self.store.read_all("SOL", self.quote_id)
        missing = sorted(day for day in wanted if day not in cached)
        if missing and self.source is not None:
            fetched = self._fetch(self.source, missing[0], missing[-1])
            new = [price for day, price in fetched.items() if day not in cached]
            if new:
                self.store.write_many(new)
            cached = {**fetched, **cached}

        series = {day: price.rate for day, price in cached.items()}
        unresolved = sum(1 for day in wanted if day not in series)
        if unresolved:
            logger.warning("No stored or fetched price for %d date(s); the resolver will fall back", unresolved)
        return series

    @staticmethod
    def _fetch(source: DailyPriceSource, start: date, end: date) -> dict[date, DailyPrice]:
        try:
            prices = source.get_daily_prices(start, end)
        except CoinGeckoAPIError as exc:
            logger.warning("Price fetch for %s..%s failed (status=%s): %s", start, end, exc.status_code, exc)
            return {}
        return {price.day: price for price in prices}


def build_default_service(
    *, cache_dir: Path, api_key: str | None = None, offline: bool = False
) -> PriceSeriesService:
    source = None if offline else CoinGeckoClient(api_key=api_key)
    store = JsonlPriceStore(root_dir=cache_dir)
    return PriceSeriesService(source=source, store=store)


__all__ = ["DailyPriceSource", "PriceSeriesService", "build_default_service"]
