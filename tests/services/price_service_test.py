from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from unittest.mock import Mock

import pytest

from services.coingecko_client import CoinGeckoAPIError
from services.price_service import PriceSeriesService
from services.price_store import JsonlPriceStore
from services.price_types import DailyPrice


def _price(day: date, rate: str) -> DailyPrice:
    return DailyPrice(day=day, base_id="SOL", quote_id="USD", rate=Decimal(rate), source="test")


def test_series_uses_store_before_fetching(tmp_path: Path) -> None:
    store = JsonlPriceStore(root_dir=tmp_path)
    store.write_many([_price(date(2025, 1, 1), "100"), _price(date(2025, 1, 2), "110")])
    source = Mock()

    series = PriceSeriesService(source, store).series_for([date(2025, 1, 1), date(2025, 1, 2)])

    assert series[date(2025, 1, 2)] == Decimal("110")
    source.get_daily_prices.assert_not_called()


def test_series_fetches_missing_range_and_writes_back(tmp_path: Path) -> None:
    store = JsonlPriceStore(root_dir=tmp_path)
    store.write_many([_price(date(2025, 1, 1), "100")])
    source = Mock()
    source.get_daily_prices.return_value = [_price(date(2025, 1, 3), "130"), _price(date(2025, 1, 5), "150")]

    service = PriceSeriesService(source, store)
    series = service.series_for([date(2025, 1, 1), date(2025, 1, 3), date(2025, 1, 5)])

    source.get_daily_prices.assert_called_once_with(date(2025, 1, 3), date(2025, 1, 5))
    assert series == {
        date(2025, 1, 1): Decimal("100"),
        date(2025, 1, 3): Decimal("130"),
        date(2025, 1, 5): Decimal("150"),
    }
    assert set(store.read_all("SOL", "USD")) == set(series)


def test_fetch_failure_is_logged_and_cached_prices_survive(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    store = JsonlPriceStore(root_dir=tmp_path)
    store.write_many([_price(date(2025, 1, 1), "100")])
    source = Mock()
    source.get_daily_prices.side_effect = CoinGeckoAPIError("rate limited", status_code=429)

    with caplog.at_level(logging.WARNING, logger="services.price_service"):
        series = PriceSeriesService(source, store).series_for([date(2025, 1, 1), date(2025, 1, 2)])

    assert series == {date(2025, 1, 1): Decimal("100")}
    assert any("failed" in record.getMessage() for record in caplog.records)


def test_offline_service_never_fetches(tmp_path: Path) -> None:
    service = PriceSeriesService(None, JsonlPriceStore(root_dir=tmp_path))

    assert service.series_for([date(2025, 1, 1)]) == {}
    assert service.series_for([]) == {}
