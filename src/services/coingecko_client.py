from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from .price_types import DailyPrice

logger = logging.getLogger(__name__)

# API docs: https://docs.coingecko.com/reference/coins-id-market-chart-range
COINGECKO_SOURCE = "coingecko"


class CoinGeckoAPIError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class CoinGeckoClient:
    """Daily SOL/USD history from the CoinGecko market chart endpoint."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str = "https://api.coingecko.com/api/v3",
        coin_id: str = "solana",
        vs_currency: str = "usd",
        timeout: float = 10.0,
        session: requests.Session | None = None,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 2,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.coin_id = coin_id
        self.vs_currency = vs_currency
        self.timeout = timeout
        self._session = session or requests.Session()

        retry = Retry(
            total=retry_attempts,
            backoff_factor=retry_backoff_seconds,
            status_forcelist={429},
            allowed_methods={"GET"},
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def get_daily_prices(self, start: date, end: date) -> list[DailyPrice]:
        """Return one quote per UTC day in ``[start, end]``; the last sample of a day wins."""
        if end < start:
            msg = "end must not precede start"
            raise ValueError(msg)

        from_ts = int(datetime.combine(start, time.min, tzinfo=timezone.utc).timestamp())
        to_ts = int(datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc).timestamp())
        payload = self._request(
            f"/coins/{self.coin_id}/market_chart/range",
            params={"vs_currency": self.vs_currency, "from": from_ts, "to": to_ts},
        )

        samples = payload.get("prices")
        if not isinstance(samples, list):
            raise CoinGeckoAPIError("CoinGecko payload missing 'prices'", payload=payload)

        daily: dict[date, Decimal] = {}
        for sample in samples:
            if not isinstance(sample, list) or len(sample) != 2:
                raise CoinGeckoAPIError("CoinGecko price sample is malformed", payload=sample)
            timestamp_ms, rate = sample
            day = datetime.fromtimestamp(int(timestamp_ms) / 1000, tz=timezone.utc).date()
            if start <= day <= end:
                daily[day] = Decimal(str(rate))

        logger.debug("Fetched %d daily prices from CoinGecko for %s..%s", len(daily), start, end)
        return [
            DailyPrice(
                day=day,
                base_id="SOL",
                quote_id=self.vs_currency.upper(),
                rate=rate,
                source=COINGECKO_SOURCE,
            )
            for day, rate in sorted(daily.items())
        ]

    def _request(self, path: str, *, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key
        try:
            response = self._session.get(url, params=params, timeout=self.timeout, headers=headers)
            response.raise_for_status()
        except requests.HTTPError as exc:
            resp = exc.response
            status_code = getattr(resp, "status_code", None)
            error_payload: Any | None = None
            if resp is not None:
                try:
                    error_payload = resp.json()
                except ValueError:
                    error_payload = resp.text
            raise CoinGeckoAPIError(
                "CoinGecko API request failed", status_code=status_code, payload=error_payload
            ) from exc
        except requests.RequestException as exc:
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise CoinGeckoAPIError("CoinGecko API request failed", status_code=status_code) from exc

        try:
            payload_raw = response.json()
        except ValueError as exc:
            raise CoinGeckoAPIError("CoinGecko API returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload_raw, dict):
            raise CoinGeckoAPIError("CoinGecko API returned unexpected payload type", payload=payload_raw)

        return payload_raw


__all__ = ["COINGECKO_SOURCE", "CoinGeckoAPIError", "CoinGeckoClient"]
