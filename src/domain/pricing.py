from __future__ import annotations

import logging
from bisect import bisect_left
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Mapping

logger = logging.getLogger(__name__)


class PriceProvenance(StrEnum):
    EXACT = "exact"
    NEAREST_FALLBACK = "nearest-fallback"
    HARDCODED_FALLBACK = "hardcoded-fallback"


@dataclass(frozen=True)
class ResolvedPrice:
    price: Decimal
    provenance: PriceProvenance
    source_date: date | None = None


class PriceResolver:
    """Resolve a quote-currency price for a calendar date from a daily series.

    Missing dates fall back to the nearest available date (the earlier one on
    a tie), then to a fixed price when the series is empty. Every fallback is
    counted in ``fallback_count``.
    """

    def __init__(self, prices: Mapping[date, Decimal], *, fallback_price: Decimal) -> None:
        self._prices = dict(prices)
        self._dates = sorted(self._prices)
        self._fallback_price = fallback_price
        self._warned: set[date] = set()
        self.fallback_count = 0

    def price_at(self, day: date) -> ResolvedPrice:
        exact = self._prices.get(day)
        if exact is not None:
            return ResolvedPrice(price=exact, provenance=PriceProvenance.EXACT, source_date=day)

        self.fallback_count += 1
        if not self._dates:
            self._warn_once(day, "no prices available, using fallback %s", self._fallback_price)
            return ResolvedPrice(price=self._fallback_price, provenance=PriceProvenance.HARDCODED_FALLBACK)

        nearest = self._nearest_date(day)
        self._warn_once(day, "no exact price, using %s", nearest)
        return ResolvedPrice(
            price=self._prices[nearest],
            provenance=PriceProvenance.NEAREST_FALLBACK,
            source_date=nearest,
        )

    def _nearest_date(self, day: date) -> date:
        idx = bisect_left(self._dates, day)
        if idx == 0:
            return self._dates[0]
        if idx == len(self._dates):
            return self._dates[-1]
        before = self._dates[idx - 1]
        after = self._dates[idx]
        if (after - day) < (day - before):
            return after
        return before

    def _warn_once(self, day: date, message: str, *args: object) -> None:
        if day in self._warned:
            return
        self._warned.add(day)
        logger.warning("Price for %s: " + message, day, *args)
