from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class DailyPrice:
    """Closing quote for one UTC calendar day."""

    day: date
    base_id: str
    quote_id: str
    rate: Decimal
    source: str


__all__ = ["DailyPrice"]
