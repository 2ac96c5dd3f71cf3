from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, model_validator

from domain.base_types import LAMPORTS_PER_SOL


class EntryKind(StrEnum):
    REVENUE = "Revenue"
    RETURN_OF_CAPITAL = "Return of Capital"
    REIMBURSEMENT = "Reimbursement"
    EXPENSE = "Expense"

    @property
    def priority(self) -> int:
        return _KIND_PRIORITY[self]


_KIND_PRIORITY = {
    EntryKind.REVENUE: 0,
    EntryKind.RETURN_OF_CAPITAL: 1,
    EntryKind.REIMBURSEMENT: 2,
    EntryKind.EXPENSE: 3,
}


class LedgerEntry(BaseModel):
    """One row of the tax ledger.

    ``source_lamports``/``unit_price`` describe the on-chain amount and the
    SOL price used to value it; off-chain costs carry neither.
    ``quote_value`` is always the USD value of the row.
    """

    model_config = ConfigDict(frozen=True)

    date: date
    kind: EntryKind
    category: str
    description: str
    source_lamports: int | None = None
    unit_price: Decimal | None = None
    quote_value: Decimal
    destination: str | None = None
    signature: str | None = None

    @model_validator(mode="after")
    def _validate_amount_pair(self) -> LedgerEntry:
        if (self.source_lamports is None) != (self.unit_price is None):
            raise ValueError("source_lamports and unit_price must be both present or both absent")
        if self.source_lamports is not None and self.source_lamports < 0:
            raise ValueError("source_lamports must be >= 0")
        return self


def lamports_value(lamports: int, price: Decimal) -> Decimal:
    """USD value of ``lamports`` at ``price`` per SOL, never negative zero."""
    value = Decimal(lamports) * price / LAMPORTS_PER_SOL
    if value == 0:
        return Decimal(0)
    return value
