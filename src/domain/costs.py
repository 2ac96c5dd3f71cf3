from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, model_validator


class ExpenseCategory(StrEnum):
    VOTE_FEES = "Vote Fees"
    DOUBLEZERO = "DoubleZero"
    HOSTING = "Hosting"
    CONTRACTOR = "Contractor"
    HARDWARE = "Hardware"
    SOFTWARE = "Software"
    OTHER = "Other"

    @classmethod
    def from_label(cls, raw: str) -> ExpenseCategory:
        normalized = raw.strip().lower().replace("_", " ")
        for category in cls:
            if category.value.lower() == normalized:
                return category
        if normalized == "votefees":
            return cls.VOTE_FEES
        return cls.OTHER


class CostEntry(BaseModel):
    """Gross cost of one accounting period.

    ``date`` is the period's end date. On-chain costs are denominated in
    lamports, off-chain costs in the quote currency; exactly one is set.
    """

    model_config = ConfigDict(frozen=True)

    period_id: str
    date: date
    category: ExpenseCategory
    description: str
    lamports: int | None = None
    quote_amount: Decimal | None = None
    reimbursable: bool = False

    @model_validator(mode="after")
    def _validate_amount(self) -> CostEntry:
        if (self.lamports is None) == (self.quote_amount is None):
            raise ValueError("CostEntry needs exactly one of lamports or quote_amount")
        if self.lamports is not None and self.lamports < 0:
            raise ValueError("CostEntry.lamports must be >= 0")
        if self.quote_amount is not None and self.quote_amount < 0:
            raise ValueError("CostEntry.quote_amount must be >= 0")
        return self

    @property
    def is_on_chain(self) -> bool:
        return self.lamports is not None

    @property
    def sort_key(self) -> tuple[date, str, str, str, int, Decimal]:
        return (
            self.date,
            self.period_id,
            self.category.value,
            self.description,
            self.lamports if self.lamports is not None else -1,
            self.quote_amount if self.quote_amount is not None else Decimal(-1),
        )


class RecurringCost(BaseModel):
    """Monthly off-chain cost template, billed on the start date's day of month."""

    model_config = ConfigDict(frozen=True)

    vendor: str
    category: ExpenseCategory
    description: str
    quote_amount: Decimal
    start_date: date
    end_date: date | None = None


def expand_recurring_costs(templates: Iterable[RecurringCost], start_month: date, end_month: date) -> list[CostEntry]:
    """Expand templates into one cost entry per billed month in ``[start_month, end_month]``."""
    costs: list[CostEntry] = []
    first = start_month.replace(day=1)
    last = end_month.replace(day=1)

    for template in templates:
        template_start = template.start_date.replace(day=1)
        template_end = template.end_date.replace(day=1) if template.end_date else None
        current = first
        while current <= last:
            if current >= template_start and (template_end is None or current <= template_end):
                days_in_month = calendar.monthrange(current.year, current.month)[1]
                billed_on = current.replace(day=min(template.start_date.day, days_in_month))
                costs.append(
                    CostEntry(
                        period_id=current.strftime("%Y-%m"),
                        date=billed_on,
                        category=template.category,
                        description=f"{template.vendor} - {template.description}",
                        quote_amount=template.quote_amount,
                    )
                )
            current = _next_month(current)

    return costs


def _next_month(value: date) -> date:
    if value.month == 12:
        return date(value.year + 1, 1, 1)
    return date(value.year, value.month + 1, 1)
