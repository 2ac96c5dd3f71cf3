from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, model_validator

from domain.costs import CostEntry
from domain.ledger import EntryKind, LedgerEntry, lamports_value
from domain.pricing import PriceResolver

REIMBURSEMENT_CATEGORY = "Vote Fee Reimbursement"

# (last month of the band, coverage); month 1 is the acceptance month
COVERAGE_BANDS: tuple[tuple[int, Decimal], ...] = (
    (3, Decimal("1.00")),
    (6, Decimal("0.75")),
    (9, Decimal("0.50")),
    (12, Decimal("0.25")),
)

CENT = Decimal("0.01")


class ReimbursementScheduleEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    period_id: str
    gross_cost: Decimal
    coverage: Decimal
    reimbursed: Decimal

    @model_validator(mode="after")
    def _validate(self) -> ReimbursementScheduleEntry:
        if not Decimal(0) <= self.coverage <= Decimal(1):
            raise ValueError("coverage must be within [0, 1]")
        if self.reimbursed > self.gross_cost:
            raise ValueError("reimbursed must not exceed gross_cost")
        return self


class ReimbursementScheduler:
    """Declining cost-sharing schedule keyed to months since program acceptance."""

    def __init__(self, *, acceptance_date: date | None, price_resolver: PriceResolver) -> None:
        self._acceptance_date = acceptance_date
        self._price_resolver = price_resolver

    @staticmethod
    def coverage_fraction(months_since_acceptance: int) -> Decimal:
        if months_since_acceptance < 1:
            return Decimal(0)
        for last_month, coverage in COVERAGE_BANDS:
            if months_since_acceptance <= last_month:
                return coverage
        return Decimal(0)

    def months_since_acceptance(self, period_end: date) -> int:
        """Calendar month index of ``period_end``; 0 before the acceptance month or without a program.

        Counting is month-granular: any period ending in the acceptance month is month 1,
        even when it ends before the acceptance day.
        """
        if self._acceptance_date is None:
            return 0
        accepted = self._acceptance_date
        months = (period_end.year - accepted.year) * 12 + (period_end.month - accepted.month) + 1
        return max(months, 0)

    @staticmethod
    def reimbursement(gross_cost: Decimal, coverage: Decimal, *, quantum: Decimal = Decimal(1)) -> Decimal:
        reimbursed = (gross_cost * coverage).quantize(quantum, rounding=ROUND_HALF_UP)
        return min(max(reimbursed, Decimal(0)), gross_cost)

    def schedule(self, cost: CostEntry) -> ReimbursementScheduleEntry:
        coverage = self.coverage_fraction(self.months_since_acceptance(cost.date))
        if cost.lamports is not None:
            gross = Decimal(cost.lamports)
            reimbursed = self.reimbursement(gross, coverage)
        else:
            gross = cost.quote_amount or Decimal(0)
            reimbursed = self.reimbursement(gross, coverage, quantum=CENT)
        return ReimbursementScheduleEntry(
            period_id=cost.period_id,
            gross_cost=gross,
            coverage=coverage,
            reimbursed=reimbursed,
        )

    def entries_for(self, cost: CostEntry) -> list[LedgerEntry]:
        """Paired gross expense and reimbursement rows for one cost period."""
        scheduled = self.schedule(cost)
        percent = f"{scheduled.coverage * 100:.0f}%"

        if cost.lamports is not None:
            price = self._price_resolver.price_at(cost.date).price
            reimbursed_lamports = int(scheduled.reimbursed)
            expense = LedgerEntry(
                date=cost.date,
                kind=EntryKind.EXPENSE,
                category=cost.category.value,
                description=f"{cost.description} ({percent} reimbursed)",
                source_lamports=cost.lamports,
                unit_price=price,
                quote_value=lamports_value(cost.lamports, price),
            )
            reimbursement = LedgerEntry(
                date=cost.date,
                kind=EntryKind.REIMBURSEMENT,
                category=REIMBURSEMENT_CATEGORY,
                description=f"Reimbursement {cost.period_id} ({percent} coverage)",
                source_lamports=reimbursed_lamports,
                unit_price=price,
                quote_value=lamports_value(reimbursed_lamports, price),
            )
        else:
            expense = LedgerEntry(
                date=cost.date,
                kind=EntryKind.EXPENSE,
                category=cost.category.value,
                description=f"{cost.description} ({percent} reimbursed)",
                quote_value=scheduled.gross_cost,
            )
            reimbursement = LedgerEntry(
                date=cost.date,
                kind=EntryKind.REIMBURSEMENT,
                category=REIMBURSEMENT_CATEGORY,
                description=f"Reimbursement {cost.period_id} ({percent} coverage)",
                quote_value=scheduled.reimbursed,
            )
        return [expense, reimbursement]
