from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from domain.costs import CostEntry, ExpenseCategory
from domain.ledger import EntryKind
from domain.reimbursement import REIMBURSEMENT_CATEGORY, ReimbursementScheduler
from tests.helpers.factories import flat_resolver, sol


def _scheduler(acceptance: date | None = date(2025, 3, 1)) -> ReimbursementScheduler:
    return ReimbursementScheduler(acceptance_date=acceptance, price_resolver=flat_resolver("200"))


def _vote_fees(period_end: date, lamports: int = sol(1)) -> CostEntry:
    return CostEntry(
        period_id=period_end.strftime("%Y-%m"),
        date=period_end,
        category=ExpenseCategory.VOTE_FEES,
        description="Vote fees",
        lamports=lamports,
        reimbursable=True,
    )


@pytest.mark.parametrize(
    ("months", "coverage"),
    [
        (0, "0"),
        (1, "1.00"),
        (3, "1.00"),
        (4, "0.75"),
        (6, "0.75"),
        (7, "0.50"),
        (9, "0.50"),
        (10, "0.25"),
        (12, "0.25"),
        (13, "0"),
        (40, "0"),
    ],
)
def test_coverage_bands(months: int, coverage: str) -> None:
    assert ReimbursementScheduler.coverage_fraction(months) == Decimal(coverage)


@pytest.mark.parametrize(
    ("period_end", "months"),
    [
        (date(2025, 2, 28), 0),
        (date(2025, 3, 31), 1),
        (date(2025, 5, 31), 3),
        (date(2025, 6, 30), 4),
        (date(2026, 2, 28), 12),
        (date(2026, 3, 31), 13),
    ],
)
def test_months_since_acceptance_counts_acceptance_month_as_first(period_end: date, months: int) -> None:
    assert _scheduler().months_since_acceptance(period_end) == months


def test_period_ending_before_acceptance_day_in_the_same_month_is_month_one() -> None:
    scheduler = _scheduler(acceptance=date(2025, 12, 20))

    assert scheduler.months_since_acceptance(date(2025, 12, 10)) == 1
    assert scheduler.schedule(_vote_fees(date(2025, 12, 10))).coverage == Decimal("1.00")
    assert scheduler.months_since_acceptance(date(2025, 11, 30)) == 0


def test_no_program_means_no_coverage() -> None:
    scheduler = _scheduler(acceptance=None)

    assert scheduler.months_since_acceptance(date(2025, 6, 30)) == 0
    assert scheduler.schedule(_vote_fees(date(2025, 6, 30))).reimbursed == 0


def test_reimbursement_never_exceeds_gross() -> None:
    assert ReimbursementScheduler.reimbursement(Decimal(3), Decimal("0.75")) == Decimal(2)
    assert ReimbursementScheduler.reimbursement(Decimal(10), Decimal(1)) == Decimal(10)


def test_lamport_cost_produces_expense_and_reimbursement_pair() -> None:
    cost = _vote_fees(date(2025, 6, 30), lamports=sol(2))

    expense, reimbursement = _scheduler().entries_for(cost)

    assert expense.kind is EntryKind.EXPENSE
    assert expense.category == "Vote Fees"
    assert expense.source_lamports == sol(2)
    assert expense.quote_value == Decimal("400")
    assert expense.description == "Vote fees (75% reimbursed)"

    assert reimbursement.kind is EntryKind.REIMBURSEMENT
    assert reimbursement.category == REIMBURSEMENT_CATEGORY
    assert reimbursement.source_lamports == sol("1.5")
    assert reimbursement.quote_value == Decimal("300")
    assert reimbursement.description == "Reimbursement 2025-06 (75% coverage)"


def test_quote_cost_is_rounded_to_cents() -> None:
    cost = CostEntry(
        period_id="2025-09",
        date=date(2025, 9, 30),
        category=ExpenseCategory.DOUBLEZERO,
        description="DoubleZero fees",
        quote_amount=Decimal("10.01"),
        reimbursable=True,
    )

    expense, reimbursement = _scheduler().entries_for(cost)

    assert expense.source_lamports is None
    assert expense.quote_value == Decimal("10.01")
    assert reimbursement.quote_value == Decimal("5.01")


def test_expired_program_emits_zero_reimbursement() -> None:
    expense, reimbursement = _scheduler().entries_for(_vote_fees(date(2026, 4, 30)))

    assert expense.description.endswith("(0% reimbursed)")
    assert reimbursement.source_lamports == 0
    assert reimbursement.quote_value == 0
