from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from db.models import ReconciliationOrm
from db.repositories import LedgerEntryRepository, ReconciliationRepository
from domain.ledger import EntryKind, LedgerEntry
from domain.reconciliation import CashFlowTotals, ReconciliationResult, ReconciliationStatus


@pytest.fixture()
def ledger_repo(test_session: Session) -> LedgerEntryRepository:
    return LedgerEntryRepository(test_session)


@pytest.fixture()
def reconciliation_repo(test_session: Session) -> ReconciliationRepository:
    return ReconciliationRepository(test_session)


def _entries() -> list[LedgerEntry]:
    return [
        LedgerEntry(
            date=date(2024, 12, 31),
            kind=EntryKind.REVENUE,
            category="Withdrawal",
            description="External withdrawal to Kraken",
            source_lamports=1_500_000_000,
            unit_price=Decimal("190.12"),
            quote_value=Decimal("285.18"),
            destination="Kraken",
            signature="sig-1",
        ),
        LedgerEntry(
            date=date(2025, 1, 31),
            kind=EntryKind.EXPENSE,
            category="Hosting",
            description="Server rent",
            quote_value=Decimal("500.00"),
        ),
        LedgerEntry(
            date=date(2025, 1, 31),
            kind=EntryKind.EXPENSE,
            category="Contractor",
            description="Ops support",
            quote_value=Decimal("120"),
        ),
    ]


def _result(slot: int, difference: int) -> ReconciliationResult:
    flows = CashFlowTotals(income=10, expenses=2, withdrawals=3, deposits=5)
    return ReconciliationResult(
        slot=slot,
        cash_flows=flows,
        net_cash_flow=flows.net_cash_flow,
        mark_to_market_adjustment=0,
        expected=10,
        actual=10 + difference,
        difference=difference,
        tolerance=100_000,
        status=ReconciliationStatus.OK,
    )


def test_ledger_entries_round_trip_in_order(ledger_repo: LedgerEntryRepository) -> None:
    entries = _entries()

    assert ledger_repo.create_many(entries) == 3

    assert ledger_repo.list() == entries


def test_ledger_list_filters_by_year(ledger_repo: LedgerEntryRepository) -> None:
    ledger_repo.create_many(_entries())

    assert [entry.description for entry in ledger_repo.list(year=2025)] == ["Server rent", "Ops support"]
    assert ledger_repo.list(year=2023) == []


def test_create_many_appends_after_existing_rows(ledger_repo: LedgerEntryRepository) -> None:
    first, *rest = _entries()
    ledger_repo.create_many(rest)
    ledger_repo.create_many([first])

    assert ledger_repo.list()[-1] == first

    ledger_repo.clear()
    assert ledger_repo.list() == []


def test_reconciliation_create_round_trips(
    reconciliation_repo: ReconciliationRepository, test_session: Session
) -> None:
    stored = reconciliation_repo.create(_result(200, 5), created_at=datetime(2025, 2, 1, tzinfo=timezone.utc))

    assert stored == _result(200, 5)
    assert stored.cash_flows.net_cash_flow == 10
    row = test_session.query(ReconciliationOrm).one()
    assert row.status == "OK"
    assert row.created_at.date() == date(2025, 2, 1)
