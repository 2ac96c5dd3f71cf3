from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from db import models
from domain.ledger import EntryKind, LedgerEntry
from domain.reconciliation import CashFlowTotals, ReconciliationResult, ReconciliationStatus


class LedgerEntryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, entries: Iterable[LedgerEntry]) -> int:
        """Append entries after any already stored, keeping their order."""
        next_position = self._session.scalar(select(func.coalesce(func.max(models.LedgerEntryOrm.position), -1))) + 1
        rows = [
            models.LedgerEntryOrm(
                position=next_position + offset,
                entry_date=entry.date,
                kind=entry.kind.value,
                category=entry.category,
                description=entry.description,
                source_lamports=entry.source_lamports,
                unit_price=entry.unit_price,
                quote_value=entry.quote_value,
                destination=entry.destination,
                signature=entry.signature,
            )
            for offset, entry in enumerate(entries)
        ]
        self._session.add_all(rows)
        self._session.commit()
        return len(rows)

    def clear(self) -> None:
        self._session.query(models.LedgerEntryOrm).delete()
        self._session.commit()

    def list(self, year: int | None = None) -> list[LedgerEntry]:
        query = self._session.query(models.LedgerEntryOrm)
        if year is not None:
            query = query.filter(
                models.LedgerEntryOrm.entry_date >= date(year, 1, 1),
                models.LedgerEntryOrm.entry_date <= date(year, 12, 31),
            )
        rows = query.order_by(models.LedgerEntryOrm.position.asc()).all()
        return [self._to_domain(row) for row in rows]

    @staticmethod
    def _to_domain(row: models.LedgerEntryOrm) -> LedgerEntry:
        return LedgerEntry(
            date=row.entry_date,
            kind=EntryKind(row.kind),
            category=row.category,
            description=row.description,
            source_lamports=row.source_lamports,
            unit_price=row.unit_price,
            quote_value=row.quote_value,
            destination=row.destination,
            signature=row.signature,
        )


class ReconciliationRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, result: ReconciliationResult, *, created_at: datetime | None = None) -> ReconciliationResult:
        row = models.ReconciliationOrm(
            created_at=created_at or datetime.now(timezone.utc),
            slot=result.slot,
            income=result.cash_flows.income,
            expenses=result.cash_flows.expenses,
            withdrawals=result.cash_flows.withdrawals,
            deposits=result.cash_flows.deposits,
            mark_to_market_adjustment=result.mark_to_market_adjustment,
            expected=result.expected,
            actual=result.actual,
            difference=result.difference,
            tolerance=result.tolerance,
            status=result.status.value,
        )
        self._session.add(row)
        self._session.commit()
        self._session.refresh(row)
        return self._to_domain(row)

    @staticmethod
    def _to_domain(row: models.ReconciliationOrm) -> ReconciliationResult:
        cash_flows = CashFlowTotals(
            income=row.income,
            expenses=row.expenses,
            withdrawals=row.withdrawals,
            deposits=row.deposits,
        )
        return ReconciliationResult(
            slot=row.slot,
            cash_flows=cash_flows,
            net_cash_flow=cash_flows.net_cash_flow,
            mark_to_market_adjustment=row.mark_to_market_adjustment,
            expected=row.expected,
            actual=row.actual,
            difference=row.difference,
            tolerance=row.tolerance,
            status=ReconciliationStatus(row.status),
        )
