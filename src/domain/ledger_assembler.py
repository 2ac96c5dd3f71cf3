from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel

from domain.base_types import TransferEvent
from domain.capital_pool import CapitalPoolResult, CapitalPoolTracker
from domain.categorizer import CategorizedTransfers, categorize_transfers
from domain.costs import CostEntry
from domain.ledger import EntryKind, LedgerEntry, lamports_value
from domain.pricing import PriceResolver
from domain.reimbursement import ReimbursementScheduler
from domain.roles import ValidatorConfig

logger = logging.getLogger(__name__)


class LedgerBuild(BaseModel):
    """Everything produced by one full-history run."""

    entries: list[LedgerEntry]
    categorized: CategorizedTransfers
    pool: CapitalPoolResult
    price_fallbacks: int

    @property
    def unclassified(self) -> list[TransferEvent]:
        return self.categorized.other


def order_entries(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    """Sort by date, then kind priority; ties keep insertion order."""
    return sorted(entries, key=lambda entry: (entry.date, entry.kind.priority))


def filter_period(entries: Iterable[LedgerEntry], year: int | None) -> list[LedgerEntry]:
    if year is None:
        return list(entries)
    return [entry for entry in entries if entry.date.year == year]


class LedgerAssembler:
    def __init__(self, *, config: ValidatorConfig, price_resolver: PriceResolver) -> None:
        self._config = config
        self._price_resolver = price_resolver
        self._pool_tracker = CapitalPoolTracker(price_resolver=price_resolver, config=config)
        self._scheduler = ReimbursementScheduler(
            acceptance_date=config.reimbursement_acceptance_date,
            price_resolver=price_resolver,
        )

    def assemble(
        self,
        pool_entries: Iterable[LedgerEntry],
        reimbursement_entries: Iterable[LedgerEntry],
        cost_entries: Iterable[LedgerEntry],
    ) -> list[LedgerEntry]:
        return order_entries([*pool_entries, *reimbursement_entries, *cost_entries])

    def expense_entry(self, cost: CostEntry) -> LedgerEntry:
        if cost.lamports is not None:
            price = self._price_resolver.price_at(cost.date).price
            return LedgerEntry(
                date=cost.date,
                kind=EntryKind.EXPENSE,
                category=cost.category.value,
                description=cost.description,
                source_lamports=cost.lamports,
                unit_price=price,
                quote_value=lamports_value(cost.lamports, price),
            )

        return LedgerEntry(
            date=cost.date,
            kind=EntryKind.EXPENSE,
            category=cost.category.value,
            description=cost.description,
            quote_value=cost.quote_amount or Decimal(0),
        )

    def build(
        self,
        events: Iterable[TransferEvent],
        costs: Iterable[CostEntry],
        *,
        year: int | None = None,
    ) -> LedgerBuild:
        """Replay the full history, then apply the optional year filter to the output."""
        categorized = categorize_transfers(events)
        logger.info(
            "Categorized %d transfers: %d seeds, %d withdrawals, %d internal, %d program inflows, "
            "%d MEV deposits, %d DoubleZero payments, %d other",
            len(categorized),
            len(categorized.seeds),
            len(categorized.withdrawals),
            len(categorized.internal),
            len(categorized.reimbursement_inflows),
            len(categorized.mev_deposits),
            len(categorized.doublezero_payments),
            len(categorized.other),
        )

        pool = self._pool_tracker.replay(categorized.seeds, categorized.withdrawals)
        pool_entries = [entry for split in pool.splits for entry in self._pool_tracker.entries_for(split)]

        reimbursement_entries: list[LedgerEntry] = []
        cost_entries: list[LedgerEntry] = []
        for cost in sorted(costs, key=lambda c: c.sort_key):
            if cost.reimbursable and self._config.reimbursement_acceptance_date is not None:
                reimbursement_entries.extend(self._scheduler.entries_for(cost))
            else:
                cost_entries.append(self.expense_entry(cost))

        entries = filter_period(self.assemble(pool_entries, reimbursement_entries, cost_entries), year)
        if self._price_resolver.fallback_count:
            logger.warning("Used fallback prices %d time(s)", self._price_resolver.fallback_count)

        return LedgerBuild(
            entries=entries,
            categorized=categorized,
            pool=pool,
            price_fallbacks=self._price_resolver.fallback_count,
        )
