from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Iterator

from pydantic import BaseModel

from domain.base_types import TransferEvent
from domain.ledger import EntryKind, LedgerEntry, lamports_value
from domain.pricing import PriceResolver
from domain.roles import ValidatorConfig

WITHDRAWAL_CATEGORY = "Withdrawal"


@dataclass
class _OpenLotState:
    timestamp: datetime
    signature: str
    remaining_lamports: int


class OpenLotSnapshot(BaseModel):
    timestamp: datetime
    signature: str
    remaining_lamports: int


class WithdrawalSplit(BaseModel):
    withdrawal: TransferEvent
    return_of_capital: int
    taxable_revenue: int


class CapitalPoolResult(BaseModel):
    splits: list[WithdrawalSplit]
    open_lots: list[OpenLotSnapshot]

    @property
    def remaining_lamports(self) -> int:
        return sum(lot.remaining_lamports for lot in self.open_lots)


class CapitalPoolTracker:
    """Split withdrawals into return of seed capital and taxable revenue.

    Seed deposits form a FIFO pool that has no notion of tax year: it must be
    replayed over the full transfer history, and period filtering happens on
    the output only. A withdrawal can only draw on seeds deposited at or
    before it.
    """

    def __init__(self, *, price_resolver: PriceResolver, config: ValidatorConfig) -> None:
        self._price_resolver = price_resolver
        self._config = config

    def replay(self, seeds: Iterable[TransferEvent], withdrawals: Iterable[TransferEvent]) -> CapitalPoolResult:
        pending_seeds = deque(sorted(seeds, key=lambda e: e.sort_key))
        pool: deque[_OpenLotState] = deque()
        splits: list[WithdrawalSplit] = []

        for withdrawal in sorted(withdrawals, key=lambda e: e.sort_key):
            # a seed at the same instant as the withdrawal is deposited first
            while pending_seeds and pending_seeds[0].timestamp <= withdrawal.timestamp:
                seed = pending_seeds.popleft()
                pool.append(_OpenLotState(seed.timestamp, seed.signature, seed.lamports))

            return_of_capital = sum(taken for _, taken in self._consume(pool, withdrawal.lamports))
            splits.append(
                WithdrawalSplit(
                    withdrawal=withdrawal,
                    return_of_capital=return_of_capital,
                    taxable_revenue=withdrawal.lamports - return_of_capital,
                )
            )

        pool.extend(_OpenLotState(seed.timestamp, seed.signature, seed.lamports) for seed in pending_seeds)
        open_lots = [
            OpenLotSnapshot(timestamp=lot.timestamp, signature=lot.signature, remaining_lamports=lot.remaining_lamports)
            for lot in pool
            if lot.remaining_lamports > 0
        ]
        return CapitalPoolResult(splits=splits, open_lots=open_lots)

    def apply(self, seeds: Iterable[TransferEvent], withdrawals: Iterable[TransferEvent]) -> list[LedgerEntry]:
        entries: list[LedgerEntry] = []
        for split in self.replay(seeds, withdrawals).splits:
            entries.extend(self.entries_for(split))
        return entries

    def _consume(self, pool: deque[_OpenLotState], lamports: int) -> Iterator[tuple[_OpenLotState, int]]:
        remaining = lamports
        while remaining > 0 and pool:
            lot = pool[0]
            take = min(remaining, lot.remaining_lamports)
            lot.remaining_lamports -= take
            remaining -= take
            if lot.remaining_lamports == 0:
                pool.popleft()
            yield lot, take

    def entries_for(self, split: WithdrawalSplit) -> list[LedgerEntry]:
        withdrawal = split.withdrawal
        day = withdrawal.timestamp.date()
        price = self._price_resolver.price_at(day).price
        destination = self._config.destination_label(withdrawal.destination) or shorten_address(withdrawal.destination)

        entries: list[LedgerEntry] = []
        if split.return_of_capital > 0:
            entries.append(
                LedgerEntry(
                    date=day,
                    kind=EntryKind.RETURN_OF_CAPITAL,
                    category=WITHDRAWAL_CATEGORY,
                    description=f"Return of seed capital to {destination}",
                    source_lamports=split.return_of_capital,
                    unit_price=price,
                    quote_value=lamports_value(split.return_of_capital, price),
                    destination=destination,
                    signature=withdrawal.signature,
                )
            )
        # Revenue is always emitted, as an explicit zero when fully covered by capital.
        entries.append(
            LedgerEntry(
                date=day,
                kind=EntryKind.REVENUE,
                category=WITHDRAWAL_CATEGORY,
                description=f"External withdrawal to {destination}",
                source_lamports=split.taxable_revenue,
                unit_price=price,
                quote_value=lamports_value(split.taxable_revenue, price),
                destination=destination,
                signature=withdrawal.signature,
            )
        )
        return entries


def shorten_address(address: str) -> str:
    if len(address) > 12:
        return f"{address[:6]}...{address[-4:]}"
    return address
