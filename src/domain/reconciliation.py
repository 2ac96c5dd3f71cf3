from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, field_validator

from domain.base_types import AccountRole, Address, TransferEvent
from domain.costs import ExpenseCategory
from domain.errors import InputInconsistencyError
from domain.ledger import EntryKind, LedgerEntry

logger = logging.getLogger(__name__)

RECONCILIATION_TOLERANCE_LAMPORTS = 100_000

ON_CHAIN_COST_CATEGORIES = frozenset({ExpenseCategory.VOTE_FEES.value, ExpenseCategory.DOUBLEZERO.value})


class ReconciliationStatus(StrEnum):
    OK = "OK"
    VARIANCE = "VARIANCE"


class AccountBalance(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: Address
    role: AccountRole
    lamports: int
    slot: int

    @field_validator("lamports")
    @classmethod
    def _validate_lamports(cls, value: int) -> int:
        if value < 0:
            raise ValueError("AccountBalance.lamports must be >= 0")
        return value


class BalanceSnapshot(BaseModel):
    """Balances of the tracked accounts, all read at one slot."""

    model_config = ConfigDict(frozen=True)

    balances: list[AccountBalance]

    def observation_slot(self) -> int:
        slots = {balance.slot for balance in self.balances}
        if not slots:
            raise InputInconsistencyError("Balance snapshot is empty")
        if len(slots) > 1:
            raise InputInconsistencyError(
                f"Balance snapshot mixes slots {sorted(slots)}; balances must be read atomically",
                details={"slots": sorted(slots)},
            )
        (slot,) = slots
        return slot

    def total_lamports(self) -> int:
        """Sum of balances with aliased accounts counted once."""
        by_address: dict[str, int] = {}
        for balance in self.balances:
            seen = by_address.get(balance.address)
            if seen is None:
                by_address[balance.address] = balance.lamports
            elif seen != balance.lamports:
                raise InputInconsistencyError(
                    f"Account {balance.address} reported with two balances ({seen} and {balance.lamports})",
                    details={"address": balance.address},
                )
        return sum(by_address.values())


class CashFlowTotals(BaseModel):
    income: int
    expenses: int
    withdrawals: int
    deposits: int

    @property
    def net_cash_flow(self) -> int:
        return self.income - self.expenses - self.withdrawals + self.deposits


class ReconciliationResult(BaseModel):
    slot: int
    cash_flows: CashFlowTotals
    net_cash_flow: int
    mark_to_market_adjustment: int
    expected: int
    actual: int
    difference: int
    tolerance: int
    status: ReconciliationStatus


class PositionReconciler:
    """Compare projected cash flows with an observed balance snapshot.

    All arithmetic is in integer lamports. The ledger passed in must be the
    full-history ledger, not a period-filtered view.
    """

    def __init__(
        self,
        *,
        tolerance_lamports: int = RECONCILIATION_TOLERANCE_LAMPORTS,
        include_offchain_costs: bool = True,
    ) -> None:
        if tolerance_lamports < 0:
            msg = "tolerance_lamports must be >= 0"
            raise ValueError(msg)
        self._tolerance = tolerance_lamports
        self._include_offchain_costs = include_offchain_costs

    def cash_flows(
        self,
        ledger: Iterable[LedgerEntry],
        *,
        seeds: Iterable[TransferEvent] = (),
        earned_income_lamports: int = 0,
    ) -> CashFlowTotals:
        income = earned_income_lamports
        expenses = 0
        withdrawals = 0
        skipped_quote_only = 0

        for entry in ledger:
            if entry.source_lamports is None:
                skipped_quote_only += 1
                continue
            match entry.kind:
                case EntryKind.REVENUE | EntryKind.RETURN_OF_CAPITAL:
                    withdrawals += entry.source_lamports
                case EntryKind.REIMBURSEMENT:
                    income += entry.source_lamports
                case EntryKind.EXPENSE:
                    if entry.category in ON_CHAIN_COST_CATEGORIES or self._include_offchain_costs:
                        expenses += entry.source_lamports

        if skipped_quote_only:
            logger.debug("Skipped %d quote-currency-only entries in cash flow", skipped_quote_only)

        return CashFlowTotals(
            income=income,
            expenses=expenses,
            withdrawals=withdrawals,
            # only capital from the personal wallet or a funding source counts as a deposit
            deposits=sum(seed.lamports for seed in seeds if seed.source_role.is_capital_source),
        )

    def reconcile(
        self,
        ledger: Iterable[LedgerEntry],
        snapshot: BalanceSnapshot,
        *,
        seeds: Iterable[TransferEvent] = (),
        earned_income_lamports: int = 0,
        mark_to_market_lamports: int = 0,
    ) -> ReconciliationResult:
        slot = snapshot.observation_slot()
        actual = snapshot.total_lamports()

        flows = self.cash_flows(ledger, seeds=seeds, earned_income_lamports=earned_income_lamports)
        expected = flows.net_cash_flow + mark_to_market_lamports
        difference = actual - expected
        status = ReconciliationStatus.OK if abs(difference) < self._tolerance else ReconciliationStatus.VARIANCE
        logger.info(
            "Reconciliation at slot %d: expected=%d actual=%d difference=%d status=%s",
            slot,
            expected,
            actual,
            difference,
            status,
        )

        return ReconciliationResult(
            slot=slot,
            cash_flows=flows,
            net_cash_flow=flows.net_cash_flow,
            mark_to_market_adjustment=mark_to_market_lamports,
            expected=expected,
            actual=actual,
            difference=difference,
            tolerance=self._tolerance,
            status=status,
        )


def lst_appreciation_lamports(token_lamports: int, *, entry_rate: Decimal, current_rate: Decimal) -> int:
    """Lamport value gained by holding ``token_lamports`` of a liquid staking token."""
    delta = Decimal(token_lamports) * (current_rate - entry_rate)
    return int(delta.to_integral_value(rounding=ROUND_HALF_UP))
