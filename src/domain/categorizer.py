from __future__ import annotations

from enum import StrEnum
from typing import Iterable

from pydantic import BaseModel, Field

from domain.base_types import AccountRole, TransferEvent


class Category(StrEnum):
    SEED = "SEED"
    WITHDRAWAL = "WITHDRAWAL"
    INTERNAL = "INTERNAL"
    REIMBURSEMENT_INFLOW = "REIMBURSEMENT_INFLOW"
    MEV_DEPOSIT = "MEV_DEPOSIT"
    DOUBLEZERO_PAYMENT = "DOUBLEZERO_PAYMENT"
    OTHER = "OTHER"


class CategorizedTransfers(BaseModel):
    seeds: list[TransferEvent] = Field(default_factory=list)
    withdrawals: list[TransferEvent] = Field(default_factory=list)
    internal: list[TransferEvent] = Field(default_factory=list)
    reimbursement_inflows: list[TransferEvent] = Field(default_factory=list)
    mev_deposits: list[TransferEvent] = Field(default_factory=list)
    doublezero_payments: list[TransferEvent] = Field(default_factory=list)
    other: list[TransferEvent] = Field(default_factory=list)

    def bucket(self, category: Category) -> list[TransferEvent]:
        match category:
            case Category.SEED:
                return self.seeds
            case Category.WITHDRAWAL:
                return self.withdrawals
            case Category.INTERNAL:
                return self.internal
            case Category.REIMBURSEMENT_INFLOW:
                return self.reimbursement_inflows
            case Category.MEV_DEPOSIT:
                return self.mev_deposits
            case Category.DOUBLEZERO_PAYMENT:
                return self.doublezero_payments
            case Category.OTHER:
                return self.other

    def __len__(self) -> int:
        return sum(len(self.bucket(category)) for category in Category)


_INFLOW_CATEGORIES = {
    AccountRole.PERSONAL_WALLET: Category.SEED,
    AccountRole.FUNDING_SOURCE: Category.SEED,
    AccountRole.REIMBURSEMENT_PROGRAM: Category.REIMBURSEMENT_INFLOW,
    AccountRole.MEV_DISTRIBUTOR: Category.MEV_DEPOSIT,
}


def categorize(source_role: AccountRole, destination_role: AccountRole) -> Category:
    """Classify one movement by the roles on both ends.

    Outflows to any external address are withdrawals, labelled or not, so a
    taxable event is never parked in ``OTHER``. Inflows are seed capital only
    when they come from the personal wallet or a configured funding source;
    program payouts and MEV tips get their own buckets and unknown senders
    land in ``OTHER`` for review.
    """
    if AccountRole.UNKNOWN in (source_role, destination_role):
        return Category.OTHER
    if source_role.is_internal and destination_role is AccountRole.DOUBLEZERO_DEPOSIT:
        return Category.DOUBLEZERO_PAYMENT
    if source_role.is_internal and destination_role.is_internal:
        return Category.INTERNAL
    if source_role.is_external and destination_role.is_internal:
        return _INFLOW_CATEGORIES.get(source_role, Category.OTHER)
    if source_role.is_internal and destination_role.is_external:
        return Category.WITHDRAWAL
    return Category.OTHER


def categorize_transfers(events: Iterable[TransferEvent]) -> CategorizedTransfers:
    """Partition ``events`` into buckets, each ordered by ``(timestamp, signature)``."""
    result = CategorizedTransfers()
    for event in sorted(events, key=lambda e: e.sort_key):
        result.bucket(categorize(event.source_role, event.destination_role)).append(event)
    return result
