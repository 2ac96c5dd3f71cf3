from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import NewType

from pydantic import BaseModel, ConfigDict, field_validator

Address = NewType("Address", str)
Signature = NewType("Signature", str)

LAMPORTS_PER_SOL = 1_000_000_000


class AccountRole(StrEnum):
    VOTE = "VOTE"
    IDENTITY = "IDENTITY"
    WITHDRAW_AUTHORITY = "WITHDRAW_AUTHORITY"
    PERSONAL_WALLET = "PERSONAL_WALLET"
    FUNDING_SOURCE = "FUNDING_SOURCE"
    REIMBURSEMENT_PROGRAM = "REIMBURSEMENT_PROGRAM"
    MEV_DISTRIBUTOR = "MEV_DISTRIBUTOR"
    DOUBLEZERO_DEPOSIT = "DOUBLEZERO_DEPOSIT"
    EXTERNAL = "EXTERNAL"
    UNKNOWN = "UNKNOWN"

    @property
    def is_internal(self) -> bool:
        return self in INTERNAL_ROLES

    @property
    def is_external(self) -> bool:
        return self is not AccountRole.UNKNOWN and self not in INTERNAL_ROLES

    @property
    def is_capital_source(self) -> bool:
        return self in (AccountRole.PERSONAL_WALLET, AccountRole.FUNDING_SOURCE)


INTERNAL_ROLES = frozenset({AccountRole.VOTE, AccountRole.IDENTITY, AccountRole.WITHDRAW_AUTHORITY})


class TransferEvent(BaseModel):
    """A single native-token movement observed on chain.

    Amounts are integer lamports; events are totally ordered by
    ``(timestamp, signature)``.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    lamports: int
    source: Address
    source_role: AccountRole
    destination: Address
    destination_role: AccountRole
    signature: Signature

    @field_validator("lamports")
    @classmethod
    def _validate_lamports(cls, value: int) -> int:
        if value < 0:
            raise ValueError("TransferEvent.lamports must be >= 0")
        return value

    @field_validator("timestamp")
    @classmethod
    def _validate_timestamp(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("TransferEvent.timestamp must be timezone-aware")
        return value

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return self.timestamp, self.signature
