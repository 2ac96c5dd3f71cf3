from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain.base_types import AccountRole, Address

PERSONAL_WALLET_LABEL = "Personal Wallet"
DOUBLEZERO_DEPOSIT_LABEL = "DoubleZero Deposit"

# Solana Foundation accounts that pay out delegation-program vote cost reimbursements.
SOLANA_FOUNDATION_ADDRESSES = frozenset(
    {
        "mpa4abUkjQoAvPzREkh5Mo75hZhPFQ2FSH6w7dWKuQ5",
        "7K8DVxtNJGnMtUY1CQJT5jcs8sFGSZTDiG7kowvFpECh",
        "DRpbCBMxVnDK7maPM5tGv6MvB3v1sRMC86PZ8okm21hy",
        "4ZJhPQAgUseCsWhKvJLTmmRRUV74fdoTpQLNfKoHtFSP",
        "DtZWL3BPKa5hw7yQYvaFR29PcXThpLHVU2XAAZrcLiSe",
    }
)

# Jito tip payment and distribution accounts.
JITO_TIP_ADDRESSES = frozenset(
    {
        "T1pyyaTNZsKv2WcRAB8oVnk93mLJw2XzjtVYqCsaHqt",
        "4R3gSG8BpU4t19KYj8CfnbtRpnT8gtk4dvTHxVRwc2r7",
        "8F4jGUmxF36vQ6yabnsxX6AQVXdKBhs8kGSUuRKSg8Xt",
        "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
        "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
        "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
        "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
        "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
        "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
        "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
        "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
    }
)


class ValidatorConfig(BaseModel):
    """Role map and schedule dates for one validator operator.

    Only the personal wallet and the explicitly listed ``funding_sources`` can
    seed capital; inflows from any other sender are never treated as capital.
    """

    model_config = ConfigDict(frozen=True)

    vote_account: Address
    identity: Address
    withdraw_authority: Address
    personal_wallet: Address | None = None
    funding_sources: frozenset[Address] = frozenset()
    doublezero_deposit_account: Address | None = None
    known_destinations: dict[str, str] = Field(default_factory=dict)
    bootstrap_date: date
    reimbursement_acceptance_date: date | None = None

    @model_validator(mode="after")
    def _validate_roles(self) -> ValidatorConfig:
        internal = (self.vote_account, self.identity, self.withdraw_authority)
        if not all(address.strip() for address in internal):
            raise ValueError("vote_account, identity and withdraw_authority must be non-empty")
        if self.personal_wallet is not None and self.personal_wallet in internal:
            raise ValueError("personal_wallet must not be one of the validator accounts")
        if self.doublezero_deposit_account is not None and self.doublezero_deposit_account in internal:
            raise ValueError("doublezero_deposit_account must not be one of the validator accounts")
        for field_name, addresses in (
            ("known_destinations", set(self.known_destinations)),
            ("funding_sources", set(self.funding_sources)),
        ):
            overlap = addresses & set(internal)
            if overlap:
                raise ValueError(f"{field_name} contains validator accounts: {', '.join(sorted(overlap))}")
        return self

    @property
    def internal_addresses(self) -> frozenset[str]:
        # identity and withdraw authority may be the same key
        return frozenset({self.vote_account, self.identity, self.withdraw_authority})

    def is_internal(self, address: str) -> bool:
        return address in self.internal_addresses

    def role_of(self, address: str) -> AccountRole:
        if not address or not address.strip():
            return AccountRole.UNKNOWN
        if address == self.vote_account:
            return AccountRole.VOTE
        if address == self.identity:
            return AccountRole.IDENTITY
        if address == self.withdraw_authority:
            return AccountRole.WITHDRAW_AUTHORITY
        if address == self.personal_wallet:
            return AccountRole.PERSONAL_WALLET
        if address == self.doublezero_deposit_account:
            return AccountRole.DOUBLEZERO_DEPOSIT
        if address in self.funding_sources:
            return AccountRole.FUNDING_SOURCE
        if address in SOLANA_FOUNDATION_ADDRESSES:
            return AccountRole.REIMBURSEMENT_PROGRAM
        if address in JITO_TIP_ADDRESSES:
            return AccountRole.MEV_DISTRIBUTOR
        return AccountRole.EXTERNAL

    def destination_label(self, address: str) -> str | None:
        if self.personal_wallet is not None and address == self.personal_wallet:
            return PERSONAL_WALLET_LABEL
        if self.doublezero_deposit_account is not None and address == self.doublezero_deposit_account:
            return DOUBLEZERO_DEPOSIT_LABEL
        return self.known_destinations.get(address)

    def business_start_month(self) -> date:
        return self.bootstrap_date.replace(day=1)
