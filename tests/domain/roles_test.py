from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from domain.base_types import AccountRole
from tests.helpers.factories import (
    DZ_DEPOSIT,
    EXCHANGE,
    FOUNDATION,
    IDENTITY,
    JITO_TIPS,
    PERSONAL,
    STRANGER,
    VOTE,
    WITHDRAW_AUTHORITY,
    make_validator_config,
)


def test_role_of_each_configured_address() -> None:
    config = make_validator_config()

    assert config.role_of(VOTE) is AccountRole.VOTE
    assert config.role_of(IDENTITY) is AccountRole.IDENTITY
    assert config.role_of(WITHDRAW_AUTHORITY) is AccountRole.WITHDRAW_AUTHORITY
    assert config.role_of(PERSONAL) is AccountRole.PERSONAL_WALLET
    assert config.role_of(EXCHANGE) is AccountRole.FUNDING_SOURCE
    assert config.role_of(DZ_DEPOSIT) is AccountRole.DOUBLEZERO_DEPOSIT
    assert config.role_of(FOUNDATION) is AccountRole.REIMBURSEMENT_PROGRAM
    assert config.role_of(JITO_TIPS) is AccountRole.MEV_DISTRIBUTOR
    assert config.role_of(STRANGER) is AccountRole.EXTERNAL
    assert config.role_of("") is AccountRole.UNKNOWN


def test_identity_can_double_as_withdraw_authority() -> None:
    config = make_validator_config(withdraw_authority=IDENTITY)

    assert config.internal_addresses == frozenset({VOTE, IDENTITY})
    assert config.is_internal(IDENTITY)


def test_destination_labels() -> None:
    config = make_validator_config()

    assert config.destination_label(PERSONAL) == "Personal Wallet"
    assert config.destination_label(EXCHANGE) == "Kraken"
    assert config.destination_label(DZ_DEPOSIT) == "DoubleZero Deposit"
    assert config.destination_label(STRANGER) is None


def test_personal_wallet_cannot_be_internal() -> None:
    with pytest.raises(ValidationError):
        make_validator_config(personal_wallet=VOTE)


def test_known_destinations_cannot_include_validator_accounts() -> None:
    with pytest.raises(ValidationError):
        make_validator_config(known_destinations={VOTE: "Oops"})


def test_business_start_month() -> None:
    assert make_validator_config().business_start_month() == date(2025, 1, 1)


def test_funding_sources_cannot_include_validator_accounts() -> None:
    with pytest.raises(ValidationError):
        make_validator_config(funding_sources=[IDENTITY])


def test_doublezero_deposit_cannot_be_a_validator_account() -> None:
    with pytest.raises(ValidationError):
        make_validator_config(doublezero_deposit_account=VOTE)
