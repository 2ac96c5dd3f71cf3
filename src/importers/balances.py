from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from domain.base_types import Address
from domain.errors import InputInconsistencyError
from domain.reconciliation import AccountBalance, BalanceSnapshot
from domain.roles import ValidatorConfig


def load_balance_snapshot(json_path: Path, config: ValidatorConfig) -> BalanceSnapshot:
    """Load balances read from chain.

    Shape: ``{"slot": 123, "balances": [{"address": "...", "lamports": 1, "slot": 123}]}``.
    A per-account ``slot`` overrides the top-level one; roles come from ``config``.
    """
    payload = json.loads(json_path.read_text())
    if not isinstance(payload, dict) or not isinstance(payload.get("balances"), list):
        raise InputInconsistencyError(f"Balance snapshot {json_path} must contain a 'balances' list")

    default_slot = payload.get("slot")
    balances: list[AccountBalance] = []
    for item in payload["balances"]:
        if not isinstance(item, dict):
            raise InputInconsistencyError(f"Balance snapshot {json_path}: entries must be objects")
        slot = item.get("slot", default_slot)
        if slot is None:
            raise InputInconsistencyError(f"Balance snapshot {json_path}: {item.get('address')} has no slot")
        try:
            balances.append(
                AccountBalance(
                    address=Address(str(item["address"])),
                    role=config.role_of(str(item["address"])),
                    lamports=item["lamports"],
                    slot=slot,
                )
            )
        except (KeyError, ValidationError) as exc:
            raise InputInconsistencyError(f"Balance snapshot {json_path} has a malformed entry: {exc}") from exc

    return BalanceSnapshot(balances=balances)


__all__ = ["load_balance_snapshot"]
