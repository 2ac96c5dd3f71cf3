from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from domain.errors import InputInconsistencyError
from domain.roles import ValidatorConfig

DEFAULT_VALIDATOR_CONFIG_PATH = Path("artifacts/validator.json")


def load_validator_config(path: Path = DEFAULT_VALIDATOR_CONFIG_PATH) -> ValidatorConfig:
    """Load the validator role map.

    Expected shape::

        {
          "vote_account": "...", "identity": "...", "withdraw_authority": "...",
          "personal_wallet": "...", "funding_sources": ["<exchange address>"],
          "doublezero_deposit_account": "...",
          "known_destinations": {"<address>": "Kraken"},
          "bootstrap_date": "2025-11-19",
          "reimbursement_acceptance_date": "2025-12-01"
        }
    """
    payload = json.loads(path.read_text())
    if not isinstance(payload, dict):
        msg = f"Validator config {path} must contain a JSON object."
        raise InputInconsistencyError(msg)

    destinations = payload.get("known_destinations", {})
    if not isinstance(destinations, dict):
        msg = f"Validator config {path}: 'known_destinations' must map address to label."
        raise InputInconsistencyError(msg)

    try:
        return ValidatorConfig.model_validate(payload)
    except ValidationError as exc:
        raise InputInconsistencyError(f"Validator config {path} is malformed: {exc}") from exc


__all__ = ["DEFAULT_VALIDATOR_CONFIG_PATH", "load_validator_config"]
