from __future__ import annotations


class InputInconsistencyError(Exception):
    """Inputs contradict each other in a way that makes a result meaningless.

    Raised for non-atomic balance snapshots and malformed role configuration.
    Only reconciliation treats it as fatal.
    """

    def __init__(self, message: str, *, details: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}
