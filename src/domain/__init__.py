"""Ledger and reconciliation engine for a validator operator.

This package holds the in-memory (Pydantic) models and the pure functions
that turn transfers and costs into a tax ledger and a balance reconciliation.
Nothing here performs I/O, so persistence and price fetching can evolve
without touching the accounting rules.
"""

__all__ = [
    "base_types",
    "capital_pool",
    "categorizer",
    "costs",
    "errors",
    "ledger",
    "ledger_assembler",
    "pricing",
    "reconciliation",
    "reimbursement",
    "roles",
]
