from __future__ import annotations

import random
from datetime import date
from decimal import Decimal

from domain.costs import CostEntry, ExpenseCategory
from domain.ledger import EntryKind, LedgerEntry
from domain.ledger_assembler import LedgerAssembler, filter_period, order_entries
from domain.roles import ValidatorConfig
from tests.helpers.factories import (
    DZ_DEPOSIT,
    EXCHANGE,
    IDENTITY,
    JITO_TIPS,
    PERSONAL,
    STRANGER,
    VOTE,
    WITHDRAW_AUTHORITY,
    at,
    flat_resolver,
    make_validator_config,
    sol,
    transfer,
)


def _entry(day: date, kind: EntryKind, description: str) -> LedgerEntry:
    return LedgerEntry(date=day, kind=kind, category="Test", description=description, quote_value=Decimal(1))


def _costs() -> list[CostEntry]:
    return [
        CostEntry(
            period_id="2025-04",
            date=date(2025, 4, 30),
            category=ExpenseCategory.VOTE_FEES,
            description="Vote fees",
            lamports=sol(1),
            reimbursable=True,
        ),
        CostEntry(
            period_id="2025-04",
            date=date(2025, 4, 30),
            category=ExpenseCategory.HOSTING,
            description="Server rent",
            quote_amount=Decimal("250"),
        ),
    ]


def test_order_entries_sorts_by_date_then_kind_priority() -> None:
    day = date(2025, 4, 30)
    entries = [
        _entry(day, EntryKind.EXPENSE, "expense"),
        _entry(day, EntryKind.REIMBURSEMENT, "reimbursement"),
        _entry(date(2025, 4, 1), EntryKind.EXPENSE, "earlier"),
        _entry(day, EntryKind.RETURN_OF_CAPITAL, "capital"),
        _entry(day, EntryKind.REVENUE, "revenue"),
    ]

    ordered = order_entries(entries)

    assert [entry.description for entry in ordered] == ["earlier", "revenue", "capital", "reimbursement", "expense"]


def test_order_entries_keeps_insertion_order_for_ties() -> None:
    day = date(2025, 4, 30)
    entries = [_entry(day, EntryKind.EXPENSE, name) for name in ("b", "a", "c")]

    assert [entry.description for entry in order_entries(entries)] == ["b", "a", "c"]


def test_build_merges_pool_reimbursement_and_cost_rows(validator_config: ValidatorConfig) -> None:
    events = [
        transfer(EXCHANGE, VOTE, sol(10), at(2025, 1, 20)),
        transfer(VOTE, WITHDRAW_AUTHORITY, sol(3), at(2025, 4, 1)),
        transfer(WITHDRAW_AUTHORITY, PERSONAL, sol(12), at(2025, 4, 30)),
        transfer(STRANGER, PERSONAL, sol(1), at(2025, 4, 30)),
    ]
    assembler = LedgerAssembler(config=validator_config, price_resolver=flat_resolver())

    build = assembler.build(events, _costs())

    assert [(entry.kind, entry.category) for entry in build.entries] == [
        (EntryKind.REVENUE, "Withdrawal"),
        (EntryKind.RETURN_OF_CAPITAL, "Withdrawal"),
        (EntryKind.REIMBURSEMENT, "Vote Fee Reimbursement"),
        (EntryKind.EXPENSE, "Vote Fees"),
        (EntryKind.EXPENSE, "Hosting"),
    ]
    assert len(build.unclassified) == 1
    assert build.pool.remaining_lamports == 0
    assert build.price_fallbacks > 0


def test_reimbursable_costs_without_program_are_plain_expenses() -> None:
    config = make_validator_config(reimbursement_acceptance_date=None)
    assembler = LedgerAssembler(config=config, price_resolver=flat_resolver())

    build = assembler.build([], _costs())

    assert [entry.kind for entry in build.entries] == [EntryKind.EXPENSE, EntryKind.EXPENSE]
    assert build.entries[1].description == "Vote fees"


def test_build_is_independent_of_input_order(validator_config: ValidatorConfig) -> None:
    events = [
        transfer(EXCHANGE, VOTE, sol(5), at(2025, 1, 20)),
        transfer(PERSONAL, VOTE, sol(5), at(2025, 2, 1)),
        transfer(VOTE, EXCHANGE, sol(4), at(2025, 2, 1)),
        transfer(VOTE, STRANGER, sol(8), at(2025, 3, 1)),
    ]
    costs = _costs()
    expected = LedgerAssembler(config=validator_config, price_resolver=flat_resolver()).build(events, costs).entries

    rng = random.Random(7)
    for _ in range(5):
        shuffled_events = events[:]
        shuffled_costs = costs[:]
        rng.shuffle(shuffled_events)
        rng.shuffle(shuffled_costs)
        assembler = LedgerAssembler(config=validator_config, price_resolver=flat_resolver())
        assert assembler.build(shuffled_events, shuffled_costs).entries == expected


def test_year_filter_applies_after_full_history_replay(validator_config: ValidatorConfig) -> None:
    events = [
        transfer(EXCHANGE, VOTE, sol(10), at(2024, 12, 1)),
        transfer(VOTE, EXCHANGE, sol(4), at(2024, 12, 15)),
        transfer(VOTE, EXCHANGE, sol(8), at(2025, 1, 10)),
    ]
    assembler = LedgerAssembler(config=validator_config, price_resolver=flat_resolver())

    full = assembler.build(events, [])
    only_2025 = assembler.build(events, [], year=2025)

    assert only_2025.entries == filter_period(full.entries, 2025)
    assert [(entry.kind, entry.source_lamports) for entry in only_2025.entries] == [
        (EntryKind.REVENUE, sol(2)),
        (EntryKind.RETURN_OF_CAPITAL, sol(6)),
    ]


def test_mev_tips_are_not_seed_capital(validator_config: ValidatorConfig) -> None:
    events = [
        transfer(JITO_TIPS, VOTE, sol(5), at(2025, 2, 1)),
        transfer(VOTE, EXCHANGE, sol(5), at(2025, 2, 10)),
    ]
    assembler = LedgerAssembler(config=validator_config, price_resolver=flat_resolver())

    build = assembler.build(events, [])

    assert build.categorized.seeds == []
    assert build.categorized.mev_deposits == [events[0]]
    assert [(entry.kind, entry.source_lamports) for entry in build.entries] == [(EntryKind.REVENUE, sol(5))]


def test_doublezero_payments_do_not_become_revenue(validator_config: ValidatorConfig) -> None:
    payment = transfer(IDENTITY, DZ_DEPOSIT, sol(2), at(2025, 4, 5))
    dz_fees = CostEntry(
        period_id="2025-04",
        date=date(2025, 4, 30),
        category=ExpenseCategory.DOUBLEZERO,
        description="DoubleZero fees",
        lamports=sol(2),
    )
    assembler = LedgerAssembler(config=validator_config, price_resolver=flat_resolver())

    build = assembler.build([payment], [dz_fees])

    assert build.categorized.doublezero_payments == [payment]
    assert [(entry.kind, entry.category, entry.source_lamports) for entry in build.entries] == [
        (EntryKind.EXPENSE, "DoubleZero", sol(2)),
    ]
