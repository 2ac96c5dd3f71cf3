from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from domain.ledger import LedgerEntry

from .formatting import format_currency, format_decimal, format_sol
from .tax_summary import TaxSummary, other_expense_details, schedule_c_lines

LEDGER_COLUMNS = (
    "Date",
    "Type",
    "Category",
    "Description",
    "SOL Amount",
    "SOL Price (USD)",
    "USD Value",
    "Destination",
    "Tx Signature",
)

SCHEDULE_C_COLUMNS = ("Tax Year", "Section", "Line", "Description", "Amount (USD)")
OTHER_EXPENSES_COLUMNS = ("Tax Year", "Description", "Amount (USD)", "Source Category")


def ledger_row(entry: LedgerEntry) -> dict[str, str]:
    return {
        "Date": entry.date.isoformat(),
        "Type": entry.kind.value,
        "Category": entry.category,
        "Description": entry.description,
        "SOL Amount": format_sol(entry.source_lamports) if entry.source_lamports is not None else "",
        "SOL Price (USD)": format_decimal(entry.unit_price) if entry.unit_price is not None else "",
        "USD Value": format_currency(entry.quote_value),
        "Destination": entry.destination or "",
        "Tx Signature": entry.signature or "",
    }


def write_ledger_csv(path: Path, entries: Iterable[LedgerEntry]) -> int:
    return _write_rows(path, LEDGER_COLUMNS, (ledger_row(entry) for entry in entries))


def write_schedule_c_csv(path: Path, summary: TaxSummary) -> int:
    """Schedule C income and expense lines, one row per line."""
    year_label = str(summary.year) if summary.year is not None else "all"
    rows = (
        {
            "Tax Year": year_label,
            "Section": line.section,
            "Line": line.line,
            "Description": line.description,
            "Amount (USD)": format_currency(line.amount),
        }
        for line in schedule_c_lines(summary)
    )
    return _write_rows(path, SCHEDULE_C_COLUMNS, rows)


def write_other_expenses_csv(path: Path, summary: TaxSummary) -> int:
    year_label = str(summary.year) if summary.year is not None else "all"
    rows = (
        {
            "Tax Year": year_label,
            "Description": f"{category} expenses",
            "Amount (USD)": format_currency(amount),
            "Source Category": category,
        }
        for category, amount in other_expense_details(summary).items()
    )
    return _write_rows(path, OTHER_EXPENSES_COLUMNS, rows)


def _write_rows(path: Path, columns: tuple[str, ...], rows: Iterable[dict[str, str]]) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=columns)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
            count += 1
    return count


__all__ = [
    "LEDGER_COLUMNS",
    "OTHER_EXPENSES_COLUMNS",
    "SCHEDULE_C_COLUMNS",
    "ledger_row",
    "write_ledger_csv",
    "write_other_expenses_csv",
    "write_schedule_c_csv",
]
