from __future__ import annotations

import csv
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from pydantic import ValidationError

from domain.costs import CostEntry, ExpenseCategory, RecurringCost
from domain.errors import InputInconsistencyError

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "y"}


def load_costs(csv_path: Path) -> list[CostEntry]:
    """Load per-period costs.

    Columns: date,period_id,category,description,lamports,amount_usd[,reimbursable]
    Exactly one of ``lamports`` and ``amount_usd`` is filled per row.
    """

    rows = _read_rows(csv_path, {"date", "period_id", "category", "description"})
    costs: list[CostEntry] = []
    for line_no, row in rows:
        lamports_raw = (row.get("lamports") or "").strip()
        amount_raw = (row.get("amount_usd") or "").strip()
        try:
            costs.append(
                CostEntry(
                    period_id=row["period_id"].strip(),
                    date=date.fromisoformat(row["date"].strip()),
                    category=ExpenseCategory.from_label(row["category"]),
                    description=row["description"].strip(),
                    lamports=int(lamports_raw) if lamports_raw else None,
                    quote_amount=Decimal(amount_raw) if amount_raw else None,
                    reimbursable=(row.get("reimbursable") or "").strip().lower() in _TRUTHY,
                )
            )
        except (ValueError, InvalidOperation, ValidationError) as exc:
            raise InputInconsistencyError(f"Costs CSV {csv_path}:{line_no}: {exc}") from exc

    logger.info("Loaded %d cost entries from %s", len(costs), csv_path)
    return costs


def load_recurring_costs(csv_path: Path) -> list[RecurringCost]:
    """Load monthly cost templates.

    Columns: vendor,category,description,amount_usd,start_date[,end_date]
    """

    rows = _read_rows(csv_path, {"vendor", "category", "description", "amount_usd", "start_date"})
    templates: list[RecurringCost] = []
    for line_no, row in rows:
        end_raw = (row.get("end_date") or "").strip()
        try:
            templates.append(
                RecurringCost(
                    vendor=row["vendor"].strip(),
                    category=ExpenseCategory.from_label(row["category"]),
                    description=row["description"].strip(),
                    quote_amount=Decimal(row["amount_usd"].strip()),
                    start_date=date.fromisoformat(row["start_date"].strip()),
                    end_date=date.fromisoformat(end_raw) if end_raw else None,
                )
            )
        except (ValueError, InvalidOperation, ValidationError) as exc:
            raise InputInconsistencyError(f"Recurring costs CSV {csv_path}:{line_no}: {exc}") from exc
    return templates


def _read_rows(csv_path: Path, required: set[str]) -> list[tuple[int, dict[str, str]]]:
    with csv_path.open(newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise InputInconsistencyError(f"CSV {csv_path} is empty or missing headers")

        missing = required - set(reader.fieldnames)
        if missing:
            raise InputInconsistencyError(f"CSV {csv_path} missing required columns: {', '.join(sorted(missing))}")
        return list(enumerate(reader, start=2))


__all__ = ["load_costs", "load_recurring_costs"]
