from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path

from domain.base_types import Address, Signature, TransferEvent
from domain.errors import InputInconsistencyError
from domain.roles import ValidatorConfig

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"timestamp", "signature", "source", "destination", "lamports"}


def load_transfers(csv_path: Path, config: ValidatorConfig) -> list[TransferEvent]:
    """Load native transfers and tag both endpoints with their account role.

    Columns: timestamp,signature,source,destination,lamports
    ``timestamp`` is ISO-8601 (naive values are UTC) or unix seconds.
    Rows repeating an earlier (signature, source, destination, lamports) are dropped.
    """

    with csv_path.open(newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise InputInconsistencyError(f"Transfers CSV {csv_path} is empty or missing headers")

        missing = REQUIRED_COLUMNS - set(reader.fieldnames)
        if missing:
            raise InputInconsistencyError(
                f"Transfers CSV {csv_path} missing required columns: {', '.join(sorted(missing))}"
            )

        events: list[TransferEvent] = []
        seen: set[tuple[str, str, str, int]] = set()
        for line_no, row in enumerate(reader, start=2):
            signature = row["signature"].strip()
            source = row["source"].strip()
            destination = row["destination"].strip()
            try:
                lamports = int(row["lamports"])
                timestamp = _parse_timestamp(row["timestamp"])
            except ValueError as exc:
                raise InputInconsistencyError(f"Transfers CSV {csv_path}:{line_no}: {exc}") from exc
            if lamports < 0:
                raise InputInconsistencyError(f"Transfers CSV {csv_path}:{line_no}: negative lamports")

            key = (signature, source, destination, lamports)
            if key in seen:
                logger.debug("Skipping duplicate transfer row %s at line %d", signature, line_no)
                continue
            seen.add(key)

            events.append(
                TransferEvent(
                    timestamp=timestamp,
                    lamports=lamports,
                    source=Address(source),
                    source_role=config.role_of(source),
                    destination=Address(destination),
                    destination_role=config.role_of(destination),
                    signature=Signature(signature),
                )
            )

    logger.info("Loaded %d transfers from %s", len(events), csv_path)
    return events


def _parse_timestamp(raw: str) -> datetime:
    value = raw.strip()
    if value.isdigit():
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


__all__ = ["load_transfers"]
