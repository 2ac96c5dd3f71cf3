from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Protocol

from .price_types import DailyPrice


class PriceStore(Protocol):
    def write_many(self, prices: Iterable[DailyPrice]) -> None: ...

    def read_all(self, base_id: str, quote_id: str) -> dict[date, DailyPrice]: ...


class JsonlPriceStore(PriceStore):
    def __init__(self, *, root_dir: Path) -> None:
        self.root_dir = root_dir

    def write_many(self, prices: Iterable[DailyPrice]) -> None:
        by_file: dict[Path, list[DailyPrice]] = {}
        for price in prices:
            by_file.setdefault(self._file_path(price.base_id, price.quote_id), []).append(price)

        for path, batch in by_file.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as handle:
                for price in batch:
                    record = {
                        "day": price.day.isoformat(),
                        "base_id": price.base_id,
                        "quote_id": price.quote_id,
                        "rate": str(price.rate),
                        "source": price.source,
                    }
                    handle.write(json.dumps(record))
                    handle.write("\n")

    def read_all(self, base_id: str, quote_id: str) -> dict[date, DailyPrice]:
        path = self._file_path(base_id, quote_id)
        if not path.exists():
            return {}

        # Later lines win for a repeated day.
        result: dict[date, DailyPrice] = {}
        with path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                record = json.loads(line)
                day = date.fromisoformat(record["day"])
                result[day] = DailyPrice(
                    day=day,
                    base_id=record["base_id"],
                    quote_id=record["quote_id"],
                    rate=Decimal(record["rate"]),
                    source=record["source"],
                )
        return result

    def _file_path(self, base_id: str, quote_id: str) -> Path:
        safe_base = base_id.upper()
        safe_quote = quote_id.upper()
        return self.root_dir / "prices" / f"{safe_base}-{safe_quote}.jsonl"


__all__ = ["JsonlPriceStore", "PriceStore"]
