from __future__ import annotations

import argparse
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from time import perf_counter
from typing import Sequence

from config import ARTIFACTS_DIR, PROJECT_ROOT, config
from db.db import init_db
from db.repositories import LedgerEntryRepository, ReconciliationRepository
from domain.base_types import TransferEvent
from domain.costs import CostEntry, expand_recurring_costs
from domain.ledger_assembler import LedgerAssembler, filter_period
from domain.pricing import PriceResolver
from domain.reconciliation import (
    PositionReconciler,
    ReconciliationResult,
    ReconciliationStatus,
    lst_appreciation_lamports,
)
from domain.roles import ValidatorConfig
from importers.balances import load_balance_snapshot
from importers.costs import load_costs, load_recurring_costs
from importers.transfers import load_transfers
from services.price_service import build_default_service
from utils.ledger_csv import write_ledger_csv, write_other_expenses_csv, write_schedule_c_csv
from utils.tax_summary import compute_tax_summary, render_reconciliation, render_tax_summary
from validator_config import DEFAULT_VALIDATOR_CONFIG_PATH, load_validator_config

logger = logging.getLogger(__name__)


def load_all_costs(
    costs_csv: Path | None,
    recurring_csv: Path | None,
    validator: ValidatorConfig,
    *,
    through: date,
) -> list[CostEntry]:
    costs = load_costs(costs_csv) if costs_csv is not None and costs_csv.exists() else []
    if recurring_csv is not None and recurring_csv.exists():
        templates = load_recurring_costs(recurring_csv)
        expanded = expand_recurring_costs(templates, validator.business_start_month(), through)
        logger.info("Expanded %d recurring templates into %d monthly costs", len(templates), len(expanded))
        costs.extend(expanded)
    return costs


def build_price_resolver(
    events: Sequence[TransferEvent], costs: Sequence[CostEntry], cache_dir: Path, *, offline: bool
) -> PriceResolver:
    settings = config()
    dates = {event.timestamp.date() for event in events} | {cost.date for cost in costs if cost.is_on_chain}
    service = build_default_service(cache_dir=cache_dir, api_key=settings.coingecko_api_key, offline=offline)
    return PriceResolver(service.series_for(dates), fallback_price=settings.fallback_sol_price)


def run(
    *,
    validator_config_path: Path,
    transfers_csv: Path,
    costs_csv: Path | None,
    recurring_costs_csv: Path | None,
    balances_json: Path | None,
    year: int | None,
    output_dir: Path,
    price_cache_dir: Path,
    earned_income_lamports: int = 0,
    lst_adjustment_lamports: int = 0,
    offline: bool = False,
) -> ReconciliationResult | None:
    started = perf_counter()
    settings = config()
    validator = load_validator_config(validator_config_path)

    events = load_transfers(transfers_csv, validator)
    through = date(year, 12, 31) if year is not None else date.today()
    costs = load_all_costs(costs_csv, recurring_costs_csv, validator, through=through)

    resolver = build_price_resolver(events, costs, price_cache_dir, offline=offline)
    assembler = LedgerAssembler(config=validator, price_resolver=resolver)
    build = assembler.build(events, costs)
    ledger = filter_period(build.entries, year)

    session = init_db(db_file=output_dir / "validator_accounting.db")
    ledger_repository = LedgerEntryRepository(session)
    ledger_repository.create_many(build.entries)

    suffix = str(year) if year is not None else "all"
    csv_path = output_dir / f"ledger-{suffix}.csv"
    written = write_ledger_csv(csv_path, ledger)
    print(f"Wrote {written} ledger entries to {csv_path}")

    summary = compute_tax_summary(ledger_repository.list(year), year=year)
    render_tax_summary(summary, unclassified=len(build.unclassified), price_fallbacks=build.price_fallbacks)
    schedule_c_path = output_dir / f"tax-schedule-c-{suffix}.csv"
    write_schedule_c_csv(schedule_c_path, summary)
    write_other_expenses_csv(output_dir / f"tax-schedule-c-other-expenses-{suffix}.csv", summary)
    print(f"Wrote Schedule C lines to {schedule_c_path}")

    result: ReconciliationResult | None = None
    if balances_json is not None:
        snapshot = load_balance_snapshot(balances_json, validator)
        reconciler = PositionReconciler(
            tolerance_lamports=settings.reconciliation_tolerance_lamports,
            include_offchain_costs=settings.include_offchain_costs_in_reconciliation,
        )
        # Reconciliation always runs on the full history.
        result = reconciler.reconcile(
            build.entries,
            snapshot,
            seeds=build.categorized.seeds,
            earned_income_lamports=earned_income_lamports,
            mark_to_market_lamports=lst_adjustment_lamports,
        )
        ReconciliationRepository(session).create(result)
        render_reconciliation(result)
        if result.status is ReconciliationStatus.VARIANCE:
            logger.warning("Balances differ from the ledger by %d lamports", result.difference)

    logger.info("Run finished in %.2fs", perf_counter() - started)
    return result


def main(argv: Sequence[str] | None = None) -> ReconciliationResult | None:
    parser = argparse.ArgumentParser(description="Build the validator tax ledger and reconcile balances.")
    parser.add_argument("--config", type=Path, default=PROJECT_ROOT / DEFAULT_VALIDATOR_CONFIG_PATH)
    parser.add_argument("--transfers", type=Path, default=Path("data/transfers.csv"))
    parser.add_argument("--costs", type=Path, default=Path("data/costs.csv"))
    parser.add_argument("--recurring-costs", type=Path, default=Path("data/recurring_costs.csv"))
    parser.add_argument("--balances", type=Path, default=None)
    parser.add_argument("--year", type=int, default=None)
    parser.add_argument("--output-dir", type=Path, default=ARTIFACTS_DIR)
    parser.add_argument("--price-cache-dir", type=Path, default=PROJECT_ROOT / ".cache")
    parser.add_argument("--offline", action="store_true", help="Use cached prices only")
    parser.add_argument("--earned-income-lamports", type=int, default=0)
    parser.add_argument(
        "--lst-adjustment-lamports",
        type=int,
        default=0,
        help="Mark-to-market gain of liquid staking tokens, in lamports",
    )
    parser.add_argument(
        "--lst-token-lamports",
        type=int,
        default=0,
        help="Liquid staking tokens held, in token base units; adds their appreciation to the adjustment",
    )
    parser.add_argument("--lst-entry-rate", type=Decimal, default=None, help="SOL per token when acquired")
    parser.add_argument("--lst-current-rate", type=Decimal, default=None, help="SOL per token at the snapshot")
    args = parser.parse_args(argv)

    mark_to_market = args.lst_adjustment_lamports
    if args.lst_token_lamports:
        if args.lst_entry_rate is None or args.lst_current_rate is None:
            parser.error("--lst-token-lamports requires --lst-entry-rate and --lst-current-rate")
        mark_to_market += lst_appreciation_lamports(
            args.lst_token_lamports,
            entry_rate=args.lst_entry_rate,
            current_rate=args.lst_current_rate,
        )

    return run(
        validator_config_path=args.config,
        transfers_csv=args.transfers,
        costs_csv=args.costs,
        recurring_costs_csv=args.recurring_costs,
        balances_json=args.balances,
        year=args.year,
        output_dir=args.output_dir,
        price_cache_dir=args.price_cache_dir,
        earned_income_lamports=args.earned_income_lamports,
        lst_adjustment_lamports=mark_to_market,
        offline=args.offline,
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    main()
