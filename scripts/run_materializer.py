#!/usr/bin/env python3
"""Run the nightly debtor materialiser.

Builds a synthetic installment portfolio, runs the materialiser once and
writes the report as JSON. With ``--postgres-url`` debtor records are written
to PostgreSQL instead of the in-memory store.
"""

import argparse
import logging
import sys
from datetime import date, datetime, time
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from debt_ledger.clock import FixedClock, SystemClock
from debt_ledger.config import DebtLedgerConfig
from debt_ledger.exceptions import DebtLedgerError
from debt_ledger.ledger.materializer import DebtorMaterializer
from debt_ledger.logging import setup_logging
from debt_ledger.scenarios import InstallmentPortfolioScenario
from debt_ledger.sinks import JsonFileSink
from debt_ledger.store.postgres import PostgresDebtorStore

logger = logging.getLogger("debt_ledger.scripts.run_materializer")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Materialise overdue obligations into debtor records")
    parser.add_argument(
        "--customers",
        type=int,
        default=50,
        help="Number of customers in the generated portfolio (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Run date (YYYY-MM-DD, default: today in the ledger time zone)",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=None,
        help="Write debtors to this PostgreSQL database",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for the JSON report (default: OUTPUT_DIR)",
    )
    parser.add_argument(
        "--fail-on-error",
        action="store_true",
        help="Exit with status 1 when any contract failed",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    try:
        config = DebtLedgerConfig.from_env()
    except DebtLedgerError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    setup_logging(config.log_level, config.log_format, config.ledger.zone)

    zone = config.ledger.zone
    as_of = SystemClock(zone).now()
    if args.as_of is not None:
        as_of = datetime.combine(args.as_of, time(0, 5), tzinfo=zone)

    scenario = InstallmentPortfolioScenario(
        num_customers=args.customers,
        seed=args.seed,
        as_of=as_of,
        config=config.ledger,
    )
    store = scenario.generate(materialize=False)

    debtor_store = None
    if args.postgres_url:
        debtor_store = PostgresDebtorStore(args.postgres_url)
        debtor_store.create_tables()

    try:
        materializer = DebtorMaterializer(store, FixedClock(as_of), debtor_store)
        report = materializer.run()
    finally:
        if debtor_store is not None:
            debtor_store.close()

    sink = JsonFileSink(args.output_dir or config.output.json_output_dir, pretty=config.output.pretty_json)
    sink.write_report("materializer_report", report.as_dict())
    sink.write_batch("materializer_outcomes", report.outcomes)
    sink.close()

    logger.info(
        "Created %d, updated %d, scanned %d overdue obligation(s), %d contract(s) failed",
        report.created,
        report.updated,
        report.total_overdue_payments,
        report.failed,
    )
    if report.failed and args.fail_on_error:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
