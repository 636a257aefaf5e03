#!/usr/bin/env python3
"""Generate sample ledger data and views for validation.

Writes JSON files for each entity type and for the main read views into the
output directory. These files can be used for manual validation.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from debt_ledger.config import DebtLedgerConfig
from debt_ledger.ledger.views import LedgerViews
from debt_ledger.logging import setup_logging
from debt_ledger.scenarios import InstallmentPortfolioScenario
from debt_ledger.sinks import JsonFileSink


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate a sample installment portfolio")
    parser.add_argument("--customers", type=int, default=10, help="Number of customers (default: 10)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--output-dir", type=Path, default=Path("local"), help="Output directory")
    args = parser.parse_args()

    config = DebtLedgerConfig.from_env()
    setup_logging(config.log_level, config.log_format, config.ledger.zone)

    print("=" * 60)
    print("Generating Sample Ledger Data for Validation")
    print("=" * 60)

    scenario = InstallmentPortfolioScenario(
        num_customers=args.customers,
        seed=args.seed,
        config=config.ledger,
    )
    store = scenario.generate()
    views = LedgerViews(store, scenario.clock, config.ledger)

    sink = JsonFileSink(args.output_dir, pretty=True)
    sink.write_batch("customers", list(store.customers.values()))
    sink.write_batch("employees", list(store.employees.values()))
    sink.write_batch("contracts", list(store.contracts.values()))
    sink.write_batch("payments", list(store.payments.values()))
    sink.write_batch("debtors", list(store.debtors.values()))
    sink.write_batch("prepaid_records", list(store.prepaid_records.values()))
    sink.write_batch("balances", list(store.balances.values()))

    sink.write_batch("debtors_by_customer", views.debtors_by_customer())
    sink.write_batch("overdue_contracts", views.overdue_contracts())
    for manager_id in store.employees:
        sink.write_batch(f"all_debtors_{manager_id}", views.all_debtors(manager_id))
    sink.write_report("portfolio_summary", scenario.get_portfolio_summary())
    sink.close()

    print("\nSummary:")
    for key, value in scenario.get_portfolio_summary().items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
