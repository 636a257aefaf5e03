"""Installment portfolio scenario: customers, contracts and replayed payment histories."""

from __future__ import annotations

import logging
import random
from datetime import datetime
from decimal import Decimal
from typing import Any

from debt_ledger.clock import FixedClock, SystemClock
from debt_ledger.config import LedgerConfig
from debt_ledger.generators import (
    ContractGenerator,
    CustomerGenerator,
    EmployeeGenerator,
    PaymentBehavior,
    PaymentEvent,
)
from debt_ledger.ledger.aggregator import compute
from debt_ledger.ledger.materializer import DebtorMaterializer, MaterializerReport
from debt_ledger.ledger.payments import PaymentService
from debt_ledger.models import ContractStatus, PaymentStatus
from debt_ledger.store import InMemoryLedgerStore

logger = logging.getLogger(__name__)


class InstallmentPortfolioScenario:
    """Generate a populated ledger with realistic payment behavior.

    This scenario creates:
    - Managers, each with a book of customers
    - One or more installment contracts per customer
    - Payment histories replayed through the payment service, so manager
      balances, prepaid records and contract statuses are consistent
    - Optionally, debtor records from one materialiser run
    """

    def __init__(
        self,
        num_customers: int = 50,
        num_managers: int = 3,
        max_contracts_per_customer: int = 2,
        on_time_rate: float = 0.70,
        late_rate: float = 0.20,
        default_rate: float = 0.10,
        seed: int | None = None,
        as_of: datetime | None = None,
        *,
        config: LedgerConfig | None = None,
    ) -> None:
        """Initialize the scenario.

        Parameters
        ----------
        num_customers : int
            Number of customers to generate.
        num_managers : int
            Number of managers sharing the customers.
        max_contracts_per_customer : int
            Upper bound of contracts per customer.
        on_time_rate : float
            Share of contracts paid on time.
        late_rate : float
            Share of contracts paid late.
        default_rate : float
            Share of contracts that stop paying.
        seed : int | None
            Random seed for reproducibility.
        as_of : datetime | None
            Timezone-aware instant the portfolio is generated up to.
        config : LedgerConfig | None
            Ledger settings.
        """
        self.num_customers = num_customers
        self.num_managers = num_managers
        self.max_contracts_per_customer = max_contracts_per_customer
        self.on_time_rate = on_time_rate
        self.late_rate = late_rate
        self.default_rate = default_rate
        self.seed = seed
        self.config = config or LedgerConfig()
        self.as_of = as_of or SystemClock(self.config.zone).now()

        if seed is not None:
            random.seed(seed)

        self.store = InMemoryLedgerStore()
        self.clock = FixedClock(self.as_of)
        self.report: MaterializerReport | None = None
        self._employee_gen = EmployeeGenerator(seed=seed)
        self._customer_gen = CustomerGenerator(seed=seed)
        self._contract_gen = ContractGenerator(seed=seed)
        self._payment_behavior = PaymentBehavior(seed=seed)

    def generate(self, materialize: bool = True) -> InMemoryLedgerStore:
        """Generate all data for the scenario.

        Parameters
        ----------
        materialize : bool
            Run the debtor materialiser once at ``as_of``.

        Returns
        -------
        InMemoryLedgerStore
            Store containing all generated data.
        """
        logger.info(
            "Starting installment portfolio scenario: %d customers, %d managers",
            self.num_customers,
            self.num_managers,
        )
        zone = self.config.zone
        reference_date = self.as_of.date()

        managers = [self._employee_gen.generate() for _ in range(self.num_managers)]
        for manager in managers:
            self.store.add_employee(manager)

        events: list[PaymentEvent] = []
        sequence = 0
        for _ in range(self.num_customers):
            manager = random.choice(managers)
            customer = self._customer_gen.generate(manager.employee_id)
            self.store.add_customer(customer)

            for _ in range(random.randint(1, self.max_contracts_per_customer)):
                sequence += 1
                contract, payments = self._contract_gen.generate_with_schedule(
                    customer.customer_id,
                    manager.employee_id,
                    reference_date,
                    zone,
                    custom_id=f"{self.as_of:%y}T{sequence:05d}",
                )
                self.store.add_contract(contract)
                for payment in payments:
                    self.store.add_payment(payment)

                behavior = self._payment_behavior.choose_behavior(
                    self.on_time_rate, self.late_rate, self.default_rate
                )
                events.extend(
                    self._payment_behavior.plan_payments(payments, reference_date, zone, behavior)
                )

        logger.info(
            "Generated %d customers with %d contracts",
            len(self.store.customers),
            len(self.store.contracts),
        )

        self._replay(events)
        self.clock.move_to(self.as_of)

        if materialize:
            self.report = DebtorMaterializer(self.store, self.clock).run()

        return self.store

    def _replay(self, events: list[PaymentEvent]) -> None:
        """Apply payment events in chronological order through the payment service."""
        service = PaymentService(self.store, self.clock, self.config)
        events = sorted((e for e in events if e.at <= self.as_of), key=lambda e: e.at)
        for event in events:
            self.clock.move_to(event.at)
            payment = self.store.get_payment(event.payment_id)
            if event.confirmed:
                customer = self.store.get_customer(payment.customer_id)
                service.confirm_payment(
                    event.payment_id,
                    customer.manager_id,
                    actual_amount=event.amount,
                    method=event.method,
                )
            else:
                service.submit_payment(event.payment_id, event.amount, event.method)
        logger.info("Replayed %d payment event(s)", len(events))

    def get_portfolio_summary(self) -> dict[str, Any]:
        """Get summary statistics for the portfolio.

        Returns
        -------
        dict[str, Any]
            Portfolio summary statistics.
        """
        contracts = list(self.store.contracts.values())
        if not contracts:
            return {}

        today = self.clock.today()
        outstanding = Decimal("0")
        for contract in contracts:
            view = compute(contract, self.store.find_payments(contract_id=contract.contract_id), today)
            outstanding += view.remaining_debt

        payments = list(self.store.payments.values())
        return {
            "total_contracts": len(contracts),
            "active_contracts": sum(1 for c in contracts if c.status == ContractStatus.ACTIVE),
            "completed_contracts": sum(1 for c in contracts if c.status == ContractStatus.COMPLETED),
            "paid_payments": sum(1 for p in payments if p.is_paid),
            "pending_payments": sum(
                1 for p in payments if not p.is_paid and p.status == PaymentStatus.PENDING
            ),
            "unpaid_payments": sum(1 for p in payments if not p.is_paid),
            "prepaid_records": len(self.store.prepaid_records),
            "debtors": len(self.store.debtors),
            "total_outstanding": str(outstanding),
        }
