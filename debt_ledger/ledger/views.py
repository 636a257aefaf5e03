"""Read views over a point-in-time snapshot of the ledger.

Nothing here writes to the store. Every view is a dataclass; render them with
``debt_ledger.sinks.serialization.to_json_dict``.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal

from debt_ledger.clock import Clock
from debt_ledger.config import LedgerConfig
from debt_ledger.exceptions import EntityNotFoundError, ValidationError
from debt_ledger.ledger.aggregator import (
    LedgerView,
    compute,
    days_between,
    is_paid_for_month,
    is_reminder_suppressed,
    matching_obligation,
    virtual_due_date,
)
from debt_ledger.ledger.categorizer import CategorizedDebts, DebtItem, categorize
from debt_ledger.ledger.prepaid import PrepaidReconciler
from debt_ledger.models import (
    Contract,
    ContractStatus,
    Customer,
    DebtCategory,
    NextPaymentStatus,
    Payment,
)
from debt_ledger.store import LedgerRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class ContractBrief:
    contract_id: str
    custom_id: str | None
    product_name: str
    prepaid_balance: Decimal
    total_price: Decimal
    monthly_payment: Decimal
    period: int


@dataclass
class CustomerSummary:
    """Debt position of one customer across their active contracts."""

    customer_id: str
    full_name: str
    phone_number: str
    address: str
    total_debt: Decimal
    total_paid: Decimal
    remaining_debt: Decimal
    total_prepaid: Decimal
    delay_days: int
    contracts: list[ContractBrief] = field(default_factory=list)


@dataclass
class DebtorContractRow:
    """One contract in a debtor listing."""

    contract_id: str
    custom_id: str | None
    customer_id: str
    full_name: str
    phone_number: str
    manager: str
    product_name: str
    total_price: Decimal
    total_paid: Decimal
    remaining_debt: Decimal
    delay_days: int
    next_payment_date: date | None
    next_payment_status: NextPaymentStatus
    start_date: date
    period: int
    paid_months_count: int
    monthly_payment: Decimal
    initial_payment: Decimal
    is_pending: bool = False
    has_paid_payments: bool = False
    last_payment_date: datetime | None = None


@dataclass
class CustomerDebtGroup:
    customer_id: str
    full_name: str
    phone_number: str
    manager: str
    active_contracts_count: int
    total_price: Decimal
    total_paid: Decimal
    remaining_debt: Decimal
    next_payment_date: date | None
    contracts: list[DebtorContractRow] = field(default_factory=list)


@dataclass
class PaidDebtorRow:
    customer_id: str
    full_name: str
    phone_number: str
    last_payment_date: date
    total_paid: Decimal
    total_price: Decimal
    remaining_debt: Decimal
    contracts_count: int


@dataclass
class ContractDetail:
    contract_id: str
    custom_id: str | None
    product_name: str
    status: ContractStatus
    total_debt: Decimal
    total_paid: Decimal
    remaining_debt: Decimal
    monthly_payment: Decimal
    initial_payment: Decimal
    period: int
    start_date: date
    next_payment_date: date | None
    previous_payment_date: date | None
    original_payment_day: int | None
    prepaid_balance: Decimal
    paid_months_count: int
    is_completed: bool
    payments: list[Payment] = field(default_factory=list)
    debtor_id: str | None = None


@dataclass
class CustomerContracts:
    all_contracts: list[ContractDetail] = field(default_factory=list)
    paid_contracts: list[ContractDetail] = field(default_factory=list)
    debtor_contracts: list[ContractDetail] = field(default_factory=list)


def _is_live(contract: Contract) -> bool:
    return contract.is_active and not contract.is_deleted and contract.status == ContractStatus.ACTIVE


class LedgerViews:
    """JSON-shaped read models for collectors and the dashboard."""

    def __init__(
        self,
        store: LedgerRepository,
        clock: Clock,
        config: LedgerConfig | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.config = config or LedgerConfig()
        self.prepaid = PrepaidReconciler(store, clock, self.config)

    def today(self) -> date:
        """Current date in the ledger's time zone."""
        return self.clock.now().astimezone(self.config.zone).date()

    def customer_summary(self, customer_id: str, manager_id: str | None = None) -> CustomerSummary:
        """Totals and delay of one customer.

        Raises
        ------
        EntityNotFoundError
            If the customer is missing, inactive or, when ``manager_id`` is
            given, managed by someone else.
        """
        customer = self._customer(customer_id)
        if manager_id is not None and customer.manager_id != manager_id:
            raise EntityNotFoundError(f"Customer {customer_id} not found")

        today = self.today()
        contracts = self.store.find_contracts(customer_id=customer_id, is_active=True, is_deleted=False)
        total_debt = ZERO
        total_paid = ZERO
        delay = 0
        for contract in contracts:
            payments = self.store.find_payments(contract_id=contract.contract_id)
            view = compute(contract, payments, today)
            total_debt += view.total_price
            total_paid += view.total_paid
            for debtor in self.store.find_debtors(contract_id=contract.contract_id):
                if debtor.due_date < today and not self._obligation_paid(payments, debtor.due_date):
                    delay = max(delay, days_between(debtor.due_date, today))

        return CustomerSummary(
            customer_id=customer.customer_id,
            full_name=customer.full_name,
            phone_number=customer.phone_number,
            address=customer.address,
            total_debt=total_debt,
            total_paid=total_paid,
            remaining_debt=total_debt - total_paid,
            total_prepaid=self.prepaid.total_prepaid(customer_id),
            delay_days=delay,
            contracts=[
                ContractBrief(
                    contract_id=c.contract_id,
                    custom_id=c.custom_id,
                    product_name=c.product_name,
                    prepaid_balance=c.prepaid_balance,
                    total_price=c.effective_price,
                    monthly_payment=c.monthly_payment,
                    period=c.period,
                )
                for c in contracts
            ],
        )

    def debtors_by_customer(self) -> list[CustomerDebtGroup]:
        """Active contracts grouped by customer, largest remaining debt first."""
        today = self.today()
        groups: dict[str, CustomerDebtGroup] = {}
        for contract in self.store.find_contracts():
            if not _is_live(contract):
                continue
            customer = self.store.get_customer(contract.customer_id)
            if customer is None:
                continue
            row = self._row(contract, customer, self._compute(contract, today))
            row.delay_days = max(0, row.delay_days)

            group = groups.get(customer.customer_id)
            if group is None:
                group = groups[customer.customer_id] = CustomerDebtGroup(
                    customer_id=customer.customer_id,
                    full_name=customer.full_name,
                    phone_number=customer.phone_number,
                    manager=row.manager,
                    active_contracts_count=0,
                    total_price=ZERO,
                    total_paid=ZERO,
                    remaining_debt=ZERO,
                    next_payment_date=None,
                )
            group.active_contracts_count += 1
            group.total_price += row.total_price
            group.total_paid += row.total_paid
            group.remaining_debt += row.remaining_debt
            if row.next_payment_date is not None and (
                group.next_payment_date is None or row.next_payment_date < group.next_payment_date
            ):
                group.next_payment_date = row.next_payment_date
            group.contracts.append(row)

        return sorted(groups.values(), key=lambda g: g.remaining_debt, reverse=True)

    def overdue_contracts(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[DebtorContractRow]:
        """Contracts with an outstanding obligation as of ``end_date``.

        With both bounds the query is month-scoped: each contract's due date
        in the month of ``end_date`` is reconstructed from its anchor day and
        contracts with a paid payment in that month are left out. Otherwise a
        contract is listed once its next payment date has been reached.
        Declared contracts are excluded.
        """
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError("start_date must not be after end_date")

        today = self.today()
        filter_date = end_date or today
        month_scoped = start_date is not None and end_date is not None

        rows = []
        for contract in self.store.find_contracts(is_declare=False):
            if not _is_live(contract):
                continue
            payments = self.store.find_payments(contract_id=contract.contract_id)
            if month_scoped:
                due = virtual_due_date(contract, filter_date)
                if due > filter_date or is_paid_for_month(payments, filter_date):
                    continue
                delay = max(0, days_between(due, filter_date))
            else:
                if contract.next_payment_date is None or contract.next_payment_date > filter_date:
                    continue
                delay = max(0, days_between(contract.next_payment_date, today))

            view = compute(contract, payments, today)
            if view.remaining_debt <= 0:
                continue
            customer = self.store.get_customer(contract.customer_id)
            if customer is None:
                continue
            row = self._row(contract, customer, view)
            row.delay_days = delay
            rows.append(row)

        rows.sort(key=lambda r: r.delay_days, reverse=True)
        logger.debug("Overdue listing as of %s (month scoped: %s): %d row(s)", filter_date, month_scoped, len(rows))
        return rows

    def all_debtors(self, manager_id: str, filter_date: date | None = None) -> list[DebtorContractRow]:
        """Every contract of a manager's customers that still needs attention.

        A contract is listed while it has remaining debt, a payment awaiting
        confirmation, or a payment confirmed within the recent window. Rows
        are ordered by next-payment status priority, then delay and remaining
        debt, both descending.
        """
        as_of = filter_date or self.today()
        now = self.clock.now()
        rows = []
        for contract, customer in self._managed_contracts(manager_id):
            view = self._compute(contract, as_of, now)
            if view.remaining_debt > 0 or view.is_pending or view.has_recent_paid:
                rows.append(self._row(contract, customer, view))

        rows.sort(key=lambda r: (r.next_payment_status.rank, -r.delay_days, -r.remaining_debt))
        return rows

    def unpaid_debtors(self, manager_id: str, filter_date: date | None = None) -> list[DebtorContractRow]:
        """Contracts whose next payment date has been reached, minus active reminders."""
        as_of = filter_date or self.today()
        now = self.clock.now()
        rows = []
        for contract, customer in self._managed_contracts(manager_id):
            if contract.next_payment_date is None or contract.next_payment_date > as_of:
                continue
            payments = self.store.find_payments(contract_id=contract.contract_id)
            if is_reminder_suppressed(matching_obligation(contract, payments), now):
                continue
            view = compute(contract, payments, as_of, now, self.config.recent_payment_days)
            if view.remaining_debt <= 0:
                continue
            rows.append(self._row(contract, customer, view))

        rows.sort(key=lambda r: (-r.delay_days, -r.remaining_debt))
        return rows

    def paid_debtors(self, manager_id: str) -> list[PaidDebtorRow]:
        """Customers of a manager with a payment dated in the recent window."""
        since = self.today() - timedelta(days=self.config.recent_payment_days)
        groups: dict[str, PaidDebtorRow] = {}
        for contract, customer in self._managed_contracts(manager_id):
            payments = self.store.find_payments(contract_id=contract.contract_id)
            recent = [p.date for p in payments if p.is_paid and p.date >= since]
            if not recent:
                continue
            view = compute(contract, payments, self.today())

            group = groups.get(customer.customer_id)
            if group is None:
                group = groups[customer.customer_id] = PaidDebtorRow(
                    customer_id=customer.customer_id,
                    full_name=customer.full_name,
                    phone_number=customer.phone_number,
                    last_payment_date=max(recent),
                    total_paid=ZERO,
                    total_price=ZERO,
                    remaining_debt=ZERO,
                    contracts_count=0,
                )
            group.last_payment_date = max(group.last_payment_date, *recent)
            group.total_paid += view.total_paid
            group.total_price += view.total_price
            group.remaining_debt = group.total_price - group.total_paid
            group.contracts_count += 1

        return sorted(groups.values(), key=lambda g: g.last_payment_date, reverse=True)

    def customer_contracts(self, customer_id: str) -> CustomerContracts:
        """All contracts of a customer plus the contracts behind their debtor records."""
        self._customer(customer_id)
        today = self.today()
        result = CustomerContracts()
        for contract in self.store.find_contracts(customer_id=customer_id):
            payments = self.store.find_payments(contract_id=contract.contract_id)
            result.all_contracts.append(self._detail(contract, payments, today))

            if not _is_live(contract):
                continue
            for debtor in self.store.find_debtors(contract_id=contract.contract_id):
                detail = self._detail(contract, payments, today)
                detail.debtor_id = debtor.debtor_id
                if self._obligation_paid(payments, debtor.due_date):
                    result.paid_contracts.append(detail)
                else:
                    result.debtor_contracts.append(detail)
        return result

    def filtered_debts(
        self,
        customer_id: str,
        category: str = "all",
    ) -> CategorizedDebts | list[DebtItem]:
        """Categorised unpaid obligations of a customer, optionally one bucket only."""
        if category != "all" and category not in {c.value for c in DebtCategory}:
            raise ValidationError(f"Unknown debt filter {category!r}")
        self._customer(customer_id)

        contracts = [
            (c, self.store.find_payments(contract_id=c.contract_id))
            for c in self.store.find_contracts(customer_id=customer_id)
            if _is_live(c)
        ]
        debts = categorize(contracts, self.today())
        if category == "all":
            return debts
        return debts.bucket(DebtCategory(category))

    def _customer(self, customer_id: str) -> Customer:
        if not customer_id:
            raise ValidationError("customer_id is required")
        customer = self.store.get_customer(customer_id)
        if customer is None or not customer.is_active or customer.is_deleted:
            raise EntityNotFoundError(f"Customer {customer_id} not found")
        return customer

    def _managed_contracts(self, manager_id: str) -> Iterable[tuple[Contract, Customer]]:
        if not manager_id:
            raise ValidationError("manager_id is required")
        for customer in self.store.find_customers(manager_id=manager_id, is_active=True, is_deleted=False):
            for contract in self.store.find_contracts(customer_id=customer.customer_id):
                if _is_live(contract):
                    yield contract, customer

    def _compute(self, contract: Contract, as_of: date, now: datetime | None = None) -> LedgerView:
        return compute(
            contract,
            self.store.find_payments(contract_id=contract.contract_id),
            as_of,
            now,
            self.config.recent_payment_days,
        )

    def _row(self, contract: Contract, customer: Customer, view: LedgerView) -> DebtorContractRow:
        return DebtorContractRow(
            contract_id=contract.contract_id,
            custom_id=contract.custom_id,
            customer_id=customer.customer_id,
            full_name=customer.full_name,
            phone_number=customer.phone_number,
            manager=self._manager_name(customer.manager_id),
            product_name=contract.product_name,
            total_price=view.total_price,
            total_paid=view.total_paid,
            remaining_debt=view.remaining_debt,
            delay_days=view.delay_days,
            next_payment_date=contract.next_payment_date,
            next_payment_status=view.next_payment_status,
            start_date=contract.start_date,
            period=contract.period,
            paid_months_count=view.paid_months_count,
            monthly_payment=contract.monthly_payment,
            initial_payment=contract.initial_payment,
            is_pending=view.is_pending,
            has_paid_payments=view.has_recent_paid,
            last_payment_date=view.last_confirmed_at,
        )

    def _detail(self, contract: Contract, payments: list[Payment], today: date) -> ContractDetail:
        view = compute(contract, payments, today)
        return ContractDetail(
            contract_id=contract.contract_id,
            custom_id=contract.custom_id,
            product_name=contract.product_name,
            status=contract.status,
            total_debt=view.total_price,
            total_paid=view.total_paid,
            remaining_debt=view.remaining_debt,
            monthly_payment=contract.monthly_payment,
            initial_payment=contract.initial_payment,
            period=contract.period,
            start_date=contract.start_date,
            next_payment_date=contract.next_payment_date,
            previous_payment_date=contract.previous_payment_date,
            original_payment_day=contract.original_payment_day,
            prepaid_balance=contract.prepaid_balance,
            paid_months_count=view.paid_months_count,
            is_completed=view.paid_months_count >= contract.period,
            payments=sorted(payments, key=lambda p: p.date),
        )

    def _manager_name(self, manager_id: str | None) -> str:
        employee = self.store.get_employee(manager_id) if manager_id else None
        return employee.full_name if employee else ""

    @staticmethod
    def _obligation_paid(payments: list[Payment], due_date: date) -> bool:
        return any(p.is_paid and p.date == due_date for p in payments)
