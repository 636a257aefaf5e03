"""Payment schedules and contract edits."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from debt_ledger.clock import Clock
from debt_ledger.config import LedgerConfig
from debt_ledger.exceptions import EntityNotFoundError, ValidationError
from debt_ledger.ledger.aggregator import add_months, last_paid_date, next_unpaid_date
from debt_ledger.ledger.completion import CompletionStateMachine
from debt_ledger.models import Contract, Payment, PaymentType
from debt_ledger.store import LedgerRepository

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def build_schedule(contract: Contract) -> list[Payment]:
    """Generate the obligations of a new contract.

    An initial payment falls on the start date when ``initial_payment`` is
    positive; ``period`` monthly obligations follow, one month apart, on the
    contract's anchor day (clamped to short months). Sets the contract's
    ``original_payment_day`` and ``next_payment_date``.
    """
    if contract.original_payment_day is None:
        contract.original_payment_day = contract.start_date.day

    payments = []
    if contract.initial_payment > 0:
        payments.append(
            Payment(
                payment_id=_new_id(),
                contract_id=contract.contract_id,
                customer_id=contract.customer_id,
                date=contract.start_date,
                payment_type=PaymentType.INITIAL,
                amount=contract.initial_payment,
                manager_id=contract.created_by,
                created_at=contract.created_at,
            )
        )
    for month in range(1, contract.period + 1):
        payments.append(_monthly(contract, month))

    contract.next_payment_date = next_unpaid_date(payments)
    return payments


def _monthly(contract: Contract, month: int) -> Payment:
    return Payment(
        payment_id=_new_id(),
        contract_id=contract.contract_id,
        customer_id=contract.customer_id,
        date=add_months(contract.start_date, month, contract.anchor_day),
        payment_type=PaymentType.MONTHLY,
        amount=contract.monthly_payment,
        manager_id=contract.created_by,
        created_at=contract.created_at,
    )


@dataclass
class ScheduleChange:
    payment_id: str
    payment_type: PaymentType
    old_date: date
    new_date: date


@dataclass
class StartDatePreview:
    """Effect of moving a contract's start date, before it is applied."""

    contract_id: str
    old_start_date: date
    new_start_date: date
    next_payment_date: date | None
    changes: list[ScheduleChange] = field(default_factory=list)


class ContractScheduleService:
    """Create contracts with their schedules and apply date or term edits."""

    def __init__(
        self,
        store: LedgerRepository,
        clock: Clock,
        config: LedgerConfig | None = None,
        completion: CompletionStateMachine | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.config = config or LedgerConfig()
        self.completion = completion or CompletionStateMachine(store, clock, self.config)

    def next_custom_id(self) -> str:
        """Next display id of the form ``YYT#####`` for the current year."""
        prefix = f"{self.clock.today():%y}T"
        sequences = [
            int(c.custom_id[len(prefix):])
            for c in self.store.find_contracts()
            if c.custom_id and c.custom_id.startswith(prefix) and c.custom_id[len(prefix):].isdigit()
        ]
        return f"{prefix}{max(sequences, default=0) + 1:05d}"

    def create_contract(
        self,
        customer_id: str,
        product_name: str,
        price: Decimal,
        initial_payment: Decimal,
        monthly_payment: Decimal,
        period: int,
        start_date: date,
        created_by: str | None = None,
        total_price: Decimal | None = None,
    ) -> Contract:
        """Create a contract and its full payment schedule."""
        if self.store.get_customer(customer_id) is None:
            raise EntityNotFoundError(f"Customer {customer_id} not found")
        if period <= 0:
            raise ValidationError("period must be at least one month")
        if min(price, initial_payment, monthly_payment) < 0:
            raise ValidationError("Contract amounts must not be negative")

        now = self.clock.now()
        contract = Contract(
            contract_id=_new_id(),
            customer_id=customer_id,
            product_name=product_name,
            price=price,
            initial_payment=initial_payment,
            monthly_payment=monthly_payment,
            period=period,
            start_date=start_date,
            total_price=total_price,
            custom_id=self.next_custom_id(),
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        payments = build_schedule(contract)

        with self.store.transaction():
            self.store.add_contract(contract)
            for payment in payments:
                self.store.add_payment(payment)

        logger.info(
            "Created contract %s (%s) with %d obligation(s)",
            contract.custom_id,
            contract.contract_id,
            len(payments),
        )
        return contract

    def preview_start_date(self, contract_id: str, new_start: date) -> StartDatePreview:
        """Show how unpaid obligations would move if the start date changed.

        Monthly obligations are re-dated to ``new_start`` plus their position
        in the schedule; paid obligations keep their dates.
        """
        contract = self._get(contract_id)
        payments = self.store.find_payments(contract_id=contract_id)
        preview = StartDatePreview(
            contract_id=contract_id,
            old_start_date=contract.start_date,
            new_start_date=new_start,
            next_payment_date=None,
        )

        monthly = sorted(
            (p for p in payments if p.payment_type == PaymentType.MONTHLY),
            key=lambda p: p.date,
        )
        new_dates: dict[str, date] = {}
        for position, payment in enumerate(monthly, start=1):
            new_dates[payment.payment_id] = add_months(new_start, position, new_start.day)
        for payment in payments:
            if payment.payment_type == PaymentType.INITIAL:
                new_dates[payment.payment_id] = new_start

        for payment in payments:
            new_date = new_dates.get(payment.payment_id)
            if payment.is_paid or new_date is None or new_date == payment.date:
                continue
            preview.changes.append(
                ScheduleChange(payment.payment_id, payment.payment_type, payment.date, new_date)
            )

        preview.next_payment_date = min(
            (
                new_dates.get(p.payment_id, p.date)
                for p in monthly
                if not p.is_paid
            ),
            default=None,
        )
        return preview

    def update_start_date(self, contract_id: str, new_start: date) -> StartDatePreview:
        """Move the start date, re-anchor the payment day and re-date unpaid obligations."""
        preview = self.preview_start_date(contract_id, new_start)
        contract = self._get(contract_id)

        with self.store.transaction(contract):
            for change in preview.changes:
                payment = self.store.get_payment(change.payment_id)
                payment.date = change.new_date
                self.store.save_payment(payment)
            contract.start_date = new_start
            contract.original_payment_day = new_start.day
            self._sync_dates(contract)

        logger.info(
            "Moved start of contract %s from %s to %s (%d obligation(s) re-dated)",
            contract_id,
            preview.old_start_date,
            new_start,
            len(preview.changes),
        )
        self.completion.evaluate(contract_id)
        return preview

    def update_terms(
        self,
        contract_id: str,
        total_price: Decimal | None = None,
        period: int | None = None,
    ) -> Contract:
        """Change the price or the period of a contract.

        A longer period appends monthly obligations after the last one; a
        shorter period removes unpaid obligations from the end of the schedule.
        """
        contract = self._get(contract_id)
        if total_price is not None and total_price < 0:
            raise ValidationError("total_price must not be negative")
        if period is not None and period <= 0:
            raise ValidationError("period must be at least one month")

        monthly = sorted(
            (
                p
                for p in self.store.find_payments(contract_id=contract_id)
                if p.payment_type == PaymentType.MONTHLY
            ),
            key=lambda p: p.date,
        )
        if period is not None:
            paid_count = sum(1 for p in monthly if p.is_paid)
            if period < paid_count:
                raise ValidationError(
                    f"Cannot shorten contract {contract_id} to {period} month(s); "
                    f"{paid_count} already paid"
                )

        with self.store.transaction(contract):
            if total_price is not None:
                contract.total_price = total_price
            if period is not None and period != len(monthly):
                self._resize(contract, monthly, period)
                contract.period = period
            self._sync_dates(contract)

        logger.info("Updated terms of contract %s (price=%s, period=%s)", contract_id, total_price, period)
        self.completion.evaluate(contract_id)
        return contract

    def _resize(self, contract: Contract, monthly: list[Payment], period: int) -> None:
        if period > len(monthly):
            for month in range(len(monthly) + 1, period + 1):
                self.store.add_payment(_monthly(contract, month))
            return

        excess = len(monthly) - period
        unpaid_tail = [p for p in reversed(monthly) if not p.is_paid][:excess]
        for payment in unpaid_tail:
            self.store.delete_payment(payment.payment_id)

    def _sync_dates(self, contract: Contract) -> None:
        payments = self.store.find_payments(contract_id=contract.contract_id)
        contract.next_payment_date = next_unpaid_date(payments)
        contract.previous_payment_date = last_paid_date(payments)
        contract.updated_at = self.clock.now()
        self.store.save_contract(contract)

    def _get(self, contract_id: str) -> Contract:
        if not contract_id:
            raise ValidationError("contract_id is required")
        contract = self.store.get_contract(contract_id)
        if contract is None:
            raise EntityNotFoundError(f"Contract {contract_id} not found")
        return contract
