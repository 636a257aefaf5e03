"""Payment confirmation, reversal and manager balances."""

import logging
from datetime import datetime
from decimal import Decimal

from debt_ledger.clock import Clock
from debt_ledger.config import LedgerConfig
from debt_ledger.exceptions import (
    EntityNotFoundError,
    InvalidEntityStateError,
    ValidationError,
)
from debt_ledger.ledger.aggregator import last_paid_date, next_unpaid_date
from debt_ledger.ledger.completion import CompletionStateMachine
from debt_ledger.ledger.prepaid import PrepaidReconciler
from debt_ledger.models import (
    Balance,
    Contract,
    Payment,
    PaymentMethod,
    PaymentStatus,
)
from debt_ledger.store import LedgerRepository

logger = logging.getLogger(__name__)


class PaymentService:
    """State changes driven by cash-desk activity.

    The payment itself, the manager balance and the contract's payment dates
    change together in one store transaction. On confirmation, prepaid
    bookkeeping and the completion check run afterwards; their failures are
    logged and never undo a confirmed payment. A reversal withdraws prepaid
    credit inside its transaction.
    """

    def __init__(
        self,
        store: LedgerRepository,
        clock: Clock,
        config: LedgerConfig | None = None,
        reconciler: PrepaidReconciler | None = None,
        completion: CompletionStateMachine | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.config = config or LedgerConfig()
        self.reconciler = reconciler or PrepaidReconciler(store, clock, self.config)
        self.completion = completion or CompletionStateMachine(store, clock, self.config)

    def confirm_payment(
        self,
        payment_id: str,
        manager_id: str,
        actual_amount: Decimal | None = None,
        method: PaymentMethod | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Confirm an obligation as paid.

        Parameters
        ----------
        payment_id : str
            Payment to confirm.
        manager_id : str
            Manager receiving the cash; their balance grows by the collected amount.
        actual_amount : Decimal | None
            Collected amount. Defaults to the submitted or scheduled amount.
        method : PaymentMethod | None
            How the customer paid.
        notes : str | None
            Free text appended to the prepaid note when there is an excess.

        Returns
        -------
        Payment
            The confirmed payment.
        """
        if not manager_id:
            raise ValidationError("manager_id is required")
        payment, contract = self._load(payment_id)
        if payment.is_paid:
            raise InvalidEntityStateError(f"Payment {payment_id} is already paid")

        collected = actual_amount if actual_amount is not None else payment.collected_amount
        if collected <= 0:
            raise ValidationError(f"Collected amount must be positive, got {collected}")
        expected = payment.obligation_amount
        now = self.clock.now()

        with self.store.transaction(payment, contract):
            payment.is_paid = True
            payment.status = PaymentStatus.PAID
            payment.actual_amount = collected
            payment.expected_amount = expected
            payment.confirmed_at = now
            payment.manager_id = manager_id
            if method is not None:
                payment.payment_method = method
            self.store.save_payment(payment)

            self.update_balance(manager_id, collected)
            self._sync_dates(contract)

        logger.info(
            "Confirmed payment %s on contract %s: %s collected, %s expected",
            payment_id,
            contract.contract_id,
            collected,
            expected,
            extra={"contract_id": contract.contract_id, "payment_id": payment_id, "manager_id": manager_id},
        )

        self._reconcile(payment, contract, collected - expected, method, notes)
        self._check_completion(contract.contract_id)
        return payment

    def submit_payment(
        self,
        payment_id: str,
        actual_amount: Decimal,
        method: PaymentMethod | None = None,
    ) -> Payment:
        """Mark an obligation as collected in the field and awaiting confirmation."""
        payment, _ = self._load(payment_id)
        if payment.is_paid:
            raise InvalidEntityStateError(f"Payment {payment_id} is already paid")
        if actual_amount <= 0:
            raise ValidationError(f"Submitted amount must be positive, got {actual_amount}")

        payment.status = PaymentStatus.PENDING
        payment.actual_amount = actual_amount
        if method is not None:
            payment.payment_method = method
        self.store.save_payment(payment)
        logger.info("Payment %s submitted for confirmation (%s)", payment_id, actual_amount)
        return payment

    def reverse_payment(self, payment_id: str) -> Payment:
        """Undo a confirmation.

        The manager balance is decremented by the collected amount, any
        prepaid credit the payment produced is withdrawn with a compensating
        record, and the contract's payment dates are rewound. All of it
        happens in one transaction.
        """
        payment, contract = self._load(payment_id)
        if not payment.is_paid:
            raise InvalidEntityStateError(f"Payment {payment_id} is not paid")

        collected = payment.collected_amount
        with self.store.transaction(payment, contract):
            if payment.manager_id:
                self.update_balance(payment.manager_id, -collected)
            self.reconciler.reverse_excess(payment, contract)
            payment.is_paid = False
            payment.status = None
            payment.actual_amount = None
            payment.confirmed_at = None
            self.store.save_payment(payment)
            self._sync_dates(contract)

        logger.info(
            "Reversed payment %s on contract %s (%s)",
            payment_id,
            contract.contract_id,
            collected,
            extra={"contract_id": contract.contract_id, "payment_id": payment_id},
        )
        self._check_completion(contract.contract_id)
        return payment

    def set_reminder(self, payment_id: str, reminder_date: datetime | None) -> Payment:
        """Hide an obligation from unpaid listings until ``reminder_date``; None clears it."""
        if reminder_date is not None and reminder_date.tzinfo is None:
            raise ValidationError("reminder_date must be timezone-aware")
        payment, _ = self._load(payment_id)
        if payment.is_paid:
            raise InvalidEntityStateError(f"Payment {payment_id} is already paid")

        payment.reminder_date = reminder_date
        self.store.save_payment(payment)
        logger.debug("Reminder for payment %s set to %s", payment_id, reminder_date)
        return payment

    def update_balance(self, manager_id: str, delta: Decimal) -> Balance:
        """Add ``delta`` to the manager's running balance, creating it on first use."""
        if not manager_id:
            raise ValidationError("manager_id is required")
        now = self.clock.now()
        balance = self.store.get_balance(manager_id)
        if balance is None:
            balance = Balance(manager_id=manager_id)
        balance.amount += delta
        balance.updated_at = now
        self.store.save_balance(balance)
        logger.debug("Balance of manager %s is now %s", manager_id, balance.amount)
        return balance

    def _load(self, payment_id: str) -> tuple[Payment, Contract]:
        if not payment_id:
            raise ValidationError("payment_id is required")
        payment = self.store.get_payment(payment_id)
        if payment is None:
            raise EntityNotFoundError(f"Payment {payment_id} not found")
        contract = self.store.get_contract(payment.contract_id)
        if contract is None:
            raise EntityNotFoundError(f"Contract {payment.contract_id} not found")
        return payment, contract

    def _sync_dates(self, contract: Contract) -> None:
        payments = self.store.find_payments(contract_id=contract.contract_id)
        contract.next_payment_date = next_unpaid_date(payments)
        contract.previous_payment_date = last_paid_date(payments)
        contract.updated_at = self.clock.now()
        self.store.save_contract(contract)

    def _reconcile(
        self,
        payment: Payment,
        contract: Contract,
        excess: Decimal,
        method: PaymentMethod | None,
        notes: str | None,
    ) -> None:
        try:
            self.reconciler.record_excess(payment, contract, excess, method, notes)
        except Exception:
            logger.exception(
                "Prepaid bookkeeping failed for payment %s; payment stays confirmed",
                payment.payment_id,
            )

    def _check_completion(self, contract_id: str) -> None:
        try:
            self.completion.evaluate(contract_id)
        except Exception:
            logger.exception("Completion check failed for contract %s", contract_id)
