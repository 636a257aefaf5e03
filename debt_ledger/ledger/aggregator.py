"""Pure ledger computation over a contract and its payments.

Nothing here touches a store or the wall clock: callers pass the evaluation
date (and, for the recent-payment window, the current instant) explicitly.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from debt_ledger.models import (
    Contract,
    NextPaymentStatus,
    Payment,
    PaymentStatus,
    PaymentType,
)


@dataclass
class LedgerView:
    """Derived totals for one contract at one evaluation date.

    ``remaining_debt`` does not include the prepaid balance; see
    ``debt_ledger.ledger.completion.final_remaining_debt``.
    """

    contract_id: str
    total_price: Decimal
    total_paid: Decimal
    remaining_debt: Decimal
    delay_days: int  # Signed: negative means the next obligation is not yet due
    next_payment_status: NextPaymentStatus
    paid_months_count: int
    is_pending: bool = False
    has_recent_paid: bool = False
    last_confirmed_at: datetime | None = None

    @property
    def overdue_days(self) -> int:
        """Delay clamped at zero."""
        return max(0, self.delay_days)


def total_paid(payments: Iterable[Payment]) -> Decimal:
    """Sum of collected amounts over paid payments."""
    return sum((p.collected_amount for p in payments if p.is_paid), Decimal("0"))


def paid_months_count(payments: Iterable[Payment]) -> int:
    return sum(1 for p in payments if p.is_paid and p.payment_type == PaymentType.MONTHLY)


def days_between(start: date, end: date) -> int:
    """Whole days from ``start`` to ``end`` (negative when ``end`` is earlier)."""
    return (end - start).days


def delay_days(next_payment_date: date | None, as_of: date) -> int:
    """Signed delay of the next obligation; zero when nothing further is due."""
    if next_payment_date is None:
        return 0
    return days_between(next_payment_date, as_of)


def pending_payments(payments: Iterable[Payment]) -> list[Payment]:
    """Unpaid payments submitted and awaiting confirmation."""
    return [p for p in payments if not p.is_paid and p.status == PaymentStatus.PENDING]


def recent_paid_payments(
    payments: Iterable[Payment],
    as_of: date,
    now: datetime | None = None,
    window_days: int = 30,
) -> list[Payment]:
    """Paid payments confirmed within the trailing window.

    With ``now`` the window is measured in instants, otherwise in calendar
    days ending on ``as_of``.
    """
    recent = []
    for p in payments:
        if not p.is_paid or p.status != PaymentStatus.PAID or p.confirmed_at is None:
            continue
        if now is not None:
            if p.confirmed_at >= now - timedelta(days=window_days):
                recent.append(p)
        elif p.confirmed_at.date() >= as_of - timedelta(days=window_days):
            recent.append(p)
    return recent


def derive_next_payment_status(
    next_payment_date: date | None,
    delay: int,
    is_pending: bool,
    has_recent_paid: bool,
) -> NextPaymentStatus:
    """Apply the status priority: pending, recently paid, completed, overdue, today, upcoming."""
    if is_pending:
        return NextPaymentStatus.PENDING
    if has_recent_paid:
        return NextPaymentStatus.PAID
    if next_payment_date is None:
        return NextPaymentStatus.COMPLETED
    if delay > 0:
        return NextPaymentStatus.OVERDUE
    if delay == 0:
        return NextPaymentStatus.TODAY
    return NextPaymentStatus.UPCOMING


def compute(
    contract: Contract,
    payments: Iterable[Payment],
    as_of: date,
    now: datetime | None = None,
    recent_payment_days: int = 30,
) -> LedgerView:
    """Derive the ledger view of a contract.

    Parameters
    ----------
    contract : Contract
        Contract to evaluate.
    payments : Iterable[Payment]
        The contract's payments.
    as_of : date
        Evaluation date for delay days.
    now : datetime | None
        Current instant for the recent-payment window.
    recent_payment_days : int
        Length of the recent-payment window.

    Returns
    -------
    LedgerView
        Totals, delay and next-payment status.
    """
    payments = list(payments)
    paid = total_paid(payments)
    price = contract.effective_price
    delay = delay_days(contract.next_payment_date, as_of)
    pending = pending_payments(payments)
    recent = recent_paid_payments(payments, as_of, now, recent_payment_days)

    return LedgerView(
        contract_id=contract.contract_id,
        total_price=price,
        total_paid=paid,
        remaining_debt=price - paid,
        delay_days=delay,
        next_payment_status=derive_next_payment_status(
            contract.next_payment_date, delay, bool(pending), bool(recent)
        ),
        paid_months_count=paid_months_count(payments),
        is_pending=bool(pending),
        has_recent_paid=bool(recent),
        last_confirmed_at=max((p.confirmed_at for p in recent), default=None),
    )


def anchored_date(year: int, month: int, day: int) -> date:
    """Date in the given month, clamping ``day`` to the month's last day."""
    return date(year, month, 1) + relativedelta(day=day)


def add_months(start: date, months: int, anchor_day: int | None = None) -> date:
    """Shift ``start`` by whole months, keeping ``anchor_day`` where the month allows."""
    return start + relativedelta(months=months, day=anchor_day or start.day)


def virtual_due_date(contract: Contract, target: date) -> date:
    """Reconstruct the contract's due date in the month of ``target``."""
    return anchored_date(target.year, target.month, contract.anchor_day)


def is_paid_for_month(payments: Iterable[Payment], target: date) -> bool:
    """Whether any paid payment is dated within the month of ``target``."""
    return any(
        p.is_paid and p.date.year == target.year and p.date.month == target.month
        for p in payments
    )


def matching_obligation(contract: Contract, payments: Iterable[Payment]) -> Payment | None:
    """Unpaid monthly payment dated on the contract's next payment date."""
    if contract.next_payment_date is None:
        return None
    for p in payments:
        if (
            not p.is_paid
            and p.payment_type == PaymentType.MONTHLY
            and p.date == contract.next_payment_date
        ):
            return p
    return None


def is_reminder_suppressed(payment: Payment | None, now: datetime) -> bool:
    """True while the payment carries a reminder date later than ``now``."""
    return payment is not None and payment.reminder_date is not None and payment.reminder_date > now


def next_unpaid_date(payments: Iterable[Payment]) -> date | None:
    """Earliest unpaid monthly obligation, or None when all are paid."""
    return min(
        (p.date for p in payments if p.payment_type == PaymentType.MONTHLY and not p.is_paid),
        default=None,
    )


def last_paid_date(payments: Iterable[Payment]) -> date | None:
    return max(
        (p.date for p in payments if p.payment_type == PaymentType.MONTHLY and p.is_paid),
        default=None,
    )
