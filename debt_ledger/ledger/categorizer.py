"""Classification of unpaid obligations into overdue, pending and normal."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from debt_ledger.ledger.aggregator import days_between
from debt_ledger.models import Contract, DebtCategory, Payment, PaymentStatus


@dataclass
class DebtItem:
    """One unpaid obligation as presented to a collector."""

    contract_id: str
    contract_custom_id: str
    product_name: str
    customer_id: str
    payment_id: str
    amount: Decimal
    due_date: date | None
    overdue_days: int
    status: PaymentStatus | None
    is_paid: bool = False


@dataclass
class CategorizedDebts:
    overdue: list[DebtItem] = field(default_factory=list)
    pending: list[DebtItem] = field(default_factory=list)
    normal: list[DebtItem] = field(default_factory=list)

    def bucket(self, category: DebtCategory) -> list[DebtItem]:
        return getattr(self, category.value)

    def __len__(self) -> int:
        return len(self.overdue) + len(self.pending) + len(self.normal)


def classify(payment: Payment, today: date) -> DebtCategory | None:
    """Category of a single payment, or None when it is paid."""
    if payment.is_paid:
        return None
    if payment.date is not None and payment.date < today:
        return DebtCategory.OVERDUE
    if payment.status == PaymentStatus.PENDING:
        return DebtCategory.PENDING
    return DebtCategory.NORMAL


def _to_item(contract: Contract, payment: Payment, today: date) -> DebtItem:
    overdue = 0
    if payment.date is not None and payment.date < today:
        overdue = days_between(payment.date, today)
    return DebtItem(
        contract_id=contract.contract_id,
        contract_custom_id=contract.display_id,
        product_name=contract.product_name,
        customer_id=contract.customer_id,
        payment_id=payment.payment_id,
        amount=payment.amount or payment.expected_amount or Decimal("0"),
        due_date=payment.date,
        overdue_days=overdue,
        status=payment.status,
        is_paid=payment.is_paid,
    )


def sort_debts(debts: CategorizedDebts) -> None:
    """Sort each bucket in place into its presentation order."""
    debts.overdue.sort(key=lambda d: (-d.overdue_days, -d.amount))
    debts.pending.sort(key=lambda d: d.due_date or date.min, reverse=True)
    debts.normal.sort(key=lambda d: (d.due_date is None, d.due_date or date.max, -d.amount))


def categorize(
    contracts: Iterable[tuple[Contract, Iterable[Payment]]],
    today: date,
) -> CategorizedDebts:
    """Flatten unpaid payments of the given contracts into three disjoint buckets.

    Parameters
    ----------
    contracts : Iterable[tuple[Contract, Iterable[Payment]]]
        Contracts paired with their payments.
    today : date
        Evaluation date; obligations dated before it are overdue.

    Returns
    -------
    CategorizedDebts
        Sorted buckets. Paid payments are left out.
    """
    result = CategorizedDebts()
    for contract, payments in contracts:
        for payment in payments:
            category = classify(payment, today)
            if category is None:
                continue
            result.bucket(category).append(_to_item(contract, payment, today))

    sort_debts(result)
    return result
