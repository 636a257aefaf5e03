"""Payment obligation model."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from debt_ledger.models.enums import PaymentMethod, PaymentStatus, PaymentType


@dataclass
class Payment:
    """Scheduled payment obligation and, once paid, its collection."""

    payment_id: str
    contract_id: str
    customer_id: str
    date: date  # Due date
    payment_type: PaymentType
    amount: Decimal  # Scheduled amount
    manager_id: str | None = None
    actual_amount: Decimal | None = None  # Collected amount when it differs
    expected_amount: Decimal | None = None
    is_paid: bool = False
    status: PaymentStatus | None = None
    payment_method: PaymentMethod | None = None
    confirmed_at: datetime | None = None
    reminder_date: datetime | None = None  # Hidden from unpaid listings until then
    created_at: datetime | None = None

    @property
    def collected_amount(self) -> Decimal:
        """Amount counted toward totals once the payment is paid."""
        return self.actual_amount if self.actual_amount is not None else self.amount

    @property
    def obligation_amount(self) -> Decimal:
        """Amount the customer was expected to pay."""
        return self.expected_amount if self.expected_amount is not None else self.amount
