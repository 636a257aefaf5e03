"""Installment-sale contract model."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from debt_ledger.models.enums import ContractStatus


@dataclass
class Contract:
    """Installment-sale contract.

    ``prepaid_balance`` is a running cache of the excess payments recorded as
    ``PrepaidRecord`` entries for this contract.
    """

    contract_id: str
    customer_id: str
    product_name: str
    price: Decimal  # Original price, used when total_price is unset
    initial_payment: Decimal
    monthly_payment: Decimal
    period: int  # Months
    start_date: date
    total_price: Decimal | None = None
    next_payment_date: date | None = None
    previous_payment_date: date | None = None
    original_payment_day: int | None = None  # Anchor day-of-month
    payment_ids: list[str] = field(default_factory=list)
    prepaid_balance: Decimal = Decimal("0")
    status: ContractStatus = ContractStatus.ACTIVE
    is_declare: bool = False
    is_active: bool = True
    is_deleted: bool = False
    custom_id: str | None = None  # Display id, e.g. 26T00001
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def effective_price(self) -> Decimal:
        """Total price, falling back to the original price."""
        return self.total_price if self.total_price is not None else self.price

    @property
    def anchor_day(self) -> int:
        """Day of month on which monthly obligations fall due."""
        return self.original_payment_day or self.start_date.day

    @property
    def display_id(self) -> str:
        return self.custom_id or self.contract_id
