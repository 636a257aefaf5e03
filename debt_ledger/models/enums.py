"""Enumeration types for installment-sale entities."""

from enum import Enum


class ContractStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class PaymentType(str, Enum):
    INITIAL = "initial"
    MONTHLY = "monthly"
    EXTRA = "extra"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class PaymentMethod(str, Enum):
    SOM_CASH = "som_cash"
    SOM_CARD = "som_card"
    DOLLAR_CASH = "dollar_cash"
    DOLLAR_CARD_VISA = "dollar_card_visa"


class NextPaymentStatus(str, Enum):
    """Contract-level payment status.

    Declaration order is the derivation priority and the sort order of
    debtor listings.
    """

    PENDING = "PENDING"
    PAID = "PAID"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"
    TODAY = "TODAY"
    UPCOMING = "UPCOMING"

    @property
    def rank(self) -> int:
        return list(NextPaymentStatus).index(self)


class DebtCategory(str, Enum):
    OVERDUE = "overdue"
    PENDING = "pending"
    NORMAL = "normal"
