"""Domain models for installment-sale contracts."""

from debt_ledger.models.balance import Balance
from debt_ledger.models.contract import Contract
from debt_ledger.models.debtor import Debtor
from debt_ledger.models.enums import (
    ContractStatus,
    DebtCategory,
    NextPaymentStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
)
from debt_ledger.models.party import Customer, Employee
from debt_ledger.models.payment import Payment
from debt_ledger.models.prepaid import PrepaidRecord

__all__ = [
    "Balance",
    "Contract",
    "ContractStatus",
    "Customer",
    "DebtCategory",
    "Debtor",
    "Employee",
    "NextPaymentStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "PaymentType",
    "PrepaidRecord",
]
