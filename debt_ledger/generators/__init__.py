"""Synthetic data generators for installment-sale portfolios."""

from debt_ledger.generators.contract import ContractGenerator
from debt_ledger.generators.party import CustomerGenerator, EmployeeGenerator
from debt_ledger.generators.patterns import PaymentBehavior, PaymentEvent

__all__ = [
    "ContractGenerator",
    "CustomerGenerator",
    "EmployeeGenerator",
    "PaymentBehavior",
    "PaymentEvent",
]
