"""Debt and payment reconciliation core."""

from debt_ledger.ledger.aggregator import LedgerView, compute
from debt_ledger.ledger.categorizer import CategorizedDebts, DebtItem, categorize
from debt_ledger.ledger.completion import CompletionStateMachine, final_remaining_debt
from debt_ledger.ledger.materializer import DebtorMaterializer, MaterializerReport
from debt_ledger.ledger.payments import PaymentService
from debt_ledger.ledger.prepaid import PrepaidReconciler
from debt_ledger.ledger.schedule import ContractScheduleService, build_schedule
from debt_ledger.ledger.views import LedgerViews

__all__ = [
    "CategorizedDebts",
    "CompletionStateMachine",
    "ContractScheduleService",
    "DebtItem",
    "DebtorMaterializer",
    "LedgerView",
    "LedgerViews",
    "MaterializerReport",
    "PaymentService",
    "PrepaidReconciler",
    "build_schedule",
    "categorize",
    "compute",
    "final_remaining_debt",
]
