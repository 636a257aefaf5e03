"""Ledger persistence."""

from debt_ledger.store.base import DebtorRepository, LedgerRepository
from debt_ledger.store.memory import InMemoryLedgerStore

__all__ = ["DebtorRepository", "InMemoryLedgerStore", "LedgerRepository"]
