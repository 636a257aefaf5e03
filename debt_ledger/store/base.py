"""Repository interfaces consumed by the ledger services."""

from contextlib import AbstractContextManager
from datetime import date
from typing import Any, Protocol

from debt_ledger.models import (
    Balance,
    Contract,
    Customer,
    Debtor,
    Employee,
    Payment,
    PrepaidRecord,
)


class DebtorRepository(Protocol):
    """Persistence for materialised debtor records.

    Implementations must enforce uniqueness of ``(contract_id, due_date)`` and
    raise ``DuplicateDebtorError`` on a conflicting insert.
    """

    def find_debtor(self, contract_id: str, due_date: date) -> Debtor | None: ...

    def find_debtors(self, **filters: Any) -> list[Debtor]: ...

    def add_debtor(self, debtor: Debtor) -> None: ...

    def save_debtor(self, debtor: Debtor) -> None: ...


class LedgerRepository(DebtorRepository, Protocol):
    """Persistence for every entity the ledger reads or writes."""

    def get_customer(self, customer_id: str) -> Customer | None: ...

    def get_employee(self, employee_id: str) -> Employee | None: ...

    def get_contract(self, contract_id: str) -> Contract | None: ...

    def get_payment(self, payment_id: str) -> Payment | None: ...

    def get_prepaid_record(self, record_id: str) -> PrepaidRecord | None: ...

    def get_balance(self, manager_id: str) -> Balance | None: ...

    def find_customers(self, **filters: Any) -> list[Customer]: ...

    def find_contracts(self, **filters: Any) -> list[Contract]: ...

    def find_payments(self, **filters: Any) -> list[Payment]: ...

    def find_prepaid_records(self, **filters: Any) -> list[PrepaidRecord]: ...

    def add_customer(self, customer: Customer) -> None: ...

    def add_employee(self, employee: Employee) -> None: ...

    def add_contract(self, contract: Contract) -> None: ...

    def add_payment(self, payment: Payment) -> None: ...

    def add_prepaid_record(self, record: PrepaidRecord) -> None: ...

    def save_contract(self, contract: Contract) -> None: ...

    def save_payment(self, payment: Payment) -> None: ...

    def save_prepaid_record(self, record: PrepaidRecord) -> None: ...

    def save_balance(self, balance: Balance) -> None: ...

    def delete_payment(self, payment_id: str) -> None: ...

    def transaction(self, *entities: Any) -> AbstractContextManager[None]: ...
