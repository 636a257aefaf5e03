"""In-memory ledger store with referential integrity."""

import copy
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from debt_ledger.exceptions import (
    DuplicateDebtorError,
    EntityNotFoundError,
    ReferentialIntegrityError,
)
from debt_ledger.models import (
    Balance,
    Contract,
    Customer,
    Debtor,
    Employee,
    Payment,
    PrepaidRecord,
)


def _matches(entity: Any, filters: dict[str, Any]) -> bool:
    return all(getattr(entity, name) == value for name, value in filters.items())


@dataclass
class _UndoFrame:
    """Undo actions of one open transaction, replayed newest first on rollback."""

    actions: list[Callable[[], None]] = field(default_factory=list)
    touched: set[int] = field(default_factory=set)


@dataclass
class InMemoryLedgerStore:
    """In-memory store for ledger entities with relationship tracking.

    Entities are held by reference: mutate the object returned by ``get_*``
    and call the matching ``save_*`` to validate the write.
    """

    # Primary entities
    customers: dict[str, Customer] = field(default_factory=dict)
    employees: dict[str, Employee] = field(default_factory=dict)
    contracts: dict[str, Contract] = field(default_factory=dict)
    payments: dict[str, Payment] = field(default_factory=dict)
    balances: dict[str, Balance] = field(default_factory=dict)

    # Derived facts
    debtors: dict[str, Debtor] = field(default_factory=dict)
    prepaid_records: dict[str, PrepaidRecord] = field(default_factory=dict)

    # Relationship indexes
    _customer_contracts: dict[str, list[str]] = field(default_factory=dict)
    _contract_payments: dict[str, list[str]] = field(default_factory=dict)
    _contract_prepaid: dict[str, list[str]] = field(default_factory=dict)
    _debtor_keys: dict[tuple[str, date], str] = field(default_factory=dict)

    # Open transactions, innermost last
    _frames: list[_UndoFrame] = field(default_factory=list, init=False, repr=False, compare=False)

    def add_customer(self, customer: Customer) -> None:
        """Add a customer to the store."""
        self._put(self.customers, customer.customer_id, customer)
        if customer.customer_id not in self._customer_contracts:
            self._put(self._customer_contracts, customer.customer_id, [])

    def add_employee(self, employee: Employee) -> None:
        """Add an employee to the store."""
        self._put(self.employees, employee.employee_id, employee)

    def add_contract(self, contract: Contract) -> None:
        """Add a contract to the store."""
        if contract.customer_id not in self.customers:
            raise ReferentialIntegrityError(f"Customer {contract.customer_id} not found")

        self._put(self.contracts, contract.contract_id, contract)
        self._append(self._customer_contracts[contract.customer_id], contract.contract_id)
        self._put(self._contract_payments, contract.contract_id, list(contract.payment_ids))
        self._put(self._contract_prepaid, contract.contract_id, [])

    def add_payment(self, payment: Payment) -> None:
        """Add a payment and link it to its contract."""
        contract = self.contracts.get(payment.contract_id)
        if contract is None:
            raise ReferentialIntegrityError(f"Contract {payment.contract_id} not found")

        self._put(self.payments, payment.payment_id, payment)
        if payment.payment_id not in contract.payment_ids:
            self._track(contract)
            contract.payment_ids.append(payment.payment_id)
        index = self._contract_payments[payment.contract_id]
        if payment.payment_id not in index:
            self._append(index, payment.payment_id)

    def add_debtor(self, debtor: Debtor) -> None:
        """Add a debtor record, enforcing one per (contract, due date)."""
        if debtor.contract_id not in self.contracts:
            raise ReferentialIntegrityError(f"Contract {debtor.contract_id} not found")

        key = (debtor.contract_id, debtor.due_date)
        if key in self._debtor_keys:
            raise DuplicateDebtorError(
                f"Debtor for contract {debtor.contract_id} due {debtor.due_date} already exists"
            )
        self._put(self.debtors, debtor.debtor_id, debtor)
        self._put(self._debtor_keys, key, debtor.debtor_id)

    def add_prepaid_record(self, record: PrepaidRecord) -> None:
        """Append a prepaid record to the log."""
        if record.contract_id not in self.contracts:
            raise ReferentialIntegrityError(f"Contract {record.contract_id} not found")
        if record.customer_id not in self.customers:
            raise ReferentialIntegrityError(f"Customer {record.customer_id} not found")

        self._put(self.prepaid_records, record.record_id, record)
        self._append(self._contract_prepaid[record.contract_id], record.record_id)

    # Updates
    def save_contract(self, contract: Contract) -> None:
        self._require(self.contracts, contract.contract_id, "Contract")
        self._put(self.contracts, contract.contract_id, contract)

    def save_payment(self, payment: Payment) -> None:
        self._require(self.payments, payment.payment_id, "Payment")
        self._put(self.payments, payment.payment_id, payment)

    def save_debtor(self, debtor: Debtor) -> None:
        self._require(self.debtors, debtor.debtor_id, "Debtor")
        self._put(self.debtors, debtor.debtor_id, debtor)

    def save_prepaid_record(self, record: PrepaidRecord) -> None:
        self._require(self.prepaid_records, record.record_id, "Prepaid record")
        self._put(self.prepaid_records, record.record_id, record)

    def save_balance(self, balance: Balance) -> None:
        self._put(self.balances, balance.manager_id, balance)

    def delete_payment(self, payment_id: str) -> None:
        """Remove an unpaid obligation and unlink it from its contract."""
        payment = self._require(self.payments, payment_id, "Payment")
        self._pop(self.payments, payment_id)
        contract = self.contracts.get(payment.contract_id)
        if contract is not None and payment_id in contract.payment_ids:
            self._track(contract)
            contract.payment_ids.remove(payment_id)
        index = self._contract_payments.get(payment.contract_id, [])
        if payment_id in index:
            self._remove(index, payment_id)

    # Lookups
    def get_customer(self, customer_id: str) -> Customer | None:
        return self._track(self.customers.get(customer_id))

    def get_employee(self, employee_id: str) -> Employee | None:
        return self._track(self.employees.get(employee_id))

    def get_contract(self, contract_id: str) -> Contract | None:
        return self._track(self.contracts.get(contract_id))

    def get_payment(self, payment_id: str) -> Payment | None:
        return self._track(self.payments.get(payment_id))

    def get_debtor(self, debtor_id: str) -> Debtor | None:
        return self._track(self.debtors.get(debtor_id))

    def get_prepaid_record(self, record_id: str) -> PrepaidRecord | None:
        return self._track(self.prepaid_records.get(record_id))

    def get_balance(self, manager_id: str) -> Balance | None:
        return self._track(self.balances.get(manager_id))

    def find_debtor(self, contract_id: str, due_date: date) -> Debtor | None:
        """Find the debtor keyed by (contract, due date)."""
        debtor_id = self._debtor_keys.get((contract_id, due_date))
        return self._track(self.debtors.get(debtor_id)) if debtor_id else None

    def find_customers(self, **filters: Any) -> list[Customer]:
        return self._track_all(c for c in self.customers.values() if _matches(c, filters))

    def find_contracts(self, **filters: Any) -> list[Contract]:
        """Find contracts whose attributes equal every given filter value."""
        customer_id = filters.pop("customer_id", None)
        if customer_id is not None:
            ids = self._customer_contracts.get(customer_id, [])
            candidates = [self.contracts[cid] for cid in ids]
        else:
            candidates = list(self.contracts.values())
        return self._track_all(c for c in candidates if _matches(c, filters))

    def find_payments(self, **filters: Any) -> list[Payment]:
        """Find payments whose attributes equal every given filter value."""
        contract_id = filters.pop("contract_id", None)
        if contract_id is not None:
            ids = self._contract_payments.get(contract_id, [])
            candidates = [self.payments[pid] for pid in ids]
        else:
            candidates = list(self.payments.values())
        return self._track_all(p for p in candidates if _matches(p, filters))

    def find_debtors(self, **filters: Any) -> list[Debtor]:
        return self._track_all(d for d in self.debtors.values() if _matches(d, filters))

    def find_prepaid_records(self, **filters: Any) -> list[PrepaidRecord]:
        contract_id = filters.pop("contract_id", None)
        if contract_id is not None:
            ids = self._contract_prepaid.get(contract_id, [])
            candidates = [self.prepaid_records[rid] for rid in ids]
        else:
            candidates = list(self.prepaid_records.values())
        return self._track_all(r for r in candidates if _matches(r, filters))

    @contextmanager
    def transaction(self, *entities: Any) -> Iterator[None]:
        """Run a block atomically; any exception restores the prior state.

        Writes and entities looked up inside the block are recorded in an undo
        log. Pass entities loaded before the block that it will mutate. On
        rollback field values are restored in place, so references held by
        callers stay valid. Blocks nest; an inner block that fails undoes only
        its own writes.

        Parameters
        ----------
        *entities : Any
            Entities fetched earlier that the block may change.
        """
        frame = _UndoFrame()
        self._frames.append(frame)
        for entity in entities:
            self._track(entity)
        try:
            yield
        except BaseException:
            self._frames.pop()
            for action in reversed(frame.actions):
                action()
            raise
        self._frames.pop()
        if self._frames:
            parent = self._frames[-1]
            parent.actions.extend(frame.actions)
            parent.touched |= frame.touched

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "customers": len(self.customers),
            "employees": len(self.employees),
            "contracts": len(self.contracts),
            "payments": len(self.payments),
            "debtors": len(self.debtors),
            "prepaid_records": len(self.prepaid_records),
            "balances": len(self.balances),
        }

    # Undo log
    def _track(self, entity: Any) -> Any:
        """Snapshot ``entity``'s fields the first time the open transaction sees it."""
        if entity is None or not self._frames:
            return entity
        frame = self._frames[-1]
        if id(entity) not in frame.touched:
            frame.touched.add(id(entity))
            saved = copy.deepcopy(vars(entity))
            frame.actions.append(lambda: vars(entity).update(saved))
        return entity

    def _track_all(self, entities: Iterator[Any]) -> list[Any]:
        return [self._track(e) for e in entities]

    def _on_rollback(self, action: Callable[[], None]) -> None:
        if self._frames:
            self._frames[-1].actions.append(action)

    def _put(self, table: dict[Any, Any], key: Any, value: Any) -> None:
        if key in table:
            previous = table[key]
            self._on_rollback(lambda: table.__setitem__(key, previous))
        else:
            self._on_rollback(lambda: table.pop(key, None))
        table[key] = value

    def _pop(self, table: dict[Any, Any], key: Any) -> None:
        previous = table.pop(key)
        self._on_rollback(lambda: table.__setitem__(key, previous))

    def _append(self, items: list[Any], item: Any) -> None:
        items.append(item)
        self._on_rollback(lambda: items.remove(item))

    def _remove(self, items: list[Any], item: Any) -> None:
        position = items.index(item)
        del items[position]
        self._on_rollback(lambda: items.insert(position, item))

    @staticmethod
    def _require(table: dict[str, Any], entity_id: str, label: str) -> Any:
        entity = table.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(f"{label} {entity_id} not found")
        return entity
