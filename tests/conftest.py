"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from debt_ledger.clock import FixedClock
from debt_ledger.config import LedgerConfig
from debt_ledger.models import (
    Contract,
    Customer,
    Employee,
    Payment,
    PaymentType,
)
from debt_ledger.store import InMemoryLedgerStore

TASHKENT = ZoneInfo("Asia/Tashkent")
NOW = datetime(2026, 3, 15, 12, 0, tzinfo=TASHKENT)
TODAY = date(2026, 3, 15)


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def zone() -> ZoneInfo:
    return TASHKENT


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at 2026-03-15 12:00 Tashkent time."""
    return FixedClock(NOW)


@pytest.fixture
def config() -> LedgerConfig:
    return LedgerConfig()


@pytest.fixture
def store() -> InMemoryLedgerStore:
    """Store holding one manager and one customer."""
    store = InMemoryLedgerStore()
    store.add_employee(Employee(employee_id="mgr-001", first_name="Aziz", last_name="Karimov"))
    store.add_customer(
        Customer(
            customer_id="cust-001",
            full_name="Dilshod Rahimov",
            phone_number="+998901234567",
            manager_id="mgr-001",
            address="Tashkent, Chilonzor 5",
        )
    )
    return store


@pytest.fixture
def make_contract(store: InMemoryLedgerStore) -> Callable[..., Contract]:
    """Factory adding a contract to the store."""

    def factory(contract_id: str = "c-001", **overrides: Any) -> Contract:
        values: dict[str, Any] = {
            "customer_id": "cust-001",
            "product_name": "Smartphone",
            "price": Decimal("1000"),
            "total_price": Decimal("1200"),
            "initial_payment": Decimal("0"),
            "monthly_payment": Decimal("100"),
            "period": 12,
            "start_date": date(2025, 10, 15),
            "created_by": "mgr-001",
        }
        values.update(overrides)
        contract = Contract(contract_id=contract_id, **values)
        store.add_contract(contract)
        return contract

    return factory


@pytest.fixture
def make_payment(store: InMemoryLedgerStore) -> Callable[..., Payment]:
    """Factory adding a payment to the store."""
    counter = {"n": 0}

    def factory(contract_id: str, due: date, **overrides: Any) -> Payment:
        counter["n"] += 1
        values: dict[str, Any] = {
            "payment_id": f"pay-{counter['n']:03d}",
            "customer_id": store.get_contract(contract_id).customer_id,
            "payment_type": PaymentType.MONTHLY,
            "amount": Decimal("100"),
            "manager_id": "mgr-001",
        }
        values.update(overrides)
        payment = Payment(contract_id=contract_id, date=due, **values)
        store.add_payment(payment)
        return payment

    return factory
