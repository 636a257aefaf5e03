"""Customer and employee models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Customer:
    """Buyer on one or more installment contracts."""

    customer_id: str
    full_name: str
    phone_number: str
    manager_id: str | None = None  # Employee responsible for collection
    address: str = ""
    is_active: bool = True
    is_deleted: bool = False
    created_at: datetime | None = None


@dataclass
class Employee:
    """Manager or cashier who creates contracts and confirms payments."""

    employee_id: str
    first_name: str
    last_name: str = ""
    created_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
