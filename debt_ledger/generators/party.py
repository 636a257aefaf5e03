"""Customer and employee generators."""

from datetime import datetime

from debt_ledger.generators.base import BaseGenerator
from debt_ledger.models import Customer, Employee


class CustomerGenerator(BaseGenerator):
    """Generate installment-sale customers."""

    def generate(self, manager_id: str | None = None, created_at: datetime | None = None) -> Customer:
        """Generate a customer.

        Parameters
        ----------
        manager_id : str | None
            Employee responsible for the customer.
        created_at : datetime | None
            Creation timestamp.

        Returns
        -------
        Customer
            Generated customer.
        """
        return Customer(
            customer_id=self.fake.uuid4(),
            full_name=self.fake.name(),
            phone_number=self.fake.phone_number(),
            manager_id=manager_id,
            address=self.fake.address().replace("\n", ", "),
            created_at=created_at,
        )


class EmployeeGenerator(BaseGenerator):
    """Generate managers."""

    def generate(self) -> Employee:
        return Employee(
            employee_id=self.fake.uuid4(),
            first_name=self.fake.first_name(),
            last_name=self.fake.last_name(),
        )
