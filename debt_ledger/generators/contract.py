"""Contract generator."""

import random
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import ROUND_HALF_UP, Decimal

from debt_ledger.generators.base import BaseGenerator
from debt_ledger.ledger.schedule import build_schedule
from debt_ledger.models import Contract, Payment


class ContractGenerator(BaseGenerator):
    """Generate installment contracts with their payment schedules."""

    PRODUCTS = {
        "Smartphone": (300, 1500),
        "Laptop": (500, 2500),
        "Refrigerator": (400, 1800),
        "Washing machine": (350, 1200),
        "Television": (250, 2000),
        "Air conditioner": (300, 1100),
        "Motorcycle": (1200, 4000),
    }

    PERIODS = [3, 6, 9, 12, 18, 24]

    def generate_with_schedule(
        self,
        customer_id: str,
        created_by: str | None,
        reference_date: date,
        zone: tzinfo,
        custom_id: str | None = None,
    ) -> tuple[Contract, list[Payment]]:
        """Generate a contract started within the last two years.

        Parameters
        ----------
        customer_id : str
            Buyer.
        created_by : str | None
            Manager who sold the contract.
        reference_date : date
            Latest possible start date.
        zone : tzinfo
            Zone of the creation timestamp.
        custom_id : str | None
            Display id.

        Returns
        -------
        tuple[Contract, list[Payment]]
            Contract and its unpaid schedule.
        """
        product = random.choice(list(self.PRODUCTS))
        low, high = self.PRODUCTS[product]
        price = Decimal(random.randint(low, high))
        markup = Decimal(str(round(random.uniform(1.1, 1.4), 2)))
        period = random.choice(self.PERIODS)
        initial = (price * Decimal(random.choice([0, 10, 20, 30])) / 100).quantize(Decimal("1"))
        monthly = ((price * markup - initial) / period).quantize(Decimal("0.01"), ROUND_HALF_UP)
        start_date = reference_date - timedelta(days=random.randint(0, 720))

        contract = Contract(
            contract_id=self.fake.uuid4(),
            customer_id=customer_id,
            product_name=f"{product} {self.fake.word().capitalize()}",
            price=price,
            initial_payment=initial,
            monthly_payment=monthly,
            period=period,
            start_date=start_date,
            total_price=initial + monthly * period,
            custom_id=custom_id,
            created_by=created_by,
            created_at=datetime.combine(start_date, time(10, 0), tzinfo=zone),
        )
        payments = build_schedule(contract)
        return contract, payments
