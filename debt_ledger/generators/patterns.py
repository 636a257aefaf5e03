"""Behavioral patterns for realistic payment histories."""

import random
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal

from debt_ledger.models import Payment, PaymentMethod, PaymentType


@dataclass
class PaymentEvent:
    """A cash-desk action to replay against the ledger."""

    payment_id: str
    at: datetime
    amount: Decimal
    method: PaymentMethod
    confirmed: bool = True  # False: submitted and awaiting confirmation


class PaymentBehavior:
    """Simulate realistic installment payment behavior."""

    BEHAVIORS = ["good", "occasional_late", "chronic_late", "defaulter"]

    def __init__(self, seed: int | None = None) -> None:
        if seed is not None:
            random.seed(seed)

    def choose_behavior(
        self,
        on_time_rate: float = 0.70,
        late_rate: float = 0.20,
        default_rate: float = 0.10,
    ) -> str:
        return random.choices(
            self.BEHAVIORS,
            weights=[on_time_rate, late_rate * 0.7, late_rate * 0.3, default_rate],
            k=1,
        )[0]

    def plan_payments(
        self,
        payments: list[Payment],
        reference_date: date,
        zone: tzinfo,
        behavior: str | None = None,
        overpay_rate: float = 0.05,
        pending_rate: float = 0.3,
    ) -> list[PaymentEvent]:
        """Plan when and how much a customer pays on each obligation.

        Parameters
        ----------
        payments : list[Payment]
            The contract's schedule.
        reference_date : date
            Current date; nothing is paid after it.
        zone : tzinfo
            Zone of the event timestamps.
        behavior : str | None
            One of ``BEHAVIORS``; drawn at random when None.
        overpay_rate : float
            Probability that a payment exceeds its obligation.
        pending_rate : float
            Probability that a due, unpaid obligation has been collected but
            not yet confirmed.

        Returns
        -------
        list[PaymentEvent]
            Events in chronological order.
        """
        behavior = behavior or self.choose_behavior()
        paid_months_limit = random.randint(2, 6)
        events = []
        monthly_seen = 0

        for payment in sorted(payments, key=lambda p: p.date):
            if payment.date > reference_date:
                continue

            if payment.payment_type == PaymentType.INITIAL:
                delay = 0
            else:
                monthly_seen += 1
                delay = self._delay(behavior, monthly_seen, paid_months_limit)

            method = random.choice(list(PaymentMethod))
            if delay is None or payment.date + timedelta(days=delay) > reference_date:
                if random.random() < pending_rate:
                    events.append(
                        PaymentEvent(
                            payment_id=payment.payment_id,
                            at=self._at(reference_date, zone),
                            amount=payment.amount,
                            method=method,
                            confirmed=False,
                        )
                    )
                continue

            amount = payment.amount
            if random.random() < overpay_rate:
                amount += Decimal(random.randint(10, 50))
            events.append(
                PaymentEvent(
                    payment_id=payment.payment_id,
                    at=self._at(payment.date + timedelta(days=delay), zone),
                    amount=amount,
                    method=method,
                )
            )

        return sorted(events, key=lambda e: e.at)

    def _delay(self, behavior: str, month: int, paid_months_limit: int) -> int | None:
        """Days late for one monthly obligation; None when it is never paid."""
        if behavior == "good":
            return random.randint(0, 3)
        if behavior == "occasional_late":
            if random.random() < 0.8:
                return random.randint(0, 5)
            return random.randint(10, 30)
        if behavior == "chronic_late":
            return random.randint(5, 45)
        # defaulter: pays the first few months, then stops
        if month <= paid_months_limit:
            return random.randint(0, 15)
        return None

    @staticmethod
    def _at(day: date, zone: tzinfo) -> datetime:
        return datetime.combine(day, time(random.randint(9, 18), random.randint(0, 59)), tzinfo=zone)
