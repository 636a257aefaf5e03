"""Tests for the pure ledger computation."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from debt_ledger.ledger.aggregator import (
    add_months,
    anchored_date,
    compute,
    delay_days,
    derive_next_payment_status,
    is_paid_for_month,
    is_reminder_suppressed,
    last_paid_date,
    matching_obligation,
    next_unpaid_date,
    paid_months_count,
    recent_paid_payments,
    total_paid,
    virtual_due_date,
)
from debt_ledger.models import (
    Contract,
    NextPaymentStatus,
    Payment,
    PaymentStatus,
    PaymentType,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=ZoneInfo("Asia/Tashkent"))
TODAY = NOW.date()


def _contract(**overrides) -> Contract:
    values = {
        "contract_id": "c-001",
        "customer_id": "cust-001",
        "product_name": "Smartphone",
        "price": Decimal("1000"),
        "total_price": Decimal("1200"),
        "initial_payment": Decimal("0"),
        "monthly_payment": Decimal("100"),
        "period": 12,
        "start_date": date(2025, 10, 15),
    }
    values.update(overrides)
    return Contract(**values)


def _payment(due: date, **overrides) -> Payment:
    values = {
        "payment_id": f"pay-{due.isoformat()}",
        "contract_id": "c-001",
        "customer_id": "cust-001",
        "payment_type": PaymentType.MONTHLY,
        "amount": Decimal("100"),
    }
    values.update(overrides)
    return Payment(date=due, **values)


def _paid(due: date, confirmed_at: datetime, **overrides) -> Payment:
    return _payment(
        due,
        is_paid=True,
        status=PaymentStatus.PAID,
        confirmed_at=confirmed_at,
        **overrides,
    )


class TestTotals:
    """Tests for totals and remaining debt."""

    def test_total_paid_counts_only_paid(self) -> None:
        payments = [
            _paid(date(2025, 11, 15), NOW - timedelta(days=120)),
            _payment(date(2025, 12, 15)),
        ]

        assert total_paid(payments) == Decimal("100")

    def test_total_paid_prefers_actual_amount(self) -> None:
        """Test collected amounts count, not the scheduled amount."""
        payments = [_paid(date(2025, 11, 15), NOW, actual_amount=Decimal("130"))]

        assert total_paid(payments) == Decimal("130")

    def test_remaining_debt(self) -> None:
        """Test 1200 total with three payments of 100 leaves 900."""
        confirmed = NOW - timedelta(days=90)
        payments = [
            _paid(date(2025, 11, 15), confirmed),
            _paid(date(2025, 12, 15), confirmed),
            _paid(date(2026, 1, 15), confirmed),
            _payment(date(2026, 2, 15)),
        ]

        view = compute(_contract(next_payment_date=date(2026, 2, 15)), payments, TODAY)

        assert view.total_price == Decimal("1200")
        assert view.total_paid == Decimal("300")
        assert view.remaining_debt == Decimal("900")
        assert view.paid_months_count == 3

    def test_remaining_plus_paid_equals_price(self) -> None:
        payments = [
            _paid(date(2025, 11, 15), NOW, actual_amount=Decimal("77.35")),
            _paid(date(2025, 12, 15), NOW, actual_amount=Decimal("12.40")),
        ]

        view = compute(_contract(), payments, TODAY)

        assert view.remaining_debt + view.total_paid == view.total_price

    def test_remaining_monotone_in_payments(self) -> None:
        """Test adding a paid payment never increases remaining debt."""
        base = [_paid(date(2025, 11, 15), NOW)]
        more = base + [_paid(date(2025, 12, 15), NOW, actual_amount=Decimal("0.5"))]

        before = compute(_contract(), base, TODAY).remaining_debt
        after = compute(_contract(), more, TODAY).remaining_debt

        assert after <= before

    def test_overpayment_gives_negative_remaining(self) -> None:
        contract = _contract(total_price=Decimal("100"))
        view = compute(contract, [_paid(date(2025, 11, 15), NOW, actual_amount=Decimal("150"))], TODAY)

        assert view.remaining_debt == Decimal("-50")

    def test_falls_back_to_price(self) -> None:
        view = compute(_contract(total_price=None), [], TODAY)

        assert view.total_price == Decimal("1000")

    def test_paid_months_count_skips_initial(self) -> None:
        payments = [
            _paid(date(2025, 10, 15), NOW, payment_type=PaymentType.INITIAL),
            _paid(date(2025, 11, 15), NOW),
        ]

        assert paid_months_count(payments) == 1


class TestDelayDays:
    """Tests for signed delay."""

    def test_overdue_is_positive(self) -> None:
        assert delay_days(date(2026, 3, 10), TODAY) == 5

    def test_future_is_negative(self) -> None:
        assert delay_days(date(2026, 3, 18), TODAY) == -3

    def test_no_next_payment(self) -> None:
        assert delay_days(None, TODAY) == 0

    def test_overdue_days_clamps(self) -> None:
        view = compute(_contract(next_payment_date=date(2026, 3, 18)), [], TODAY)

        assert view.delay_days == -3
        assert view.overdue_days == 0


class TestNextPaymentStatus:
    """Tests for the status priority."""

    def test_pending_outranks_recent_paid(self) -> None:
        """Test a submitted payment wins over one confirmed yesterday."""
        payments = [
            _paid(date(2026, 2, 15), NOW - timedelta(days=1)),
            _payment(date(2026, 3, 10), status=PaymentStatus.PENDING),
        ]
        contract = _contract(next_payment_date=date(2026, 3, 10))

        view = compute(contract, payments, TODAY, now=NOW)

        assert view.next_payment_status == NextPaymentStatus.PENDING
        assert view.is_pending is True
        assert view.has_recent_paid is True

    def test_recent_paid(self) -> None:
        payments = [_paid(date(2026, 2, 15), NOW - timedelta(days=29))]
        contract = _contract(next_payment_date=date(2026, 3, 10))

        view = compute(contract, payments, TODAY, now=NOW)

        assert view.next_payment_status == NextPaymentStatus.PAID
        assert view.last_confirmed_at == NOW - timedelta(days=29)

    def test_old_payment_not_recent(self) -> None:
        payments = [_paid(date(2026, 1, 15), NOW - timedelta(days=31))]
        contract = _contract(next_payment_date=date(2026, 3, 10))

        view = compute(contract, payments, TODAY, now=NOW)

        assert view.next_payment_status == NextPaymentStatus.OVERDUE

    def test_completed_when_nothing_due(self) -> None:
        payments = [_paid(date(2025, 12, 15), NOW - timedelta(days=60))]

        view = compute(_contract(next_payment_date=None), payments, TODAY, now=NOW)

        assert view.next_payment_status == NextPaymentStatus.COMPLETED

    @pytest.mark.parametrize(
        ("next_date", "expected"),
        [
            (date(2026, 3, 1), NextPaymentStatus.OVERDUE),
            (date(2026, 3, 15), NextPaymentStatus.TODAY),
            (date(2026, 4, 15), NextPaymentStatus.UPCOMING),
        ],
    )
    def test_by_next_date(self, next_date: date, expected: NextPaymentStatus) -> None:
        view = compute(_contract(next_payment_date=next_date), [], TODAY, now=NOW)

        assert view.next_payment_status == expected

    def test_derive_is_pure(self) -> None:
        assert derive_next_payment_status(None, 0, False, False) == NextPaymentStatus.COMPLETED
        assert derive_next_payment_status(None, 0, True, False) == NextPaymentStatus.PENDING

    def test_pending_needs_unpaid(self) -> None:
        """Test a paid payment still flagged PENDING does not count as pending."""
        payment = _paid(date(2026, 2, 15), NOW - timedelta(days=60))
        payment.status = PaymentStatus.PENDING

        view = compute(_contract(next_payment_date=date(2026, 4, 15)), [payment], TODAY, now=NOW)

        assert view.is_pending is False


class TestRecentWindow:
    """Tests for the recent-payment window."""

    def test_calendar_window_without_now(self) -> None:
        confirmed = datetime(2026, 2, 12, 23, 0, tzinfo=NOW.tzinfo)

        assert recent_paid_payments([_paid(date(2026, 2, 15), confirmed)], TODAY) == []

    def test_custom_window(self) -> None:
        payment = _paid(date(2026, 2, 15), NOW - timedelta(days=10))

        assert recent_paid_payments([payment], TODAY, NOW, window_days=7) == []
        assert recent_paid_payments([payment], TODAY, NOW, window_days=14) == [payment]

    def test_requires_confirmation_time(self) -> None:
        payment = _paid(date(2026, 2, 15), None)

        assert recent_paid_payments([payment], TODAY, NOW) == []


class TestCalendar:
    """Tests for month-anchored date arithmetic."""

    def test_anchored_date_clamps(self) -> None:
        assert anchored_date(2026, 2, 31) == date(2026, 2, 28)
        assert anchored_date(2028, 2, 30) == date(2028, 2, 29)
        assert anchored_date(2026, 4, 15) == date(2026, 4, 15)

    def test_add_months_keeps_anchor(self) -> None:
        """Test a short month does not drag later months off the anchor day."""
        start = date(2026, 1, 31)

        assert add_months(start, 1, 31) == date(2026, 2, 28)
        assert add_months(start, 2, 31) == date(2026, 3, 31)
        assert add_months(start, 3, 31) == date(2026, 4, 30)

    def test_add_months_crosses_year(self) -> None:
        assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)

    def test_add_months_backwards_clamps(self) -> None:
        assert add_months(date(2026, 3, 31), -1) == date(2026, 2, 28)
        assert add_months(date(2026, 1, 15), -2) == date(2025, 11, 15)

    def test_virtual_due_date(self) -> None:
        contract = _contract(start_date=date(2025, 10, 31))

        assert virtual_due_date(contract, date(2026, 2, 10)) == date(2026, 2, 28)

    def test_virtual_due_date_uses_original_day(self) -> None:
        contract = _contract(original_payment_day=5)

        assert virtual_due_date(contract, date(2026, 3, 20)) == date(2026, 3, 5)

    def test_is_paid_for_month(self) -> None:
        payments = [_paid(date(2026, 2, 15), NOW), _payment(date(2026, 3, 15))]

        assert is_paid_for_month(payments, date(2026, 2, 1)) is True
        assert is_paid_for_month(payments, date(2026, 3, 1)) is False


class TestObligations:
    """Tests for obligation lookup helpers."""

    def test_matching_obligation(self) -> None:
        target = _payment(date(2026, 3, 15))
        payments = [_paid(date(2026, 2, 15), NOW), target]

        contract = _contract(next_payment_date=date(2026, 3, 15))

        assert matching_obligation(contract, payments) is target
        assert matching_obligation(_contract(), payments) is None

    def test_reminder_suppression(self) -> None:
        payment = _payment(date(2026, 3, 10))

        assert is_reminder_suppressed(payment, NOW) is False
        payment.reminder_date = NOW + timedelta(days=2)
        assert is_reminder_suppressed(payment, NOW) is True
        payment.reminder_date = NOW - timedelta(minutes=1)
        assert is_reminder_suppressed(payment, NOW) is False
        assert is_reminder_suppressed(None, NOW) is False

    def test_next_unpaid_and_last_paid(self) -> None:
        payments = [
            _paid(date(2025, 11, 15), NOW),
            _paid(date(2025, 12, 15), NOW),
            _payment(date(2026, 2, 15)),
            _payment(date(2026, 1, 15)),
            _payment(date(2025, 10, 15), payment_type=PaymentType.INITIAL),
        ]

        assert next_unpaid_date(payments) == date(2026, 1, 15)
        assert last_paid_date(payments) == date(2025, 12, 15)

    def test_all_paid(self) -> None:
        assert next_unpaid_date([_paid(date(2025, 11, 15), NOW)]) is None
        assert last_paid_date([]) is None
