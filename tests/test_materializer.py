"""Tests for debtor materialisation."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from debt_ledger.exceptions import (
    DuplicateDebtorError,
    EntityNotFoundError,
    ValidationError,
)
from debt_ledger.ledger.materializer import (
    ContractOutcome,
    DebtorMaterializer,
    MaterializerReport,
    is_materializable,
    overdue_obligations,
)
from debt_ledger.models import ContractStatus, Debtor, PaymentStatus, PaymentType


@pytest.fixture
def materializer(store, clock) -> DebtorMaterializer:
    return DebtorMaterializer(store, clock)


class TestReport:
    """Tests for MaterializerReport counters."""

    def test_add_and_as_dict(self) -> None:
        report = MaterializerReport(run_date=date(2026, 3, 15))
        report.add(ContractOutcome("c-001", overdue_payments=2, created=1, updated=1))
        report.add(ContractOutcome("c-002", error="boom"))

        assert report.as_dict() == {"created": 1, "updated": 1, "totalOverduePayments": 2}
        assert report.failed == 1
        assert [o.contract_id for o in report.failures] == ["c-002"]


class TestFilters:
    def test_is_materializable(self, make_contract) -> None:
        assert is_materializable(make_contract("a")) is True
        assert is_materializable(make_contract("b", is_declare=True)) is False
        assert is_materializable(make_contract("c", is_active=False)) is False
        assert is_materializable(make_contract("d", is_deleted=True)) is False
        assert is_materializable(make_contract("e", status=ContractStatus.COMPLETED)) is False

    def test_overdue_obligations(self, store, make_contract, make_payment) -> None:
        """Test only unpaid monthly payments strictly before today count."""
        make_contract()
        overdue = make_payment("c-001", date(2026, 3, 14))
        make_payment("c-001", date(2026, 3, 15))
        make_payment("c-001", date(2026, 3, 1), is_paid=True, status=PaymentStatus.PAID)
        make_payment("c-001", date(2026, 2, 1), payment_type=PaymentType.INITIAL)

        payments = store.find_payments(contract_id="c-001")

        assert overdue_obligations(payments, date(2026, 3, 15)) == [overdue]


class TestRun:
    """Tests for DebtorMaterializer.run."""

    def test_creates_then_refreshes(self, store, clock, materializer, make_contract, make_payment) -> None:
        """Test an obligation 10 days late yields one record, refreshed to 11 the next day."""
        make_contract()
        make_payment("c-001", date(2026, 3, 5))

        report = materializer.run()

        assert report.as_dict() == {"created": 1, "updated": 0, "totalOverduePayments": 1}
        debtor = store.find_debtor("c-001", date(2026, 3, 5))
        assert debtor.overdue_days == 10
        assert debtor.debt_amount == Decimal("100")
        assert debtor.created_by == "mgr-001"

        clock.advance(days=1)
        report = materializer.run()

        assert report.as_dict() == {"created": 0, "updated": 1, "totalOverduePayments": 1}
        assert len(store.debtors) == 1
        assert store.find_debtor("c-001", date(2026, 3, 5)).overdue_days == 11

    def test_same_day_rerun_is_stable(self, store, materializer, make_contract, make_payment) -> None:
        make_contract()
        make_payment("c-001", date(2026, 2, 5))
        make_payment("c-001", date(2026, 3, 5))

        materializer.run()
        snapshot = {d.debtor_id: d.overdue_days for d in store.debtors.values()}
        materializer.run()

        assert {d.debtor_id: d.overdue_days for d in store.debtors.values()} == snapshot
        assert len(snapshot) == 2

    def test_skips_ineligible(self, store, materializer, make_contract, make_payment) -> None:
        make_contract("c-001", is_declare=True)
        make_contract("c-002", status=ContractStatus.COMPLETED)
        make_contract("c-003")
        make_payment("c-001", date(2026, 3, 1))
        make_payment("c-002", date(2026, 3, 1))
        make_payment("c-003", date(2026, 3, 15))
        make_payment("c-003", date(2026, 3, 1), is_paid=True, status=PaymentStatus.PAID)

        report = materializer.run()

        assert report.as_dict() == {"created": 0, "updated": 0, "totalOverduePayments": 0}
        assert report.outcomes == []
        assert store.debtors == {}

    def test_failure_is_isolated(self, store, materializer, make_contract, make_payment) -> None:
        """Test one failing contract does not stop the others."""
        make_contract("c-bad")
        make_contract("c-good")
        make_payment("c-bad", date(2026, 3, 1))
        make_payment("c-good", date(2026, 3, 1))
        original = store.find_payments

        def flaky(**filters):
            if filters.get("contract_id") == "c-bad":
                raise RuntimeError("corrupt payment row")
            return original(**filters)

        with patch.object(store, "find_payments", side_effect=flaky):
            report = materializer.run()

        assert report.failed == 1
        assert report.failures[0].contract_id == "c-bad"
        assert "corrupt payment row" in report.failures[0].error
        assert report.created == 1
        assert store.find_debtor("c-good", date(2026, 3, 1)) is not None

    def test_concurrent_insert_becomes_update(self, store, clock, make_contract, make_payment) -> None:
        """Test a duplicate on insert re-reads the record and updates it."""
        make_contract()
        make_payment("c-001", date(2026, 3, 5))
        existing = Debtor(
            debtor_id="d-other",
            contract_id="c-001",
            debt_amount=Decimal("100"),
            due_date=date(2026, 3, 5),
            overdue_days=9,
        )
        debtor_store = MagicMock()
        debtor_store.find_debtor.side_effect = [None, existing]
        debtor_store.add_debtor.side_effect = DuplicateDebtorError("dup")

        report = DebtorMaterializer(store, clock, debtor_store).run()

        assert report.as_dict() == {"created": 0, "updated": 1, "totalOverduePayments": 1}
        debtor_store.save_debtor.assert_called_once_with(existing)
        assert existing.overdue_days == 10

    def test_duplicate_without_record_propagates(self, store, clock, make_contract, make_payment) -> None:
        make_contract()
        make_payment("c-001", date(2026, 3, 5))
        debtor_store = MagicMock()
        debtor_store.find_debtor.return_value = None
        debtor_store.add_debtor.side_effect = DuplicateDebtorError("dup")

        report = DebtorMaterializer(store, clock, debtor_store).run()

        assert report.failed == 1

    def test_summary(self, store, materializer, make_contract, make_payment) -> None:
        make_contract()
        make_payment("c-001", date(2026, 2, 5))
        make_payment("c-001", date(2026, 3, 5))
        materializer.run()

        assert materializer.summary() == {"debtors": 2, "contracts": 1}


class TestDeclareDebtors:
    """Tests for manual debtor declaration."""

    def test_declare_creates_debtor(self, store, materializer, make_contract) -> None:
        make_contract(next_payment_date=date(2026, 3, 5))

        report = materializer.declare_debtors(["c-001"], created_by="mgr-001")

        assert report.declared == 1
        assert report.created == 1
        assert store.get_contract("c-001").is_declare is True
        debtor = store.find_debtor("c-001", date(2026, 3, 5))
        assert debtor.debt_amount == Decimal("100")
        assert debtor.overdue_days == 10
        assert debtor.created_by == "mgr-001"

    def test_declare_twice_creates_once(self, store, materializer, make_contract) -> None:
        make_contract(next_payment_date=date(2026, 3, 5))

        materializer.declare_debtors(["c-001", "c-001"], created_by="mgr-001")
        report = materializer.declare_debtors(["c-001"], created_by="mgr-001")

        assert report.created == 0
        assert len(store.debtors) == 1

    def test_declared_contract_skipped_by_run(self, store, materializer, make_contract, make_payment) -> None:
        make_contract(next_payment_date=date(2026, 2, 5))
        make_payment("c-001", date(2026, 2, 5))
        make_payment("c-001", date(2026, 3, 5))
        materializer.declare_debtors(["c-001"], created_by="mgr-001")

        report = materializer.run()

        assert report.total_overdue_payments == 0
        assert len(store.debtors) == 1

    def test_missing_contract_changes_nothing(self, store, materializer, make_contract) -> None:
        make_contract(next_payment_date=date(2026, 3, 5))

        with pytest.raises(EntityNotFoundError):
            materializer.declare_debtors(["c-001", "c-404"], created_by="mgr-001")

        assert store.get_contract("c-001").is_declare is False
        assert store.debtors == {}

    def test_empty_ids(self, materializer) -> None:
        with pytest.raises(ValidationError):
            materializer.declare_debtors([], created_by="mgr-001")

    def test_no_next_payment_date(self, store, materializer, make_contract) -> None:
        make_contract()

        report = materializer.declare_debtors(["c-001"], created_by="mgr-001")

        assert report.declared == 1
        assert report.skipped == ["c-001"]
        assert store.debtors == {}
