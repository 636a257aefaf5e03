"""Tests for the in-memory ledger store."""

from datetime import date
from decimal import Decimal

import pytest

from debt_ledger.exceptions import (
    DuplicateDebtorError,
    EntityNotFoundError,
    ReferentialIntegrityError,
)
from debt_ledger.models import (
    Balance,
    Contract,
    Debtor,
    Payment,
    PaymentType,
    PrepaidRecord,
)
from debt_ledger.store import InMemoryLedgerStore


def _debtor(debtor_id: str = "d-001", due: date = date(2026, 3, 5)) -> Debtor:
    return Debtor(
        debtor_id=debtor_id,
        contract_id="c-001",
        debt_amount=Decimal("100"),
        due_date=due,
        overdue_days=10,
    )


class TestReferentialIntegrity:
    """Tests for foreign key checks on insert."""

    def test_contract_needs_customer(self, store: InMemoryLedgerStore) -> None:
        contract = Contract(
            contract_id="c-404",
            customer_id="missing",
            product_name="TV",
            price=Decimal("500"),
            initial_payment=Decimal("0"),
            monthly_payment=Decimal("50"),
            period=10,
            start_date=date(2026, 1, 1),
        )

        with pytest.raises(ReferentialIntegrityError, match="Customer missing"):
            store.add_contract(contract)

    def test_payment_needs_contract(self, store: InMemoryLedgerStore) -> None:
        payment = Payment(
            payment_id="pay-x",
            contract_id="missing",
            customer_id="cust-001",
            date=date(2026, 1, 1),
            payment_type=PaymentType.MONTHLY,
            amount=Decimal("50"),
        )

        with pytest.raises(ReferentialIntegrityError):
            store.add_payment(payment)

    def test_referential_error_is_not_found(self, store: InMemoryLedgerStore) -> None:
        with pytest.raises(EntityNotFoundError):
            store.add_debtor(_debtor())

    def test_prepaid_needs_contract(self, store: InMemoryLedgerStore) -> None:
        record = PrepaidRecord(
            record_id="pp-1",
            amount=Decimal("10"),
            date=None,
            created_by="mgr-001",
            customer_id="cust-001",
            contract_id="missing",
        )

        with pytest.raises(ReferentialIntegrityError):
            store.add_prepaid_record(record)


class TestPaymentLinks:
    """Tests for contract-payment relationship tracking."""

    def test_add_payment_links_contract(self, store, make_contract, make_payment) -> None:
        contract = make_contract()
        payment = make_payment("c-001", date(2026, 1, 15))

        assert contract.payment_ids == [payment.payment_id]
        assert store.find_payments(contract_id="c-001") == [payment]

    def test_delete_payment_unlinks(self, store, make_contract, make_payment) -> None:
        contract = make_contract()
        first = make_payment("c-001", date(2026, 1, 15))
        second = make_payment("c-001", date(2026, 2, 15))

        store.delete_payment(first.payment_id)

        assert contract.payment_ids == [second.payment_id]
        assert store.get_payment(first.payment_id) is None
        assert store.find_payments(contract_id="c-001") == [second]

    def test_delete_missing_payment(self, store) -> None:
        with pytest.raises(EntityNotFoundError):
            store.delete_payment("nope")

    def test_find_payments_filters(self, store, make_contract, make_payment) -> None:
        make_contract()
        make_payment("c-001", date(2026, 1, 15), is_paid=True)
        unpaid = make_payment("c-001", date(2026, 2, 15))

        assert store.find_payments(contract_id="c-001", is_paid=False) == [unpaid]
        assert len(store.find_payments(is_paid=True)) == 1


class TestDebtors:
    """Tests for debtor uniqueness."""

    def test_duplicate_key_rejected(self, store, make_contract) -> None:
        """Test a second debtor for the same contract and due date is refused."""
        make_contract()
        store.add_debtor(_debtor("d-001"))

        with pytest.raises(DuplicateDebtorError):
            store.add_debtor(_debtor("d-002"))

        assert len(store.debtors) == 1

    def test_same_contract_other_due_date(self, store, make_contract) -> None:
        make_contract()
        store.add_debtor(_debtor("d-001", date(2026, 2, 5)))
        store.add_debtor(_debtor("d-002", date(2026, 3, 5)))

        assert store.find_debtor("c-001", date(2026, 3, 5)).debtor_id == "d-002"
        assert store.find_debtor("c-001", date(2026, 1, 5)) is None

    def test_save_missing_debtor(self, store) -> None:
        with pytest.raises(EntityNotFoundError):
            store.save_debtor(_debtor("ghost"))


class TestSaves:
    """Tests for update operations."""

    def test_save_missing_contract(self, store, make_contract) -> None:
        contract = make_contract()
        store.contracts.clear()

        with pytest.raises(EntityNotFoundError, match="Contract c-001"):
            store.save_contract(contract)

    def test_save_balance_upserts(self, store) -> None:
        store.save_balance(Balance(manager_id="mgr-001", amount=Decimal("5")))

        assert store.get_balance("mgr-001").amount == Decimal("5")

    def test_get_missing_returns_none(self, store) -> None:
        assert store.get_contract("nope") is None
        assert store.get_customer("nope") is None
        assert store.get_balance("nope") is None


class TestTransaction:
    """Tests for atomic blocks."""

    def test_commit_keeps_changes(self, store, make_contract) -> None:
        make_contract()

        with store.transaction():
            store.add_debtor(_debtor())

        assert len(store.debtors) == 1

    def test_exception_restores_state(self, store, make_contract, make_payment) -> None:
        """Test every write inside a failed block is undone."""
        make_contract()
        make_payment("c-001", date(2026, 1, 15))

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.add_debtor(_debtor())
                store.get_contract("c-001").prepaid_balance = Decimal("30")
                make_payment("c-001", date(2026, 2, 15))
                raise RuntimeError("boom")

        assert store.debtors == {}
        assert store.find_debtor("c-001", date(2026, 3, 5)) is None
        assert store.get_contract("c-001").prepaid_balance == Decimal("0")
        assert len(store.find_payments(contract_id="c-001")) == 1

    def test_rollback_keeps_held_references(self, store, make_contract, make_payment) -> None:
        """Test objects obtained before a failed block are the ones the store still holds."""
        contract = make_contract()
        payment = make_payment("c-001", date(2026, 1, 15))

        with pytest.raises(RuntimeError):
            with store.transaction(contract, payment):
                contract.prepaid_balance = Decimal("30")
                payment.is_paid = True
                store.save_payment(payment)
                raise RuntimeError("boom")

        assert store.get_contract("c-001") is contract
        assert store.get_payment(payment.payment_id) is payment
        assert contract.prepaid_balance == Decimal("0")
        assert payment.is_paid is False

    def test_rollback_restores_deleted_payment(self, store, make_contract, make_payment) -> None:
        contract = make_contract()
        first = make_payment("c-001", date(2026, 1, 15))
        second = make_payment("c-001", date(2026, 2, 15))

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.delete_payment(first.payment_id)
                raise RuntimeError("boom")

        assert store.find_payments(contract_id="c-001") == [first, second]
        assert contract.payment_ids == [first.payment_id, second.payment_id]

    def test_failed_inner_block_keeps_outer_writes(self, store, make_contract) -> None:
        make_contract()

        with store.transaction():
            store.add_debtor(_debtor("d-001"))
            with pytest.raises(RuntimeError):
                with store.transaction():
                    store.add_debtor(_debtor("d-002", due=date(2026, 4, 5)))
                    raise RuntimeError("boom")

        assert list(store.debtors) == ["d-001"]
        assert store.find_debtor("c-001", date(2026, 4, 5)) is None

    def test_failed_outer_block_undoes_committed_inner(self, store, make_contract) -> None:
        make_contract()

        with pytest.raises(RuntimeError):
            with store.transaction():
                with store.transaction():
                    store.get_contract("c-001").prepaid_balance = Decimal("15")
                    store.add_debtor(_debtor())
                raise RuntimeError("boom")

        assert store.debtors == {}
        assert store.get_contract("c-001").prepaid_balance == Decimal("0")


class TestSummary:
    def test_summary_counts(self, store, make_contract) -> None:
        make_contract()

        summary = store.summary()

        assert summary["customers"] == 1
        assert summary["employees"] == 1
        assert summary["contracts"] == 1
        assert summary["debtors"] == 0

    def test_empty_store(self) -> None:
        assert InMemoryLedgerStore().summary()["contracts"] == 0
