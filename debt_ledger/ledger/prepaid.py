"""Prepaid (excess payment) reconciliation.

Excess payments live in two places: the append-only ``PrepaidRecord`` log and
the ``Contract.prepaid_balance`` cache. Both are written in one store
transaction; readers that total them take the larger of the two sums.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from debt_ledger.clock import Clock
from debt_ledger.config import LedgerConfig
from debt_ledger.exceptions import EntityNotFoundError, ValidationError
from debt_ledger.models import Contract, Payment, PaymentMethod, PrepaidRecord
from debt_ledger.store import LedgerRepository

logger = logging.getLogger(__name__)

METHOD_LABELS: dict[PaymentMethod, str] = {
    PaymentMethod.SOM_CASH: "Cash (som)",
    PaymentMethod.SOM_CARD: "Card (som)",
    PaymentMethod.DOLLAR_CASH: "Cash (dollar)",
    PaymentMethod.DOLLAR_CARD_VISA: "Card (dollar, Visa)",
}

UNKNOWN = "unknown"
SORTABLE_FIELDS = ("date", "amount", "created_at")


def format_payment_method(method: PaymentMethod | None) -> str:
    return METHOD_LABELS.get(method, "Unknown") if method else "Unknown"


def format_prepaid_note(
    when: datetime,
    amount: Decimal,
    method: PaymentMethod | None,
    manager_name: str,
    contract_display_id: str,
    additional_notes: str | None = None,
) -> str:
    """Render the audit note of a prepaid record.

    Fields always appear in the same order:
    ``dd.mm.yyyy - HH:MM | $amount | method | manager | contract | notes``.
    """
    parts = [
        f"{when:%d.%m.%Y} - {when:%H:%M}",
        f"${amount:.2f}",
        f"Payment method: {format_payment_method(method)}",
        manager_name,
        contract_display_id,
    ]
    if additional_notes:
        parts.append(additional_notes)
    return " | ".join(parts)


@dataclass
class PrepaidContractSummary:
    contract_id: str
    records: list[PrepaidRecord]
    total_amount: Decimal
    record_count: int
    last_record: PrepaidRecord | None


@dataclass
class MethodBreakdown:
    count: int = 0
    amount: Decimal = Decimal("0")


@dataclass
class PrepaidStats:
    """Customer-level prepaid totals from both sources."""

    total_prepaid: Decimal
    total_prepaid_from_records: Decimal
    total_prepaid_from_contracts: Decimal
    record_count: int
    contract_count: int
    by_payment_method: dict[str, MethodBreakdown] = field(default_factory=dict)
    latest_date: datetime | None = None
    oldest_date: datetime | None = None


@dataclass
class PrepaidPage:
    records: list[PrepaidRecord]
    total: int
    limit: int
    skip: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)


@dataclass
class PrepaidDivergence:
    """Contract whose cached balance disagrees with its record log."""

    contract_id: str
    cached_balance: Decimal
    logged_total: Decimal

    @property
    def difference(self) -> Decimal:
        return self.cached_balance - self.logged_total


def _newest_first(record: PrepaidRecord) -> tuple[datetime, datetime]:
    return (record.date, record.created_at or record.date)


class PrepaidReconciler:
    """Record excess payments and answer prepaid-balance queries."""

    def __init__(
        self,
        store: LedgerRepository,
        clock: Clock,
        config: LedgerConfig | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.config = config or LedgerConfig()

    def record_excess(
        self,
        payment: Payment,
        contract: Contract,
        excess: Decimal,
        method: PaymentMethod | None = None,
        notes: str | None = None,
    ) -> PrepaidRecord | None:
        """Append a prepaid record and bump the contract's cached balance.

        Amounts within tolerance are ignored. A payment whose records still
        hold a credit is not recorded twice; one whose credit was reversed is.

        Returns
        -------
        PrepaidRecord | None
            The new (or previously written) record, None when nothing was recorded.
        """
        if excess <= self.config.tolerance:
            logger.debug("Excess %s on payment %s is within tolerance", excess, payment.payment_id)
            return None

        existing = self.store.find_prepaid_records(related_payment_id=payment.payment_id)
        if sum((r.amount for r in existing), Decimal("0")) > self.config.tolerance:
            credit = [r for r in existing if r.amount > 0][-1]
            logger.warning(
                "Payment %s already has prepaid record %s",
                payment.payment_id,
                credit.record_id,
            )
            return credit

        now = self.clock.now()
        when = (payment.confirmed_at or now).astimezone(self.config.zone)
        record = PrepaidRecord(
            record_id=str(uuid.uuid4()),
            amount=excess,
            date=when,
            created_by=payment.manager_id or "",
            customer_id=payment.customer_id,
            contract_id=contract.contract_id,
            contract_display_id=contract.custom_id,
            payment_method=method,
            notes=format_prepaid_note(
                when,
                excess,
                method,
                self._manager_name(payment.manager_id),
                contract.custom_id or "N/A",
                notes,
            ),
            related_payment_id=payment.payment_id,
            created_at=now,
            updated_at=now,
        )

        with self.store.transaction(contract):
            self.store.add_prepaid_record(record)
            contract.prepaid_balance += excess
            contract.updated_at = now
            self.store.save_contract(contract)

        logger.info(
            "Recorded prepaid %s on contract %s (balance %s)",
            excess,
            contract.contract_id,
            contract.prepaid_balance,
            extra={"contract_id": contract.contract_id, "payment_id": payment.payment_id, "record_id": record.record_id},
        )
        return record

    def reverse_excess(self, payment: Payment, contract: Contract) -> PrepaidRecord | None:
        """Withdraw the prepaid credit of a payment whose confirmation is undone.

        The log stays append-only: a record with the negated net amount is
        appended, linked to the same payment, and the contract's cached
        balance drops by the same amount.

        Returns
        -------
        PrepaidRecord | None
            The compensating record, None when the payment left no credit.
        """
        records = self.store.find_prepaid_records(related_payment_id=payment.payment_id)
        credit = sum((r.amount for r in records), Decimal("0"))
        if credit <= self.config.tolerance:
            return None

        now = self.clock.now()
        when = now.astimezone(self.config.zone)
        method = records[0].payment_method
        record = PrepaidRecord(
            record_id=str(uuid.uuid4()),
            amount=-credit,
            date=when,
            created_by=payment.manager_id or "",
            customer_id=payment.customer_id,
            contract_id=contract.contract_id,
            contract_display_id=contract.custom_id,
            payment_method=method,
            notes=format_prepaid_note(
                when,
                -credit,
                method,
                self._manager_name(payment.manager_id),
                contract.custom_id or "N/A",
                f"Reversal of payment {payment.payment_id}",
            ),
            related_payment_id=payment.payment_id,
            created_at=now,
            updated_at=now,
        )

        with self.store.transaction(contract):
            self.store.add_prepaid_record(record)
            contract.prepaid_balance -= credit
            contract.updated_at = now
            self.store.save_contract(contract)

        logger.info(
            "Reversed prepaid %s on contract %s (balance %s)",
            credit,
            contract.contract_id,
            contract.prepaid_balance,
            extra={"contract_id": contract.contract_id, "payment_id": payment.payment_id, "record_id": record.record_id},
        )
        return record

    def total_prepaid(self, customer_id: str) -> Decimal:
        """Displayed prepaid total: the larger of the log sum and the cache sum."""
        stats = self.stats(customer_id)
        return stats.total_prepaid

    def history(self, customer_id: str, contract_id: str | None = None) -> list[PrepaidRecord]:
        """Prepaid records of a customer, newest first."""
        if not customer_id:
            raise ValidationError("customer_id is required")
        filters = {"customer_id": customer_id}
        if contract_id:
            filters["contract_id"] = contract_id
        records = self.store.find_prepaid_records(**filters)
        return sorted(records, key=_newest_first, reverse=True)

    def contract_summary(self, contract_id: str) -> PrepaidContractSummary:
        if not contract_id:
            raise ValidationError("contract_id is required")
        records = sorted(
            self.store.find_prepaid_records(contract_id=contract_id),
            key=_newest_first,
            reverse=True,
        )
        return PrepaidContractSummary(
            contract_id=contract_id,
            records=records,
            total_amount=sum((r.amount for r in records), Decimal("0")),
            record_count=len(records),
            last_record=records[0] if records else None,
        )

    def stats(self, customer_id: str) -> PrepaidStats:
        """Prepaid totals of a customer from the record log and the contract cache."""
        if not customer_id:
            raise ValidationError("customer_id is required")
        records = self.store.find_prepaid_records(customer_id=customer_id)
        contracts = self.store.find_contracts(customer_id=customer_id)

        from_records = sum((r.amount for r in records), Decimal("0"))
        from_contracts = sum((c.prepaid_balance for c in contracts), Decimal("0"))
        if from_records != from_contracts:
            logger.debug(
                "Prepaid sources disagree for customer %s: records=%s contracts=%s",
                customer_id,
                from_records,
                from_contracts,
            )

        by_method: dict[str, MethodBreakdown] = {}
        for record in records:
            key = record.payment_method.value if record.payment_method else UNKNOWN
            breakdown = by_method.setdefault(key, MethodBreakdown())
            breakdown.count += 1
            breakdown.amount += record.amount

        dates = [r.date for r in records]
        return PrepaidStats(
            total_prepaid=max(from_records, from_contracts),
            total_prepaid_from_records=from_records,
            total_prepaid_from_contracts=from_contracts,
            record_count=len(records),
            contract_count=len(contracts),
            by_payment_method=by_method,
            latest_date=max(dates, default=None),
            oldest_date=min(dates, default=None),
        )

    def list_records(
        self,
        limit: int = 50,
        skip: int = 0,
        sort_by: str = "date",
        sort_order: str = "desc",
    ) -> PrepaidPage:
        """Page through every prepaid record."""
        if limit <= 0 or skip < 0:
            raise ValidationError("limit must be positive and skip non-negative")
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort prepaid records by {sort_by!r}")
        if sort_order not in ("asc", "desc"):
            raise ValidationError(f"Unknown sort order {sort_order!r}")

        records = self.store.find_prepaid_records()
        # created_at may be unset on imported records
        records.sort(
            key=lambda r: getattr(r, sort_by) if getattr(r, sort_by) is not None else r.date,
            reverse=sort_order == "desc",
        )
        return PrepaidPage(
            records=records[skip : skip + limit],
            total=len(records),
            limit=limit,
            skip=skip,
        )

    def update_note(self, record_id: str, notes: str) -> PrepaidRecord:
        """Replace the free-text note, the only mutable field of a record."""
        if not notes or not notes.strip():
            raise ValidationError("Note must not be empty")
        record = self.store.get_prepaid_record(record_id)
        if record is None:
            raise EntityNotFoundError(f"Prepaid record {record_id} not found")

        record.notes = notes
        record.updated_at = self.clock.now()
        self.store.save_prepaid_record(record)
        logger.info("Updated note of prepaid record %s", record_id)
        return record

    def find_divergences(self) -> list[PrepaidDivergence]:
        """Contracts whose cached prepaid balance differs from the log beyond tolerance."""
        divergences = []
        for contract in self.store.find_contracts(is_deleted=False):
            logged = sum(
                (r.amount for r in self.store.find_prepaid_records(contract_id=contract.contract_id)),
                Decimal("0"),
            )
            divergence = PrepaidDivergence(contract.contract_id, contract.prepaid_balance, logged)
            if abs(divergence.difference) > self.config.tolerance:
                divergences.append(divergence)
        return divergences

    def backfill(self, contract_id: str, created_by: str) -> PrepaidRecord | None:
        """Log a legacy cache surplus as a prepaid record.

        After backfilling, the record log covers the cached balance and can be
        treated as the single source. The cache itself is left unchanged.
        """
        contract = self.store.get_contract(contract_id)
        if contract is None:
            raise EntityNotFoundError(f"Contract {contract_id} not found")

        logged = sum(
            (r.amount for r in self.store.find_prepaid_records(contract_id=contract_id)),
            Decimal("0"),
        )
        surplus = contract.prepaid_balance - logged
        if surplus <= self.config.tolerance:
            return None

        now = self.clock.now()
        record = PrepaidRecord(
            record_id=str(uuid.uuid4()),
            amount=surplus,
            date=now,
            created_by=created_by,
            customer_id=contract.customer_id,
            contract_id=contract_id,
            contract_display_id=contract.custom_id,
            notes="Legacy prepaid balance backfill",
            created_at=now,
            updated_at=now,
        )
        self.store.add_prepaid_record(record)
        logger.info("Backfilled %s prepaid on contract %s", surplus, contract_id)
        return record

    def _manager_name(self, manager_id: str | None) -> str:
        employee = self.store.get_employee(manager_id) if manager_id else None
        return employee.full_name if employee else "Unknown"
