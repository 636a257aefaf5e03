"""Nightly materialisation of overdue obligations into debtor records."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from debt_ledger.clock import Clock
from debt_ledger.exceptions import DuplicateDebtorError, EntityNotFoundError, ValidationError
from debt_ledger.ledger.aggregator import days_between
from debt_ledger.models import Contract, ContractStatus, Debtor, Payment, PaymentType
from debt_ledger.store import DebtorRepository, LedgerRepository

logger = logging.getLogger(__name__)


@dataclass
class ContractOutcome:
    """Result of materialising one contract."""

    contract_id: str
    overdue_payments: int = 0
    created: int = 0
    updated: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class MaterializerReport:
    """Aggregate result of a materialiser run."""

    run_date: date
    created: int = 0
    updated: int = 0
    total_overdue_payments: int = 0
    failed: int = 0
    outcomes: list[ContractOutcome] = field(default_factory=list)

    def add(self, outcome: ContractOutcome) -> None:
        self.outcomes.append(outcome)
        self.total_overdue_payments += outcome.overdue_payments
        self.created += outcome.created
        self.updated += outcome.updated
        if not outcome.ok:
            self.failed += 1

    @property
    def failures(self) -> list[ContractOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def as_dict(self) -> dict[str, int]:
        return {
            "created": self.created,
            "updated": self.updated,
            "totalOverduePayments": self.total_overdue_payments,
        }


@dataclass
class DeclarationReport:
    declared: int = 0
    created: int = 0
    skipped: list[str] = field(default_factory=list)


def is_materializable(contract: Contract) -> bool:
    return (
        contract.is_active
        and not contract.is_deleted
        and not contract.is_declare
        and contract.status == ContractStatus.ACTIVE
    )


def overdue_obligations(payments: list[Payment], today: date) -> list[Payment]:
    """Unpaid monthly payments dated before ``today``."""
    return [
        p
        for p in payments
        if p.payment_type == PaymentType.MONTHLY and not p.is_paid and p.date < today
    ]


class DebtorMaterializer:
    """Create or refresh one debtor per overdue obligation.

    Keyed by ``(contract_id, due_date)``, so re-running on the same day leaves
    the records unchanged. Contracts are processed one at a time and a
    failure on one contract is recorded in the report without stopping the run.
    """

    def __init__(
        self,
        store: LedgerRepository,
        clock: Clock,
        debtor_store: DebtorRepository | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.debtors = debtor_store or store

    def run(self) -> MaterializerReport:
        """Materialise every eligible contract.

        Returns
        -------
        MaterializerReport
            Counters plus one outcome per contract that had overdue obligations
            or failed.
        """
        today = self.clock.today()
        report = MaterializerReport(run_date=today)
        contracts = [c for c in self.store.find_contracts() if is_materializable(c)]
        logger.info("Materialising debtors for %d active contract(s) as of %s", len(contracts), today)

        for contract in contracts:
            try:
                outcome = self._process_contract(contract, today)
            except Exception as e:
                logger.exception("Failed to materialise debtors for contract %s", contract.contract_id)
                outcome = ContractOutcome(contract_id=contract.contract_id, error=str(e))
            if outcome.overdue_payments or not outcome.ok:
                report.add(outcome)

        logger.info(
            "Debtor materialisation complete",
            extra={
                "extra": {
                    **report.as_dict(),
                    "failed": report.failed,
                    "runDate": today.isoformat(),
                }
            },
        )
        return report

    def _process_contract(self, contract: Contract, today: date) -> ContractOutcome:
        outcome = ContractOutcome(contract_id=contract.contract_id)
        payments = self.store.find_payments(contract_id=contract.contract_id)
        overdue = overdue_obligations(payments, today)
        outcome.overdue_payments = len(overdue)

        for payment in overdue:
            overdue_days = max(0, days_between(payment.date, today))
            if self._upsert(contract, payment, overdue_days):
                outcome.created += 1
                logger.debug(
                    "Created debtor for contract %s due %s (%d days)",
                    contract.contract_id,
                    payment.date,
                    overdue_days,
                )
            else:
                outcome.updated += 1
        return outcome

    def _upsert(self, contract: Contract, payment: Payment, overdue_days: int) -> bool:
        """Write the debtor for one obligation; True when a record was created."""
        now = self.clock.now()
        existing = self.debtors.find_debtor(contract.contract_id, payment.date)
        if existing is None:
            debtor = Debtor(
                debtor_id=str(uuid.uuid4()),
                contract_id=contract.contract_id,
                debt_amount=payment.amount,
                due_date=payment.date,
                overdue_days=overdue_days,
                created_by=contract.created_by,
                created_at=now,
                updated_at=now,
            )
            try:
                self.debtors.add_debtor(debtor)
                return True
            except DuplicateDebtorError:
                # Another run inserted the same key after our lookup
                existing = self.debtors.find_debtor(contract.contract_id, payment.date)
                if existing is None:
                    raise
                logger.warning(
                    "Concurrent debtor insert for contract %s due %s",
                    contract.contract_id,
                    payment.date,
                )

        existing.overdue_days = overdue_days
        existing.updated_at = now
        self.debtors.save_debtor(existing)
        return False

    def declare_debtors(self, contract_ids: list[str], created_by: str) -> DeclarationReport:
        """Mark contracts as manually declared and ensure each has a debtor.

        A debtor is created only for contracts with no debtor record at all,
        from the contract's monthly payment and next payment date.

        Raises
        ------
        ValidationError
            If no contract ids are given.
        EntityNotFoundError
            If any contract is missing; nothing is changed in that case.
        """
        if not contract_ids:
            raise ValidationError("At least one contract id is required")

        contracts: list[Contract] = []
        for contract_id in dict.fromkeys(contract_ids):
            contract = self.store.get_contract(contract_id)
            if contract is None:
                raise EntityNotFoundError(f"Contract {contract_id} not found")
            contracts.append(contract)

        today = self.clock.today()
        now = self.clock.now()
        report = DeclarationReport()
        for contract in contracts:
            contract.is_declare = True
            contract.updated_at = now
            self.store.save_contract(contract)
            report.declared += 1

            if self.debtors.find_debtors(contract_id=contract.contract_id):
                continue
            if contract.next_payment_date is None:
                logger.warning("Contract %s has no next payment date; no debtor declared", contract.contract_id)
                report.skipped.append(contract.contract_id)
                continue

            self.debtors.add_debtor(
                Debtor(
                    debtor_id=str(uuid.uuid4()),
                    contract_id=contract.contract_id,
                    debt_amount=contract.monthly_payment,
                    due_date=contract.next_payment_date,
                    overdue_days=max(0, days_between(contract.next_payment_date, today)),
                    created_by=created_by,
                    created_at=now,
                    updated_at=now,
                )
            )
            report.created += 1

        logger.info("Declared %d contract(s), created %d debtor(s)", report.declared, report.created)
        return report

    def summary(self) -> dict[str, Any]:
        """Counts of stored debtors by contract."""
        counts: dict[str, int] = {}
        for debtor in self.debtors.find_debtors():
            counts[debtor.contract_id] = counts.get(debtor.contract_id, 0) + 1
        return {"debtors": sum(counts.values()), "contracts": len(counts)}
