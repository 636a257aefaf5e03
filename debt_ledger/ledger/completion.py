"""Active/completed transitions of a contract."""

import logging
from decimal import Decimal

from debt_ledger.clock import Clock
from debt_ledger.config import LedgerConfig
from debt_ledger.exceptions import EntityNotFoundError
from debt_ledger.ledger.aggregator import LedgerView, compute
from debt_ledger.models import Contract, ContractStatus
from debt_ledger.store import LedgerRepository

logger = logging.getLogger(__name__)


def final_remaining_debt(view: LedgerView, contract: Contract) -> Decimal:
    """Remaining debt net of the contract's prepaid balance."""
    return view.remaining_debt - contract.prepaid_balance


def target_status(final_remaining: Decimal, tolerance: Decimal) -> ContractStatus:
    if final_remaining <= tolerance:
        return ContractStatus.COMPLETED
    return ContractStatus.ACTIVE


class CompletionStateMachine:
    """Move contracts between ACTIVE and COMPLETED from their reconciled ledger view.

    Both transitions are idempotent; calling ``evaluate`` on a contract
    already in its target state writes nothing.
    """

    def __init__(
        self,
        store: LedgerRepository,
        clock: Clock,
        config: LedgerConfig | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.config = config or LedgerConfig()

    def evaluate(self, contract_id: str) -> ContractStatus:
        """Recompute the contract and apply any status transition.

        Returns
        -------
        ContractStatus
            The contract's status after evaluation.
        """
        contract = self.store.get_contract(contract_id)
        if contract is None:
            raise EntityNotFoundError(f"Contract {contract_id} not found")

        view = compute(
            contract,
            self.store.find_payments(contract_id=contract_id),
            self.clock.today(),
        )
        remaining = final_remaining_debt(view, contract)
        target = target_status(remaining, self.config.tolerance)

        if contract.status == target:
            return target

        previous = contract.status
        contract.status = target
        contract.updated_at = self.clock.now()
        self.store.save_contract(contract)
        logger.info(
            "Contract %s %s -> %s (final remaining %s)",
            contract_id,
            previous.value,
            target.value,
            remaining,
        )
        return target
