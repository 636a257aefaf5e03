"""Prepaid (excess payment) transaction model."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from debt_ledger.models.enums import PaymentMethod


@dataclass
class PrepaidRecord:
    """Append-only log entry for an excess payment.

    Only ``notes`` may change after creation.
    """

    record_id: str
    amount: Decimal
    date: datetime
    created_by: str
    customer_id: str
    contract_id: str
    contract_display_id: str | None = None
    payment_method: PaymentMethod | None = None
    notes: str | None = None
    related_payment_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
