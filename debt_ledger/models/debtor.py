"""Materialised overdue-obligation model."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal


@dataclass
class Debtor:
    """Overdue obligation keyed by (contract_id, due_date)."""

    debtor_id: str
    contract_id: str
    debt_amount: Decimal
    due_date: date
    overdue_days: int  # Recomputed on every run, never accumulated
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
