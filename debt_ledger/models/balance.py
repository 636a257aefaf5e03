"""Per-manager cash balance model."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class Balance:
    """Running cash total held by a manager."""

    manager_id: str
    amount: Decimal = Decimal("0")
    updated_at: datetime | None = None
