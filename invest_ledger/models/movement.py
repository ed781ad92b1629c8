"""Movement model: one immutable ledger entry."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from invest_ledger.models.enums import MovementType


@dataclass(frozen=True)
class Movement:
    """Balance-affecting ledger entry.

    ``correlation_id`` is the idempotency key (PIX charge id, accrual period)
    and is unique per account.
    """

    movement_id: str
    account_id: str
    movement_type: MovementType
    amount: Decimal
    created_at: datetime
    description: str
    correlation_id: str | None = None
    sequence: int = 0  # Store-wide append order, breaks created_at ties


@dataclass
class MovementPage:
    """A page of movements, newest first."""

    items: list[Movement]
    page: int
    page_size: int
    total: int

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total
