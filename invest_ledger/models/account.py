"""Account and balance models."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from invest_ledger.money import ZERO


@dataclass(frozen=True)
class Balance:
    """Principal and accrued yield of an account at a point in time."""

    principal: Decimal = ZERO
    accrued_yield: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.principal + self.accrued_yield


@dataclass
class Account:
    """Investment account.

    ``principal`` and ``accrued_yield`` are a cache of the movement history
    and change only through ``LedgerStore.append``.
    ``first_qualifying_deposit_at`` anchors the full-withdrawal lock window.
    """

    account_id: str
    owner_id: str
    created_at: datetime
    principal: Decimal = ZERO
    accrued_yield: Decimal = ZERO
    first_qualifying_deposit_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def balance(self) -> Balance:
        return Balance(principal=self.principal, accrued_yield=self.accrued_yield)

    @property
    def total(self) -> Decimal:
        return self.principal + self.accrued_yield
