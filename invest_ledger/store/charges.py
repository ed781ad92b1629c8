"""PIX charge store."""

from dataclasses import dataclass, field

from invest_ledger.exceptions import ChargeNotFoundError
from invest_ledger.models import ChargeStatus, PixCharge


@dataclass
class ChargeStore:
    """In-memory store for PIX charges.

    Status transitions are made by the deposit workflow while it holds the
    owning account's ledger lock.
    """

    charges: dict[str, PixCharge] = field(default_factory=dict)

    _account_charges: dict[str, list[str]] = field(default_factory=dict)

    def add(self, charge: PixCharge) -> None:
        """Add a charge to the store."""
        self.charges[charge.charge_id] = charge
        self._account_charges.setdefault(charge.account_id, []).append(charge.charge_id)

    def get(self, charge_id: str) -> PixCharge:
        """Return a charge or raise ChargeNotFoundError."""
        charge = self.charges.get(charge_id)
        if charge is None:
            raise ChargeNotFoundError(f"Charge {charge_id} not found")
        return charge

    def get_account_charges(self, account_id: str) -> list[PixCharge]:
        """Get all charges issued to an account."""
        return [self.charges[cid] for cid in self._account_charges.get(account_id, [])]

    def pending(self) -> list[PixCharge]:
        """Get every charge still awaiting payment."""
        return [c for c in self.charges.values() if c.status == ChargeStatus.PENDING]

    def summary(self) -> dict[str, int]:
        """Return charge counts by status."""
        counts = {status.value.lower(): 0 for status in ChargeStatus}
        for charge in self.charges.values():
            counts[charge.status.value.lower()] += 1
        return counts
