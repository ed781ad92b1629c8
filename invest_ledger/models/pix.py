"""PIX charge model."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from invest_ledger.models.enums import ChargeStatus


@dataclass
class PixCharge:
    """Deposit charge issued to an account.

    Brazilian instant payments are requested through a BR Code (EMV QR)
    string; ``pix_string`` is both the QR content and the "copia e cola"
    text shown to the user.
    """

    charge_id: str
    account_id: str
    amount: Decimal
    status: ChargeStatus
    created_at: datetime
    expires_at: datetime
    txid: str
    pix_string: str
    confirmed_at: datetime | None = None
    movement_id: str | None = None

    def is_expired_at(self, now: datetime) -> bool:
        """Return True when the charge can no longer be confirmed at ``now``."""
        if self.status == ChargeStatus.EXPIRED:
            return True
        return self.status == ChargeStatus.PENDING and now >= self.expires_at
