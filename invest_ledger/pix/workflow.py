"""PIX deposit workflow: charge issuance and exactly-once confirmation."""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from invest_ledger.config import PixConfig
from invest_ledger.exceptions import (
    ChargeAmountMismatchError,
    ChargeExpiredError,
    DuplicateCorrelationError,
    InvalidAmountError,
    InvalidInputError,
    LedgerIntegrityError,
)
from invest_ledger.models import Balance, ChargeStatus, Movement, MovementType, PixCharge
from invest_ledger.money import to_money
from invest_ledger.pix.payload import build_pix_payload
from invest_ledger.store import ChargeStore, LedgerStore

logger = logging.getLogger(__name__)

DEPOSIT_DESCRIPTION = "Depósito via PIX"


@dataclass
class ConfirmationResult:
    """Outcome of confirming a charge.

    ``replayed`` is True when the charge had already been confirmed and the
    original deposit is returned instead of a new one.
    """

    movement: Movement
    balance: Balance
    charge: PixCharge
    replayed: bool = False


class PixDepositWorkflow:
    """Issue PIX charges and turn confirmed payments into ledger deposits."""

    def __init__(
        self,
        ledger: LedgerStore,
        charges: ChargeStore | None = None,
        config: PixConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the workflow.

        Parameters
        ----------
        ledger : LedgerStore
            Ledger receiving the deposit movements.
        charges : ChargeStore | None
            Charge store (a new one when omitted).
        config : PixConfig | None
            Merchant data and allowed amounts.
        clock : Callable[[], datetime] | None
            Time source, defaults to the ledger clock.
        """
        self.ledger = ledger
        self.charges = charges or ChargeStore()
        self.config = config or PixConfig()
        self.clock = clock or ledger.clock
        self._allowed = frozenset(self.config.allowed_amounts())

    def allowed_amounts(self) -> list[Decimal]:
        """Return the enumerated deposit amounts."""
        return sorted(self._allowed)

    def generate_charge(self, account_id: str, amount: Decimal | int | str) -> PixCharge:
        """Issue a pending charge for one of the allowed amounts.

        Raises
        ------
        AccountNotFoundError
            If the account does not exist.
        InvalidAmountError
            If ``amount`` is not in the allowed set.
        """
        self.ledger.get_account(account_id)
        value = to_money(amount)
        if value not in self._allowed:
            raise InvalidAmountError(
                f"Amount {value} is not allowed. Use one of the available values."
            )

        charge_id = uuid.uuid4().hex
        txid = f"DEP{charge_id[:22]}".upper()
        now = self.clock()
        charge = PixCharge(
            charge_id=charge_id,
            account_id=account_id,
            amount=value,
            status=ChargeStatus.PENDING,
            created_at=now,
            expires_at=now + timedelta(minutes=self.config.charge_ttl_minutes),
            txid=txid,
            pix_string=build_pix_payload(
                pix_key=self.config.pix_key,
                merchant_name=self.config.merchant_name,
                merchant_city=self.config.merchant_city,
                amount=value,
                txid=txid,
            ),
        )
        self.charges.add(charge)
        logger.info(
            "Issued charge %s of %s for account %s",
            charge_id,
            value,
            account_id,
            extra={"account_id": account_id, "charge_id": charge_id},
        )
        return charge

    def confirm_charge(
        self,
        charge_id: str,
        confirmed_at: datetime | None = None,
        amount: Decimal | int | str | None = None,
    ) -> ConfirmationResult:
        """Credit a paid charge to its account exactly once.

        Parameters
        ----------
        charge_id : str
            Charge reported as paid by the gateway.
        confirmed_at : datetime | None
            Payment time reported by the gateway; used for the expiry check.
        amount : Decimal | int | str | None
            Paid amount reported by the gateway, checked against the charge.

        Returns
        -------
        ConfirmationResult
            The deposit movement and the new balance.

        Raises
        ------
        InvalidInputError
            If ``confirmed_at`` has no timezone.
        ChargeNotFoundError
            If the charge is unknown.
        ChargeExpiredError
            If the charge expired before payment.
        ChargeAmountMismatchError
            If the paid amount differs from the charge amount.
        """
        if confirmed_at is not None and confirmed_at.tzinfo is None:
            raise InvalidInputError("confirmed_at must include a timezone offset")
        charge = self.charges.get(charge_id)
        if amount is not None and to_money(amount) != charge.amount:
            raise ChargeAmountMismatchError(
                f"Charge {charge_id} is for {charge.amount}, gateway reported {to_money(amount)}"
            )

        if charge.status == ChargeStatus.CONFIRMED:
            return self._replay(charge)
        if charge.status == ChargeStatus.EXPIRED:
            raise ChargeExpiredError(f"Charge {charge_id} has expired")

        paid_at = confirmed_at or self.clock()
        with self.ledger.lock(charge.account_id) as account:
            # Status may have changed while waiting for the lock
            if charge.status == ChargeStatus.CONFIRMED:
                return self._replay(charge)
            if charge.is_expired_at(paid_at):
                charge.status = ChargeStatus.EXPIRED
                logger.info(
                    "Charge %s expired at %s",
                    charge_id,
                    charge.expires_at.isoformat(),
                    extra={"account_id": charge.account_id, "charge_id": charge_id},
                )
                raise ChargeExpiredError(f"Charge {charge_id} has expired")

            try:
                movement = self.ledger.append(
                    charge.account_id,
                    MovementType.DEPOSIT,
                    charge.amount,
                    DEPOSIT_DESCRIPTION,
                    correlation_id=charge.charge_id,
                )
            except DuplicateCorrelationError:
                movement = self._recorded_deposit(charge)
                logger.warning(
                    "Charge %s deposit already recorded, marking confirmed",
                    charge_id,
                    extra={"account_id": charge.account_id, "charge_id": charge_id},
                )

            charge.status = ChargeStatus.CONFIRMED
            charge.confirmed_at = paid_at
            charge.movement_id = movement.movement_id
            balance = account.balance

        return ConfirmationResult(movement=movement, balance=balance, charge=charge)

    def _recorded_deposit(self, charge: PixCharge) -> Movement:
        movement = self.ledger.find_by_correlation(charge.account_id, charge.charge_id)
        if movement is None:
            raise LedgerIntegrityError(f"Confirmed charge {charge.charge_id} has no deposit")
        return movement

    def _replay(self, charge: PixCharge) -> ConfirmationResult:
        logger.warning(
            "Charge %s already confirmed, returning original deposit",
            charge.charge_id,
            extra={"account_id": charge.account_id, "charge_id": charge.charge_id},
        )
        return ConfirmationResult(
            movement=self._recorded_deposit(charge),
            balance=self.ledger.get_balance(charge.account_id),
            charge=charge,
            replayed=True,
        )

    def expire_stale_charges(self, now: datetime | None = None) -> int:
        """Mark every pending charge past its TTL as expired.

        Returns
        -------
        int
            Number of charges expired.
        """
        now = now or self.clock()
        expired = 0
        for charge in self.charges.pending():
            if now < charge.expires_at:
                continue
            with self.ledger.lock(charge.account_id):
                if charge.status == ChargeStatus.PENDING:
                    charge.status = ChargeStatus.EXPIRED
                    expired += 1
        if expired:
            logger.info("Expired %d stale charges", expired)
        return expired
