"""Monthly yield accrual on principal."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from invest_ledger.config import LedgerConfig
from invest_ledger.exceptions import InvalidInputError
from invest_ledger.models import Movement, MovementType
from invest_ledger.money import ZERO, quantize
from invest_ledger.store import LedgerStore

logger = logging.getLogger(__name__)

_PERIOD_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_period(period: str) -> str:
    """Return ``period`` if it is a ``YYYY-MM`` month, else raise InvalidInputError."""
    if not _PERIOD_PATTERN.match(period):
        raise InvalidInputError(f"Invalid accrual period: {period!r}")
    return period


def accrue(principal: Decimal, rate: Decimal) -> Decimal:
    """Yield for one period: ``principal * rate`` rounded half-even to centavos."""
    if principal <= 0 or rate <= 0:
        return ZERO
    return quantize(principal * rate)


@dataclass
class AccrualResult:
    """Yield credit for one period.

    ``replayed`` is True when the period had already been credited and the
    recorded movement is returned instead of a new one.
    """

    movement: Movement
    replayed: bool = False


class YieldAccrual:
    """Credit periodic yield to accounts.

    The external scheduler calls ``accrue_account`` (or ``accrue_all``) once
    per period. The period is the correlation key, so a retried run in the
    same month returns the movement it already recorded.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        config: LedgerConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.ledger = ledger
        self.config = config or ledger.config
        self.clock = clock or ledger.clock

    def current_period(self) -> str:
        """Return the local calendar month as ``YYYY-MM``."""
        return self.clock().astimezone(self.config.local_timezone).strftime("%Y-%m")

    def estimate(self, account_id: str) -> Decimal:
        """Preview the yield the next accrual would credit."""
        balance = self.ledger.get_balance(account_id)
        return accrue(balance.principal, self.config.monthly_rate)

    def credit(self, account_id: str, period: str | None = None) -> AccrualResult | None:
        """Credit one period of yield to an account.

        Parameters
        ----------
        account_id : str
            Account to credit.
        period : str | None
            Accrual period as ``YYYY-MM``; defaults to the current local month.

        Returns
        -------
        AccrualResult | None
            The yield credit, flagged ``replayed`` when the period had already
            been credited, or None when there is nothing to credit.
        """
        period = validate_period(period or self.current_period())
        correlation_id = f"accrual:{period}"

        with self.ledger.lock(account_id) as account:
            existing = self.ledger.find_by_correlation(account_id, correlation_id)
            if existing is not None:
                logger.warning(
                    "Accrual %s already credited to account %s",
                    period,
                    account_id,
                    extra={"account_id": account_id, "movement_id": existing.movement_id, "period": period},
                )
                return AccrualResult(movement=existing, replayed=True)

            amount = accrue(account.principal, self.config.monthly_rate)
            if amount == 0:
                logger.debug("No yield to credit for account %s in %s", account_id, period)
                return None

            movement = self.ledger.append(
                account_id,
                MovementType.YIELD_CREDIT,
                amount,
                f"Rendimento {period}",
                correlation_id=correlation_id,
            )
            return AccrualResult(movement=movement)

    def accrue_account(self, account_id: str, period: str | None = None) -> Movement | None:
        """Credit one period of yield and return the movement, new or recorded."""
        result = self.credit(account_id, period)
        return result.movement if result is not None else None

    def accrue_all(self, period: str | None = None) -> list[Movement]:
        """Run accrual for every account and return the period's yield credits."""
        period = validate_period(period or self.current_period())
        credited = []
        for account_id in list(self.ledger.accounts):
            movement = self.accrue_account(account_id, period)
            if movement is not None:
                credited.append(movement)
        logger.info("Accrual %s credited %d accounts", period, len(credited))
        return credited
