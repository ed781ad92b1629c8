"""Yield and total withdrawals gated by the eligibility rules."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from invest_ledger.config import LedgerConfig
from invest_ledger.exceptions import NoYieldAvailableError
from invest_ledger.ledger.eligibility import Eligibility, evaluate
from invest_ledger.models import Balance, Movement, MovementType
from invest_ledger.store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class WithdrawalResult:
    """Movement appended by a withdrawal and the balance after it."""

    movement: Movement
    balance: Balance


class WithdrawalService:
    """Apply withdrawals under the account lock.

    The eligibility check and the append run in the same critical section,
    so concurrent requests cannot both spend the same balance.
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

    def eligibility(self, account_id: str) -> Eligibility:
        """Evaluate the account's withdrawal state at the current time."""
        with self.ledger.lock(account_id) as account:
            return evaluate(account, self.clock(), self.config)

    def withdraw_yield(self, account_id: str) -> WithdrawalResult:
        """Withdraw the full accrued yield.

        Raises
        ------
        NoYieldAvailableError
            If the account has no accrued yield.
        """
        with self.ledger.lock(account_id) as account:
            if account.accrued_yield <= 0:
                raise NoYieldAvailableError("No yield available to withdraw")
            movement = self.ledger.append(
                account_id,
                MovementType.YIELD_WITHDRAWAL,
                account.accrued_yield,
                "Saque de rendimento",
            )
            return WithdrawalResult(movement=movement, balance=account.balance)

    def withdraw_total(self, account_id: str) -> WithdrawalResult:
        """Withdraw principal and accrued yield, leaving the account empty.

        Raises
        ------
        NothingToWithdrawError
            If the account holds no balance.
        LockPeriodActiveError
            If the holding period has not elapsed.
        OutsideWithdrawalWindowError
            If today is past the monthly withdrawal window.
        """
        with self.ledger.lock(account_id) as account:
            status = evaluate(account, self.clock(), self.config)
            if not status.can_withdraw_total:
                logger.info(
                    "Total withdrawal refused for account %s: %s",
                    account_id,
                    status.reason,
                    extra={"account_id": account_id},
                )
                raise status.error()
            movement = self.ledger.append(
                account_id,
                MovementType.TOTAL_WITHDRAWAL,
                account.total,
                "Saque total do investimento",
            )
            return WithdrawalResult(movement=movement, balance=account.balance)
