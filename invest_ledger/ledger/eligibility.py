"""Withdrawal eligibility rules.

Two independent gates:

- Yield withdrawal is open whenever there is accrued yield.
- Total withdrawal needs ``lock_days`` whole days since the lock anchor
  (the first deposit into an empty account) AND a local day of month no
  later than ``withdrawal_window_last_day``.

The resulting state is derived from the stored anchor and the request
time; it is never persisted.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from invest_ledger.config import LedgerConfig
from invest_ledger.exceptions import (
    EligibilityError,
    LockPeriodActiveError,
    NothingToWithdrawError,
    OutsideWithdrawalWindowError,
)
from invest_ledger.models import Account, WithdrawalState

REASON_ERRORS: dict[str, type[EligibilityError]] = {
    NothingToWithdrawError.reason: NothingToWithdrawError,
    LockPeriodActiveError.reason: LockPeriodActiveError,
    OutsideWithdrawalWindowError.reason: OutsideWithdrawalWindowError,
}


@dataclass(frozen=True)
class Eligibility:
    """Withdrawal status of an account at one instant."""

    state: WithdrawalState
    can_withdraw_yield: bool
    can_withdraw_total: bool
    reason: str | None = None
    message: str | None = None
    days_since_anchor: int | None = None
    retry_after_days: int | None = None
    next_window_date: date | None = None

    def error(self) -> EligibilityError:
        """Build the exception describing why total withdrawal is refused."""
        error_cls = REASON_ERRORS[self.reason]
        return error_cls(
            self.message or self.reason,
            retry_after_days=self.retry_after_days,
            next_window_date=self.next_window_date,
        )


def days_since(anchor: datetime, now: datetime) -> int:
    """Whole days elapsed between ``anchor`` and ``now`` (floor)."""
    return (now - anchor).days


def next_window_on_or_after(day: date, last_day: int) -> date:
    """First date on or after ``day`` whose day of month is <= ``last_day``."""
    if day.day <= last_day:
        return day
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def evaluate(account: Account, now: datetime, config: LedgerConfig) -> Eligibility:
    """Derive the withdrawal state of ``account`` at ``now``.

    The refusal reason follows the check order: no balance, lock period,
    monthly window.
    """
    tz = config.local_timezone
    today = now.astimezone(tz).date()
    last_day = config.withdrawal_window_last_day
    can_yield = account.accrued_yield > 0
    anchor = account.first_qualifying_deposit_at

    if anchor is None:
        return Eligibility(
            state=WithdrawalState.LOCKED,
            can_withdraw_yield=can_yield,
            can_withdraw_total=False,
            reason=NothingToWithdrawError.reason,
            message="No deposit found for this account",
        )

    elapsed = days_since(anchor, now)
    in_window = today.day <= last_day

    if elapsed < config.lock_days:
        state = WithdrawalState.LOCKED
        unlock_day = (anchor + timedelta(days=config.lock_days)).astimezone(tz).date()
        next_window = next_window_on_or_after(unlock_day, last_day)
        remaining = config.lock_days - elapsed
        reason = LockPeriodActiveError.reason
        message = f"Total withdrawal available after {config.lock_days} days. {remaining} days remaining."
        retry_after = remaining
    elif not in_window:
        state = WithdrawalState.YIELD_ONLY
        next_window = next_window_on_or_after(today, last_day)
        reason = OutsideWithdrawalWindowError.reason
        message = (
            f"Total withdrawal is only available up to day {last_day} of each month. "
            f"Next window opens on {next_window.isoformat()}."
        )
        retry_after = (next_window - today).days
    else:
        state = WithdrawalState.FULLY_ELIGIBLE
        next_window = today
        reason = None
        message = None
        retry_after = 0

    if account.total <= 0:
        reason = NothingToWithdrawError.reason
        message = "Account balance is empty"

    return Eligibility(
        state=state,
        can_withdraw_yield=can_yield,
        can_withdraw_total=reason is None,
        reason=reason,
        message=message,
        days_since_anchor=elapsed,
        retry_after_days=retry_after,
        next_window_date=next_window,
    )
