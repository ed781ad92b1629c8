"""Balance projection from the movement history.

``replay`` is the reference definition of an account balance; the cached
balance on ``Account`` is maintained by applying one movement at a time
with ``apply`` inside the ledger append.
"""

from collections.abc import Callable, Iterable
from datetime import datetime

from invest_ledger.exceptions import InsufficientYieldError, LedgerIntegrityError
from invest_ledger.models.account import Balance
from invest_ledger.models.enums import MovementType
from invest_ledger.models.movement import Movement
from invest_ledger.money import ZERO


def _apply_deposit(balance: Balance, movement: Movement) -> Balance:
    return Balance(
        principal=balance.principal + movement.amount,
        accrued_yield=balance.accrued_yield,
    )


def _apply_yield_credit(balance: Balance, movement: Movement) -> Balance:
    return Balance(
        principal=balance.principal,
        accrued_yield=balance.accrued_yield + movement.amount,
    )


def _apply_yield_withdrawal(balance: Balance, movement: Movement) -> Balance:
    remaining = balance.accrued_yield - movement.amount
    if remaining < 0:
        raise InsufficientYieldError(
            f"Yield withdrawal of {movement.amount} exceeds accrued yield {balance.accrued_yield}"
        )
    return Balance(principal=balance.principal, accrued_yield=remaining)


def _apply_total_withdrawal(balance: Balance, movement: Movement) -> Balance:
    if movement.amount != balance.total:
        raise LedgerIntegrityError(
            f"Total withdrawal of {movement.amount} does not match balance {balance.total}"
        )
    return Balance(principal=ZERO, accrued_yield=ZERO)


HANDLERS: dict[MovementType, Callable[[Balance, Movement], Balance]] = {
    MovementType.DEPOSIT: _apply_deposit,
    MovementType.YIELD_CREDIT: _apply_yield_credit,
    MovementType.YIELD_WITHDRAWAL: _apply_yield_withdrawal,
    MovementType.TOTAL_WITHDRAWAL: _apply_total_withdrawal,
}


def apply(balance: Balance, movement: Movement) -> Balance:
    """Return the balance after ``movement``.

    Raises
    ------
    InsufficientYieldError
        If a yield withdrawal would leave accrued yield negative.
    LedgerIntegrityError
        If a total withdrawal does not match the full balance.
    """
    return HANDLERS[movement.movement_type](balance, movement)


def replay(movements: Iterable[Movement]) -> Balance:
    """Rebuild a balance from scratch in ``(created_at, sequence)`` order."""
    balance = Balance()
    for movement in sorted(movements, key=lambda m: (m.created_at, m.sequence)):
        balance = apply(balance, movement)
    return balance


def next_anchor(
    anchor: datetime | None,
    balance_before: Balance,
    movement: Movement,
) -> datetime | None:
    """Return the lock-window anchor after ``movement``.

    A deposit into an empty account (or one that never had a deposit)
    starts a new lock window; every other movement leaves it unchanged.
    """
    if movement.movement_type != MovementType.DEPOSIT:
        return anchor
    if anchor is None or balance_before.total == 0:
        return movement.created_at
    return anchor


def replay_anchor(movements: Iterable[Movement]) -> datetime | None:
    """Rebuild the lock-window anchor from the movement history."""
    balance = Balance()
    anchor = None
    for movement in sorted(movements, key=lambda m: (m.created_at, m.sequence)):
        anchor = next_anchor(anchor, balance, movement)
        balance = apply(balance, movement)
    return anchor
