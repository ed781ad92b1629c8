"""Append-only movement ledger with per-account serialization."""

import itertools
import logging
import threading
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal

from invest_ledger.clock import utc_now
from invest_ledger.config import LedgerConfig
from invest_ledger.exceptions import (
    AccountNotFoundError,
    ConcurrencyConflictError,
    DuplicateCorrelationError,
    InvalidAmountError,
    InvalidEntityStateError,
    InvalidInputError,
    InvalidPaginationError,
    LedgerIntegrityError,
)
from invest_ledger.ledger import projector
from invest_ledger.models import Account, Balance, Movement, MovementPage, MovementType
from invest_ledger.money import quantize

logger = logging.getLogger(__name__)


@dataclass
class LedgerStore:
    """In-memory movement ledger, the source of truth for balances.

    Every balance-changing operation runs inside ``lock(account_id)``. The
    lock is re-entrant, so a caller can read the balance, check a rule and
    append within one critical section.
    """

    config: LedgerConfig = field(default_factory=LedgerConfig)
    clock: Callable[[], datetime] = utc_now

    accounts: dict[str, Account] = field(default_factory=dict)
    movements: list[Movement] = field(default_factory=list)

    # Relationship indexes
    _owner_accounts: dict[str, str] = field(default_factory=dict)
    _account_movements: dict[str, list[int]] = field(default_factory=dict)
    _correlations: dict[tuple[str, str], int] = field(default_factory=dict)

    _locks: dict[str, threading.RLock] = field(default_factory=dict)
    _registry_lock: threading.Lock = field(default_factory=threading.Lock)
    _sequence: Iterator[int] = field(default_factory=lambda: itertools.count(1))

    def open_account(
        self,
        owner_id: str,
        account_id: str | None = None,
        created_at: datetime | None = None,
    ) -> Account:
        """Open an empty account for an identified owner.

        Raises
        ------
        InvalidEntityStateError
            If the owner or the account id already exists.
        """
        with self._registry_lock:
            if owner_id in self._owner_accounts:
                raise InvalidEntityStateError(f"Owner {owner_id} already has an account")
            account_id = account_id or uuid.uuid4().hex
            if account_id in self.accounts:
                raise InvalidEntityStateError(f"Account {account_id} already exists")

            account = Account(
                account_id=account_id,
                owner_id=owner_id,
                created_at=created_at or self.clock(),
            )
            self.accounts[account_id] = account
            self._owner_accounts[owner_id] = account_id
            self._account_movements[account_id] = []
            self._locks[account_id] = threading.RLock()

        logger.info(
            "Opened account %s for owner %s", account_id, owner_id, extra={"account_id": account_id}
        )
        return account

    def get_account(self, account_id: str) -> Account:
        """Return the live account record."""
        account = self.accounts.get(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    def account_for_owner(self, owner_id: str) -> Account:
        """Return the account opened for ``owner_id``."""
        account_id = self._owner_accounts.get(owner_id)
        if account_id is None:
            raise AccountNotFoundError(f"No account for owner {owner_id}")
        return self.accounts[account_id]

    def snapshot(self, account_id: str) -> Account:
        """Return a consistent copy of the account, read under its lock."""
        with self.lock(account_id) as account:
            return replace(account)

    def get_balance(self, account_id: str) -> Balance:
        """Return the cached balance, read under the account lock."""
        with self.lock(account_id) as account:
            return account.balance

    @contextmanager
    def lock(self, account_id: str) -> Iterator[Account]:
        """Serialize ledger mutation for one account.

        Lock contention is retried ``config.lock_retries`` times before a
        ``ConcurrencyConflictError`` is raised.
        """
        account = self.get_account(account_id)
        account_lock = self._locks[account_id]
        self._acquire(account_id, account_lock)
        try:
            yield account
        finally:
            account_lock.release()

    def _acquire(self, account_id: str, account_lock: threading.RLock) -> None:
        attempts = self.config.lock_retries + 1
        for attempt in range(1, attempts + 1):
            if account_lock.acquire(timeout=self.config.lock_timeout_seconds):
                return
            logger.warning(
                "Lock contention on account %s (attempt %d/%d)",
                account_id,
                attempt,
                attempts,
                extra={"account_id": account_id},
            )
        raise ConcurrencyConflictError(f"Account {account_id} is busy, try again")

    def append(
        self,
        account_id: str,
        movement_type: MovementType,
        amount: Decimal,
        description: str,
        correlation_id: str | None = None,
        created_at: datetime | None = None,
    ) -> Movement:
        """Append one movement and update the cached balance atomically.

        Parameters
        ----------
        account_id : str
            Target account.
        movement_type : MovementType
            Kind of balance change.
        amount : Decimal
            Positive amount; rounded to centavos.
        description : str
            Statement text.
        correlation_id : str | None
            Idempotency key, unique per account.
        created_at : datetime | None
            Movement timestamp, defaults to the store clock.

        Returns
        -------
        Movement
            The appended movement.

        Raises
        ------
        InvalidAmountError
            If ``amount`` is not positive.
        DuplicateCorrelationError
            If ``correlation_id`` was already recorded for the account.
        InsufficientYieldError
            If a yield withdrawal exceeds accrued yield; nothing is appended.
        """
        amount = quantize(amount)
        if amount <= 0:
            raise InvalidAmountError(f"Movement amount must be positive, got {amount}")

        with self.lock(account_id) as account:
            if correlation_id is not None:
                existing = self._correlations.get((account_id, correlation_id))
                if existing is not None:
                    raise DuplicateCorrelationError(
                        f"Correlation {correlation_id} already recorded for account {account_id}",
                        movement_id=self.movements[existing].movement_id,
                    )

            timestamp = created_at or self.clock()
            latest = self._latest(account_id)
            if latest is not None and timestamp < latest.created_at:
                raise InvalidInputError(
                    f"Movement timestamp {timestamp.isoformat()} precedes "
                    f"latest movement at {latest.created_at.isoformat()}"
                )

            movement = Movement(
                movement_id=uuid.uuid4().hex,
                account_id=account_id,
                movement_type=movement_type,
                amount=amount,
                created_at=timestamp,
                description=description,
                correlation_id=correlation_id,
                sequence=next(self._sequence),
            )

            before = account.balance
            after = projector.apply(before, movement)
            anchor = projector.next_anchor(account.first_qualifying_deposit_at, before, movement)

            with self._registry_lock:
                idx = len(self.movements)
                self.movements.append(movement)
            self._account_movements[account_id].append(idx)
            if correlation_id is not None:
                self._correlations[(account_id, correlation_id)] = idx

            account.principal = after.principal
            account.accrued_yield = after.accrued_yield
            account.first_qualifying_deposit_at = anchor
            account.updated_at = timestamp

        logger.info(
            "Appended %s of %s to account %s",
            movement_type.value,
            amount,
            account_id,
            extra={
                "account_id": account_id,
                "movement_id": movement.movement_id,
                "correlation_id": correlation_id,
            },
        )
        return movement

    def _latest(self, account_id: str) -> Movement | None:
        indices = self._account_movements.get(account_id, [])
        return self.movements[indices[-1]] if indices else None

    def find_by_correlation(self, account_id: str, correlation_id: str) -> Movement | None:
        """Return the movement recorded under ``correlation_id``, if any."""
        idx = self._correlations.get((account_id, correlation_id))
        return self.movements[idx] if idx is not None else None

    def get_account_movements(self, account_id: str) -> list[Movement]:
        """Get all movements for an account in append order."""
        self.get_account(account_id)
        indices = self._account_movements.get(account_id, [])
        return [self.movements[i] for i in indices]

    def list_movements(
        self,
        account_id: str,
        page: int = 1,
        page_size: int | None = None,
    ) -> MovementPage:
        """Return one page of an account's movements, newest first."""
        if page_size is None:
            page_size = self.config.default_page_size
        if page < 1:
            raise InvalidPaginationError("page must be >= 1")
        if not 1 <= page_size <= self.config.max_page_size:
            raise InvalidPaginationError(
                f"page_size must be between 1 and {self.config.max_page_size}"
            )

        newest_first = list(reversed(self.get_account_movements(account_id)))
        start = (page - 1) * page_size
        return MovementPage(
            items=newest_first[start : start + page_size],
            page=page,
            page_size=page_size,
            total=len(newest_first),
        )

    def replay_balance(self, account_id: str) -> Balance:
        """Rebuild the balance from the movement history."""
        return projector.replay(self.get_account_movements(account_id))

    def verify(self, account_id: str) -> Balance:
        """Check the cached balance and anchor against a full replay.

        Raises
        ------
        LedgerIntegrityError
            If the cache diverges from the movement history.
        """
        with self.lock(account_id) as account:
            movements = self.get_account_movements(account_id)
            replayed = projector.replay(movements)
            anchor = projector.replay_anchor(movements)
            if replayed != account.balance:
                raise LedgerIntegrityError(
                    f"Account {account_id} cached balance {account.balance} "
                    f"differs from replay {replayed}"
                )
            if anchor != account.first_qualifying_deposit_at:
                raise LedgerIntegrityError(
                    f"Account {account_id} lock anchor differs from replay"
                )
            return replayed

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "accounts": len(self.accounts),
            "movements": len(self.movements),
        }
