"""Ledger service: the operations exposed to the API layer."""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from invest_ledger.clock import utc_now
from invest_ledger.config import AppConfig
from invest_ledger.exceptions import SinkError
from invest_ledger.ledger.accrual import YieldAccrual, validate_period
from invest_ledger.ledger.eligibility import Eligibility
from invest_ledger.ledger.withdrawals import WithdrawalResult, WithdrawalService
from invest_ledger.models import (
    Account,
    Balance,
    Event,
    Movement,
    MovementPage,
    PixCharge,
    SimulationResult,
)
from invest_ledger.pix import ConfirmationResult, PixDepositWorkflow
from invest_ledger.simulation import simulate
from invest_ledger.sinks.serialization import to_dict
from invest_ledger.store import ChargeStore, LedgerStore

logger = logging.getLogger(__name__)

EVENT_SOURCE = "invest-ledger"


class EventPublisher(Protocol):
    """Anything that accepts ledger events (Kafka, files, test doubles)."""

    def publish(self, event: Event) -> None:
        ...


def movement_event(movement: Movement) -> Event:
    """Wrap a movement in the streaming envelope."""
    return Event(
        event_id=uuid.uuid4().hex,
        event_type=f"movement.{movement.movement_type.value.lower()}",
        event_time=movement.created_at,
        source=EVENT_SOURCE,
        subject=movement.movement_id,
        data=to_dict(movement),
    )


class LedgerService:
    """Compose the ledger components behind one interface.

    Events are published after the ledger lock is released; a publisher
    failure is logged and does not undo the committed movement.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        ledger: LedgerStore | None = None,
        charges: ChargeStore | None = None,
        publishers: list[EventPublisher] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config or AppConfig()
        self.clock = clock
        self.ledger = ledger or LedgerStore(config=self.config.ledger, clock=clock)
        self.pix = PixDepositWorkflow(self.ledger, charges, self.config.pix, clock)
        self.accrual = YieldAccrual(self.ledger, self.config.ledger, clock)
        self.withdrawals = WithdrawalService(self.ledger, self.config.ledger, clock)
        self.publishers = list(publishers or [])

    @classmethod
    def from_config(cls, config: AppConfig) -> "LedgerService":
        """Build a service that streams movements to Kafka when configured."""
        publishers: list[EventPublisher] = []
        if config.kafka is not None:
            from invest_ledger.sinks import KafkaSink

            publishers.append(KafkaSink(config.kafka))
        return cls(config=config, publishers=publishers)

    def close(self) -> None:
        """Flush and close publishers that hold resources."""
        for publisher in self.publishers:
            close = getattr(publisher, "close", None)
            if close is not None:
                close()

    def _publish(self, movement: Movement) -> None:
        event = movement_event(movement)
        for publisher in self.publishers:
            try:
                publisher.publish(event)
            except SinkError:
                logger.exception(
                    "Failed to publish %s for movement %s",
                    event.event_type,
                    movement.movement_id,
                    extra={"account_id": movement.account_id, "movement_id": movement.movement_id},
                )

    # Accounts

    def open_account(self, owner_id: str, account_id: str | None = None) -> Account:
        """Open an empty account once the owner's identity is set up."""
        account = self.ledger.open_account(owner_id, account_id=account_id)
        return self.ledger.snapshot(account.account_id)

    def get_account(self, account_id: str) -> Account:
        """Return a consistent copy of the account."""
        return self.ledger.snapshot(account_id)

    def get_balance(self, account_id: str) -> Balance:
        return self.ledger.get_balance(account_id)

    def list_movements(
        self, account_id: str, page: int = 1, page_size: int | None = None
    ) -> MovementPage:
        return self.ledger.list_movements(account_id, page, page_size)

    # Deposits

    def allowed_amounts(self) -> list[Decimal]:
        return self.pix.allowed_amounts()

    def generate_charge(self, account_id: str, amount: Decimal | int | str) -> PixCharge:
        return self.pix.generate_charge(account_id, amount)

    def confirm_charge(
        self,
        charge_id: str,
        confirmed_at: datetime | None = None,
        amount: Decimal | int | str | None = None,
    ) -> ConfirmationResult:
        result = self.pix.confirm_charge(charge_id, confirmed_at=confirmed_at, amount=amount)
        if not result.replayed:
            self._publish(result.movement)
        return result

    def expire_stale_charges(self) -> int:
        return self.pix.expire_stale_charges()

    # Yield

    def current_yield(self, account_id: str) -> Decimal:
        """Yield the next accrual would credit at the current principal."""
        return self.accrual.estimate(account_id)

    def accrue(self, account_id: str, period: str | None = None) -> Movement | None:
        """Scheduler hook: credit one period of yield to one account.

        A rerun for an already credited period returns the recorded movement
        without publishing it again.
        """
        result = self.accrual.credit(account_id, period)
        if result is None:
            return None
        if not result.replayed:
            self._publish(result.movement)
        return result.movement

    def accrue_all(self, period: str | None = None) -> list[Movement]:
        """Scheduler hook: credit one period of yield to every account."""
        period = validate_period(period or self.accrual.current_period())
        credited = []
        for account_id in list(self.ledger.accounts):
            movement = self.accrue(account_id, period)
            if movement is not None:
                credited.append(movement)
        logger.info("Accrual %s credited %d accounts", period, len(credited))
        return credited

    # Withdrawals

    def eligibility(self, account_id: str) -> Eligibility:
        return self.withdrawals.eligibility(account_id)

    def withdraw_yield(self, account_id: str) -> WithdrawalResult:
        result = self.withdrawals.withdraw_yield(account_id)
        self._publish(result.movement)
        return result

    def withdraw_total(self, account_id: str) -> WithdrawalResult:
        result = self.withdrawals.withdraw_total(account_id)
        self._publish(result.movement)
        return result

    # Simulation

    def simulate(
        self,
        initial_deposit: Decimal | int | float | str,
        months: int,
        monthly_extra_deposit: Decimal | int | float | str = 0,
    ) -> SimulationResult:
        return simulate(
            initial_deposit,
            months,
            monthly_extra_deposit,
            rate=self.config.ledger.monthly_rate,
            max_months=self.config.ledger.max_simulation_months,
        )
