"""Pytest configuration and fixtures."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from invest_ledger.clock import ManualClock
from invest_ledger.config import AppConfig, LedgerConfig
from invest_ledger.models import MovementType
from invest_ledger.service import LedgerService
from invest_ledger.store import LedgerStore

# 09:00 on 2024-03-01 in Brasilia (UTC-3)
START = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class RecordingPublisher:
    """Event publisher that keeps every event in memory."""

    def __init__(self) -> None:
        self.events = []

    def publish(self, event) -> None:
        self.events.append(event)


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def clock() -> ManualClock:
    """Clock frozen at START until a test moves it."""
    return ManualClock(START)


@pytest.fixture
def ledger_config() -> LedgerConfig:
    """Ledger rules with short lock timeouts."""
    return LedgerConfig(lock_timeout_seconds=0.5, lock_retries=1)


@pytest.fixture
def app_config(ledger_config: LedgerConfig) -> AppConfig:
    return AppConfig(ledger=ledger_config)


@pytest.fixture
def store(ledger_config: LedgerConfig, clock: ManualClock) -> LedgerStore:
    return LedgerStore(config=ledger_config, clock=clock)


@pytest.fixture
def account_id(store: LedgerStore) -> str:
    """An empty account opened in ``store``."""
    return store.open_account("owner-001", account_id="acct-001").account_id


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def service(app_config: AppConfig, clock: ManualClock, publisher: RecordingPublisher) -> LedgerService:
    return LedgerService(config=app_config, publishers=[publisher], clock=clock)


@pytest.fixture
def funded_account(service: LedgerService) -> str:
    """Account holding a confirmed 1000.00 deposit made at START."""
    account = service.open_account("owner-funded", account_id="acct-funded")
    charge = service.generate_charge(account.account_id, 1000)
    service.confirm_charge(charge.charge_id)
    return account.account_id


@pytest.fixture
def deposit(store: LedgerStore):
    """Append a deposit directly to the ledger."""

    def _deposit(account_id: str, amount: str, correlation_id: str | None = None):
        return store.append(
            account_id,
            MovementType.DEPOSIT,
            Decimal(amount),
            "Depósito via PIX",
            correlation_id=correlation_id,
        )

    return _deposit
