"""Demo portfolio scenario: realistic ledger histories for seeding."""

import logging
import random
from datetime import date, datetime, timezone
from typing import Any

from invest_ledger.clock import ManualClock
from invest_ledger.config import AppConfig
from invest_ledger.generators import ActivityGenerator, InvestorGenerator, MonthlyActivity
from invest_ledger.models import Investor
from invest_ledger.service import EventPublisher, LedgerService

logger = logging.getLogger(__name__)


class DemoPortfolioScenario:
    """Drive a ledger through several months of investor activity.

    Every month follows the platform calendar:
    - Day 2: withdrawals (inside the total-withdrawal window)
    - Day 10: PIX deposits, some charges are left unpaid
    - Day 11: stale charges expire
    - Day 28: monthly yield accrual

    All operations go through ``LedgerService`` with a manual clock, so the
    resulting ledger obeys the same rules as production traffic.
    """

    def __init__(
        self,
        num_investors: int = 20,
        months: int = 6,
        start: date = date(2024, 1, 1),
        config: AppConfig | None = None,
        publishers: list[EventPublisher] | None = None,
        seed: int | None = None,
    ) -> None:
        """Initialize demo portfolio scenario.

        Parameters
        ----------
        num_investors : int
            Number of investors to onboard.
        months : int
            Number of calendar months to simulate.
        start : date
            First month of activity (the day is ignored).
        config : AppConfig | None
            Ledger and PIX configuration.
        publishers : list[EventPublisher] | None
            Event publishers attached to the service.
        seed : int | None
            Random seed for reproducibility.
        """
        if num_investors < 1:
            raise ValueError("num_investors must be positive")
        if months < 1:
            raise ValueError("months must be positive")

        self.num_investors = num_investors
        self.months = months
        self.start = start
        self.config = config or AppConfig()
        self.seed = seed

        if seed is not None:
            random.seed(seed)

        self.tz = self.config.ledger.local_timezone
        self.clock = ManualClock(self._local(start.year, start.month, 1, 9))
        self.service = LedgerService(config=self.config, publishers=publishers, clock=self.clock)

        self.investors: list[Investor] = []
        self._accounts: dict[str, str] = {}  # investor_id -> account_id
        self._investor_gen = InvestorGenerator(seed=seed)
        self._activity_gen = ActivityGenerator(self.service.allowed_amounts(), seed=seed)

    def _local(self, year: int, month: int, day: int, hour: int) -> datetime:
        return datetime(year, month, day, hour, tzinfo=self.tz).astimezone(timezone.utc)

    def _months(self):
        year, month = self.start.year, self.start.month
        for _ in range(self.months):
            yield year, month
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)

    def generate(self) -> LedgerService:
        """Run the scenario.

        Returns
        -------
        LedgerService
            Service holding the generated ledger.
        """
        logger.info(
            "Starting demo portfolio scenario: %d investors over %d months",
            self.num_investors,
            self.months,
        )

        for investor in self._investor_gen.generate_batch(self.num_investors, self.clock()):
            account = self.service.open_account(investor.investor_id)
            self.investors.append(investor)
            self._accounts[investor.investor_id] = account.account_id

        for index, (year, month) in enumerate(self._months()):
            plan = {
                investor.investor_id: self._activity_gen.generate(investor, first_month=index == 0)
                for investor in self.investors
            }

            self.clock.set(self._local(year, month, 2, 10))
            for investor in self.investors:
                self._withdraw(self._accounts[investor.investor_id], plan[investor.investor_id])

            self.clock.set(self._local(year, month, 10, 14))
            for investor in self.investors:
                self._deposit(self._accounts[investor.investor_id], plan[investor.investor_id])

            self.clock.set(self._local(year, month, 11, 8))
            self.service.expire_stale_charges()

            self.clock.set(self._local(year, month, 28, 23))
            self.service.accrue_all()

        for account_id in self._accounts.values():
            self.service.ledger.verify(account_id)

        logger.info(
            "Generated demo portfolio: %d accounts, %d movements, charges %s",
            len(self.service.ledger.accounts),
            len(self.service.ledger.movements),
            self.service.pix.charges.summary(),
        )
        return self.service

    def _withdraw(self, account_id: str, activity: MonthlyActivity) -> None:
        if activity.withdraw_total:
            if self.service.eligibility(account_id).can_withdraw_total:
                self.service.withdraw_total(account_id)
                return
        if activity.withdraw_yield and self.service.get_balance(account_id).accrued_yield > 0:
            self.service.withdraw_yield(account_id)

    def _deposit(self, account_id: str, activity: MonthlyActivity) -> None:
        if activity.deposit is None:
            return
        charge = self.service.generate_charge(account_id, activity.deposit)
        if activity.abandon_charge:
            return
        self.service.confirm_charge(charge.charge_id, confirmed_at=self.clock(), amount=charge.amount)

    def batches(self) -> dict[str, list[Any]]:
        """Return the generated entities grouped for the export sinks."""
        ledger = self.service.ledger
        return {
            "investors": list(self.investors),
            "accounts": [ledger.snapshot(account_id) for account_id in ledger.accounts],
            "pix_charges": list(self.service.pix.charges.charges.values()),
            "movements": list(ledger.movements),
        }
