"""Monthly activity decisions for demo investors."""

from __future__ import annotations

import random
from dataclasses import dataclass
from decimal import Decimal

from invest_ledger.generators.base import BaseGenerator
from invest_ledger.models import Investor, InvestorProfile


@dataclass
class MonthlyActivity:
    """What one investor does in one month."""

    deposit: Decimal | None = None
    abandon_charge: bool = False  # Charge is issued but never paid
    withdraw_yield: bool = False
    withdraw_total: bool = False


class ActivityGenerator(BaseGenerator):
    """Decide deposits and withdrawals according to the investor profile."""

    DEPOSIT_PROBABILITY = {
        InvestorProfile.CONSERVATIVE: 0.25,
        InvestorProfile.REGULAR: 0.80,
        InvestorProfile.INCOME: 0.40,
    }

    YIELD_WITHDRAWAL_PROBABILITY = {
        InvestorProfile.CONSERVATIVE: 0.05,
        InvestorProfile.REGULAR: 0.25,
        InvestorProfile.INCOME: 0.90,
    }

    TOTAL_WITHDRAWAL_PROBABILITY = 0.10
    ABANDONED_CHARGE_PROBABILITY = 0.08

    def __init__(self, allowed_amounts: list[Decimal], seed: int | None = None) -> None:
        super().__init__(seed)
        if not allowed_amounts:
            raise ValueError("allowed_amounts must not be empty")
        self.allowed_amounts = sorted(allowed_amounts)

    def pick_amount(self, budget: Decimal) -> Decimal:
        """Largest allowed amount within budget, or the smallest one."""
        affordable = [amount for amount in self.allowed_amounts if amount <= budget]
        if not affordable:
            return self.allowed_amounts[0]
        # Mostly the top affordable value, sometimes one step below
        if len(affordable) > 1 and random.random() < 0.3:
            return affordable[-2]
        return affordable[-1]

    def generate(self, investor: Investor, first_month: bool = False) -> MonthlyActivity:
        """Decide one month of activity.

        Every investor deposits in their first month so that each account
        starts with a balance.
        """
        profile = investor.profile
        activity = MonthlyActivity()

        if first_month or random.random() < self.DEPOSIT_PROBABILITY[profile]:
            activity.deposit = self.pick_amount(investor.monthly_budget)
            activity.abandon_charge = (
                not first_month and random.random() < self.ABANDONED_CHARGE_PROBABILITY
            )

        if not first_month:
            activity.withdraw_yield = random.random() < self.YIELD_WITHDRAWAL_PROBABILITY[profile]
            activity.withdraw_total = random.random() < self.TOTAL_WITHDRAWAL_PROBABILITY

        return activity
