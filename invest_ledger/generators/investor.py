"""Investor generator for demo portfolios."""

from __future__ import annotations

import random
from datetime import datetime
from decimal import Decimal
from typing import Iterator

from invest_ledger.generators.base import BaseGenerator
from invest_ledger.models import Investor, InvestorProfile


class InvestorGenerator(BaseGenerator):
    """Generate synthetic investors with Brazilian personal data."""

    PROFILES = list(InvestorProfile)
    PROFILE_WEIGHTS = [0.30, 0.50, 0.20]

    def generate(self, created_at: datetime) -> Investor:
        """Generate a single investor.

        Parameters
        ----------
        created_at : datetime
            Time the investor completed identity setup.

        Returns
        -------
        Investor
            Generated investor.
        """
        profile = random.choices(self.PROFILES, weights=self.PROFILE_WEIGHTS, k=1)[0]
        # Log-normal budget, most investors put in a few hundred reais a month
        budget = max(130.0, min(random.lognormvariate(mu=6.5, sigma=0.9), 100000.0))

        return Investor(
            investor_id=self.fake.uuid4(),
            name=self.fake.name(),
            cpf=self.fake.cpf(),
            email=self.fake.email(),
            phone=self.fake.cellphone_number(),
            city=self.fake.city(),
            profile=profile,
            monthly_budget=Decimal(str(round(budget, 2))),
            created_at=created_at,
        )

    def generate_batch(self, count: int, created_at: datetime) -> Iterator[Investor]:
        """Generate ``count`` investors onboarded at ``created_at``."""
        for _ in range(count):
            yield self.generate(created_at)
