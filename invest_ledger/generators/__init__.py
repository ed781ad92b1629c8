"""Faker-based generators for demo ledger data."""

from invest_ledger.generators.activity import ActivityGenerator, MonthlyActivity
from invest_ledger.generators.investor import InvestorGenerator

__all__ = [
    "ActivityGenerator",
    "InvestorGenerator",
    "MonthlyActivity",
]
