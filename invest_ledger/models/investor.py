"""Investor profile used for demo portfolios."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from invest_ledger.models.enums import InvestorProfile


@dataclass
class Investor:
    """Account owner as known by the identity layer."""

    investor_id: str
    name: str
    cpf: str
    email: str
    phone: str
    city: str
    profile: InvestorProfile
    monthly_budget: Decimal  # Amount the investor tends to deposit per month
    created_at: datetime
