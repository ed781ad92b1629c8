"""Enumeration types for ledger entities."""

from enum import Enum


class MovementType(str, Enum):
    DEPOSIT = "DEPOSIT"
    YIELD_CREDIT = "YIELD_CREDIT"
    YIELD_WITHDRAWAL = "YIELD_WITHDRAWAL"
    TOTAL_WITHDRAWAL = "TOTAL_WITHDRAWAL"


class ChargeStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    EXPIRED = "EXPIRED"


class WithdrawalState(str, Enum):
    """Derived withdrawal state, recomputed on every request."""

    LOCKED = "LOCKED"
    YIELD_ONLY = "YIELD_ONLY"
    FULLY_ELIGIBLE = "FULLY_ELIGIBLE"


class InvestorProfile(str, Enum):
    """Saving behaviour of a demo investor."""

    CONSERVATIVE = "CONSERVATIVE"  # Deposits rarely, keeps yield invested
    REGULAR = "REGULAR"  # Monthly deposits, occasional yield withdrawal
    INCOME = "INCOME"  # Withdraws yield every month
