"""Account ledger and yield-accrual engine for a retail investment platform."""

__version__ = "0.1.0"
