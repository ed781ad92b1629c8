"""Scenarios that populate a ledger with demo activity."""

from invest_ledger.scenarios.demo_portfolio import DemoPortfolioScenario

__all__ = ["DemoPortfolioScenario"]
