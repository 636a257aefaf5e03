"""Scenarios for generating realistic installment portfolios."""

from debt_ledger.scenarios.portfolio import InstallmentPortfolioScenario

__all__ = ["InstallmentPortfolioScenario"]
