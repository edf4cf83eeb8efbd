"""Advisor agents package."""

from mindmoney.agents.advisor import FinanceAdvisorAgent

__all__ = ["FinanceAdvisorAgent"]
