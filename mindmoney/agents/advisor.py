"""
Financial Advisor Agent

DESIGN DECISION: The agent only builds prompts and returns the
generated text. It never reads or writes the store; the flows in
the orchestrator gather the numbers and persist the results.

CRITICAL BOUNDARIES:
- The prompts carry ONLY figures the caller passed in
- Generated text is stored and shown verbatim, never parsed for data
- Generation failures propagate; there is no canned fallback text

The LLM is a WRITER, not a CALCULATOR.
Totals, budgets and the on-track verdict are computed in code.
"""

from decimal import Decimal
from typing import Optional

from mindmoney.models import QuizAnswer, SavingsGoal, SpendingEntry
from mindmoney.services.generation import TextGenerationClient


PING_PROMPT = 'Hello, this is a test. Please respond with "Test successful"'


def _money(value: Optional[Decimal]) -> str:
    return f"${(value or Decimal('0')):.2f}"


class FinanceAdvisorAgent:
    """
    Generates the four kinds of advisor text.

    USE-CASES:
    - Quiz analysis (2-3 sentences)
    - Savings plan (3-4 recommendations)
    - Daily spending analysis
    - Free-form chat answer with goal and recent spending as context
    """

    def __init__(self, client: TextGenerationClient):
        self._client = client

    async def analyze_quiz(self, answers: list[QuizAnswer]) -> str:
        answer_lines = "\n".join(
            f"Question: {a.question_id}, Answer: {a.answer}" for a in answers
        )
        prompt = f"""Analyze the following spending habit quiz answers and provide a brief, personalized analysis (2-3 sentences):

{answer_lines}

Focus on spending patterns, potential areas for improvement, and positive habits. Be encouraging and actionable."""

        return await self._client.generate(prompt)

    async def create_savings_plan(
        self,
        monthly_income: Decimal,
        monthly_savings_goal: Decimal,
    ) -> str:
        prompt = f"""Create a personalized savings plan for someone with:
- Monthly Income: {_money(monthly_income)}
- Monthly Savings Goal: {_money(monthly_savings_goal)}

Provide 3-4 actionable recommendations for achieving this goal. Be specific and practical."""

        return await self._client.generate(prompt)

    async def analyze_day(
        self,
        total_spent: Decimal,
        necessary_spent: Decimal,
        unnecessary_spent: Decimal,
        goal: Optional[SavingsGoal],
    ) -> str:
        prompt = f"""Analyze today's spending for a user:
- Total spent: {_money(total_spent)}
- Necessary expenses: {_money(necessary_spent)}
- Unnecessary expenses: {_money(unnecessary_spent)}
- Monthly savings goal: {_money(goal.monthly_savings_goal if goal else None)}
- Monthly income: {_money(goal.monthly_income if goal else None)}

Provide a brief analysis (2-3 sentences) and 2-3 specific recommendations. Be encouraging but honest."""

        return await self._client.generate(prompt)

    async def advise(
        self,
        message: str,
        goal: Optional[SavingsGoal],
        recent_entries: list[SpendingEntry],
    ) -> str:
        """
        Answer a chat message.

        Args:
            message: The user's question
            goal: Savings goal, if one was set
            recent_entries: Most recent spending entries, newest first
        """
        recent = ", ".join(
            f"{e.description}: {_money(e.amount)}" for e in recent_entries
        ) or "none recorded"

        prompt = f"""You are a helpful financial advisor. The user is asking: "{message}"

User context:
- Monthly income: {_money(goal.monthly_income if goal else None)}
- Monthly savings goal: {_money(goal.monthly_savings_goal if goal else None)}
- Recent spending: {recent}

Provide helpful, personalized financial advice. Be encouraging and practical. Keep response under 200 words."""

        return await self._client.generate(prompt)

    async def ping(self) -> str:
        """Round-trip a fixed prompt; used by the /test-gemini check."""
        return await self._client.generate(PING_PROMPT)
