"""
Core Data Models for MindMoney

These models define the schemas for all data flowing through the system:
entities read from the store, request bodies accepted by the router,
and the derived daily analysis.

DESIGN DECISION: Field names are snake_case in Python and camelCase
on the wire. Every model uses the same alias generator, so
`model_dump(by_alias=True, mode="json")` produces the API payload and
`model_validate()` accepts either spelling.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


# Decimal in Python, plain JSON number on the wire
Money = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

# A stored amount: fits the NUMERIC(10, 2) columns exactly, never rounded
Amount = Annotated[
    Money,
    Field(max_digits=10, decimal_places=2),
]


class ApiModel(BaseModel):
    """Base for every model that crosses the API boundary."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# ENTITIES
# =============================================================================

class User(ApiModel):
    """A user row; id is the token subject."""

    id: str = Field(..., min_length=1)
    email: str
    name: str


class QuizAnswer(ApiModel):
    """
    One answer of the spending-habits quiz.

    Answers are stored verbatim, including the optional category
    the frontend attaches to each question.
    """

    question_id: str = Field(..., min_length=1)
    answer: str
    category: Optional[str] = None

    @field_validator("question_id", "answer", mode="before")
    @classmethod
    def coerce_to_str(cls, v):
        # Frontends send numeric option ids as numbers
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class QuizResponse(ApiModel):
    id: str
    user_id: str
    answers: list[QuizAnswer]
    analysis: str
    created_at: datetime


class SpendingEntry(ApiModel):
    """A single logged expense."""

    id: str
    user_id: str
    date: date
    amount: Amount
    description: str
    category: str
    is_necessary: bool
    created_at: datetime


class SavingsGoal(ApiModel):
    """
    The user's monthly savings goal.

    id is None when the goal could not be persisted
    (see the store-failure policy in the orchestrator).
    """

    id: Optional[str] = None
    user_id: str
    monthly_income: Amount
    monthly_savings_goal: Amount
    savings_plan: str
    created_at: datetime
    updated_at: datetime


class ChatMessage(ApiModel):
    id: str
    user_id: str
    message: str
    is_user: bool
    timestamp: datetime


class DailyAnalysis(ApiModel):
    """
    Spending analysis for one day.

    Derived on every request from spending entries and the savings
    goal. Never persisted.
    """

    date: date
    total_spent: Money
    necessary_spent: Money
    unnecessary_spent: Money
    on_track: bool
    analysis: str
    recommendations: list[str] = Field(default_factory=list)


# =============================================================================
# REQUEST BODIES
# =============================================================================

class QuizSubmission(ApiModel):
    answers: list[QuizAnswer] = Field(..., min_length=1)


class SpendingEntryInput(ApiModel):
    """Body of POST /spending/entry and PUT /spending/entry/{id}."""

    date: date
    amount: Amount
    description: str = Field(..., min_length=1, max_length=500)
    category: str = Field(..., min_length=1, max_length=100)
    is_necessary: bool = True


class SavingsGoalInput(ApiModel):
    """
    Body of POST /savings/goal.

    The goal is not required to be below the income.
    """

    monthly_income: Amount
    monthly_savings_goal: Amount


class ChatMessageInput(ApiModel):
    message: str = Field(..., min_length=1, max_length=2000)
