"""
Main Orchestrator for MindMoney

This module ties together all the components and defines the
domain operations behind every API route:
1. Quiz (submit answers -> provision user -> analysis -> store)
2. Spending journal (add, list, get, update, delete entries)
3. Savings (set goal -> plan -> upsert, get goal)
4. Daily analysis (entries + goal -> totals -> verdict -> analysis)
5. Advisor chat (goal + recent entries -> advice -> two messages)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every operation is scoped to the verified token subject
- A path userId that is not the subject is rejected before any store access
- Totals and the on-track verdict are computed here, never generated
- Store failures follow an explicit per-operation policy

Every write is audited with the request's correlation id.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Optional, TypeVar
from uuid import UUID

import structlog

from mindmoney.agents import FinanceAdvisorAgent
from mindmoney.audit import AuditLogger
from mindmoney.auth import TokenClaims, TokenVerifier
from mindmoney.config import get_settings
from mindmoney.errors import AuthorizationError, GenerationError, NotFoundError, StorageError
from mindmoney.models import (
    ChatMessage,
    ChatMessageInput,
    DailyAnalysis,
    QuizResponse,
    QuizSubmission,
    SavingsGoal,
    SavingsGoalInput,
    SpendingEntry,
    SpendingEntryInput,
    User,
)
from mindmoney.queries import QueryExecutor, create_schema
from mindmoney.services.generation import GeminiTextClient, TextGenerationClient
from mindmoney.services.storage import (
    FinanceStorageInterface,
    InMemoryFinanceStorage,
    SqlFinanceStorage,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# STORE-FAILURE POLICY
# =============================================================================

class FailurePolicy(str, Enum):
    """What a store failure does to the request."""
    SOFT = "soft"  # log it, return the degraded result
    HARD = "hard"  # propagate, the request fails with 500


# Operations not listed here are HARD.
# Generation failures are never softened.
STORE_FAILURE_POLICY: dict[str, FailurePolicy] = {
    "list_spending_entries": FailurePolicy.SOFT,
    "set_savings_goal": FailurePolicy.SOFT,
}


def failure_policy(operation: str) -> FailurePolicy:
    return STORE_FAILURE_POLICY.get(operation, FailurePolicy.HARD)


# =============================================================================
# DAILY BUDGET RULE
# =============================================================================

DAYS_PER_MONTH = Decimal("30")
ON_TRACK_RATIO = Decimal("0.8")

DEFAULT_EMAIL = "user@example.com"
DEFAULT_NAME = "User"

CHAT_CONTEXT_ENTRIES = 10
CHAT_HISTORY_LIMIT = 50


def daily_budget(goal: Optional[SavingsGoal]) -> Decimal:
    """(income - savings goal) / 30; zero without a goal."""
    if goal is None:
        return Decimal("0")
    return (goal.monthly_income - goal.monthly_savings_goal) / DAYS_PER_MONTH


def is_on_track(total_spent: Decimal, goal: Optional[SavingsGoal]) -> bool:
    """Spent at most 80% of the daily budget."""
    return total_spent <= daily_budget(goal) * ON_TRACK_RATIO


def daily_recommendations(on_track: bool) -> list[str]:
    return [
        "Great job staying within budget!" if on_track else "Consider reducing unnecessary expenses",
        "Track your spending daily to stay on top of your goals",
        "Review your budget weekly to make adjustments",
    ]


# =============================================================================
# FLOWS
# =============================================================================

class _FinanceFlow:
    """Shared plumbing: storage, advisor, audit and the owner check."""

    def __init__(
        self,
        storage: FinanceStorageInterface,
        advisor: Optional[FinanceAdvisorAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._advisor = advisor
        self._audit_logger = audit_logger or AuditLogger()

    def require_owner(
        self,
        claims: TokenClaims,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Resolve the user an operation acts on.

        Routes without a userId act on the token subject.

        Raises:
            AuthorizationError: If user_id names someone else
        """
        if user_id is None or user_id == claims.subject:
            return claims.subject
        self._audit_logger.log_authorization_failed(
            user_id=claims.subject,
            requested_user_id=user_id,
            correlation_id=correlation_id,
        )
        raise AuthorizationError("Unauthorized")

    async def _store_call(
        self,
        operation: str,
        call: Awaitable[T],
        degraded: T,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> T:
        """Await a store call under the operation's failure policy."""
        try:
            return await call
        except StorageError as e:
            if failure_policy(operation) is FailurePolicy.HARD:
                raise
            self._audit_logger.log_store_soft_failed(
                operation=operation,
                error=e,
                user_id=user_id,
                correlation_id=correlation_id,
            )
            return degraded

    async def _generate(
        self,
        purpose: str,
        call: Awaitable[str],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """Await an advisor call; failures are audited and propagate."""
        try:
            return await call
        except GenerationError as e:
            self._audit_logger.log_generation_failed(
                purpose=purpose,
                error=e,
                user_id=user_id,
                correlation_id=correlation_id,
            )
            raise


class QuizFlow(_FinanceFlow):
    """
    Orchestrates the spending-habits quiz.

    Flow:
    1. Provision the user row on first submission (single conditional insert)
    2. Generate the analysis from the answers
    3. Append the quiz response
    """

    async def submit(
        self,
        claims: TokenClaims,
        submission: QuizSubmission,
        correlation_id: Optional[UUID] = None,
    ) -> QuizResponse:
        user = User(
            id=claims.subject,
            email=claims.email or DEFAULT_EMAIL,
            name=claims.name or DEFAULT_NAME,
        )
        if await self._storage.ensure_user(user):
            self._audit_logger.log_user_provisioned(
                user_id=user.id,
                email=user.email,
                correlation_id=correlation_id,
            )

        analysis = await self._generate(
            "quiz_analysis",
            self._advisor.analyze_quiz(submission.answers),
            user_id=user.id,
            correlation_id=correlation_id,
        )

        response = await self._storage.add_quiz_response(
            user_id=user.id,
            answers=submission.answers,
            analysis=analysis,
        )
        self._audit_logger.log_quiz_submitted(
            user_id=user.id,
            quiz_id=response.id,
            answer_count=len(submission.answers),
            correlation_id=correlation_id,
        )
        return response

    async def get_analysis(
        self,
        claims: TokenClaims,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> QuizResponse:
        owner = self.require_owner(claims, user_id, correlation_id)
        response = await self._storage.get_latest_quiz_response(owner)
        if response is None:
            raise NotFoundError("Quiz not found")
        return response


class SpendingFlow(_FinanceFlow):
    """
    Orchestrates the spending journal.

    Entries are only ever looked up by id AND owner, so an entry of
    another user is indistinguishable from a missing one.
    """

    async def add_entry(
        self,
        claims: TokenClaims,
        entry: SpendingEntryInput,
        correlation_id: Optional[UUID] = None,
    ) -> SpendingEntry:
        stored = await self._storage.add_spending_entry(claims.subject, entry)
        self._audit_logger.log_entry_added(
            user_id=claims.subject,
            entry_id=stored.id,
            amount=str(stored.amount),
            correlation_id=correlation_id,
        )
        return stored

    async def list_entries(
        self,
        claims: TokenClaims,
        user_id: Optional[str] = None,
        on_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[SpendingEntry]:
        owner = self.require_owner(claims, user_id, correlation_id)
        return await self._store_call(
            "list_spending_entries",
            self._storage.list_spending_entries(owner, on_date=on_date),
            degraded=[],
            user_id=owner,
            correlation_id=correlation_id,
        )

    async def get_entry(
        self,
        claims: TokenClaims,
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> SpendingEntry:
        entry = await self._storage.get_spending_entry(entry_id, claims.subject)
        if entry is None:
            raise NotFoundError("Entry not found")
        return entry

    async def update_entry(
        self,
        claims: TokenClaims,
        entry_id: str,
        entry: SpendingEntryInput,
        correlation_id: Optional[UUID] = None,
    ) -> SpendingEntry:
        updated = await self._storage.update_spending_entry(entry_id, claims.subject, entry)
        if updated is None:
            raise NotFoundError("Entry not found")
        self._audit_logger.log_entry_updated(
            user_id=claims.subject,
            entry_id=updated.id,
            amount=str(updated.amount),
            correlation_id=correlation_id,
        )
        return updated

    async def delete_entry(
        self,
        claims: TokenClaims,
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        if not await self._storage.delete_spending_entry(entry_id, claims.subject):
            raise NotFoundError("Entry not found")
        self._audit_logger.log_entry_deleted(
            user_id=claims.subject,
            entry_id=entry_id,
            correlation_id=correlation_id,
        )


class SavingsFlow(_FinanceFlow):
    """
    Orchestrates the savings goal.

    The plan is generated before anything is written. If the plan
    cannot be generated the request fails; if only the write fails,
    the goal is returned unpersisted (id is null).
    """

    async def set_goal(
        self,
        claims: TokenClaims,
        goal: SavingsGoalInput,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoal:
        plan = await self._generate(
            "savings_plan",
            self._advisor.create_savings_plan(goal.monthly_income, goal.monthly_savings_goal),
            user_id=claims.subject,
            correlation_id=correlation_id,
        )

        now = datetime.now(timezone.utc)
        unpersisted = SavingsGoal(
            id=None,
            user_id=claims.subject,
            monthly_income=goal.monthly_income,
            monthly_savings_goal=goal.monthly_savings_goal,
            savings_plan=plan,
            created_at=now,
            updated_at=now,
        )
        saved = await self._store_call(
            "set_savings_goal",
            self._storage.upsert_savings_goal(claims.subject, goal, plan),
            degraded=unpersisted,
            user_id=claims.subject,
            correlation_id=correlation_id,
        )
        self._audit_logger.log_goal_saved(
            user_id=claims.subject,
            persisted=saved.id is not None,
            correlation_id=correlation_id,
        )
        return saved

    async def get_goal(
        self,
        claims: TokenClaims,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoal:
        owner = self.require_owner(claims, user_id, correlation_id)
        goal = await self._storage.get_savings_goal(owner)
        if goal is None:
            raise NotFoundError("Savings goal not found")
        return goal


class AnalysisFlow(_FinanceFlow):
    """
    Orchestrates the daily spending analysis.

    CRITICAL: The numbers and the verdict are computed from stored
    entries. The generated text only comments on them.
    """

    async def daily(
        self,
        claims: TokenClaims,
        user_id: str,
        on_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> DailyAnalysis:
        owner = self.require_owner(claims, user_id, correlation_id)
        on_date = on_date or datetime.now(timezone.utc).date()

        entries = await self._storage.list_spending_entries(owner, on_date=on_date)
        goal = await self._storage.get_savings_goal(owner)

        total_spent = sum((e.amount for e in entries), Decimal("0"))
        necessary_spent = sum((e.amount for e in entries if e.is_necessary), Decimal("0"))
        unnecessary_spent = total_spent - necessary_spent

        analysis = await self._generate(
            "daily_analysis",
            self._advisor.analyze_day(total_spent, necessary_spent, unnecessary_spent, goal),
            user_id=owner,
            correlation_id=correlation_id,
        )
        on_track = is_on_track(total_spent, goal)

        return DailyAnalysis(
            date=on_date,
            total_spent=total_spent,
            necessary_spent=necessary_spent,
            unnecessary_spent=unnecessary_spent,
            on_track=on_track,
            analysis=analysis,
            recommendations=daily_recommendations(on_track),
        )


class ChatFlow(_FinanceFlow):
    """
    Orchestrates the advisor chat.

    Flow:
    1. Read the savings goal and the 10 most recent entries
    2. Generate one answer from a single prompt
    3. Append the user message, then the advisor reply
    """

    async def post_message(
        self,
        claims: TokenClaims,
        chat: ChatMessageInput,
        correlation_id: Optional[UUID] = None,
    ) -> ChatMessage:
        owner = claims.subject
        goal = await self._storage.get_savings_goal(owner)
        recent = await self._storage.list_spending_entries(owner, limit=CHAT_CONTEXT_ENTRIES)

        reply = await self._generate(
            "chat",
            self._advisor.advise(chat.message, goal, recent),
            user_id=owner,
            correlation_id=correlation_id,
        )

        await self._storage.add_chat_message(owner, chat.message, is_user=True)
        advisor_message = await self._storage.add_chat_message(owner, reply, is_user=False)

        self._audit_logger.log_chat_exchanged(
            user_id=owner,
            message_length=len(chat.message),
            reply_length=len(reply),
            correlation_id=correlation_id,
        )
        return advisor_message

    async def history(
        self,
        claims: TokenClaims,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[ChatMessage]:
        owner = self.require_owner(claims, user_id, correlation_id)
        return await self._storage.list_chat_messages(owner, limit=CHAT_HISTORY_LIMIT)


class DiagnosticsFlow(_FinanceFlow):
    """Backs the unauthenticated diagnostic routes; returns raw status payloads."""

    async def database(self) -> dict:
        await self._storage.ping()
        return {"status": "database connected"}

    async def generation(self) -> dict:
        response = await self._generate("ping", self._advisor.ping())
        return {"status": "gemini working", "response": response}

    async def schema(self) -> dict:
        return {"status": "schema check", "tables": await self._storage.list_tables()}


# =============================================================================
# FACTORY
# =============================================================================

class AppComponents:
    """Everything the router dispatches to, built once per process."""

    def __init__(
        self,
        storage: FinanceStorageInterface,
        advisor: FinanceAdvisorAgent,
        verifier: TokenVerifier,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.storage = storage
        self.advisor = advisor
        self.verifier = verifier
        self.audit_logger = audit_logger or AuditLogger()

        flow_args = (storage, advisor, self.audit_logger)
        self.quiz = QuizFlow(*flow_args)
        self.spending = SpendingFlow(*flow_args)
        self.savings = SavingsFlow(*flow_args)
        self.analysis = AnalysisFlow(*flow_args)
        self.chat = ChatFlow(*flow_args)
        self.diagnostics = DiagnosticsFlow(*flow_args)


def create_storage(use_storage: bool = True) -> FinanceStorageInterface:
    """
    Build the configured storage.

    Falls back to the in-memory store when the database is disabled
    or not configured.
    """
    database = get_settings().database
    if not use_storage or not database.is_configured:
        if use_storage:
            logger.warning("database_not_configured", fallback="in_memory")
        return InMemoryFinanceStorage()

    executor = QueryExecutor.from_settings(database)
    # SQLite has no migration step; create the tables on first use
    if executor.engine.dialect.name == "sqlite":
        create_schema(executor.engine)
    return SqlFinanceStorage(executor)


def create_app_components(
    use_storage: Optional[bool] = None,
    text_client: Optional[TextGenerationClient] = None,
    verifier: Optional[TokenVerifier] = None,
    storage: Optional[FinanceStorageInterface] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the relational store. Defaults to
                     the USE_DATABASE setting. False selects the
                     in-memory store.
        text_client: Text generation client (Gemini by default)
        verifier: Token verifier (Cognito settings by default)
        storage: Explicit storage, overriding use_storage

    Returns:
        AppComponents
    """
    if use_storage is None:
        use_storage = get_settings().app.use_database

    audit_logger = AuditLogger()
    return AppComponents(
        storage=storage or create_storage(use_storage),
        advisor=FinanceAdvisorAgent(text_client or GeminiTextClient()),
        verifier=verifier or TokenVerifier(audit_logger=audit_logger),
        audit_logger=audit_logger,
    )
