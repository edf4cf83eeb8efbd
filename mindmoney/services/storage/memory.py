"""
In-Memory Storage Implementation

An explicit, process-local store with the same behaviour as the SQL
storage: integer ids rendered as strings, owner-scoped lookups,
newest-first listings and a single savings goal per user.

Used by the test-suite and as the fallback when no database is
configured. State lives on the instance; call `reset()` to empty it.
"""

from datetime import date, datetime, timezone
from itertools import count
from typing import Optional

from mindmoney.models import (
    ChatMessage,
    QuizAnswer,
    QuizResponse,
    SavingsGoal,
    SavingsGoalInput,
    SpendingEntry,
    SpendingEntryInput,
    User,
)
from mindmoney.queries.schema import metadata
from mindmoney.services.storage.interface import FinanceStorageInterface


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryFinanceStorage(FinanceStorageInterface):
    """Finance storage backed by plain dicts and lists."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Drop every stored row and restart id sequences."""
        self.users: dict[str, User] = {}
        self.quiz_responses: list[QuizResponse] = []
        self.spending_entries: dict[str, SpendingEntry] = {}
        self.savings_goals: dict[str, SavingsGoal] = {}
        self.chat_messages: list[ChatMessage] = []
        self._ids = {table: count(1) for table in metadata.tables}

    def _next_id(self, table: str) -> str:
        return str(next(self._ids[table]))

    async def ensure_user(self, user: User) -> bool:
        # No await between check and set, so this is atomic on the event loop
        if user.id in self.users:
            return False
        self.users[user.id] = user
        return True

    async def add_quiz_response(
        self,
        user_id: str,
        answers: list[QuizAnswer],
        analysis: str,
    ) -> QuizResponse:
        response = QuizResponse(
            id=self._next_id("quiz_responses"),
            user_id=user_id,
            answers=answers,
            analysis=analysis,
            created_at=_utcnow(),
        )
        self.quiz_responses.append(response)
        return response

    async def get_latest_quiz_response(self, user_id: str) -> Optional[QuizResponse]:
        for response in reversed(self.quiz_responses):
            if response.user_id == user_id:
                return response
        return None

    async def add_spending_entry(
        self,
        user_id: str,
        entry: SpendingEntryInput,
    ) -> SpendingEntry:
        stored = SpendingEntry(
            id=self._next_id("spending_entries"),
            user_id=user_id,
            created_at=_utcnow(),
            **entry.model_dump(),
        )
        self.spending_entries[stored.id] = stored
        return stored

    async def list_spending_entries(
        self,
        user_id: str,
        on_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> list[SpendingEntry]:
        entries = [
            e for e in self.spending_entries.values()
            if e.user_id == user_id and (on_date is None or e.date == on_date)
        ]
        entries.sort(key=lambda e: (e.created_at, int(e.id)), reverse=True)
        return entries[:limit] if limit is not None else entries

    async def get_spending_entry(
        self,
        entry_id: str,
        user_id: str,
    ) -> Optional[SpendingEntry]:
        entry = self.spending_entries.get(entry_id)
        if entry is None or entry.user_id != user_id:
            return None
        return entry

    async def update_spending_entry(
        self,
        entry_id: str,
        user_id: str,
        entry: SpendingEntryInput,
    ) -> Optional[SpendingEntry]:
        existing = await self.get_spending_entry(entry_id, user_id)
        if existing is None:
            return None
        updated = existing.model_copy(update=entry.model_dump())
        self.spending_entries[entry_id] = updated
        return updated

    async def delete_spending_entry(self, entry_id: str, user_id: str) -> bool:
        if await self.get_spending_entry(entry_id, user_id) is None:
            return False
        del self.spending_entries[entry_id]
        return True

    async def upsert_savings_goal(
        self,
        user_id: str,
        goal: SavingsGoalInput,
        savings_plan: str,
    ) -> SavingsGoal:
        now = _utcnow()
        existing = self.savings_goals.get(user_id)
        stored = SavingsGoal(
            id=existing.id if existing else self._next_id("savings_goals"),
            user_id=user_id,
            monthly_income=goal.monthly_income,
            monthly_savings_goal=goal.monthly_savings_goal,
            savings_plan=savings_plan,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        self.savings_goals[user_id] = stored
        return stored

    async def get_savings_goal(self, user_id: str) -> Optional[SavingsGoal]:
        return self.savings_goals.get(user_id)

    async def add_chat_message(
        self,
        user_id: str,
        message: str,
        is_user: bool,
    ) -> ChatMessage:
        stored = ChatMessage(
            id=self._next_id("chat_messages"),
            user_id=user_id,
            message=message,
            is_user=is_user,
            timestamp=_utcnow(),
        )
        self.chat_messages.append(stored)
        return stored

    async def list_chat_messages(self, user_id: str, limit: int = 50) -> list[ChatMessage]:
        messages = [m for m in self.chat_messages if m.user_id == user_id]
        messages.sort(key=lambda m: (m.timestamp, int(m.id)), reverse=True)
        return messages[:limit]

    async def ping(self) -> bool:
        return True

    async def list_tables(self) -> list[str]:
        return sorted(metadata.tables)
