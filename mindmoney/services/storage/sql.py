"""
SQL Storage Implementation

DESIGN DECISION: PostgreSQL is the production backend, reached
through the Query Executor. Each interface method issues exactly one
statement from `mindmoney.queries.statements`; there are no
multi-statement transactions.

Values cross the driver boundary in portable forms so the same
implementation also runs on SQLite (tests, local development):
- dates and timestamps as ISO-8601 strings
- amounts as decimal strings
- quiz answers as a JSON array in a text column

Timestamps are generated here with microsecond precision, so rows
written in one request (e.g. a chat turn) keep their order.
"""

import json
from datetime import date, datetime, timezone
from decimal import Decimal
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
from mindmoney.queries import QueryExecutor
from mindmoney.queries import statements as sql
from mindmoney.services.storage.interface import FinanceStorageInterface


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _entry_key(entry_id: str) -> Optional[int]:
    """Entry ids are integers; anything else cannot match a row."""
    entry_id = (entry_id or "").strip()
    return int(entry_id) if entry_id.isdigit() else None


class SqlFinanceStorage(FinanceStorageInterface):
    """
    Relational implementation of finance storage.

    Rows are converted to API models at this boundary; callers
    never see driver types.
    """

    def __init__(self, executor: QueryExecutor):
        self._executor = executor

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    @staticmethod
    def _row_to_entry(row: dict) -> SpendingEntry:
        return SpendingEntry(
            id=str(row["id"]),
            user_id=row["user_id"],
            date=row["date"],
            amount=Decimal(str(row["amount"])),
            description=row["description"],
            category=row["category"],
            is_necessary=bool(row["is_necessary"]),
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_goal(row: dict) -> SavingsGoal:
        return SavingsGoal(
            id=str(row["id"]),
            user_id=row["user_id"],
            monthly_income=Decimal(str(row["monthly_income"])),
            monthly_savings_goal=Decimal(str(row["monthly_savings_goal"])),
            savings_plan=row["savings_plan"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_message(row: dict) -> ChatMessage:
        return ChatMessage(
            id=str(row["id"]),
            user_id=row["user_id"],
            message=row["message"],
            is_user=bool(row["is_user"]),
            timestamp=row["timestamp"],
        )

    @staticmethod
    def _row_to_quiz(row: dict) -> QuizResponse:
        answers = json.loads(row["answers"]) if row["answers"] else []
        return QuizResponse(
            id=str(row["id"]),
            user_id=row["user_id"],
            answers=[QuizAnswer.model_validate(a) for a in answers],
            analysis=row["analysis"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _entry_params(entry: SpendingEntryInput) -> dict:
        return {
            "date": entry.date.isoformat(),
            "amount": str(entry.amount),
            "description": entry.description,
            "category": entry.category,
            "is_necessary": entry.is_necessary,
        }

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def ensure_user(self, user: User) -> bool:
        rows = await self._executor.execute(
            sql.INSERT_USER_IF_ABSENT,
            {"id": user.id, "email": user.email, "name": user.name, "now": _now_iso()},
        )
        return len(rows) > 0

    # -------------------------------------------------------------------------
    # Quiz responses
    # -------------------------------------------------------------------------

    async def add_quiz_response(
        self,
        user_id: str,
        answers: list[QuizAnswer],
        analysis: str,
    ) -> QuizResponse:
        created_at = _now_iso()
        rows = await self._executor.execute(
            sql.INSERT_QUIZ_RESPONSE,
            {
                "user_id": user_id,
                "answers": json.dumps([a.to_api() for a in answers]),
                "analysis": analysis,
                "created_at": created_at,
            },
        )
        return QuizResponse(
            id=str(rows[0]["id"]),
            user_id=user_id,
            answers=answers,
            analysis=analysis,
            created_at=created_at,
        )

    async def get_latest_quiz_response(self, user_id: str) -> Optional[QuizResponse]:
        rows = await self._executor.execute(
            sql.SELECT_LATEST_QUIZ_RESPONSE,
            {"user_id": user_id},
        )
        return self._row_to_quiz(rows[0]) if rows else None

    # -------------------------------------------------------------------------
    # Spending entries
    # -------------------------------------------------------------------------

    async def add_spending_entry(
        self,
        user_id: str,
        entry: SpendingEntryInput,
    ) -> SpendingEntry:
        created_at = _now_iso()
        rows = await self._executor.execute(
            sql.INSERT_SPENDING_ENTRY,
            {"user_id": user_id, "created_at": created_at, **self._entry_params(entry)},
        )
        return SpendingEntry(
            id=str(rows[0]["id"]),
            user_id=user_id,
            created_at=created_at,
            **entry.model_dump(),
        )

    async def list_spending_entries(
        self,
        user_id: str,
        on_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> list[SpendingEntry]:
        if on_date is not None:
            statement = sql.SELECT_SPENDING_ENTRIES_FOR_DATE
            params = {"user_id": user_id, "date": on_date.isoformat()}
        elif limit is not None:
            statement = sql.SELECT_RECENT_SPENDING_ENTRIES
            params = {"user_id": user_id, "limit": limit}
        else:
            statement = sql.SELECT_SPENDING_ENTRIES
            params = {"user_id": user_id}

        rows = await self._executor.execute(statement, params)
        entries = [self._row_to_entry(row) for row in rows]
        # The date-filtered statement has no LIMIT clause
        return entries[:limit] if limit is not None else entries

    async def get_spending_entry(
        self,
        entry_id: str,
        user_id: str,
    ) -> Optional[SpendingEntry]:
        key = _entry_key(entry_id)
        if key is None:
            return None
        rows = await self._executor.execute(
            sql.SELECT_OWNED_SPENDING_ENTRY,
            {"id": key, "user_id": user_id},
        )
        return self._row_to_entry(rows[0]) if rows else None

    async def update_spending_entry(
        self,
        entry_id: str,
        user_id: str,
        entry: SpendingEntryInput,
    ) -> Optional[SpendingEntry]:
        existing = await self.get_spending_entry(entry_id, user_id)
        if existing is None:
            return None

        await self._executor.execute(
            sql.UPDATE_OWNED_SPENDING_ENTRY,
            {"id": int(existing.id), "user_id": user_id, **self._entry_params(entry)},
        )
        return existing.model_copy(update=entry.model_dump())

    async def delete_spending_entry(self, entry_id: str, user_id: str) -> bool:
        existing = await self.get_spending_entry(entry_id, user_id)
        if existing is None:
            return False

        await self._executor.execute(
            sql.DELETE_OWNED_SPENDING_ENTRY,
            {"id": int(existing.id), "user_id": user_id},
        )
        return True

    # -------------------------------------------------------------------------
    # Savings goals
    # -------------------------------------------------------------------------

    async def upsert_savings_goal(
        self,
        user_id: str,
        goal: SavingsGoalInput,
        savings_plan: str,
    ) -> SavingsGoal:
        rows = await self._executor.execute(
            sql.UPSERT_SAVINGS_GOAL,
            {
                "user_id": user_id,
                "monthly_income": str(goal.monthly_income),
                "monthly_savings_goal": str(goal.monthly_savings_goal),
                "savings_plan": savings_plan,
                "now": _now_iso(),
            },
        )
        row = rows[0]
        return SavingsGoal(
            id=str(row["id"]),
            user_id=user_id,
            monthly_income=goal.monthly_income,
            monthly_savings_goal=goal.monthly_savings_goal,
            savings_plan=savings_plan,
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get_savings_goal(self, user_id: str) -> Optional[SavingsGoal]:
        rows = await self._executor.execute(sql.SELECT_SAVINGS_GOAL, {"user_id": user_id})
        return self._row_to_goal(rows[0]) if rows else None

    # -------------------------------------------------------------------------
    # Chat messages
    # -------------------------------------------------------------------------

    async def add_chat_message(
        self,
        user_id: str,
        message: str,
        is_user: bool,
    ) -> ChatMessage:
        timestamp = _now_iso()
        rows = await self._executor.execute(
            sql.INSERT_CHAT_MESSAGE,
            {
                "user_id": user_id,
                "message": message,
                "is_user": is_user,
                "timestamp": timestamp,
            },
        )
        return ChatMessage(
            id=str(rows[0]["id"]),
            user_id=user_id,
            message=message,
            is_user=is_user,
            timestamp=timestamp,
        )

    async def list_chat_messages(self, user_id: str, limit: int = 50) -> list[ChatMessage]:
        rows = await self._executor.execute(
            sql.SELECT_CHAT_HISTORY,
            {"user_id": user_id, "limit": limit},
        )
        return [self._row_to_message(row) for row in rows]

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    async def ping(self) -> bool:
        return await self._executor.ping()

    async def list_tables(self) -> list[str]:
        return await self._executor.list_tables()
