"""
Abstract Storage Interface

DESIGN DECISION: The flows talk to an abstract finance repository,
never to SQL directly. This allows us to:
1. Run the production flows against PostgreSQL through the Query Executor
2. Run the same flows against an explicit in-memory store in tests
3. Keep business logic decoupled from statement text

The interface is intentionally small - just the operations the
domain handlers need. Implementations raise StorageError for store
failures; whether a failure is fatal is decided by the caller.
"""

from abc import ABC, abstractmethod
from datetime import date
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


class FinanceStorageInterface(ABC):
    """
    Abstract interface for finance storage operations.

    Any storage implementation (SQL, in-memory) must implement these
    methods. All reads are scoped to one user.
    """

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @abstractmethod
    async def ensure_user(self, user: User) -> bool:
        """
        Create the user row unless it already exists.

        Must be a single conditional create, safe under concurrent
        calls for the same id.

        Returns:
            True if the row was created by this call
        """
        pass

    # -------------------------------------------------------------------------
    # Quiz responses
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_quiz_response(
        self,
        user_id: str,
        answers: list[QuizAnswer],
        analysis: str,
    ) -> QuizResponse:
        pass

    @abstractmethod
    async def get_latest_quiz_response(self, user_id: str) -> Optional[QuizResponse]:
        """Most recent quiz response of the user, or None."""
        pass

    # -------------------------------------------------------------------------
    # Spending entries
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_spending_entry(
        self,
        user_id: str,
        entry: SpendingEntryInput,
    ) -> SpendingEntry:
        pass

    @abstractmethod
    async def list_spending_entries(
        self,
        user_id: str,
        on_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> list[SpendingEntry]:
        """
        List a user's entries, newest first.

        Args:
            user_id: Owner of the entries
            on_date: Only entries of this calendar date
            limit: Maximum number of entries
        """
        pass

    @abstractmethod
    async def get_spending_entry(
        self,
        entry_id: str,
        user_id: str,
    ) -> Optional[SpendingEntry]:
        """
        Get an entry by id, only if it belongs to user_id.

        Returns:
            The entry, or None if it is absent or owned by someone else
        """
        pass

    @abstractmethod
    async def update_spending_entry(
        self,
        entry_id: str,
        user_id: str,
        entry: SpendingEntryInput,
    ) -> Optional[SpendingEntry]:
        """
        Replace the editable fields of an owned entry.

        Returns:
            The updated entry, or None if no owned entry matched
        """
        pass

    @abstractmethod
    async def delete_spending_entry(self, entry_id: str, user_id: str) -> bool:
        """
        Delete an owned entry.

        Returns:
            True if a row was deleted
        """
        pass

    # -------------------------------------------------------------------------
    # Savings goals
    # -------------------------------------------------------------------------

    @abstractmethod
    async def upsert_savings_goal(
        self,
        user_id: str,
        goal: SavingsGoalInput,
        savings_plan: str,
    ) -> SavingsGoal:
        """Create or replace the user's single savings goal."""
        pass

    @abstractmethod
    async def get_savings_goal(self, user_id: str) -> Optional[SavingsGoal]:
        pass

    # -------------------------------------------------------------------------
    # Chat messages
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_chat_message(
        self,
        user_id: str,
        message: str,
        is_user: bool,
    ) -> ChatMessage:
        pass

    @abstractmethod
    async def list_chat_messages(self, user_id: str, limit: int = 50) -> list[ChatMessage]:
        """At most `limit` messages, newest first."""
        pass

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    @abstractmethod
    async def ping(self) -> bool:
        """Check the store is reachable; raises StorageError if not."""
        pass

    @abstractmethod
    async def list_tables(self) -> list[str]:
        pass
