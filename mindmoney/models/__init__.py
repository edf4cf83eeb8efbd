"""
Data Models Package

This package contains all Pydantic models used by MindMoney.
All data flowing through the system must conform to these schemas.
"""

from mindmoney.models.finance import (
    ChatMessage,
    ChatMessageInput,
    DailyAnalysis,
    QuizAnswer,
    QuizResponse,
    QuizSubmission,
    SavingsGoal,
    SavingsGoalInput,
    SpendingEntry,
    SpendingEntryInput,
    User,
)
from mindmoney.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "ChatMessage",
    "ChatMessageInput",
    "DailyAnalysis",
    "QuizAnswer",
    "QuizResponse",
    "QuizSubmission",
    "SavingsGoal",
    "SavingsGoalInput",
    "SpendingEntry",
    "SpendingEntryInput",
    "User",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
