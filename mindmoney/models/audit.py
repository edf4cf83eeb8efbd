"""
Audit Models for MindMoney

Every significant action in the system is logged for audit purposes:
user provisioning, every write, every soft-failed store call and
every failed request.

DESIGN DECISION: Audit events are structured log records only.
They are not written to the relational store.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Identity
    AUTHENTICATION_FAILED = "authentication_failed"
    AUTHORIZATION_FAILED = "authorization_failed"
    USER_PROVISIONED = "user_provisioned"

    # Quiz
    QUIZ_SUBMITTED = "quiz_submitted"

    # Spending journal
    SPENDING_ENTRY_ADDED = "spending_entry_added"
    SPENDING_ENTRY_UPDATED = "spending_entry_updated"
    SPENDING_ENTRY_DELETED = "spending_entry_deleted"

    # Savings
    SAVINGS_GOAL_SAVED = "savings_goal_saved"

    # Advisor
    CHAT_EXCHANGED = "chat_exchanged"

    # Failures
    STORE_SOFT_FAILED = "store_soft_failed"
    GENERATION_FAILED = "generation_failed"
    REQUEST_FAILED = "request_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - who and what is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="Token subject the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'spending_entry', 'savings_goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - one id per inbound request
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_type": self.error_type,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.quiz_submitted(user_id, quiz_id, 10, correlation_id)
        event = AuditEventBuilder.store_soft_failed("list_spending_entries", err, ...)
    """

    @staticmethod
    def authentication_failed(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTHENTICATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Token verification failed",
            error_message=reason,
        )

    @staticmethod
    def authorization_failed(
        user_id: str,
        requested_user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTHORIZATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Request for another user's data rejected",
            details={"requested_user_id": requested_user_id},
        )

    @staticmethod
    def user_provisioned(
        user_id: str,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_PROVISIONED,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="User record created on first quiz submission",
            details={"email": email},
        )

    @staticmethod
    def quiz_submitted(
        user_id: str,
        quiz_id: str,
        answer_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUIZ_SUBMITTED,
            user_id=user_id,
            entity_type="quiz_response",
            entity_id=quiz_id,
            correlation_id=correlation_id,
            description=f"Quiz submitted with {answer_count} answers",
            details={"answer_count": answer_count},
        )

    @staticmethod
    def spending_entry_changed(
        event_type: AuditEventType,
        user_id: str,
        entry_id: str,
        amount: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        action = event_type.value.rsplit("_", 1)[-1]
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="spending_entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Spending entry {action}",
            details={"amount": amount} if amount is not None else {},
        )

    @staticmethod
    def savings_goal_saved(
        user_id: str,
        persisted: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVINGS_GOAL_SAVED,
            user_id=user_id,
            entity_type="savings_goal",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Savings goal saved" if persisted else "Savings goal returned without persistence",
            details={"persisted": persisted},
        )

    @staticmethod
    def chat_exchanged(
        user_id: str,
        message_length: int,
        reply_length: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAT_EXCHANGED,
            user_id=user_id,
            entity_type="chat_message",
            correlation_id=correlation_id,
            description="Advisor chat turn completed",
            details={
                "message_length": message_length,
                "reply_length": reply_length,
            },
        )

    @staticmethod
    def store_soft_failed(
        operation: str,
        error: Exception,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_SOFT_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Store failure ignored for {operation}",
            details={"operation": operation},
            error_type=type(error).__name__,
            error_message=_cause_message(error),
        )

    @staticmethod
    def generation_failed(
        purpose: str,
        error: Exception,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GENERATION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Text generation failed for {purpose}",
            details={"purpose": purpose},
            error_type=type(error).__name__,
            error_message=_cause_message(error),
        )

    @staticmethod
    def request_failed(
        method: str,
        path: str,
        status_code: int,
        error: Exception,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REQUEST_FAILED,
            severity=AuditSeverity.ERROR if status_code >= 500 else AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{method} {path} failed with {status_code}",
            details={
                "method": method,
                "path": path,
                "status_code": status_code,
            },
            error_type=type(error).__name__,
            error_message=_cause_message(error),
        )


def _cause_message(error: Exception) -> str:
    """Message of the error plus its chained cause, for the log only."""
    cause = error.__cause__
    if cause is not None:
        return f"{error} (caused by {type(cause).__name__}: {cause})"
    return str(error)
