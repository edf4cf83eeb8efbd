"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged
as one structured JSON line. This provides:
1. Traceability of every write per user
2. The failure reasons the API deliberately hides from callers
3. Correlation of all events of one request

The audit logger never raises: a broken log sink must not turn a
successful request into a failed one.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from mindmoney.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
)


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog (and the stdlib root logger it writes through)."""
    logging.basicConfig(format="%(message)s", level=level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Writes AuditEvents to the structured log at the level
    matching their severity.
    """

    def __init__(self, logger_name: str = "mindmoney.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the log sink failed.
        """
        log_dict = event.to_log_dict()
        try:
            if event.severity.value in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False
        return True

    def log_authentication_failed(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.authentication_failed(
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_authorization_failed(
        self,
        user_id: str,
        requested_user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.authorization_failed(
            user_id=user_id,
            requested_user_id=requested_user_id,
            correlation_id=correlation_id,
        ))

    def log_user_provisioned(
        self,
        user_id: str,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.user_provisioned(
            user_id=user_id,
            email=email,
            correlation_id=correlation_id,
        ))

    def log_quiz_submitted(
        self,
        user_id: str,
        quiz_id: str,
        answer_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.quiz_submitted(
            user_id=user_id,
            quiz_id=quiz_id,
            answer_count=answer_count,
            correlation_id=correlation_id,
        ))

    def log_entry_added(
        self,
        user_id: str,
        entry_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.spending_entry_changed(
            AuditEventType.SPENDING_ENTRY_ADDED,
            user_id=user_id,
            entry_id=entry_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_entry_updated(
        self,
        user_id: str,
        entry_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.spending_entry_changed(
            AuditEventType.SPENDING_ENTRY_UPDATED,
            user_id=user_id,
            entry_id=entry_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_entry_deleted(
        self,
        user_id: str,
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.spending_entry_changed(
            AuditEventType.SPENDING_ENTRY_DELETED,
            user_id=user_id,
            entry_id=entry_id,
            correlation_id=correlation_id,
        ))

    def log_goal_saved(
        self,
        user_id: str,
        persisted: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.savings_goal_saved(
            user_id=user_id,
            persisted=persisted,
            correlation_id=correlation_id,
        ))

    def log_chat_exchanged(
        self,
        user_id: str,
        message_length: int,
        reply_length: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.chat_exchanged(
            user_id=user_id,
            message_length=message_length,
            reply_length=reply_length,
            correlation_id=correlation_id,
        ))

    def log_store_soft_failed(
        self,
        operation: str,
        error: Exception,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.store_soft_failed(
            operation=operation,
            error=error,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    def log_generation_failed(
        self,
        purpose: str,
        error: Exception,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.generation_failed(
            purpose=purpose,
            error=error,
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    def log_request_failed(
        self,
        method: str,
        path: str,
        status_code: int,
        error: Exception,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.request_failed(
            method=method,
            path=path,
            status_code=status_code,
            error=error,
            user_id=user_id,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for one inbound request.

    Pass it through every flow call made for that request.
    """
    return uuid4()
