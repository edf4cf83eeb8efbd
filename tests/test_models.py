"""
Tests for MindMoney models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with stubbed external services)
3. No real API calls in tests (use stubs)
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from mindmoney.models import (
    ChatMessageInput,
    DailyAnalysis,
    QuizAnswer,
    QuizSubmission,
    SavingsGoal,
    SavingsGoalInput,
    SpendingEntry,
    SpendingEntryInput,
)
from mindmoney.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from mindmoney.errors import StorageError


class TestFinanceModels:
    """Tests for finance Pydantic models."""

    def test_spending_entry_input_accepts_camel_case(self):
        """Test that request bodies use camelCase keys."""
        entry = SpendingEntryInput.model_validate({
            "date": "2025-09-13",
            "amount": 25.5,
            "description": "Lunch",
            "category": "Food",
            "isNecessary": False,
        })
        assert entry.date == date(2025, 9, 13)
        assert entry.amount == Decimal("25.5")
        assert entry.is_necessary is False

    def test_spending_entry_input_defaults_to_necessary(self):
        entry = SpendingEntryInput.model_validate({
            "date": "2025-09-13",
            "amount": "10",
            "description": "Bus",
            "category": "Transport",
        })
        assert entry.is_necessary is True

    def test_spending_entry_input_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            SpendingEntryInput(
                date=date(2025, 9, 13),
                amount=Decimal("-1"),
                description="Refund",
                category="Food",
            )

    def test_spending_entry_input_rejects_sub_cent_amount(self):
        """Test that amounts the store would round are rejected."""
        with pytest.raises(ValidationError):
            SpendingEntryInput.model_validate({
                "date": "2025-09-13",
                "amount": 12.345,
                "description": "Coffee",
                "category": "Food",
            })

    def test_spending_entry_input_rejects_oversized_amount(self):
        """Test that amounts beyond the stored precision are rejected."""
        with pytest.raises(ValidationError):
            SpendingEntryInput.model_validate({
                "date": "2025-09-13",
                "amount": 1e308,
                "description": "Yacht",
                "category": "Leisure",
            })

    def test_spending_entry_input_accepts_largest_amount(self):
        entry = SpendingEntryInput.model_validate({
            "date": "2025-09-13",
            "amount": "99999999.99",
            "description": "House",
            "category": "Housing",
        })
        assert entry.amount == Decimal("99999999.99")

    def test_savings_goal_input_rejects_sub_cent_income(self):
        with pytest.raises(ValidationError):
            SavingsGoalInput(monthly_income=Decimal("3000.001"), monthly_savings_goal=Decimal("900"))

    def test_spending_entry_input_strips_whitespace(self):
        entry = SpendingEntryInput(
            date=date(2025, 9, 13),
            amount=Decimal("3"),
            description="  Coffee  ",
            category=" Food ",
        )
        assert entry.description == "Coffee"
        assert entry.category == "Food"

    def test_spending_entry_input_rejects_blank_description(self):
        with pytest.raises(ValidationError):
            SpendingEntryInput(
                date=date(2025, 9, 13),
                amount=Decimal("3"),
                description="   ",
                category="Food",
            )

    def test_spending_entry_serializes_amount_as_number(self):
        """Test that the API payload carries amounts as JSON numbers."""
        entry = SpendingEntry(
            id="1",
            user_id="abc",
            date=date(2025, 9, 13),
            amount=Decimal("25.50"),
            description="Lunch",
            category="Food",
            is_necessary=True,
            created_at=datetime(2025, 9, 13, 12, 0, tzinfo=timezone.utc),
        )
        payload = entry.to_api()
        assert payload["amount"] == 25.5
        assert payload["userId"] == "abc"
        assert payload["isNecessary"] is True
        assert payload["date"] == "2025-09-13"

    def test_quiz_answer_coerces_numeric_values(self):
        answer = QuizAnswer.model_validate({"questionId": 3, "answer": 2, "category": "habits"})
        assert answer.question_id == "3"
        assert answer.answer == "2"

    def test_quiz_submission_requires_answers(self):
        with pytest.raises(ValidationError):
            QuizSubmission(answers=[])

    def test_savings_goal_input_allows_goal_above_income(self):
        goal = SavingsGoalInput(monthly_income=Decimal("1000"), monthly_savings_goal=Decimal("2000"))
        assert goal.monthly_savings_goal > goal.monthly_income

    def test_unpersisted_savings_goal_has_null_id(self):
        now = datetime.now(timezone.utc)
        goal = SavingsGoal(
            user_id="abc",
            monthly_income=Decimal("3000"),
            monthly_savings_goal=Decimal("900"),
            savings_plan="Save more.",
            created_at=now,
            updated_at=now,
        )
        assert goal.to_api()["id"] is None

    def test_chat_message_input_length_bounds(self):
        with pytest.raises(ValidationError):
            ChatMessageInput(message="")
        with pytest.raises(ValidationError):
            ChatMessageInput(message="x" * 2001)

    def test_daily_analysis_payload_keys(self):
        analysis = DailyAnalysis(
            date=date(2025, 9, 13),
            total_spent=Decimal("55"),
            necessary_spent=Decimal("40"),
            unnecessary_spent=Decimal("15"),
            on_track=True,
            analysis="Fine.",
        )
        assert set(analysis.to_api()) == {
            "date",
            "totalSpent",
            "necessarySpent",
            "unnecessarySpent",
            "onTrack",
            "analysis",
            "recommendations",
        }


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.QUIZ_SUBMITTED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.QUIZ_SUBMITTED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.SPENDING_ENTRY_ADDED,
            user_id="abc",
            entity_type="spending_entry",
            entity_id="7",
            correlation_id=correlation_id,
            description="Spending entry added",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "spending_entry_added"
        assert log_dict["entity_id"] == "7"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_builder_spending_entry_changed(self):
        event = AuditEventBuilder.spending_entry_changed(
            AuditEventType.SPENDING_ENTRY_DELETED,
            user_id="abc",
            entry_id="4",
        )
        assert event.description == "Spending entry deleted"
        assert event.details == {}

    def test_builder_store_soft_failed_includes_cause(self):
        """Test that the chained driver error reaches the log record."""
        try:
            try:
                raise RuntimeError("connection refused")
            except RuntimeError as cause:
                raise StorageError("Database error") from cause
        except StorageError as e:
            event = AuditEventBuilder.store_soft_failed("list_spending_entries", e, user_id="abc")

        assert event.severity == AuditSeverity.WARNING
        assert event.error_type == "StorageError"
        assert "connection refused" in event.error_message

    def test_builder_request_failed_severity(self):
        error = StorageError()
        assert AuditEventBuilder.request_failed("GET", "/x", 500, error).severity == AuditSeverity.ERROR
        assert AuditEventBuilder.request_failed("GET", "/x", 404, error).severity == AuditSeverity.WARNING
