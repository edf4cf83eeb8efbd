"""
Relational schema for MindMoney.

Declared once with SQLAlchemy Core so the same tables can be created
on PostgreSQL (production) and SQLite (tests, local development).
Statements in `mindmoney.queries.statements` are written against
these tables.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Engine,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)


metadata = MetaData()


users = Table(
    "users",
    metadata,
    Column("id", String(255), primary_key=True),
    # Identity provider owns email uniqueness
    Column("email", String(255), nullable=False),
    Column("name", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

quiz_responses = Table(
    "quiz_responses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("answers", Text, nullable=False),  # JSON array
    Column("analysis", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("idx_quiz_user_created", "user_id", "created_at"),
)

spending_entries = Table(
    "spending_entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(255), nullable=False),
    Column("date", Date, nullable=False),
    Column("amount", Numeric(10, 2), nullable=False),
    Column("description", String(500), nullable=False),
    Column("category", String(100), nullable=False),
    Column("is_necessary", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("idx_spending_user_date", "user_id", "date"),
    Index("idx_spending_category", "category"),
)

savings_goals = Table(
    "savings_goals",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(255), unique=True, nullable=False),
    Column("monthly_income", Numeric(10, 2), nullable=False),
    Column("monthly_savings_goal", Numeric(10, 2), nullable=False),
    Column("savings_plan", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

chat_messages = Table(
    "chat_messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("is_user", Boolean, nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Index("idx_chat_user_timestamp", "user_id", "timestamp"),
)


def create_schema(engine: Engine) -> None:
    """Create every missing table and index."""
    metadata.create_all(engine)
