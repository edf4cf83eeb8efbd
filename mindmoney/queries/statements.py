"""
SQL statements used by the SQL finance storage.

Every value is a named bind parameter; nothing is ever formatted
into the statement text. The dialect subset used here (ON CONFLICT,
RETURNING, LIMIT) runs unchanged on PostgreSQL and SQLite 3.35+.
"""

SELECT_ONE = "SELECT 1 AS ok"


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------

# Conditional create: returns the id only when a row was inserted
INSERT_USER_IF_ABSENT = """
    INSERT INTO users (id, email, name, created_at, updated_at)
    VALUES (:id, :email, :name, :now, :now)
    ON CONFLICT DO NOTHING
    RETURNING id
"""


# -----------------------------------------------------------------------------
# Quiz responses
# -----------------------------------------------------------------------------

INSERT_QUIZ_RESPONSE = """
    INSERT INTO quiz_responses (user_id, answers, analysis, created_at)
    VALUES (:user_id, :answers, :analysis, :created_at)
    RETURNING id
"""

SELECT_LATEST_QUIZ_RESPONSE = """
    SELECT id, user_id, answers, analysis, created_at
    FROM quiz_responses
    WHERE user_id = :user_id
    ORDER BY created_at DESC, id DESC
    LIMIT 1
"""


# -----------------------------------------------------------------------------
# Spending entries
# -----------------------------------------------------------------------------

_SPENDING_COLUMNS = "id, user_id, date, amount, description, category, is_necessary, created_at"

INSERT_SPENDING_ENTRY = """
    INSERT INTO spending_entries
        (user_id, date, amount, description, category, is_necessary, created_at)
    VALUES
        (:user_id, :date, :amount, :description, :category, :is_necessary, :created_at)
    RETURNING id
"""

SELECT_SPENDING_ENTRIES = f"""
    SELECT {_SPENDING_COLUMNS}
    FROM spending_entries
    WHERE user_id = :user_id
    ORDER BY created_at DESC, id DESC
"""

SELECT_SPENDING_ENTRIES_FOR_DATE = f"""
    SELECT {_SPENDING_COLUMNS}
    FROM spending_entries
    WHERE user_id = :user_id AND date = :date
    ORDER BY created_at DESC, id DESC
"""

SELECT_RECENT_SPENDING_ENTRIES = f"""
    SELECT {_SPENDING_COLUMNS}
    FROM spending_entries
    WHERE user_id = :user_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
"""

SELECT_OWNED_SPENDING_ENTRY = f"""
    SELECT {_SPENDING_COLUMNS}
    FROM spending_entries
    WHERE id = :id AND user_id = :user_id
"""

UPDATE_OWNED_SPENDING_ENTRY = """
    UPDATE spending_entries
    SET date = :date,
        amount = :amount,
        description = :description,
        category = :category,
        is_necessary = :is_necessary
    WHERE id = :id AND user_id = :user_id
"""

DELETE_OWNED_SPENDING_ENTRY = """
    DELETE FROM spending_entries
    WHERE id = :id AND user_id = :user_id
"""


# -----------------------------------------------------------------------------
# Savings goals
# -----------------------------------------------------------------------------

UPSERT_SAVINGS_GOAL = """
    INSERT INTO savings_goals
        (user_id, monthly_income, monthly_savings_goal, savings_plan, created_at, updated_at)
    VALUES
        (:user_id, :monthly_income, :monthly_savings_goal, :savings_plan, :now, :now)
    ON CONFLICT (user_id) DO UPDATE SET
        monthly_income = excluded.monthly_income,
        monthly_savings_goal = excluded.monthly_savings_goal,
        savings_plan = excluded.savings_plan,
        updated_at = excluded.updated_at
    RETURNING id, created_at, updated_at
"""

SELECT_SAVINGS_GOAL = """
    SELECT id, user_id, monthly_income, monthly_savings_goal, savings_plan, created_at, updated_at
    FROM savings_goals
    WHERE user_id = :user_id
"""


# -----------------------------------------------------------------------------
# Chat messages
# -----------------------------------------------------------------------------

INSERT_CHAT_MESSAGE = """
    INSERT INTO chat_messages (user_id, message, is_user, timestamp)
    VALUES (:user_id, :message, :is_user, :timestamp)
    RETURNING id
"""

SELECT_CHAT_HISTORY = """
    SELECT id, user_id, message, is_user, timestamp
    FROM chat_messages
    WHERE user_id = :user_id
    ORDER BY timestamp DESC, id DESC
    LIMIT :limit
"""
