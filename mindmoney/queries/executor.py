"""
Query Execution Engine

DESIGN DECISION: One statement, one connection.
Every call checks out exactly one connection, runs exactly one
parameterized statement, commits and releases the connection, on
success and on failure alike. The engine uses NullPool, so
"release" means the DBAPI connection is really closed and nothing
is shared between concurrent requests.

CRITICAL: Values are only ever passed as bound parameters.
Statement text comes from `mindmoney.queries.statements` and is
never built from request data.

Driver errors surface as StorageError with the original exception
chained. Whether a failure is fatal for the request is decided by
the caller (see the store-failure policy in the orchestrator).
"""

import asyncio
from typing import Any, Mapping, Optional

from sqlalchemy import Engine, create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from mindmoney.config import DatabaseSettings, get_settings
from mindmoney.errors import StorageError
from mindmoney.queries.statements import SELECT_ONE


def create_store_engine(url: str, connect_args: Optional[dict] = None) -> Engine:
    """Create an engine that opens a fresh connection per checkout."""
    return create_engine(
        url,
        poolclass=NullPool,
        connect_args=connect_args or {},
    )


class QueryExecutor:
    """
    Runs single SQL statements against the relational store.

    GUARANTEES:
    - Exactly one connection per call, always released
    - Parameters bound by the driver, never interpolated
    - Results returned as plain dicts keyed by column name
    """

    def __init__(self, engine: Engine):
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: Optional[DatabaseSettings] = None) -> "QueryExecutor":
        settings = settings or get_settings().database
        return cls(create_store_engine(settings.sqlalchemy_url, settings.connect_args))

    @property
    def engine(self) -> Engine:
        return self._engine

    def run(
        self,
        statement: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> list[dict]:
        """
        Execute one statement synchronously.

        Returns:
            Rows as dicts; empty for statements without a result set

        Raises:
            StorageError: If connecting or executing fails
        """
        try:
            with self._engine.connect() as connection:
                result = connection.execute(text(statement), dict(params or {}))
                rows = [dict(row) for row in result.mappings()] if result.returns_rows else []
                connection.commit()
                return rows
        except SQLAlchemyError as e:
            raise StorageError("Database error") from e

    async def execute(
        self,
        statement: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> list[dict]:
        """Execute one statement without blocking the event loop."""
        return await asyncio.to_thread(self.run, statement, params)

    async def ping(self) -> bool:
        """Round-trip a trivial statement; raises StorageError when unreachable."""
        await self.execute(SELECT_ONE)
        return True

    async def list_tables(self) -> list[str]:
        """Names of the tables visible on the default schema."""
        def _inspect() -> list[str]:
            try:
                return sorted(inspect(self._engine).get_table_names())
            except SQLAlchemyError as e:
                raise StorageError("Database error") from e

        return await asyncio.to_thread(_inspect)
