"""Query execution package."""

from mindmoney.queries.executor import QueryExecutor, create_store_engine
from mindmoney.queries.schema import create_schema, metadata

__all__ = ["QueryExecutor", "create_schema", "create_store_engine", "metadata"]
