"""
Storage Services Package

Provides the abstract finance storage interface and its two
implementations: SQL (production) and in-memory (tests, local runs).
"""

from mindmoney.services.storage.interface import FinanceStorageInterface
from mindmoney.services.storage.memory import InMemoryFinanceStorage
from mindmoney.services.storage.sql import SqlFinanceStorage

__all__ = [
    # Interface
    "FinanceStorageInterface",
    # Implementations
    "InMemoryFinanceStorage",
    "SqlFinanceStorage",
]
