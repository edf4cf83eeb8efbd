"""Services package."""

from mindmoney.services.generation import (
    GeminiTextClient,
    TextGenerationClient,
)
from mindmoney.services.storage import (
    FinanceStorageInterface,
    InMemoryFinanceStorage,
    SqlFinanceStorage,
)

__all__ = [
    # Text generation
    "GeminiTextClient",
    "TextGenerationClient",
    # Storage services
    "FinanceStorageInterface",
    "InMemoryFinanceStorage",
    "SqlFinanceStorage",
]
