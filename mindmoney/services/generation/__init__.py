"""Text generation services package."""

from mindmoney.services.generation.gemini_client import (
    GeminiTextClient,
    TextGenerationClient,
)

__all__ = ["GeminiTextClient", "TextGenerationClient"]
