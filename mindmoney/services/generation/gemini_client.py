"""
Text Generation Client

DESIGN DECISION: One prompt in, one text out.
Every call is a single-shot request to the Gemini API:
- no conversation state on the provider side
- no streaming
- no retry; a failed call fails the request

The first candidate's first text part is the answer. Anything else
(blocked prompt, empty candidate list, transport error) surfaces as
GenerationError with a short message; provider detail is logged.
"""

from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
import structlog

from mindmoney.config import GeminiSettings, get_settings
from mindmoney.errors import GenerationError


logger = structlog.get_logger(__name__)


class TextGenerationClient(ABC):
    """Anything that turns a prompt into text."""

    @abstractmethod
    async def generate(self, prompt: str, model: Optional[str] = None) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: The full prompt
            model: Model name overriding the configured default

        Raises:
            GenerationError: If no text could be produced
        """
        pass


def _first_candidate_text(response) -> Optional[str]:
    """Text of the first part of the first candidate, if there is one."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    if not parts:
        return None
    text = getattr(parts[0], "text", None)
    return text if text and text.strip() else None


class GeminiTextClient(TextGenerationClient):
    """
    Gemini implementation of the text generation client.

    The API key is taken from settings. Without one the client can
    still be constructed; every call then fails as "not configured".
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._models: dict[str, genai.GenerativeModel] = {}
        if self._settings.api_key:
            genai.configure(api_key=self._settings.api_key)

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.api_key)

    def _model(self, model_name: str) -> genai.GenerativeModel:
        if model_name not in self._models:
            self._models[model_name] = genai.GenerativeModel(
                model_name=model_name,
                generation_config={
                    "temperature": self._settings.temperature,
                    "max_output_tokens": self._settings.max_tokens,
                },
            )
        return self._models[model_name]

    async def generate(self, prompt: str, model: Optional[str] = None) -> str:
        if not self.is_configured:
            raise GenerationError("Text generation not configured")

        model_name = model or self._settings.model_name
        try:
            response = await self._model(model_name).generate_content_async(prompt)
        except Exception as e:
            logger.error(
                "generation_request_failed",
                model=model_name,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise GenerationError("Text generation request failed") from e

        text = _first_candidate_text(response)
        if text is None:
            logger.warning(
                "generation_empty_response",
                model=model_name,
                prompt_feedback=str(getattr(response, "prompt_feedback", "")),
            )
            raise GenerationError("Empty response from text generation")
        return text.strip()
