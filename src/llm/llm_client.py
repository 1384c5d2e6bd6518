import json
import logging
import os
from typing import Any, Optional

from llm.providers.base import LLMProvider
from schedule_ai.errors import ExternalServiceError, ParseFormatError

logger = logging.getLogger(__name__)

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai").strip().lower()


def _provider_from_env(name: str) -> LLMProvider:
    if name == "openai":
        from llm.providers.openai_provider import OpenAIProvider
        return OpenAIProvider()
    if name == "ollama":
        from llm.providers.ollama_provider import OllamaProvider
        return OllamaProvider()
    if name == "mock":
        from llm.providers.mock_provider import MockProvider
        return MockProvider()
    raise RuntimeError(f"Unknown LLM_PROVIDER: {name}")


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class LLMClient:
    """Provider-agnostic JSON completion.

    The provider is resolved lazily from LLM_PROVIDER so a missing API key
    fails the request that needs it, not application startup.
    """

    def __init__(self, provider: Optional[LLMProvider] = None):
        self._provider = provider

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = _provider_from_env(LLM_PROVIDER)
        return self._provider

    def complete(self, *, system: str, user: str, image: Optional[bytes] = None) -> str:
        try:
            return self.provider.generate(system=system, user=user, image=image)
        except Exception as e:
            raise ExternalServiceError(f"AI parsing failed: {e}") from e

    def complete_json(
        self, *, system: str, user: str, image: Optional[bytes] = None
    ) -> dict[str, Any]:
        """Return the model output as a JSON object.

        Markdown code fences are tolerated; anything else that is not a JSON
        object raises ParseFormatError.
        """
        raw = self.complete(system=system, user=user, image=image)
        try:
            data = json.loads(_strip_code_fence(raw or ""))
        except json.JSONDecodeError as e:
            logger.warning(f"LLM returned non-JSON output: {(raw or '')[:80]!r}")
            raise ParseFormatError("Invalid response format from AI parsing") from e

        if not isinstance(data, dict):
            raise ParseFormatError("Invalid response format from AI parsing")
        return data
