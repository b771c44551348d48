"""
Text-generation providers.

The pipeline needs exactly one thing from a model: given a system prompt
and the chat messages of a GenerationRequest, return the reply as text.
LLMProvider is that seam.

- AnthropicProvider: the Anthropic Messages API via the official SDK
- NullLLMProvider: no network; records calls and answers with a fixed
  non-recipe text (so the pipeline treats it as an unparseable reply)

Which one is used is decided from Settings, never from module state.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List
import logging

import anthropic

from .config import Settings

logger = logging.getLogger(__name__)

NULL_REPLY_TEXT = "[NullLLM: No real LLM call made]"

Messages = List[Dict[str, str]]


class LLMProvider(ABC):
    """Turns a system prompt plus chat messages into reply text."""

    @abstractmethod
    def complete(
        self,
        system: str,
        messages: Messages,
        *,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Return the model's reply text.

        Provider exceptions propagate unchanged; GenerationClient classifies
        them.
        """

    @property
    @abstractmethod
    def is_null(self) -> bool:
        """True if no real model is behind this provider."""


def reply_text(message: Any) -> str:
    """Concatenate the text blocks of a Messages API reply, skipping other block types."""
    return "".join(
        block.text
        for block in (getattr(message, "content", None) or [])
        if getattr(block, "type", "text") == "text" and getattr(block, "text", None)
    )


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API."""

    def __init__(self, api_key: str):
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY required for AnthropicProvider")
        # SDK retries are off: RetryOrchestrator owns the attempt budget
        self.client = anthropic.Anthropic(api_key=api_key, max_retries=0)

    def complete(self, system, messages, *, model, max_tokens, temperature) -> str:
        message = self.client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system,
            messages=messages,
        )
        if getattr(message, "stop_reason", None) == "max_tokens":
            # The parser will try to close the truncated JSON
            logger.warning(f"[PROVIDER] Reply hit max_tokens={max_tokens} and is truncated")
        return reply_text(message)

    @property
    def is_null(self) -> bool:
        return False


class NullLLMProvider(LLMProvider):
    """
    Runs the API and CLI without credentials.

    It does not imitate a model. Every call is recorded in ``calls`` and
    answered with NULL_REPLY_TEXT.
    """

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        logger.info("NullLLMProvider initialized - generation calls will not reach a model")

    def complete(self, system, messages, *, model, max_tokens, temperature) -> str:
        self.calls.append({"system": system, "messages": messages, "model": model})
        logger.debug(f"NullLLM call #{len(self.calls)}: model={model}, messages={len(messages)}")
        return NULL_REPLY_TEXT

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def is_null(self) -> bool:
        return True


def get_llm_provider(settings: Settings) -> LLMProvider:
    """Provider for ``settings``, falling back to NullLLMProvider without a key."""
    if settings.use_null_llm:
        return NullLLMProvider()
    if not settings.anthropic_api_key:
        logger.warning("No ANTHROPIC_API_KEY found, using NullLLMProvider")
        return NullLLMProvider()
    return AnthropicProvider(settings.anthropic_api_key)


def require_llm_provider(settings: Settings) -> LLMProvider:
    """Like get_llm_provider, but a missing key is an error instead of a fallback."""
    if settings.use_null_llm:
        return NullLLMProvider()
    if not settings.anthropic_api_key:
        raise ValueError(
            "ANTHROPIC_API_KEY required. "
            "Set environment variable or use USE_NULL_LLM=true for testing."
        )
    return AnthropicProvider(settings.anthropic_api_key)
