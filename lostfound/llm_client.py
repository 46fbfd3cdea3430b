# llm_client.py
"""
Language-model providers.

The normalizer and the validator only need "send these chat messages, give
me the JSON text back". ``LLMProvider`` is that interface; ``OpenAIProvider``
implements it with the OpenAI chat completions API in JSON mode. Calls are
made once, without automatic retries: a failed call fails the whole import.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from lostfound.errors import MissingApiKeyError, ModelTransportError
from lostfound.settings import Settings

logger = logging.getLogger(__name__)

Message = Dict[str, str]

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class LLMProvider(ABC):
    """Abstract base class for chat model providers."""

    @abstractmethod
    def complete(self, messages: List[Message]) -> str:
        """Send chat messages and return the raw text of the reply.

        Raises:
            ModelTransportError: if the request could not be completed.
        """
        raise NotImplementedError


class OpenAIProvider(LLMProvider):
    """Provider backed by the OpenAI chat completions API (JSON mode)."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        temperature: float = 0.0,
        timeout: float = 120.0,
        client: Optional[OpenAI] = None,
    ) -> None:
        if not api_key:
            raise MissingApiKeyError()
        self.model = model
        self.temperature = temperature
        self.client = client or OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def complete(self, messages: List[Message]) -> str:
        logger.debug("Sending %d message(s) to %s", len(messages), self.model)
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                temperature=self.temperature,
                messages=messages,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            logger.error("OpenAI request failed: %s", exc)
            raise ModelTransportError(f"Language model request failed: {exc}") from exc
        return response.choices[0].message.content or ""


def get_default_provider(settings: Settings) -> LLMProvider:
    """Build the provider described by the settings.

    Raises:
        MissingApiKeyError: when OPENAI_API_KEY is not configured.
    """
    if not settings.has_api_key:
        raise MissingApiKeyError()
    return OpenAIProvider(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        temperature=settings.OPENAI_TEMPERATURE,
        timeout=settings.OPENAI_TIMEOUT,
    )


def strip_code_fence(content: str) -> str:
    """Remove an optional ```json ... ``` wrapper around a reply."""
    return _CODE_FENCE.sub("", (content or "").strip()).strip()


def parse_json_reply(content: str) -> Any:
    """Decode a model reply as JSON after stripping code fences.

    Raises:
        ValueError: if the reply is not valid JSON.
    """
    return json.loads(strip_code_fence(content))
