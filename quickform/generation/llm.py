"""Chat-model helpers for content-generating operation bodies.

The pipeline has no retry or timeout primitive of its own; operation bodies
that call a remote model use :class:`ChatModel`, which retries transient API
failures itself.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import openai
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.errors import QuickformError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class GenerationError(QuickformError):
    """Raised when a model response cannot be used."""


def fill_prompt(template: str, **values: Any) -> str:
    """Substitute ``{name}`` placeholders, leaving every other brace alone.

    Prompt texts often embed JSON examples, which ``str.format`` would choke on.
    """
    text = template
    for key, value in values.items():
        text = text.replace(f"{{{key}}}", str(value))
    return text


@dataclass
class ChatModel:
    """Thin wrapper over an ``openai.AsyncOpenAI`` chat completion client."""

    client: Any
    model: str = DEFAULT_MODEL
    temperature: float = 0.2

    @classmethod
    def from_env(cls, model: str = DEFAULT_MODEL, **kwargs: Any) -> "ChatModel":
        """Create a model using ``OPENAI_API_KEY`` and friends from the environment."""
        return cls(client=openai.AsyncOpenAI(), model=model, **kwargs)

    @retry(
        reraise=True,
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=20),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    async def _create(self, messages: list[dict[str, str]], json_mode: bool) -> Any:
        params: dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "messages": messages,
        }
        if json_mode:
            params["response_format"] = {"type": "json_object"}
        return await self.client.chat.completions.create(**params)

    async def complete(self, system: str, prompt: str, *, json_mode: bool = False) -> str:
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]
        logger.debug(f"Requesting completion from {self.model} ({len(prompt)} prompt chars)")
        response = await self._create(messages, json_mode)

        if not response.choices:
            raise GenerationError(f"{self.model} returned no choices")
        content = response.choices[0].message.content
        if not content:
            raise GenerationError(f"{self.model} returned an empty message")
        return content

    async def complete_json(self, system: str, prompt: str) -> Any:
        """Request a JSON object response and parse it."""
        content = await self.complete(system, prompt, json_mode=True)
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise GenerationError(f"{self.model} returned invalid JSON: {exc}") from exc
