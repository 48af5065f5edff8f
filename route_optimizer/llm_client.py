"""
Text-generation seam over the external AI service.

Everything downstream depends only on ``TextGenerator.generate``: a prompt and
a JSON-schema descriptor go in, raw text (possibly empty, fenced or malformed)
comes out. Tests substitute canned-text generators; production uses OpenAI.

Design:
  - Structured output is requested, never assumed; callers sanitize and decode.
  - Object-rooted schemas are sent as a ``json_schema`` response format.
    Array-rooted schemas (the validation batch) cannot be, so the schema is
    also spelled out in the system prompt.
  - No API key → ServiceConfigurationError at call time, not at import.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Protocol

from openai import AsyncOpenAI

from .config import Settings, load_settings
from .exceptions import ServiceConfigurationError

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """\
You are an address data assistant for a delivery routing tool.
Answer ONLY with JSON that conforms to this JSON schema:
{schema}

Do not wrap the JSON in Markdown. Do not add commentary.
"""


class TextGenerator(Protocol):
    """Anything that can turn a prompt plus output schema into raw text."""

    async def generate(
        self, prompt: str, schema: dict[str, Any], max_output_tokens: int
    ) -> Optional[str]: ...


class OpenAITextGenerator:
    """TextGenerator backed by the OpenAI chat completions API."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.settings = settings or load_settings()
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.settings.api_key:
                raise ServiceConfigurationError(
                    "The AI service is not configured. Set OPENAI_API_KEY and try again."
                )
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
            )
        return self._client

    async def generate(
        self, prompt: str, schema: dict[str, Any], max_output_tokens: int
    ) -> Optional[str]:
        client = self._get_client()

        request: dict[str, Any] = {
            "model": self.settings.model,
            "messages": [
                {
                    "role": "system",
                    "content": SYSTEM_PROMPT.format(schema=json.dumps(schema)),
                },
                {"role": "user", "content": prompt},
            ],
            "max_completion_tokens": max_output_tokens,
        }
        if self.settings.reasoning_effort:
            request["reasoning_effort"] = self.settings.reasoning_effort
        if schema.get("type") == "object":
            request["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "response", "schema": schema},
            }

        logger.debug("Calling %s (%d prompt chars)", self.settings.model, len(prompt))
        response = await client.chat.completions.create(**request)

        content = response.choices[0].message.content
        if content is None:
            logger.warning("AI service returned no message content")
        return content
