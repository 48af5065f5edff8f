"""Runtime settings read from the environment (``.env`` is loaded by the entry points)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from .exceptions import ServiceConfigurationError

DEFAULT_MODEL = "gpt-5"
DEFAULT_BATCH_SIZE = 50  # Addresses per AI request, keeps responses under the output cap
DEFAULT_MAX_OUTPUT_TOKENS = 8192
DEFAULT_REASONING_EFFORT = "low"  # Leaves the output cap for the JSON itself


@dataclass
class Settings:
    api_key: str
    model: str = DEFAULT_MODEL
    base_url: Optional[str] = None
    batch_size: int = DEFAULT_BATCH_SIZE
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    reasoning_effort: Optional[str] = DEFAULT_REASONING_EFFORT  # None: not sent


def load_settings() -> Settings:
    """Read settings from the environment.

    Raises:
        ServiceConfigurationError: a numeric setting is not a positive integer.
    """
    return Settings(
        api_key=os.getenv("OPENAI_API_KEY", ""),
        model=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
        base_url=os.getenv("OPENAI_BASE_URL") or None,
        batch_size=_positive_int("ROUTE_OPTIMIZER_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        max_output_tokens=_positive_int(
            "ROUTE_OPTIMIZER_MAX_OUTPUT_TOKENS", DEFAULT_MAX_OUTPUT_TOKENS
        ),
        reasoning_effort=os.getenv(
            "ROUTE_OPTIMIZER_REASONING_EFFORT", DEFAULT_REASONING_EFFORT
        ) or None,
    )


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError as e:
        raise ServiceConfigurationError(
            f"{name} must be a positive integer, got {raw!r}."
        ) from e
    if value < 1:
        raise ServiceConfigurationError(f"{name} must be a positive integer, got {raw!r}.")
    return value
