"""Pytest configuration — project root importable, no live AI calls, canned generators."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Optional, Union

import pytest

sys.path.insert(0, str(Path(__file__).parent))

CannedResponse = Union[str, None, BaseException]


class FakeGenerator:
    """TextGenerator that replays canned responses and records every call.

    Each call consumes the next response; an exception instance is raised
    instead of returned.
    """

    def __init__(self, *responses: CannedResponse):
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def generate(
        self, prompt: str, schema: dict[str, Any], max_output_tokens: int
    ) -> Optional[str]:
        self.calls.append(
            {"prompt": prompt, "schema": schema, "max_output_tokens": max_output_tokens}
        )
        if not self.responses:
            raise AssertionError("FakeGenerator ran out of canned responses")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture(autouse=True)
def _no_llm_calls(monkeypatch: pytest.MonkeyPatch):
    """Strip the API key so nothing in the suite can reach the real service."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    yield


@pytest.fixture
def make_generator():
    """Factory for FakeGenerator instances."""
    return FakeGenerator
