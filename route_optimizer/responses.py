"""
Sanitize-then-decode for untrusted AI output.

The service is asked for schema-conforming JSON but is not trusted to deliver
it. Every response goes through the same steps, in order:

  1. Trim surrounding whitespace.
  2. Reject an empty or missing payload (EmptyResponseError).
  3. Strip a Markdown code fence, tagged (```json) or bare (```).
  4. Decode against the expected pydantic schema.
  5. Reject anything that does not decode (InvalidResponseError). The raw
     text is logged for diagnosis and never put in the user-facing message.
"""

from __future__ import annotations

import logging
import re
from typing import TypeVar

from pydantic import TypeAdapter, ValidationError

from .exceptions import EmptyResponseError, InvalidResponseError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CODE_FENCE = re.compile(r"^```[\w-]*[ \t]*\n?(?P<body>.*?)\n?[ \t]*```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a wrapping ```json ... ``` (or bare ``` ... ```) fence, if any."""
    match = _CODE_FENCE.match(text)
    if match is None:
        return text
    return match.group("body").strip()


def clean_response_text(raw: str | None, empty_message: str) -> str:
    """Steps 1–3: trim, reject empty, strip the fence."""
    text = (raw or "").strip()
    if not text:
        raise EmptyResponseError(empty_message)
    return strip_code_fence(text)


def decode_response(
    raw: str | None,
    adapter: TypeAdapter[T],
    *,
    empty_message: str,
    invalid_message: str,
) -> T:
    """Run the full sanitize-then-decode procedure on one response."""
    text = clean_response_text(raw, empty_message)
    try:
        return adapter.validate_json(text)
    except ValidationError as e:
        logger.error("AI response failed schema decoding: %s", e)
        logger.error("Raw AI response text: %s", raw)
        raise InvalidResponseError(
            invalid_message,
            raw_text=raw or "",
            details={"errors": e.error_count()},
        ) from e
