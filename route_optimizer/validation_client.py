"""
AI-backed address validation, one batch at a time.

Batches are awaited strictly in sequence: progress reporting stays monotonic
and the service never sees more than one of our requests at once. The first
batch that fails aborts the run; callers never receive a partial list.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional, Sequence

from pydantic import TypeAdapter

from .batching import make_batches
from .config import DEFAULT_BATCH_SIZE, DEFAULT_MAX_OUTPUT_TOKENS
from .exceptions import ServiceConfigurationError, ServiceTransportError
from .llm_client import TextGenerator
from .models import ValidationResult
from .responses import decode_response

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


# ─── Request Contract ────────────────────────────────────────────────

VALIDATION_PROMPT = (
    "Parse the following list of addresses. For each address, identify the "
    "house number, street name, city, state, and ZIP code. If the ZIP code is "
    "missing, find the correct one. Mark if the address appears valid. "
    "Addresses: {addresses}"
)

VALIDATION_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "originalAddress": {"type": "string"},
            "houseNumber": {"type": "string"},
            "streetName": {"type": "string"},
            "city": {"type": "string"},
            "state": {"type": "string"},
            "zip": {"type": "string"},
            "isValid": {"type": "boolean"},
            "error": {
                "type": "string",
                "description": "Reason why the address is not valid, if applicable.",
            },
        },
        "required": [
            "originalAddress",
            "houseNumber",
            "streetName",
            "city",
            "state",
            "zip",
            "isValid",
        ],
    },
}

EMPTY_BATCH_MESSAGE = "The AI service returned an empty response for a batch."
FAILED_BATCH_MESSAGE = (
    "The AI service failed to return a valid response for a batch. Please try again."
)

_RESULTS = TypeAdapter(list[ValidationResult])


# ─── Public API ──────────────────────────────────────────────────────


async def validate_addresses(
    addresses: Sequence[str],
    generator: TextGenerator,
    on_progress: Optional[ProgressCallback] = None,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
) -> list[ValidationResult]:
    """Validate every address through the AI service.

    Args:
        addresses: Raw address strings, in row order.
        generator: The text-generation service.
        on_progress: Called after each batch with ``(processed, total)``.

    Returns:
        Decoded results in batch order, then in-batch order (not re-sorted).

    Raises:
        EmptyResponseError, InvalidResponseError, ServiceTransportError:
            on the first batch that fails; remaining batches are skipped.
    """
    total = len(addresses)
    results: list[ValidationResult] = []
    processed = 0

    batches = make_batches(addresses, batch_size)
    for index, batch in enumerate(batches, start=1):
        logger.info(
            "Validating batch %d/%d (%d addresses)", index, len(batches), len(batch)
        )
        results.extend(await _validate_batch(batch, generator, max_output_tokens))

        processed = min(processed + len(batch), total)
        if on_progress is not None:
            on_progress(processed, total)

    logger.info("Validation finished: %d results for %d addresses", len(results), total)
    return results


# ─── Internal Helpers ────────────────────────────────────────────────


async def _validate_batch(
    batch: list[str], generator: TextGenerator, max_output_tokens: int
) -> list[ValidationResult]:
    prompt = VALIDATION_PROMPT.format(addresses=json.dumps(batch))
    try:
        raw = await generator.generate(prompt, VALIDATION_SCHEMA, max_output_tokens)
    except ServiceConfigurationError:
        raise
    except Exception as e:
        logger.error("Validation request failed: %s", e)
        raise ServiceTransportError(
            FAILED_BATCH_MESSAGE, details={"cause": type(e).__name__}
        ) from e

    return decode_response(
        raw,
        _RESULTS,
        empty_message=EMPTY_BATCH_MESSAGE,
        invalid_message=FAILED_BATCH_MESSAGE,
    )
