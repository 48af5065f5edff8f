"""
AI-proposed visiting order, reconciled by id with an identity fallback.

Flow:
  validated records ─► {id, address} payload ─► AI ─► decoded stop ids
                                                         │
                       id → record lookup (unknown ids dropped)
                                                         │
                 every input resolved exactly once? ──no──► original order
                                                         │
                                                        yes
                                                         ▼
                                                   reordered records

A partial or duplicated reorder is worse than no reorder, so the integrity
gate is not optional: on mismatch the input order is returned unchanged and
only a warning is logged.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence

from pydantic import TypeAdapter

from .config import DEFAULT_MAX_OUTPUT_TOKENS
from .exceptions import (
    InsufficientAddressesError,
    RouteOptimizationError,
    ServiceConfigurationError,
    ServiceResponseError,
)
from .llm_client import TextGenerator
from .models import AddressRecord, RouteResult
from .responses import decode_response

logger = logging.getLogger(__name__)


# ─── Request Contract ────────────────────────────────────────────────

ROUTE_PROMPT = (
    "You are an expert logistician. Given this list of addresses with IDs, "
    "determine the most efficient travel route to visit all of them. The "
    "starting point is the first address in the list. Return the full list of "
    "address objects, sorted in the optimal travel order. Addresses: {addresses}"
)

ROUTE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "optimizedRoute": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "number"},
                    "address": {"type": "string"},
                },
            },
        }
    },
    "required": ["optimizedRoute"],
}

MIN_ROUTE_STOPS = 2
INSUFFICIENT_MESSAGE = "At least two valid addresses are required to optimize a route."
ROUTE_FAILED_MESSAGE = "The AI service failed to optimize the route. Please try again."

_ROUTE = TypeAdapter(RouteResult)


# ─── Public API ──────────────────────────────────────────────────────


async def optimize_route(
    records: Sequence[AddressRecord],
    generator: TextGenerator,
    *,
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
) -> list[AddressRecord]:
    """Order the validated records for efficient visiting.

    Only VALIDATED records take part; the first one is the fixed start.

    Raises:
        InsufficientAddressesError: fewer than two validated records
            (raised before any service call).
        RouteOptimizationError: the request failed or its response could
            not be decoded.
    """
    stops = [r for r in records if r.is_validated]
    if len(stops) < MIN_ROUTE_STOPS:
        raise InsufficientAddressesError(
            INSUFFICIENT_MESSAGE, details={"validated_count": len(stops)}
        )

    route = await _request_route(stops, generator, max_output_tokens)
    return _reconcile_route(stops, route)


# ─── Internal Helpers ────────────────────────────────────────────────


async def _request_route(
    stops: list[AddressRecord], generator: TextGenerator, max_output_tokens: int
) -> RouteResult:
    payload = [{"id": r.id, "address": r.single_line()} for r in stops]
    prompt = ROUTE_PROMPT.format(addresses=json.dumps(payload))

    try:
        raw = await generator.generate(prompt, ROUTE_SCHEMA, max_output_tokens)
    except ServiceConfigurationError:
        raise
    except Exception as e:
        logger.error("Route request failed: %s", e)
        raise RouteOptimizationError(
            ROUTE_FAILED_MESSAGE, details={"reason": "TRANSPORT_FAILED"}
        ) from e

    try:
        return decode_response(
            raw,
            _ROUTE,
            empty_message=(
                "The AI service returned an empty response. This could be due "
                "to a content filter or an API issue."
            ),
            invalid_message=ROUTE_FAILED_MESSAGE,
        )
    except ServiceResponseError as e:
        raise RouteOptimizationError(
            ROUTE_FAILED_MESSAGE, details={"reason": e.code}
        ) from e


def _reconcile_route(
    stops: list[AddressRecord], route: RouteResult
) -> list[AddressRecord]:
    by_id = {r.id: r for r in stops}
    resolved = (by_id.get(s.id) for s in route.optimized_route)
    ordered = [r for r in resolved if r is not None]

    if len(ordered) != len(stops):
        logger.warning(
            "Mismatch in optimized route length (%d resolved, %d expected). "
            "Returning original order.",
            len(ordered),
            len(stops),
        )
        return list(stops)

    # Right length but a repeated id means another stop went missing.
    if len({r.id for r in ordered}) != len(stops):
        logger.warning("Optimized route repeats a stop. Returning original order.")
        return list(stops)

    return ordered
