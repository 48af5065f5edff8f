"""Split an address list into fixed-size request batches."""

from __future__ import annotations

from typing import Sequence, TypeVar

from .config import DEFAULT_BATCH_SIZE

T = TypeVar("T")


def make_batches(items: Sequence[T], size: int = DEFAULT_BATCH_SIZE) -> list[list[T]]:
    """Return contiguous, order-preserving chunks of at most ``size`` items.

    An empty input yields no batches; no batch is ever empty.
    """
    if size < 1:
        raise ValueError(f"Batch size must be at least 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]
