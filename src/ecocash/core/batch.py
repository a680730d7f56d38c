"""
Bounded-concurrency batch dispatch.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ecocash.utils.logging import get_logger

logger = get_logger("ecocash.core.batch")

T = TypeVar("T")
R = TypeVar("R")

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 10


@dataclass
class BatchResult(Generic[R]):
    """
    Outcome of a batch, keyed by each item's index in the input.

    Every input index appears in exactly one of ``successful`` and ``failed``.
    """

    successful: dict[int, R] = field(default_factory=dict)
    failed: dict[int, Exception] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.successful) + len(self.failed)

    @property
    def success_rate(self) -> float:
        """Percentage of items that succeeded (0.0 for an empty batch)."""
        if self.total == 0:
            return 0.0
        return len(self.successful) / self.total * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "successful": {i: r.to_dict() if hasattr(r, "to_dict") else r for i, r in self.successful.items()},
            "failed": {i: f"{type(e).__name__}: {e}" for i, e in self.failed.items()},
            "total": self.total,
            "success_rate": self.success_rate,
        }


def clamp_concurrency(concurrency: int) -> int:
    return max(MIN_CONCURRENCY, min(MAX_CONCURRENCY, concurrency))


class BatchDispatcher:
    """
    Runs an async function over a list of items in fixed-size chunks.

    Chunks run strictly one after another; items inside a chunk run
    concurrently. A failing item never cancels its siblings. The dispatcher
    holds no state and adds no retry of its own.

    Examples:
        >>> dispatcher = BatchDispatcher()
        >>> result = await dispatcher.run(requests, client.make_payment_request, concurrency=3)
        >>> result.success_rate
        100.0
    """

    async def run(
        self,
        items: Sequence[T],
        per_item: Callable[[T], Awaitable[R]],
        concurrency: int = 3,
    ) -> BatchResult[R]:
        """
        Dispatch ``per_item`` over ``items``.

        Args:
            items: Inputs, in order
            per_item: Async callable applied to each input
            concurrency: Chunk size, clamped to [1, 10]

        Returns:
            BatchResult keyed by input index
        """
        size = clamp_concurrency(concurrency)
        if size != concurrency:
            logger.debug(f"Batch concurrency {concurrency} clamped to {size}")

        result: BatchResult[R] = BatchResult()

        for start in range(0, len(items), size):
            chunk = items[start : start + size]
            outcomes = await asyncio.gather(*(per_item(item) for item in chunk), return_exceptions=True)

            for offset, outcome in enumerate(outcomes):
                index = start + offset
                if isinstance(outcome, Exception):
                    result.failed[index] = outcome
                elif isinstance(outcome, BaseException):
                    # Cancellation and interpreter exits are not per-item failures
                    raise outcome
                else:
                    result.successful[index] = outcome

        logger.info(
            f"Batch finished: {len(result.successful)}/{result.total} succeeded " f"({result.success_rate:.1f}%)"
        )
        return result
