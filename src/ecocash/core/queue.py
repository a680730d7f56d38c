"""
In-memory offline queue for payments and refunds.

Requests made while the device has no connectivity are parked here and
replayed later, either by an explicit drain (``process_queue``) or by a
periodic timer started on enqueue. Items that keep failing are retried
with exponential backoff and dropped after ``max_attempts``.

Usage:
    queue = OfflineQueue(processor=replay)
    queue.failed.add_listener(lambda err: alert(err.item))
    queue.enqueue(QueueItem(kind=QueueItemKind.PAYMENT, payload=request))

    async for event in queue.processed.subscribe():
        print(event.item.id, event.result)
"""

import asyncio
import uuid
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any, Generic, TypeVar

from ecocash.exceptions import ConfigurationError, QueueExhaustedError
from ecocash.utils.logging import get_logger

logger = get_logger("ecocash.core.queue")

E = TypeVar("E")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INTERVAL = 5.0


class QueueItemKind(StrEnum):
    """Operations that may be deferred."""

    PAYMENT = "payment"
    REFUND = "refund"


@dataclass
class QueueItem:
    """
    A deferred request waiting in the offline queue.

    Items are never mutated once queued; a failed item re-enters the queue
    as a fresh copy produced by ``with_retry``.
    """

    kind: QueueItemKind
    payload: Any
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    attempts: int = 0
    next_retry_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.attempts < 0:
            raise ValueError("attempts must be >= 0")
        self.kind = QueueItemKind(self.kind)

    def seconds_until_due(self, now: datetime | None = None) -> float:
        """Seconds until the item may be processed (0 when already due)."""
        if self.next_retry_at is None:
            return 0.0
        now = now or datetime.now(UTC)
        return max(0.0, (self.next_retry_at - now).total_seconds())

    def is_due(self, now: datetime | None = None) -> bool:
        return self.seconds_until_due(now) == 0.0

    def with_retry(self, next_retry_at: datetime) -> "QueueItem":
        """Copy of this item with one more attempt recorded."""
        return replace(self, attempts=self.attempts + 1, next_retry_at=next_retry_at)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and inspection."""
        payload = self.payload.to_dict() if hasattr(self.payload, "to_dict") else self.payload
        return {
            "id": self.id,
            "kind": self.kind.value,
            "payload": payload,
            "created_at": self.created_at.isoformat(),
            "attempts": self.attempts,
            "next_retry_at": self.next_retry_at.isoformat() if self.next_retry_at else None,
        }


@dataclass
class ProcessedItem:
    """Event emitted when a queued item is replayed successfully."""

    item: QueueItem
    result: Any = None


_CLOSED = object()


class Subscription(Generic[E]):
    """Async iterator over the events of one QueueEventStream subscriber."""

    def __init__(self, stream: "QueueEventStream[E]") -> None:
        self._stream = stream
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def _put(self, event: Any) -> None:
        self._queue.put_nowait(event)

    def __aiter__(self) -> AsyncIterator[E]:
        return self

    async def __anext__(self) -> E:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is _CLOSED:
            self._closed = True
            raise StopAsyncIteration
        return event

    def close(self) -> None:
        """Stop receiving events; pending events are still delivered."""
        if self._closed:
            return
        self._stream._unsubscribe(self)
        self._put(_CLOSED)


class QueueEventStream(Generic[E]):
    """
    Broadcast channel for queue events.

    Every subscriber and listener sees every event emitted after it
    registered. Emitting with nobody listening is a no-op.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: list[Subscription[E]] = []
        self._listeners: list[Callable[[E], Any]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self) -> Subscription[E]:
        """Register a subscriber; it receives events emitted from now on."""
        subscription: Subscription[E] = Subscription(self)
        if self._closed:
            subscription._put(_CLOSED)
        else:
            self._subscriptions.append(subscription)
        return subscription

    def add_listener(self, callback: Callable[[E], Any]) -> Callable[[], None]:
        """
        Register a synchronous callback.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def emit(self, event: E) -> None:
        if self._closed:
            return
        for subscription in list(self._subscriptions):
            subscription._put(event)
        for callback in list(self._listeners):
            try:
                callback(event)
            except Exception:
                logger.exception(f"Listener on '{self.name}' stream raised")

    def _unsubscribe(self, subscription: Subscription[E]) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def close(self) -> None:
        """End every subscription and drop all listeners."""
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription._put(_CLOSED)
        self._subscriptions.clear()
        self._listeners.clear()


Processor = Callable[[QueueItem], Awaitable[Any]]


class OfflineQueue:
    """
    FIFO queue of deferred requests with retry and backoff.

    A failed item is retried after ``backoff_base * 2**attempts`` seconds,
    where ``attempts`` counts the failures so far, and is dropped once
    ``max_attempts`` failures have been recorded. Dropped items are
    reported on the ``failed`` stream as QueueExhaustedError; successes
    are reported on ``processed`` as ProcessedItem.
    """

    def __init__(
        self,
        processor: Processor | None = None,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL,
        backoff_base: float = 1.0,
    ):
        """
        Initialize offline queue.

        Args:
            processor: Async callable replaying one item; enables the periodic timer
            max_attempts: Failures after which an item is dropped
            interval: Seconds between timer ticks
            backoff_base: Seconds multiplied by ``2**attempts`` to schedule a retry
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if interval <= 0:
            raise ValueError("interval must be > 0")
        if backoff_base < 0:
            raise ValueError("backoff_base must be >= 0")

        self.processor = processor
        self.max_attempts = max_attempts
        self.interval = interval
        self.backoff_base = backoff_base

        self.processed: QueueEventStream[ProcessedItem] = QueueEventStream("processed")
        self.failed: QueueEventStream[QueueExhaustedError] = QueueEventStream("failed")

        self._items: deque[QueueItem] = deque()
        self._processing = False
        self._timer_task: asyncio.Task | None = None
        self._disposed = False

    @property
    def size(self) -> int:
        return len(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __len__(self) -> int:
        return len(self._items)

    # --- Queue operations -----------------------------------------------------

    def enqueue(self, item: QueueItem) -> None:
        """Append an item and make sure the timer is running."""
        if self._disposed:
            raise RuntimeError("Cannot enqueue on a disposed offline queue")
        self._items.append(item)
        logger.info(f"Queued {item.kind.value} request {item.id} (queue size: {len(self._items)})")
        self._ensure_timer()

    def enqueue_all(self, items: Iterable[QueueItem]) -> None:
        if self._disposed:
            raise RuntimeError("Cannot enqueue on a disposed offline queue")
        added = list(items)
        self._items.extend(added)
        logger.info(f"Queued {len(added)} requests (queue size: {len(self._items)})")
        self._ensure_timer()

    def dequeue(self) -> QueueItem | None:
        """Remove and return the head item, or None when empty."""
        return self._items.popleft() if self._items else None

    def peek(self) -> QueueItem | None:
        """Return the head item without removing it, or None when empty."""
        return self._items[0] if self._items else None

    def get_all(self) -> list[QueueItem]:
        """Snapshot of the queued items in order."""
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def remove_expired_items(self, max_age: float | timedelta) -> int:
        """
        Drop items created longer than ``max_age`` ago.

        Args:
            max_age: Maximum age in seconds or as a timedelta

        Returns:
            Number of items removed
        """
        if not isinstance(max_age, timedelta):
            max_age = timedelta(seconds=max_age)
        cutoff = datetime.now(UTC) - max_age
        kept = [item for item in self._items if item.created_at >= cutoff]
        removed = len(self._items) - len(kept)
        if removed:
            self._items = deque(kept)
            logger.info(f"Removed {removed} expired items from offline queue")
        return removed

    # --- Processing -----------------------------------------------------------

    async def process_queue(self, processor: Processor | None = None) -> int:
        """
        Drain the queue until it is empty.

        Items waiting on backoff are awaited rather than skipped, so a call
        returns only once every item has either succeeded or been dropped.
        Does nothing while another drain is running.

        Args:
            processor: Overrides the queue's processor for this drain

        Returns:
            Number of processing attempts made
        """
        processor = processor or self.processor
        if processor is None:
            raise ConfigurationError("No processor configured for the offline queue")
        if self._processing:
            logger.debug("Offline queue drain already in progress; skipping")
            return 0

        self._processing = True
        handled = 0
        try:
            while self._items and not self._disposed:
                item = self._pop_due()
                if item is None:
                    await asyncio.sleep(self._seconds_until_next_due())
                    continue
                await self._process_item(item, processor)
                handled += 1
        finally:
            self._processing = False

        return handled

    def _pop_due(self) -> QueueItem | None:
        """Remove and return the first due item, keeping the order of the rest."""
        now = datetime.now(UTC)
        for item in self._items:
            if item.is_due(now):
                self._items.remove(item)
                return item
        return None

    def _seconds_until_next_due(self) -> float:
        now = datetime.now(UTC)
        return min((item.seconds_until_due(now) for item in self._items), default=0.0)

    async def _process_item(self, item: QueueItem, processor: Processor) -> None:
        try:
            result = await processor(item)
        except Exception as e:
            attempts = item.attempts + 1
            if attempts >= self.max_attempts:
                exhausted = replace(item, attempts=attempts)
                logger.error(f"Dropping queued {item.kind.value} request {item.id} after {attempts} attempts: {e}")
                self.failed.emit(QueueExhaustedError(exhausted, e))
                return

            if self._disposed:
                logger.warning(f"Queue disposed; discarding failed {item.kind.value} request {item.id}")
                return

            delay = self.backoff_base * (2**attempts)
            retry = item.with_retry(datetime.now(UTC) + timedelta(seconds=delay))
            self._items.append(retry)
            logger.warning(
                f"Queued {item.kind.value} request {item.id} attempt {attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            return

        logger.info(f"Processed queued {item.kind.value} request {item.id}")
        self.processed.emit(ProcessedItem(item=item, result=result))

    # --- Timer ----------------------------------------------------------------

    def _ensure_timer(self) -> None:
        if self.processor is None or self._disposed:
            return
        if self._timer_task is not None and not self._timer_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop; items wait for an explicit process_queue()
            return
        self._timer_task = loop.create_task(self._run_timer(), name="ecocash-offline-queue")

    async def _run_timer(self) -> None:
        while self._items and not self._disposed:
            await asyncio.sleep(self.interval)
            await self._tick()
        logger.debug("Offline queue empty; timer stopped")

    async def _tick(self) -> None:
        """Process at most one due item."""
        if self._processing or self.processor is None:
            return
        item = self._pop_due()
        if item is None:
            return
        self._processing = True
        try:
            await self._process_item(item, self.processor)
        finally:
            self._processing = False

    def stop(self) -> None:
        """Cancel the periodic timer; queued items are kept."""
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = None

    def dispose(self) -> None:
        """Stop the timer, close both event streams and discard all items."""
        if self._disposed:
            return
        self._disposed = True
        self.stop()
        self.processed.close()
        self.failed.close()
        self._items.clear()
        logger.debug("Offline queue disposed")
