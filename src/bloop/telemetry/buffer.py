# src/bloop/telemetry/buffer.py
"""Thread-safe drainable buffer for events and serialized traces.

Producers append from any thread; the flush engine drains. Two limits:
- capacity: size at which add() reports that a flush is due
- max_size: hard cap; the oldest item is evicted beyond it

Key design decisions:
- One lock around append and drain: drain is the only synchronization
  point between producers and the flush paths
- Level trigger: every add() at or above capacity reports True. Extra
  flush requests are harmless because draining an empty buffer is a no-op
- Ring eviction via deque(maxlen=N), counted BEFORE append (deque evicts
  during append)
- Aggregate logging: Log every 100 evictions to prevent Warning Fatigue
"""

from collections import deque
from threading import Lock
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class DrainableBuffer(Generic[T]):
    """Ordered buffer with atomic add and atomic drain.

    Thread Safety:
        add(), drain() and __len__ are safe to call from any thread.
        Each add() is atomic and visible to the next drain(). A drain()
        returns every item added before it and none added after it; those
        appear in the next drain().

    Example:
        buffer = DrainableBuffer[ErrorEvent](capacity=20, name="events")
        if buffer.add(event):
            engine.flush_events()
        batch = buffer.drain()
    """

    # Log aggregate metrics every N evictions to avoid Warning Fatigue
    _LOG_INTERVAL = 100

    def __init__(self, capacity: int = 20, max_size: int = 10_000, *, name: str = "buffer") -> None:
        """Initialize the buffer.

        Args:
            capacity: Size at which add() returns True. Defaults to 20.
            max_size: Hard cap; when full, the oldest item is evicted on
                add(). Defaults to 10,000.
            name: Label used in log messages.

        Raises:
            ValueError: If capacity < 1 or max_size < capacity.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if max_size < capacity:
            raise ValueError(f"max_size must be >= capacity ({capacity}), got {max_size}")
        self._name = name
        self._capacity = capacity
        self._items: deque[T] = deque(maxlen=max_size)
        self._lock = Lock()
        self._dropped_count: int = 0
        self._last_logged_drop_count: int = 0

    def add(self, item: T) -> bool:
        """Append an item.

        Args:
            item: Event or serialized trace to buffer.

        Returns:
            True if the buffer now holds at least `capacity` items and a
            flush should be triggered.
        """
        log_drops = False
        with self._lock:
            was_full = len(self._items) == self._items.maxlen
            self._items.append(item)
            if was_full:
                # deque auto-dropped the oldest item
                self._dropped_count += 1
                if self._dropped_count - self._last_logged_drop_count >= self._LOG_INTERVAL:
                    self._last_logged_drop_count = self._dropped_count
                    log_drops = True
            dropped_total = self._dropped_count
            reached = len(self._items) >= self._capacity

        if log_drops:
            logger.warning(
                "Telemetry buffer overflow - oldest items evicted",
                buffer=self._name,
                dropped_since_last_log=self._LOG_INTERVAL,
                dropped_total=dropped_total,
                max_size=self._items.maxlen,
                hint="Flushes are not keeping up; check collector connectivity",
            )
        return reached

    def drain(self) -> tuple[T, ...]:
        """Atomically take every buffered item and empty the buffer.

        Returns:
            Items in insertion order. Empty tuple if nothing is buffered.
        """
        with self._lock:
            if not self._items:
                return ()
            snapshot = tuple(self._items)
            self._items.clear()
        return snapshot

    @property
    def name(self) -> str:
        return self._name

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def max_size(self) -> int:
        maxlen = self._items.maxlen
        assert maxlen is not None
        return maxlen

    @property
    def dropped_count(self) -> int:
        """Number of items evicted because the hard cap was reached."""
        with self._lock:
            return self._dropped_count

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
