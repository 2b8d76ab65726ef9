# src/bloop/telemetry/engine.py
"""FlushEngine moves buffered events and traces to the collector.

The engine owns two buffers and the machinery that empties them:
1. Producers call add_event() / add_trace() from any thread
2. A buffer reaching capacity triggers a flush of that buffer
3. A daemon timer thread flushes both buffers every flush interval
4. Flushed snapshots are queued for a single daemon sender thread
5. flush_sync() and close() send on the caller's thread instead

Design principles:
- Fire-and-forget: a batch is sent once. Failures are logged and counted,
  never retried and never re-buffered
- Producers never block on I/O; add_*() only appends and maybe enqueues
- Delivery failures never propagate to producers
- Aggregate logging every 100 dropped batches (Warning Fatigue prevention)

Thread Safety:
    - Buffers synchronize append against drain (see DrainableBuffer)
    - The send queue is a bounded queue.Queue; a full queue drops the batch
    - All counters are guarded by _metrics_lock
    - close() is serialized by _close_lock and is idempotent
"""

import queue
import threading
from dataclasses import dataclass
from typing import Any

import structlog

from bloop.contracts.config import RuntimeClientConfig
from bloop.contracts.enums import BatchKind, DeliveryOutcome
from bloop.contracts.events import DeliveryResult, EncodedBatch, ErrorEvent
from bloop.core.security import sign
from bloop.telemetry.buffer import DrainableBuffer
from bloop.telemetry.encoding import build_headers, encode_events_batch, encode_traces_batch
from bloop.telemetry.protocols import TransportProtocol

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class _Batch:
    """A drained snapshot waiting for the sender thread."""

    kind: BatchKind
    items: tuple[Any, ...]


class FlushEngine:
    """Buffers telemetry and delivers it in signed batches.

    Flush triggers:
    - capacity: add_*() reaching max_buffer_size flushes that buffer only
    - timer: every flush_interval_ms, both buffers (first tick after one interval)
    - explicit: flush() (background) or flush_sync() (caller's thread)
    - shutdown: close() stops the timer, then flush_sync()

    Capacity and timer flushes are not coalesced. Two flushes racing on the
    same buffer split its contents between them; no item is sent twice.

    Example:
        >>> engine = FlushEngine(config, transport)
        >>> engine.add_event(event)
        >>> engine.flush()
        >>> engine.close()
    """

    _LOG_INTERVAL = 100  # Log every 100 dropped batches

    def __init__(self, config: RuntimeClientConfig, transport: TransportProtocol) -> None:
        """Create buffers and start the sender and timer threads.

        Args:
            config: Runtime configuration (capacity, cap, interval, secret)
            transport: Configured transport used for every send
        """
        self._config = config
        self._transport = transport

        self._events: DrainableBuffer[ErrorEvent] = DrainableBuffer(
            config.max_buffer_size, config.max_buffered_items, name=BatchKind.EVENTS.value
        )
        self._traces: DrainableBuffer[str] = DrainableBuffer(
            config.max_buffer_size, config.max_buffered_items, name=BatchKind.TRACES.value
        )

        # Health metrics
        self._metrics_lock = threading.Lock()
        self._batches_sent = 0
        self._batches_failed = 0
        self._batches_dropped = 0
        self._items_sent = 0
        self._items_failed = 0
        self._last_logged_drop_count = 0

        # Thread coordination
        self._closed = threading.Event()
        self._stop_timer = threading.Event()
        self._close_lock = threading.Lock()
        self._queue: queue.Queue[_Batch | None] = queue.Queue(maxsize=config.send_queue_size)

        self._sender_thread = threading.Thread(target=self._send_loop, name="bloop-sender", daemon=True)
        self._sender_thread.start()
        self._timer_thread = threading.Thread(target=self._timer_loop, name="bloop-flush", daemon=True)
        self._timer_thread.start()

    @property
    def config(self) -> RuntimeClientConfig:
        return self._config

    @property
    def transport(self) -> TransportProtocol:
        return self._transport

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def add_event(self, event: ErrorEvent) -> None:
        """Buffer an event; flush the event buffer if it reached capacity."""
        if self._closed.is_set():
            logger.debug("event_dropped_after_close", error_type=event.error_type)
            return
        if self._events.add(event):
            self.flush_events()

    def add_trace(self, trace_json: str) -> None:
        """Buffer a serialized trace; flush the trace buffer if it reached capacity."""
        if self._closed.is_set():
            logger.debug("trace_dropped_after_close")
            return
        if self._traces.add(trace_json):
            self.flush_traces()

    # ------------------------------------------------------------------
    # Flush triggers
    # ------------------------------------------------------------------

    def flush(self) -> None:
        """Drain both buffers and hand the snapshots to the sender thread."""
        self.flush_events()
        self.flush_traces()

    def flush_events(self) -> None:
        self._enqueue(BatchKind.EVENTS, self._events.drain())

    def flush_traces(self) -> None:
        self._enqueue(BatchKind.TRACES, self._traces.drain())

    def flush_sync(self) -> list[DeliveryResult]:
        """Drain both buffers and send them on the calling thread.

        Returns:
            One DeliveryResult per non-empty buffer, events first. Empty
            list when nothing was buffered.
        """
        results: list[DeliveryResult] = []
        events = self._events.drain()
        if events:
            results.append(self._deliver(_Batch(BatchKind.EVENTS, events)))
        traces = self._traces.drain()
        if traces:
            results.append(self._deliver(_Batch(BatchKind.TRACES, traces)))
        return results

    def wait_until_idle(self) -> None:
        """Block until every batch queued so far has been sent."""
        if self._sender_thread.is_alive():
            self._queue.join()

    def _enqueue(self, kind: BatchKind, items: tuple[Any, ...]) -> None:
        if not items:
            return
        batch = _Batch(kind, items)
        if self._closed.is_set():
            # Sender may already be gone; a racing capacity flush sends inline
            self._deliver(batch)
            return
        try:
            self._queue.put_nowait(batch)
        except queue.Full:
            log_drops = False
            with self._metrics_lock:
                self._batches_dropped += 1
                self._items_failed += len(items)
                dropped_total = self._batches_dropped
                if dropped_total - self._last_logged_drop_count >= self._LOG_INTERVAL:
                    self._last_logged_drop_count = dropped_total
                    log_drops = True
            if dropped_total == 1 or log_drops:
                logger.warning(
                    "batch_dropped_queue_full",
                    kind=kind.value,
                    item_count=len(items),
                    dropped_total=dropped_total,
                    queue_maxsize=self._queue.maxsize,
                )

    # ------------------------------------------------------------------
    # Background threads
    # ------------------------------------------------------------------

    def _timer_loop(self) -> None:
        """Timer thread: flush both buffers every interval until stopped."""
        interval = self._config.flush_interval_seconds
        while not self._stop_timer.wait(interval):
            try:
                self.flush()
            except Exception as e:
                logger.error("periodic_flush_failed", error=str(e), error_type=type(e).__name__)

    def _send_loop(self) -> None:
        """Sender thread: consume the queue until the None sentinel arrives."""
        while True:
            batch = self._queue.get()
            try:
                if batch is None:  # Shutdown sentinel
                    break
                self._deliver(batch)
            except Exception as e:
                # _deliver already isolates transport errors; this guards the loop itself
                logger.error("send_loop_failed", error=str(e), error_type=type(e).__name__)
            finally:
                # ALWAYS call task_done() so wait_until_idle() cannot hang
                self._queue.task_done()

    # ------------------------------------------------------------------
    # Send path
    # ------------------------------------------------------------------

    def _encode(self, batch: _Batch) -> EncodedBatch:
        if batch.kind is BatchKind.EVENTS:
            text = encode_events_batch(batch.items)
        else:
            text = encode_traces_batch(batch.items)
        # Lone surrogates (surrogateescape-decoded paths) become "?" rather than failing the batch
        body = text.encode("utf-8", errors="replace")
        headers = build_headers(sign(body, self._config.secret), self._config.project_key)
        return EncodedBatch(kind=batch.kind, body=body, headers=headers, item_count=len(batch.items))

    def _deliver(self, batch: _Batch) -> DeliveryResult:
        """Encode, sign and send one batch. Never raises."""
        try:
            result = self._transport.send(self._encode(batch))
        except Exception as e:
            result = DeliveryResult(
                kind=batch.kind,
                outcome=DeliveryOutcome.FAILED,
                item_count=len(batch.items),
                error=f"{type(e).__name__}: {e}",
            )
        self._record(result)
        return result

    def _record(self, result: DeliveryResult) -> None:
        with self._metrics_lock:
            if result.delivered:
                self._batches_sent += 1
                self._items_sent += result.item_count
            else:
                self._batches_failed += 1
                self._items_failed += result.item_count

        if result.delivered:
            logger.debug(
                "batch_delivered",
                kind=result.kind.value,
                item_count=result.item_count,
                status_code=result.status_code,
                latency_ms=result.latency_ms,
            )
        else:
            logger.warning(
                "batch_delivery_failed",
                transport=self._transport.name,
                kind=result.kind.value,
                outcome=result.outcome.value,
                item_count=result.item_count,
                status_code=result.status_code,
                error=result.error,
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of engine health.

        - batches_sent / items_sent: delivered with a 2xx (or transport success)
        - batches_failed / items_failed: rejected, failed, or dropped items
        - batches_dropped: never sent because the send queue was full
        - events_evicted / traces_evicted: lost to the per-buffer hard cap
        - buffered_events / buffered_traces: currently waiting in the buffers
        - queue_depth: batches waiting for the sender thread
        """
        with self._metrics_lock:
            metrics: dict[str, Any] = {
                "batches_sent": self._batches_sent,
                "batches_failed": self._batches_failed,
                "batches_dropped": self._batches_dropped,
                "items_sent": self._items_sent,
                "items_failed": self._items_failed,
            }
        metrics.update(
            events_evicted=self._events.dropped_count,
            traces_evicted=self._traces.dropped_count,
            buffered_events=len(self._events),
            buffered_traces=len(self._traces),
            queue_depth=self._queue.qsize(),
        )
        return metrics

    def close(self) -> None:
        """Stop the timer, send what is buffered, stop the sender, close the transport.

        Shutdown sequence:
        1. Mark closed so add_*() drop new items
        2. Stop the timer thread (no ticks after this returns)
        3. flush_sync() both buffers on this thread
        4. Send the sentinel; the sender finishes already-queued batches first
        5. Close the transport

        Idempotent. A send in flight is bounded only by transport timeouts.
        """
        with self._close_lock:
            if self._closed.is_set():
                return
            self._closed.set()

            self._stop_timer.set()
            if threading.current_thread() is not self._timer_thread:
                self._timer_thread.join()

            self.flush_sync()

            if threading.current_thread() is not self._sender_thread:
                self._queue.put(None)
                self._sender_thread.join()

            try:
                self._transport.close()
            except Exception as e:
                logger.warning("transport_close_failed", transport=self._transport.name, error=str(e))

            logger.info("flush_engine_closed", **self.health_metrics)
