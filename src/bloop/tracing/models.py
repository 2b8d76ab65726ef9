# src/bloop/tracing/models.py
"""Trace and span models.

A Trace groups the spans of one logical operation (answering a question,
running an agent turn). Spans record individual units of work such as a
model call or a tool invocation.

Lifecycle:
    client.start_trace() -> trace.start_span() ... span.end() ... -> trace.end()

trace.end() is terminal: it stamps ended_at and status, serializes the
trace (spans included) and hands the JSON text to the trace buffer once.
Nothing stops a caller from touching a trace after end(); later changes
are simply never sent.

Thread Safety:
    Each Span and Trace guards its mutable fields with its own lock, so
    set_usage()/end() merges and concurrent start_span() appends are
    atomic. Serialization takes a consistent snapshot under the same lock.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any, Self

import structlog

from bloop.contracts.enums import SpanStatus, SpanType, TraceStatus
from bloop.core.canonical import canonical_json

logger = structlog.get_logger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Span:
    """One timed unit of work inside a trace.

    Outcome fields (tokens, cost, output, ...) start unset and are filled
    by end() and set_usage(). Both merge: passing None for a field leaves
    any earlier value in place.

    parent_span_id is a free-form reference to another span's id. It is
    not checked against the trace's spans; the collector builds the tree.

    Attributes:
        id: Random UUID4 string
        span_type: What kind of work this span represents
        name: Display name
        started_at: Creation time in ms since the epoch
        status: None until end(); serialized as "ok" while unset
        latency_ms: Milliseconds from creation to end(), set by end()
    """

    def __init__(
        self,
        span_type: SpanType = SpanType.CUSTOM,
        name: str = "",
        *,
        model: str | None = None,
        provider: str | None = None,
        input: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        parent_span_id: str | None = None,
    ) -> None:
        self.id = str(uuid.uuid4())
        self.span_type = SpanType(span_type)
        self.name = name
        self.model = model
        self.provider = provider
        self.input = input
        self.metadata = metadata
        self.parent_span_id = parent_span_id
        self.started_at = _now_ms()
        self._started_monotonic = time.monotonic()

        self.status: SpanStatus | None = None
        self.input_tokens: int | None = None
        self.output_tokens: int | None = None
        self.cost: float | None = None
        self.latency_ms: int | None = None
        self.time_to_first_token_ms: int | None = None
        self.error_message: str | None = None
        self.output: str | None = None

        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Span(id={self.id!r}, span_type={self.span_type.value!r}, name={self.name!r}, status={self.status})"

    def end(
        self,
        status: SpanStatus = SpanStatus.OK,
        *,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        cost: float | None = None,
        error_message: str | None = None,
        output: str | None = None,
        time_to_first_token_ms: int | None = None,
    ) -> None:
        """Record the span's outcome and latency.

        Args:
            status: Final status (default OK)
            input_tokens: Prompt tokens, if known
            output_tokens: Completion tokens, if known
            cost: Cost in the collector's currency unit, if known
            error_message: Error text when status is ERROR
            output: Output text
            time_to_first_token_ms: Streaming latency to first token
        """
        latency = int((time.monotonic() - self._started_monotonic) * 1000)
        with self._lock:
            self.latency_ms = latency
            self.status = SpanStatus(status)
            self._merge_usage(input_tokens, output_tokens, cost)
            if error_message is not None:
                self.error_message = error_message
            if output is not None:
                self.output = output
            if time_to_first_token_ms is not None:
                self.time_to_first_token_ms = time_to_first_token_ms

    def set_usage(
        self,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        cost: float | None = None,
    ) -> None:
        """Merge token usage and cost. None never clears an earlier value."""
        with self._lock:
            self._merge_usage(input_tokens, output_tokens, cost)

    def _merge_usage(self, input_tokens: int | None, output_tokens: int | None, cost: float | None) -> None:
        # Caller holds self._lock
        if input_tokens is not None:
            self.input_tokens = input_tokens
        if output_tokens is not None:
            self.output_tokens = output_tokens
        if cost is not None:
            self.cost = cost

    def to_payload(self) -> dict[str, Any]:
        """Build the wire mapping. Key order is the wire order."""
        with self._lock:
            payload: dict[str, Any] = {
                "id": self.id,
                "span_type": self.span_type.value,
                "name": self.name,
                "started_at": self.started_at,
                "status": (self.status or SpanStatus.OK).value,
            }
            optional: tuple[tuple[str, Any], ...] = (
                ("parent_span_id", self.parent_span_id),
                ("model", self.model),
                ("provider", self.provider),
                ("input_tokens", self.input_tokens),
                ("output_tokens", self.output_tokens),
                ("cost", self.cost),
                ("latency_ms", self.latency_ms),
                ("time_to_first_token_ms", self.time_to_first_token_ms),
                ("error_message", self.error_message),
                ("input", self.input),
                ("output", self.output),
                ("metadata", self.metadata),
            )
        for key, value in optional:
            if value is not None:
                payload[key] = value
        return payload

    def to_json(self) -> str:
        return canonical_json(self.to_payload())

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc is None:
            if self.status is None:
                self.end()
        else:
            self.end(SpanStatus.ERROR, error_message=str(exc) or type(exc).__name__)


class Trace:
    """Root record grouping the spans of one operation.

    Traces are created by BloopClient.start_trace(), which wires on_end to
    the client's trace buffer. A Trace built directly with on_end=None is
    still usable; end() then only stamps and serializes it.

    Attributes:
        id: Random UUID4 string
        name: Operation name
        status: RUNNING until end()
        started_at: Creation time in ms since the epoch
        ended_at: Set by end(), never earlier than started_at
        spans: Child spans in creation order
    """

    def __init__(
        self,
        name: str,
        *,
        session_id: str | None = None,
        user_id: str | None = None,
        input: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        prompt_name: str | None = None,
        prompt_version: str | None = None,
        on_end: Callable[[str], None] | None = None,
    ) -> None:
        self.id = str(uuid.uuid4())
        self.name = name
        self.session_id = session_id
        self.user_id = user_id
        self.input = input
        self.metadata = metadata
        self.prompt_name = prompt_name
        self.prompt_version = prompt_version
        self.started_at = _now_ms()

        self.status = TraceStatus.RUNNING
        self.output: str | None = None
        self.ended_at: int | None = None
        self._spans: list[Span] = []

        self._on_end = on_end
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Trace(id={self.id!r}, name={self.name!r}, status={self.status.value!r}, spans={len(self._spans)})"

    @property
    def spans(self) -> tuple[Span, ...]:
        """Snapshot of the spans started so far, in insertion order."""
        with self._lock:
            return tuple(self._spans)

    @property
    def ended(self) -> bool:
        return self.ended_at is not None

    def start_span(
        self,
        span_type: SpanType = SpanType.CUSTOM,
        name: str = "",
        *,
        model: str | None = None,
        provider: str | None = None,
        input: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        parent_span_id: str | None = None,
    ) -> Span:
        """Create a span and attach it to this trace.

        Not blocked after end(): such spans are kept in memory but are
        never serialized, because the trace was already handed off.
        """
        span = Span(
            span_type,
            name,
            model=model,
            provider=provider,
            input=input,
            metadata=metadata,
            parent_span_id=parent_span_id,
        )
        with self._lock:
            self._spans.append(span)
        return span

    def end(self, status: TraceStatus = TraceStatus.COMPLETED, output: str | None = None) -> None:
        """Finish the trace and enqueue its serialized form.

        Args:
            status: Terminal status, COMPLETED (default) or ERROR
            output: Final output text

        Raises:
            ValueError: If status is RUNNING
        """
        status = TraceStatus(status)
        if not status.is_terminal:
            raise ValueError("Trace.end() requires a terminal status (completed or error)")

        with self._lock:
            if self.ended_at is not None:
                logger.debug("trace_end_ignored", trace_id=self.id, reason="already ended")
                return
            self.ended_at = max(_now_ms(), self.started_at)
            self.status = status
            if output is not None:
                self.output = output
            serialized = canonical_json(self._build_payload())

        if self._on_end is not None:
            self._on_end(serialized)

    def _build_payload(self) -> dict[str, Any]:
        # Caller holds self._lock
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "started_at": self.started_at,
        }
        optional: tuple[tuple[str, Any], ...] = (
            ("session_id", self.session_id),
            ("user_id", self.user_id),
            ("input", self.input),
            ("output", self.output),
            ("metadata", self.metadata),
            ("prompt_name", self.prompt_name),
            ("prompt_version", self.prompt_version),
            ("ended_at", self.ended_at),
        )
        for key, value in optional:
            if value is not None:
                payload[key] = value
        payload["spans"] = [span.to_payload() for span in self._spans]
        return payload

    def to_payload(self) -> dict[str, Any]:
        """Build the wire mapping, spans included. Key order is the wire order."""
        with self._lock:
            return self._build_payload()

    def to_json(self) -> str:
        return canonical_json(self.to_payload())

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.ended:
            return
        if exc is None:
            self.end()
        else:
            self.end(TraceStatus.ERROR)
