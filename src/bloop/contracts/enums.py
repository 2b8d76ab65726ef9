# src/bloop/contracts/enums.py
"""Status codes and kinds used on the wire and across module boundaries.

Values are the exact strings the collector expects in JSON payloads.
"""

from enum import StrEnum


class SpanType(StrEnum):
    """Kind of work a span represents inside a trace."""

    GENERATION = "generation"
    TOOL = "tool"
    RETRIEVAL = "retrieval"
    CUSTOM = "custom"


class SpanStatus(StrEnum):
    """Outcome of a span. Rendered as "ok" until end() says otherwise."""

    OK = "ok"
    ERROR = "error"


class TraceStatus(StrEnum):
    """Lifecycle state of a trace.

    RUNNING is the only non-terminal state; end() moves a trace to
    COMPLETED or ERROR and nothing moves it back.
    """

    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not TraceStatus.RUNNING


class BatchKind(StrEnum):
    """Which buffer a batch was drained from. Also the JSON body key."""

    EVENTS = "events"
    TRACES = "traces"


class DeliveryOutcome(StrEnum):
    """Classification of a single batch send attempt.

    - DELIVERED: collector answered 2xx
    - REJECTED: collector answered with any other status
    - FAILED: no response (connect/read timeout, DNS, reset, ...)
    """

    DELIVERED = "delivered"
    REJECTED = "rejected"
    FAILED = "failed"
