# src/bloop/contracts/events.py
"""Value objects for captured errors and batch delivery.

ErrorEvent is what producers hand to the event buffer. EncodedBatch and
DeliveryResult describe one drained batch on its way to, and back from,
a transport.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from bloop.contracts.enums import BatchKind, DeliveryOutcome
from bloop.core.canonical import json_snapshot

# Stack traces longer than this are cut before buffering.
MAX_STACK_LENGTH = 8192


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """A single captured error, immutable once constructed.

    Attributes:
        timestamp: Capture time in milliseconds since the Unix epoch
        source: Reporting platform tag (e.g. "python", "android")
        environment: Deployment environment (e.g. "production")
        release: Application release identifier
        error_type: Exception class name or caller-supplied error kind
        message: Human-readable error message
        app_version: Optional application version string
        build_number: Optional build number
        route_or_procedure: Optional route, RPC procedure or task name
        screen: Optional UI screen name
        stack: Optional stack text, at most MAX_STACK_LENGTH characters
        http_status: Optional HTTP status associated with the error
        request_id: Optional request correlation id
        user_id_hash: Optional hashed user identifier
        metadata: Optional JSON-like mapping, may be nested. Stored as a
            read-only snapshot taken at construction
    """

    timestamp: int
    source: str
    environment: str
    release: str
    error_type: str
    message: str
    app_version: str | None = None
    build_number: str | None = None
    route_or_procedure: str | None = None
    screen: str | None = None
    stack: str | None = None
    http_status: int | None = None
    request_id: str | None = None
    user_id_hash: str | None = None
    metadata: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.stack is not None and len(self.stack) > MAX_STACK_LENGTH:
            object.__setattr__(self, "stack", self.stack[:MAX_STACK_LENGTH])
        if self.metadata is not None:
            # Events are encoded at flush time, possibly on the sender thread
            snapshot = json_snapshot(self.metadata)
            if isinstance(snapshot, dict):
                snapshot = MappingProxyType(snapshot)
            object.__setattr__(self, "metadata", snapshot)


@dataclass(frozen=True, slots=True)
class EncodedBatch:
    """A drained, encoded and signed batch ready for a transport.

    Attributes:
        kind: Buffer the items came from
        body: UTF-8 JSON body ({"events":[...]} or {"traces":[...]})
        headers: Request headers including X-Signature
        item_count: Number of events or traces in the body
    """

    kind: BatchKind
    body: bytes
    headers: Mapping[str, str]
    item_count: int


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Outcome of one send attempt. Never retried, whatever the outcome."""

    kind: BatchKind
    outcome: DeliveryOutcome
    item_count: int
    status_code: int | None = None
    error: str | None = None
    latency_ms: float | None = field(default=None, compare=False)

    @property
    def delivered(self) -> bool:
        return self.outcome is DeliveryOutcome.DELIVERED
