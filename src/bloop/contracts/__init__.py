"""Shared types that cross the client/engine/transport boundaries.

Contracts hold no behaviour beyond validation so every layer can import
them without pulling in threads, HTTP, or configuration loading.
"""

from bloop.contracts.config import RuntimeClientConfig
from bloop.contracts.enums import BatchKind, DeliveryOutcome, SpanStatus, SpanType, TraceStatus
from bloop.contracts.events import DeliveryResult, EncodedBatch, ErrorEvent

__all__ = [
    "BatchKind",
    "DeliveryOutcome",
    "DeliveryResult",
    "EncodedBatch",
    "ErrorEvent",
    "RuntimeClientConfig",
    "SpanStatus",
    "SpanType",
    "TraceStatus",
]
