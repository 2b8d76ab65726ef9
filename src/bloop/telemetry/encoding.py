# src/bloop/telemetry/encoding.py
"""Wire encoding of batches.

Events are encoded at flush time from ErrorEvent values. Traces arrive
already serialized (Trace.end() produced the JSON), so the trace batch
body is assembled from the stored strings without re-parsing them.

Optional fields are omitted entirely when unset; they are never sent as
null. The key order below is the collector's documented order.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from bloop.contracts.enums import BatchKind
from bloop.contracts.events import ErrorEvent
from bloop.core.canonical import canonical_json
from bloop.core.security import SIGNATURE_HEADER

BATCH_PATHS: Mapping[BatchKind, str] = {
    BatchKind.EVENTS: "/v1/ingest/batch",
    BatchKind.TRACES: "/v1/traces/batch",
}

CONTENT_TYPE = "application/json"
PROJECT_KEY_HEADER = "X-Project-Key"


def event_to_payload(event: ErrorEvent) -> dict[str, Any]:
    """Build the wire mapping for one event."""
    payload: dict[str, Any] = {
        "timestamp": event.timestamp,
        "source": event.source,
        "environment": event.environment,
        "release": event.release,
    }
    _put_optional(
        payload,
        ("app_version", event.app_version),
        ("build_number", event.build_number),
        ("route_or_procedure", event.route_or_procedure),
        ("screen", event.screen),
    )
    payload["error_type"] = event.error_type
    payload["message"] = event.message
    _put_optional(
        payload,
        ("stack", event.stack),
        ("http_status", event.http_status),
        ("request_id", event.request_id),
        ("user_id_hash", event.user_id_hash),
        ("metadata", event.metadata),
    )
    return payload


def _put_optional(payload: dict[str, Any], *fields: tuple[str, Any]) -> None:
    for key, value in fields:
        if value is not None:
            payload[key] = value


def encode_events_batch(events: Iterable[ErrorEvent]) -> str:
    """Encode events as {"events":[...]}."""
    return canonical_json({BatchKind.EVENTS.value: [event_to_payload(e) for e in events]})


def encode_traces_batch(trace_jsons: Sequence[str]) -> str:
    """Join pre-serialized traces as {"traces":[...]}."""
    return '{"' + BatchKind.TRACES.value + '":[' + ",".join(trace_jsons) + "]}"


def build_headers(signature: str, project_key: str | None) -> dict[str, str]:
    """Request headers for a signed batch."""
    headers = {
        "Content-Type": CONTENT_TYPE,
        SIGNATURE_HEADER: signature,
    }
    if project_key:
        headers[PROJECT_KEY_HEADER] = project_key
    return headers
