# tests/unit/telemetry/test_encoding.py
"""Tests for batch body encoding and request headers."""

import json

from bloop.contracts.enums import BatchKind
from bloop.contracts.events import ErrorEvent
from bloop.telemetry.encoding import (
    BATCH_PATHS,
    build_headers,
    encode_events_batch,
    encode_traces_batch,
    event_to_payload,
)


def make_event(**overrides) -> ErrorEvent:
    values = {
        "timestamp": 1_700_000_000_000,
        "source": "python",
        "environment": "production",
        "release": "2.4.0",
        "error_type": "KeyError",
        "message": "missing 'id'",
    }
    values.update(overrides)
    return ErrorEvent(**values)


class TestEventPayload:
    """Tests for event_to_payload() field order and omission."""

    def test_required_fields_only(self) -> None:
        payload = event_to_payload(make_event())
        assert list(payload) == ["timestamp", "source", "environment", "release", "error_type", "message"]

    def test_full_key_order(self) -> None:
        payload = event_to_payload(
            make_event(
                app_version="2.4",
                build_number="240",
                route_or_procedure="/checkout",
                screen="Cart",
                stack="Traceback...",
                http_status=500,
                request_id="req-1",
                user_id_hash="abc",
                metadata={"k": "v"},
            )
        )
        assert list(payload) == [
            "timestamp",
            "source",
            "environment",
            "release",
            "app_version",
            "build_number",
            "route_or_procedure",
            "screen",
            "error_type",
            "message",
            "stack",
            "http_status",
            "request_id",
            "user_id_hash",
            "metadata",
        ]

    def test_unset_optionals_are_omitted_not_null(self) -> None:
        payload = event_to_payload(make_event(screen="Home"))
        assert "stack" not in payload
        assert "metadata" not in payload
        assert payload["screen"] == "Home"

    def test_zero_http_status_is_kept(self) -> None:
        """Only None means unset."""
        assert event_to_payload(make_event(http_status=0))["http_status"] == 0


class TestBatchBodies:
    """Tests for {"events":[...]} and {"traces":[...]} bodies."""

    def test_events_batch(self) -> None:
        body = encode_events_batch([make_event(message="a"), make_event(message="b")])
        assert body.startswith('{"events":[{"timestamp":1700000000000,"source":"python"')
        parsed = json.loads(body)
        assert [e["message"] for e in parsed["events"]] == ["a", "b"]

    def test_events_batch_escapes_strings(self) -> None:
        body = encode_events_batch([make_event(message='say "hi"\n')])
        assert '"message":"say \\"hi\\"\\n"' in body

    def test_nested_metadata_preserved(self) -> None:
        metadata = {"device": {"os": "linux", "cores": 8}, "tags": ["a", "b"]}
        parsed = json.loads(encode_events_batch([make_event(metadata=metadata)]))
        assert parsed["events"][0]["metadata"] == metadata

    def test_empty_events_batch(self) -> None:
        assert encode_events_batch([]) == '{"events":[]}'

    def test_traces_batch_joins_serialized_traces(self) -> None:
        body = encode_traces_batch(['{"id":"t1"}', '{"id":"t2"}'])
        assert body == '{"traces":[{"id":"t1"},{"id":"t2"}]}'
        assert json.loads(body) == {"traces": [{"id": "t1"}, {"id": "t2"}]}

    def test_single_trace(self) -> None:
        assert encode_traces_batch(['{"id":"t1"}']) == '{"traces":[{"id":"t1"}]}'


class TestHeadersAndPaths:
    def test_headers_without_project_key(self) -> None:
        assert build_headers("abc123", None) == {"Content-Type": "application/json", "X-Signature": "abc123"}

    def test_headers_with_project_key(self) -> None:
        headers = build_headers("abc123", "proj_1")
        assert headers["X-Project-Key"] == "proj_1"

    def test_empty_project_key_omitted(self) -> None:
        assert "X-Project-Key" not in build_headers("abc123", "")

    def test_batch_paths(self) -> None:
        assert BATCH_PATHS[BatchKind.EVENTS] == "/v1/ingest/batch"
        assert BATCH_PATHS[BatchKind.TRACES] == "/v1/traces/batch"
