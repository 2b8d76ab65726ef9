# tests/unit/tracing/test_models.py
"""Tests for Span and Trace lifecycle and serialization.

Tests cover:
- Span end()/set_usage() merge semantics
- Span wire order and the "ok" default status
- Trace end(): timestamps, status, single enqueue, second end ignored
- Nested span payloads inside the trace JSON
- Context manager behavior
- Concurrent span creation
"""

import json
import threading
from unittest.mock import patch

import pytest

from bloop.contracts.enums import SpanStatus, SpanType, TraceStatus
from bloop.tracing.models import Span, Trace

# =============================================================================
# Span Tests
# =============================================================================


class TestSpan:
    def test_unended_span_serializes_ok_status(self) -> None:
        span = Span(SpanType.GENERATION, "draft")
        payload = json.loads(span.to_json())
        assert payload["status"] == "ok"
        assert "latency_ms" not in payload

    def test_required_key_order(self) -> None:
        span = Span(SpanType.TOOL, "search")
        assert list(span.to_payload()) == ["id", "span_type", "name", "started_at", "status"]

    def test_full_key_order(self) -> None:
        span = Span(
            SpanType.GENERATION,
            "draft",
            model="gpt-4o",
            provider="openai",
            input="question",
            metadata={"temperature": 0.2},
            parent_span_id="parent-1",
        )
        span.end(
            input_tokens=10,
            output_tokens=20,
            cost=0.002,
            error_message="partial",
            output="answer",
            time_to_first_token_ms=12,
        )
        assert list(span.to_payload()) == [
            "id",
            "span_type",
            "name",
            "started_at",
            "status",
            "parent_span_id",
            "model",
            "provider",
            "input_tokens",
            "output_tokens",
            "cost",
            "latency_ms",
            "time_to_first_token_ms",
            "error_message",
            "input",
            "output",
            "metadata",
        ]

    def test_end_sets_latency_and_status(self) -> None:
        span = Span(SpanType.RETRIEVAL, "lookup")
        span.end(SpanStatus.ERROR, error_message="index offline")
        assert span.status is SpanStatus.ERROR
        assert span.latency_ms is not None
        assert span.latency_ms >= 0
        assert span.error_message == "index offline"

    def test_set_usage_merges(self) -> None:
        """A later partial update keeps earlier values it does not name."""
        span = Span(SpanType.GENERATION, "draft")
        span.set_usage(50, 150, 0.01)
        span.set_usage(input_tokens=75)
        assert (span.input_tokens, span.output_tokens, span.cost) == (75, 150, 0.01)

    def test_end_does_not_clear_usage(self) -> None:
        span = Span(SpanType.GENERATION, "draft")
        span.set_usage(input_tokens=5, output_tokens=6)
        span.end(cost=0.5)
        assert (span.input_tokens, span.output_tokens, span.cost) == (5, 6, 0.5)

    def test_ids_are_unique(self) -> None:
        assert Span().id != Span().id

    def test_defaults(self) -> None:
        span = Span()
        assert span.span_type is SpanType.CUSTOM
        assert span.name == ""

    def test_span_type_accepts_string(self) -> None:
        assert Span("tool", "x").span_type is SpanType.TOOL

    def test_parent_span_id_not_validated(self) -> None:
        assert Span(parent_span_id="does-not-exist").to_payload()["parent_span_id"] == "does-not-exist"

    def test_context_manager_ends_ok(self) -> None:
        with Span(SpanType.TOOL, "calc") as span:
            pass
        assert span.status is SpanStatus.OK
        assert span.latency_ms is not None

    def test_context_manager_keeps_explicit_end(self) -> None:
        with Span(SpanType.TOOL, "calc") as span:
            span.end(SpanStatus.ERROR, error_message="handled")
        assert span.status is SpanStatus.ERROR

    def test_context_manager_records_exception(self) -> None:
        with pytest.raises(ValueError, match="bad input"):
            with Span(SpanType.TOOL, "calc") as span:
                raise ValueError("bad input")
        assert span.status is SpanStatus.ERROR
        assert span.error_message == "bad input"

    def test_context_manager_empty_exception_message_uses_class_name(self) -> None:
        with pytest.raises(ValueError):
            with Span() as span:
                raise ValueError
        assert span.error_message == "ValueError"


# =============================================================================
# Trace Tests
# =============================================================================


class TestTraceEnd:
    def test_end_defaults_to_completed(self) -> None:
        trace = Trace("answer")
        trace.end()
        assert trace.status is TraceStatus.COMPLETED
        assert trace.ended_at is not None
        assert trace.ended_at >= trace.started_at

    def test_end_with_error_and_output(self) -> None:
        trace = Trace("answer")
        trace.end(TraceStatus.ERROR, output="partial")
        assert trace.status is TraceStatus.ERROR
        assert trace.output == "partial"

    def test_end_enqueues_serialized_trace_once(self) -> None:
        sink: list[str] = []
        trace = Trace("answer", on_end=sink.append)
        trace.end()
        assert len(sink) == 1
        payload = json.loads(sink[0])
        assert payload["id"] == trace.id
        assert payload["status"] == "completed"
        assert payload["ended_at"] == trace.ended_at

    def test_second_end_ignored(self) -> None:
        sink: list[str] = []
        trace = Trace("answer", on_end=sink.append)
        trace.end()
        with patch("bloop.tracing.models.logger") as mock_logger:
            trace.end(TraceStatus.ERROR, output="late")
        assert len(sink) == 1
        assert trace.status is TraceStatus.COMPLETED
        assert trace.output is None
        mock_logger.debug.assert_called_once()

    def test_end_running_rejected(self) -> None:
        with pytest.raises(ValueError, match="terminal"):
            Trace("answer").end(TraceStatus.RUNNING)

    def test_unended_trace_is_running(self) -> None:
        trace = Trace("answer")
        assert trace.status is TraceStatus.RUNNING
        assert not trace.ended
        assert "ended_at" not in trace.to_payload()


class TestTracePayload:
    def test_key_order(self) -> None:
        trace = Trace(
            "answer",
            session_id="s1",
            user_id="u1",
            input="q",
            metadata={"k": "v"},
            prompt_name="qa",
            prompt_version="3",
        )
        trace.end(output="a")
        assert list(trace.to_payload()) == [
            "id",
            "name",
            "status",
            "started_at",
            "session_id",
            "user_id",
            "input",
            "output",
            "metadata",
            "prompt_name",
            "prompt_version",
            "ended_at",
            "spans",
        ]

    def test_spans_nested_in_order(self) -> None:
        sink: list[str] = []
        trace = Trace("agent-turn", on_end=sink.append)
        root = trace.start_span(SpanType.GENERATION, "plan", model="gpt-4o")
        child = trace.start_span(SpanType.TOOL, "search", parent_span_id=root.id)
        child.end()
        root.set_usage(100, 20, 0.003)
        root.end()
        trace.end()

        spans = json.loads(sink[0])["spans"]
        assert [s["name"] for s in spans] == ["plan", "search"]
        assert spans[1]["parent_span_id"] == spans[0]["id"]
        assert spans[0]["input_tokens"] == 100
        assert spans[0]["model"] == "gpt-4o"

    def test_unended_span_in_trace_is_ok(self) -> None:
        trace = Trace("answer")
        trace.start_span(SpanType.CUSTOM, "dangling")
        trace.end()
        assert trace.to_payload()["spans"][0]["status"] == "ok"

    def test_empty_trace_has_empty_spans(self) -> None:
        trace = Trace("answer")
        trace.end()
        assert json.loads(trace.to_json())["spans"] == []

    def test_spans_started_after_end_are_kept_but_not_sent(self) -> None:
        sink: list[str] = []
        trace = Trace("answer", on_end=sink.append)
        trace.end()
        trace.start_span(SpanType.CUSTOM, "late")
        assert len(trace.spans) == 1
        assert json.loads(sink[0])["spans"] == []


class TestTraceContextManager:
    def test_normal_exit_completes(self) -> None:
        sink: list[str] = []
        with Trace("answer", on_end=sink.append) as trace:
            trace.start_span(SpanType.TOOL, "t").end()
        assert trace.status is TraceStatus.COMPLETED
        assert len(sink) == 1

    def test_exception_exit_marks_error(self) -> None:
        sink: list[str] = []
        with pytest.raises(RuntimeError):
            with Trace("answer", on_end=sink.append) as trace:
                raise RuntimeError("model unavailable")
        assert trace.status is TraceStatus.ERROR
        assert json.loads(sink[0])["status"] == "error"

    def test_explicit_end_inside_block_not_repeated(self) -> None:
        sink: list[str] = []
        with Trace("answer", on_end=sink.append) as trace:
            trace.end(output="done")
        assert len(sink) == 1


def test_concurrent_start_span_keeps_every_span() -> None:
    trace = Trace("fan-out")

    def worker() -> None:
        for i in range(200):
            trace.start_span(SpanType.TOOL, f"call-{i}")

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    trace.end()
    assert len(trace.to_payload()["spans"]) == 1000
