"""LLM execution traces and their spans."""

from bloop.tracing.models import Span, Trace

__all__ = ["Span", "Trace"]
