# tests/conftest.py
"""Shared test fixtures and helpers.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/unit/telemetry/

Engine and client fixtures use a one-minute flush interval so the
background timer never fires during a test unless the test asks for it.
"""

import os
from collections.abc import Callable
from typing import Any

import pytest
from hypothesis import HealthCheck, Verbosity, settings

from bloop.contracts.config import RuntimeClientConfig
from bloop.contracts.events import ErrorEvent

settings.register_profile("ci", max_examples=100, suppress_health_check=[HealthCheck.too_slow])
settings.register_profile("nightly", max_examples=1000)
settings.register_profile("debug", max_examples=10, verbosity=Verbosity.verbose)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))

TEST_ENDPOINT = "https://bloop.test"
TEST_SECRET = "test-secret"


@pytest.fixture
def make_config() -> Callable[..., RuntimeClientConfig]:
    """Factory for RuntimeClientConfig with test-friendly defaults."""

    def _make(**overrides: Any) -> RuntimeClientConfig:
        values: dict[str, Any] = {
            "endpoint": TEST_ENDPOINT,
            "secret": TEST_SECRET,
            "environment": "test",
            "release": "1.0.0",
            "flush_interval_ms": 60_000,
            "enrich_device": False,
        }
        values.update(overrides)
        return RuntimeClientConfig(**values)

    return _make


@pytest.fixture
def config(make_config: Callable[..., RuntimeClientConfig]) -> RuntimeClientConfig:
    """Default test configuration."""
    return make_config()


@pytest.fixture
def make_event() -> Callable[..., ErrorEvent]:
    """Factory for ErrorEvent with fixed required fields."""

    def _make(message: str = "boom", **overrides: Any) -> ErrorEvent:
        values: dict[str, Any] = {
            "timestamp": 1_700_000_000_000,
            "source": "python",
            "environment": "test",
            "release": "1.0.0",
            "error_type": "RuntimeError",
            "message": message,
        }
        values.update(overrides)
        return ErrorEvent(**values)

    return _make
