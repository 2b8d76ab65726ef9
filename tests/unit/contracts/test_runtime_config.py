# tests/unit/contracts/test_runtime_config.py
"""Tests for RuntimeClientConfig validation and mapping from settings."""

import pytest

from bloop.contracts.config import RuntimeClientConfig
from bloop.core.config import BloopSettings


def make(**overrides) -> RuntimeClientConfig:
    values = {"endpoint": "https://bloop.test", "secret": "s", "environment": "test", "release": "1"}
    values.update(overrides)
    return RuntimeClientConfig(**values)


class TestRuntimeClientConfig:
    def test_defaults(self) -> None:
        config = make()
        assert config.max_buffer_size == 20
        assert config.max_buffered_items == 10_000
        assert config.flush_interval_ms == 5000
        assert config.flush_interval_seconds == 5.0
        assert config.connect_timeout_seconds == 10.0
        assert config.read_timeout_seconds == 10.0
        assert config.source == "python"
        assert config.transport == "http"

    def test_trailing_slashes_stripped(self) -> None:
        assert make(endpoint="https://bloop.test//").endpoint == "https://bloop.test"

    @pytest.mark.parametrize(
        ("overrides", "match"),
        [
            ({"endpoint": ""}, "endpoint"),
            ({"secret": ""}, "secret"),
            ({"max_buffer_size": 0}, "max_buffer_size"),
            ({"max_buffer_size": 50, "max_buffered_items": 10}, "max_buffered_items"),
            ({"flush_interval_ms": 0}, "flush_interval_ms"),
            ({"connect_timeout_seconds": 0}, "timeouts"),
            ({"send_queue_size": 0}, "send_queue_size"),
            ({"transport": ""}, "transport"),
        ],
    )
    def test_invalid_values_raise(self, overrides: dict, match: str) -> None:
        with pytest.raises(ValueError, match=match):
            make(**overrides)

    def test_frozen(self) -> None:
        config = make()
        with pytest.raises(AttributeError):
            config.secret = "other"  # type: ignore[misc]


class TestFromSettings:
    def test_maps_every_field(self) -> None:
        settings = BloopSettings(
            endpoint="https://bloop.example.com/",
            secret="s3cret",
            project_key="proj_1",
            environment="production",
            release="2.4.0",
            source="worker",
            app_version="2.4",
            build_number="240",
            max_buffer_size=5,
            max_buffered_items=50,
            flush_interval_ms=1500,
            enrich_device=False,
            transport="console",
            connect_timeout_seconds=3.0,
            read_timeout_seconds=4.0,
            send_queue_size=7,
        )
        config = RuntimeClientConfig.from_settings(settings)

        assert config == RuntimeClientConfig(
            endpoint="https://bloop.example.com",
            secret="s3cret",
            project_key="proj_1",
            environment="production",
            release="2.4.0",
            source="worker",
            app_version="2.4",
            build_number="240",
            max_buffer_size=5,
            max_buffered_items=50,
            flush_interval_ms=1500,
            enrich_device=False,
            transport="console",
            connect_timeout_seconds=3.0,
            read_timeout_seconds=4.0,
            send_queue_size=7,
        )

    def test_cross_field_check_applies(self) -> None:
        """Schema accepts each value alone; the runtime config rejects the combination."""
        settings = BloopSettings(
            endpoint="https://bloop.example.com",
            secret="s",
            environment="e",
            release="r",
            max_buffer_size=100,
            max_buffered_items=10,
        )
        with pytest.raises(ValueError, match="max_buffered_items"):
            RuntimeClientConfig.from_settings(settings)
