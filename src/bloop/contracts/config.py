# src/bloop/contracts/config.py
"""Runtime configuration for the client and flush engine.

RuntimeClientConfig is the frozen, validated view of BloopSettings that
the engine, transports and client actually read. Keeping it a plain
dataclass lets tests build configs directly without YAML or pydantic.

Field Origins (all from BloopSettings, see from_settings()):
    - endpoint: trailing "/" stripped so batch paths join cleanly
    - flush_interval_ms: kept in ms on the wire-facing side, exposed in
      seconds for threading waits via flush_interval_seconds
    - everything else maps directly
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bloop.core.config import BloopSettings

DEFAULT_MAX_BUFFER_SIZE = 20
DEFAULT_MAX_BUFFERED_ITEMS = 10_000
DEFAULT_FLUSH_INTERVAL_MS = 5000
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_SEND_QUEUE_SIZE = 100


@dataclass(frozen=True, slots=True)
class RuntimeClientConfig:
    """Validated runtime configuration.

    Attributes:
        endpoint: Collector base URL, without trailing slash
        secret: Shared HMAC secret used to sign every batch body
        environment: Deployment environment stamped on every event
        release: Release identifier stamped on every event
        project_key: Optional value for the X-Project-Key header
        source: Platform tag stamped on every event
        app_version: Optional application version stamped on every event
        build_number: Optional build number stamped on every event
        max_buffer_size: Buffer size that triggers an immediate flush
        max_buffered_items: Hard cap per buffer; oldest items are evicted beyond it
        flush_interval_ms: Period of the background flush timer
        enrich_device: Merge device/platform info under event metadata
        transport: Registered transport name used to deliver batches
        connect_timeout_seconds: HTTP connect timeout
        read_timeout_seconds: HTTP read timeout
        send_queue_size: Batches that may wait for the background sender
    """

    endpoint: str
    secret: str
    environment: str
    release: str
    project_key: str | None = None
    source: str = "python"
    app_version: str | None = None
    build_number: str | None = None
    max_buffer_size: int = DEFAULT_MAX_BUFFER_SIZE
    max_buffered_items: int = DEFAULT_MAX_BUFFERED_ITEMS
    flush_interval_ms: int = DEFAULT_FLUSH_INTERVAL_MS
    enrich_device: bool = True
    transport: str = "http"
    connect_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    read_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    send_queue_size: int = DEFAULT_SEND_QUEUE_SIZE

    def __post_init__(self) -> None:
        """Validate ranges and normalize the endpoint."""
        if not self.endpoint:
            raise ValueError("endpoint cannot be empty")
        if not self.secret:
            raise ValueError("secret cannot be empty")
        if self.max_buffer_size < 1:
            raise ValueError(f"max_buffer_size must be >= 1, got {self.max_buffer_size}")
        if self.max_buffered_items < self.max_buffer_size:
            raise ValueError(
                f"max_buffered_items ({self.max_buffered_items}) must be >= max_buffer_size ({self.max_buffer_size})"
            )
        if self.flush_interval_ms <= 0:
            raise ValueError(f"flush_interval_ms must be > 0, got {self.flush_interval_ms}")
        if self.connect_timeout_seconds <= 0 or self.read_timeout_seconds <= 0:
            raise ValueError("HTTP timeouts must be > 0")
        if self.send_queue_size < 1:
            raise ValueError(f"send_queue_size must be >= 1, got {self.send_queue_size}")
        if not self.transport:
            raise ValueError("transport name cannot be empty")
        object.__setattr__(self, "endpoint", self.endpoint.rstrip("/"))

    @property
    def flush_interval_seconds(self) -> float:
        return self.flush_interval_ms / 1000.0

    @classmethod
    def from_settings(cls, settings: BloopSettings) -> RuntimeClientConfig:
        """Factory from the BloopSettings config model.

        Args:
            settings: Validated Pydantic settings model

        Returns:
            RuntimeClientConfig with mapped values

        Raises:
            ValueError: If a value passes schema validation but not the
                cross-field checks above (e.g. cap smaller than threshold)
        """
        return cls(
            endpoint=settings.endpoint,
            secret=settings.secret,
            environment=settings.environment,
            release=settings.release,
            project_key=settings.project_key,
            source=settings.source,
            app_version=settings.app_version,
            build_number=settings.build_number,
            max_buffer_size=settings.max_buffer_size,
            max_buffered_items=settings.max_buffered_items,
            flush_interval_ms=settings.flush_interval_ms,
            enrich_device=settings.enrich_device,
            transport=settings.transport,
            connect_timeout_seconds=settings.connect_timeout_seconds,
            read_timeout_seconds=settings.read_timeout_seconds,
            send_queue_size=settings.send_queue_size,
        )
