# src/bloop/client.py
"""BloopClient: the public entry point for capturing errors and traces.

One client owns one FlushEngine. Applications usually create a single
client at startup and close it at shutdown:

    settings = load_settings(Path("bloop.yaml"))
    with BloopClient.from_settings(settings) as client:
        try:
            handle_request()
        except Exception as exc:
            client.capture_exception(exc, route="/checkout")
            raise

Capture calls only build an ErrorEvent and append it to a buffer; they
never perform I/O and never raise for delivery problems.
"""

from __future__ import annotations

import threading
import time
import traceback
from collections.abc import Iterable, Mapping
from types import TracebackType
from typing import Any, Self

from bloop.contracts.config import RuntimeClientConfig
from bloop.contracts.events import MAX_STACK_LENGTH, DeliveryResult, ErrorEvent
from bloop.core.config import BloopSettings
from bloop.core.logging import get_logger
from bloop.device import DeviceInfoProvider, NullDeviceInfoProvider, PlatformInfoProvider
from bloop.telemetry.factory import create_flush_engine
from bloop.telemetry.protocols import TransportProtocol
from bloop.tracing.models import Trace

logger = get_logger(__name__)


def format_stack(exc: BaseException) -> str:
    """Formatted traceback of exc, cut to MAX_STACK_LENGTH characters."""
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return stack[:MAX_STACK_LENGTH]


class BloopClient:
    """Captures errors and LLM traces and ships them to a bloop collector.

    Thread Safety:
        All methods may be called from any thread. Device info is collected
        at most once, under a lock.

    Example:
        >>> client = BloopClient(config)
        >>> client.capture("PaymentDeclined", "card expired", route="/pay")
        >>> with client.start_trace("answer-question") as trace:
        ...     with trace.start_span(SpanType.GENERATION, "draft", model="gpt-4o") as span:
        ...         span.set_usage(input_tokens=120, output_tokens=48)
        >>> client.close()
    """

    def __init__(
        self,
        config: RuntimeClientConfig,
        *,
        transport: TransportProtocol | None = None,
        device_info: DeviceInfoProvider | None = None,
        transport_plugins: Iterable[Any] = (),
    ) -> None:
        """Create the client and start its flush engine.

        Args:
            config: Runtime configuration
            transport: Configured transport; looked up by config.transport
                when omitted
            device_info: Device info provider; PlatformInfoProvider when
                omitted. Ignored when config.enrich_device is False.
            transport_plugins: Extra pluggy plugins providing transports

        Raises:
            BloopConfigurationError: If the transport cannot be resolved
                or configured
        """
        self._config = config
        if not config.enrich_device:
            device_info = NullDeviceInfoProvider()
        self._device_info = device_info if device_info is not None else PlatformInfoProvider()
        self._device_facts: dict[str, str] | None = None
        self._device_lock = threading.Lock()
        self._engine = create_flush_engine(config, transport=transport, transport_plugins=transport_plugins)
        logger.debug(
            "bloop_client_started",
            endpoint=config.endpoint,
            environment=config.environment,
            release=config.release,
            transport=self._engine.transport.name,
        )

    @classmethod
    def from_settings(cls, settings: BloopSettings, **kwargs: Any) -> BloopClient:
        """Build a client from validated settings.

        Keyword arguments are passed through to the constructor.
        """
        return cls(RuntimeClientConfig.from_settings(settings), **kwargs)

    @property
    def config(self) -> RuntimeClientConfig:
        return self._config

    # ------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------

    def capture_exception(
        self,
        exc: BaseException,
        *,
        route: str | None = None,
        screen: str | None = None,
        http_status: int | None = None,
        request_id: str | None = None,
        user_id_hash: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        """Capture an exception with its traceback."""
        self.capture(
            type(exc).__name__,
            str(exc) or type(exc).__name__,
            route=route,
            screen=screen,
            stack=format_stack(exc),
            http_status=http_status,
            request_id=request_id,
            user_id_hash=user_id_hash,
            metadata=metadata,
        )

    def capture(
        self,
        error_type: str,
        message: str,
        *,
        route: str | None = None,
        screen: str | None = None,
        stack: str | None = None,
        http_status: int | None = None,
        request_id: str | None = None,
        user_id_hash: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        """Capture an error described by type and message.

        Args:
            error_type: Error kind (usually an exception class name)
            message: Human-readable message
            route: Route, RPC procedure or task name
            screen: UI screen name
            stack: Stack text; longer than 8192 characters is truncated
            http_status: HTTP status associated with the error
            request_id: Request correlation id
            user_id_hash: Hashed user identifier
            metadata: Extra JSON-like context; wins over device info keys
        """
        event = ErrorEvent(
            timestamp=time.time_ns() // 1_000_000,
            source=self._config.source,
            environment=self._config.environment,
            release=self._config.release,
            error_type=error_type,
            message=message,
            app_version=self._config.app_version,
            build_number=self._config.build_number,
            route_or_procedure=route,
            screen=screen,
            stack=stack,
            http_status=http_status,
            request_id=request_id,
            user_id_hash=user_id_hash,
            metadata=self._enrich(metadata),
        )
        self._engine.add_event(event)

    def _enrich(self, metadata: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
        """Device facts as the base, caller metadata on top."""
        facts = self._collect_device_facts()
        if not facts:
            return metadata
        merged: dict[str, Any] = dict(facts)
        if metadata:
            merged.update(metadata)
        return merged

    def _collect_device_facts(self) -> dict[str, str]:
        with self._device_lock:
            if self._device_facts is None:
                try:
                    self._device_facts = dict(self._device_info.collect())
                except Exception as e:
                    # Cached as empty; a failing provider is not asked again
                    logger.warning(
                        "device_info_collection_failed",
                        provider=type(self._device_info).__name__,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    self._device_facts = {}
            return self._device_facts

    # ------------------------------------------------------------------
    # Traces
    # ------------------------------------------------------------------

    def start_trace(
        self,
        name: str,
        *,
        session_id: str | None = None,
        user_id: str | None = None,
        input: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        prompt_name: str | None = None,
        prompt_version: str | None = None,
    ) -> Trace:
        """Start a trace; its end() enqueues it for delivery."""
        return Trace(
            name,
            session_id=session_id,
            user_id=user_id,
            input=input,
            metadata=metadata,
            prompt_name=prompt_name,
            prompt_version=prompt_version,
            on_end=self._engine.add_trace,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def flush(self) -> None:
        """Queue everything buffered for background delivery."""
        self._engine.flush()

    def flush_sync(self) -> list[DeliveryResult]:
        """Send everything buffered on the calling thread."""
        return self._engine.flush_sync()

    def close(self) -> None:
        """Send what is buffered and stop background threads. Idempotent."""
        self._engine.close()

    @property
    def health_metrics(self) -> dict[str, Any]:
        return self._engine.health_metrics

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
