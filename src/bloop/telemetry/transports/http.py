# src/bloop/telemetry/transports/http.py
"""HTTP transport: signed POST of one batch to the collector.

Each batch is sent exactly once. Transport errors and non-2xx answers are
classified into a DeliveryResult and never raised; the batch is then lost.
"""

from __future__ import annotations

import time

import httpx
import structlog

from bloop.contracts.config import RuntimeClientConfig
from bloop.contracts.enums import DeliveryOutcome
from bloop.contracts.events import DeliveryResult, EncodedBatch
from bloop.errors import BloopConfigurationError
from bloop.telemetry.encoding import BATCH_PATHS

logger = structlog.get_logger(__name__)


class HTTPTransport:
    """POST batches to `{endpoint}/v1/ingest/batch` and `{endpoint}/v1/traces/batch`.

    One httpx.Client is shared by all sends; httpx clients are thread-safe,
    so the background sender and flush_sync() callers can overlap.

    Configuration (from RuntimeClientConfig):
        endpoint: Collector base URL
        connect_timeout_seconds: Connect timeout (default 10s)
        read_timeout_seconds: Read timeout (default 10s)
    """

    _name = "http"

    def __init__(self, client: httpx.Client | None = None) -> None:
        """Initialize unconfigured transport.

        Args:
            client: Optional pre-built httpx client (tests inject one with a
                mock transport). When omitted, configure() builds one.
        """
        self._client: httpx.Client | None = client
        self._owns_client = client is None
        self._endpoint: str | None = None
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    def configure(self, config: RuntimeClientConfig) -> None:
        """Bind endpoint and timeouts.

        Raises:
            BloopConfigurationError: If the endpoint is not an http(s) URL
        """
        if not config.endpoint.startswith(("http://", "https://")):
            raise BloopConfigurationError(
                self._name,
                f"endpoint must start with http:// or https://, got {config.endpoint!r}",
            )
        self._endpoint = config.endpoint
        if self._client is None:
            timeout = httpx.Timeout(
                config.read_timeout_seconds,
                connect=config.connect_timeout_seconds,
                read=config.read_timeout_seconds,
            )
            self._client = httpx.Client(timeout=timeout)

        logger.debug(
            "HTTP transport configured",
            endpoint=self._endpoint,
            connect_timeout=config.connect_timeout_seconds,
            read_timeout=config.read_timeout_seconds,
        )

    def url_for(self, batch: EncodedBatch) -> str:
        if self._endpoint is None:
            raise BloopConfigurationError(self._name, "transport used before configure()")
        return self._endpoint + BATCH_PATHS[batch.kind]

    def send(self, batch: EncodedBatch) -> DeliveryResult:
        """POST the batch body with its headers.

        Returns:
            DELIVERED on 2xx, REJECTED on any other status, FAILED when no
            response was received.

        Raises:
            BloopConfigurationError: If called before configure() or after close()
        """
        if self._client is None or self._closed:
            raise BloopConfigurationError(self._name, "transport is not configured or already closed")
        url = self.url_for(batch)

        start = time.perf_counter()
        try:
            response = self._client.post(url, content=batch.body, headers=dict(batch.headers))
        except httpx.HTTPError as e:
            return DeliveryResult(
                kind=batch.kind,
                outcome=DeliveryOutcome.FAILED,
                item_count=batch.item_count,
                error=f"{type(e).__name__}: {e}",
                latency_ms=(time.perf_counter() - start) * 1000,
            )
        latency_ms = (time.perf_counter() - start) * 1000

        if response.is_success:
            return DeliveryResult(
                kind=batch.kind,
                outcome=DeliveryOutcome.DELIVERED,
                item_count=batch.item_count,
                status_code=response.status_code,
                latency_ms=latency_ms,
            )
        return DeliveryResult(
            kind=batch.kind,
            outcome=DeliveryOutcome.REJECTED,
            item_count=batch.item_count,
            status_code=response.status_code,
            error=f"HTTP {response.status_code}",
            latency_ms=latency_ms,
        )

    def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._closed:
            return
        self._closed = True
        if self._client is not None and self._owns_client:
            self._client.close()
