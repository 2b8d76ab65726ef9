# src/bloop/telemetry/transports/console.py
"""Console transport for local debugging.

Writes one line per batch instead of contacting a collector. Every batch
counts as delivered.
"""

from __future__ import annotations

import sys
from typing import TextIO

import structlog

from bloop.contracts.config import RuntimeClientConfig
from bloop.contracts.enums import DeliveryOutcome
from bloop.contracts.events import DeliveryResult, EncodedBatch

logger = structlog.get_logger(__name__)


class ConsoleTransport:
    """Print batches to a stream (stdout by default).

    Output format: `<kind> <item_count> <body>`

    Example configuration:
        transport: console
    """

    _name = "console"

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._closed = False

    @property
    def name(self) -> str:
        return self._name

    def configure(self, config: RuntimeClientConfig) -> None:
        logger.debug("Console transport configured", endpoint=config.endpoint)

    def send(self, batch: EncodedBatch) -> DeliveryResult:
        stream = self._stream if self._stream is not None else sys.stdout
        body = batch.body.decode("utf-8")
        try:
            print(f"{batch.kind.value} {batch.item_count} {body}", file=stream, flush=True)
        except (OSError, ValueError) as e:
            # ValueError: write to a closed stream
            return DeliveryResult(
                kind=batch.kind,
                outcome=DeliveryOutcome.FAILED,
                item_count=batch.item_count,
                error=str(e),
            )
        return DeliveryResult(kind=batch.kind, outcome=DeliveryOutcome.DELIVERED, item_count=batch.item_count)

    def close(self) -> None:
        self._closed = True
