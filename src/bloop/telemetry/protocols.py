# src/bloop/telemetry/protocols.py
"""Protocol definitions for batch transports.

A transport delivers one encoded, signed batch to the collector and
classifies the outcome. The flush engine owns everything before that
(draining, encoding, signing) and everything after it (logging, metrics).
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bloop.contracts.config import RuntimeClientConfig
    from bloop.contracts.events import DeliveryResult, EncodedBatch


@runtime_checkable
class TransportProtocol(Protocol):
    """Protocol for batch transports.

    Lifecycle:
        1. Discovery: bloop_get_transports hook returns transport classes
        2. Instantiation: the factory creates an instance with no arguments
        3. Configuration: configure() called with the runtime config
        4. Operation: send() called once per batch (must not raise)
        5. Shutdown: close() called when the engine closes

    Error handling:
        - configure() MUST raise BloopConfigurationError on invalid config
        - send() MUST NOT raise - return a FAILED/REJECTED DeliveryResult
        - close() MUST be idempotent - safe to call multiple times
    """

    @property
    def name(self) -> str:
        """Transport name, matched against the `transport` setting."""
        ...

    def configure(self, config: "RuntimeClientConfig") -> None:
        """Configure the transport before the first send.

        Raises:
            BloopConfigurationError: If configuration is invalid
        """
        ...

    def send(self, batch: "EncodedBatch") -> "DeliveryResult":
        """Deliver one batch and classify the outcome.

        Thread Safety:
            Called from the background sender thread and, for flush_sync()
            and close(), from caller threads. Calls may overlap.
        """
        ...

    def close(self) -> None:
        """Release connections. Must be idempotent."""
        ...
