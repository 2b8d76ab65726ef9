# src/bloop/errors.py
"""Exceptions raised by the bloop client.

Only configuration problems raise. Capture, tracing and delivery never
raise to the host application; delivery failures are logged and counted.
"""


class BloopError(Exception):
    """Base class for all bloop exceptions."""


class BloopConfigurationError(BloopError):
    """Raised when a transport or the client cannot be set up from configuration.

    Raised during construction (transport discovery, configure()), never
    while capturing or delivering telemetry.

    Attributes:
        component: Name of the transport or component that failed
        message: Human-readable error description
    """

    def __init__(self, component: str, message: str) -> None:
        self.component = component
        self.message = message
        super().__init__(f"'{component}' configuration failed: {message}")
