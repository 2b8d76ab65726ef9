# src/bloop/telemetry/transports/__init__.py
"""Built-in batch transports.

Available transports:
- HTTPTransport ("http"): signed POST to the collector via httpx
- ConsoleTransport ("console"): writes batches to stdout for local debugging

Plugin registration:
    Transports are registered via the bloop_get_transports hook.
    BuiltinTransportsPlugin in this module registers the built-in ones.
"""

from bloop.telemetry.hookspecs import hookimpl
from bloop.telemetry.transports.console import ConsoleTransport
from bloop.telemetry.transports.http import HTTPTransport


class BuiltinTransportsPlugin:
    """Plugin that registers built-in transports."""

    @hookimpl
    def bloop_get_transports(self) -> list[type]:
        """Return built-in transport classes."""
        return [HTTPTransport, ConsoleTransport]


__all__ = [
    "BuiltinTransportsPlugin",
    "ConsoleTransport",
    "HTTPTransport",
]
