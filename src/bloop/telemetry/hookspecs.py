# src/bloop/telemetry/hookspecs.py
"""pluggy hook specifications for batch transports.

Transports implement these hooks to register themselves. The factory
calls them when building a flush engine to find the class named by the
`transport` setting.

Usage (implementing a transport plugin):
    from bloop.telemetry.hookspecs import hookimpl

    class MyTransportPlugin:
        @hookimpl
        def bloop_get_transports(self):
            return [MyTransport]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from bloop.telemetry.protocols import TransportProtocol

PROJECT_NAME = "bloop"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class BloopTransportSpec:
    """Hook specifications for transport plugins."""

    @hookspec
    def bloop_get_transports(self) -> list[type["TransportProtocol"]]:  # type: ignore[empty-body]
        """Return transport classes.

        Returns:
            List of transport classes (not instances) that implement
            TransportProtocol
        """
