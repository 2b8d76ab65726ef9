# src/bloop/telemetry/factory.py
"""Factory functions for building a FlushEngine from configuration.

This module is the glue between RuntimeClientConfig and a running engine:
1. Discovering transport classes via pluggy hooks
2. Instantiating and configuring the transport named in config
3. Creating the FlushEngine around it

Usage:
    from bloop.contracts.config import RuntimeClientConfig
    from bloop.telemetry.factory import create_flush_engine

    config = RuntimeClientConfig.from_settings(settings)
    engine = create_flush_engine(config)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pluggy
import structlog

from bloop.contracts.config import RuntimeClientConfig
from bloop.errors import BloopConfigurationError
from bloop.telemetry.engine import FlushEngine
from bloop.telemetry.hookspecs import PROJECT_NAME, BloopTransportSpec
from bloop.telemetry.protocols import TransportProtocol
from bloop.telemetry.transports import BuiltinTransportsPlugin

logger = structlog.get_logger(__name__)


def _resolve_transport_name(transport_class: type[TransportProtocol]) -> str:
    """Registry name of a transport class, read from its `_name` attribute.

    Raises:
        BloopConfigurationError: If `_name` is missing or not a non-empty string
    """
    hint = getattr(transport_class, "_name", None)
    if type(hint) is str and hint != "":
        return hint
    class_name = getattr(transport_class, "__name__", repr(transport_class))
    raise BloopConfigurationError(
        class_name,
        f"Transport class attribute _name must be a non-empty string, got {hint!r}",
    )


def _discover_transport_registry(
    transport_plugins: Iterable[Any] = (),
) -> dict[str, type[TransportProtocol]]:
    """Discover transports via pluggy hooks.

    Registers the built-in transports plus any plugin objects provided by
    the caller, then calls `bloop_get_transports` to build the name->class
    registry.

    Raises:
        BloopConfigurationError: If a plugin fails validation, returns
            something other than an iterable of classes, or two transports
            share a name.
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(BloopTransportSpec)

    for plugin in [BuiltinTransportsPlugin(), *list(transport_plugins)]:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            # ValueError: same plugin object registered twice
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise BloopConfigurationError(
                "transport_plugins",
                f"Invalid transport plugin {type(plugin).__name__}: {e}",
            ) from e

    registry: dict[str, type[TransportProtocol]] = {}
    for hook_impl in plugin_manager.hook.bloop_get_transports.get_hookimpls():
        plugin_name = type(hook_impl.plugin).__name__
        try:
            transports = hook_impl.function()
        except Exception as e:
            raise BloopConfigurationError(
                "transport_plugins",
                f"Transport plugin {plugin_name} failed in bloop_get_transports: {e}",
            ) from e

        if transports is None or isinstance(transports, (str, bytes)):
            raise BloopConfigurationError(
                "transport_plugins",
                f"bloop_get_transports in plugin {plugin_name} returned {type(transports).__name__}; "
                "expected iterable of transport classes",
            )

        for transport_class in transports:
            name = _resolve_transport_name(transport_class)
            if name in registry:
                raise BloopConfigurationError(
                    name,
                    f"Duplicate transport name '{name}' discovered: "
                    f"{registry[name].__name__} and {transport_class.__name__}",
                )
            registry[name] = transport_class

    return registry


def create_transport(
    config: RuntimeClientConfig,
    *,
    transport_plugins: Iterable[Any] = (),
) -> TransportProtocol:
    """Instantiate and configure the transport named by `config.transport`.

    Raises:
        BloopConfigurationError: If the name is unknown or configure() fails
    """
    registry = _discover_transport_registry(transport_plugins)
    try:
        transport_class = registry[config.transport]
    except KeyError:
        raise BloopConfigurationError(
            config.transport,
            f"Unknown transport. Available transports: {sorted(registry)}",
        ) from None

    transport = transport_class()
    transport.configure(config)
    logger.debug("transport_configured", transport=config.transport)
    return transport


def create_flush_engine(
    config: RuntimeClientConfig,
    *,
    transport: TransportProtocol | None = None,
    transport_plugins: Iterable[Any] = (),
) -> FlushEngine:
    """Create a started FlushEngine.

    Args:
        config: Runtime configuration
        transport: Already-configured transport to use instead of looking
            one up by name
        transport_plugins: Extra plugin objects providing
            `bloop_get_transports` hooks

    Raises:
        BloopConfigurationError: If transport discovery or configuration fails
    """
    if transport is None:
        transport = create_transport(config, transport_plugins=transport_plugins)
    return FlushEngine(config, transport)
