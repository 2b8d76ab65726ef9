"""Buffering and delivery of error events and traces.

Components:
- DrainableBuffer: thread-safe append / atomic drain
- FlushEngine: flush triggers, background sender, sync flush, close
- TransportProtocol: what a batch transport must implement
- HTTPTransport / ConsoleTransport: built-in transports
- create_flush_engine: builds an engine from RuntimeClientConfig
"""

from bloop.telemetry.buffer import DrainableBuffer
from bloop.telemetry.engine import FlushEngine
from bloop.telemetry.factory import create_flush_engine, create_transport
from bloop.telemetry.protocols import TransportProtocol
from bloop.telemetry.transports import ConsoleTransport, HTTPTransport

__all__ = [
    "ConsoleTransport",
    "DrainableBuffer",
    "FlushEngine",
    "HTTPTransport",
    "TransportProtocol",
    "create_flush_engine",
    "create_transport",
]
