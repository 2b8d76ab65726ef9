"""
bloop: buffered error and LLM trace reporting for bloop collectors.

Events and completed traces are accumulated in thread-safe buffers and
shipped as HMAC-signed JSON batches on capacity, on a timer, on demand,
and at shutdown. Delivery is best-effort: nothing is retried or spooled.
"""

from bloop.client import BloopClient
from bloop.contracts.config import RuntimeClientConfig
from bloop.contracts.enums import BatchKind, DeliveryOutcome, SpanStatus, SpanType, TraceStatus
from bloop.contracts.events import DeliveryResult, ErrorEvent
from bloop.core.config import BloopSettings, load_settings
from bloop.device import DeviceInfoProvider, NullDeviceInfoProvider, PlatformInfoProvider
from bloop.errors import BloopConfigurationError, BloopError
from bloop.tracing import Span, Trace

__version__ = "0.1.0"

__all__ = [
    "BatchKind",
    "BloopClient",
    "BloopConfigurationError",
    "BloopError",
    "BloopSettings",
    "DeliveryOutcome",
    "DeliveryResult",
    "DeviceInfoProvider",
    "ErrorEvent",
    "NullDeviceInfoProvider",
    "PlatformInfoProvider",
    "RuntimeClientConfig",
    "Span",
    "SpanStatus",
    "SpanType",
    "Trace",
    "TraceStatus",
    "__version__",
    "load_settings",
]
