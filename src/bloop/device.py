# src/bloop/device.py
"""Device and platform information merged into event metadata.

Providers are capability objects: the client calls collect() once, lazily,
on the first captured event. No data is an empty mapping, never an error.
"""

import platform
from collections.abc import Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class DeviceInfoProvider(Protocol):
    """Supplies flat string facts about the running device."""

    def collect(self) -> Mapping[str, str]:
        """Return device facts. Return {} when nothing is available."""
        ...


class NullDeviceInfoProvider:
    """Provider that reports nothing."""

    def collect(self) -> Mapping[str, str]:
        return {}


class PlatformInfoProvider:
    """Host facts from the stdlib platform module.

    Keys: os_name, os_version, os_arch, python_version. Empty values
    (platform returns "" when it cannot tell) are omitted.
    """

    def collect(self) -> Mapping[str, str]:
        facts = {
            "os_name": platform.system(),
            "os_version": platform.release(),
            "os_arch": platform.machine(),
            "python_version": platform.python_version(),
        }
        return {key: value for key, value in facts.items() if value}
