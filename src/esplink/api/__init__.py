"""Device Control REST API client and the fallback state poller."""

from __future__ import annotations

from esplink.api.client import DeviceClient, next_device_id
from esplink.api.errors import (
    ConfigError,
    DeviceApiError,
    DeviceConnectionError,
    DeviceNotFoundError,
    DeviceTimeoutError,
)
from esplink.api.poller import FallbackPoller

__all__ = [
    "ConfigError",
    "DeviceApiError",
    "DeviceClient",
    "DeviceConnectionError",
    "DeviceNotFoundError",
    "DeviceTimeoutError",
    "FallbackPoller",
    "next_device_id",
]
