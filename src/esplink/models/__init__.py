from __future__ import annotations

from esplink.models.config import AppSettings
from esplink.models.device import Device, DeviceSpec

__all__ = [
    "AppSettings",
    "Device",
    "DeviceSpec",
]
