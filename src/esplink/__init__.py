"""esplink: realtime telemetry link for ESP32-class IoT controllers."""

from __future__ import annotations

__version__ = "0.3.0"
