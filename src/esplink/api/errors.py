"""Exceptions raised by :class:`~esplink.api.client.DeviceClient`."""

from __future__ import annotations


class DeviceApiError(Exception):
    """The controller rejected a REST request or returned an unusable response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DeviceNotFoundError(DeviceApiError):
    """The controller has no device with the requested id (HTTP 404)."""


class DeviceTimeoutError(DeviceApiError):
    """The controller did not answer within the request timeout."""


class DeviceConnectionError(DeviceApiError):
    """The controller could not be reached at all."""


class ConfigError(Exception):
    """Missing or invalid local configuration (e.g. no controller address)."""
