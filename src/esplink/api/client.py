"""Async client for the controller's Device Control REST API.

Routes served by the controller firmware:

- ``GET    /api/devices``            list devices
- ``GET    /api/device/{id}``        one device
- ``POST   /api/device``             create (JSON body)
- ``PUT    /api/device/{id}``        set state (``text/plain`` body)
- ``PUT    /api/device/{id}/pins``   set pins (``{"pins": [...]}``)
- ``DELETE /api/device/{id}``        delete

Every call carries its own timeout (5s by default).  IPv4 addresses are
reached over ``http``; hostnames over ``https``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from esplink._internal.address import rest_base_url
from esplink.api.errors import (
    DeviceApiError,
    DeviceConnectionError,
    DeviceNotFoundError,
    DeviceTimeoutError,
)
from esplink.models.device import Device, DeviceSpec

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


def next_device_id(device_type: str, existing: Iterable[Device]) -> str:
    """Return the lowest free id of the form ``<type><n>`` (``led1``, ``led2``, ...).

    Ids already taken by any device are skipped, so a gap left by a deleted
    device is reused and an existing id is never returned.
    """
    kind = device_type.lower()
    taken = {d.id.lower() for d in existing}
    n = 1
    while f"{kind}{n}" in taken:
        n += 1
    return f"{kind}{n}"


def _device_path(device_id: str, suffix: str = "") -> str:
    return f"/api/device/{quote(device_id, safe='')}{suffix}"


class DeviceClient:
    """Thin wrapper over :class:`httpx.AsyncClient` for one controller."""

    def __init__(
        self,
        address: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = rest_base_url(address)
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> DeviceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(
        self, method: str, path: str, action: str, **kwargs: Any
    ) -> httpx.Response:
        """Send one request and map transport/HTTP failures to typed errors."""
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise DeviceTimeoutError("Request timed out. Please check your connection.") from exc
        except httpx.TransportError as exc:
            raise DeviceConnectionError(
                f"Failed to reach controller at {self._base_url}: {exc}"
            ) from exc

        logger.debug("%s %s -> %d", method, path, resp.status_code)
        if resp.status_code == 404:
            raise DeviceNotFoundError(resp.text or "Device not found", status_code=404)
        if resp.status_code >= 400:
            detail = f" ({resp.text})" if resp.text else ""
            raise DeviceApiError(
                f"Failed to {action}: {resp.status_code} {resp.reason_phrase}{detail}",
                status_code=resp.status_code,
            )
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise DeviceApiError(
                f"Controller returned invalid JSON: {resp.text[:200]}",
                status_code=resp.status_code,
            ) from exc

    async def test_connection(self) -> bool:
        """Return ``True`` if the controller answers the device list with JSON.

        Raises a :class:`DeviceApiError` subclass otherwise.
        """
        resp = await self._request("GET", "/api/devices", "connect")
        self._json(resp)
        return True

    async def list_devices(self) -> list[Device]:
        resp = await self._request("GET", "/api/devices", "fetch devices")
        raw_list = self._json(resp)
        if not isinstance(raw_list, list):
            raise DeviceApiError("Unexpected device list payload", status_code=resp.status_code)
        return [Device.model_validate(d) for d in raw_list]

    async def get_device(self, device_id: str) -> Device:
        resp = await self._request("GET", _device_path(device_id), "fetch device")
        return Device.model_validate(self._json(resp))

    async def get_device_state(self, device_id: str) -> str:
        """Current state string of one device."""
        device = await self.get_device(device_id)
        return device.state

    async def create_device(self, spec: DeviceSpec) -> str:
        """Register a new device; returns the controller's confirmation text."""
        resp = await self._request("POST", "/api/device", "add device", json=spec.model_dump())
        return resp.text

    async def set_device_state(self, device_id: str, state: str) -> str:
        resp = await self._request(
            "PUT",
            _device_path(device_id),
            "update device",
            content=state.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )
        return resp.text

    async def set_device_pins(self, device_id: str, pins: list[int]) -> str:
        resp = await self._request(
            "PUT",
            _device_path(device_id, "/pins"),
            "update device pins",
            json={"pins": list(pins)},
        )
        return resp.text

    async def delete_device(self, device_id: str) -> str:
        resp = await self._request("DELETE", _device_path(device_id), "delete device")
        return resp.text
