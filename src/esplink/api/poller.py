"""REST fallback for device state while the telemetry stream is down.

When the :class:`~esplink.stream.connection.ConnectionManager` is disabled
or not connected, device state is polled over the Device Control API on a
fixed cadence instead.  Polling pauses on its own while the stream is up.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from esplink.api.errors import DeviceApiError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from esplink.api.client import DeviceClient
    from esplink.stream.connection import ConnectionManager

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class FallbackPoller:
    """Polls ``get_device_state`` for each device while the stream is not connected."""

    def __init__(
        self,
        manager: ConnectionManager,
        client: DeviceClient,
        device_ids: Iterable[str],
        on_state: Callable[[str, str], None],
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._manager = manager
        self._client = client
        self._device_ids = list(device_ids)
        self._on_state = on_state
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._poll_count = 0
        self._failure_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def poll_count(self) -> int:
        return self._poll_count

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def start(self) -> None:
        """Start the polling task (no-op if already running)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="esplink-fallback-poller"
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def poll_once(self) -> int:
        """Poll every device once if the stream is down.  Returns states delivered."""
        if self._manager.is_connected:
            return 0
        delivered = 0
        for device_id in self._device_ids:
            try:
                state = await self._client.get_device_state(device_id)
            except DeviceApiError as exc:
                self._failure_count += 1
                logger.warning("Fallback poll of %s failed: %s", device_id, exc)
                continue
            self._poll_count += 1
            delivered += 1
            try:
                self._on_state(device_id, state)
            except Exception:
                logger.warning("State callback failed for %s", device_id, exc_info=True)
        return delivered

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self._interval)
