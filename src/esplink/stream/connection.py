"""Connection manager for a controller's ``ws://<host>:81/ws`` telemetry socket.

Owns a single streaming connection and runs its lifecycle as a state
machine::

    DISABLED --enable()--> CONNECTING
    CONNECTING --open--> CONNECTED                  (attempts reset, queue drained)
    CONNECTING --error/close--> WAITING_TO_RETRY    (attempts < ceiling)
                            --> FAILED -> DISABLED  (attempts >= ceiling)
    CONNECTED --close--> WAITING_TO_RETRY | FAILED -> DISABLED
    WAITING_TO_RETRY --retry_delay--> CONNECTING    (attempts += 1)
    any --disable()--> DISABLED

Everything runs on one event loop: socket events (open, message, error,
close) are consumed in arrival order by the session task, and every
state, queue and log mutation happens on the loop thread.  Scheduled work
(the retry timer, the session task and the drain task) is held as
cancellable handles so :meth:`ConnectionManager.disable` can stop all of
it.  A new session waits for every older session to finish closing its
socket before opening another.

Transport failures never raise out of the manager; they become a state
transition, a log entry and (optionally) the ``error`` field.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from esplink._internal.address import stream_url
from esplink.stream.codec import (
    ErrorFrame,
    InfoFrame,
    RawFrame,
    TelemetryFrame,
    decode_frame,
    encode_request,
)
from esplink.stream.config import StreamConfig
from esplink.stream.events import (
    EventKind,
    EventLog,
    EventLogEntry,
    StreamUpdate,
    UpdateFanout,
    UpdateKind,
)
from esplink.stream.filters import InboundDedupFilter
from esplink.stream.outbound import OutboundQueue, PendingRequest
from esplink.stream.store import LatestValues

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from esplink.stream.codec import OutboundRequest, TelemetrySample

logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    DISABLED = "disabled"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    WAITING_TO_RETRY = "waiting_to_retry"
    FAILED = "failed"


def _frame_text(raw: str | bytes) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


class ConnectionManager:
    """Realtime telemetry connection to one controller.

    Usage::

        manager = ConnectionManager("192.168.1.106")
        manager.subscribe(on_update)
        manager.enable()
        manager.send(SensorPoll("temp1", "temperature"))
        ...
        await manager.close()

    *connector* is an async callable ``(url) -> socket`` where the socket
    supports ``await send(text)``, ``await close()`` and ``async for``
    iteration over inbound frames.  Defaults to
    :func:`websockets.asyncio.client.connect`.

    ``enable()``, ``disable()`` and ``send()`` are synchronous and never
    block; they must be called from the event loop thread.

    Raises :class:`ValueError` at construction for an invalid *address*.
    """

    def __init__(
        self,
        address: str,
        *,
        config: StreamConfig | None = None,
        connector: Callable[[str], Awaitable[Any]] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or StreamConfig()
        self._address = address
        self._url = stream_url(address, port=self._config.port, path=self._config.path)
        self._connector = connector or self._default_connector
        self._clock = clock

        self._state = ConnectionState.DISABLED
        self._attempts = 0
        self._ws: Any = None
        self._session_task: asyncio.Task[None] | None = None
        # Every session task that has not finished, including ones still closing.
        self._sessions: set[asyncio.Task[None]] = set()
        self._drain_task: asyncio.Task[None] | None = None
        self._retry_handle: asyncio.TimerHandle | None = None
        self._last_transmit_at: float | None = None

        self._queue = OutboundQueue(self._config.poll_rate_window)
        self._dedup = InboundDedupFilter(self._config.inbound_dedup_window)
        self._log = EventLog(self._config.log_capacity)
        self._latest = LatestValues()
        self._fanout = UpdateFanout()
        self._last_raw: str | None = None
        self._error: str | None = None

        self._send_count = 0
        self._recv_count = 0
        self._suppressed_count = 0

    # -- Read-only surface ----------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def address(self) -> str:
        return self._address

    @property
    def config(self) -> StreamConfig:
        return self._config

    @property
    def state(self) -> ConnectionState:
        return self._state

    def current_state(self) -> ConnectionState:
        """Snapshot of the connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def enabled(self) -> bool:
        return self._state is not ConnectionState.DISABLED

    @property
    def attempts(self) -> int:
        """Consecutive connection attempts since the last successful open."""
        return self._attempts

    @property
    def log(self) -> tuple[EventLogEntry, ...]:
        """Rolling event log, most recent last."""
        return self._log.entries()

    @property
    def last_raw_message(self) -> str | None:
        return self._last_raw

    @property
    def latest_values(self) -> dict[str, TelemetrySample]:
        return self._latest.get_all()

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def pending(self) -> tuple[PendingRequest, ...]:
        """Outbound requests waiting for transmission, front first."""
        return self._queue.pending()

    @property
    def send_count(self) -> int:
        return self._send_count

    @property
    def recv_count(self) -> int:
        return self._recv_count

    @property
    def suppressed_count(self) -> int:
        """Inbound samples swallowed by the dedup window."""
        return self._suppressed_count

    def subscribe(self, callback: Callable[[StreamUpdate], None]) -> Callable[[], None]:
        """Register a push-update callback; returns an unsubscribe function."""
        return self._fanout.subscribe(callback)

    # -- Enable / disable -----------------------------------------------------

    def enable(self) -> None:
        """Leave DISABLED and start connecting immediately.  No-op if enabled."""
        if self._state is not ConnectionState.DISABLED:
            return
        self._attempts = 0
        self._append_log("WebSocket enabled")
        self._start_attempt()

    def disable(self) -> None:
        """Stop the connection and all scheduled work.  Idempotent.

        The attempt counter is left as-is; :meth:`enable` resets it.
        """
        if self._state is ConnectionState.DISABLED:
            return
        self._cancel_scheduled()
        self._set_state(ConnectionState.DISABLED)
        self._append_log("WebSocket disabled")

    async def close(self) -> None:
        """Disable and wait until the socket and every owned task are gone."""
        self.disable()
        tasks = set(self._sessions)
        tasks.update(t for t in (self._session_task, self._drain_task) if t is not None)
        if tasks:
            await asyncio.wait(tasks)
        self._session_task = None
        self._drain_task = None

    async def __aenter__(self) -> ConnectionManager:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def wait_for_state(
        self, *states: ConnectionState, timeout: float | None = None
    ) -> bool:
        """Wait until the manager enters one of *states*.

        Returns ``False`` if *timeout* expires first.
        """
        if self._state in states:
            return True

        loop = asyncio.get_running_loop()
        reached: asyncio.Future[ConnectionState] = loop.create_future()

        def _on_update(update: StreamUpdate) -> None:
            if (
                update.kind is UpdateKind.STATE
                and update.payload in states
                and not reached.done()
            ):
                reached.set_result(update.payload)

        unsubscribe = self.subscribe(_on_update)
        try:
            await asyncio.wait_for(reached, timeout=timeout)
            return True
        except TimeoutError:
            return False
        finally:
            unsubscribe()

    # -- Outbound -------------------------------------------------------------

    def send(self, request: OutboundRequest) -> bool:
        """Enqueue *request* for transmission.

        Returns ``True`` if the request was newly queued, ``False`` if it was
        suppressed as a duplicate or by the sensor-poll rate window.  A
        ``True`` result does not guarantee delivery.  Requests queued while
        disconnected are sent after the next successful open.

        Raises :class:`TypeError` for unsupported request types.
        """
        wire = encode_request(request)
        accepted = self._queue.offer(wire, self._clock())
        if accepted:
            logger.debug("Queued outbound request (%d pending): %s", len(self._queue), wire[:200])
            self._kick_drain()
        return accepted

    def clear_pending(self) -> int:
        """Drop every queued request; returns how many were removed."""
        count = self._queue.clear()
        if count:
            logger.info("Cleared %d pending outbound request(s)", count)
        return count

    async def wait_until_drained(self, timeout: float | None = None) -> bool:
        """Wait until the outbound queue is empty.  Returns ``False`` on timeout."""
        interval = max(self._config.drain_interval, 0.01)
        try:
            async with asyncio.timeout(timeout):
                while self._queue:
                    await asyncio.sleep(interval)
        except TimeoutError:
            return False
        return True

    # -- Lifecycle internals --------------------------------------------------

    async def _default_connector(self, url: str) -> Any:
        import websockets.asyncio.client as ws_client

        return await ws_client.connect(url, open_timeout=self._config.open_timeout)

    def _set_state(self, new_state: ConnectionState) -> None:
        if new_state is self._state:
            return
        old_state = self._state
        self._state = new_state
        logger.info("Stream %s: %s -> %s", self._url, old_state.value, new_state.value)
        self._fanout.publish(StreamUpdate(UpdateKind.STATE, new_state))

    def _set_error(self, message: str | None) -> None:
        if message == self._error:
            return
        self._error = message
        self._fanout.publish(StreamUpdate(UpdateKind.ERROR, message))

    def _append_log(self, text: str, kind: EventKind = EventKind.INFO) -> None:
        entry = EventLogEntry(text=text, kind=kind)
        self._log.append(entry)
        self._fanout.publish(StreamUpdate(UpdateKind.LOG, entry))

    def _cancel_scheduled(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
        if self._session_task is not None and not self._session_task.done():
            self._session_task.cancel()

    def _start_attempt(self) -> None:
        """Count a new attempt, reset the dedup windows and spawn its session task."""
        self._retry_handle = None
        self._attempts += 1
        # A fresh connection does not inherit stale suppression state.
        self._dedup.reset()
        self._queue.reset_rate_window()
        self._set_state(ConnectionState.CONNECTING)

        predecessors = {t for t in self._sessions if not t.done()}
        loop = asyncio.get_running_loop()
        task = loop.create_task(
            self._run_session(predecessors),
            name=f"esplink-session-{self._attempts}",
        )
        self._sessions.add(task)
        task.add_done_callback(self._sessions.discard)
        self._session_task = task

    async def _run_session(self, predecessors: set[asyncio.Task[None]]) -> None:
        """Open one socket, pump its frames until it closes, then hand off."""
        if predecessors:
            # Every older session must finish closing its socket first,
            # including ones whose successors were cancelled while waiting.
            await asyncio.wait(predecessors)

        logger.info(
            "Connection attempt %d/%d to %s", self._attempts, self._config.max_attempts, self._url
        )
        try:
            ws = await self._connector(self._url)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.info("Connection attempt %d failed: %s", self._attempts, exc)
            self._set_error("Failed to connect to WebSocket")
            self._append_log("Failed to connect to WebSocket", EventKind.ERROR)
            self._append_log("WebSocket connection closed")
            self._handle_close()
            return

        self._ws = ws
        try:
            self._handle_open()
            await self._receive(ws)
        finally:
            await self._release(ws)
        self._append_log("WebSocket connection closed")
        self._handle_close()

    def _handle_open(self) -> None:
        self._attempts = 0
        self._set_error(None)
        self._set_state(ConnectionState.CONNECTED)
        self._append_log("WebSocket connection established")
        self._kick_drain()

    async def _receive(self, ws: Any) -> None:
        """Consume inbound frames in arrival order until the socket closes."""
        try:
            async for raw in ws:
                self._recv_count += 1
                self._handle_frame(raw)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Transport error; the close handling that follows drives the transition.
            logger.info("WebSocket error on %s: %s", self._url, exc)
            self._set_error("WebSocket error occurred")
            self._append_log("WebSocket error occurred", EventKind.ERROR)

    async def _release(self, ws: Any) -> None:
        if self._ws is ws:
            # Only the session holding the live socket owns the drain.
            self._ws = None
            if self._drain_task is not None and not self._drain_task.done():
                self._drain_task.cancel()
        with contextlib.suppress(Exception):
            await ws.close()

    def _handle_close(self) -> None:
        """Route a closed or failed socket to WAITING_TO_RETRY or FAILED."""
        if self._state is ConnectionState.DISABLED:
            return

        ceiling = self._config.max_attempts
        if self._attempts >= ceiling:
            message = f"WebSocket connection failed after {ceiling} attempts"
            logger.warning("%s (%s), disabling", message, self._url)
            self._set_state(ConnectionState.FAILED)
            self._set_error(message)
            self._append_log(f"{message}. WebSocket disabled.", EventKind.ERROR)
            self._set_state(ConnectionState.DISABLED)
            return

        self._set_state(ConnectionState.WAITING_TO_RETRY)
        delay = self._config.retry_delay
        logger.info("Retrying %s in %.1fs", self._url, delay)
        loop = asyncio.get_running_loop()
        self._retry_handle = loop.call_later(delay, self._on_retry_timer)

    def _on_retry_timer(self) -> None:
        self._retry_handle = None
        if self._state is not ConnectionState.WAITING_TO_RETRY:
            return
        self._start_attempt()

    # -- Inbound --------------------------------------------------------------

    def _handle_frame(self, raw: str | bytes) -> None:
        text = _frame_text(raw)
        frame = decode_frame(text)

        if isinstance(frame, InfoFrame):
            self._last_raw = text
            return

        if isinstance(frame, ErrorFrame):
            self._last_raw = text
            self._set_error(frame.message)
            self._append_log(frame.message, EventKind.ERROR)
            return

        if isinstance(frame, TelemetryFrame):
            sample = frame.sample
            if not self._dedup.should_accept(sample, self._clock()):
                self._suppressed_count += 1
                logger.debug("Suppressed repeated sample %s=%s", sample.key, sample.value)
                return
            self._last_raw = text
            self._latest.update(sample)
            self._append_log(text, EventKind.RAW)
            self._fanout.publish(StreamUpdate(UpdateKind.SAMPLE, sample))
            return

        assert isinstance(frame, RawFrame)
        self._last_raw = text
        self._append_log(frame.text, EventKind.RAW)

    # -- Drain ----------------------------------------------------------------

    def _kick_drain(self) -> None:
        if self._state is not ConnectionState.CONNECTED or not self._queue:
            return
        if self._drain_task is not None and not self._drain_task.done():
            return
        loop = asyncio.get_running_loop()
        self._drain_task = loop.create_task(self._drain(), name="esplink-drain")

    async def _drain(self) -> None:
        """Transmit queued requests in FIFO order, at most one per drain interval."""
        interval = self._config.drain_interval
        while self._state is ConnectionState.CONNECTED and self._queue:
            if self._last_transmit_at is not None:
                wait = interval - (self._clock() - self._last_transmit_at)
                if wait > 0:
                    await asyncio.sleep(wait)
                    continue

            request = self._queue.peek()
            assert request is not None
            if not await self._write(request.wire):
                return
            if self._queue.peek() is request:
                self._queue.pop()
            self._last_transmit_at = self._clock()
            self._append_log(f"Sent: {request.wire}", EventKind.SENT)

    async def _write(self, wire: str) -> bool:
        """Single write entry point for the live socket.

        Returns ``False`` (leaving the request queued) if there is no socket
        or the send fails; the receive loop observes the close.
        """
        ws = self._ws
        if ws is None:
            return False
        try:
            await ws.send(wire)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Send failed on %s; request stays queued", self._url, exc_info=True)
            return False
        self._send_count += 1
        return True
