"""CLI commands for the realtime telemetry stream (watch, send)."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

import click

from esplink._internal.async_utils import run_async, wait_for_interrupt
from esplink.api.poller import DEFAULT_POLL_INTERVAL
from esplink.cli._client import build_device_client, load_stream_config, require_address
from esplink.cli._options import global_options

if TYPE_CHECKING:
    from esplink.cli.main import AppContext
    from esplink.stream.codec import SensorPoll
    from esplink.stream.connection import ConnectionManager
    from esplink.stream.events import StreamUpdate

logger = logging.getLogger(__name__)


def _parse_poll(raw: str) -> SensorPoll:
    from esplink.stream.codec import SensorPoll

    device_id, sep, sensor = raw.partition(":")
    if not sep or not device_id or not sensor:
        raise click.BadParameter(f"Expected DEVICE:SENSOR, got {raw!r}", param_hint="--poll")
    return SensorPoll(device_id=device_id, sensor=sensor)


async def _poll_loop(
    manager: ConnectionManager, polls: list[SensorPoll], interval: float
) -> None:
    while True:
        for poll in polls:
            if not manager.send(poll):
                logger.debug("Poll %s:%s suppressed", poll.device_id, poll.sensor)
        await asyncio.sleep(interval)


# ---------------------------------------------------------------------------
# watch
# ---------------------------------------------------------------------------


@click.command("watch")
@click.argument("address_positional", required=False, default=None, metavar="ADDRESS")
@click.option(
    "--poll",
    "poll_specs",
    multiple=True,
    metavar="DEVICE:SENSOR",
    help="Ask a sensor for its reading periodically (repeatable)",
)
@click.option(
    "--poll-interval", type=float, default=5.0, show_default=True, help="Seconds between polls"
)
@click.option(
    "--fallback",
    "fallback_ids",
    multiple=True,
    metavar="DEVICE",
    help="Poll this device's state over REST while the stream is down (repeatable)",
)
@click.option(
    "--fallback-interval",
    type=click.FloatRange(min=1.0),
    default=DEFAULT_POLL_INTERVAL,
    show_default=True,
    help="Seconds between REST state polls for --fallback devices",
)
@click.option("--config", "config_path", default=None, help="Stream config JSON path")
@click.option("--retry-delay", type=float, default=None, help="Seconds between reconnects")
@click.option("--max-attempts", type=int, default=None, help="Reconnect attempts before giving up")
@click.option(
    "--duration", type=float, default=None, help="Stop after this many seconds (default: Ctrl+C)"
)
@global_options
def watch_cmd(
    app_ctx: AppContext,
    address_positional: str | None,
    poll_specs: tuple[str, ...],
    poll_interval: float,
    fallback_ids: tuple[str, ...],
    fallback_interval: float,
    config_path: str | None,
    retry_delay: float | None,
    max_attempts: int | None,
    duration: float | None,
) -> None:
    """Stream live telemetry from the controller.

    Connects to ``ws://<ADDRESS>:81/ws``, reconnects on loss, and prints
    every event until interrupted or the connection gives up.

    \b
    Examples:
      esplink watch 192.168.1.106
      esplink watch 192.168.1.106 --poll temp1:temperature --poll-interval 3
      esplink watch --format json --duration 30 > telemetry.jsonl
    """
    polls = [_parse_poll(spec) for spec in poll_specs]
    run_async(
        _cmd_watch(
            app_ctx,
            address_positional,
            polls,
            poll_interval,
            list(fallback_ids),
            fallback_interval,
            config_path,
            retry_delay,
            max_attempts,
            duration,
        )
    )


async def _cmd_watch(
    app_ctx: AppContext,
    address_positional: str | None,
    polls: list[SensorPoll],
    poll_interval: float,
    fallback_ids: list[str],
    fallback_interval: float,
    config_path: str | None,
    retry_delay: float | None,
    max_attempts: int | None,
    duration: float | None,
) -> None:
    from esplink.api.poller import FallbackPoller
    from esplink.stream.connection import ConnectionManager, ConnectionState
    from esplink.stream.events import UpdateKind

    formatter = app_ctx.formatter
    address = require_address(address_positional, app_ctx)
    config = load_stream_config(config_path).merge_overrides(
        retry_delay=retry_delay, max_attempts=max_attempts
    )
    manager = ConnectionManager(address, config=config)

    stop_event = asyncio.Event()

    def _stop_on_give_up(update: StreamUpdate) -> None:
        if update.kind is UpdateKind.STATE and update.payload is ConnectionState.DISABLED:
            stop_event.set()

    manager.subscribe(formatter.stream_update)
    if not fallback_ids:
        manager.subscribe(_stop_on_give_up)

    if formatter.format == "rich":
        formatter.rich.info(f"Watching [cyan]{manager.url}[/cyan]  (Ctrl+C to stop)")

    client = build_device_client(address) if fallback_ids else None
    poller: FallbackPoller | None = None
    if client is not None:
        poller = FallbackPoller(
            manager,
            client,
            fallback_ids,
            formatter.device_state,
            interval=fallback_interval,
        )

    poll_task: asyncio.Task[None] | None = None
    try:
        manager.enable()
        if polls:
            poll_task = asyncio.get_running_loop().create_task(
                _poll_loop(manager, polls, poll_interval), name="esplink-watch-polls"
            )
        if poller is not None:
            poller.start()
        await wait_for_interrupt(stop_event, timeout=duration)
    finally:
        if poll_task is not None:
            poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await poll_task
        if poller is not None:
            await poller.stop()
        if client is not None:
            await client.close()
        await manager.close()

    latest = manager.latest_values
    if formatter.format == "rich":
        if latest:
            formatter.rich.latest_values(latest)
        formatter.rich.info(
            f"[dim]Received: {manager.recv_count}, sent: {manager.send_count},"
            f" suppressed: {manager.suppressed_count}[/dim]"
        )
    if manager.error and formatter.format != "json":
        formatter.rich.error(manager.error)


# ---------------------------------------------------------------------------
# send
# ---------------------------------------------------------------------------


@click.command("send")
@click.argument("address_positional", metavar="ADDRESS")
@click.argument("message")
@click.option(
    "--wait",
    "wait_seconds",
    type=float,
    default=1.0,
    show_default=True,
    help="Seconds to keep listening for replies after sending",
)
@click.option(
    "--timeout", type=float, default=10.0, show_default=True, help="Seconds allowed to connect"
)
@click.option("--config", "config_path", default=None, help="Stream config JSON path")
@global_options
def send_cmd(
    app_ctx: AppContext,
    address_positional: str,
    message: str,
    wait_seconds: float,
    timeout: float,
    config_path: str | None,
) -> None:
    """Send one MESSAGE over the telemetry socket and print the replies.

    \b
    Examples:
      esplink send 192.168.1.106 '{"deviceId":"temp1","sensor":"temperature"}'
      esplink send 192.168.1.106 ping --wait 3
    """
    run_async(_cmd_send(app_ctx, address_positional, message, wait_seconds, timeout, config_path))


async def _cmd_send(
    app_ctx: AppContext,
    address_positional: str,
    message: str,
    wait_seconds: float,
    timeout: float,
    config_path: str | None,
) -> None:
    from esplink.api.errors import DeviceConnectionError
    from esplink.stream.connection import ConnectionManager, ConnectionState

    formatter = app_ctx.formatter
    address = require_address(address_positional, app_ctx)
    manager = ConnectionManager(address, config=load_stream_config(config_path))
    if formatter.format == "rich":
        manager.subscribe(formatter.stream_update)

    async with manager:
        manager.enable()
        accepted = manager.send(message)
        await manager.wait_for_state(
            ConnectionState.CONNECTED, ConnectionState.DISABLED, timeout=timeout
        )
        if not manager.is_connected:
            raise DeviceConnectionError(
                manager.error or f"Could not connect to {manager.url} within {timeout:.0f}s"
            )
        if accepted:
            await manager.wait_until_drained(timeout=timeout)
        await wait_for_interrupt(timeout=wait_seconds)
        sent = manager.send_count

    if formatter.format == "json":
        formatter.output(
            {"url": manager.url, "accepted": accepted, "sent": sent, "log": manager.log},
            command="send",
        )
    elif formatter.format == "rich":
        formatter.rich.command_result(bool(sent), f"{sent} message(s) sent to {manager.url}")
