from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from rich.console import Console

from esplink.output.json_output import (
    format_json_error,
    format_json_line,
    format_json_response,
    format_stream_event,
)
from esplink.output.rich_output import RichOutput

if TYPE_CHECKING:
    from io import TextIOBase

    from esplink.stream.events import StreamUpdate

FORMATS = ("rich", "json", "quiet")


def detect_format(stream: Any, force_format: str | None = None) -> str:
    """``force_format`` if given, else ``"rich"`` on a TTY and ``"json"`` when piped."""
    if force_format is not None:
        if force_format not in FORMATS:
            raise ValueError(f"Unknown output format: {force_format!r}")
        return force_format
    isatty = getattr(stream, "isatty", None)
    return "rich" if isatty is not None and isatty() else "json"


class OutputFormatter:
    """Routes command results and stream events to Rich or JSON output.

    In ``"quiet"`` mode Rich writes to stderr and nothing reaches stdout.
    """

    def __init__(
        self,
        *,
        stream: TextIOBase | Any | None = None,
        force_format: str | None = None,
    ) -> None:
        self._format = detect_format(stream or sys.stdout, force_format)
        self._rich = RichOutput(Console(stderr=self._format == "quiet"))

    @property
    def format(self) -> str:  # noqa: A003
        return self._format

    @property
    def rich(self) -> RichOutput:
        return self._rich

    def _emit(self, text: str, *, flush: bool = False) -> None:
        print(text, flush=flush)  # noqa: T201

    def output(self, data: Any, *, command: str) -> None:
        """Print a command result: JSON envelope, or ``str(data)`` through Rich."""
        if self._format == "json":
            self._emit(format_json_response(data=data, command=command))
        else:
            self._rich.info(str(data))

    def output_line(self, data: Any) -> None:
        """Emit one streamed record: JSONL in json mode, nothing otherwise."""
        if self._format == "json":
            self._emit(format_json_line(data), flush=True)

    def stream_update(self, update: StreamUpdate) -> None:
        """Render one connection-manager push update.

        Rich shows log entries only; JSON emits log, state and sample events.
        """
        from esplink.stream.events import UpdateKind

        if self._format == "json":
            if update.kind is UpdateKind.ERROR:
                return
            payload = update.payload
            if update.kind is UpdateKind.STATE:
                payload = {"state": payload.value}
            self._emit(format_stream_event(update.kind.value, payload), flush=True)
        elif self._format == "rich" and update.kind is UpdateKind.LOG:
            self._rich.log_entry(update.payload)

    def device_state(self, device_id: str, state: str) -> None:
        """Render a device state fetched over REST while the stream is down."""
        if self._format == "json":
            self._emit(
                format_stream_event("state_poll", {"deviceId": device_id, "state": state}),
                flush=True,
            )
        elif self._format == "rich":
            self._rich.info(f"[dim]REST[/dim] {device_id}: {state}")

    def output_error(self, *, code: str, message: str, command: str) -> None:
        if self._format == "json":
            self._emit(format_json_error(code=code, message=message, command=command))
        else:
            self._rich.error(message)
