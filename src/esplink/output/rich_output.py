from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from rich.console import Console

    from esplink.models.device import Device
    from esplink.stream.codec import TelemetrySample
    from esplink.stream.events import EventLogEntry

_KIND_STYLES = {
    "info": "cyan",
    "sent": "green",
    "error": "bold red",
    "raw": "white",
}


class RichOutput:
    """Rich-based terminal output helpers for *esplink*."""

    def __init__(self, console: Console) -> None:
        self._con = console

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def device_list(self, devices: list[Device]) -> None:
        """Print a table of devices registered on the controller."""
        table = Table(title="Devices")
        table.add_column("ID", style="cyan")
        table.add_column("Type")
        table.add_column("State")
        table.add_column("Pins", justify="right")
        table.add_column("Interface")
        table.add_column("Direction")

        for d in devices:
            table.add_row(
                d.id,
                d.type,
                d.state,
                ", ".join(str(p) for p in d.pins),
                d.interface_type,
                d.direction,
            )

        self._con.print(table)

    # ------------------------------------------------------------------
    # Stream
    # ------------------------------------------------------------------

    def log_entry(self, entry: EventLogEntry) -> None:
        """Print one event log line with a timestamp and kind-coloured text."""
        style = _KIND_STYLES.get(entry.kind.value, "white")
        stamp = entry.timestamp.astimezone().strftime("%H:%M:%S")
        self._con.print(f"[dim]{stamp}[/dim] [{style}]{escape(entry.text)}[/{style}]")

    def latest_values(self, values: dict[str, TelemetrySample]) -> None:
        """Print the most recent sample per device + metric."""
        table = Table(title="Latest Values")
        table.add_column("Device", style="cyan")
        table.add_column("Metric")
        table.add_column("Value", justify="right")
        table.add_column("Observed")

        for key in sorted(values):
            s = values[key]
            table.add_row(
                s.device_id,
                s.metric,
                str(s.value),
                s.observed_at.astimezone().strftime("%H:%M:%S"),
            )

        self._con.print(table)

    # ------------------------------------------------------------------
    # Command result helpers
    # ------------------------------------------------------------------

    def command_result(self, success: bool, message: str = "") -> None:
        """Print a coloured OK / FAILED indicator."""
        text = "[green]OK[/green]" if success else "[red]FAILED[/red]"
        if message:
            text += f"  {escape(message)}"
        self._con.print(text)

    def error(self, message: str) -> None:
        """Print a bold red error line."""
        self._con.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def info(self, message: str) -> None:
        """Print an informational message (plain)."""
        self._con.print(message)
