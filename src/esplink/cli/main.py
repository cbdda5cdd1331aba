"""Entry point for the ``esplink`` command line."""

from __future__ import annotations

import dataclasses
import logging
import sys
from typing import TYPE_CHECKING

import click

from esplink import __version__
from esplink.api.errors import ConfigError, DeviceApiError
from esplink.output.formatter import FORMATS, OutputFormatter

if TYPE_CHECKING:
    from collections.abc import Sequence

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_CHATTY_LIBRARIES = ("httpx", "httpcore", "websockets")

# Most specific first; the first isinstance match names the error code.
_ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (ConfigError, "config_error"),
    (DeviceApiError, "device_api_error"),
    (ValueError, "invalid_value"),
)


@dataclasses.dataclass
class AppContext:
    """Global options shared with every command through ``ctx.obj``."""

    address: str | None = None
    output_format: str | None = None
    quiet: bool = False
    verbose: bool = False
    command: str = "esplink"
    _formatter: OutputFormatter | None = dataclasses.field(default=None, repr=False)

    @property
    def formatter(self) -> OutputFormatter:
        """Formatter for the current options, built on first use."""
        if self._formatter is None:
            self._formatter = OutputFormatter(
                force_format="quiet" if self.quiet else self.output_format
            )
        return self._formatter

    def reset_formatter(self) -> None:
        """Forget the cached formatter after an output option changes."""
        self._formatter = None


def configure_logging(*, verbose: bool) -> None:
    """Route log records to stderr at DEBUG (*verbose*) or WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
        force=True,
    )
    if not verbose:
        for name in _CHATTY_LIBRARIES:
            logging.getLogger(name).setLevel(logging.WARNING)


@click.group()
@click.version_option(__version__, prog_name="esplink")
@click.option("--address", envvar="ESPLINK_ADDRESS", help="Controller IP address or hostname")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(FORMATS),
    help="Output format (default: rich on a terminal, json when piped)",
)
@click.option("--quiet", is_flag=True, help="Suppress normal output")
@click.option("--verbose", is_flag=True, help="Log debug detail to stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    address: str | None,
    output_format: str | None,
    quiet: bool,
    verbose: bool,
) -> None:
    """Watch and control ESP32 peripherals over the realtime telemetry link."""
    configure_logging(verbose=verbose)
    ctx.obj = AppContext(
        address=address, output_format=output_format, quiet=quiet, verbose=verbose
    )


def _register_commands() -> None:
    from esplink.cli.devices import devices_group
    from esplink.cli.stream import send_cmd, watch_cmd

    for command in (devices_group, watch_cmd, send_cmd):
        cli.add_command(command)


_register_commands()


def _error_code(exc: Exception) -> str:
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return type(exc).__name__


def _report_failure(exc: Exception, app_ctx: AppContext | None) -> None:
    if app_ctx is None:
        app_ctx = AppContext()
    app_ctx.formatter.output_error(
        code=_error_code(exc), message=str(exc), command=app_ctx.command
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Run the CLI; unexpected errors become a formatted error and exit status 1."""
    args = list(argv) if argv is not None else sys.argv[1:]
    ctx: click.Context | None = None
    try:
        ctx = cli.make_context("esplink", args)
        with ctx:
            cli.invoke(ctx)
    except click.exceptions.Exit as exc:
        raise SystemExit(exc.exit_code) from None
    except click.exceptions.Abort:
        raise SystemExit(1) from None
    except click.ClickException as exc:
        exc.show()
        raise SystemExit(exc.exit_code) from None
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as exc:
        app_ctx = ctx.obj if ctx is not None and isinstance(ctx.obj, AppContext) else None
        _report_failure(exc, app_ctx)
        raise SystemExit(1) from exc
