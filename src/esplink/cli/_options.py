"""Decorator that lets global options also follow the subcommand name."""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any

import click

from esplink.output.formatter import FORMATS

if TYPE_CHECKING:
    from collections.abc import Callable

    from esplink.cli.main import AppContext

_LOCAL_OPTIONS = (
    click.option("--address", "local_address", help="Controller IP address or hostname"),
    click.option("--format", "local_format", type=click.Choice(FORMATS), help="Output format"),
    click.option("--quiet", "local_quiet", is_flag=True, help="Suppress normal output"),
    click.option("--verbose", "local_verbose", is_flag=True, help="Log debug detail to stderr"),
)


def _apply_local(
    app_ctx: AppContext,
    *,
    local_address: str | None,
    local_format: str | None,
    local_quiet: bool,
    local_verbose: bool,
) -> None:
    """Fold command-level options into *app_ctx*; they win over root-group values."""
    if local_address:
        app_ctx.address = local_address
    if local_format and local_format != app_ctx.output_format:
        app_ctx.output_format = local_format
        app_ctx.reset_formatter()
    if local_quiet and not app_ctx.quiet:
        app_ctx.quiet = True
        app_ctx.reset_formatter()
    if local_verbose and not app_ctx.verbose:
        from esplink.cli.main import configure_logging

        app_ctx.verbose = True
        configure_logging(verbose=True)


def _command_name(ctx: click.Context) -> str:
    """Dotted subcommand path without the program name, e.g. ``devices.list``."""
    names: list[str] = []
    while ctx.parent is not None:
        names.append(ctx.info_name or "")
        ctx = ctx.parent
    return ".".join(reversed(names))


def global_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Accept ``--address/--format/--quiet/--verbose`` after a leaf command.

    ``esplink devices list --format json`` behaves like
    ``esplink --format json devices list``.  The wrapped function receives
    the :class:`AppContext` as its first argument.
    """

    @click.pass_obj
    def wrapper(app_ctx: AppContext, /, **kwargs: Any) -> Any:
        _apply_local(
            app_ctx,
            local_address=kwargs.pop("local_address", None),
            local_format=kwargs.pop("local_format", None),
            local_quiet=kwargs.pop("local_quiet", False),
            local_verbose=kwargs.pop("local_verbose", False),
        )
        app_ctx.command = _command_name(click.get_current_context())
        return f(app_ctx, **kwargs)

    for option in reversed(_LOCAL_OPTIONS):
        wrapper = option(wrapper)
    functools.update_wrapper(wrapper, f)
    return wrapper
