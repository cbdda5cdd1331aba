"""CLI commands for the Device Control REST API (list, get, set, pins, add, delete)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from esplink._internal.async_utils import run_async
from esplink.api.client import next_device_id
from esplink.cli._client import build_device_client, require_address
from esplink.cli._options import global_options
from esplink.models.device import DeviceSpec

if TYPE_CHECKING:
    from esplink.cli.main import AppContext

devices_group = click.Group("devices", help="Manage peripherals registered on the controller")


def _parse_pins(raw: str) -> list[int]:
    try:
        return [int(p) for p in raw.split(",") if p.strip()]
    except ValueError as exc:
        raise click.BadParameter(f"Pins must be comma-separated integers, got {raw!r}") from exc


@devices_group.command("list")
@click.argument("address_positional", required=False, default=None, metavar="ADDRESS")
@global_options
def list_cmd(app_ctx: AppContext, address_positional: str | None) -> None:
    """List every device registered on the controller."""
    run_async(_cmd_list(app_ctx, address_positional))


async def _cmd_list(app_ctx: AppContext, address_positional: str | None) -> None:
    formatter = app_ctx.formatter
    address = require_address(address_positional, app_ctx)
    async with build_device_client(address) as client:
        devices = await client.list_devices()

    if formatter.format == "json":
        formatter.output(devices, command="devices.list")
    elif devices:
        formatter.rich.device_list(devices)
    else:
        formatter.rich.info("No devices registered.")


@devices_group.command("get")
@click.argument("device_id")
@global_options
def get_cmd(app_ctx: AppContext, device_id: str) -> None:
    """Show one device."""
    run_async(_cmd_get(app_ctx, device_id))


async def _cmd_get(app_ctx: AppContext, device_id: str) -> None:
    formatter = app_ctx.formatter
    address = require_address(None, app_ctx)
    async with build_device_client(address) as client:
        device = await client.get_device(device_id)

    if formatter.format == "json":
        formatter.output(device, command="devices.get")
    else:
        formatter.rich.device_list([device])


@devices_group.command("set")
@click.argument("device_id")
@click.argument("state")
@global_options
def set_cmd(app_ctx: AppContext, device_id: str, state: str) -> None:
    """Set a device's state (e.g. ``on``, ``off``, ``128``)."""
    run_async(_cmd_set(app_ctx, device_id, state))


async def _cmd_set(app_ctx: AppContext, device_id: str, state: str) -> None:
    formatter = app_ctx.formatter
    address = require_address(None, app_ctx)
    async with build_device_client(address) as client:
        reply = await client.set_device_state(device_id, state)

    if formatter.format == "json":
        formatter.output(
            {"id": device_id, "state": state, "response": reply}, command="devices.set"
        )
    else:
        formatter.rich.command_result(True, reply or f"{device_id} -> {state}")


@devices_group.command("pins")
@click.argument("device_id")
@click.argument("pins")
@global_options
def pins_cmd(app_ctx: AppContext, device_id: str, pins: str) -> None:
    """Reassign a device's GPIO pins (comma-separated, e.g. ``4,5``)."""
    pin_list = _parse_pins(pins)
    run_async(_cmd_pins(app_ctx, device_id, pin_list))


async def _cmd_pins(app_ctx: AppContext, device_id: str, pins: list[int]) -> None:
    formatter = app_ctx.formatter
    address = require_address(None, app_ctx)
    async with build_device_client(address) as client:
        reply = await client.set_device_pins(device_id, pins)

    if formatter.format == "json":
        formatter.output(
            {"id": device_id, "pins": pins, "response": reply}, command="devices.pins"
        )
    else:
        formatter.rich.command_result(True, reply)


@devices_group.command("add")
@click.argument("device_type")
@click.argument("pins")
@click.option("--id", "device_id", default=None, help="Device id (default: next free <type>N)")
@click.option(
    "--interface",
    "interface_type",
    type=click.Choice(["digital", "analog", "pwm", "i2c", "onewire"]),
    default="digital",
    help="Interface type",
)
@click.option(
    "--direction",
    type=click.Choice(["input", "output"]),
    default="output",
    help="Pin direction",
)
@global_options
def add_cmd(
    app_ctx: AppContext,
    device_type: str,
    pins: str,
    device_id: str | None,
    interface_type: str,
    direction: str,
) -> None:
    """Register a new device.

    \b
    Examples:
      esplink devices add led 2
      esplink devices add rgb 4,5,6 --interface pwm
      esplink devices add dht22 15 --direction input --id temp1
    """
    pin_list = _parse_pins(pins)
    if not pin_list:
        raise click.BadParameter("At least one pin is required", param_hint="PINS")
    run_async(_cmd_add(app_ctx, device_type, pin_list, device_id, interface_type, direction))


async def _cmd_add(
    app_ctx: AppContext,
    device_type: str,
    pins: list[int],
    device_id: str | None,
    interface_type: str,
    direction: str,
) -> None:
    formatter = app_ctx.formatter
    address = require_address(None, app_ctx)
    async with build_device_client(address) as client:
        if device_id is None:
            device_id = next_device_id(device_type, await client.list_devices())
        spec = DeviceSpec(
            id=device_id,
            type=device_type.lower(),
            pins=pins,
            interface_type=interface_type,
            direction=direction,
        )
        reply = await client.create_device(spec)

    if formatter.format == "json":
        formatter.output({"device": spec, "response": reply}, command="devices.add")
    else:
        formatter.rich.command_result(True, reply or f"Added {device_id}")


@devices_group.command("delete")
@click.argument("device_id")
@click.option("--yes", is_flag=True, default=False, help="Skip the confirmation prompt")
@global_options
def delete_cmd(app_ctx: AppContext, device_id: str, yes: bool) -> None:
    """Remove a device from the controller."""
    if not yes and app_ctx.formatter.format != "json":
        click.confirm(f"Delete device {device_id}?", abort=True)
    run_async(_cmd_delete(app_ctx, device_id))


async def _cmd_delete(app_ctx: AppContext, device_id: str) -> None:
    formatter = app_ctx.formatter
    address = require_address(None, app_ctx)
    async with build_device_client(address) as client:
        reply = await client.delete_device(device_id)

    if formatter.format == "json":
        formatter.output({"id": device_id, "response": reply}, command="devices.delete")
    else:
        formatter.rich.command_result(True, reply or f"Deleted {device_id}")
