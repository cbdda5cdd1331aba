"""Helpers shared by CLI commands: address resolution and client construction."""

from __future__ import annotations

from typing import TYPE_CHECKING

from esplink.api.client import DeviceClient
from esplink.api.errors import ConfigError
from esplink.models.config import AppSettings
from esplink.stream.config import StreamConfig

if TYPE_CHECKING:
    from esplink.cli.main import AppContext


def resolve_address(address_positional: str | None, address_flag: str | None) -> str | None:
    """Resolve the controller address from multiple sources in priority order.

    Resolution: positional arg > --address flag > ESPLINK_ADDRESS env > None.
    """
    address = address_positional or address_flag
    if not address:
        address = AppSettings().address
    return address


def require_address(address_positional: str | None, app_ctx: AppContext) -> str:
    """Resolve the controller address or raise :class:`ConfigError`."""
    address = resolve_address(address_positional, app_ctx.address)
    if not address:
        raise ConfigError(
            "No controller address specified. Pass it as an argument, use --address,"
            " or set ESPLINK_ADDRESS."
        )
    return address


def build_device_client(address: str) -> DeviceClient:
    """Build a :class:`DeviceClient` using the configured HTTP timeout."""
    settings = AppSettings()
    return DeviceClient(address, timeout=settings.http_timeout)


def load_stream_config(config_path: str | None = None) -> StreamConfig:
    """Load :class:`StreamConfig` from *config_path*, ESPLINK_CONFIG_FILE, or defaults."""
    return StreamConfig.load(config_path or AppSettings().config_file)
