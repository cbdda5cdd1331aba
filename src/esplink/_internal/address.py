"""Controller address parsing and URL construction.

A controller address is either an IPv4 literal (``192.168.1.106``) or a
hostname (``esp32.local``), optionally with a ``:port`` suffix for the
REST server.  The streaming socket always lives on its own fixed port.
"""

from __future__ import annotations

import ipaddress
import re

_HOSTNAME_RE = re.compile(
    r"^(?=.{1,253}$)([A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)"
    r"(\.[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*$"
)

STREAM_PORT = 81
STREAM_PATH = "/ws"


def split_address(address: str) -> tuple[str, int | None]:
    """Split ``host[:port]`` and validate the host part.

    Raises :class:`ValueError` for empty or malformed addresses.
    """
    cleaned = (address or "").strip()
    for prefix in ("http://", "https://", "ws://", "wss://"):
        if cleaned.lower().startswith(prefix):
            cleaned = cleaned[len(prefix) :]
            break
    cleaned = cleaned.rstrip("/")
    if not cleaned:
        raise ValueError("Controller address must not be empty")

    host, sep, port_text = cleaned.partition(":")
    port: int | None = None
    if sep:
        if not port_text.isdigit() or not 0 < int(port_text) < 65536:
            raise ValueError(f"Invalid port in controller address: {address!r}")
        port = int(port_text)

    if not (is_ipv4(host) or _HOSTNAME_RE.match(host)):
        raise ValueError(f"Invalid controller address: {address!r}")
    return host, port


def is_ipv4(host: str) -> bool:
    """Return ``True`` if *host* is a dotted-quad IPv4 literal."""
    try:
        ipaddress.IPv4Address(host)
    except ValueError:
        return False
    return True


def rest_base_url(address: str) -> str:
    """Base URL for the REST API: ``http`` for IPv4 literals, ``https`` otherwise."""
    host, port = split_address(address)
    scheme = "http" if is_ipv4(host) else "https"
    suffix = f":{port}" if port is not None else ""
    return f"{scheme}://{host}{suffix}"


def stream_url(address: str, *, port: int = STREAM_PORT, path: str = STREAM_PATH) -> str:
    """WebSocket URL for the telemetry stream (``ws://<host>:81/ws``).

    Any REST port in *address* is ignored; the stream has its own port.
    """
    host, _ = split_address(address)
    if not path.startswith("/"):
        path = "/" + path
    return f"ws://{host}:{port}{path}"
