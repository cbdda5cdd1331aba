"""Shared fixtures for CLI execution tests."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture()
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[dict[str, str]]:
    """Point the CLI at a test controller with no .env or user config in play."""
    monkeypatch.chdir(tmp_path)
    env = {
        "ESPLINK_ADDRESS": "192.168.1.106",
        "ESPLINK_CONFIG_FILE": str(tmp_path / "stream.json"),
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    # Leave the root logger alone; CliRunner swaps stderr per invocation.
    with patch("esplink.cli.main.configure_logging"):
        yield env
