"""Tests for the ``main`` entry point and the shared option decorator."""

from __future__ import annotations

import json

import pytest

from esplink.api.errors import ConfigError, DeviceNotFoundError
from esplink.cli.main import AppContext, _error_code, main


class TestErrorCode:
    def test_config_error(self) -> None:
        assert _error_code(ConfigError("x")) == "config_error"

    def test_api_error_subclass(self) -> None:
        assert _error_code(DeviceNotFoundError("x", status_code=404)) == "device_api_error"

    def test_unknown(self) -> None:
        assert _error_code(RuntimeError("x")) == "RuntimeError"


class TestAppContext:
    def test_quiet_wins_over_format(self) -> None:
        app_ctx = AppContext(output_format="json", quiet=True)
        assert app_ctx.formatter.format == "quiet"

    def test_reset_formatter(self) -> None:
        app_ctx = AppContext(output_format="json")
        first = app_ctx.formatter
        app_ctx.output_format = "rich"
        app_ctx.reset_formatter()
        assert app_ctx.formatter is not first
        assert app_ctx.formatter.format == "rich"


@pytest.mark.usefixtures("cli_env")
class TestMain:
    def test_missing_address_is_reported(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.delenv("ESPLINK_ADDRESS")
        with pytest.raises(SystemExit) as exc_info:
            main(["devices", "list", "--format", "json"])
        assert exc_info.value.code == 1

        parsed = json.loads(capsys.readouterr().out)
        assert parsed["ok"] is False
        assert parsed["command"] == "devices.list"
        assert parsed["error"]["code"] == "config_error"

    def test_help_exits_zero(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])
        assert exc_info.value.code == 0

    def test_usage_error_exit_code(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["no-such-command"])
        assert exc_info.value.code == 2
