"""Execution tests for ``esplink devices`` against a mocked controller."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner, Result

from esplink.api.errors import ConfigError, DeviceNotFoundError
from esplink.cli.main import cli

if TYPE_CHECKING:
    from pytest_httpx import HTTPXMock

BASE = "http://192.168.1.106"


def _invoke(*args: str, input: str | None = None) -> Result:
    return CliRunner().invoke(cli, ["--format", "json", *args], input=input)


class TestDevicesHelp:
    def test_group_listed(self) -> None:
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "devices" in result.output
        assert "watch" in result.output
        assert "send" in result.output

    def test_subcommands(self) -> None:
        result = CliRunner().invoke(cli, ["devices", "--help"])
        for name in ("list", "get", "set", "pins", "add", "delete"):
            assert name in result.output


@pytest.mark.usefixtures("cli_env")
class TestDevicesList:
    def test_list_json(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{BASE}/api/devices",
            json=[{"id": "led1", "type": "led", "state": "on", "pins": [2]}],
        )
        result = _invoke("devices", "list")
        assert result.exit_code == 0, result.output
        parsed = json.loads(result.output)
        assert parsed["ok"] is True
        assert parsed["command"] == "devices.list"
        assert parsed["data"][0]["id"] == "led1"

    def test_positional_address_wins(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url="http://10.0.0.7/api/devices", json=[])
        result = _invoke("devices", "list", "10.0.0.7")
        assert result.exit_code == 0, result.output

    def test_missing_address(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ESPLINK_ADDRESS")
        result = _invoke("devices", "list")
        assert isinstance(result.exception, ConfigError)


@pytest.mark.usefixtures("cli_env")
class TestDevicesWrite:
    def test_set_state(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/device/led1", method="PUT", text="OK")
        result = _invoke("devices", "set", "led1", "off")
        assert result.exit_code == 0, result.output
        assert httpx_mock.get_requests()[0].content == b"off"
        parsed = json.loads(result.output)
        assert parsed["data"] == {"id": "led1", "state": "off", "response": "OK"}

    def test_pins(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/device/rgb1/pins", method="PUT", text="OK")
        result = _invoke("devices", "pins", "rgb1", "4,5,6")
        assert result.exit_code == 0, result.output
        assert json.loads(httpx_mock.get_requests()[0].content) == {"pins": [4, 5, 6]}

    def test_bad_pins(self) -> None:
        result = _invoke("devices", "pins", "rgb1", "4,x")
        assert result.exit_code != 0
        assert "comma-separated" in result.output

    def test_add_assigns_next_id(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{BASE}/api/devices",
            json=[{"id": "led1", "type": "led"}, {"id": "temp1", "type": "dht22"}],
        )
        httpx_mock.add_response(url=f"{BASE}/api/device", method="POST", text="Device added")
        result = _invoke("devices", "add", "LED", "4")
        assert result.exit_code == 0, result.output

        body = json.loads(httpx_mock.get_requests()[1].content)
        assert body == {
            "id": "led2",
            "type": "led",
            "pin": 4,
            "interfaceType": "digital",
            "direction": "output",
        }

    def test_add_with_explicit_id(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/device", method="POST", text="Device added")
        result = _invoke(
            "devices", "add", "rgb", "4,5,6", "--id", "strip", "--interface", "pwm"
        )
        assert result.exit_code == 0, result.output
        body = json.loads(httpx_mock.get_requests()[0].content)
        assert body["id"] == "strip"
        assert body["pins"] == [4, 5, 6]

    def test_delete_json_skips_prompt(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/device/led1", method="DELETE", text="Deleted")
        result = _invoke("devices", "delete", "led1")
        assert result.exit_code == 0, result.output

    def test_get_not_found(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{BASE}/api/device/ghost", status_code=404, text="")
        result = _invoke("devices", "get", "ghost")
        assert isinstance(result.exception, DeviceNotFoundError)
