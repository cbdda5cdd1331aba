from __future__ import annotations

from esplink.models.device import Device, DeviceSpec


class TestDevice:
    def test_from_controller_payload(self) -> None:
        device = Device.model_validate(
            {
                "id": "led1",
                "type": "led",
                "state": "on",
                "pins": [2],
                "interfaceType": "digital",
                "direction": "output",
            }
        )
        assert device.id == "led1"
        assert device.interface_type == "digital"
        assert device.pins == [2]

    def test_defaults(self) -> None:
        device = Device.model_validate({"id": "x1", "type": "x"})
        assert device.state == "unknown"
        assert device.pins == []
        assert device.interface_type == "digital"
        assert device.direction == "unknown"

    def test_extra_fields_kept(self) -> None:
        device = Device.model_validate({"id": "x1", "type": "x", "brightness": 80})
        assert device.model_extra == {"brightness": 80}

    def test_dump_by_alias(self) -> None:
        data = Device(id="led1", type="led").model_dump(by_alias=True)
        assert data["interfaceType"] == "digital"


class TestDeviceSpec:
    def test_single_pin(self) -> None:
        body = DeviceSpec(id="led1", type="led", pins=[2]).model_dump()
        assert body["pin"] == 2
        assert "pins" not in body

    def test_multiple_pins(self) -> None:
        body = DeviceSpec(id="rgb1", type="rgb", pins=[4, 5, 6]).model_dump()
        assert body["pins"] == [4, 5, 6]
        assert "pin" not in body

    def test_state_only_when_set(self) -> None:
        assert "state" not in DeviceSpec(id="a", type="a", pins=[1]).model_dump()
        assert DeviceSpec(id="a", type="a", pins=[1], state="on").model_dump()["state"] == "on"

    def test_populate_by_alias(self) -> None:
        spec = DeviceSpec.model_validate(
            {"id": "t1", "type": "dht22", "pins": [15], "interfaceType": "onewire"}
        )
        assert spec.interface_type == "onewire"
        assert spec.model_dump()["interfaceType"] == "onewire"
