from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_serializer

_CAMEL = ConfigDict(extra="allow", populate_by_name=True)


class Device(BaseModel):
    """A peripheral registered on the controller (``GET /api/devices``)."""

    model_config = _CAMEL

    id: str
    type: str
    state: str = "unknown"
    pins: list[int] = Field(default_factory=list)
    interface_type: str = Field(default="digital", alias="interfaceType")
    direction: str = "unknown"


class DeviceSpec(BaseModel):
    """Payload for ``POST /api/device``.

    The controller expects a single ``pin`` for one-pin devices and a
    ``pins`` array otherwise.
    """

    model_config = _CAMEL

    id: str
    type: str
    pins: list[int] = Field(default_factory=list)
    interface_type: str = Field(default="digital", alias="interfaceType")
    direction: str = "output"
    state: str | None = None

    @model_serializer(mode="plain")
    def _to_wire(self) -> dict[str, Any]:
        body: dict[str, Any] = {"id": self.id, "type": self.type}
        if len(self.pins) == 1:
            body["pin"] = self.pins[0]
        else:
            body["pins"] = list(self.pins)
        body["interfaceType"] = self.interface_type
        body["direction"] = self.direction
        if self.state is not None:
            body["state"] = self.state
        return body
