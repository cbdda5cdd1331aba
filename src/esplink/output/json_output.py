"""JSON renderings: one-shot command envelopes and JSONL stream events."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

_COMPACT = (",", ":")


def _serialize(obj: Any) -> Any:
    """Turn models, log entries, samples and containers into plain JSON values.

    Pydantic models are dumped by alias without ``None`` fields; anything
    exposing ``to_dict()`` (log entries, telemetry samples) uses that.
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(by_alias=True, exclude_none=True)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, (list, tuple)):
        return [_serialize(item) for item in obj]
    if isinstance(obj, dict):
        return {key: _serialize(value) for key, value in obj.items()}
    return obj


def _envelope(*, ok: bool, command: str, **body: Any) -> str:
    doc: dict[str, Any] = {"ok": ok, "command": command, **body}
    doc["timestamp"] = datetime.now(UTC).isoformat()
    return json.dumps(doc, indent=2, default=str)


def format_json_response(*, data: Any, command: str) -> str:
    """Envelope for a finished command: ``{"ok": true, "command", "data", "timestamp"}``."""
    return _envelope(ok=True, command=command, data=_serialize(data))


def format_json_error(*, code: str, message: str, command: str, **extra: Any) -> str:
    """Envelope for a failed command; *extra* lands inside the ``error`` object."""
    return _envelope(
        ok=False, command=command, error={"code": code, "message": message, **extra}
    )


def format_json_line(data: Any) -> str:
    """One compact JSONL record."""
    return json.dumps(_serialize(data), separators=_COMPACT, default=str)


def format_stream_event(event: str, payload: Any) -> str:
    """JSONL record tagged with ``"event"``; dict-like payloads are flattened into it."""
    body = _serialize(payload)
    if isinstance(body, dict):
        return format_json_line({"event": event, **body})
    return format_json_line({"event": event, "value": body})
