"""JSON envelope codec shared by the event feed and the command publisher."""
from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, datetime):
            return o.isoformat()
        if isinstance(o, Enum):
            return o.value
        return super().default(o)


def serialize_envelope(event_type: str, payload: dict[str, Any]) -> str:
    return json.dumps({"event": event_type, "data": payload}, cls=_Encoder)


def deserialize_envelope(raw: str | bytes) -> tuple[str, Any]:
    """Split a raw frame into (tag, payload).

    Raises ValueError when the frame is not a JSON object with an event tag.
    """
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("envelope is not a JSON object")
    tag = data.get("event") or data.get("type")
    if not isinstance(tag, str):
        raise ValueError("envelope has no event tag")
    return tag, data.get("data", {})
