"""Kiosk wire format.

Learn: One alert = one JSON text frame, no envelope and no type field:

    {"id":7,"alert":"Fire drill","sentBy":"jane","sentAt":"2025-01-01T10:00:00Z"}

Keys keep this order and the JSON is compact, so the producer and the
relay always emit byte-identical text for the same alert.
"""

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any


def format_timestamp(value: datetime | str) -> str:
    """ISO-8601 in UTC with a trailing Z. Naive datetimes are taken as UTC."""
    if isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def alert_payload(alert: Any) -> dict[str, Any]:
    """Build the wire payload from a persisted alert (ORM row, schema or mapping)."""
    if isinstance(alert, Mapping):
        get = alert.get
    else:
        def get(name, default=None):
            return getattr(alert, name, default)

    payload: dict[str, Any] = {}
    if get("id") is not None:
        payload["id"] = get("id")
    payload["alert"] = get("alert")
    if get("sent_by") is not None:
        payload["sentBy"] = get("sent_by")
    payload["sentAt"] = format_timestamp(get("sent_at"))
    return payload


def encode_payload(payload: Mapping[str, Any]) -> str:
    """Serialize a payload to the exact text sent over the wire."""
    return json.dumps(dict(payload), separators=(",", ":"), ensure_ascii=False, default=str)
