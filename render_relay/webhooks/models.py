"""Webhook payload models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class WebhookData:
    id: str
    service_id: str


@dataclass
class WebhookPayload:
    type: str
    data: WebhookData
    timestamp: datetime | None = None

    @classmethod
    def from_dict(cls, raw: Any) -> WebhookPayload:
        """Decode a parsed webhook body, raising ValueError when malformed."""
        if not isinstance(raw, dict):
            raise ValueError("webhook body is not a JSON object")
        event_type = raw.get("type")
        if not isinstance(event_type, str) or not event_type:
            raise ValueError("webhook body has no type")

        data = raw.get("data") or {}
        if not isinstance(data, dict):
            raise ValueError("webhook data is not an object")

        return cls(
            type=event_type,
            data=WebhookData(
                id=str(data.get("id", "")),
                service_id=str(data.get("serviceId", "")),
            ),
            timestamp=_parse_timestamp(raw.get("timestamp")),
        )


def _parse_timestamp(value: Any) -> datetime | None:
    # Nothing reads the timestamp; unparseable values decode to None
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None
