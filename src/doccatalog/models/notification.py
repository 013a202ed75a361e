"""Realtime notification payloads pushed over the document channel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .document import DocumentDecodeError, parse_instant

__all__ = ["NotificationDecodeError", "SocketNotification"]

_FIELDS: tuple[tuple[str, str], ...] = (
    ("Timestamp", "timestamp"),
    ("UserID", "user_id"),
    ("UserName", "user_name"),
    ("DocumentID", "document_id"),
    ("DocumentTitle", "document_title"),
)


class NotificationDecodeError(ValueError):
    """Raised when an inbound frame does not have the notification shape."""


@dataclass(frozen=True, slots=True)
class SocketNotification:
    """A document created elsewhere, as announced by the realtime channel."""

    timestamp: str
    user_id: str
    user_name: str
    document_id: str
    document_title: str

    @classmethod
    def from_payload(cls, payload: Any) -> SocketNotification:
        if not isinstance(payload, Mapping):
            raise NotificationDecodeError(
                f"Notification must be a JSON object, not {type(payload).__name__}"
            )
        values: dict[str, str] = {}
        for wire_name, attr in _FIELDS:
            if wire_name not in payload:
                raise NotificationDecodeError(f"Notification is missing {wire_name}")
            value = payload[wire_name]
            if not isinstance(value, str):
                raise NotificationDecodeError(f"Notification field {wire_name} must be a string")
            values[attr] = value
        try:
            parse_instant(values["timestamp"])
        except DocumentDecodeError as exc:
            raise NotificationDecodeError(str(exc)) from exc
        return cls(**values)

    def to_payload(self) -> dict[str, str]:
        return {wire_name: getattr(self, attr) for wire_name, attr in _FIELDS}
