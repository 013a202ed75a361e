"""Synthesis of documents from realtime notifications."""

from __future__ import annotations

from ..models.document import Contributor, Document, NumericVersion, parse_instant
from ..models.notification import SocketNotification

__all__ = ["DEFAULT_VERSION", "from_notification"]

DEFAULT_VERSION = NumericVersion(1)


def from_notification(notification: SocketNotification) -> Document:
    """Build a document from a channel notification.

    Notifications carry no version or attachments, so those are filled with
    fixed defaults instead of fetching the authoritative record.

    Raises:
        DocumentDecodeError: If the notification timestamp is not ISO-8601.
    """

    stamp = parse_instant(notification.timestamp)
    return Document(
        id=notification.document_id,
        title=notification.document_title,
        contributors=(Contributor(id=notification.user_id, name=notification.user_name),),
        version=DEFAULT_VERSION,
        attachments=(),
        created_at=stamp,
        updated_at=stamp,
    )
