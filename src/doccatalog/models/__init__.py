"""Entity models for the document catalog."""

from __future__ import annotations

from .document import (
    Contributor,
    Document,
    DocumentDecodeError,
    NumericVersion,
    SemanticVersion,
    SortField,
    SortOrder,
    Version,
    ViewMode,
    document_from_record,
    document_to_record,
    new_document,
    parse_version,
)
from .notification import NotificationDecodeError, SocketNotification

__all__ = [
    "Contributor",
    "Document",
    "DocumentDecodeError",
    "NotificationDecodeError",
    "NumericVersion",
    "SemanticVersion",
    "SocketNotification",
    "SortField",
    "SortOrder",
    "Version",
    "ViewMode",
    "document_from_record",
    "document_to_record",
    "new_document",
    "parse_version",
]
