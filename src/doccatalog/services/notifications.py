"""User-facing notification messages for document arrivals."""

from __future__ import annotations

from typing import Protocol

from ..models.document import Document

__all__ = ["NotificationDisplay", "NotificationService"]


class NotificationDisplay(Protocol):
    def show_notification(self, message: str) -> None: ...


class NotificationService:
    """Formats and displays notifications through a view."""

    def __init__(self, display: NotificationDisplay) -> None:
        self._display = display

    def notify_document_created(self, document: Document) -> None:
        """Announce a document the user created locally."""
        self._display.show_notification(f"Document created: {document.title}")

    def notify_document_received(self, document: Document) -> None:
        """Announce a document pushed by the realtime channel."""
        self._display.show_notification(f"New document added: {document.title}")
