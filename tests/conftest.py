"""Shared pytest fixtures and fakes for the document catalog tests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Sequence

import pytest

from doccatalog.models.document import Contributor, Document, SortField, ViewMode
from doccatalog.realtime.transport import TransportCallbacks

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Documents
# =============================================================================


def build_document(
    doc_id: str,
    title: str | None = None,
    *,
    version: Any = 1,
    minutes: int = 0,
    contributors: Sequence[str] = ("Ada",),
) -> Document:
    stamp = BASE_TIME + timedelta(minutes=minutes)
    return Document(
        id=doc_id,
        title=title or f"Document {doc_id}",
        contributors=tuple(Contributor(id=f"{doc_id}-c{i}", name=name) for i, name in enumerate(contributors)),
        version=version,
        attachments=(),
        created_at=stamp,
        updated_at=stamp,
    )


@pytest.fixture
def make_document() -> Callable[..., Document]:
    return build_document


@pytest.fixture
def notification_payload() -> dict[str, str]:
    return {
        "Timestamp": "2024-03-05T09:30:00Z",
        "UserID": "user-7",
        "UserName": "Grace",
        "DocumentID": "doc-remote",
        "DocumentTitle": "Remote Spec",
    }


# =============================================================================
# Persistence
# =============================================================================


class MemoryGateway:
    """In-memory document gateway recording every saved snapshot."""

    def __init__(self, initial: Sequence[Document] = (), log: list[str] | None = None) -> None:
        self.initial = list(initial)
        self.saved: list[list[Document]] = []
        self.log = log

    def load(self) -> list[Document]:
        return list(self.initial)

    def save(self, documents: Sequence[Document]) -> None:
        self.saved.append(list(documents))
        if self.log is not None:
            self.log.append("save")


@pytest.fixture
def gateway() -> MemoryGateway:
    return MemoryGateway()


@pytest.fixture
def make_gateway() -> type[MemoryGateway]:
    return MemoryGateway


# =============================================================================
# Scheduling
# =============================================================================


@dataclass
class FakeTimer:
    delay: float
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual scheduler; timers run only when a test fires them."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled and not timer.fired]

    def fire_next(self) -> FakeTimer:
        pending = self.pending
        assert pending, "no pending timers"
        timer = pending[0]
        timer.fired = True
        timer.callback()
        return timer


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


# =============================================================================
# Transport
# =============================================================================


@dataclass
class FakeConnection:
    url: str
    callbacks: TransportCallbacks
    sent: list[str] = field(default_factory=list)
    closed: bool = False

    def send(self, text: str) -> None:
        self.sent.append(text)

    def close(self) -> None:
        self.closed = True

    # Helpers driving the manager from the "server" side.
    def opened(self) -> None:
        self.callbacks.on_open()

    def deliver(self, frame: Any) -> None:
        if not isinstance(frame, (str, bytes)):
            frame = json.dumps(frame)
        self.callbacks.on_message(frame)

    def drop(self, error: str | None = "connection reset") -> None:
        self.callbacks.on_close(error)


class FakeTransport:
    def __init__(self) -> None:
        self.connections: list[FakeConnection] = []
        self.fail_with: Exception | None = None

    def open(self, url: str, callbacks: TransportCallbacks) -> FakeConnection:
        if self.fail_with is not None:
            raise self.fail_with
        connection = FakeConnection(url, callbacks)
        self.connections.append(connection)
        return connection

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


# =============================================================================
# View
# =============================================================================


class RecordingView:
    """View double recording renders and notifications."""

    def __init__(self) -> None:
        self.renders: list[dict[str, Any]] = []
        self.notifications: list[str] = []
        self.modal_document: Document | None = None

    def render(
        self,
        documents: Sequence[Document],
        sort_field: SortField,
        view_mode: ViewMode,
        on_sort: Callable[[SortField], None],
        on_create: Callable[[], None],
        on_view_mode_change: Callable[[ViewMode], None],
    ) -> None:
        self.renders.append(
            {
                "documents": list(documents),
                "sort_field": sort_field,
                "view_mode": view_mode,
                "on_sort": on_sort,
                "on_create": on_create,
                "on_view_mode_change": on_view_mode_change,
            }
        )

    def show_notification(self, message: str) -> None:
        self.notifications.append(message)

    def show_modal(self, on_submit: Callable[[Document], None]) -> None:
        if self.modal_document is not None:
            on_submit(self.modal_document)

    @property
    def last_render(self) -> dict[str, Any]:
        return self.renders[-1]


@pytest.fixture
def view() -> RecordingView:
    return RecordingView()
