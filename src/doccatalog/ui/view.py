"""View collaborator contract and a plain-text console implementation."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol, Sequence, TextIO

from ..models.document import Document, SortField, ViewMode

__all__ = ["ConsoleView", "DocumentPrompt", "View"]

LOGGER = logging.getLogger(__name__)

SortCallback = Callable[[SortField], None]
CreateCallback = Callable[[], None]
ViewModeCallback = Callable[[ViewMode], None]
SubmitCallback = Callable[[Document], None]

# Collects a new document from the user, or returns None when cancelled.
DocumentPrompt = Callable[[], Optional[Document]]


class View(Protocol):
    """Rendering surface driven by the document controller."""

    def render(
        self,
        documents: Sequence[Document],
        sort_field: SortField,
        view_mode: ViewMode,
        on_sort: SortCallback,
        on_create: CreateCallback,
        on_view_mode_change: ViewModeCallback,
    ) -> None: ...

    def show_notification(self, message: str) -> None: ...

    def show_modal(self, on_submit: SubmitCallback) -> None: ...


class ConsoleView:
    """Writes the catalog as text to a stream.

    The most recent callbacks passed to :meth:`render` are kept so a
    command loop can drive sorting, creation and view changes. Without an
    explicit ``prompt`` the creation modal submits the draft handed to
    :meth:`request_create`.
    """

    def __init__(self, stream: TextIO | None, *, prompt: DocumentPrompt | None = None) -> None:
        if stream is None:
            raise ValueError("ConsoleView requires an output stream")
        self._stream = stream
        self._prompt = prompt or self._take_draft
        self._draft: Document | None = None
        self._on_sort: SortCallback | None = None
        self._on_create: CreateCallback | None = None
        self._on_view_mode_change: ViewModeCallback | None = None
        self.render_count = 0

    # ------------------------------------------------------------------
    # View protocol
    # ------------------------------------------------------------------

    def render(
        self,
        documents: Sequence[Document],
        sort_field: SortField,
        view_mode: ViewMode,
        on_sort: SortCallback,
        on_create: CreateCallback,
        on_view_mode_change: ViewModeCallback,
    ) -> None:
        self._on_sort = on_sort
        self._on_create = on_create
        self._on_view_mode_change = on_view_mode_change
        self.render_count += 1

        lines = [f"Documents ({len(documents)}) sorted by {SortField(sort_field).value}"]
        if not documents:
            lines.append("  (no documents)")
        elif ViewMode(view_mode) is ViewMode.GRID:
            lines.extend(_grid_lines(documents))
        else:
            lines.extend(_list_lines(documents))
        self._write("\n".join(lines))

    def show_notification(self, message: str) -> None:
        self._write(f"* {message}")

    def show_modal(self, on_submit: SubmitCallback) -> None:
        document = self._prompt()
        if document is None:
            LOGGER.debug("Document creation cancelled")
            return
        on_submit(document)

    # ------------------------------------------------------------------
    # Command helpers
    # ------------------------------------------------------------------

    def request_sort(self, field: SortField) -> None:
        if self._on_sort is not None:
            self._on_sort(SortField(field))

    def request_create(self, draft: Document | None = None) -> None:
        if self._on_create is None:
            return
        self._draft = draft
        try:
            self._on_create()
        finally:
            self._draft = None

    def request_view_mode(self, mode: ViewMode) -> None:
        if self._on_view_mode_change is not None:
            self._on_view_mode_change(ViewMode(mode))

    def _take_draft(self) -> Document | None:
        draft, self._draft = self._draft, None
        return draft

    def _write(self, text: str) -> None:
        self._stream.write(text + "\n")
        self._stream.flush()


def _list_lines(documents: Sequence[Document]) -> list[str]:
    lines = []
    for doc in documents:
        names = ", ".join(c.name for c in doc.contributors) or "-"
        lines.append(
            f"  {doc.title}  v{doc.version}  by {names}  "
            f"[{len(doc.attachments)} attachment(s)]  {doc.created_at:%Y-%m-%d %H:%M}"
        )
    return lines


def _grid_lines(documents: Sequence[Document], columns: int = 3, width: int = 26) -> list[str]:
    cells = [f"{doc.title[: width - 8]} v{doc.version}"[:width].ljust(width) for doc in documents]
    return ["  " + " | ".join(cells[i : i + columns]).rstrip() for i in range(0, len(cells), columns)]

