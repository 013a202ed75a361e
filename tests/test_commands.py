"""Tests for the console command loop."""

from __future__ import annotations

import asyncio
import io
from typing import AsyncIterator, Iterable

import pytest

from doccatalog.models.document import NumericVersion, SortField, SortOrder, ViewMode
from doccatalog.realtime.channel import ChannelManager
from doccatalog.ui.commands import HELP_TEXT, CommandError, execute, read_lines, run_command_loop
from doccatalog.ui.document_controller import DocumentController
from doccatalog.ui.domain.document_store import DocumentStore
from doccatalog.ui.view import ConsoleView


async def _lines(items: Iterable[str]) -> AsyncIterator[str]:
    for item in items:
        yield item


@pytest.fixture
def stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def store(gateway) -> DocumentStore:
    return DocumentStore(gateway)


@pytest.fixture
def console(stream, store, scheduler, transport) -> ConsoleView:
    view = ConsoleView(stream)
    DocumentController(
        store,
        view,
        channel_factory=lambda handler: ChannelManager(
            "ws://catalog.test", handler, scheduler=scheduler, transport=transport
        ),
    )
    return view


class TestExecute:
    def test_sort_toggles_through_controller(self, console, store) -> None:
        assert execute(console, "sort title") is True
        assert (store.sort_field, store.sort_order) == (SortField.TITLE, SortOrder.ASC)

        execute(console, "SORT Title")
        assert store.sort_order is SortOrder.DESC

    def test_sort_accepts_created_at_in_any_case(self, console, store) -> None:
        execute(console, "sort createdat")

        assert store.sort_field is SortField.CREATED_AT
        assert store.sort_order is SortOrder.ASC

    def test_view_switches_mode(self, console, store) -> None:
        execute(console, "view grid")

        assert store.view_mode is ViewMode.GRID

    def test_new_creates_document_and_notifies(self, console, store, stream) -> None:
        execute(console, "new Design Notes; Ada, Grace; 2; spec.pdf, notes.md")

        [document] = store.get_documents()
        assert document.title == "Design Notes"
        assert [c.name for c in document.contributors] == ["Ada", "Grace"]
        assert document.version == NumericVersion(2)
        assert document.attachments == ("spec.pdf", "notes.md")
        assert "* Document created: Design Notes" in stream.getvalue()

    def test_new_with_title_only_uses_defaults(self, console, store) -> None:
        execute(console, "new Roadmap")

        [document] = store.get_documents()
        assert str(document.version) == "1.0.0"
        assert document.contributors == ()
        assert document.attachments == ()

    def test_help_and_blank_lines(self, console, stream) -> None:
        assert execute(console, "   ") is True
        assert execute(console, "help") is True

        assert f"* {HELP_TEXT}" in stream.getvalue()

    @pytest.mark.parametrize("word", ["quit", "exit", "QUIT"])
    def test_quit_words(self, console, word: str) -> None:
        assert execute(console, word) is False

    @pytest.mark.parametrize("line", ["dance", "sort colour", "view table", "new ", "new ; Ada"])
    def test_invalid_lines_raise(self, console, store, line: str) -> None:
        with pytest.raises(CommandError):
            execute(console, line)

        assert store.document_count() == 0


class TestCommandLoop:
    @pytest.mark.asyncio
    async def test_quit_sets_stop_and_skips_remaining_lines(self, console, store, stream) -> None:
        stop = asyncio.Event()

        await run_command_loop(console, stop, _lines(["sort version", "bogus", "quit", "view grid"]))

        assert stop.is_set()
        assert store.sort_field is SortField.VERSION
        assert store.view_mode is ViewMode.LIST
        assert "* Invalid command: unknown command 'bogus'" in stream.getvalue()

    @pytest.mark.asyncio
    async def test_end_of_input_keeps_watching(self, console) -> None:
        stop = asyncio.Event()

        await run_command_loop(console, stop, _lines(["view grid"]))

        assert not stop.is_set()

    @pytest.mark.asyncio
    async def test_read_lines_from_blocking_stream(self) -> None:
        source = io.StringIO("sort title\r\nview grid\nquit")

        received = [line async for line in read_lines(source)]

        assert received == ["sort title", "view grid", "quit"]
