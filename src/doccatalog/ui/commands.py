"""Line commands that drive the console view while the catalog is running.

Commands::

    sort <title|version|createdAt>
    view <list|grid>
    new <title>[; contributors[; version[; attachments]]]
    help
    quit

Lines are read from a blocking stream on a daemon thread and handed back
to the event loop, so waiting for input never blocks channel traffic.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum
from typing import AsyncIterator, TextIO, TypeVar

from ..models.document import Document, SortField, ViewMode, new_document
from .view import ConsoleView

__all__ = ["HELP_TEXT", "CommandError", "execute", "read_lines", "run_command_loop"]

LOGGER = logging.getLogger(__name__)

HELP_TEXT = (
    "Commands: sort <title|version|createdAt>, view <list|grid>, "
    "new <title>[; contributors[; version[; attachments]]], help, quit"
)

_QUIT_WORDS = frozenset({"quit", "exit"})

EnumT = TypeVar("EnumT", bound=Enum)


class CommandError(ValueError):
    """Raised for an unknown command or an invalid argument."""


def execute(view: ConsoleView, line: str) -> bool:
    """Apply one command line to ``view``.

    Returns:
        ``False`` when the line asks to quit, ``True`` otherwise.

    Raises:
        CommandError: If the command is unknown or its argument is invalid.
    """
    verb, _, rest = line.strip().partition(" ")
    verb = verb.lower()
    rest = rest.strip()
    if not verb:
        return True
    if verb in _QUIT_WORDS:
        return False
    if verb == "help":
        view.show_notification(HELP_TEXT)
    elif verb == "sort":
        view.request_sort(_parse_choice(SortField, rest, "sort field"))
    elif verb == "view":
        view.request_view_mode(_parse_choice(ViewMode, rest, "view mode"))
    elif verb == "new":
        view.request_create(_parse_draft(rest))
    else:
        raise CommandError(f"unknown command {verb!r}")
    return True


async def run_command_loop(view: ConsoleView, stop: asyncio.Event, lines: AsyncIterator[str]) -> None:
    """Execute commands from ``lines`` until ``quit`` or end of input.

    ``quit`` sets ``stop``. End of input only ends the loop; the catalog
    keeps watching the channel.
    """
    view.show_notification(HELP_TEXT)
    async for line in lines:
        try:
            keep_running = execute(view, line)
        except CommandError as exc:
            view.show_notification(f"Invalid command: {exc}")
            continue
        if not keep_running:
            LOGGER.info("Quit requested from the command line")
            stop.set()
            return
    LOGGER.debug("Command input closed; continuing in watch-only mode")


async def read_lines(stream: TextIO) -> AsyncIterator[str]:
    """Yield lines from a blocking text stream without blocking the loop."""
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str | None] = asyncio.Queue()

    def _post(item: str | None) -> None:
        try:
            loop.call_soon_threadsafe(queue.put_nowait, item)
        except RuntimeError:
            LOGGER.debug("Event loop closed; dropping command input")

    def _pump() -> None:
        try:
            for raw in stream:
                _post(raw.rstrip("\r\n"))
        except (OSError, ValueError) as exc:
            LOGGER.debug("Command input failed: %s", exc)
        finally:
            _post(None)

    threading.Thread(target=_pump, name="doccatalog-commands", daemon=True).start()
    while True:
        line = await queue.get()
        if line is None:
            return
        yield line


# ----------------------------------------------------------------------
# Argument parsing
# ----------------------------------------------------------------------


def _parse_choice(enum_type: type[EnumT], raw: str, label: str) -> EnumT:
    wanted = raw.strip().lower()
    for member in enum_type:
        if str(member.value).lower() == wanted:
            return member
    choices = ", ".join(str(member.value) for member in enum_type)
    raise CommandError(f"invalid {label} {raw!r} (expected one of: {choices})")


def _parse_draft(raw: str) -> Document:
    parts = [part.strip() for part in raw.split(";")]
    title = parts[0]
    if not title:
        raise CommandError("new requires a title")
    contributors = parts[1].split(",") if len(parts) > 1 else []
    version_text = parts[2] if len(parts) > 2 and parts[2] else "1.0.0"
    version: int | str = int(version_text) if version_text.isdigit() else version_text
    attachments = [name.strip() for name in parts[3].split(",") if name.strip()] if len(parts) > 3 else []
    return new_document(title, contributors, version, attachments)
