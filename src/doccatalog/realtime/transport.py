"""Transport layer for the realtime channel.

A transport opens one connection per call and reports what happens to it
through :class:`TransportCallbacks`. Callbacks always run on the event loop
thread; ``on_close`` fires at most once and never after ``close()``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import WebSocketException

__all__ = [
    "ChannelConnection",
    "ChannelTransport",
    "TransportCallbacks",
    "WebSocketConnection",
    "WebSocketTransport",
]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TransportCallbacks:
    on_open: Callable[[], None]
    on_message: Callable[[str | bytes], None]
    on_close: Callable[[str | None], None]


class ChannelConnection(Protocol):
    def send(self, text: str) -> None: ...

    def close(self) -> None: ...


class ChannelTransport(Protocol):
    def open(self, url: str, callbacks: TransportCallbacks) -> ChannelConnection: ...


class WebSocketConnection:
    """One websocket client connection driven by a background task."""

    def __init__(
        self,
        url: str,
        callbacks: TransportCallbacks,
        *,
        open_timeout: float | None = 10.0,
    ) -> None:
        self._url = url
        self._callbacks = callbacks
        self._open_timeout = open_timeout
        self._socket: ClientConnection | None = None
        self._closing = False
        self._pending_sends: set[asyncio.Task[None]] = set()
        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def is_open(self) -> bool:
        return self._socket is not None and not self._closing

    def send(self, text: str) -> None:
        socket = self._socket
        if socket is None or self._closing:
            return
        task = asyncio.get_running_loop().create_task(socket.send(text))
        self._pending_sends.add(task)
        task.add_done_callback(self._on_send_done)

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        # Cancelling the reader exits the ``async with`` block, which closes the socket.
        self._task.cancel()

    async def _run(self) -> None:
        error: str | None = None
        try:
            async with connect(self._url, open_timeout=self._open_timeout) as socket:
                self._socket = socket
                self._callbacks.on_open()
                async for message in socket:
                    self._callbacks.on_message(message)
        except (OSError, TimeoutError, WebSocketException) as exc:
            error = str(exc) or type(exc).__name__
            LOGGER.warning("Channel connection to %s failed: %s", self._url, error)
        except Exception as exc:  # CancelledError is not an Exception and still propagates
            error = f"{type(exc).__name__}: {exc}"
            LOGGER.exception("Channel connection to %s aborted", self._url)
        finally:
            self._socket = None
        if not self._closing:
            self._callbacks.on_close(error)

    def _on_send_done(self, task: asyncio.Task[None]) -> None:
        self._pending_sends.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.warning("Failed to send channel frame: %s", exc)


class WebSocketTransport:
    """Opens :class:`WebSocketConnection` instances; requires a running loop."""

    def __init__(self, *, open_timeout: float | None = 10.0) -> None:
        self._open_timeout = open_timeout

    def open(self, url: str, callbacks: TransportCallbacks) -> WebSocketConnection:
        return WebSocketConnection(url, callbacks, open_timeout=self._open_timeout)
