"""Realtime channel manager.

Owns the connection lifecycle to the push channel: bounded reconnects on a
fixed delay, frame decoding, and forwarding decoded notifications to a
caller-supplied handler. State decisions come from :func:`transition`; this
class only executes the effects it returns.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

from ..models.notification import NotificationDecodeError, SocketNotification
from .scheduler import LoopScheduler, Scheduler, TimerHandle
from .state import (
    CancelReconnect,
    ChannelEvent,
    ChannelSnapshot,
    ChannelState,
    CloseTransport,
    ConnectRequested,
    DisconnectRequested,
    Effect,
    OpenTransport,
    RetryPolicy,
    RetryTimerFired,
    ScheduleReconnect,
    TransportClosed,
    TransportOpened,
    transition,
)
from .transport import ChannelConnection, ChannelTransport, TransportCallbacks, WebSocketTransport

__all__ = ["ChannelManager", "NotificationHandler"]

LOGGER = logging.getLogger(__name__)

NotificationHandler = Callable[[SocketNotification], None]


class ChannelManager:
    """Keeps the realtime channel connected within a fixed retry budget.

    ``connect()`` and ``disconnect()`` return immediately; reconnects happen
    later on the scheduler. Once the budget is spent the channel is
    abandoned until ``disconnect()`` followed by ``connect()``.
    """

    def __init__(
        self,
        url: str,
        on_notification: NotificationHandler,
        *,
        scheduler: Scheduler | None = None,
        transport: ChannelTransport | None = None,
        policy: RetryPolicy | None = None,
    ) -> None:
        self._url = url
        self._on_notification = on_notification
        self._scheduler = scheduler or LoopScheduler()
        self._transport = transport or WebSocketTransport()
        self._policy = policy or RetryPolicy()
        self._snapshot = ChannelSnapshot()
        self._connection: ChannelConnection | None = None
        self._timer: TimerHandle | None = None
        self._generation = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ChannelState:
        return self._snapshot.state

    @property
    def retry_count(self) -> int:
        return self._snapshot.attempts

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def reconnect_pending(self) -> bool:
        return self._timer is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Open the channel when idle or abandoned; otherwise a no-op."""
        if self.state not in (ChannelState.IDLE, ChannelState.ABANDONED):
            LOGGER.debug("Channel connect ignored while %s", self.state.value)
        self._dispatch(ConnectRequested())

    def disconnect(self) -> None:
        """Cancel any pending reconnect, close the transport and reset retries."""
        self._dispatch(DisconnectRequested())

    def send(self, data: Any) -> None:
        """Send ``data`` as JSON when open; silently dropped otherwise.

        Raises:
            TypeError: If ``data`` is not JSON serialisable.
        """
        connection = self._connection
        if self.state is not ChannelState.OPEN or connection is None:
            return
        connection.send(json.dumps(data))

    # ------------------------------------------------------------------
    # State machine plumbing
    # ------------------------------------------------------------------

    def _dispatch(self, event: ChannelEvent) -> None:
        previous = self._snapshot
        self._snapshot, effects = transition(previous, event, self._policy)
        if previous.state is not self._snapshot.state:
            LOGGER.debug(
                "Channel %s -> %s on %s (attempts=%d)",
                previous.state.value,
                self._snapshot.state.value,
                type(event).__name__,
                self._snapshot.attempts,
            )
            if self._snapshot.state is ChannelState.ABANDONED:
                LOGGER.warning("Realtime channel abandoned; running in offline mode with local data")
        for effect in effects:
            self._run_effect(effect)

    def _run_effect(self, effect: Effect) -> None:
        if isinstance(effect, OpenTransport):
            self._open_transport()
        elif isinstance(effect, CloseTransport):
            self._close_transport()
        elif isinstance(effect, ScheduleReconnect):
            self._cancel_timer()
            LOGGER.info(
                "Reconnection attempt %d/%d in %.1fs",
                effect.attempt,
                self._policy.max_attempts,
                effect.delay,
            )
            self._timer = self._scheduler.call_later(effect.delay, self._on_retry_timer)
        elif isinstance(effect, CancelReconnect):
            self._cancel_timer()

    def _open_transport(self) -> None:
        self._close_transport()
        self._generation += 1
        generation = self._generation
        callbacks = TransportCallbacks(
            on_open=lambda: self._on_transport_open(generation),
            on_message=lambda frame: self._on_transport_message(generation, frame),
            on_close=lambda error: self._on_transport_close(generation, error),
        )
        try:
            connection = self._transport.open(self._url, callbacks)
        except Exception as exc:
            LOGGER.error("Failed to create channel connection to %s: %s", self._url, exc)
            if generation == self._generation:
                self._dispatch(TransportClosed(error=str(exc)))
            return
        if generation == self._generation:
            self._connection = connection
        else:
            # A callback fired during open() already moved on; drop this connection.
            _close_quietly(connection)

    def _close_transport(self) -> None:
        connection = self._connection
        self._connection = None
        self._generation += 1
        if connection is not None:
            _close_quietly(connection)

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.cancel()

    def _on_retry_timer(self) -> None:
        self._timer = None
        self._dispatch(RetryTimerFired())

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _on_transport_open(self, generation: int) -> None:
        if generation != self._generation:
            return
        LOGGER.info("Realtime channel connected to %s", self._url)
        self._dispatch(TransportOpened())

    def _on_transport_close(self, generation: int, error: str | None) -> None:
        if generation != self._generation:
            return
        if error:
            LOGGER.warning("Realtime channel failed (%s); continuing with local data", error)
        else:
            LOGGER.warning("Realtime channel disconnected")
        self._connection = None
        self._dispatch(TransportClosed(error=error))

    def _on_transport_message(self, generation: int, frame: str | bytes) -> None:
        if generation != self._generation:
            return
        try:
            text = frame.decode("utf-8") if isinstance(frame, (bytes, bytearray)) else frame
            notification = SocketNotification.from_payload(json.loads(text))
        except (UnicodeDecodeError, json.JSONDecodeError, NotificationDecodeError) as exc:
            LOGGER.warning("Error parsing channel message: %s", exc)
            return
        try:
            self._on_notification(notification)
        except Exception:
            LOGGER.exception(
                "Notification handler failed for document %s", notification.document_id
            )


def _close_quietly(connection: ChannelConnection) -> None:
    try:
        connection.close()
    except Exception as exc:
        LOGGER.debug("Ignoring error while closing channel connection: %s", exc)
