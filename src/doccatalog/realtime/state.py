"""Connection state machine for the realtime channel.

The lifecycle is a pure function of ``(snapshot, event)``: it returns the
next snapshot plus the side effects the manager must carry out (open or
close the transport, schedule or cancel the reconnect timer). Nothing in
this module touches sockets, timers or the clock.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Union

__all__ = [
    "CancelReconnect",
    "ChannelEvent",
    "ChannelSnapshot",
    "ChannelState",
    "CloseTransport",
    "ConnectRequested",
    "DisconnectRequested",
    "Effect",
    "OpenTransport",
    "RetryPolicy",
    "RetryTimerFired",
    "ScheduleReconnect",
    "TransportClosed",
    "TransportOpened",
    "transition",
]


class ChannelState(Enum):
    """Lifecycle states of the realtime channel.

    Values:
        IDLE: Never connected, or explicitly disconnected.
        CONNECTING: Transport is being opened.
        OPEN: Handshake completed; frames flow.
        CLOSED_RETRYING: Transport dropped; a reconnect is scheduled.
        ABANDONED: Retry budget spent; waits for an explicit ``connect()``.
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED_RETRYING = "closed_retrying"
    ABANDONED = "abandoned"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 5
    delay: float = 3.0


@dataclass(frozen=True, slots=True)
class ChannelSnapshot:
    state: ChannelState = ChannelState.IDLE
    attempts: int = 0


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ConnectRequested:
    pass


@dataclass(frozen=True, slots=True)
class TransportOpened:
    pass


@dataclass(frozen=True, slots=True)
class TransportClosed:
    """The transport failed to open, errored, or closed."""

    error: str | None = None


@dataclass(frozen=True, slots=True)
class RetryTimerFired:
    pass


@dataclass(frozen=True, slots=True)
class DisconnectRequested:
    pass


ChannelEvent = Union[ConnectRequested, TransportOpened, TransportClosed, RetryTimerFired, DisconnectRequested]


# ----------------------------------------------------------------------
# Effects
# ----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class OpenTransport:
    pass


@dataclass(frozen=True, slots=True)
class CloseTransport:
    pass


@dataclass(frozen=True, slots=True)
class ScheduleReconnect:
    delay: float
    attempt: int


@dataclass(frozen=True, slots=True)
class CancelReconnect:
    pass


Effect = Union[OpenTransport, CloseTransport, ScheduleReconnect, CancelReconnect]

_NO_EFFECTS: tuple[Effect, ...] = ()


def transition(
    snapshot: ChannelSnapshot,
    event: ChannelEvent,
    policy: RetryPolicy = RetryPolicy(),
) -> tuple[ChannelSnapshot, tuple[Effect, ...]]:
    """Return the snapshot following ``event`` and the effects to run.

    Events that make no sense in the current state leave the snapshot
    unchanged and produce no effects.
    """

    state = snapshot.state

    if isinstance(event, DisconnectRequested):
        return ChannelSnapshot(ChannelState.IDLE, 0), (CancelReconnect(), CloseTransport())

    if isinstance(event, ConnectRequested):
        if state in (ChannelState.IDLE, ChannelState.ABANDONED):
            # The attempt counter survives; only a disconnect resets it.
            return replace(snapshot, state=ChannelState.CONNECTING), (OpenTransport(),)
        return snapshot, _NO_EFFECTS

    if isinstance(event, TransportOpened):
        if state is ChannelState.CONNECTING:
            return ChannelSnapshot(ChannelState.OPEN, 0), _NO_EFFECTS
        return snapshot, _NO_EFFECTS

    if isinstance(event, TransportClosed):
        if state not in (ChannelState.CONNECTING, ChannelState.OPEN):
            return snapshot, _NO_EFFECTS
        if snapshot.attempts < policy.max_attempts:
            attempts = snapshot.attempts + 1
            return (
                ChannelSnapshot(ChannelState.CLOSED_RETRYING, attempts),
                (ScheduleReconnect(delay=policy.delay, attempt=attempts),),
            )
        return replace(snapshot, state=ChannelState.ABANDONED), _NO_EFFECTS

    if isinstance(event, RetryTimerFired):
        if state is ChannelState.CLOSED_RETRYING:
            return replace(snapshot, state=ChannelState.CONNECTING), (OpenTransport(),)
        return snapshot, _NO_EFFECTS

    raise TypeError(f"Unknown channel event: {event!r}")
