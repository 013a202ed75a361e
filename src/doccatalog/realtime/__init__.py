"""Realtime channel: connection state machine, transport and mapping."""

from __future__ import annotations

from .channel import ChannelManager, NotificationHandler
from .mapper import from_notification
from .scheduler import LoopScheduler, Scheduler
from .state import ChannelSnapshot, ChannelState, RetryPolicy, transition
from .transport import TransportCallbacks, WebSocketTransport

__all__ = [
    "ChannelManager",
    "ChannelSnapshot",
    "ChannelState",
    "LoopScheduler",
    "NotificationHandler",
    "RetryPolicy",
    "Scheduler",
    "TransportCallbacks",
    "WebSocketTransport",
    "from_notification",
    "transition",
]
