"""Event bus infrastructure for decoupled catalog component communication.

The document store announces every state change through this bus, and
observers (the controller, tests, diagnostics) subscribe without the store
knowing who they are.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import (
    Callable,
    Generic,
    TypeVar,
    TYPE_CHECKING,
)
from weakref import WeakMethod, ref

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

# Type variable for event types
E = TypeVar("E", bound="Event")

# Handler type: a callable that takes an event and returns None
Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events in the system.

    Example::

        @dataclass(slots=True)
        class DocumentReceived(Event):
            document_id: str
    """

    pass


# =============================================================================
# Store Events
# =============================================================================


class ChangeReason(str, Enum):
    """What kind of store mutation produced a :class:`StoreChanged` event."""

    DOCUMENT_ADDED = "document_added"
    SORT_FIELD = "sort_field"
    SORT_ORDER = "sort_order"
    VIEW_MODE = "view_mode"


@dataclass(slots=True)
class StoreChanged(Event):
    """Emitted once per mutating store call.

    Attributes:
        reason: Which setter or insertion triggered the change.
        document_id: The inserted document's id for ``DOCUMENT_ADDED``.
    """

    reason: ChangeReason
    document_id: str | None = None


class Subscription:
    """Opaque cancellation token returned by :meth:`EventBus.subscribe`.

    Cancelling removes exactly the registration that produced the token,
    even when the same handler was subscribed more than once.
    """

    __slots__ = ("_bus", "_event_type", "_handler_ref", "_active")

    def __init__(self, bus: EventBus, event_type: type[Event], handler_ref: _HandlerRef) -> None:
        self._bus = bus
        self._event_type = event_type
        self._handler_ref = handler_ref
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Deregister the handler; safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._bus._remove_ref(self._event_type, self._handler_ref)

    def __call__(self) -> None:
        self.cancel()


class EventBus(Generic[E]):
    """A typed publish-subscribe event bus for decoupled communication.

    Handlers are stored as weak references where possible (bound methods)
    to prevent memory leaks.

    Example::

        bus = EventBus()
        token = bus.subscribe(StoreChanged, lambda event: print(event.reason))
        bus.publish(StoreChanged(reason=ChangeReason.VIEW_MODE))
        token.cancel()

    Thread Safety:
        This implementation is NOT thread-safe. All operations should be
        performed from the event loop thread.

    Attributes:
        _handlers: Mapping from event type to list of handler references.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        """Initialize an empty event bus."""
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> Subscription:
        """Register a handler to receive events of the specified type.

        Args:
            event_type: The class of events to subscribe to.
            handler: A callable that will be invoked with the event.

        Returns:
            A :class:`Subscription` whose ``cancel()`` removes this
            registration.

        Note:
            Subscribing the same handler multiple times will result in
            multiple invocations when an event is published.
        """
        handler_ref = _HandlerRef.create(handler)
        self._handlers[event_type].append(handler_ref)
        logger.debug(
            "Subscribed handler %s to event type %s",
            _handler_name(handler),
            event_type.__name__,
        )
        return Subscription(self, event_type, handler_ref)

    def publish(self, event: E) -> None:
        """Broadcast an event to all registered handlers.

        Handlers are invoked synchronously in the order they were
        registered. If a handler raises an exception, it is logged
        and remaining handlers continue to be invoked.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)

        if not handlers:
            logger.debug("No handlers for event type %s", event_type.__name__)
            return

        logger.debug(
            "Publishing %s to %d handler(s)",
            event_type.__name__,
            len(handlers),
        )

        dead_refs: list[_HandlerRef] = []

        # Iterate a snapshot so handlers may cancel subscriptions mid-publish.
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead_refs.append(handler_ref)
                continue

            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for handler_ref in dead_refs:
            self._remove_ref(event_type, handler_ref)

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return the number of registered handlers.

        Args:
            event_type: If provided, return count for that event type only.
                       If None, return total count across all event types.
        """
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())

    def _remove_ref(self, event_type: type[Event], handler_ref: _HandlerRef) -> None:
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for i, candidate in enumerate(handlers):
            if candidate is handler_ref:
                handlers.pop(i)
                return


class _HandlerRef:
    """Wrapper for handler references supporting both weak and strong refs.

    Bound methods are held through ``WeakMethod`` so subscribers do not
    outlive their owners; plain functions and lambdas are held strongly.
    """

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | ref | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                # Some callables can't be weakly referenced
                pass

        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        """Return the handler, or None if it was garbage collected."""
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]


def _handler_name(handler: Handler) -> str:
    """Get a human-readable name for a handler for logging purposes."""
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        cls_name = type(handler.__self__).__name__
        return f"{cls_name}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "ChangeReason",
    "Event",
    "EventBus",
    "Handler",
    "StoreChanged",
    "Subscription",
]
