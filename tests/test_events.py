"""Unit tests for :mod:`doccatalog.ui.events`."""

from __future__ import annotations

import gc
import logging
from dataclasses import dataclass

import pytest

from doccatalog.ui.events import ChangeReason, Event, EventBus, StoreChanged, Subscription


@dataclass(slots=True)
class SampleEvent(Event):
    message: str


class TestEventBus:
    def test_publish_reaches_subscribers_in_order(self) -> None:
        bus: EventBus[Event] = EventBus()
        calls: list[str] = []

        bus.subscribe(SampleEvent, lambda e: calls.append(f"first:{e.message}"))
        bus.subscribe(SampleEvent, lambda e: calls.append(f"second:{e.message}"))
        bus.publish(SampleEvent("hi"))

        assert calls == ["first:hi", "second:hi"]

    def test_publish_is_scoped_by_event_type(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[Event] = []
        bus.subscribe(StoreChanged, received.append)

        bus.publish(SampleEvent("ignored"))

        assert received == []

    def test_publish_without_handlers_is_noop(self) -> None:
        EventBus().publish(StoreChanged(reason=ChangeReason.VIEW_MODE))

    def test_failing_handler_does_not_stop_others(self, caplog: pytest.LogCaptureFixture) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[Event] = []

        def broken(_event: Event) -> None:
            raise RuntimeError("boom")

        bus.subscribe(SampleEvent, broken)
        bus.subscribe(SampleEvent, received.append)

        with caplog.at_level(logging.ERROR, logger="doccatalog.ui.events"):
            bus.publish(SampleEvent("x"))

        assert len(received) == 1
        assert "raised exception" in caplog.text

    def test_bound_method_handlers_are_weak(self) -> None:
        bus: EventBus[Event] = EventBus()

        class Listener:
            def __init__(self) -> None:
                self.calls = 0

            def on_event(self, _event: Event) -> None:
                self.calls += 1

        listener = Listener()
        bus.subscribe(SampleEvent, listener.on_event)
        del listener
        gc.collect()

        bus.publish(SampleEvent("x"))

        assert bus.handler_count(SampleEvent) == 0

    def test_handler_count_per_type_and_total(self) -> None:
        bus: EventBus[Event] = EventBus()
        bus.subscribe(SampleEvent, lambda e: None)
        bus.subscribe(SampleEvent, lambda e: None)
        bus.subscribe(StoreChanged, lambda e: None)

        assert bus.handler_count(SampleEvent) == 2
        assert bus.handler_count(StoreChanged) == 1
        assert bus.handler_count() == 3


class TestSubscription:
    def test_subscribe_returns_token(self) -> None:
        token = EventBus().subscribe(SampleEvent, lambda e: None)
        assert isinstance(token, Subscription)
        assert token.active

    def test_cancel_removes_only_its_registration(self) -> None:
        bus: EventBus[Event] = EventBus()
        received: list[Event] = []

        first = bus.subscribe(SampleEvent, received.append)
        bus.subscribe(SampleEvent, received.append)
        first.cancel()
        bus.publish(SampleEvent("x"))

        assert len(received) == 1
        assert not first.active

    def test_cancel_is_idempotent(self) -> None:
        bus: EventBus[Event] = EventBus()
        keep = bus.subscribe(SampleEvent, lambda e: None)
        token = bus.subscribe(SampleEvent, lambda e: None)

        token.cancel()
        token.cancel()
        token()

        assert bus.handler_count(SampleEvent) == 1
        assert keep.active

    def test_cancel_during_publish(self) -> None:
        bus: EventBus[Event] = EventBus()
        calls: list[str] = []
        tokens: list[Subscription] = []

        def first(_event: Event) -> None:
            calls.append("first")
            tokens[0].cancel()

        tokens.append(bus.subscribe(SampleEvent, first))
        bus.subscribe(SampleEvent, lambda e: calls.append("second"))

        bus.publish(SampleEvent("x"))
        bus.publish(SampleEvent("y"))

        assert calls == ["first", "second", "second"]
