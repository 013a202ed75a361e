"""Tests for :class:`doccatalog.realtime.channel.ChannelManager`."""

from __future__ import annotations

import json
import logging

import pytest

from doccatalog.models.notification import SocketNotification
from doccatalog.realtime.channel import ChannelManager
from doccatalog.realtime.state import ChannelState, RetryPolicy

URL = "ws://catalog.test/notifications"


@pytest.fixture
def received() -> list[SocketNotification]:
    return []


@pytest.fixture
def manager(scheduler, transport, received) -> ChannelManager:
    return ChannelManager(URL, received.append, scheduler=scheduler, transport=transport)


class TestLifecycle:
    def test_starts_idle(self, manager) -> None:
        assert manager.state is ChannelState.IDLE
        assert manager.retry_count == 0
        assert manager.url == URL
        assert manager.policy == RetryPolicy(max_attempts=5, delay=3.0)

    def test_connect_opens_transport(self, manager, transport) -> None:
        manager.connect()

        assert manager.state is ChannelState.CONNECTING
        assert [conn.url for conn in transport.connections] == [URL]

        transport.last.opened()

        assert manager.state is ChannelState.OPEN

    def test_connect_while_open_is_noop(self, manager, transport) -> None:
        manager.connect()
        transport.last.opened()

        manager.connect()

        assert len(transport.connections) == 1
        assert manager.state is ChannelState.OPEN

    def test_drop_schedules_reconnect_with_fixed_delay(self, manager, transport, scheduler) -> None:
        manager.connect()
        transport.last.opened()

        transport.last.drop()

        assert manager.state is ChannelState.CLOSED_RETRYING
        assert manager.retry_count == 1
        assert manager.reconnect_pending
        assert [timer.delay for timer in scheduler.pending] == [3.0]

        scheduler.fire_next()

        assert manager.state is ChannelState.CONNECTING
        assert len(transport.connections) == 2
        assert not manager.reconnect_pending

    def test_successful_reconnect_resets_budget(self, manager, transport, scheduler) -> None:
        manager.connect()
        transport.last.drop()
        scheduler.fire_next()
        transport.last.opened()

        assert manager.state is ChannelState.OPEN
        assert manager.retry_count == 0

    def test_abandons_after_retry_budget(self, manager, transport, scheduler, caplog) -> None:
        manager.connect()
        with caplog.at_level(logging.INFO, logger="doccatalog.realtime.channel"):
            for _ in range(5):
                transport.last.drop("refused")
                scheduler.fire_next()
            transport.last.drop("refused")

        assert manager.state is ChannelState.ABANDONED
        assert len(transport.connections) == 6
        assert len(scheduler.timers) == 5
        assert scheduler.pending == []
        assert "Reconnection attempt 5/5" in caplog.text
        assert "abandoned" in caplog.text

    def test_connect_after_abandon_without_disconnect_abandons_again(self, scheduler, transport, received) -> None:
        manager = ChannelManager(
            URL, received.append, scheduler=scheduler, transport=transport, policy=RetryPolicy(1, 0.5)
        )
        manager.connect()
        transport.last.drop()
        scheduler.fire_next()
        transport.last.drop()
        assert manager.state is ChannelState.ABANDONED

        manager.connect()
        assert manager.state is ChannelState.CONNECTING
        transport.last.drop()

        assert manager.state is ChannelState.ABANDONED
        assert scheduler.pending == []

    def test_disconnect_cancels_pending_reconnect(self, manager, transport, scheduler) -> None:
        manager.connect()
        transport.last.drop()
        timer = scheduler.pending[0]

        manager.disconnect()

        assert timer.cancelled
        assert manager.state is ChannelState.IDLE
        assert manager.retry_count == 0
        assert not manager.reconnect_pending

    def test_disconnect_closes_connection_and_restores_budget(self, manager, transport, scheduler) -> None:
        manager.connect()
        transport.last.opened()
        connection = transport.last

        manager.disconnect()

        assert connection.closed
        manager.connect()
        assert manager.state is ChannelState.CONNECTING
        assert len(transport.connections) == 2

    def test_stale_callbacks_are_ignored(self, manager, transport, scheduler) -> None:
        manager.connect()
        stale = transport.last
        manager.disconnect()

        stale.opened()
        stale.drop()

        assert manager.state is ChannelState.IDLE
        assert scheduler.timers == []

    def test_open_failure_counts_as_close(self, manager, transport, caplog) -> None:
        transport.fail_with = OSError("no route")

        with caplog.at_level(logging.ERROR, logger="doccatalog.realtime.channel"):
            manager.connect()

        assert manager.state is ChannelState.CLOSED_RETRYING
        assert manager.retry_count == 1
        assert "no route" in caplog.text


class TestMessages:
    def test_valid_frame_reaches_handler(self, manager, transport, received, notification_payload) -> None:
        manager.connect()
        transport.last.opened()

        transport.last.deliver(notification_payload)
        transport.last.deliver(json.dumps(notification_payload).encode("utf-8"))

        assert [n.document_id for n in received] == ["doc-remote", "doc-remote"]

    @pytest.mark.parametrize(
        "frame",
        [
            "not json",
            b"\xff\xfe",
            json.dumps([1, 2, 3]),
            json.dumps({"DocumentID": "doc-1"}),
        ],
    )
    def test_malformed_frames_are_dropped(self, manager, transport, received, frame, caplog) -> None:
        manager.connect()
        transport.last.opened()

        with caplog.at_level(logging.WARNING, logger="doccatalog.realtime.channel"):
            transport.last.deliver(frame)

        assert received == []
        assert manager.state is ChannelState.OPEN
        assert "Error parsing channel message" in caplog.text

    def test_handler_failure_keeps_channel_open(self, scheduler, transport, notification_payload, caplog) -> None:
        def broken(_notification: SocketNotification) -> None:
            raise RuntimeError("handler exploded")

        manager = ChannelManager(URL, broken, scheduler=scheduler, transport=transport)
        manager.connect()
        transport.last.opened()

        with caplog.at_level(logging.ERROR, logger="doccatalog.realtime.channel"):
            transport.last.deliver(notification_payload)

        assert manager.state is ChannelState.OPEN
        assert "handler exploded" in caplog.text


class TestSend:
    def test_send_requires_open_channel(self, manager, transport) -> None:
        manager.send({"ignored": True})
        manager.connect()
        manager.send({"ignored": True})
        assert transport.last.sent == []

        transport.last.opened()
        manager.send({"DocumentID": "doc-1"})

        assert transport.last.sent == ['{"DocumentID": "doc-1"}']

    def test_send_rejects_unserialisable_payloads(self, manager, transport) -> None:
        manager.connect()
        transport.last.opened()

        with pytest.raises(TypeError):
            manager.send({"bad": object()})
