"""Tests for the event bus adapter."""

from unittest.mock import MagicMock

import pytest
import structlog
import structlog.testing

from aqua.events import EventBusAdapter, EventKind, LocalBus
from aqua.exceptions import ErrorCategory, UnknownEventKindError


@pytest.mark.parametrize(
    "event, channel",
    [
        ("messageCreate", "MESSAGE_CREATE"),
        ("messageUpdate", "MESSAGE_UPDATE"),
        ("messageDelete", "MESSAGE_DELETE"),
        ("loadMessages", "LOAD_MESSAGES"),
        ("userUpdate", "USER_UPDATE"),
        ("currentUserUpdate", "CURRENT_USER_UPDATE"),
    ],
)
def test_on_subscribes_mapped_channel(event, channel):
    bus = MagicMock()
    callback = MagicMock()
    EventBusAdapter(bus).on(event, callback)
    bus.subscribe.assert_called_once_with(channel, callback)


def test_on_accepts_enum_member():
    bus = MagicMock()
    EventBusAdapter(bus).on(EventKind.USER_UPDATED, print)
    bus.subscribe.assert_called_once_with("USER_UPDATE", print)


def test_unknown_event_raises_and_does_not_subscribe():
    bus = MagicMock()
    with pytest.raises(UnknownEventKindError, match='unknown listener "typingStart"') as exc_info:
        EventBusAdapter(bus).on("typingStart", print)
    assert exc_info.value.event == "typingStart"
    assert exc_info.value.category == ErrorCategory.PERMANENT
    bus.subscribe.assert_not_called()


def test_channel_names_are_not_event_kinds():
    """Only the logical names are accepted, not raw channel names."""
    with pytest.raises(UnknownEventKindError):
        EventKind.parse("MESSAGE_CREATE")


def test_every_kind_has_a_distinct_channel():
    channels = {kind.channel for kind in EventKind}
    assert len(channels) == len(EventKind) == 6


# --- LocalBus ---

def test_local_bus_delivers_in_registration_order():
    bus = LocalBus()
    calls = []
    bus.subscribe("MESSAGE_CREATE", lambda p: calls.append(("a", p)))
    bus.subscribe("MESSAGE_CREATE", lambda p: calls.append(("b", p)))
    bus.subscribe("USER_UPDATE", lambda p: calls.append(("c", p)))

    delivered = bus.dispatch("MESSAGE_CREATE", 1)

    assert delivered == 2
    assert calls == [("a", 1), ("b", 1)]


def test_local_bus_dispatch_without_subscribers():
    assert LocalBus().dispatch("MESSAGE_DELETE", {}) == 0


def test_local_bus_subscriber_errors_propagate():
    bus = LocalBus()

    def boom(payload):
        raise RuntimeError("listener failed")

    bus.subscribe("MESSAGE_CREATE", boom)
    with pytest.raises(RuntimeError, match="listener failed"):
        bus.dispatch("MESSAGE_CREATE", {})


def test_adapter_with_local_bus():
    bus = LocalBus()
    seen = []
    EventBusAdapter(bus).on("messageDelete", seen.append)
    bus.dispatch("MESSAGE_DELETE", {"id": "m1"})
    assert seen == [{"id": "m1"}]
    assert len(bus.subscribers("MESSAGE_DELETE")) == 1


def test_on_logs_subscription_with_configured_structlog():
    """Subscribing must not collide with structlog's positional event name."""
    bus = LocalBus()
    with structlog.testing.capture_logs() as logs:
        EventBusAdapter(bus).on("messageCreate", print)

    assert bus.subscribers("MESSAGE_CREATE") == (print,)
    entry = next(e for e in logs if e["event"] == "listener_subscribed")
    assert entry["kind"] == "messageCreate"
    assert entry["channel"] == "MESSAGE_CREATE"
