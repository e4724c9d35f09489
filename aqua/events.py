"""Event subscription on top of an external notification bus.

The bus is supplied by the host; aqua only needs it to expose
``subscribe(channel, callback)``. EventBusAdapter translates the six
logical event kinds into the bus's channel names. LocalBus is a small
in-process implementation of the same interface for tests and
standalone wiring.

Key classes:
    EventKind: The six supported logical event kinds.
    NotificationBus: Protocol the external bus must satisfy.
    EventBusAdapter: Maps EventKind -> channel and subscribes.
    LocalBus: Synchronous in-process bus.
"""

from collections import defaultdict
from enum import Enum
from typing import Any, Callable, DefaultDict, List, Protocol, Tuple, Union

import structlog

from .exceptions import UnknownEventKindError

logger = structlog.get_logger("aqua.events")

EventCallback = Callable[[Any], Any]


class EventKind(str, Enum):
    """Logical event kinds. Values are the names callers pass to ``on()``."""
    MESSAGE_CREATED = "messageCreate"
    MESSAGE_UPDATED = "messageUpdate"
    MESSAGE_DELETED = "messageDelete"
    MESSAGES_LOADED = "loadMessages"
    USER_UPDATED = "userUpdate"
    CURRENT_USER_UPDATED = "currentUserUpdate"

    @property
    def channel(self) -> str:
        """Channel name on the external bus."""
        return _CHANNELS[self]

    @classmethod
    def parse(cls, value: Union["EventKind", str]) -> "EventKind":
        """Resolve a member or its string value.

        Raises:
            UnknownEventKindError: For anything that is not one of the
                six kinds.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownEventKindError(event=value) from None


_CHANNELS = {
    EventKind.MESSAGE_CREATED: "MESSAGE_CREATE",
    EventKind.MESSAGE_UPDATED: "MESSAGE_UPDATE",
    EventKind.MESSAGE_DELETED: "MESSAGE_DELETE",
    EventKind.MESSAGES_LOADED: "LOAD_MESSAGES",
    EventKind.USER_UPDATED: "USER_UPDATE",
    EventKind.CURRENT_USER_UPDATED: "CURRENT_USER_UPDATE",
}


class NotificationBus(Protocol):
    """Interface of the host's publish/subscribe system."""

    def subscribe(self, channel: str, callback: EventCallback) -> None:
        ...


class EventBusAdapter:
    """Subscribes callbacks to logical event kinds on a NotificationBus.

    Subscriptions are permanent; there is no unsubscribe.
    """

    def __init__(self, bus: NotificationBus):
        self.bus = bus

    def on(self, event: Union[EventKind, str], callback: EventCallback) -> None:
        """Bind a listener to one of the six event kinds.

        Raises:
            UnknownEventKindError: If ``event`` is not a known kind.
        """
        kind = EventKind.parse(event)
        self.bus.subscribe(kind.channel, callback)
        logger.debug("listener_subscribed", kind=kind.value, channel=kind.channel)


class LocalBus:
    """Minimal synchronous publish/subscribe bus.

    Subscribers run in registration order on the caller of dispatch();
    an exception raised by a subscriber propagates to that caller.
    """

    def __init__(self) -> None:
        self._subscribers: DefaultDict[str, List[EventCallback]] = defaultdict(list)

    def subscribe(self, channel: str, callback: EventCallback) -> None:
        self._subscribers[channel].append(callback)

    def dispatch(self, channel: str, payload: Any) -> int:
        """Deliver ``payload`` to every subscriber of ``channel``.

        Returns:
            Number of subscribers the payload was delivered to.
        """
        # Copy so a subscriber that subscribes during delivery is not
        # called for the current payload.
        handlers = list(self._subscribers.get(channel, ()))
        for handler in handlers:
            handler(payload)
        return len(handlers)

    def subscribers(self, channel: str) -> Tuple[EventCallback, ...]:
        return tuple(self._subscribers.get(channel, ()))
