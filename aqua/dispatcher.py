"""Dispatcher facade for aqua.

The single entry point host code holds on to. It owns the shared
AccessPolicy and EventBusAdapter, hands out CommandGroups wired to
them, exposes raw event subscription, and forwards outgoing messages
to a delivery transport.

Key classes:
    Dispatcher: Facade over policy, events, command groups and delivery.
    MessageTransport: Protocol for the outgoing delivery service.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Union

import structlog

from .access_policy import AccessPolicy
from .commands.base import (
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_PREFIX,
    CommandGroup,
    log_task_exception,
)
from .events import EventBusAdapter, EventCallback, EventKind, NotificationBus
from .exceptions import TransportError

if TYPE_CHECKING:
    from .config import Config

logger = structlog.get_logger("aqua.dispatch")

DEFAULT_SEND_DELAY_SECONDS = 1.0


class MessageTransport(Protocol):
    """Outgoing message delivery service."""

    async def send_message(self, channel_id: str, payload: Dict[str, Any]) -> None:
        ...

    async def send_bot_message(
        self, channel_id: str, content: str, attachments: Optional[List[Any]]
    ) -> None:
        ...


class Dispatcher:
    """Command dispatch with access-control gating over a notification bus.

    Args:
        bus: Host notification bus (anything with ``subscribe``).
        policy: Shared access policy. Defaults to an empty one, under
            which no command ever fires.
        transport: Delivery service for send_message/send_bot_message.
        default_prefix: Prefix for groups created without one.
        debounce_seconds: Debounce window handed to new groups.
        send_delay_seconds: Delay applied by send_message.
    """

    def __init__(
        self,
        bus: NotificationBus,
        policy: Optional[AccessPolicy] = None,
        transport: Optional[MessageTransport] = None,
        *,
        default_prefix: str = DEFAULT_PREFIX,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        send_delay_seconds: float = DEFAULT_SEND_DELAY_SECONDS,
    ):
        self.events = EventBusAdapter(bus)
        self._policy = policy if policy is not None else AccessPolicy()
        self.transport = transport
        self.default_prefix = default_prefix
        self.debounce_seconds = debounce_seconds
        self.send_delay_seconds = send_delay_seconds
        self._pending_sends: set = set()

    @classmethod
    def from_config(
        cls,
        bus: NotificationBus,
        config: Optional["Config"] = None,
        transport: Optional[MessageTransport] = None,
    ) -> "Dispatcher":
        """Build a Dispatcher from settings.yaml / .env."""
        if config is None:
            from .config import get_config
            config = get_config()
        config.validate()
        return cls(
            bus,
            AccessPolicy.from_config(config),
            transport,
            default_prefix=config.command_prefix,
            debounce_seconds=config.debounce_seconds,
            send_delay_seconds=config.send_delay_seconds,
        )

    @property
    def policy(self) -> AccessPolicy:
        return self._policy

    def on(self, event: Union[EventKind, str], callback: EventCallback) -> None:
        """Subscribe to raw events, bypassing all command gating.

        Raises:
            UnknownEventKindError: If ``event`` is not a known kind.
        """
        self.events.on(event, callback)

    def command_group(self, prefix: Optional[str] = None) -> CommandGroup:
        """Create a CommandGroup sharing this dispatcher's policy and bus."""
        return CommandGroup(
            self._policy,
            self.events,
            prefix or self.default_prefix,
            debounce_seconds=self.debounce_seconds,
        )

    def _require_transport(self) -> MessageTransport:
        if self.transport is None:
            raise TransportError("no message transport configured")
        return self.transport

    def send_message(self, channel_id: str, content: str) -> asyncio.Task:
        """Send a message to a channel after a short delay.

        Unsafe in bulk: the delivery API may rate-limit or ban accounts
        that send many messages this way.

        Must be called with a running event loop.

        Returns:
            The task performing the delayed delivery.
        """
        transport = self._require_transport()
        # Keys are the wire names the message endpoint expects
        payload = {
            "content": content,
            "tts": False,
            "invalidEmojis": [],
            "validNonShortcutEmojis": [],
        }

        async def _deliver() -> None:
            await asyncio.sleep(self.send_delay_seconds)
            await transport.send_message(channel_id, payload)

        task = asyncio.get_running_loop().create_task(_deliver())
        self._pending_sends.add(task)
        task.add_done_callback(self._pending_sends.discard)
        task.add_done_callback(log_task_exception)
        logger.debug("send_scheduled", channel_id=channel_id, delay=self.send_delay_seconds)
        return task

    async def send_bot_message(
        self,
        channel_id: str,
        content: str,
        attachments: Optional[List[Any]] = None,
    ) -> None:
        """Send a message as the bot identity."""
        await self._require_transport().send_bot_message(channel_id, content, attachments)
