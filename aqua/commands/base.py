"""Prefixed command groups with access-control gating.

A CommandGroup owns a prefix and a mapping of command name -> Command.
The first registration subscribes one message-created listener for the
whole group. Each event is validated once, then every command runs the
dispatch checks below and, if they all pass, its callback is called
with the event context:

    1. author is on the allow list
    2. author is on the safe list (only for ``safe`` commands)
    3. author is not on the block list
    4. message has content and a guild id
    5. content starts with ``prefix + name``
    6. guild is not blacklisted
    7. the command's debounce window is closed

The first failing check ends evaluation silently. Messages that don't
qualify are the normal case, so nothing is raised or logged for them.

Key classes:
    Command: A registered command and its debounce state.
    CommandGroup: Prefix + command mapping + dispatch.

Constants:
    DEFAULT_PREFIX: Prefix used when none (or an empty one) is given.
    DEFAULT_DEBOUNCE_SECONDS: Length of the per-command debounce window.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Mapping,
    Optional,
    Set,
    Union,
)

import structlog
from pydantic import ValidationError

from ..events import EventKind
from ..exceptions import DuplicateCommandError
from ..models import CommandOptions, Message, MessageContext

if TYPE_CHECKING:
    from ..access_policy import AccessPolicy
    from ..events import EventBusAdapter

logger = structlog.get_logger("aqua.dispatch")

DEFAULT_PREFIX = "--"
DEFAULT_DEBOUNCE_SECONDS = 1.0

CommandCallback = Callable[[Any], Any]


def log_task_exception(task: asyncio.Task) -> None:
    """Log exceptions from fire-and-forget tasks instead of silently swallowing them."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc:
        logger.error("command_task_failed", error=str(exc), exc_type=type(exc).__name__)


@dataclass
class Command:
    """A registered command.

    ``debounce_until`` is the clock reading at which the current debounce
    window closes; 0.0 means no window has been opened yet.
    """

    name: str
    callback: CommandCallback
    options: CommandOptions = field(default_factory=CommandOptions)
    debounce_until: float = field(default=0.0, repr=False)

    def is_debounced(self, now: float) -> bool:
        return now < self.debounce_until

    def open_window(self, now: float, seconds: float) -> None:
        self.debounce_until = now + seconds


def _as_context(context: Any) -> Optional[MessageContext]:
    """Coerce an event payload into a MessageContext.

    Mappings and attribute-style objects (e.g. a host's event class) are
    both accepted. Returns None for payloads that don't have the expected
    shape.
    """
    if isinstance(context, MessageContext):
        return context
    try:
        if isinstance(context, Mapping):
            return MessageContext.model_validate(context)
        return MessageContext.model_validate(context, from_attributes=True)
    except ValidationError:
        return None


class CommandGroup:
    """A group of commands sharing one prefix.

    Args:
        policy: Shared AccessPolicy consulted on every dispatch.
        events: Adapter used to subscribe the group's message listener.
        prefix: Literal prefix; falsy values fall back to DEFAULT_PREFIX.
        debounce_seconds: Per-command debounce window.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        policy: "AccessPolicy",
        events: "EventBusAdapter",
        prefix: Optional[str] = None,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.policy = policy
        self.events = events
        self.prefix = prefix or DEFAULT_PREFIX
        self.debounce_seconds = debounce_seconds
        self._clock = clock
        self._commands: Dict[str, Command] = {}
        self._subscribed = False
        # Strong refs to in-flight coroutine callbacks
        self._tasks: Set[asyncio.Task] = set()

    def update_prefix(self, prefix: str) -> None:
        """Replace the prefix. Applies to already-registered commands too."""
        old = self.prefix
        self.prefix = prefix
        logger.info("prefix_updated", old_prefix=old, new_prefix=prefix)

    def register_command(
        self,
        name: str,
        callback: CommandCallback,
        options: Union[CommandOptions, Mapping[str, Any], None] = None,
    ) -> Command:
        """Register a command, subscribing the group listener on first use.

        Args:
            name: Command name, unique within this group.
            callback: Called with the event context when the command fires.
            options: CommandOptions or a dict of options (``safe``).

        Returns:
            The stored Command record.

        Raises:
            DuplicateCommandError: If ``name`` is already registered here.
        """
        if name in self._commands:
            raise DuplicateCommandError(command=name, prefix=self.prefix)

        if options is None:
            options = CommandOptions()
        elif not isinstance(options, CommandOptions):
            options = CommandOptions.model_validate(dict(options))

        if not self._subscribed:
            self.events.on(EventKind.MESSAGE_CREATED, self._on_message)
            self._subscribed = True

        command = Command(name=name, callback=callback, options=options)
        self._commands[name] = command
        logger.info(
            "command_registered",
            command=name,
            prefix=self.prefix,
            safe=options.safe,
        )
        return command

    def command(self, name: str, **options: Any) -> Callable[[CommandCallback], CommandCallback]:
        """Decorator form of register_command.

        Usage::

            @group.command("ping", safe=True)
            def ping(context): ...
        """
        def decorator(callback: CommandCallback) -> CommandCallback:
            self.register_command(name, callback, options)
            return callback
        return decorator

    def _on_message(self, context: Any) -> None:
        """Group listener for message-created events."""
        ctx = _as_context(context)
        message = ctx.message if ctx is not None else None
        if message is None or message.author is None:
            return
        # Snapshot: commands registered by a callback wait for the next event
        for command in list(self._commands.values()):
            self._dispatch(command, message, context)

    def _dispatch(self, command: Command, message: Message, context: Any) -> None:
        """Run the dispatch checks for one command against one event."""
        author_id = message.author.id

        if not self.policy.is_allowed(author_id):
            return
        if command.options.safe and not self.policy.is_safe(author_id):
            return
        if self.policy.is_blocked(author_id):
            return
        if not message.content or not message.guild_id:
            return
        if not message.content.startswith(f"{self.prefix}{command.name}"):
            return
        if self.policy.is_blacklisted(message.guild_id):
            return

        now = self._clock()
        if command.is_debounced(now):
            return
        command.open_window(now, self.debounce_seconds)

        logger.debug(
            "command_invoked",
            command=command.name,
            guild_id=message.guild_id,
            author="..." + author_id[-4:],
        )
        # The callback receives the payload exactly as the bus delivered it.
        result = command.callback(context)
        if inspect.iscoroutine(result):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                result.close()
                raise
            task = loop.create_task(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            task.add_done_callback(log_task_exception)

    def get(self, name: str) -> Optional[Command]:
        """Look up a registered command by name."""
        return self._commands.get(name)

    @property
    def command_names(self) -> frozenset:
        """All registered command names."""
        return frozenset(self._commands.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def __repr__(self) -> str:
        return f"CommandGroup(prefix={self.prefix!r}, commands={sorted(self._commands)})"
