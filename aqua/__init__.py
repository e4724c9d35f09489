"""aqua - prefixed command dispatch with access-control gating.

Typical host startup::

    from aqua import Dispatcher, get_config, setup_logging

    config = get_config()
    setup_logging(config)
    dispatcher = Dispatcher.from_config(bus, config)

setup_logging is optional; without it aqua's structlog output goes
wherever the host has configured structlog.
"""

from .access_policy import AccessPolicy
from .commands import Command, CommandGroup
from .config import Config, get_config
from .dispatcher import Dispatcher, MessageTransport
from .events import EventBusAdapter, EventKind, LocalBus, NotificationBus
from .exceptions import (
    AquaError,
    ConfigurationError,
    DuplicateCommandError,
    TransportError,
    UnknownEventKindError,
)
from .logging_config import setup_logging
from .models import CommandOptions, MessageContext, PolicySeed

__version__ = "0.1.0"

__all__ = [
    "AccessPolicy",
    "AquaError",
    "Command",
    "CommandGroup",
    "CommandOptions",
    "Config",
    "ConfigurationError",
    "Dispatcher",
    "DuplicateCommandError",
    "EventBusAdapter",
    "EventKind",
    "get_config",
    "LocalBus",
    "MessageContext",
    "MessageTransport",
    "NotificationBus",
    "PolicySeed",
    "TransportError",
    "UnknownEventKindError",
    "setup_logging",
]
