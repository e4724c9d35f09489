"""Command groups for aqua.

Provides CommandGroup for registering prefixed commands and the
Command record it stores per registration.
"""

from .base import DEFAULT_DEBOUNCE_SECONDS, DEFAULT_PREFIX, Command, CommandGroup

__all__ = [
    "Command",
    "CommandGroup",
    "DEFAULT_PREFIX",
    "DEFAULT_DEBOUNCE_SECONDS",
]
