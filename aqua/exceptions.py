"""Custom exception hierarchy for aqua.

Construction-time mistakes (duplicate command names, unknown event kinds,
bad configuration) raise immediately so they surface at startup. Dispatch
never raises for a message that simply does not qualify for a command.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for retry decisions."""
    TRANSIENT = "transient"          # Worth retrying (delivery timeout, 5xx)
    PERMANENT = "permanent"          # Programmer error, bad input
    INFRASTRUCTURE = "infrastructure"  # Missing config, env issues


class AquaError(Exception):
    """Base exception for all aqua errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification for retry/escalation decisions.
        module: Originating module name (e.g. "commands").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error is worth retrying."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Command registration
# ---------------------------------------------------------------------------

class DuplicateCommandError(AquaError):
    """A command name is already registered in the same CommandGroup.

    Attributes:
        command: The colliding command name.
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        super().__init__(
            message or f"Command {command} already exists.",
            category=category,
            module=module or "commands",
            **context,
        )


# ---------------------------------------------------------------------------
# Event subscription
# ---------------------------------------------------------------------------

class UnknownEventKindError(AquaError, ValueError):
    """Attempted to subscribe to an event kind the adapter does not map.

    Attributes:
        event: The rejected event kind value.
    """

    def __init__(
        self,
        message: str = "",
        *,
        event: Any = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.event = event
        super().__init__(
            message or f'attempted to add unknown listener "{event}"',
            category=category,
            module=module or "events",
            **context,
        )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(AquaError):
    """Invalid or missing configuration.

    Defaults to INFRASTRUCTURE because config issues are environmental
    and won't resolve by retrying.
    """

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message, category=category, module=module or "config", **context
        )


# ---------------------------------------------------------------------------
# Message delivery
# ---------------------------------------------------------------------------

class TransportError(AquaError):
    """Outgoing message delivery failed or no transport is configured.

    Attributes:
        status: HTTP status of the failed request (if any).
    """

    def __init__(
        self,
        message: str = "",
        *,
        status: Optional[int] = None,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.status = status
        super().__init__(
            message, category=category, module=module or "transport", **context
        )
