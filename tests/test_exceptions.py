"""Tests for the exception hierarchy."""

from aqua.exceptions import (
    AquaError,
    ConfigurationError,
    DuplicateCommandError,
    ErrorCategory,
    TransportError,
    UnknownEventKindError,
)


def test_all_errors_share_base():
    for cls in (DuplicateCommandError, UnknownEventKindError, ConfigurationError, TransportError):
        assert issubclass(cls, AquaError)


def test_default_categories():
    assert DuplicateCommandError(command="x").category == ErrorCategory.PERMANENT
    assert UnknownEventKindError(event="x").category == ErrorCategory.PERMANENT
    assert ConfigurationError("x").category == ErrorCategory.INFRASTRUCTURE
    assert TransportError("x").is_retryable is True


def test_str_includes_module_and_context():
    err = DuplicateCommandError(command="ping", prefix="!")
    text = str(err)
    assert text.startswith("Command ping already exists.")
    assert "[module=commands]" in text
    assert "prefix=!" in text


def test_unknown_event_is_value_error():
    assert isinstance(UnknownEventKindError(event="nope"), ValueError)


def test_repr():
    err = TransportError("down", status=502)
    assert repr(err) == "TransportError('down', category='transient', module='transport')"
    assert err.status == 502
