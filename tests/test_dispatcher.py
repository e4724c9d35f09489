"""Tests for the Dispatcher facade."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from aqua.access_policy import AccessPolicy
from aqua.dispatcher import Dispatcher
from aqua.events import LocalBus
from aqua.exceptions import ConfigurationError, TransportError, UnknownEventKindError
from aqua.models import PolicySeed


def _event(content="--ping", author="U1", guild="G1"):
    return {"message": {"content": content, "author": {"id": author}, "guild_id": guild}}


def test_on_receives_raw_events_without_gating():
    bus = LocalBus()
    dispatcher = Dispatcher(bus)
    seen = []
    dispatcher.on("messageCreate", seen.append)

    bus.dispatch("MESSAGE_CREATE", _event(author="stranger"))

    assert seen == [_event(author="stranger")]


def test_on_unknown_event_raises():
    with pytest.raises(UnknownEventKindError):
        Dispatcher(LocalBus()).on("guildCreate", print)


def test_default_policy_is_empty_and_denies():
    bus = LocalBus()
    dispatcher = Dispatcher(bus)
    callback = MagicMock()
    dispatcher.command_group().register_command("ping", callback)

    bus.dispatch("MESSAGE_CREATE", _event())

    callback.assert_not_called()


def test_command_group_uses_default_prefix():
    dispatcher = Dispatcher(LocalBus(), default_prefix="!")
    assert dispatcher.command_group().prefix == "!"
    assert dispatcher.command_group("$").prefix == "$"


def test_groups_share_policy():
    bus = LocalBus()
    dispatcher = Dispatcher(bus, AccessPolicy(allow=["U1"]))
    admin = dispatcher.command_group("!")
    fun = dispatcher.command_group("?")
    admin_cb = MagicMock()
    fun_cb = MagicMock()
    admin.register_command("kick", admin_cb)
    fun.register_command("roll", fun_cb)

    bus.dispatch("MESSAGE_CREATE", _event(content="!kick"))
    bus.dispatch("MESSAGE_CREATE", _event(content="?roll"))
    dispatcher.policy.block_identity("U1")
    bus.dispatch("MESSAGE_CREATE", _event(content="?roll"))

    admin_cb.assert_called_once()
    fun_cb.assert_called_once()


def test_one_event_reaches_every_matching_group():
    bus = LocalBus()
    dispatcher = Dispatcher(bus, AccessPolicy(allow=["U1"]))
    a = MagicMock()
    b = MagicMock()
    dispatcher.command_group("!").register_command("help", a)
    dispatcher.command_group("!").register_command("help", b)

    bus.dispatch("MESSAGE_CREATE", _event(content="!help"))

    a.assert_called_once()
    b.assert_called_once()


def test_from_config_builds_policy_and_timing():
    config = MagicMock()
    config.policy_seed = PolicySeed(allow=["U1"], guild_blacklist=["G9"])
    config.command_prefix = "!"
    config.debounce_seconds = 2.5
    config.send_delay_seconds = 0.5

    dispatcher = Dispatcher.from_config(LocalBus(), config)

    config.validate.assert_called_once()
    assert dispatcher.policy.is_allowed("U1") is True
    assert dispatcher.policy.is_blacklisted("G9") is True
    assert dispatcher.default_prefix == "!"
    assert dispatcher.send_delay_seconds == 0.5
    assert dispatcher.command_group().debounce_seconds == 2.5


def test_from_config_propagates_validation_errors():
    config = MagicMock()
    config.validate.side_effect = ConfigurationError("bad", setting_name="debounce_seconds")
    with pytest.raises(ConfigurationError):
        Dispatcher.from_config(LocalBus(), config)


def test_from_config_defaults_to_global_config():
    config = MagicMock()
    config.policy_seed = PolicySeed()
    config.command_prefix = "--"
    config.debounce_seconds = 1.0
    config.send_delay_seconds = 1.0
    with patch("aqua.config.get_config", return_value=config):
        dispatcher = Dispatcher.from_config(LocalBus())
    assert dispatcher.default_prefix == "--"


# --- delivery ---

@pytest.mark.asyncio
async def test_send_message_is_delayed():
    transport = MagicMock()
    transport.send_message = AsyncMock()
    dispatcher = Dispatcher(LocalBus(), transport=transport, send_delay_seconds=0.05)

    task = dispatcher.send_message("C1", "hello")
    await asyncio.sleep(0)
    transport.send_message.assert_not_called()

    await task
    transport.send_message.assert_awaited_once_with(
        "C1",
        {
            "content": "hello",
            "tts": False,
            "invalidEmojis": [],
            "validNonShortcutEmojis": [],
        },
    )


@pytest.mark.asyncio
async def test_send_message_failure_is_logged():
    transport = MagicMock()
    transport.send_message = AsyncMock(side_effect=TransportError("down", status=500))
    dispatcher = Dispatcher(LocalBus(), transport=transport, send_delay_seconds=0)

    with patch("aqua.commands.base.logger") as mock_logger:
        task = dispatcher.send_message("C1", "hello")
        with pytest.raises(TransportError):
            await task
        await asyncio.sleep(0)
        mock_logger.error.assert_called_once()


@pytest.mark.asyncio
async def test_send_bot_message_passes_through():
    transport = MagicMock()
    transport.send_bot_message = AsyncMock()
    dispatcher = Dispatcher(LocalBus(), transport=transport)

    await dispatcher.send_bot_message("C1", "beep", [{"id": "a1"}])

    transport.send_bot_message.assert_awaited_once_with("C1", "beep", [{"id": "a1"}])


@pytest.mark.asyncio
async def test_send_without_transport_raises():
    dispatcher = Dispatcher(LocalBus())
    with pytest.raises(TransportError, match="no message transport"):
        dispatcher.send_message("C1", "hello")
    with pytest.raises(TransportError, match="no message transport"):
        await dispatcher.send_bot_message("C1", "hello")
