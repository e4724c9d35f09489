"""Pydantic models shared across aqua.

Seed data for the access policy, the minimal shape of an incoming
message event, and per-command options.

Models:
    PolicySeed, Author, Message, MessageContext, CommandOptions
"""

from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Identity = str
GuildId = str

# A seed collection is either {key: truthy} or a plain list of keys.
SeedCollection = Union[Mapping[Any, Any], Iterable[Any], None]


def normalize_members(seed: SeedCollection) -> List[str]:
    """Flatten a seed collection into a list of string keys.

    Mapping entries with falsy values are skipped; keys are coerced to
    ``str`` so ``123`` and ``"123"`` name the same member.
    """
    if seed is None:
        return []
    if isinstance(seed, Mapping):
        return [str(key) for key, value in seed.items() if value]
    if isinstance(seed, (str, bytes)) or not isinstance(seed, Iterable):
        raise ValueError(
            f"seed collection must be a mapping or a list, not {type(seed).__name__}"
        )
    return [str(key) for key in seed]


class PolicySeed(BaseModel):
    """Initial membership of the four access-control lists."""

    allow: List[Identity] = Field(default_factory=list)
    block: List[Identity] = Field(default_factory=list)
    safe: List[Identity] = Field(default_factory=list)
    guild_blacklist: List[GuildId] = Field(default_factory=list)

    @field_validator("allow", "block", "safe", "guild_blacklist", mode="before")
    @classmethod
    def _flatten(cls, value: Any) -> List[str]:
        return normalize_members(value)


class Author(BaseModel):
    model_config = ConfigDict(extra="allow", from_attributes=True)

    id: Identity

    @field_validator("id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        # None stays None so a missing id fails validation
        return value if value is None else str(value)


class Message(BaseModel):
    """The fields of a message event the dispatcher reads.

    Everything else the bus sends along is preserved as extra fields.
    """

    model_config = ConfigDict(extra="allow", from_attributes=True)

    content: Optional[str] = None
    author: Optional[Author] = None
    guild_id: Optional[GuildId] = None
    channel_id: Optional[str] = None

    @field_validator("guild_id", "channel_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class MessageContext(BaseModel):
    """Payload delivered with message-created events.

    Accepts mappings or attribute-style objects of the same shape.
    """

    model_config = ConfigDict(extra="allow", from_attributes=True)

    message: Optional[Message] = None


class CommandOptions(BaseModel):
    """Per-command options. Only ``safe`` is consumed by dispatch."""

    model_config = ConfigDict(extra="allow")

    safe: bool = False
