"""Access-control lists for command dispatch.

Four independent membership sets gate every command invocation:

    allow            identities that may trigger commands at all
    block            identities explicitly denied (checked after allow)
    safe             identities that may trigger commands flagged ``safe``
    guild_blacklist  guilds in which no command fires

Membership checks are plain set lookups. Mutations are single
insert/discard operations, so readers on the same event loop never
observe a half-applied update.
"""

from typing import TYPE_CHECKING, Any, Optional, Set

import structlog

from .models import PolicySeed, SeedCollection, normalize_members

if TYPE_CHECKING:
    from .config import Config

logger = structlog.get_logger("aqua.policy")


def _mask(identity: str) -> str:
    """Mask an identity for log privacy, keeping the last 4 chars."""
    return "..." + identity[-4:]


class AccessPolicy:
    """Allow/Block/Safe/GuildBlacklist membership sets.

    Args:
        allow: Seed for the allow list.
        block: Seed for the block list.
        safe: Seed for the safe list.
        guild_blacklist: Seed for the guild blacklist.

    Each seed is a mapping of key -> truthy value or an iterable of keys.
    """

    def __init__(
        self,
        allow: SeedCollection = None,
        block: SeedCollection = None,
        safe: SeedCollection = None,
        guild_blacklist: SeedCollection = None,
    ):
        self.allow: Set[str] = set(normalize_members(allow))
        self.block: Set[str] = set(normalize_members(block))
        self.safe: Set[str] = set(normalize_members(safe))
        self.guild_blacklist: Set[str] = set(normalize_members(guild_blacklist))

    @classmethod
    def from_seed(cls, seed: Optional[PolicySeed]) -> "AccessPolicy":
        """Build a policy from a validated PolicySeed."""
        if seed is None:
            return cls()
        return cls(
            allow=seed.allow,
            block=seed.block,
            safe=seed.safe,
            guild_blacklist=seed.guild_blacklist,
        )

    @classmethod
    def from_config(cls, config: "Config") -> "AccessPolicy":
        """Build a policy from the lists in settings.yaml."""
        policy = cls.from_seed(config.policy_seed)
        logger.info(
            "access_policy_loaded",
            allow=len(policy.allow),
            block=len(policy.block),
            safe=len(policy.safe),
            guild_blacklist=len(policy.guild_blacklist),
        )
        return policy

    # --- Queries ---

    def is_blacklisted(self, guild_id: Any) -> bool:
        return str(guild_id) in self.guild_blacklist

    def is_blocked(self, identity: Any) -> bool:
        return str(identity) in self.block

    def is_safe(self, identity: Any) -> bool:
        return str(identity) in self.safe

    def is_allowed(self, identity: Any) -> bool:
        return str(identity) in self.allow

    # --- Mutation ---

    def allow_identity(self, identity: Any) -> None:
        """Add an identity to the allow list."""
        identity = str(identity)
        self.allow.add(identity)
        logger.info("identity_allowed", identity=_mask(identity))

    def revoke_identity(self, identity: Any) -> None:
        """Remove an identity from the allow list."""
        identity = str(identity)
        self.allow.discard(identity)
        logger.info("identity_revoked", identity=_mask(identity))

    def block_identity(self, identity: Any) -> None:
        identity = str(identity)
        self.block.add(identity)
        logger.info("identity_blocked", identity=_mask(identity))

    def unblock_identity(self, identity: Any) -> None:
        identity = str(identity)
        self.block.discard(identity)
        logger.info("identity_unblocked", identity=_mask(identity))

    def mark_safe(self, identity: Any) -> None:
        identity = str(identity)
        self.safe.add(identity)
        logger.info("identity_marked_safe", identity=_mask(identity))

    def unmark_safe(self, identity: Any) -> None:
        identity = str(identity)
        self.safe.discard(identity)
        logger.info("identity_unmarked_safe", identity=_mask(identity))

    def blacklist_guild(self, guild_id: Any) -> None:
        guild_id = str(guild_id)
        self.guild_blacklist.add(guild_id)
        logger.info("guild_blacklisted", guild_id=guild_id)

    def unblacklist_guild(self, guild_id: Any) -> None:
        guild_id = str(guild_id)
        self.guild_blacklist.discard(guild_id)
        logger.info("guild_unblacklisted", guild_id=guild_id)

    def snapshot(self) -> PolicySeed:
        """Return a copy of the current membership as a PolicySeed."""
        return PolicySeed(
            allow=sorted(self.allow),
            block=sorted(self.block),
            safe=sorted(self.safe),
            guild_blacklist=sorted(self.guild_blacklist),
        )

    def __repr__(self) -> str:
        return (
            f"AccessPolicy(allow={len(self.allow)}, block={len(self.block)}, "
            f"safe={len(self.safe)}, guild_blacklist={len(self.guild_blacklist)})"
        )
