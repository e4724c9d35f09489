"""Configuration management for aqua.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a Config object. Property getters provide safe access with
defaults for the access lists, command timing, message delivery and
logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import PolicySeed

logger = structlog.get_logger("aqua.dispatch")


class Config:
    """Central configuration manager for aqua.

    Loads settings.yaml and .env from the config directory. Lists are
    read once; AccessPolicy copies them at construction, so editing the
    file later has no effect on a running dispatcher.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = Path(config_dir)

        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"{filename} must contain a mapping",
                    setting_name=filename,
                    found=type(data).__name__,
                )
            return data
        return {}

    # --- Access lists ---

    def _seed(self, key: str) -> Any:
        value = self.settings.get(key)
        return {} if value is None else value

    @property
    def allow_list(self) -> Any:
        """Identities allowed to use commands ({id: true} or [id, ...])."""
        return self._seed("allow_list")

    @property
    def block_list(self) -> Any:
        return self._seed("block_list")

    @property
    def safe_list(self) -> Any:
        return self._seed("safe_list")

    @property
    def guild_blacklist(self) -> Any:
        return self._seed("guild_blacklist")

    @property
    def policy_seed(self) -> PolicySeed:
        """All four lists, validated.

        Raises:
            ConfigurationError: If a list is neither a mapping nor a list.
        """
        try:
            return PolicySeed(
                allow=self.allow_list,
                block=self.block_list,
                safe=self.safe_list,
                guild_blacklist=self.guild_blacklist,
            )
        except ValidationError as e:
            raise ConfigurationError(
                "access lists must be mappings or lists",
                setting_name="access_lists",
                errors=e.error_count(),
            ) from e

    # --- Commands ---

    @property
    def command_prefix(self) -> str:
        """Default prefix for new command groups (default ``--``)."""
        return self.settings.get("command_prefix") or "--"

    @property
    def debounce_seconds(self) -> float:
        """Per-command debounce window in seconds (default 1.0)."""
        return self.settings.get("debounce_seconds", 1.0)

    # --- Delivery ---

    @property
    def send_delay_seconds(self) -> float:
        """Delay before send_message delivers (default 1.0)."""
        return self.settings.get("send_delay_seconds", 1.0)

    @property
    def api_base_url(self) -> str:
        """Delivery API base URL. Env var AQUA_API_BASE_URL takes precedence."""
        return (
            os.environ.get("AQUA_API_BASE_URL")
            or self.settings.get("api_base_url", "https://discord.com/api/v9")
        )

    @property
    def api_token(self) -> str:
        """Delivery API token, read from AQUA_API_TOKEN only."""
        return os.environ.get("AQUA_API_TOKEN", "")

    @property
    def bot_webhook_url(self) -> Optional[str]:
        """Webhook used by send_bot_message (optional)."""
        return os.environ.get("AQUA_BOT_WEBHOOK_URL") or self.settings.get("bot_webhook_url")

    # --- Logging ---

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging", {})
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"dispatch": "DEBUG"}."""
        log_config = self.settings.get("logging", {})
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("backup_count", 5)

    def validate(self) -> None:
        """Validate critical settings at startup.

        Raises:
            ConfigurationError: On malformed access lists or
                negative timing values.
        """
        seed = self.policy_seed
        if not seed.allow:
            logger.warning("no_allowed_identities", msg="No command will ever fire")

        for key in ("debounce_seconds", "send_delay_seconds"):
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ConfigurationError(
                    f"{key} must be a non-negative number",
                    setting_name=key,
                    value=value,
                )

        prefix = self.settings.get("command_prefix")
        if prefix is not None and not isinstance(prefix, str):
            raise ConfigurationError(
                "command_prefix must be a string",
                setting_name="command_prefix",
                value=prefix,
            )


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def _reset_config() -> None:
    """Drop the global Config instance (for testing)."""
    global _config
    _config = None
