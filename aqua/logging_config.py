"""Logging configuration for aqua.

Provides subsystem-level log file routing, secret sanitization,
and structlog + stdlib integration. Nothing here runs on import; the
host calls setup_logging() once at startup.

Logger tree (stdlib dotted names, structlog wraps them):
    aqua                 → aqua.log (combined) + stderr
      ├─ aqua.dispatch   → dispatch.log
      ├─ aqua.events     → events.log
      ├─ aqua.policy     → policy.log
      └─ aqua.transport  → transport.log

The root logger belongs to the host and is never modified.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

# Subsystem names; each gets its own RotatingFileHandler
SUBSYSTEMS = ("dispatch", "events", "policy", "transport")

# stdlib logger name prefix for hierarchy-based propagation
LOGGER_PREFIX = "aqua"

# ---------------------------------------------------------------------------
# Secret sanitization
# ---------------------------------------------------------------------------

_SECRET_PATTERNS = [
    # Discord-style bot tokens: base64 id . timestamp . hmac
    re.compile(r"[MNO][a-zA-Z0-9_-]{23,27}\.[a-zA-Z0-9_-]{6}\.[a-zA-Z0-9_-]{27,40}"),
    # Authorization header values
    re.compile(r"(?:Bot|Bearer)\s+[a-zA-Z0-9_./-]{20,}"),
    # Webhook tokens in URLs
    re.compile(r"(?<=/webhooks/)\d+/[a-zA-Z0-9_-]{20,}"),
]

_REDACTED = "***REDACTED***"


def _scrub_value(value: str) -> str:
    """Scrub secrets from a single string value."""
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that scrubs API tokens and webhook secrets.

    Walks all string values in the event dict (one level into lists,
    tuples and dicts) and replaces matches with a redacted placeholder.
    """
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _scrub_value(value)
        elif isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(
                _scrub_value(v) if isinstance(v, str) else v
                for v in value
            )
        elif isinstance(value, dict):
            event_dict[key] = {
                k: _scrub_value(v) if isinstance(v, str) else v
                for k, v in value.items()
            }
    return event_dict


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

_DEFAULT_MAX_BYTES = 10 * 1024 * 1024
_DEFAULT_BACKUP_COUNT = 5

_SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _level(name: Optional[str], default: int) -> int:
    """Resolve a level name like "debug"; unknown names give ``default``."""
    if not name:
        return default
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


def _formatter(colors: bool) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
    )


def setup_logging(config=None, *, console: bool = True) -> None:
    """Route aqua's structured logs to rotating files and the console.

    Hosts embedding aqua call this once at startup, normally as
    ``setup_logging(get_config())``. Only the ``aqua`` logger tree is
    touched; handlers the host installed on the root logger stay as they
    are. Each subsystem logger writes its own file and propagates to
    ``aqua``, which writes the combined aqua.log and, with ``console``,
    stderr. With ``console=False`` records also propagate to the root
    logger so the host's own handlers see them.

    Calling it again replaces the handlers from the previous call.

    Args:
        config: Config instance. Without one, INFO level and <repo>/logs
            are used and structlog loggers are not cached, so a later
            call with the real config takes effect everywhere.
        console: Write aqua records to stderr.
    """
    if config is not None:
        log_dir = Path(config.log_dir)
        base_level = _level(config.logging_level, logging.INFO)
        overrides = config.logging_subsystem_levels or {}
        max_bytes = config.logging_max_file_size_mb * 1024 * 1024
        backup_count = config.logging_backup_count
    else:
        log_dir = Path(__file__).parent.parent / "logs"
        base_level = logging.INFO
        overrides = {}
        max_bytes = _DEFAULT_MAX_BYTES
        backup_count = _DEFAULT_BACKUP_COUNT

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(
            f"WARNING: Cannot create log directory {log_dir}: {exc}. "
            "aqua will log to the console only.",
            file=sys.stderr,
        )
        log_dir = None

    levels: Dict[str, int] = {LOGGER_PREFIX: base_level}
    for subsystem in SUBSYSTEMS:
        levels[f"{LOGGER_PREFIX}.{subsystem}"] = _level(overrides.get(subsystem), base_level)

    for name, level in levels.items():
        std_logger = logging.getLogger(name)
        for handler in list(std_logger.handlers):
            handler.close()
            std_logger.removeHandler(handler)
        std_logger.setLevel(level)
        std_logger.propagate = name != LOGGER_PREFIX or not console
        if log_dir is None:
            continue
        # "aqua" -> aqua.log, "aqua.dispatch" -> dispatch.log
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{name.rpartition('.')[2]}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(_formatter(colors=False))
        std_logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(base_level)
        console_handler.setFormatter(_formatter(colors=sys.stderr.isatty()))
        logging.getLogger(LOGGER_PREFIX).addHandler(console_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sanitize_secrets,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=config is not None,
    )
