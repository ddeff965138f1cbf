"""
ladder/config.py - Bot configuration

Reads config from a platform-appropriate config directory:
  - macOS/Linux: ~/.ladderbot/config.toml
  - Windows: %APPDATA%\\ladderbot\\config.toml

Every section is optional; anything missing falls back to the defaults below.

Example:
    [server]
    host = "0.0.0.0"
    port = 8000

    [store]
    path = "~/.ladderbot/ladder.db"

    [defaults]
    challenge_mode = "pyramid"
    challenge_timeout_days = 5

    [chat]
    prefix = "!"

    [logging]
    level = "DEBUG"
"""

import logging
import os
import sys
import tomllib
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from .challenges import normalize_mode
from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)

# ============================================================================
# Constants
# ============================================================================


def _get_config_dir() -> Path:
    """Get platform-appropriate config directory."""
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "ladderbot"
    return Path.home() / ".ladderbot"


CONFIG_DIR = _get_config_dir()
CONFIG_PATH = CONFIG_DIR / "config.toml"

DEFAULT_DB_PATH = "ladder.db"
DEFAULT_PORT = 8000

# Environment overrides, applied by the server at startup
ENV_DB_PATH = "LADDERBOT_DB"
ENV_LOG_LEVEL = "LADDERBOT_LOG_LEVEL"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ============================================================================
# Data Types
# ============================================================================


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT


@dataclass
class ChannelDefaults:
    """Settings seeded into every newly initialized channel."""

    challenge_mode: str = "ladder"
    challenge_timeout_days: int = 7

    @property
    def challenge_timeout(self) -> timedelta:
        return timedelta(days=self.challenge_timeout_days)


@dataclass
class LadderConfig:
    """Top-level configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    db_path: str = DEFAULT_DB_PATH
    defaults: ChannelDefaults = field(default_factory=ChannelDefaults)
    command_prefix: str = "!"
    log_level: str = "INFO"

    def apply_env(self, environ: dict[str, str] | None = None) -> "LadderConfig":
        """Let LADDERBOT_DB / LADDERBOT_LOG_LEVEL override the file."""
        environ = os.environ if environ is None else environ
        if environ.get(ENV_DB_PATH):
            self.db_path = _expand(environ[ENV_DB_PATH])
        if environ.get(ENV_LOG_LEVEL):
            self.log_level = _parse_log_level(environ[ENV_LOG_LEVEL])
        return self


# ============================================================================
# Parsing
# ============================================================================


def _expand(path: str) -> str:
    """Expand ~ in a path string. ':memory:' passes through."""
    if path == ":memory:":
        return path
    return str(Path(path).expanduser())


def _section(raw: dict, name: str) -> dict:
    data = raw.get(name, {})
    return data if isinstance(data, dict) else {}


def _parse_log_level(value) -> str:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        logger.warning(f"Ignoring log level {value!r}, using INFO")
        return "INFO"
    return level


def _parse_defaults(data: dict) -> ChannelDefaults:
    """Parse [defaults], falling back per key on bad values."""
    defaults = ChannelDefaults()

    mode = data.get("challenge_mode")
    if mode is not None:
        try:
            defaults.challenge_mode = normalize_mode(str(mode))
        except InvalidArgumentError as e:
            logger.warning(f"Ignoring [defaults] challenge_mode: {e}")

    days = data.get("challenge_timeout_days")
    if days is not None:
        if isinstance(days, int) and days >= 1:
            defaults.challenge_timeout_days = days
        else:
            logger.warning(f"Ignoring [defaults] challenge_timeout_days={days!r}, need a positive integer")

    return defaults


def load_config(path: Path | None = None) -> LadderConfig:
    """
    Read config from TOML file.

    Args:
        path: Override config file path (default: ~/.ladderbot/config.toml)

    Returns:
        LadderConfig. Missing file or bad TOML returns defaults.
    """
    config_path = path or CONFIG_PATH

    if not config_path.exists():
        return LadderConfig()

    try:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)
    except Exception as e:
        logger.warning(f"Failed to parse {config_path}: {e}")
        return LadderConfig()

    server_data = _section(raw, "server")
    server = ServerConfig(
        host=server_data.get("host", ServerConfig.host),
        port=server_data.get("port", DEFAULT_PORT),
    )

    store_data = _section(raw, "store")
    chat_data = _section(raw, "chat")
    logging_data = _section(raw, "logging")

    return LadderConfig(
        server=server,
        db_path=_expand(store_data.get("path", DEFAULT_DB_PATH)),
        defaults=_parse_defaults(_section(raw, "defaults")),
        command_prefix=chat_data.get("prefix", "!") or "!",
        log_level=_parse_log_level(logging_data.get("level", "INFO")),
    )
