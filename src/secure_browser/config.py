"""
Configuration and Logging Setup

Provides centralized logging and server configuration for the secure
browser server. Reads LOG_LEVEL and server settings from environment
variables (a ``.env`` file is honored).

Logging always goes to stderr: stdout carries the MCP protocol stream.

Usage:
    from secure_browser.config import configure_logging, ServerConfig

    configure_logging()
    config = ServerConfig.from_env()
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import PolicyError

# Default configuration
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s: %(message)s"

# Valid log levels
VALID_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

TRUE_VALUES = ("true", "1", "yes")


def get_log_level(value: Optional[str] = None) -> int:
    """
    Resolve a log level name (default: LOG_LEVEL environment variable).

    Returns:
        Logging level constant (e.g., logging.INFO)
    """
    level_str = (value or os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()

    if level_str not in VALID_LEVELS:
        print(
            f"Warning: Invalid LOG_LEVEL '{level_str}'. "
            f"Valid values: {', '.join(VALID_LEVELS.keys())}. "
            f"Using {DEFAULT_LOG_LEVEL}.",
            file=sys.stderr,
        )
        return VALID_LEVELS[DEFAULT_LOG_LEVEL]

    return VALID_LEVELS[level_str]


def configure_logging(
    level: Optional[int] = None,
    verbose: bool = False,
) -> None:
    """
    Configure logging for the server.

    Should be called once at startup, before sessions are created.

    Args:
        level: Override log level (default: from LOG_LEVEL env var)
        verbose: Use detailed format with timestamps (default: simple format)
    """
    if level is None:
        level = get_log_level()

    log_format = LOG_FORMAT if verbose else LOG_FORMAT_SIMPLE

    logging.basicConfig(
        level=level,
        format=log_format,
        stream=sys.stderr,
        force=True,
    )

    logging.getLogger("secure_browser").setLevel(level)

    # Quiet noisy third-party loggers in non-debug mode
    if level > logging.DEBUG:
        logging.getLogger("playwright").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)
        logging.getLogger("mcp").setLevel(logging.WARNING)


def _env_int(environ: Mapping[str, str], name: str, default: int, minimum: int, maximum: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise PolicyError(f"{name} must be an integer") from None
    if not minimum <= value <= maximum:
        raise PolicyError(f"{name} must be between {minimum} and {maximum}")
    return value


@dataclass
class ServerConfig:
    """
    Process plumbing settings (storage paths, reaper period, browser defaults).

    Security limits live in SecurityPolicy, not here.
    """

    # Encrypted cookie storage root
    cookie_storage_dir: Path = field(default_factory=lambda: Path(".cookie-storage"))

    # Master secret for cookie encryption (None disables cookie persistence)
    cookie_encryption_key: Optional[str] = None

    # Optional JSONL audit log directory
    audit_log_dir: Optional[Path] = None

    # Expiry reaper period in seconds
    cleanup_interval: float = 60.0

    # Optional JSON policy file
    policy_file: Optional[Path] = None

    # Browser defaults
    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 720

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create ServerConfig from environment variables.

        Environment variables:
            COOKIE_STORAGE_DIR: path (default: .cookie-storage)
            COOKIE_ENCRYPTION_KEY: master secret, at least 32 characters
            AUDIT_LOG_DIR: path (default: unset, audit goes to logging only)
            CLEANUP_INTERVAL: reaper period in seconds (default: 60)
            SECURITY_POLICY_FILE: JSON policy file (default: unset)
            BROWSER_HEADLESS: true/false (default: true)
            BROWSER_VIEWPORT_WIDTH / BROWSER_VIEWPORT_HEIGHT: int
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        audit_dir = environ.get("AUDIT_LOG_DIR")
        policy_file = environ.get("SECURITY_POLICY_FILE")

        return cls(
            cookie_storage_dir=Path(environ.get("COOKIE_STORAGE_DIR", ".cookie-storage")),
            cookie_encryption_key=environ.get("COOKIE_ENCRYPTION_KEY") or None,
            audit_log_dir=Path(audit_dir) if audit_dir else None,
            cleanup_interval=float(_env_int(environ, "CLEANUP_INTERVAL", 60, 1, 3600)),
            policy_file=Path(policy_file) if policy_file else None,
            headless=environ.get("BROWSER_HEADLESS", "true").lower() in TRUE_VALUES,
            viewport_width=_env_int(environ, "BROWSER_VIEWPORT_WIDTH", 1280, 200, 7680),
            viewport_height=_env_int(environ, "BROWSER_VIEWPORT_HEIGHT", 720, 200, 4320),
        )
