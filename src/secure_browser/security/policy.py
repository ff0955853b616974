"""
Security Policy

Immutable configuration snapshot consulted by every validator and by the
session governor. Assembled once at startup by ``load_policy`` with the
precedence defaults < policy file < environment, rejecting unknown keys
and out-of-range values instead of coercing them.
"""

import ipaddress
import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import PolicyError

logger = logging.getLogger(__name__)

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

DEFAULT_BLOCKED_NETWORKS: tuple[str, ...] = (
    "0.0.0.0/8",
    "127.0.0.0/8",
    "10.0.0.0/8",
    "172.16.0.0/12",
    "192.168.0.0/16",
    "169.254.0.0/16",
    "::1/128",
    "fe80::/10",
    "fc00::/7",
)

DEFAULT_FILE_EXTENSIONS: tuple[str, ...] = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".pdf",
    ".txt",
    ".csv",
)

# Schemes that may never be allowed, whatever the policy file says
FORBIDDEN_SCHEMES = frozenset({"file", "javascript", "data", "chrome", "about"})

# Keys only the environment double opt-in may set
ENV_ONLY_KEYS = frozenset({"allow_javascript_execution"})

TRUE_VALUES = ("true", "1", "yes")


@lru_cache(maxsize=32)
def _parse_networks(cidrs: tuple[str, ...]) -> tuple[IPNetwork, ...]:
    return tuple(ipaddress.ip_network(cidr, strict=False) for cidr in cidrs)


class SecurityPolicy(BaseModel):
    """
    Read-only security limits.

    Frozen after construction so concurrent readers never observe a
    partially updated policy.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed_protocols: tuple[str, ...] = ("http", "https")
    blocked_domains: tuple[str, ...] = ()
    blocked_networks: tuple[str, ...] = DEFAULT_BLOCKED_NETWORKS

    max_selector_length: int = Field(default=500, ge=1, le=10_000)
    max_text_length: int = Field(default=50_000, ge=0, le=1_000_000)
    max_script_length: int = Field(default=10_000, ge=1, le=1_000_000)

    max_sessions: int = Field(default=10, ge=1, le=100)
    max_sessions_per_minute: int = Field(default=5, ge=1, le=1_000)
    max_sessions_per_hour: int = Field(default=20, ge=1, le=10_000)
    session_timeout: float = Field(default=30 * 60, gt=0, le=60 * 60, description="Seconds")

    allowed_file_extensions: tuple[str, ...] = DEFAULT_FILE_EXTENSIONS
    max_file_size: int = Field(default=50 * 1024 * 1024, ge=1, le=1024 * 1024 * 1024)

    allow_javascript_execution: bool = False

    @field_validator("allowed_protocols")
    @classmethod
    def _normalize_protocols(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        schemes = tuple(p.lower().rstrip(":") for p in value)
        if not schemes:
            raise ValueError("at least one protocol must be allowed")
        forbidden = sorted(set(schemes) & FORBIDDEN_SCHEMES)
        if forbidden:
            raise ValueError(f"protocols {forbidden} cannot be allowed")
        return schemes

    @field_validator("blocked_domains")
    @classmethod
    def _normalize_domains(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(d.strip().lower().lstrip(".") for d in value if d.strip())

    @field_validator("blocked_networks")
    @classmethod
    def _check_networks(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for cidr in value:
            try:
                ipaddress.ip_network(cidr, strict=False)
            except ValueError:
                raise ValueError("invalid CIDR range in blocked_networks") from None
        return value

    @field_validator("allowed_file_extensions")
    @classmethod
    def _normalize_extensions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(
            ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value
        )

    @model_validator(mode="after")
    def _check_rate_windows(self) -> "SecurityPolicy":
        if self.max_sessions_per_minute > self.max_sessions_per_hour:
            raise ValueError(
                "max_sessions_per_minute cannot exceed max_sessions_per_hour"
            )
        return self

    @property
    def networks(self) -> tuple[IPNetwork, ...]:
        """Parsed blocked networks."""
        return _parse_networks(self.blocked_networks)

    def summary(self) -> dict[str, Any]:
        """Operator-facing summary (used for the startup banner)."""
        return {
            "max_sessions": self.max_sessions,
            "max_sessions_per_minute": self.max_sessions_per_minute,
            "max_sessions_per_hour": self.max_sessions_per_hour,
            "session_timeout_s": self.session_timeout,
            "allowed_protocols": ", ".join(self.allowed_protocols),
            "blocked_domains": len(self.blocked_domains),
            "javascript_execution": self.allow_javascript_execution,
        }


def _format_errors(exc: PydanticValidationError) -> str:
    # Field location and reason only; the rejected input is never echoed
    parts = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"]) or "policy"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def _read_policy_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise PolicyError(f"Policy file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise PolicyError(f"Policy file is not valid JSON (line {e.lineno})") from None

    if not isinstance(data, dict):
        raise PolicyError("Policy file must contain a JSON object")

    env_only = sorted(ENV_ONLY_KEYS & data.keys())
    if env_only:
        raise PolicyError(
            f"{', '.join(env_only)} can only be enabled through the environment "
            "double opt-in"
        )
    return data


def _env_int(environ: Mapping[str, str], name: str) -> Optional[int]:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise PolicyError(f"{name} must be an integer") from None


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    max_sessions = _env_int(environ, "MAX_SESSIONS")
    if max_sessions is not None:
        overrides["max_sessions"] = max_sessions

    timeout_ms = _env_int(environ, "SESSION_TIMEOUT")
    if timeout_ms is not None:
        if not 0 < timeout_ms <= 3_600_000:
            raise PolicyError("SESSION_TIMEOUT must be between 1 and 3600000 milliseconds")
        overrides["session_timeout"] = timeout_ms / 1000.0

    per_minute = _env_int(environ, "MAX_SESSIONS_PER_MINUTE")
    if per_minute is not None:
        overrides["max_sessions_per_minute"] = per_minute

    per_hour = _env_int(environ, "MAX_SESSIONS_PER_HOUR")
    if per_hour is not None:
        overrides["max_sessions_per_hour"] = per_hour

    blocked = environ.get("BLOCKED_DOMAINS")
    if blocked:
        overrides["blocked_domains"] = tuple(d for d in blocked.split(",") if d.strip())

    allow_js = environ.get("ALLOW_JAVASCRIPT_EXECUTION", "").lower() in TRUE_VALUES
    acknowledged = environ.get("I_UNDERSTAND_THE_SECURITY_RISKS", "").lower() in TRUE_VALUES
    if allow_js and acknowledged:
        overrides["allow_javascript_execution"] = True
    elif allow_js or acknowledged:
        logger.warning(
            "JavaScript execution stays disabled: both ALLOW_JAVASCRIPT_EXECUTION "
            "and I_UNDERSTAND_THE_SECURITY_RISKS must be set to true"
        )

    return overrides


def load_policy(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SecurityPolicy:
    """
    Build the process-wide SecurityPolicy.

    Precedence: built-in defaults < JSON policy file < environment.

    Args:
        path: Optional JSON policy file
        environ: Environment mapping (default: os.environ)

    Returns:
        Frozen SecurityPolicy

    Raises:
        PolicyError: unknown keys, wrong types or out-of-range values
    """
    if environ is None:
        environ = os.environ

    merged: dict[str, Any] = {}
    if path is not None:
        merged.update(_read_policy_file(path))
    merged.update(_env_overrides(environ))

    try:
        policy = SecurityPolicy(**merged)
    except PydanticValidationError as e:
        raise PolicyError(f"Invalid security policy: {_format_errors(e)}") from None

    if policy.allow_javascript_execution:
        logger.warning("JavaScript execution is ENABLED for all sessions")

    return policy
