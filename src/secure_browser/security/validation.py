"""
Input Validation

Pure checks applied to every externally supplied parameter before it
reaches the automation engine. Each ``validate_*`` function returns
normally when the input is accepted and raises ValidationError or
SecurityError otherwise. No I/O, no side effects.

Rejection messages name the violated rule and never echo the payload.
"""

import ipaddress
import math
import re
from pathlib import PurePath
from typing import Optional, Union
from urllib.parse import unquote, urlsplit

import idna

from ..errors import SecurityError, ValidationError
from .policy import SecurityPolicy

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

DEFAULT_POLICY = SecurityPolicy()

SESSION_ID_PREFIX = "session-"
SESSION_ID_PATTERN = re.compile(r"^session-[0-9a-f]{32}$")

DEFAULT_TIMEOUT_MS = 30_000
MAX_TIMEOUT_MS = 5 * 60 * 1000

MAX_ATTRIBUTE_LENGTH = 100
ATTRIBUTE_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")

SCROLL_DIRECTIONS = ("up", "down", "left", "right")
MAX_SCROLL_DISTANCE = 100_000

# Denylisted script constructs
DANGEROUS_SCRIPT_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("require", re.compile(r"require\s*\(", re.IGNORECASE)),
    ("import", re.compile(r"import\s+", re.IGNORECASE)),
    ("dynamic import", re.compile(r"import\s*\(", re.IGNORECASE)),
    ("eval", re.compile(r"eval\s*\(", re.IGNORECASE)),
    ("Function constructor", re.compile(r"Function\s*\(", re.IGNORECASE)),
    ("setTimeout", re.compile(r"setTimeout\s*\(", re.IGNORECASE)),
    ("setInterval", re.compile(r"setInterval\s*\(", re.IGNORECASE)),
    ("XMLHttpRequest", re.compile(r"XMLHttpRequest", re.IGNORECASE)),
    ("fetch", re.compile(r"fetch\s*\(", re.IGNORECASE)),
    ("constructor access", re.compile(r"\.constructor\s*\(", re.IGNORECASE)),
    ("prototype access", re.compile(r"__proto__", re.IGNORECASE)),
    ("process access", re.compile(r"process\.", re.IGNORECASE)),
    ("child_process", re.compile(r"child_process", re.IGNORECASE)),
    ("filesystem access", re.compile(r"\bfs\.", re.IGNORECASE)),
    ("readFile", re.compile(r"readFile", re.IGNORECASE)),
    ("writeFile", re.compile(r"writeFile", re.IGNORECASE)),
)

_NUMERIC_LABEL = re.compile(r"^(0x[0-9a-f]*|[0-9]+)$", re.IGNORECASE)


def _parse_ipv4_number(part: str) -> int:
    if part.lower().startswith("0x"):
        return int(part[2:] or "0", 16)
    if len(part) > 1 and part.startswith("0"):
        if not re.fullmatch(r"[0-7]+", part):
            raise ValidationError("Invalid IP address")
        return int(part, 8)
    return int(part)


def _parse_ipv4_host(hostname: str) -> Optional[ipaddress.IPv4Address]:
    """
    Parse a hostname the way browsers do when its last label is numeric.

    Covers shorthand ("127.1"), integer ("2130706433"), hex and octal
    forms so that none of them slip past the range checks.
    """
    parts = hostname.split(".")
    if parts and parts[-1] == "":
        parts = parts[:-1]
    if not parts or not _NUMERIC_LABEL.match(parts[-1]):
        return None

    if len(parts) > 4 or any(not _NUMERIC_LABEL.match(p) for p in parts):
        raise ValidationError("Invalid IP address")

    numbers = [_parse_ipv4_number(p) for p in parts]
    if any(n > 255 for n in numbers[:-1]):
        raise ValidationError("Invalid IP address")
    if numbers[-1] >= 256 ** (5 - len(numbers)):
        raise ValidationError("Invalid IP address")

    value = numbers[-1]
    for index, number in enumerate(numbers[:-1]):
        value += number * 256 ** (3 - index)
    return ipaddress.IPv4Address(value)


def _parse_ip_host(hostname: str) -> Optional[IPAddress]:
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        if ":" in hostname:
            raise ValidationError("Invalid IP address") from None
        return _parse_ipv4_host(hostname)

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        return address.ipv4_mapped
    return address


def _normalize_host(hostname: str) -> str:
    """
    Reduce a URL host to the name the browser will resolve.

    Percent escapes are decoded and the host is UTS-46 mapped (full-width
    digits and dots become ASCII); remaining Unicode labels are converted
    to A-labels. The result is lowercase ASCII without a trailing dot.
    """
    host = unquote(hostname)
    if ":" not in host:
        try:
            host = idna.uts46_remap(host, std3_rules=False, transitional=False)
            host = ".".join(
                label if label.isascii() else idna.alabel(label).decode("ascii")
                for label in host.split(".")
            )
        except idna.IDNAError:
            raise ValidationError("Invalid URL format") from None

    host = host.rstrip(".").lower()
    if "%" in host or not host.isascii():
        raise ValidationError("Invalid URL format")
    return host


def _describe_network(network) -> str:
    if network.is_loopback:
        return "loopback addresses"
    if network.is_link_local:
        return "link-local addresses"
    if network.is_private:
        return f"private IP addresses ({network})"
    return f"blocked network ({network})"


def validate_url(url: str, policy: SecurityPolicy = DEFAULT_POLICY) -> None:
    """
    Reject URLs that are malformed or point into the host's internal network.

    Raises:
        ValidationError: not a string, not absolute, unparseable host or IP
        SecurityError: disallowed scheme, localhost, internal or blocked target
    """
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("URL must be a non-empty string")

    try:
        parsed = urlsplit(url.strip())
        hostname = parsed.hostname
        parsed.port
    except ValueError:
        raise ValidationError("Invalid URL format") from None

    scheme = parsed.scheme.lower()
    if not scheme:
        raise ValidationError("URL must be absolute (include a scheme)")

    if scheme == "file":
        raise SecurityError("Navigation to local files is not allowed")

    if scheme not in policy.allowed_protocols:
        raise SecurityError(
            f"Protocol '{scheme}:' not allowed. "
            f"Allowed protocols: {', '.join(p + ':' for p in policy.allowed_protocols)}"
        )

    hostname = _normalize_host(hostname or "")
    if not hostname:
        raise ValidationError("URL must include a hostname")

    if hostname == "localhost" or hostname.endswith(".localhost"):
        raise SecurityError("Navigation to localhost is not allowed")

    address = _parse_ip_host(hostname)
    if address is not None:
        for network in policy.networks:
            if address.version == network.version and address in network:
                raise SecurityError(
                    f"Navigation to {_describe_network(network)} is not allowed"
                )

    for domain in policy.blocked_domains:
        if hostname == domain or hostname.endswith(f".{domain}"):
            raise SecurityError("Navigation to a blocked domain is not allowed")


def validate_selector(selector: str, policy: SecurityPolicy = DEFAULT_POLICY) -> None:
    """
    Shallow denylist check on a selector; not a CSS parser.

    Raises:
        ValidationError: empty or longer than the policy maximum
        SecurityError: embedded script tag or javascript: marker
    """
    if not isinstance(selector, str) or not selector:
        raise ValidationError("Selector must be a non-empty string")

    if len(selector) > policy.max_selector_length:
        raise ValidationError(
            f"Selector too long (max {policy.max_selector_length} characters)"
        )

    lowered = selector.lower()
    if "<script" in lowered or "javascript:" in lowered:
        raise SecurityError("Selector contains potentially malicious content")


def validate_text(text: str, policy: SecurityPolicy = DEFAULT_POLICY) -> None:
    if not isinstance(text, str):
        raise ValidationError("Text must be a string")

    if len(text) > policy.max_text_length:
        raise ValidationError(f"Text too long (max {policy.max_text_length} characters)")


def validate_script(script: str, policy: SecurityPolicy = DEFAULT_POLICY) -> None:
    """
    Gate script execution.

    Fails closed whenever the policy disables execution (the default).
    When enabled, a fixed set of dangerous constructs is still refused.
    """
    if not policy.allow_javascript_execution:
        raise SecurityError("JavaScript execution is disabled by security policy")

    if not isinstance(script, str) or not script:
        raise ValidationError("Script must be a non-empty string")

    if len(script) > policy.max_script_length:
        raise ValidationError(
            f"Script too long (max {policy.max_script_length} characters)"
        )

    for label, pattern in DANGEROUS_SCRIPT_PATTERNS:
        if pattern.search(script):
            raise SecurityError(f"Script contains a disallowed pattern: {label}")


def validate_session_id(session_id: str) -> None:
    """Accept only identifiers in the generated ``session-<32 hex>`` format."""
    if not isinstance(session_id, str) or not session_id:
        raise ValidationError("Session ID must be a non-empty string")

    if not SESSION_ID_PATTERN.match(session_id):
        raise ValidationError("Invalid session ID format")


def validate_timeout(timeout: Optional[float]) -> int:
    """
    Validate an engine timeout in milliseconds.

    Returns:
        The timeout as an int, 30000 when unspecified
    """
    if timeout is None:
        return DEFAULT_TIMEOUT_MS

    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ValidationError("Timeout must be a number")

    if math.isnan(timeout):
        raise ValidationError("Timeout must be a number")

    if timeout < 0:
        raise ValidationError("Timeout must be non-negative")

    if timeout > MAX_TIMEOUT_MS:
        raise ValidationError("Timeout too large (max 5 minutes)")

    return int(timeout)


def validate_attribute(attribute: str) -> None:
    if not isinstance(attribute, str) or not attribute:
        raise ValidationError("Attribute must be a non-empty string")

    if len(attribute) > MAX_ATTRIBUTE_LENGTH:
        raise ValidationError("Attribute name too long")

    if not ATTRIBUTE_PATTERN.match(attribute):
        raise ValidationError("Invalid attribute name")


def validate_file_extension(path: str, policy: SecurityPolicy = DEFAULT_POLICY) -> None:
    if not isinstance(path, str) or not path:
        raise ValidationError("File path must be a non-empty string")

    extension = PurePath(path).suffix.lower()
    if extension not in policy.allowed_file_extensions:
        raise SecurityError(
            "File extension not allowed. Allowed extensions: "
            f"{', '.join(policy.allowed_file_extensions)}"
        )


def validate_tab_index(index: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int):
        raise ValidationError("Tab index must be an integer")
    if index < 0:
        raise ValidationError("Tab index must be non-negative")
    return index


def validate_scroll(direction: str, distance: int) -> None:
    if direction not in SCROLL_DIRECTIONS:
        raise ValidationError(
            f"Scroll direction must be one of: {', '.join(SCROLL_DIRECTIONS)}"
        )
    if isinstance(distance, bool) or not isinstance(distance, int):
        raise ValidationError("Scroll distance must be an integer")
    if not 0 < distance <= MAX_SCROLL_DISTANCE:
        raise ValidationError(f"Scroll distance must be between 1 and {MAX_SCROLL_DISTANCE}")
