"""
Error Taxonomy

Classified errors raised by the session governance layer. The tool layer
maps each class onto a structured error result via ``error_type``.
"""


class BrowserSecurityBaseError(Exception):
    """Base class for all classified errors."""

    error_type = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.error_type)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(BrowserSecurityBaseError):
    """Malformed or out-of-range caller input. Always caller-correctable."""

    error_type = "validation_error"


class PolicyError(ValidationError):
    """Invalid security policy or server configuration at load time."""

    error_type = "policy_error"


class SecurityError(BrowserSecurityBaseError):
    """Input rejected on policy grounds (SSRF target, quota, disabled feature)."""

    error_type = "security_error"


class NotFoundError(BrowserSecurityBaseError):
    """Referenced session (or tab) no longer exists."""

    error_type = "not_found"


class EngineError(BrowserSecurityBaseError):
    """The underlying automation engine failed (timeout, crash, missing element)."""

    error_type = "engine_error"


class StorageError(BrowserSecurityBaseError):
    """Durable storage is unavailable for a whole operation."""

    error_type = "storage_error"
