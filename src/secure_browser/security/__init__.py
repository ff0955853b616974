"""
Security Module

Input validation and the process-wide security policy:
- SSRF checks on navigation targets
- Length and denylist checks on selectors, text and scripts
- Session id, timeout and attribute format checks
"""

from .policy import SecurityPolicy, load_policy
from .validation import (
    validate_attribute,
    validate_file_extension,
    validate_script,
    validate_scroll,
    validate_selector,
    validate_session_id,
    validate_tab_index,
    validate_text,
    validate_timeout,
    validate_url,
)

__all__ = [
    # Policy
    "SecurityPolicy",
    "load_policy",
    # Validation
    "validate_url",
    "validate_selector",
    "validate_text",
    "validate_script",
    "validate_session_id",
    "validate_timeout",
    "validate_attribute",
    "validate_file_extension",
    "validate_tab_index",
    "validate_scroll",
]
