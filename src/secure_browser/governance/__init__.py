"""
Session Governance

Creation limits, the session registry, lifecycle management, expiry
sweeps and audit events.
"""

from .audit import (
    AuditEvent,
    AuditSink,
    JsonlAuditSink,
    LoggingAuditSink,
    MultiAuditSink,
    create_audit_sink,
)
from .governor import SessionGovernor
from .rate_limiter import RateLimiter
from .reaper import ExpiryReaper
from .registry import SessionRegistry

__all__ = [
    "AuditEvent",
    "AuditSink",
    "LoggingAuditSink",
    "JsonlAuditSink",
    "MultiAuditSink",
    "create_audit_sink",
    "RateLimiter",
    "SessionRegistry",
    "SessionGovernor",
    "ExpiryReaper",
]
