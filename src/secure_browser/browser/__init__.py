"""
Browser Module

Playwright ownership for governed sessions.
"""

from .controller import BrowserConfig, BrowserController
from .session import Session, SessionState, generate_session_id

__all__ = [
    "BrowserController",
    "BrowserConfig",
    "Session",
    "SessionState",
    "generate_session_id",
]
