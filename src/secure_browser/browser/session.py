"""
Browser Session

One isolated automation context: an unguessable id, its creation time and
exclusive ownership of a BrowserController (browser, context, tabs).
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from ..security.validation import SESSION_ID_PREFIX

if TYPE_CHECKING:
    from playwright.async_api import Page

    from .controller import BrowserController


class SessionState(Enum):
    """Lifecycle states. Transitions only move forward."""

    CREATING = "creating"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


_ORDER = {
    SessionState.CREATING: 0,
    SessionState.ACTIVE: 1,
    SessionState.CLOSING: 2,
    SessionState.CLOSED: 3,
}


def generate_session_id() -> str:
    """Return a fresh ``session-<32 lowercase hex>`` identifier."""
    return f"{SESSION_ID_PREFIX}{secrets.token_hex(16)}"


@dataclass(eq=False)
class Session:
    """
    A governed browser session.

    The engine handle is owned exclusively by the session; other components
    reach it through the registry by id and never keep their own reference.
    """

    id: str
    created_at: float
    engine: "BrowserController"
    state: SessionState = SessionState.CREATING
    headless: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def active_page(self) -> Optional["Page"]:
        """Page targeted by tool calls."""
        return self.engine.active_page

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def created_at_iso(self) -> str:
        return datetime.fromtimestamp(self.created_at, tz=timezone.utc).isoformat()

    def advance(self, state: SessionState) -> None:
        """Move to a later lifecycle state."""
        if _ORDER[state] < _ORDER[self.state]:
            raise ValueError(
                f"Invalid session transition {self.state.value} -> {state.value}"
            )
        self.state = state

    def age(self, now: float) -> float:
        return now - self.created_at
