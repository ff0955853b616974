"""
Session Registry

Authoritative map of session id -> Session. The only component that holds
sessions; everything else looks them up here by id.
"""

from __future__ import annotations

from typing import Optional

from ..browser.session import Session


class SessionRegistry:
    """
    Single source of truth for session existence.

    Ids are never reused: once removed, an id is retired for the lifetime
    of the registry.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._retired: set[str] = set()

    def insert(self, session: Session) -> None:
        if session.id in self._sessions or session.id in self._retired:
            raise ValueError("Session id already used")
        self._sessions[session.id] = session

    def get(self, session_id: str) -> Optional[Session]:
        """Return the session, or None when absent."""
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            self._retired.add(session_id)
        return session

    def list(self) -> list[Session]:
        """Point-in-time snapshot; safe to iterate while sessions change."""
        return list(self._sessions.values())

    def count(self) -> int:
        return len(self._sessions)

    def clear(self) -> list[Session]:
        removed = self.list()
        self._retired.update(self._sessions)
        self._sessions.clear()
        return removed

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
