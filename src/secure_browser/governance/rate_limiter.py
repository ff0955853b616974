"""
Session Creation Rate Limiter

Sliding one-minute and one-hour windows over session-creation timestamps.
Bounds how fast browser processes can be spawned, independent of the
concurrent-session ceiling enforced by the governor.
"""

import logging
import time
from collections import deque
from typing import Callable

from ..errors import SecurityError
from ..security.policy import SecurityPolicy

logger = logging.getLogger(__name__)

MINUTE = 60.0
HOUR = 60.0 * 60.0


class RateLimiter:
    """
    Sliding-window counter for session creation.

    ``check_and_reserve`` only inspects the windows; the caller records the
    event with ``record`` once the session actually exists, so a failed
    creation never consumes quota.
    """

    def __init__(
        self,
        policy: SecurityPolicy,
        clock: Callable[[], float] = time.time,
    ):
        self.policy = policy
        self._clock = clock
        self._events: deque[float] = deque()

    def _purge(self, now: float) -> None:
        cutoff = now - HOUR
        while self._events and self._events[0] <= cutoff:
            self._events.popleft()

    def usage(self) -> dict[str, int]:
        """Current creation counts per window."""
        now = self._clock()
        self._purge(now)
        minute_cutoff = now - MINUTE
        last_minute = sum(1 for ts in self._events if ts > minute_cutoff)
        return {"last_minute": last_minute, "last_hour": len(self._events)}

    def check_and_reserve(self) -> None:
        """
        Fail if another session creation would exceed either window.

        Raises:
            SecurityError: minute or hour ceiling already reached
        """
        usage = self.usage()

        if usage["last_minute"] >= self.policy.max_sessions_per_minute:
            logger.warning("Session creation rate limit reached (per minute)")
            raise SecurityError(
                "Rate limit exceeded: maximum "
                f"{self.policy.max_sessions_per_minute} sessions per minute"
            )

        if usage["last_hour"] >= self.policy.max_sessions_per_hour:
            logger.warning("Session creation rate limit reached (per hour)")
            raise SecurityError(
                "Rate limit exceeded: maximum "
                f"{self.policy.max_sessions_per_hour} sessions per hour"
            )

    def record(self) -> None:
        """Record one successful session creation."""
        now = self._clock()
        self._purge(now)
        self._events.append(now)
