"""
Expiry Reaper

Background task that periodically asks the governor to close sessions
older than the policy timeout.
"""

import asyncio
import logging
from typing import Optional

from .governor import SessionGovernor

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60.0


class ExpiryReaper:
    """
    Periodic expiry sweep.

    A failing pass is logged and the reaper keeps running on its next tick.

    Usage:
        >>> reaper = ExpiryReaper(governor, interval=60)
        >>> reaper.start()
        >>> ...
        >>> await reaper.stop()
    """

    def __init__(self, governor: SessionGovernor, interval: float = DEFAULT_INTERVAL):
        if interval <= 0:
            raise ValueError("Reaper interval must be positive")
        self.governor = governor
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"Expiry reaper started (interval={self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("Expiry reaper stopped")

    async def run_once(self) -> list[str]:
        """Run one sweep. Errors are logged and an empty list returned."""
        try:
            closed = await self.governor.cleanup_expired()
        except Exception as e:
            logger.error(f"Expiry sweep failed: {e}", exc_info=True)
            return []
        if closed:
            logger.info(f"Expired {len(closed)} sessions")
        return closed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()
