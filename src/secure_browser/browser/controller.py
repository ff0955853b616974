"""
Browser Controller

Owns the Playwright objects behind one session: the Playwright driver,
a Chromium browser, one context and its tabs. Also records network
traffic for the session when asked to.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Response,
    async_playwright,
)

from ..errors import EngineError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Per-session bound on captured network entries
MAX_NETWORK_LOG_ENTRIES = 1000


@dataclass
class BrowserConfig:
    """
    Launch options for a session's browser.
    """

    headless: bool = True

    # Viewport size
    viewport_width: int = 1280
    viewport_height: int = 720

    user_agent: str = DEFAULT_USER_AGENT

    # Default action timeout in ms
    default_timeout: int = 30000

    # Navigation timeout in ms
    navigation_timeout: int = 30000


class BrowserController:
    """
    Controls the Playwright objects of a single session.

    Provides:
    - Browser launch and guaranteed cleanup
    - Tab management with an active page
    - Optional network capture

    Usage:
        >>> engine = await BrowserController.launch(headless=True)
        >>> await engine.active_page.goto("https://example.com")
        >>> await engine.close()
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._pages: list[Page] = []
        self._active_page: Optional[Page] = None

        self._network_logging = False
        self._network_log: deque[dict[str, Any]] = deque(maxlen=MAX_NETWORK_LOG_ENTRIES)

    @property
    def active_page(self) -> Optional[Page]:
        return self._active_page

    @property
    def pages(self) -> list[Page]:
        return list(self._pages)

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise EngineError("Browser is not running")
        return self._context

    @property
    def network_logging_enabled(self) -> bool:
        return self._network_logging

    async def initialize(self) -> None:
        """
        Start Playwright, launch Chromium and open the first tab.

        Raises:
            EngineError: the browser could not be started (partial state is released)
        """
        if self._playwright is not None:
            return

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
            )
            self._context = await self._browser.new_context(
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
                user_agent=self.config.user_agent,
            )
            self._context.set_default_timeout(self.config.default_timeout)
            self._context.set_default_navigation_timeout(self.config.navigation_timeout)

            page = await self._context.new_page()
            self._pages.append(page)
            self._active_page = page
        except PlaywrightError as e:
            logger.error(f"Browser launch failed: {e}")
            try:
                await self.close()
            except EngineError:
                logger.debug("Cleanup after failed launch was incomplete")
            raise EngineError("Failed to launch browser") from e

    @classmethod
    async def launch(
        cls,
        headless: bool = True,
        config: Optional[BrowserConfig] = None,
    ) -> "BrowserController":
        """
        Factory method to create and initialize a controller.

        Args:
            headless: Run without a visible window
            config: Base launch options (headless is overridden)

        Returns:
            Initialized BrowserController instance
        """
        base = config or BrowserConfig()
        controller = cls(
            BrowserConfig(
                headless=headless,
                viewport_width=base.viewport_width,
                viewport_height=base.viewport_height,
                user_agent=base.user_agent,
                default_timeout=base.default_timeout,
                navigation_timeout=base.navigation_timeout,
            )
        )
        await controller.initialize()
        return controller

    def _tab(self, index: int) -> Page:
        if index < 0 or index >= len(self._pages):
            raise NotFoundError(f"Tab {index} not found")
        return self._pages[index]

    async def new_tab(self) -> int:
        """Open a tab (without switching to it) and return its index."""
        page = await self.context.new_page()
        self._pages.append(page)
        return len(self._pages) - 1

    async def switch_tab(self, index: int) -> Page:
        page = self._tab(index)
        await page.bring_to_front()
        self._active_page = page
        return page

    async def close_tab(self, index: int) -> None:
        """
        Close a tab. The first remaining tab becomes active if the active
        tab was closed.

        Raises:
            NotFoundError: no such tab
            ValidationError: it is the last tab of the session
        """
        page = self._tab(index)
        if len(self._pages) == 1:
            raise ValidationError("Cannot close the last tab in a session")

        await page.close()
        self._pages.remove(page)

        if self._active_page is page:
            self._active_page = self._pages[0]
            await self._active_page.bring_to_front()

    async def list_tabs(self) -> list[dict[str, Any]]:
        tabs = []
        for index, page in enumerate(self._pages):
            try:
                tabs.append(
                    {
                        "index": index,
                        "url": page.url,
                        "title": await page.title(),
                        "active": page is self._active_page,
                    }
                )
            except PlaywrightError:
                tabs.append(
                    {
                        "index": index,
                        "url": "error",
                        "title": "Error retrieving tab info",
                        "active": False,
                    }
                )
        return tabs

    def _on_response(self, response: Response) -> None:
        request = response.request
        self._network_log.append(
            {
                "url": response.url,
                "method": request.method,
                "status": response.status,
                "resourceType": request.resource_type,
                "headers": dict(response.headers),
                "timestamp": time.time(),
            }
        )

    def enable_network_logging(self) -> bool:
        """
        Start capturing responses for every tab of the context.

        Returns:
            False if capture was already active
        """
        if self._network_logging:
            return False
        self.context.on("response", self._on_response)
        self._network_logging = True
        return True

    def network_logs(self, include_headers: bool = False) -> list[dict[str, Any]]:
        entries = [dict(entry) for entry in self._network_log]
        if not include_headers:
            for entry in entries:
                entry["headers"] = {}
        return entries

    async def close(self) -> None:
        """
        Release every Playwright resource.

        All steps are attempted even if earlier ones fail.

        Raises:
            EngineError: at least one resource failed to close
        """
        failures: list[str] = []

        if self._context is not None:
            try:
                await self._context.close()
            except PlaywrightError as e:
                failures.append(f"context: {e}")
            self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                failures.append(f"browser: {e}")
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as e:
                failures.append(f"playwright: {e}")
            self._playwright = None

        self._pages.clear()
        self._active_page = None
        self._network_log.clear()
        self._network_logging = False

        if failures:
            raise EngineError(f"Browser release incomplete ({'; '.join(failures)})")
