"""
Session Governor

Owns the lifecycle of every browser session: creation under rate and
capacity limits, guaranteed closure, expiry sweeps and the cookie
operations that touch a session's live context.

All shared state (registry, rate windows, the creation flag) is mutated
only between suspension points of the single event loop, so the creation
flag is a plain boolean rather than a lock object.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from playwright.async_api import Error as PlaywrightError

from ..browser.controller import BrowserController
from ..browser.session import Session, SessionState, generate_session_id
from ..errors import EngineError, NotFoundError, SecurityError
from ..security.policy import SecurityPolicy
from ..security.validation import validate_session_id
from ..vault.cookies import CredentialVault
from .audit import AuditEvent, AuditLevel, AuditSink, LoggingAuditSink
from .rate_limiter import RateLimiter
from .registry import SessionRegistry

logger = logging.getLogger(__name__)

EngineFactory = Callable[[bool], Awaitable[BrowserController]]

# Attributes reported by get_cookies; values are never exposed
COOKIE_DISPLAY_FIELDS = ("name", "domain", "path", "expires", "httpOnly", "secure", "sameSite")


class SessionGovernor:
    """
    Governs session creation, closure and expiry.

    Collaborators are injected so tests can supply fake engines, clocks and
    sinks.

    Args:
        policy: Immutable security policy
        registry: Session store (created if omitted)
        rate_limiter: Creation rate windows (created from policy if omitted)
        vault: Cookie vault; cookie operations fail when it is None
        audit: Audit sink (logging sink if omitted)
        engine_factory: ``async (headless) -> BrowserController``
        clock: Wall-clock source in epoch seconds
        default_headless: Headless flag used when a caller does not choose
    """

    def __init__(
        self,
        policy: Optional[SecurityPolicy] = None,
        registry: Optional[SessionRegistry] = None,
        rate_limiter: Optional[RateLimiter] = None,
        vault: Optional[CredentialVault] = None,
        audit: Optional[AuditSink] = None,
        engine_factory: Optional[EngineFactory] = None,
        clock: Callable[[], float] = time.time,
        default_headless: bool = True,
    ):
        self.policy = policy or SecurityPolicy()
        self.registry = registry or SessionRegistry()
        self.rate_limiter = rate_limiter or RateLimiter(self.policy, clock=clock)
        self.vault = vault
        self.audit = audit or LoggingAuditSink()
        self._engine_factory = engine_factory or BrowserController.launch
        self._clock = clock
        self.default_headless = default_headless

        self._creating = False
        self._closing: dict[str, asyncio.Task] = {}
        self._cleanup_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Audit helpers
    # ------------------------------------------------------------------

    def record_event(
        self,
        action: str,
        session_id: Optional[str] = None,
        level: AuditLevel = "info",
        **details: Any,
    ) -> None:
        """Send one audit event to the configured sink."""
        self.audit.emit(
            AuditEvent(
                action=action,
                level=level,
                session_id=session_id,
                details=details,
                timestamp=self._clock(),
            )
        )

    @asynccontextmanager
    async def _operation(
        self, name: str, session_id: Optional[str] = None
    ) -> AsyncIterator[None]:
        start = time.perf_counter()
        success = False
        try:
            yield
            success = True
        finally:
            self.record_event(
                "operation",
                session_id,
                level="debug" if success else "warn",
                operation=name,
                success=success,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def creation_in_progress(self) -> bool:
        return self._creating

    async def create(self, headless: bool = True) -> str:
        """
        Create a session under the rate and capacity limits.

        Only one creation may be in flight; a concurrent call fails instead
        of queuing. Nothing is registered unless every step succeeds.

        Returns:
            The new session id

        Raises:
            SecurityError: creation in progress, rate limit or capacity reached
            EngineError: the browser could not be launched
        """
        async with self._operation("create_session"):
            return await self._create(headless)

    async def _create(self, headless: bool) -> str:
        if self._creating:
            self.record_event("creation_in_progress", level="warn")
            raise SecurityError("Session creation in progress, retry shortly")

        # No await between the check above and this assignment
        self._creating = True
        try:
            try:
                self.rate_limiter.check_and_reserve()
            except SecurityError:
                self.record_event("rate_limited", level="warn", **self.rate_limiter.usage())
                raise

            if self.registry.count() >= self.policy.max_sessions:
                self.record_event(
                    "session_limit_reached",
                    level="warn",
                    max_sessions=self.policy.max_sessions,
                )
                raise SecurityError(
                    "Security policy: maximum number of sessions reached "
                    f"({self.policy.max_sessions})"
                )

            engine = await self._engine_factory(headless)
            session = Session(
                id=generate_session_id(),
                created_at=self._clock(),
                engine=engine,
                headless=headless,
            )

            try:
                self.registry.insert(session)
            except ValueError as e:
                await self._release(session)
                raise EngineError("Failed to register session") from e

            session.advance(SessionState.ACTIVE)
            self.rate_limiter.record()
        finally:
            self._creating = False

        logger.info(f"Session {session.id} created (headless={headless})")
        self.record_event("session_created", session.id, headless=headless)
        return session.id

    async def _release(self, session: Session) -> bool:
        """Best-effort engine release. Failures are logged, never raised."""
        try:
            await session.engine.close()
        except Exception as e:
            logger.warning(f"Failed to release browser for {session.id}: {e!r}")
            self.record_event("session_close_failed", session.id, level="error", error=str(e))
            return False
        return True

    async def close(self, session_id: str) -> bool:
        """
        Close a session. Closing an absent session is a no-op.

        Concurrent calls for the same id share one in-flight closure.

        Returns:
            True if this call (or the closure it joined) closed the session
        """
        validate_session_id(session_id)

        task = self._closing.get(session_id)
        if task is None:
            if session_id not in self.registry:
                return False
            task = asyncio.ensure_future(self._close(session_id))
            self._closing[session_id] = task
            task.add_done_callback(lambda _: self._closing.pop(session_id, None))

        # A cancelled caller must not cancel the closure it joined
        return await asyncio.shield(task)

    async def _close(self, session_id: str) -> bool:
        session = self.registry.get(session_id)
        if session is None:
            return False

        session.advance(SessionState.CLOSING)
        released = False
        try:
            released = await self._release(session)
        finally:
            self.registry.remove(session_id)
            session.advance(SessionState.CLOSED)

        logger.info(f"Session {session_id} closed")
        self.record_event("session_closed", session_id, released=released)
        return True

    async def close_all(self) -> dict[str, int]:
        """
        Close every session concurrently. One failure never aborts the
        others; the registry is empty afterwards.

        Returns:
            ``{"closed": n, "failed": m}``
        """
        async with self._operation("close_all_sessions"):
            ids = [session.id for session in self.registry.list()]
            results = await asyncio.gather(
                *(self.close(session_id) for session_id in ids),
                return_exceptions=True,
            )

            failed = 0
            for session_id, result in zip(ids, results):
                if isinstance(result, BaseException):
                    failed += 1
                    logger.error(f"Failed to close session {session_id}: {result}")

            for leftover in self.registry.clear():
                logger.warning(f"Dropped session {leftover.id} from registry")

            return {"closed": len(ids) - failed, "failed": failed}

    async def cleanup_expired(self) -> list[str]:
        """
        Close sessions older than the policy timeout.

        A call made while a pass is running awaits that pass instead of
        starting another.

        Returns:
            Ids closed by the pass
        """
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.ensure_future(self._cleanup_pass())
        return await asyncio.shield(self._cleanup_task)

    async def _cleanup_pass(self) -> list[str]:
        now = self._clock()
        expired = [
            session
            for session in self.registry.list()
            if session.age(now) > self.policy.session_timeout
        ]
        if not expired:
            return []

        logger.info(f"Closing {len(expired)} expired sessions")
        results = await asyncio.gather(
            *(self.close(session.id) for session in expired),
            return_exceptions=True,
        )

        closed = []
        for session, result in zip(expired, results):
            if isinstance(result, BaseException):
                logger.error(f"Failed to close expired session {session.id}: {result}")
                continue
            if result is not True:
                continue
            closed.append(session.id)
            self.record_event(
                "session_expired",
                session.id,
                age_seconds=round(session.age(now), 1),
            )
        return closed

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_session(self, session_id: str) -> Session:
        """
        Resolve an active session.

        Raises:
            ValidationError: malformed id
            NotFoundError: no such active session
        """
        validate_session_id(session_id)
        session = self.registry.get(session_id)
        if session is None or not session.is_active:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    async def list_sessions(self) -> list[dict[str, Any]]:
        """Describe every session: ``[{id, createdAt, url, title}]``."""
        sessions = []
        for session in self.registry.list():
            page = session.active_page
            url, title = "", ""
            if page is not None:
                url = page.url
                try:
                    title = await page.title()
                except PlaywrightError as e:
                    logger.debug(f"Could not read title for {session.id}: {e}")
            sessions.append(
                {
                    "id": session.id,
                    "createdAt": session.created_at_iso,
                    "url": url,
                    "title": title,
                }
            )
        return sessions

    # ------------------------------------------------------------------
    # Cookies
    # ------------------------------------------------------------------

    def _require_vault(self) -> CredentialVault:
        if self.vault is None:
            raise SecurityError(
                "Cookie storage is disabled: COOKIE_ENCRYPTION_KEY is not configured"
            )
        return self.vault

    async def save_cookies(self, session_id: str) -> int:
        """Encrypt and persist the session's current cookies."""
        async with self._operation("save_cookies", session_id):
            session = self.get_session(session_id)
            vault = self._require_vault()

            try:
                cookies = await session.engine.context.cookies()
            except PlaywrightError as e:
                raise EngineError("Failed to read cookies from browser") from e

            count = await vault.save(session_id, cookies)
            self.record_event(
                "cookie_saved",
                session_id,
                count=count,
                domains=sorted({c.get("domain", "") for c in cookies}),
            )
            return count

    async def load_cookies(self, session_id: str, domain: Optional[str] = None) -> int:
        """
        Restore stored cookies into the session's context.

        Returns:
            Number of cookies injected
        """
        async with self._operation("load_cookies", session_id):
            session = self.get_session(session_id)
            vault = self._require_vault()

            def report_failure(record_domain: str, reason: str) -> None:
                self.record_event(
                    "cookie_load_failed",
                    session_id,
                    level="warn",
                    domain=record_domain,
                    reason=reason,
                )

            cookies = await vault.load(session_id, domain, on_failure=report_failure)
            if cookies:
                try:
                    await session.engine.context.add_cookies(cookies)
                except PlaywrightError as e:
                    raise EngineError("Failed to restore cookies into browser") from e

            self.record_event("cookie_loaded", session_id, count=len(cookies), domain=domain)
            return len(cookies)

    async def clear_cookies(self, session_id: str) -> bool:
        """
        Remove stored records and empty the live cookie jar.

        Returns:
            True if stored records existed
        """
        async with self._operation("clear_cookies", session_id):
            session = self.get_session(session_id)
            vault = self._require_vault()

            removed = await vault.clear(session_id)
            try:
                await session.engine.context.clear_cookies()
            except PlaywrightError as e:
                raise EngineError("Failed to clear browser cookies") from e

            self.record_event("cookie_cleared", session_id, stored_records_removed=removed)
            return removed

    async def get_cookies(
        self, session_id: str, urls: Optional[list[str]] = None
    ) -> list[dict[str, Any]]:
        """Live cookie attributes for display. Values are never included."""
        async with self._operation("get_cookies", session_id):
            session = self.get_session(session_id)
            try:
                if urls:
                    cookies = await session.engine.context.cookies(urls)
                else:
                    cookies = await session.engine.context.cookies()
            except PlaywrightError as e:
                raise EngineError("Failed to read cookies from browser") from e

            return [
                {key: cookie.get(key) for key in COOKIE_DISPLAY_FIELDS}
                for cookie in cookies
            ]

    async def list_saved_cookies(self, session_id: str) -> list[dict[str, Any]]:
        """Summaries of stored records (domains and names only)."""
        validate_session_id(session_id)
        vault = self._require_vault()
        return await vault.list_records(session_id)
