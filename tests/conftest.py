"""
Shared fixtures: a manual clock, fake browser engines and a recording
audit sink, so governance logic can be tested without launching Chromium.
"""

import asyncio
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from secure_browser.errors import EngineError
from secure_browser.governance.audit import AuditEvent


class FakeClock:
    """Manually advanced clock (epoch seconds)."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeEngine:
    """Stands in for BrowserController."""

    def __init__(self, fail_close: bool = False, close_gate: Optional[asyncio.Event] = None):
        self.fail_close = fail_close
        self.close_gate = close_gate
        self.close_calls = 0
        self.closed = False

        self.active_page = MagicMock()
        self.active_page.url = "https://example.com/"
        self.active_page.title = AsyncMock(return_value="Example Domain")
        self.pages = [self.active_page]

        self.context = MagicMock()
        self.context.cookies = AsyncMock(return_value=[])
        self.context.add_cookies = AsyncMock()
        self.context.clear_cookies = AsyncMock()

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_gate is not None:
            await self.close_gate.wait()
        if self.fail_close:
            raise EngineError("Browser release incomplete (browser: crashed)")
        self.closed = True


class FakeEngineFactory:
    """Async ``(headless) -> engine`` factory with failure and gating hooks."""

    def __init__(self):
        self.engines: list[FakeEngine] = []
        self.fail = False
        self.gate: Optional[asyncio.Event] = None
        self.fail_close = False
        self.close_gate: Optional[asyncio.Event] = None

    async def __call__(self, headless: bool = True) -> FakeEngine:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise EngineError("Failed to launch browser")
        engine = FakeEngine(fail_close=self.fail_close, close_gate=self.close_gate)
        engine.headless = headless
        self.engines.append(engine)
        return engine


class RecordingAuditSink:
    """Keeps every emitted event in memory."""

    def __init__(self):
        self.events: list[AuditEvent] = []
        self.closed = False

    def emit(self, event: AuditEvent) -> None:
        self.events.append(event)

    async def flush(self) -> None:
        return None

    async def close(self) -> None:
        self.closed = True

    def actions(self) -> list[str]:
        return [event.action for event in self.events]

    def named(self, action: str) -> list[AuditEvent]:
        return [event for event in self.events if event.action == action]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine_factory():
    return FakeEngineFactory()


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def master_key():
    return "correct-horse-battery-staple-0123456789"
