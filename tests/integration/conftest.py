"""
Fixtures for tests that drive a real Chromium through Playwright.

Tests are skipped when no browser is installed
(``playwright install chromium``).
"""

import pytest

from secure_browser.errors import EngineError
from secure_browser.governance.governor import SessionGovernor
from secure_browser.security.policy import SecurityPolicy


@pytest.fixture
async def governor(audit_sink):
    governor = SessionGovernor(policy=SecurityPolicy(max_sessions=2), audit=audit_sink)
    try:
        session_id = await governor.create(headless=True)
    except EngineError as e:
        pytest.skip(f"Chromium is not available: {e}")
    await governor.close(session_id)

    yield governor

    await governor.close_all()
