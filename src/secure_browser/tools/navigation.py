"""
Navigation Tools

Every target URL passes the SSRF checks before the browser sees it.
"""

from typing import Optional

from ..errors import ValidationError
from ..governance.governor import SessionGovernor
from ..security.validation import validate_timeout, validate_url
from .base import SESSION_ID_PROPERTY, TIMEOUT_PROPERTY, ToolResult, active_page, tool

WAIT_UNTIL_STATES = ("load", "domcontentloaded", "networkidle", "commit")


def _check_wait_until(wait_until: str) -> str:
    if wait_until not in WAIT_UNTIL_STATES:
        raise ValidationError(
            f"waitUntil must be one of: {', '.join(WAIT_UNTIL_STATES)}"
        )
    return wait_until


@tool(
    name="browser_navigate",
    description=(
        "Navigate the session's active tab to a URL. Local files, localhost, "
        "private networks and blocked domains are refused."
    ),
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "url": {
                "type": "string",
                "description": "Absolute http(s) URL (e.g., 'https://example.com')",
            },
            "waitUntil": {
                "type": "string",
                "description": "When to consider navigation successful",
                "enum": list(WAIT_UNTIL_STATES),
                "default": "load",
            },
            "timeout": TIMEOUT_PROPERTY,
        },
        "required": ["sessionId", "url"],
    },
)
async def navigate(
    governor: SessionGovernor,
    session_id: str,
    url: str,
    wait_until: str = "load",
    timeout: Optional[int] = None,
) -> ToolResult:
    validate_url(url, governor.policy)
    timeout_ms = validate_timeout(timeout)
    _check_wait_until(wait_until)
    page = active_page(governor, session_id)

    response = await page.goto(url, wait_until=wait_until, timeout=timeout_ms)

    status = response.status if response else None
    return ToolResult(
        success=True,
        data={
            "url": page.url,
            "title": await page.title(),
            "status": status,
        },
        metadata={"final_url": page.url},
    )


@tool(
    name="browser_get_url",
    description="Get the URL of the session's active tab.",
    parameters={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_PROPERTY},
        "required": ["sessionId"],
    },
)
async def get_url(governor: SessionGovernor, session_id: str) -> ToolResult:
    page = active_page(governor, session_id)
    return ToolResult(success=True, data={"url": page.url})


@tool(
    name="browser_get_title",
    description="Get the title of the session's active tab.",
    parameters={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_PROPERTY},
        "required": ["sessionId"],
    },
)
async def get_title(governor: SessionGovernor, session_id: str) -> ToolResult:
    page = active_page(governor, session_id)
    return ToolResult(success=True, data={"title": await page.title()})


@tool(
    name="browser_wait_for_navigation",
    description="Wait until the active tab reaches a load state.",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "waitUntil": {
                "type": "string",
                "enum": ["load", "domcontentloaded", "networkidle"],
                "default": "load",
            },
            "timeout": TIMEOUT_PROPERTY,
        },
        "required": ["sessionId"],
    },
)
async def wait_for_navigation(
    governor: SessionGovernor,
    session_id: str,
    wait_until: str = "load",
    timeout: Optional[int] = None,
) -> ToolResult:
    timeout_ms = validate_timeout(timeout)
    if _check_wait_until(wait_until) == "commit":
        raise ValidationError("waitUntil must be one of: load, domcontentloaded, networkidle")
    page = active_page(governor, session_id)

    await page.wait_for_load_state(wait_until, timeout=timeout_ms)
    return ToolResult(success=True, data={"url": page.url, "state": wait_until})
