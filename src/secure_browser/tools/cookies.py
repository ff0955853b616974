"""
Cookie Tools

Persist, restore and inspect session cookies. Stored values are encrypted
by the vault; none of these tools ever return a cookie value.
"""

from typing import Optional

from ..errors import ValidationError
from ..governance.governor import SessionGovernor
from .base import SESSION_ID_PROPERTY, ToolResult, tool


@tool(
    name="browser_save_cookies",
    description="Encrypt and store the session's cookies, grouped by domain.",
    parameters={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_PROPERTY},
        "required": ["sessionId"],
    },
)
async def save_cookies(governor: SessionGovernor, session_id: str) -> ToolResult:
    count = await governor.save_cookies(session_id)
    return ToolResult(
        success=True,
        data={"cookiesSaved": count, "message": f"Saved {count} cookies"},
    )


@tool(
    name="browser_load_cookies",
    description="Restore previously saved cookies into the session.",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "domain": {
                "type": "string",
                "description": "Only restore cookies for domains containing this value",
            },
        },
        "required": ["sessionId"],
    },
)
async def load_cookies(
    governor: SessionGovernor,
    session_id: str,
    domain: Optional[str] = None,
) -> ToolResult:
    if domain is not None and not isinstance(domain, str):
        raise ValidationError("Domain must be a string")
    count = await governor.load_cookies(session_id, domain or None)
    return ToolResult(success=True, data={"cookiesLoaded": count})


@tool(
    name="browser_clear_cookies",
    description="Delete stored cookies for the session and clear its live cookie jar.",
    parameters={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_PROPERTY},
        "required": ["sessionId"],
    },
)
async def clear_cookies(governor: SessionGovernor, session_id: str) -> ToolResult:
    removed = await governor.clear_cookies(session_id)
    message = "Cookies cleared" if removed else "Browser cookies cleared (nothing was stored)"
    return ToolResult(success=True, data={"storedRecordsRemoved": removed, "message": message})


@tool(
    name="browser_get_cookies",
    description=(
        "List the session's live cookies (name, domain, path, expiry and flags). "
        "Cookie values are never returned."
    ),
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "urls": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Only cookies that would be sent to these URLs",
            },
        },
        "required": ["sessionId"],
    },
)
async def get_cookies(
    governor: SessionGovernor,
    session_id: str,
    urls: Optional[list[str]] = None,
) -> ToolResult:
    if urls is not None:
        if not isinstance(urls, list):
            raise ValidationError("urls must be a list of URLs")
        if not all(isinstance(url, str) and url for url in urls):
            raise ValidationError("urls must be non-empty strings")
    cookies = await governor.get_cookies(session_id, urls)
    return ToolResult(success=True, data={"cookies": cookies, "count": len(cookies)})


@tool(
    name="browser_list_saved_cookies",
    description="Describe stored cookie records (domains and cookie names, no values).",
    parameters={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_PROPERTY},
        "required": ["sessionId"],
    },
)
async def list_saved_cookies(governor: SessionGovernor, session_id: str) -> ToolResult:
    records = await governor.list_saved_cookies(session_id)
    return ToolResult(success=True, data={"records": records})
