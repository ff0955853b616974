"""
Session Tools

Launch, close and list governed browser sessions.
"""

from typing import Optional

from ..governance.governor import SessionGovernor
from .base import SESSION_ID_PROPERTY, ToolResult, tool


@tool(
    name="browser_launch",
    description=(
        "Launch a new isolated browser session. Returns the session id used by "
        "every other tool. Subject to session count and creation rate limits."
    ),
    parameters={
        "type": "object",
        "properties": {
            "headless": {
                "type": "boolean",
                "description": "Run the browser without a visible window",
                "default": True,
            },
        },
    },
)
async def launch(governor: SessionGovernor, headless: Optional[bool] = None) -> ToolResult:
    if headless is None:
        headless = governor.default_headless
    session_id = await governor.create(headless=bool(headless))
    return ToolResult(
        success=True,
        data={"sessionId": session_id, "message": f"Browser session {session_id} launched"},
    )


@tool(
    name="browser_close",
    description="Close a browser session and release its browser.",
    parameters={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_PROPERTY},
        "required": ["sessionId"],
    },
)
async def close(governor: SessionGovernor, session_id: str) -> ToolResult:
    closed = await governor.close(session_id)
    message = f"Session {session_id} closed" if closed else f"Session {session_id} was not open"
    return ToolResult(success=True, data={"closed": closed, "message": message})


@tool(
    name="browser_close_all",
    description="Close every open browser session.",
    parameters={"type": "object", "properties": {}},
)
async def close_all(governor: SessionGovernor) -> ToolResult:
    outcome = await governor.close_all()
    return ToolResult(success=True, data=outcome)


@tool(
    name="browser_list_sessions",
    description="List open browser sessions with their creation time, URL and title.",
    parameters={"type": "object", "properties": {}},
)
async def list_sessions(governor: SessionGovernor) -> ToolResult:
    sessions = await governor.list_sessions()
    return ToolResult(
        success=True,
        data={
            "sessions": sessions,
            "count": len(sessions),
            "maxSessions": governor.policy.max_sessions,
        },
    )
