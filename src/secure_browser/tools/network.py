"""
Network Capture Tools

Capture is off until requested; entries are kept per session, bounded,
and discarded when the session closes.
"""

from ..errors import ValidationError
from ..governance.governor import SessionGovernor
from .base import SESSION_ID_PROPERTY, ToolResult, tool

MAX_RETURNED_ENTRIES = 1000


@tool(
    name="browser_enable_network_logging",
    description="Start recording responses received by every tab of the session.",
    parameters={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_PROPERTY},
        "required": ["sessionId"],
    },
)
async def enable_network_logging(governor: SessionGovernor, session_id: str) -> ToolResult:
    session = governor.get_session(session_id)
    started = session.engine.enable_network_logging()
    message = "Network logging enabled" if started else "Network logging already enabled"
    return ToolResult(success=True, data={"enabled": True, "message": message})


@tool(
    name="browser_get_network_logs",
    description="Return recorded responses (most recent last). Headers are omitted unless requested.",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "includeHeaders": {"type": "boolean", "default": False},
            "limit": {
                "type": "integer",
                "description": f"Return at most this many entries (max {MAX_RETURNED_ENTRIES})",
                "minimum": 1,
                "maximum": MAX_RETURNED_ENTRIES,
            },
        },
        "required": ["sessionId"],
    },
)
async def get_network_logs(
    governor: SessionGovernor,
    session_id: str,
    include_headers: bool = False,
    limit: int = MAX_RETURNED_ENTRIES,
) -> ToolResult:
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_RETURNED_ENTRIES:
        raise ValidationError(f"Limit must be between 1 and {MAX_RETURNED_ENTRIES}")
    session = governor.get_session(session_id)

    if not session.engine.network_logging_enabled:
        raise ValidationError("Network logging is not enabled for this session")

    entries = session.engine.network_logs(include_headers=bool(include_headers))[-limit:]
    return ToolResult(success=True, data={"entries": entries, "count": len(entries)})
