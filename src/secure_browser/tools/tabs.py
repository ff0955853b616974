"""
Tab Tools

Tabs belong to the session's controller; these tools address them by index.
"""

from typing import Optional

from ..governance.governor import SessionGovernor
from ..security.validation import validate_tab_index, validate_url
from .base import SESSION_ID_PROPERTY, ToolResult, tool

TAB_INDEX_PROPERTY = {"type": "integer", "description": "Zero-based tab index", "minimum": 0}


@tool(
    name="browser_new_tab",
    description="Open a new tab in the session, optionally loading a URL.",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "url": {"type": "string", "description": "Optional URL to open"},
        },
        "required": ["sessionId"],
    },
)
async def new_tab(
    governor: SessionGovernor,
    session_id: str,
    url: Optional[str] = None,
) -> ToolResult:
    if url is not None:
        validate_url(url, governor.policy)
    session = governor.get_session(session_id)

    index = await session.engine.new_tab()
    if url is not None:
        await session.engine.pages[index].goto(url)

    governor.record_event("tab_created", session_id, index=index)
    return ToolResult(success=True, data={"tabIndex": index})


@tool(
    name="browser_switch_tab",
    description="Make a tab the target of subsequent tool calls.",
    parameters={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_PROPERTY, "tabIndex": TAB_INDEX_PROPERTY},
        "required": ["sessionId", "tabIndex"],
    },
)
async def switch_tab(governor: SessionGovernor, session_id: str, tab_index: int) -> ToolResult:
    validate_tab_index(tab_index)
    session = governor.get_session(session_id)

    page = await session.engine.switch_tab(tab_index)

    governor.record_event("tab_switched", session_id, index=tab_index)
    return ToolResult(success=True, data={"tabIndex": tab_index, "url": page.url})


@tool(
    name="browser_close_tab",
    description="Close a tab. The last tab of a session cannot be closed.",
    parameters={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_PROPERTY, "tabIndex": TAB_INDEX_PROPERTY},
        "required": ["sessionId", "tabIndex"],
    },
)
async def close_tab(governor: SessionGovernor, session_id: str, tab_index: int) -> ToolResult:
    validate_tab_index(tab_index)
    session = governor.get_session(session_id)

    await session.engine.close_tab(tab_index)

    governor.record_event("tab_closed", session_id, index=tab_index)
    return ToolResult(
        success=True,
        data={"closed": tab_index, "remainingTabs": len(session.engine.pages)},
    )


@tool(
    name="browser_list_tabs",
    description="List the session's tabs with URL, title and which one is active.",
    parameters={
        "type": "object",
        "properties": {"sessionId": SESSION_ID_PROPERTY},
        "required": ["sessionId"],
    },
)
async def list_tabs(governor: SessionGovernor, session_id: str) -> ToolResult:
    session = governor.get_session(session_id)
    tabs = await session.engine.list_tabs()
    return ToolResult(success=True, data={"tabs": tabs, "count": len(tabs)})
