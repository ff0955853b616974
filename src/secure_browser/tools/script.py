"""
Script Tool

Runs page JavaScript only when the operator has enabled it, and even then
refuses scripts containing denylisted constructs.
"""

import logging
from typing import Optional

from ..governance.governor import SessionGovernor
from ..security.validation import validate_script
from .base import SESSION_ID_PROPERTY, ToolResult, active_page, tool

logger = logging.getLogger(__name__)


@tool(
    name="browser_execute",
    description=(
        "Evaluate a JavaScript expression in the active tab. Disabled unless "
        "the server operator explicitly enables script execution."
    ),
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "script": {"type": "string", "description": "JavaScript expression or function body"},
            "arg": {"description": "Optional JSON-serialisable argument passed to the script"},
        },
        "required": ["sessionId", "script"],
    },
)
async def execute(
    governor: SessionGovernor,
    session_id: str,
    script: str,
    arg: Optional[object] = None,
) -> ToolResult:
    validate_script(script, governor.policy)
    page = active_page(governor, session_id)

    logger.warning(f"Executing script in {session_id} ({len(script)} characters)")
    governor.record_event("script_executed", session_id, level="warn", length=len(script))

    result = await page.evaluate(script, arg)
    return ToolResult(success=True, data={"result": result})
