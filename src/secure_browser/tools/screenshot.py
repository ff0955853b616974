"""
Screenshot Tool

Captures the active tab or a single element and returns base64 image data.
"""

import base64
from typing import Literal, Optional

from ..errors import NotFoundError, ValidationError
from ..governance.governor import SessionGovernor
from ..security.validation import validate_selector, validate_timeout
from .base import SESSION_ID_PROPERTY, TIMEOUT_PROPERTY, ToolResult, active_page, tool

ScreenshotType = Literal["png", "jpeg"]


@tool(
    name="browser_screenshot",
    description=(
        "Take a screenshot of the active tab or of one element. "
        "Returns base64-encoded image data."
    ),
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "selector": {
                "type": "string",
                "description": "Optional selector to capture a single element",
            },
            "fullPage": {
                "type": "boolean",
                "description": "Capture the full scrollable page (ignored for elements)",
                "default": False,
            },
            "type": {
                "type": "string",
                "enum": ["png", "jpeg"],
                "default": "png",
            },
            "quality": {
                "type": "integer",
                "description": "JPEG quality 0-100 (only for jpeg)",
                "minimum": 0,
                "maximum": 100,
            },
            "timeout": TIMEOUT_PROPERTY,
        },
        "required": ["sessionId"],
    },
)
async def screenshot(
    governor: SessionGovernor,
    session_id: str,
    selector: Optional[str] = None,
    full_page: bool = False,
    type: ScreenshotType = "png",
    quality: Optional[int] = None,
    timeout: Optional[int] = None,
) -> ToolResult:
    if type not in ("png", "jpeg"):
        raise ValidationError("Screenshot type must be 'png' or 'jpeg'")
    if quality is not None:
        if type != "jpeg":
            raise ValidationError("Quality is only supported for jpeg screenshots")
        if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= 100:
            raise ValidationError("Quality must be an integer between 0 and 100")
    if selector is not None:
        validate_selector(selector, governor.policy)
    timeout_ms = validate_timeout(timeout)
    page = active_page(governor, session_id)

    options = {"type": type, "timeout": timeout_ms}
    if quality is not None:
        options["quality"] = quality

    if selector:
        element = page.locator(selector)
        if not await element.count():
            raise NotFoundError("Element not found for screenshot")
        image = await element.screenshot(**options)
    else:
        image = await page.screenshot(full_page=full_page, **options)

    return ToolResult(
        success=True,
        data={
            "base64": base64.b64encode(image).decode("utf-8"),
            "mimeType": f"image/{type}",
            "sizeBytes": len(image),
        },
        metadata={"full_page": full_page and not selector, "url": page.url},
    )
