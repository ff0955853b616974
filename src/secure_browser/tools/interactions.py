"""
Browser Interaction Tools

Selector-driven interactions on the session's active tab:
- Click, type and select
- Waiting for elements
- Reading text and attributes
- Scrolling
- File upload (extension allow-list and size ceiling)

Selectors, text and attribute names are validated before they reach the
browser. Selector semantics themselves belong to Playwright.
"""

import logging
import os
from typing import Optional, Union

from ..errors import ValidationError
from ..governance.governor import SessionGovernor
from ..security.validation import (
    validate_attribute,
    validate_file_extension,
    validate_scroll,
    validate_selector,
    validate_text,
    validate_timeout,
)
from .base import SESSION_ID_PROPERTY, TIMEOUT_PROPERTY, ToolResult, active_page, tool

logger = logging.getLogger(__name__)

SELECTOR_PROPERTY = {
    "type": "string",
    "description": "CSS or Playwright selector of the target element",
}

WAIT_STATES = ("attached", "detached", "visible", "hidden")


@tool(
    name="browser_click",
    description="Click the element matching a selector.",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "selector": SELECTOR_PROPERTY,
            "timeout": TIMEOUT_PROPERTY,
        },
        "required": ["sessionId", "selector"],
    },
)
async def click(
    governor: SessionGovernor,
    session_id: str,
    selector: str,
    timeout: Optional[int] = None,
) -> ToolResult:
    validate_selector(selector, governor.policy)
    timeout_ms = validate_timeout(timeout)
    page = active_page(governor, session_id)

    await page.click(selector, timeout=timeout_ms)
    return ToolResult(success=True, data={"clicked": True, "url": page.url})


@tool(
    name="browser_type",
    description="Fill the element matching a selector with text (replaces its content).",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "selector": SELECTOR_PROPERTY,
            "text": {"type": "string", "description": "Text to enter"},
            "timeout": TIMEOUT_PROPERTY,
        },
        "required": ["sessionId", "selector", "text"],
    },
)
async def type_text(
    governor: SessionGovernor,
    session_id: str,
    selector: str,
    text: str,
    timeout: Optional[int] = None,
) -> ToolResult:
    validate_selector(selector, governor.policy)
    validate_text(text, governor.policy)
    timeout_ms = validate_timeout(timeout)
    page = active_page(governor, session_id)

    await page.fill(selector, text, timeout=timeout_ms)
    # Only the length is reported; typed text may be a credential
    return ToolResult(success=True, data={"typed": len(text)})


@tool(
    name="browser_select",
    description="Select one or more options of a <select> element by value.",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "selector": SELECTOR_PROPERTY,
            "value": {
                "oneOf": [
                    {"type": "string"},
                    {"type": "array", "items": {"type": "string"}},
                ],
                "description": "Option value, or list of values for multi-selects",
            },
            "timeout": TIMEOUT_PROPERTY,
        },
        "required": ["sessionId", "selector", "value"],
    },
)
async def select_option(
    governor: SessionGovernor,
    session_id: str,
    selector: str,
    value: Union[str, list[str]],
    timeout: Optional[int] = None,
) -> ToolResult:
    validate_selector(selector, governor.policy)
    values = [value] if isinstance(value, str) else value
    if not isinstance(values, list) or not values:
        raise ValidationError("Value must be a string or a non-empty list of strings")
    for item in values:
        validate_text(item, governor.policy)
    timeout_ms = validate_timeout(timeout)
    page = active_page(governor, session_id)

    selected = await page.select_option(selector, values, timeout=timeout_ms)
    return ToolResult(success=True, data={"selected": selected})


@tool(
    name="browser_wait",
    description="Wait for an element matching a selector to reach a state.",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "selector": SELECTOR_PROPERTY,
            "state": {
                "type": "string",
                "enum": list(WAIT_STATES),
                "default": "visible",
            },
            "timeout": TIMEOUT_PROPERTY,
        },
        "required": ["sessionId", "selector"],
    },
)
async def wait_for_selector(
    governor: SessionGovernor,
    session_id: str,
    selector: str,
    state: str = "visible",
    timeout: Optional[int] = None,
) -> ToolResult:
    validate_selector(selector, governor.policy)
    if state not in WAIT_STATES:
        raise ValidationError(f"State must be one of: {', '.join(WAIT_STATES)}")
    timeout_ms = validate_timeout(timeout)
    page = active_page(governor, session_id)

    await page.wait_for_selector(selector, state=state, timeout=timeout_ms)
    return ToolResult(success=True, data={"selector": selector, "state": state})


@tool(
    name="browser_get_text",
    description="Get the text content of the element matching a selector.",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "selector": SELECTOR_PROPERTY,
            "timeout": TIMEOUT_PROPERTY,
        },
        "required": ["sessionId", "selector"],
    },
)
async def get_text(
    governor: SessionGovernor,
    session_id: str,
    selector: str,
    timeout: Optional[int] = None,
) -> ToolResult:
    validate_selector(selector, governor.policy)
    timeout_ms = validate_timeout(timeout)
    page = active_page(governor, session_id)

    text = await page.text_content(selector, timeout=timeout_ms)
    return ToolResult(success=True, data={"text": text or ""})


@tool(
    name="browser_get_attribute",
    description="Get an attribute of the element matching a selector.",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "selector": SELECTOR_PROPERTY,
            "attribute": {
                "type": "string",
                "description": "Attribute name (letters, digits and hyphens)",
            },
            "timeout": TIMEOUT_PROPERTY,
        },
        "required": ["sessionId", "selector", "attribute"],
    },
)
async def get_attribute(
    governor: SessionGovernor,
    session_id: str,
    selector: str,
    attribute: str,
    timeout: Optional[int] = None,
) -> ToolResult:
    validate_selector(selector, governor.policy)
    validate_attribute(attribute)
    timeout_ms = validate_timeout(timeout)
    page = active_page(governor, session_id)

    value = await page.get_attribute(selector, attribute, timeout=timeout_ms)
    return ToolResult(success=True, data={"attribute": attribute, "value": value})


@tool(
    name="browser_scroll",
    description="Scroll the active tab in a direction by a number of pixels.",
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "direction": {
                "type": "string",
                "enum": ["up", "down", "left", "right"],
                "default": "down",
            },
            "distance": {
                "type": "integer",
                "description": "Pixels to scroll",
                "default": 500,
            },
        },
        "required": ["sessionId"],
    },
)
async def scroll(
    governor: SessionGovernor,
    session_id: str,
    direction: str = "down",
    distance: int = 500,
) -> ToolResult:
    validate_scroll(direction, distance)
    page = active_page(governor, session_id)

    delta_x, delta_y = {
        "up": (0, -distance),
        "down": (0, distance),
        "left": (-distance, 0),
        "right": (distance, 0),
    }[direction]
    await page.mouse.wheel(delta_x, delta_y)

    return ToolResult(success=True, data={"direction": direction, "distance": distance})


@tool(
    name="browser_upload_file",
    description=(
        "Attach a local file to a file input. Only allow-listed extensions "
        "below the size limit are accepted."
    ),
    parameters={
        "type": "object",
        "properties": {
            "sessionId": SESSION_ID_PROPERTY,
            "selector": SELECTOR_PROPERTY,
            "filePath": {"type": "string", "description": "Path of the file to upload"},
            "timeout": TIMEOUT_PROPERTY,
        },
        "required": ["sessionId", "selector", "filePath"],
    },
)
async def upload_file(
    governor: SessionGovernor,
    session_id: str,
    selector: str,
    file_path: str,
    timeout: Optional[int] = None,
) -> ToolResult:
    validate_selector(selector, governor.policy)
    validate_file_extension(file_path, governor.policy)
    timeout_ms = validate_timeout(timeout)
    page = active_page(governor, session_id)

    if not os.path.isfile(file_path):
        raise ValidationError("File not found")

    size = os.path.getsize(file_path)
    if size > governor.policy.max_file_size:
        raise ValidationError(
            f"File too large (max {governor.policy.max_file_size} bytes)"
        )

    await page.set_input_files(selector, file_path, timeout=timeout_ms)

    governor.record_event(
        "file_uploaded",
        session_id,
        file=os.path.basename(file_path),
        size=size,
    )
    logger.info(f"Uploaded {os.path.basename(file_path)} ({size} bytes) in {session_id}")
    return ToolResult(
        success=True,
        data={"fileName": os.path.basename(file_path), "size": size},
    )
