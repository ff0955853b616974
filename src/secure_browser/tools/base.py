"""
Base Tool Infrastructure

Provides the foundation for governed browser tools:
- Tool decorator for registration
- ToolResult for standardized responses
- Tool registry for discovery and dispatch
- Mapping of classified errors onto structured error results
"""

import inspect
import logging
import re
from dataclasses import dataclass, field
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import BrowserSecurityBaseError, EngineError, ValidationError

if TYPE_CHECKING:
    from ..governance.governor import SessionGovernor

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """
    Standardized result from tool execution.

    Attributes:
        success: Whether the tool executed successfully
        data: Result data (varies by tool)
        error: Error message if failed
        metadata: Additional context (error_type, timing, ...)
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def error_type(self) -> Optional[str]:
        return self.metadata.get("error_type")

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": self.error,
            "errorType": self.error_type,
        }

    def __str__(self) -> str:
        if self.success:
            return f"Success: {self.data}"
        return f"Error: {self.error}"


# Tool registry for all registered tools
_TOOL_REGISTRY: dict[str, dict[str, Any]] = {}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def to_snake_case(key: str) -> str:
    """Map wire argument names (`sessionId`) to parameter names (`session_id`)."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def error_result(error: BrowserSecurityBaseError) -> ToolResult:
    return ToolResult(
        success=False,
        error=error.message,
        metadata={"error_type": error.error_type},
    )


def tool(
    name: str,
    description: str,
    parameters: Optional[dict[str, Any]] = None,
):
    """
    Decorator to register a function as a governed browser tool.

    The decorated function receives the governor first, then the tool
    arguments. Classified errors become failed ToolResults carrying their
    ``error_type``; engine timeouts and crashes become ``engine_error``.

    Args:
        name: Tool identifier (e.g., "browser_navigate")
        description: Human-readable description of what the tool does
        parameters: JSON Schema for tool parameters

    Example:
        >>> @tool(
        ...     name="browser_get_url",
        ...     description="Get the current URL",
        ...     parameters={
        ...         "type": "object",
        ...         "properties": {"sessionId": {"type": "string"}},
        ...         "required": ["sessionId"],
        ...     },
        ... )
        ... async def get_url(governor, session_id: str) -> ToolResult:
        ...     page = active_page(governor, session_id)
        ...     return ToolResult(success=True, data={"url": page.url})
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                result = await func(*args, **kwargs)
                if isinstance(result, ToolResult):
                    return result
                return ToolResult(success=True, data=result)
            except BrowserSecurityBaseError as e:
                logger.info(f"{name} rejected ({e.error_type}): {e.message}")
                return error_result(e)
            except PlaywrightTimeoutError as e:
                logger.warning(f"{name} timed out: {e}")
                return error_result(EngineError("Operation timed out"))
            except PlaywrightError as e:
                logger.warning(f"{name} failed in browser: {e}")
                return error_result(EngineError("Browser operation failed"))
            except Exception:
                logger.exception(f"Unexpected failure in {name}")
                return ToolResult(
                    success=False,
                    error="Internal error",
                    metadata={"error_type": "internal_error"},
                )

        wrapper.tool_name = name
        wrapper.tool_description = description
        wrapper.tool_parameters = parameters

        _TOOL_REGISTRY[name] = {
            "name": name,
            "description": description,
            "parameters": parameters or {"type": "object", "properties": {}},
            "function": wrapper,
        }

        return wrapper

    return decorator


def get_tool(name: str) -> Optional[dict[str, Any]]:
    """Get a tool by name from the registry."""
    return _TOOL_REGISTRY.get(name)


def get_all_tools() -> dict[str, dict[str, Any]]:
    """Get all registered tools."""
    return _TOOL_REGISTRY.copy()


def get_tool_schemas() -> list[dict[str, Any]]:
    """
    Get tool schemas with name, description and input schema.
    """
    return [
        {
            "name": info["name"],
            "description": info["description"],
            "input_schema": info["parameters"],
        }
        for info in _TOOL_REGISTRY.values()
    ]


async def execute_tool(
    name: str,
    governor: "SessionGovernor",
    arguments: Optional[dict[str, Any]] = None,
) -> ToolResult:
    """
    Dispatch a tool call by name.

    Unknown tools and arguments that do not fit the tool signature are
    reported as validation errors without invoking the tool.
    """
    info = _TOOL_REGISTRY.get(name)
    if info is None:
        return error_result(ValidationError(f"Unknown tool: {name}"))

    func = info["function"]
    arguments = {to_snake_case(key): value for key, value in (arguments or {}).items()}
    try:
        inspect.signature(func).bind(governor, **arguments)
    except TypeError:
        return error_result(ValidationError(f"Invalid arguments for {name}"))

    return await func(governor, **arguments)


def active_page(governor: "SessionGovernor", session_id: str) -> Page:
    """
    Resolve the page tool calls act on.

    Raises:
        ValidationError / NotFoundError: unknown session
        EngineError: the session has no open page
    """
    session = governor.get_session(session_id)
    page = session.active_page
    if page is None:
        raise EngineError("Session has no active page")
    return page


SESSION_ID_PROPERTY = {
    "type": "string",
    "description": "Session id returned by browser_launch",
}

TIMEOUT_PROPERTY = {
    "type": "integer",
    "description": "Maximum wait time in milliseconds (default 30000, max 300000)",
}
