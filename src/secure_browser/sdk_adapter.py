"""
SDK Adapter Layer

Exposes the governed browser tools as an in-process Claude Agent SDK MCP
server. This module provides:
- tool_result_to_sdk_format(): Convert ToolResult to SDK response format
- adapt_tool_for_sdk(): Wrap a registered tool around a governor
- create_browser_server(): Create the SDK MCP server with every tool
"""

import json
from typing import Any, Callable

from claude_agent_sdk import create_sdk_mcp_server
from claude_agent_sdk import tool as sdk_tool

from secure_browser.governance.governor import SessionGovernor
from secure_browser.tools import ToolResult, execute_tool, get_all_tools


def tool_result_to_sdk_format(result: ToolResult) -> dict[str, Any]:
    """
    Convert a ToolResult to SDK response format.

    Failed results carry their error type so callers can tell validation
    and policy rejections from engine failures.
    """
    if result.success:
        if result.data is None:
            text = "Operation completed successfully"
        elif isinstance(result.data, (dict, list, tuple)):
            text = json.dumps(result.data, indent=2, default=str)
        else:
            text = str(result.data)

        return {
            "content": [{"type": "text", "text": text}],
            "is_error": False,
        }

    error_msg = result.error or "Unknown error occurred"
    if result.error_type:
        error_msg = f"[{result.error_type}] {error_msg}"

    return {
        "content": [{"type": "text", "text": error_msg}],
        "is_error": True,
    }


def adapt_tool_for_sdk(
    tool_name: str,
    tool_info: dict[str, Any],
    governor: SessionGovernor,
) -> Callable:
    """
    Adapt a registered tool for the SDK.

    The SDK accepts a full JSON Schema as the input schema, so the
    registered schema is passed through unchanged.
    """
    description = tool_info.get("description", f"Browser tool: {tool_name}")
    json_schema = tool_info.get("parameters", {"type": "object", "properties": {}})

    async def adapted_tool(args: dict[str, Any]) -> dict[str, Any]:
        result = await execute_tool(tool_name, governor, args)
        return tool_result_to_sdk_format(result)

    return sdk_tool(tool_name, description, json_schema)(adapted_tool)


def create_browser_server(
    governor: SessionGovernor,
    server_name: str = "secure-browser",
    server_version: str = "1.0.0",
):
    """
    Create an in-process SDK MCP server with every governed browser tool.

    Tool naming convention: mcp__<server_name>__<tool_name>

    Example:
        >>> governor = SessionGovernor(policy=load_policy())
        >>> server = create_browser_server(governor)
        >>> options = ClaudeAgentOptions(
        ...     mcp_servers={"secure-browser": server},
        ...     allowed_tools=get_allowed_tools(),
        ... )
    """
    adapted_tools = [
        adapt_tool_for_sdk(tool_name, tool_info, governor)
        for tool_name, tool_info in get_all_tools().items()
    ]

    return create_sdk_mcp_server(
        name=server_name,
        version=server_version,
        tools=adapted_tools,
    )


def get_allowed_tools(server_name: str = "secure-browser") -> list[str]:
    """Tool names in the SDK format ``mcp__<server_name>__<tool_name>``."""
    return [f"mcp__{server_name}__{name}" for name in get_all_tools()]
