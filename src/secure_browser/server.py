"""
MCP Stdio Server

Serves the governed browser tools over the Model Context Protocol on
stdin/stdout. Stdout carries protocol traffic only; logs go to stderr.
"""

import json
import logging
from typing import Any, Optional

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from . import __version__
from .governance.governor import SessionGovernor
from .tools import execute_tool, get_tool_schemas

logger = logging.getLogger(__name__)

SERVER_NAME = "secure-browser"


class ToolCallError(Exception):
    """Raised to report a failed tool call as an MCP tool error."""


class BrowserServer:
    """
    MCP server exposing one tool per governed browser operation.

    Usage:
        >>> server = BrowserServer(governor)
        >>> await server.run()
    """

    def __init__(self, governor: SessionGovernor, name: str = SERVER_NAME):
        self.governor = governor
        self.server = Server(name)
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        @self.server.list_tools()
        async def handle_list_tools() -> list[types.Tool]:
            return self.list_tools()

        @self.server.call_tool()
        async def handle_call_tool(
            name: str, arguments: Optional[dict[str, Any]]
        ) -> list[types.TextContent]:
            return await self.call_tool(name, arguments)

    def list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(
                name=schema["name"],
                description=schema["description"],
                inputSchema=schema["input_schema"],
            )
            for schema in get_tool_schemas()
        ]

    async def call_tool(
        self, name: str, arguments: Optional[dict[str, Any]]
    ) -> list[types.TextContent]:
        """
        Run a tool and render its result as JSON text.

        Raises:
            ToolCallError: the tool failed; the message is the JSON error body
        """
        result = await execute_tool(name, self.governor, arguments or {})
        text = json.dumps(result.to_dict(), indent=2, default=str)
        if not result.success:
            logger.debug(f"Tool {name} failed: {result.error_type}")
            raise ToolCallError(text)
        return [types.TextContent(type="text", text=text)]

    async def run(self) -> None:
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name=SERVER_NAME,
                    server_version=__version__,
                    capabilities=self.server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                ),
            )
