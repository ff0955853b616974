"""
Governed Browser Tools

Every tool takes the SessionGovernor followed by its arguments and returns
a ToolResult:
- Sessions: launch, close, close all, list
- Cookies: save, load, clear, inspect (values never returned)
- Navigation, interactions and screenshots on the active tab
- Tabs and network capture
- Script execution (disabled unless explicitly enabled)
"""

from .base import (
    ToolResult,
    active_page,
    error_result,
    execute_tool,
    get_all_tools,
    get_tool,
    get_tool_schemas,
    tool,
)
from .sessions import close, close_all, launch, list_sessions
from .cookies import (
    clear_cookies,
    get_cookies,
    list_saved_cookies,
    load_cookies,
    save_cookies,
)
from .navigation import get_title, get_url, navigate, wait_for_navigation
from .interactions import (
    click,
    get_attribute,
    get_text,
    scroll,
    select_option,
    type_text,
    upload_file,
    wait_for_selector,
)
from .screenshot import screenshot
from .tabs import close_tab, list_tabs, new_tab, switch_tab
from .network import enable_network_logging, get_network_logs
from .script import execute

__all__ = [
    # Sessions
    "launch",
    "close",
    "close_all",
    "list_sessions",
    # Cookies
    "save_cookies",
    "load_cookies",
    "clear_cookies",
    "get_cookies",
    "list_saved_cookies",
    # Navigation
    "navigate",
    "get_url",
    "get_title",
    "wait_for_navigation",
    # Interactions
    "click",
    "type_text",
    "select_option",
    "wait_for_selector",
    "get_text",
    "get_attribute",
    "scroll",
    "upload_file",
    # Screenshot
    "screenshot",
    # Tabs
    "new_tab",
    "switch_tab",
    "close_tab",
    "list_tabs",
    # Network
    "enable_network_logging",
    "get_network_logs",
    # Script
    "execute",
    # Base
    "ToolResult",
    "tool",
    "active_page",
    "error_result",
    "execute_tool",
    "get_tool",
    "get_all_tools",
    "get_tool_schemas",
]
