"""
Operator Console

Rich output for the person running the server. Everything is written to
stderr because stdout carries the MCP protocol.
"""

from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Global console instance
_console: Optional[Console] = None


def get_console() -> Console:
    """Get or create the global stderr console."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def print_banner(
    version: str,
    policy_summary: dict[str, Any],
    cookie_storage: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """Print the startup banner with the effective security policy."""
    console = console or get_console()

    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="bold")
    table.add_column()
    for key, value in policy_summary.items():
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value) or "-"
        table.add_row(key, str(value))
    table.add_row("cookie_storage", cookie_storage or "disabled (no COOKIE_ENCRYPTION_KEY)")

    console.print(
        Panel(
            table,
            title=f"[bold]secure-browser {version}[/bold]",
            title_align="left",
            border_style="green",
            padding=(0, 1),
        )
    )


def print_script_warning(console: Optional[Console] = None) -> None:
    """Warn loudly that page script execution is enabled."""
    console = console or get_console()
    console.print(
        Panel(
            "JavaScript execution is ENABLED.\n"
            "Tools can run arbitrary scripts in browsed pages. Dangerous "
            "constructs are still refused, but this is not a sandbox.\n"
            "Unset ALLOW_JAVASCRIPT_EXECUTION to disable it.",
            title="[bold]SECURITY WARNING[/bold]",
            title_align="left",
            border_style="red",
            padding=(0, 1),
        )
    )


def print_error(message: str, console: Optional[Console] = None) -> None:
    console = console or get_console()
    console.print(f"[bold red]Error:[/bold red] {message}")
