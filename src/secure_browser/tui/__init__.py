"""
Operator Console

Rich stderr output: startup banner and security warnings.
"""

from .console import get_console, print_banner, print_error, print_script_warning

__all__ = [
    "get_console",
    "print_banner",
    "print_error",
    "print_script_warning",
]
