"""
Secure Browser

Governed browser automation served over MCP: validated inputs, bounded
session creation, guaranteed cleanup and encrypted cookie persistence.
"""

__version__ = "1.0.0"
