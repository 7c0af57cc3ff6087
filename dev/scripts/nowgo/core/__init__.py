"""
nowgo.core - Foundation layer for the nowgo builder.

Exports logging and subprocess utilities.
"""

from nowgo.core.utils import (
    # Logging
    log,
    Logger,
    # Runtime utilities
    ToolResult,
    run_tool,
    which,
)

__all__ = [
    # Logging
    "log",
    "Logger",
    # Runtime utilities
    "ToolResult",
    "run_tool",
    "which",
]
