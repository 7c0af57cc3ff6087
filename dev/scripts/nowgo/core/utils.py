"""
Shared utilities for the nowgo builder.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Simple colored logger with --no-color support."""

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "magenta": "\033[95m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(self, use_color: Optional[bool] = None):
        if use_color is None:
            self._use_color = sys.stdout.isatty()
        else:
            self._use_color = use_color

    def set_color(self, use_color: bool) -> None:
        """Set whether to use color output."""
        self._use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def header(self, message: str) -> None:
        """Print a section header."""
        print(f"\n{self._color('===', 'cyan')} {self._color(message, 'bold')} {self._color('===', 'cyan')}")

    def info(self, message: str) -> None:
        """Print an info message."""
        print(f"  {message}")

    def success(self, message: str) -> None:
        """Print a success message."""
        print(f"  {self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        print(f"  {self._color('[WARN]', 'yellow')} {message}")

    def error(self, message: str) -> None:
        """Print an error message."""
        print(f"  {self._color('[ERROR]', 'red')} {message}")

    def dim(self, message: str) -> None:
        """Print a dim/secondary message."""
        print(f"  {self._color(message, 'dim')}")


# Global logger instance
log = Logger()


# =============================================================================
# Runtime Utilities
# =============================================================================


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one external tool invocation.

    ``returncode`` is None when the process could not be started (or timed
    out); ``error`` then holds the reason.
    """

    cmd: tuple[str, ...]
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return " ".join(self.cmd)

    def describe_failure(self) -> str:
        """One-line reason suitable for an error message."""
        if self.returncode is None:
            return f"`{self.command_line}` could not run: {self.error}"
        detail = f"`{self.command_line}` exited with status {self.returncode}"
        if self.stderr.strip():
            detail += f": {self.stderr.strip().splitlines()[-1]}"
        return detail


def run_tool(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    capture: bool = False,
    timeout: Optional[float] = None,
) -> ToolResult:
    """Run an external tool and report its exit status without raising.

    With ``capture=False`` the child inherits stdio so the operator sees
    toolchain output as it happens.
    """
    argv = tuple(str(part) for part in cmd)
    try:
        result = subprocess.run(
            argv,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            capture_output=capture,
            text=True,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return ToolResult(argv, None, error=f"timed out after {timeout}s")
    except OSError as e:
        return ToolResult(argv, None, error=str(e))

    return ToolResult(
        argv,
        result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
    )


def which(name: str, env: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """Locate an executable on PATH (of ``env`` if given)."""
    search_path = (env if env is not None else os.environ).get("PATH")
    found = shutil.which(name, path=search_path)
    return Path(found) if found else None
