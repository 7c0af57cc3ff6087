"""
Build errors for the Go builder.

Every stage either completes or raises one of these; nothing is retried.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class BuildError(RuntimeError):
    """Base class for all fatal build failures."""


class DownloadError(BuildError):
    """File set or toolchain binary could not be fetched."""


class ParseError(BuildError):
    """Handler-discovery tool failed to run or exited non-zero."""

    def __init__(self, entrypoint: str, reason: str):
        super().__init__(f'Failed to parse AST for "{entrypoint}": {reason}')
        self.entrypoint = entrypoint
        self.reason = reason


class NoHandlerFoundError(BuildError):
    """Entry point exports no eligible handler function."""

    def __init__(self, entrypoint: str):
        super().__init__(f'Could not find an exported function on "{entrypoint}"')
        self.entrypoint = entrypoint


class ManifestInitError(BuildError):
    """`go mod init` failed."""

    def __init__(self, directory: Path, reason: str):
        super().__init__(f"Failed to initialize `go mod` in {directory}: {reason}")
        self.directory = directory
        self.reason = reason


class TransformError(BuildError):
    """Writing the wrapper file or relocating the entry file failed."""

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(f"Failed to prepare {path}: {reason}")
        self.path = path
        self.reason = reason


class _ToolchainStageError(BuildError):
    stage = ""

    def __init__(self, directory: Path, reason: str, command: Optional[str] = None):
        super().__init__(f"Failed to `{self.stage}` in {directory}: {reason}")
        self.directory = directory
        self.reason = reason
        self.command = command


class DependencyResolutionError(_ToolchainStageError):
    """`go get` failed."""

    stage = "go get"


class CompileError(_ToolchainStageError):
    """`go build` failed."""

    stage = "go build"


class PackagingError(BuildError):
    """The packaging collaborator rejected the build output."""
