"""
Build configuration for the Go builder.

Static constants (loaded from builder.yaml), the per-build dataclass, and
size parsing for the artifact limit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml

__all__ = [
    "STATIC_CONFIG_PATH",
    "load_static_config",
    "parse_size",
    "CONFIG",
    "MAX_LAMBDA_SIZE",
    "HANDLER_FILENAME",
    "RUNTIME",
    "TARGET_GOOS",
    "TARGET_GOARCH",
    "RESERVED_PACKAGE",
    "LEGACY_WRAPPER_NAME",
    "MODULE_WRAPPER_NAME",
    "PACKAGE_PLACEHOLDER",
    "FUNCTION_PLACEHOLDER",
    "MANIFEST_NAME",
    "GO_URL",
    "GCC_URL",
    "TEMPLATES_DIR",
    "BuildConfig",
]


# =============================================================================
# Static Configuration
# =============================================================================

STATIC_CONFIG_PATH = Path(__file__).parent / "builder.yaml"
TEMPLATES_DIR = Path(__file__).parent / "templates"


@lru_cache(maxsize=1)
def load_static_config() -> dict[str, Any]:
    """Load and return the parsed builder.yaml.

    Result is cached for the lifetime of the process.
    """
    with open(STATIC_CONFIG_PATH, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


_SIZE_UNITS = {
    "": 1, "b": 1,
    "k": 1024, "kb": 1024,
    "m": 1024 ** 2, "mb": 1024 ** 2,
    "g": 1024 ** 3, "gb": 1024 ** 3,
}


def parse_size(value: str) -> int:
    """Convert a human size like "10mb" into bytes."""
    match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*([kmg]?b?)\s*", str(value).lower())
    if not match:
        raise ValueError(f"Invalid size: {value!r}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit])


_static = load_static_config()

# Exported as the builder's `config` (mirrors what the platform reads)
CONFIG: dict[str, Any] = dict(_static["config"])
MAX_LAMBDA_SIZE = parse_size(CONFIG["max_lambda_size"])

HANDLER_FILENAME: str = _static["lambda"]["handler"]
RUNTIME: str = _static["lambda"]["runtime"]

TARGET_GOOS: str = _static["target"]["goos"]
TARGET_GOARCH: str = _static["target"]["goarch"]

RESERVED_PACKAGE: str = _static["reserved_package"]

LEGACY_WRAPPER_NAME: str = _static["wrappers"]["legacy"]
MODULE_WRAPPER_NAME: str = _static["wrappers"]["module"]

PACKAGE_PLACEHOLDER: str = _static["placeholders"]["package"]
FUNCTION_PLACEHOLDER: str = _static["placeholders"]["function"]

MANIFEST_NAME: str = _static["manifest"]

GO_URL: str = _static["toolchain"]["go_url"]
GCC_URL: str = _static["toolchain"]["gcc_url"]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class BuildConfig:
    """Per-build knobs. Everything defaults to the platform behavior."""

    go_bin: Optional[Path] = None  # Use this `go` instead of downloading one
    git_bin: Optional[Path] = None  # Use this `git` instead of searching PATH
    analyzer: Optional[Path] = None  # Prebuilt handler-discovery binary
    cgo: bool = False  # Fetch gcc and build with CGO_ENABLED=1
    timeout: Optional[float] = None  # Per-subprocess timeout in seconds
    work_dir: Optional[Path] = None  # Parent for scratch directories
    verbose: bool = False
