"""
Source transformation.

Materializes a BuildPlan in the entry directory: go.mod initialization,
wrapper file synthesis and relocation of the user's entry file.
"""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from nowgo.build.config import (
    FUNCTION_PLACEHOLDER,
    MANIFEST_NAME,
    PACKAGE_PLACEHOLDER,
)
from nowgo.build.plan import BuildPlan, LegacyPlan, ModulePlan
from nowgo.build.toolchain import GoToolchain
from nowgo.core.utils import log
from nowgo.errors import TransformError

# Any leftover substitution token, including ones added to templates later
_PLACEHOLDER_RE = re.compile(r"__NOW_HANDLER_[A-Z_]+")


@dataclass(frozen=True)
class TransformResult:
    """Where the wrapper ended up and where the user's file lives now."""

    wrapper_path: Path
    entry_path: Path
    manifest_created: bool = False


def unresolved_placeholders(contents: str) -> list[str]:
    """Substitution tokens still present in ``contents``."""
    tokens = set(_PLACEHOLDER_RE.findall(contents))
    tokens.update(t for t in (PACKAGE_PLACEHOLDER, FUNCTION_PLACEHOLDER) if t in contents)
    return sorted(tokens)


def write_wrapper(entry_dir: Path, plan: BuildPlan) -> Path:
    """Write the plan's wrapper file next to the user's entry file."""
    path = entry_dir / plan.wrapper_file_name

    leftover = unresolved_placeholders(plan.wrapper_contents)
    if leftover:
        raise TransformError(path, f"unresolved placeholders {', '.join(leftover)}")

    try:
        path.write_text(plan.wrapper_contents, encoding="utf-8")
    except OSError as e:
        raise TransformError(path, str(e)) from e

    log.dim(plan.wrapper_contents)
    return path


def relocate_entry(entry_path: Path, package_name: str) -> Path:
    """Move the user's file into ``<entry dir>/<package>/``."""
    target = entry_path.parent / package_name / entry_path.name
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(entry_path), str(target))
    except OSError as e:
        log.error("Failed to move entry to package folder")
        raise TransformError(entry_path, str(e)) from e
    return target


def ensure_manifest(
    entry_dir: Path,
    module: str,
    toolchain: GoToolchain,
    env: Mapping[str, str],
) -> bool:
    """Run `go mod init` unless a go.mod is already present.

    Returns True when a manifest was created.
    """
    if (entry_dir / MANIFEST_NAME).exists():
        return False
    toolchain.mod_init(entry_dir, module, env)
    return True


def apply_plan(
    plan: BuildPlan,
    entry_path: Path,
    toolchain: GoToolchain,
    env: Mapping[str, str],
) -> TransformResult:
    """Lay out the entry directory the way ``plan`` requires."""
    entry_dir = entry_path.parent

    if isinstance(plan, LegacyPlan):
        # User code may own `main.go`, so the wrapper uses another name
        wrapper = write_wrapper(entry_dir, plan)
        return TransformResult(wrapper_path=wrapper, entry_path=entry_path)

    if isinstance(plan, ModulePlan):
        created = False
        if not plan.manifest_exists:
            created = ensure_manifest(entry_dir, plan.package_name, toolchain, env)
        wrapper = write_wrapper(entry_dir, plan)
        moved = relocate_entry(entry_path, plan.package_name)
        return TransformResult(wrapper_path=wrapper, entry_path=moved, manifest_created=created)

    raise TypeError(f"Unknown build plan: {plan!r}")
