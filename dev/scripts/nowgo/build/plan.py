"""
Build plan selection.

The one decision of the build: a legacy GOPATH build when the handler
lives in package `main`, a module-aware build otherwise. Selection reads
files but never writes them.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from nowgo.build.config import (
    FUNCTION_PLACEHOLDER,
    LEGACY_WRAPPER_NAME,
    MANIFEST_NAME,
    MODULE_WRAPPER_NAME,
    PACKAGE_PLACEHOLDER,
    RESERVED_PACKAGE,
    TEMPLATES_DIR,
)
from nowgo.build.handler import HandlerDescriptor
from nowgo.errors import TransformError

LEGACY_TEMPLATE = TEMPLATES_DIR / "main.go"
MODULE_TEMPLATE = TEMPLATES_DIR / "main__mod__.go"


@dataclass(frozen=True)
class LegacyPlan:
    """Wrapper sits next to the user file; both are compiled together."""

    wrapper_file_name: str
    wrapper_contents: str


@dataclass(frozen=True)
class ModulePlan:
    """Wrapper imports the user package from a go.mod-rooted module."""

    package_name: str
    wrapper_file_name: str
    wrapper_contents: str
    manifest_exists: bool


BuildPlan = Union[LegacyPlan, ModulePlan]


def read_module_root(manifest_path: Path) -> str:
    """Return the path of the first `module` directive in a go.mod.

    Blank lines, `//` comments and other directives are skipped.
    """
    for line in manifest_path.read_text(encoding="utf-8").splitlines():
        directive = line.split("//", 1)[0].split()
        if len(directive) >= 2 and directive[0] == "module":
            return directive[1].strip('"')
    raise ValueError(f"{manifest_path} has no module directive")


def render_legacy_wrapper(handler: HandlerDescriptor, template: str) -> str:
    return template.replace(FUNCTION_PLACEHOLDER, handler.function_name)


def render_module_wrapper(handler: HandlerDescriptor, template: str, import_path: str) -> str:
    return (
        template
        .replace(PACKAGE_PLACEHOLDER, import_path)
        .replace(FUNCTION_PLACEHOLDER, f"{handler.package_name}.{handler.function_name}")
    )


def select_plan(
    handler: HandlerDescriptor,
    entry_dir: Path,
    manifest_exists: Optional[Callable[[Path], bool]] = None,
) -> BuildPlan:
    """Pick the build strategy for ``handler`` located in ``entry_dir``.

    ``manifest_exists`` defaults to a plain existence check and can be
    swapped out in tests.
    """
    if handler.package_name == RESERVED_PACKAGE:
        template = LEGACY_TEMPLATE.read_text(encoding="utf-8")
        return LegacyPlan(
            wrapper_file_name=LEGACY_WRAPPER_NAME,
            wrapper_contents=render_legacy_wrapper(handler, template),
        )

    manifest_path = entry_dir / MANIFEST_NAME
    check = manifest_exists or (lambda p: p.exists())
    has_manifest = check(manifest_path)

    if has_manifest:
        try:
            module_root = read_module_root(manifest_path)
        except (OSError, ValueError) as e:
            raise TransformError(manifest_path, str(e)) from e
        import_path = f"{module_root}/{handler.package_name}"
    else:
        import_path = f"{handler.package_name}/{handler.package_name}"

    template = MODULE_TEMPLATE.read_text(encoding="utf-8")
    return ModulePlan(
        package_name=handler.package_name,
        wrapper_file_name=MODULE_WRAPPER_NAME,
        wrapper_contents=render_module_wrapper(handler, template, import_path),
        manifest_exists=has_manifest,
    )
