"""
Handler discovery.

Runs the analyzer on the entry point and turns its one-line
"<function>,<package>" output into a HandlerDescriptor.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from nowgo.build.config import TEMPLATES_DIR
from nowgo.core.utils import log, run_tool
from nowgo.errors import NoHandlerFoundError, ParseError

ANALYZER_SOURCE = TEMPLATES_DIR / "analyze.go"
ANALYZER_BINARY = "analyze"


@dataclass(frozen=True)
class HandlerDescriptor:
    """Exported handler function and the package that declares it."""

    function_name: str
    package_name: str


def parse_analyzer_output(entrypoint: str, stdout: str) -> HandlerDescriptor:
    """Parse analyzer stdout.

    Raises:
        NoHandlerFoundError: If the analyzer printed nothing.
        ParseError: If the first line is not a "function,package" pair.
    """
    if stdout.strip() == "":
        raise NoHandlerFoundError(entrypoint)

    first_line = stdout.strip().splitlines()[0]
    fields = first_line.split(",")
    if len(fields) != 2:
        raise ParseError(entrypoint, f"unexpected analyzer output {first_line!r}")

    function_name, package_name = (f.strip() for f in fields)
    if not function_name:
        raise NoHandlerFoundError(entrypoint)
    if not package_name:
        raise ParseError(entrypoint, f"no package name in analyzer output {first_line!r}")

    return HandlerDescriptor(function_name=function_name, package_name=package_name)


def resolve_handler(
    entrypoint: str,
    source_path: Path,
    analyzer: Path,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> HandlerDescriptor:
    """Discover the exported handler of ``source_path``."""
    log.info(f'Parsing AST for "{entrypoint}"')
    result = run_tool([analyzer, source_path], env=env, capture=True, timeout=timeout)

    if not result.ok:
        log.error(f'Failed to parse AST for "{entrypoint}"')
        raise ParseError(entrypoint, result.describe_failure())

    handler = parse_analyzer_output(entrypoint, result.stdout)
    log.success(f'Found exported function "{handler.function_name}" on "{entrypoint}"')
    return handler


def build_analyzer(
    entrypoint: str,
    go_bin: Path,
    out_dir: Path,
    env: Mapping[str, str],
    timeout: Optional[float] = None,
) -> Path:
    """Compile the bundled analyze.go with the build's own toolchain.

    Failure to produce the analyzer is reported as a ParseError for the
    entry point, since discovery cannot proceed without it.
    """
    target = out_dir / ANALYZER_BINARY
    log.info("Compiling handler analyzer...")
    result = run_tool(
        [go_bin, "build", "-o", target, ANALYZER_SOURCE],
        cwd=out_dir,
        env=env,
        capture=True,
        timeout=timeout,
    )
    if not result.ok:
        raise ParseError(entrypoint, f"could not build analyzer: {result.describe_failure()}")
    return target
