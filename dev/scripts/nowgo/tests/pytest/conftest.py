"""
Shared pytest fixtures for nowgo tests.

Provides stand-in `go`, `git` and analyzer executables (small shell
scripts) so the pipeline can run end to end without a real toolchain.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
  @pytest.mark.dev       - Development/WIP tests, toggle-able
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pytest

from nowgo.core.fs import FileBlob
from nowgo.core.utils import log


# =============================================================================
# Test Data Constants
# =============================================================================

HANDLER_SOURCE = """package {package}

import (
\t"fmt"
\t"net/http"
)

func Handler(w http.ResponseWriter, r *http.Request) {{
\tfmt.Fprintf(w, "hello")
}}
"""


def go_source(package: str = "main") -> bytes:
    return HANDLER_SOURCE.format(package=package).encode()


# =============================================================================
# Script Helpers
# =============================================================================


def write_script(path: Path, body: str) -> Path:
    """Write an executable /bin/sh script."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(0o755)
    return path


@dataclass
class FakeGo:
    """A fake `go` binary that records each invocation."""

    path: Path
    log_path: Path

    def calls(self) -> list[tuple[str, str, str]]:
        """Return (cwd, GO111MODULE, args) per invocation."""
        if not self.log_path.exists():
            return []
        rows = []
        for line in self.log_path.read_text().splitlines():
            cwd, module_mode, args = line.split("|", 2)
            rows.append((cwd, module_mode, args))
        return rows

    def subcommands(self) -> list[str]:
        return [args.split(" ")[0] if args else "" for _, _, args in self.calls()]


def _fake_go_script(log_path: Path, mod_exit: int, get_exit: int, build_exit: int) -> str:
    return f"""\
printf '%s|%s|%s\\n' "$PWD" "${{GO111MODULE:-off}}" "$*" >> "{log_path}"
case "$1" in
  mod)
    if [ {mod_exit} -ne 0 ]; then exit {mod_exit}; fi
    printf 'module %s\\n\\ngo 1.12\\n' "$3" > go.mod
    ;;
  get)
    exit {get_exit}
    ;;
  build)
    if [ {build_exit} -ne 0 ]; then echo "build failed" >&2; exit {build_exit}; fi
    printf '#!/bin/sh\\necho handler\\n' > "$3"
    chmod +x "$3"
    ;;
esac
exit 0
"""


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )
    config.addinivalue_line(
        "markers",
        "dev: development/WIP tests, toggle-able for active development"
    )


@pytest.fixture(autouse=True)
def _plain_logger() -> None:
    """Keep captured output free of ANSI codes."""
    log.set_color(False)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def make_fake_go(tmp_path: Path) -> Callable[..., FakeGo]:
    """Factory for fake `go` binaries with configurable exit codes."""
    counter = {"n": 0}

    def _make(mod_exit: int = 0, get_exit: int = 0, build_exit: int = 0) -> FakeGo:
        counter["n"] += 1
        base = tmp_path / f"fakego{counter['n']}"
        log_path = base / "calls.log"
        script = write_script(
            base / "bin" / "go",
            _fake_go_script(log_path, mod_exit, get_exit, build_exit),
        )
        return FakeGo(path=script, log_path=log_path)

    return _make


@pytest.fixture
def fake_go(make_fake_go: Callable[..., FakeGo]) -> FakeGo:
    return make_fake_go()


@pytest.fixture
def make_analyzer(tmp_path: Path) -> Callable[..., Path]:
    """Factory for analyzer scripts printing ``output`` and exiting ``code``."""
    counter = {"n": 0}

    def _make(output: str = "Handler,main", code: int = 0) -> Path:
        counter["n"] += 1
        body = ""
        if output:
            body += f"printf '%s\\n' '{output}'\n"
        body += f"exit {code}\n"
        return write_script(tmp_path / f"analyzer{counter['n']}" / "analyze", body)

    return _make


@pytest.fixture
def fake_git(tmp_path: Path) -> Path:
    """A `git` that only knows `--exec-path`."""
    exec_path = tmp_path / "git-core"
    exec_path.mkdir()
    return write_script(
        tmp_path / "gitbin" / "git",
        f'if [ "$1" = "--exec-path" ]; then echo "{exec_path}"; exit 0; fi\nexit 1\n',
    )


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def main_files() -> dict[str, FileBlob]:
    """A project whose handler lives in package main."""
    return {"index.go": FileBlob(go_source("main"))}


@pytest.fixture
def source_for() -> Callable[[str], bytes]:
    """Go source of a handler declared in the given package."""
    return go_source
