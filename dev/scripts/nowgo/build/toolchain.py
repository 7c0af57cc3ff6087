"""
Go toolchain driver.

Issues `go mod init`, `go get` and `go build` with inherited stdio and maps
each failure onto its stage error. Nothing is retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from nowgo.build.config import HANDLER_FILENAME
from nowgo.build.plan import BuildPlan, LegacyPlan, ModulePlan
from nowgo.core.utils import log, run_tool
from nowgo.errors import CompileError, DependencyResolutionError, ManifestInitError


@dataclass(frozen=True)
class GoToolchain:
    """A `go` binary plus the per-call timeout."""

    go_bin: Path
    timeout: Optional[float] = None

    def mod_init(self, cwd: Path, module: str, env: Mapping[str, str]) -> None:
        """Run `go mod init <module>` in ``cwd``."""
        log.info(f"Initializing go module {module!r}")
        result = run_tool(
            [self.go_bin, "mod", "init", module], cwd=cwd, env=env, timeout=self.timeout
        )
        if not result.ok:
            log.error("Failed to initialize `go mod`")
            raise ManifestInitError(cwd, result.describe_failure())

    def get(self, cwd: Path, env: Mapping[str, str]) -> None:
        """Run `go get`, fetching every non-stdlib import under ``cwd``."""
        log.info("Installing dependencies")
        result = run_tool([self.go_bin, "get"], cwd=cwd, env=env, timeout=self.timeout)
        if not result.ok:
            log.error("Failed to `go get`")
            raise DependencyResolutionError(
                cwd, result.describe_failure(), command=result.command_line
            )

    def build(
        self,
        cwd: Path,
        env: Mapping[str, str],
        output: Path,
        sources: list[Path],
    ) -> Path:
        """Run `go build -o <output> <sources...>` and return ``output``."""
        log.info("Running go build...")
        result = run_tool(
            [self.go_bin, "build", "-o", output, *sources],
            cwd=cwd,
            env=env,
            timeout=self.timeout,
        )
        if not result.ok:
            log.error("Failed to `go build`")
            raise CompileError(cwd, result.describe_failure(), command=result.command_line)
        return output


def compile_plan(
    toolchain: GoToolchain,
    plan: BuildPlan,
    entry_dir: Path,
    entry_path: Path,
    out_dir: Path,
    env: Mapping[str, str],
) -> Path:
    """Fetch dependencies and compile the transformed entry directory.

    ``entry_path`` is the user's file at its original location; only the
    legacy build passes it to the compiler, since the module build reaches
    it through the wrapper's import.
    """
    if isinstance(plan, LegacyPlan):
        sources = [entry_dir / plan.wrapper_file_name, entry_path]
    elif isinstance(plan, ModulePlan):
        sources = [entry_dir / plan.wrapper_file_name]
    else:
        raise TypeError(f"Unknown build plan: {plan!r}")

    toolchain.get(entry_dir, env)
    return toolchain.build(entry_dir, env, out_dir / HANDLER_FILENAME, sources)
