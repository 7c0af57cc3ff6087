"""
Build orchestrator for Go serverless functions.

Runs download, handler discovery, plan selection, source transformation,
compilation and packaging in order, with per-phase timing.
"""

from __future__ import annotations

import argparse
import concurrent.futures
import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, Optional

from nowgo.build.acquire import download_gcc, download_git, download_go_bin
from nowgo.build.assemble import Packager, assemble
from nowgo.build.bundle import create_lambda
from nowgo.build.config import BuildConfig
from nowgo.build.environment import (
    ToolEnv,
    build_go_env,
    build_host_env,
    combine_tool_envs,
)
from nowgo.build.handler import HandlerDescriptor, build_analyzer, resolve_handler
from nowgo.build.plan import BuildPlan, LegacyPlan, select_plan
from nowgo.build.toolchain import GoToolchain, compile_plan
from nowgo.build.transform import apply_plan
from nowgo.core.fs import (
    DownloadedFileSet,
    FileRef,
    download,
    get_writable_directory,
    glob,
)
from nowgo.core.utils import log
from nowgo.errors import BuildError, DownloadError


# =============================================================================
# Go Path
# =============================================================================


def create_go_path_tree(go_path: Path) -> Path:
    """Create the `$GOPATH` layout described by `go help gopath`.

    Returns the directory user sources are placed in.
    """
    (go_path / "bin").mkdir(parents=True, exist_ok=True)
    (go_path / "pkg" / "linux_amd64").mkdir(parents=True, exist_ok=True)
    src_path = go_path / "src" / "lambda"
    src_path.mkdir(parents=True, exist_ok=True)
    return src_path


# =============================================================================
# Build Orchestrator
# =============================================================================


class BuildOrchestrator:
    """Builds one entry point of a file set into a deployable function."""

    def __init__(
        self,
        files: Mapping[str, FileRef],
        entrypoint: str,
        config: Optional[BuildConfig] = None,
        packager: Packager = create_lambda,
        ambient: Optional[Mapping[str, str]] = None,
    ):
        self.files = files
        self.entrypoint = entrypoint
        self.config = config or BuildConfig()
        self.packager = packager
        # Snapshot so later changes to os.environ cannot leak into this build
        self.ambient: dict[str, str] = dict(os.environ if ambient is None else ambient)

        self.go_path: Optional[Path] = None
        self.src_path: Optional[Path] = None
        self.out_dir: Optional[Path] = None
        self.downloaded: DownloadedFileSet = {}
        self.go_bin: Optional[Path] = None
        self.tool_envs: list[ToolEnv] = []
        self.handler: Optional[HandlerDescriptor] = None
        self.plan: Optional[BuildPlan] = None

        self._phase_timings: dict[str, float] = {}
        self._current_phase: str = ""

    @contextmanager
    def _phase(self, name: str) -> Iterator[None]:
        """Run one build phase, recording its duration even if it fails."""
        self._current_phase = name
        start = time.time()
        try:
            yield
        finally:
            self._phase_timings[name] = round(time.time() - start, 3)

    @property
    def phase_timings(self) -> dict[str, float]:
        return dict(self._phase_timings)

    def phase_summary(self) -> str:
        """One line of per-phase durations, e.g. "acquire: 1.2s | ... | total: 3.4s"."""
        if not self._phase_timings:
            return "(no timing data)"
        parts = [f"{name}: {seconds:.1f}s" for name, seconds in self._phase_timings.items()]
        parts.append(f"total: {sum(self._phase_timings.values()):.1f}s")
        return " | ".join(parts)

    def _scratch(self) -> Path:
        return get_writable_directory(self.config.work_dir)

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def prepare_directories(self) -> None:
        """Allocate this build's scratch directories."""
        self.go_path = self._scratch()
        self.out_dir = self._scratch()
        self.src_path = create_go_path_tree(self.go_path)

    def acquire(self) -> None:
        """Download the file set and the toolchain concurrently."""
        log.info("Downloading files...")
        jobs: dict[str, Callable[[], Any]] = {
            "files": lambda: download(self.files, self.src_path),
            "git": lambda: download_git(self._scratch(), self.ambient, self.config.git_bin),
        }
        if self.config.go_bin is None:
            jobs["go"] = lambda: download_go_bin(self._scratch())
        if self.config.cgo:
            jobs["gcc"] = lambda: download_gcc(self._scratch(), self.ambient)

        results: dict[str, Any] = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(jobs)) as executor:
            futures = {executor.submit(job): name for name, job in jobs.items()}
            for future in concurrent.futures.as_completed(futures):
                name = futures[future]
                try:
                    results[name] = future.result()
                except BuildError:
                    raise
                except OSError as e:
                    raise DownloadError(f"Failed to acquire {name}: {e}") from e

        self.downloaded = results["files"]
        self.go_bin = self.config.go_bin or results["go"]
        self.tool_envs = [results["git"]]
        if "gcc" in results:
            self.tool_envs.append(results["gcc"])

        if self.entrypoint not in self.downloaded:
            raise DownloadError(f'Entrypoint "{self.entrypoint}" is not part of the file set')

    def find_handler(self) -> HandlerDescriptor:
        """Discover the exported handler of the entry point."""
        extra = combine_tool_envs(self.ambient, self.tool_envs)
        host_env = build_host_env(self.ambient, self.go_path, extra)

        analyzer = self.config.analyzer
        if analyzer is None:
            analyzer = build_analyzer(
                self.entrypoint, self.go_bin, self._scratch(), host_env, self.config.timeout
            )

        return resolve_handler(
            self.entrypoint,
            self.downloaded[self.entrypoint].fs_path,
            analyzer,
            env=host_env,
            timeout=self.config.timeout,
        )

    def build_environment(self, plan: BuildPlan) -> Mapping[str, str]:
        extra = combine_tool_envs(self.ambient, self.tool_envs)
        module_mode = not isinstance(plan, LegacyPlan)
        return build_go_env(self.ambient, self.go_path, module_mode, extra)

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self) -> dict[str, Any]:
        """Run the full build and return ``{entrypoint: lambda}``."""
        build_start = time.time()
        log.header(f'Building "{self.entrypoint}"')

        try:
            with self._phase("prepare"):
                self.prepare_directories()

            with self._phase("acquire"):
                self.acquire()

            entry_path = self.downloaded[self.entrypoint].fs_path
            # `go build` refuses to build files from different directories,
            # so the wrapper goes next to the entry point
            entry_dir = entry_path.parent

            with self._phase("analyze"):
                self.handler = self.find_handler()

            self.plan = select_plan(self.handler, entry_dir)
            env = self.build_environment(self.plan)
            toolchain = GoToolchain(self.go_bin, timeout=self.config.timeout)
            mode = "legacy" if isinstance(self.plan, LegacyPlan) else "module"
            log.info(f"Build mode: {mode} (package {self.handler.package_name!r})")

            with self._phase("transform"):
                apply_plan(self.plan, entry_path, toolchain, env)

            with self._phase("compile"):
                compile_plan(toolchain, self.plan, entry_dir, entry_path, self.out_dir, env)

            with self._phase("package"):
                result = assemble(self.entrypoint, self.out_dir, self.packager)

        except BuildError as e:
            log.error(f"Build failed during {self._current_phase}: {e}")
            raise

        log.success(f'Built "{self.entrypoint}" in {time.time() - build_start:.1f}s')
        if self.config.verbose:
            log.dim(self.phase_summary())
        return result


def build(
    files: Mapping[str, FileRef],
    entrypoint: str,
    config: Optional[BuildConfig] = None,
    packager: Packager = create_lambda,
) -> dict[str, Any]:
    """Build ``entrypoint`` from ``files`` into a deployable function."""
    return BuildOrchestrator(files, entrypoint, config, packager).run()


# =============================================================================
# CLI
# =============================================================================


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="nowgo-build",
        description="Build a Go source file into a serverless function bundle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    nowgo-build . api/index.go                    # Build using a downloaded Go
    nowgo-build . index.go --go-bin $(which go)   # Use the local toolchain
    nowgo-build . index.go --out dist --verbose   # Write dist/index.zip
        """,
    )

    parser.add_argument("project_dir", help="Project directory holding the sources")
    parser.add_argument("entrypoint", help="Entry point path relative to project_dir")

    parser.add_argument(
        "--out",
        default=".",
        help="Directory to write the bundle to (default: current directory)",
    )
    parser.add_argument(
        "--go-bin",
        type=Path,
        help="Use this go binary instead of downloading one. Builds of package main "
        "run in GOPATH mode without GO111MODULE, so they need a go older than 1.16",
    )
    parser.add_argument("--git-bin", type=Path, help="Use this git binary (default: from PATH)")
    parser.add_argument("--analyzer", type=Path, help="Prebuilt handler analyzer binary")
    parser.add_argument("--cgo", action="store_true", help="Fetch gcc and build with cgo enabled")
    parser.add_argument("--timeout", type=float, help="Timeout in seconds for each toolchain call")
    parser.add_argument("--work-dir", type=Path, help="Parent directory for scratch directories")

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output (phase timings, tracebacks)",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    return parser.parse_args(argv)


def bundle_name(entrypoint: str) -> str:
    """File name for the bundle of ``entrypoint``: api/index.go -> api_index.zip."""
    stem = Path(entrypoint).with_suffix("").as_posix()
    return stem.replace("/", "_") + ".zip"


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.no_color:
        log.set_color(False)

    project_root = Path(args.project_dir).resolve()

    try:
        config = BuildConfig(
            go_bin=args.go_bin,
            git_bin=args.git_bin,
            analyzer=args.analyzer,
            cgo=args.cgo,
            timeout=args.timeout,
            work_dir=args.work_dir,
            verbose=args.verbose,
        )

        files = glob("**/*", project_root)
        result = build(files, args.entrypoint, config)

        out_dir = Path(args.out)
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / bundle_name(args.entrypoint)
        target.write_bytes(result[args.entrypoint].zip_buffer)
        log.success(f"Wrote {target}")

        return 0

    except KeyboardInterrupt:
        log.warning("Build interrupted")
        return 130
    except Exception as e:
        log.error(str(e))
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
