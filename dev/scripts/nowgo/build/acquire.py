"""
Toolchain acquisition.

Fetches the Go distribution (and optionally a C toolchain for cgo) into
writable directories and locates a git binary for `go get`.
"""

from __future__ import annotations

import os
import shutil
import tarfile
import urllib.error
import urllib.request
from pathlib import Path
from typing import Mapping, Optional

from nowgo.build.config import GCC_URL, GO_URL
from nowgo.build.environment import ToolEnv
from nowgo.core.utils import log, run_tool, which
from nowgo.errors import DownloadError

DOWNLOAD_TIMEOUT = 300


# =============================================================================
# Archive Handling
# =============================================================================


def fetch_archive(url: str, archive_path: Path) -> Path:
    """Download ``url`` to ``archive_path``."""
    try:
        with urllib.request.urlopen(url, timeout=DOWNLOAD_TIMEOUT) as response:
            with open(archive_path, "wb") as f:
                shutil.copyfileobj(response, f)
    except (urllib.error.URLError, OSError) as e:
        if archive_path.exists():
            archive_path.unlink()
        raise DownloadError(f"Failed to download: {url} ({e})") from e
    return archive_path


def extract_archive(archive_path: Path, dest: Path) -> None:
    """Extract a (gzipped) tarball into ``dest``."""
    try:
        with tarfile.open(archive_path, "r:*") as tar:
            tar.extractall(path=dest, filter="data")
    except (tarfile.TarError, OSError) as e:
        raise DownloadError(f"Failed to extract {archive_path.name}: {e}") from e


def fetch_and_extract(url: str, dest: Path) -> None:
    dest.mkdir(parents=True, exist_ok=True)
    archive_path = dest / Path(url.rsplit("/", 1)[-1] or "archive.tgz").name
    fetch_archive(url, archive_path)
    try:
        extract_archive(archive_path, dest)
    finally:
        archive_path.unlink()


# =============================================================================
# Go
# =============================================================================


def download_go_bin(dest: Path, url: str = GO_URL) -> Path:
    """Fetch the Go distribution into ``dest`` and return the `go` binary."""
    log.info("Downloading go binary...")
    fetch_and_extract(url, dest)

    go_bin = dest / "go" / "bin" / "go"
    if not go_bin.is_file():
        raise DownloadError(f"Go archive from {url} does not contain go/bin/go")
    return go_bin


# =============================================================================
# Git
# =============================================================================


def download_git(
    dest: Path,
    ambient: Mapping[str, str],
    git_bin: Optional[Path] = None,
) -> ToolEnv:
    """Expose a git binary to `go get` through ``dest/bin``."""
    log.info("Locating git binary...")
    source = git_bin or which("git", ambient)
    if source is None or not Path(source).is_file():
        raise DownloadError("No git binary available; `go get` needs one")

    bin_dir = dest / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    link = bin_dir / "git"
    if not link.exists():
        os.symlink(Path(source).resolve(), link)

    result = run_tool([link, "--exec-path"], env=ambient, capture=True)
    if not result.ok:
        raise DownloadError(f"git is not usable: {result.describe_failure()}")

    return ToolEnv(
        path=(bin_dir,),
        variables={"GIT_EXEC_PATH": result.stdout.strip()},
    )


# =============================================================================
# GCC (cgo)
# =============================================================================


def download_gcc(dest: Path, ambient: Mapping[str, str], url: str = GCC_URL) -> ToolEnv:
    """Fetch a C toolchain into ``dest`` and return the variables cgo needs.

    The archive is packaged for AWS Lambda and expects to live in /tmp;
    other destinations work only for relocatable archives.
    """
    log.info("Downloading GCC")
    fetch_and_extract(url, dest)

    ld_library_path = f"{dest / 'lib'}:{dest / 'lib64'}"
    if ambient.get("LD_LIBRARY_PATH"):
        ld_library_path += f":{ambient['LD_LIBRARY_PATH']}"

    return ToolEnv(
        path=(dest / "bin", dest / "sbin"),
        variables={
            "LD_LIBRARY_PATH": ld_library_path,
            "CPATH": str(dest / "include"),
            "LIBRARY_PATH": str(dest / "lib"),
            "CGO_ENABLED": "1",
        },
    )
