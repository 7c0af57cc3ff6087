"""
File set utilities: materialize, allocate scratch space, glob.
"""

from __future__ import annotations

import shutil
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Mapping, Optional, Union

from nowgo.errors import DownloadError

DEFAULT_FILE_MODE = 0o100644


@dataclass(frozen=True)
class FileFsRef:
    """A file that already exists on the local filesystem."""

    fs_path: Path
    mode: int = DEFAULT_FILE_MODE
    size: Optional[int] = None

    @classmethod
    def from_path(cls, path: Path) -> "FileFsRef":
        st = path.stat()
        return cls(fs_path=path, mode=st.st_mode, size=st.st_size)


@dataclass(frozen=True)
class FileBlob:
    """In-memory file contents."""

    data: bytes
    mode: int = DEFAULT_FILE_MODE


FileRef = Union[FileFsRef, FileBlob]
# Repository-relative path -> materialized file
DownloadedFileSet = dict[str, FileFsRef]


def _safe_destination(dest: Path, name: str) -> Path:
    rel = PurePosixPath(name)
    if rel.is_absolute() or ".." in rel.parts:
        raise DownloadError(f"Refusing to write {name!r} outside of {dest}")
    return dest.joinpath(*rel.parts)


def download(files: Mapping[str, FileRef], dest: Path) -> DownloadedFileSet:
    """Write every file of ``files`` under ``dest``, keeping modes.

    Returns the downloaded set keyed by the same repository-relative names.
    """
    downloaded: DownloadedFileSet = {}
    for name in sorted(files):
        ref = files[name]
        target = _safe_destination(dest, name)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(ref, FileBlob):
                target.write_bytes(ref.data)
            else:
                shutil.copyfile(ref.fs_path, target)
            target.chmod(stat.S_IMODE(ref.mode))
        except OSError as e:
            raise DownloadError(f"Failed to download {name!r}: {e}") from e
        downloaded[name] = FileFsRef.from_path(target)
    return downloaded


def get_writable_directory(parent: Optional[Path] = None) -> Path:
    """Allocate a fresh scratch directory owned by this build."""
    if parent is not None:
        parent.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix="nowgo-", dir=parent))


def glob(pattern: str, base: Path) -> dict[str, FileFsRef]:
    """Collect regular files under ``base`` matching ``pattern``.

    Keys are POSIX paths relative to ``base``.
    """
    found: dict[str, FileFsRef] = {}
    for path in sorted(base.glob(pattern)):
        if path.is_file():
            found[path.relative_to(base).as_posix()] = FileFsRef.from_path(path)
    return found
