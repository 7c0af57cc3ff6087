"""
Deployable function bundle.

Zips a file manifest into a Lambda-style artifact and enforces the
maximum bundle size.
"""

from __future__ import annotations

import io
import stat
import zipfile
from dataclasses import dataclass, field
from typing import Mapping, Optional

from nowgo.build.config import MAX_LAMBDA_SIZE
from nowgo.core.fs import FileFsRef
from nowgo.errors import PackagingError

# Fixed timestamp so identical inputs produce identical archives
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True)
class Lambda:
    """A packaged function: zip bytes plus its invocation metadata."""

    zip_buffer: bytes = field(repr=False)
    handler: str
    runtime: str
    environment: dict[str, str] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.zip_buffer)


def create_zip(files: Mapping[str, FileFsRef]) -> bytes:
    """Deterministic zip of ``files`` with unix modes preserved."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name in sorted(files):
            ref = files[name]
            info = zipfile.ZipInfo(name, date_time=_ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = (stat.S_IFREG | stat.S_IMODE(ref.mode)) << 16
            zf.writestr(info, ref.fs_path.read_bytes())
    return buffer.getvalue()


def create_lambda(
    files: Mapping[str, FileFsRef],
    handler: str,
    runtime: str,
    environment: Optional[Mapping[str, str]] = None,
    max_size: int = MAX_LAMBDA_SIZE,
) -> Lambda:
    """Package ``files`` into a Lambda.

    Raises:
        PackagingError: If the handler is missing or the bundle is too big.
    """
    if handler not in files:
        raise PackagingError(f"Handler {handler!r} is not part of the bundle")

    try:
        zip_buffer = create_zip(files)
    except OSError as e:
        raise PackagingError(f"Failed to create bundle: {e}") from e

    if len(zip_buffer) > max_size:
        raise PackagingError(
            f"Bundle is {len(zip_buffer)} bytes, exceeding the {max_size} byte limit"
        )

    return Lambda(
        zip_buffer=zip_buffer,
        handler=handler,
        runtime=runtime,
        environment=dict(environment or {}),
    )
