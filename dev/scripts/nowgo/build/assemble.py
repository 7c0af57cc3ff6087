"""
Artifact assembly: hand the compiled output to the packaging collaborator.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from nowgo.build.bundle import create_lambda
from nowgo.build.config import HANDLER_FILENAME, RUNTIME
from nowgo.core.fs import glob
from nowgo.core.utils import log

# (files, handler, runtime, environment) -> deployable handle
Packager = Callable[..., Any]


def assemble(entrypoint: str, out_dir: Path, packager: Packager = create_lambda) -> dict[str, Any]:
    """Package everything in ``out_dir`` and key it by ``entrypoint``."""
    files = glob("**/*", out_dir)
    log.info(f"Packaging {len(files)} file(s) from {out_dir}")
    lambda_ = packager(
        files=files,
        handler=HANDLER_FILENAME,
        runtime=RUNTIME,
        environment={},
    )
    return {entrypoint: lambda_}
