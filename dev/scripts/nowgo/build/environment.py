"""
Toolchain environment construction.

Builds the environment handed to every `go` subprocess. Nothing here
touches os.environ.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from nowgo.build.config import TARGET_GOARCH, TARGET_GOOS


def build_go_env(
    ambient: Mapping[str, str],
    go_path: Union[str, Path],
    module_mode: bool,
    extra: Optional[Mapping[str, str]] = None,
) -> Mapping[str, str]:
    """Return a read-only environment for one toolchain invocation.

    Order: ambient variables, then ``extra`` (git/gcc paths), then the
    fixed GOOS/GOARCH/GOPATH overrides, then GO111MODULE=on in module mode.
    Legacy mode drops any inherited GO111MODULE.
    """
    env: dict[str, str] = dict(ambient)
    if extra:
        env.update(extra)
    env["GOOS"] = TARGET_GOOS
    env["GOARCH"] = TARGET_GOARCH
    env["GOPATH"] = str(go_path)
    if module_mode:
        env["GO111MODULE"] = "on"
    else:
        # The GOPATH build must not inherit a module setting from the host
        env.pop("GO111MODULE", None)
    return MappingProxyType(env)


def prepend_path(ambient: Mapping[str, str], *dirs: Union[str, Path]) -> str:
    """PATH value with ``dirs`` placed ahead of the ambient PATH."""
    parts = [str(d) for d in dirs]
    current = ambient.get("PATH")
    if current:
        parts.append(current)
    return ":".join(parts)


@dataclass(frozen=True)
class ToolEnv:
    """Environment contribution of an acquired tool (git, gcc)."""

    path: tuple[Path, ...] = ()
    variables: Mapping[str, str] = field(default_factory=dict)


def combine_tool_envs(ambient: Mapping[str, str], tool_envs: Iterable[ToolEnv]) -> dict[str, str]:
    """Merge tool contributions into one ``extra`` mapping for build_go_env."""
    extra: dict[str, str] = {}
    path_dirs: list[Path] = []
    for tool_env in tool_envs:
        path_dirs.extend(tool_env.path)
        extra.update(tool_env.variables)
    if path_dirs:
        extra["PATH"] = prepend_path(ambient, *path_dirs)
    return extra


def build_host_env(
    ambient: Mapping[str, str],
    go_path: Union[str, Path],
    extra: Optional[Mapping[str, str]] = None,
) -> Mapping[str, str]:
    """Environment for tools that run on the build host (the analyzer).

    Unlike build_go_env this keeps the host GOOS/GOARCH.
    """
    env: dict[str, str] = dict(ambient)
    if extra:
        env.update(extra)
    env["GOPATH"] = str(go_path)
    return MappingProxyType(env)
