"""
Tests for toolchain environment construction.

Validates the fixed target overrides, module-mode flag, determinism and
merging of acquired tool contributions.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nowgo.build.environment import (
    ToolEnv,
    build_go_env,
    build_host_env,
    combine_tool_envs,
    prepend_path,
)

AMBIENT = {"HOME": "/home/user", "PATH": "/usr/bin:/bin", "GOOS": "darwin"}


# =============================================================================
# build_go_env
# =============================================================================


@pytest.mark.evergreen
class TestBuildGoEnv:
    """build_go_env injects target platform and GOPATH."""

    def test_sets_target_platform(self) -> None:
        env = build_go_env(AMBIENT, "/tmp/gopath", module_mode=False)
        assert env["GOOS"] == "linux"
        assert env["GOARCH"] == "amd64"
        assert env["GOPATH"] == "/tmp/gopath"

    def test_inherits_ambient(self) -> None:
        env = build_go_env(AMBIENT, "/tmp/gopath", module_mode=False)
        assert env["HOME"] == "/home/user"
        assert env["PATH"] == "/usr/bin:/bin"

    def test_legacy_mode_has_no_module_flag(self) -> None:
        env = build_go_env(AMBIENT, "/tmp/gopath", module_mode=False)
        assert "GO111MODULE" not in env

    def test_legacy_mode_drops_inherited_module_flag(self) -> None:
        ambient = {**AMBIENT, "GO111MODULE": "on"}

        legacy = build_go_env(ambient, "/tmp/gopath", module_mode=False)
        module = build_go_env(ambient, "/tmp/gopath", module_mode=True)

        assert "GO111MODULE" not in legacy
        assert module["GO111MODULE"] == "on"
        assert ambient["GO111MODULE"] == "on"

    def test_module_mode_adds_only_module_flag(self) -> None:
        legacy = build_go_env(AMBIENT, "/tmp/gopath", module_mode=False)
        module = build_go_env(AMBIENT, "/tmp/gopath", module_mode=True)
        assert module["GO111MODULE"] == "on"
        assert set(module) - set(legacy) == {"GO111MODULE"}
        assert all(module[k] == v for k, v in legacy.items())

    def test_deterministic(self) -> None:
        first = build_go_env(AMBIENT, Path("/tmp/gopath"), module_mode=True)
        second = build_go_env(AMBIENT, Path("/tmp/gopath"), module_mode=True)
        assert list(first.items()) == list(second.items())

    def test_result_is_read_only(self) -> None:
        env = build_go_env(AMBIENT, "/tmp/gopath", module_mode=False)
        with pytest.raises(TypeError):
            env["GOOS"] = "windows"  # type: ignore[index]

    def test_does_not_mutate_ambient(self) -> None:
        ambient = dict(AMBIENT)
        build_go_env(ambient, "/tmp/gopath", module_mode=True)
        assert ambient == AMBIENT

    def test_extra_cannot_override_target(self) -> None:
        env = build_go_env(AMBIENT, "/tmp/gopath", False, extra={"GOARCH": "arm", "CPATH": "/x"})
        assert env["GOARCH"] == "amd64"
        assert env["CPATH"] == "/x"


# =============================================================================
# Host env and tool merging
# =============================================================================


@pytest.mark.evergreen
class TestToolEnvs:
    """Tool contributions merge into one PATH plus variables."""

    def test_prepend_path(self) -> None:
        assert prepend_path(AMBIENT, "/a", Path("/b")) == "/a:/b:/usr/bin:/bin"

    def test_prepend_path_without_ambient_path(self) -> None:
        assert prepend_path({}, "/a") == "/a"

    def test_combine_merges_path_dirs_in_order(self) -> None:
        git = ToolEnv(path=(Path("/git/bin"),), variables={"GIT_EXEC_PATH": "/git/core"})
        gcc = ToolEnv(path=(Path("/gcc/bin"),), variables={"CGO_ENABLED": "1"})
        extra = combine_tool_envs(AMBIENT, [git, gcc])
        assert extra["PATH"] == "/git/bin:/gcc/bin:/usr/bin:/bin"
        assert extra["GIT_EXEC_PATH"] == "/git/core"
        assert extra["CGO_ENABLED"] == "1"

    def test_combine_nothing(self) -> None:
        assert combine_tool_envs(AMBIENT, []) == {}

    def test_host_env_keeps_host_platform(self) -> None:
        env = build_host_env(AMBIENT, "/tmp/gopath")
        assert env["GOOS"] == "darwin"
        assert env["GOPATH"] == "/tmp/gopath"
