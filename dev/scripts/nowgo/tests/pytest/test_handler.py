"""
Tests for handler discovery: analyzer output parsing and invocation.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from nowgo.build.handler import (
    HandlerDescriptor,
    build_analyzer,
    parse_analyzer_output,
    resolve_handler,
)
from nowgo.errors import NoHandlerFoundError, ParseError


# =============================================================================
# Output Parsing
# =============================================================================


@pytest.mark.evergreen
class TestParseAnalyzerOutput:
    """parse_analyzer_output turns "function,package" into a descriptor."""

    def test_parses_pair(self) -> None:
        handler = parse_analyzer_output("index.go", "Handler,main\n")
        assert handler == HandlerDescriptor(function_name="Handler", package_name="main")

    def test_uses_first_line_only(self) -> None:
        handler = parse_analyzer_output("index.go", "Handler,api\nOther,api\n")
        assert handler.function_name == "Handler"
        assert handler.package_name == "api"

    def test_empty_output_means_no_handler(self) -> None:
        with pytest.raises(NoHandlerFoundError) as exc:
            parse_analyzer_output("index.go", "")
        assert exc.value.entrypoint == "index.go"
        assert "index.go" in str(exc.value)

    def test_whitespace_output_means_no_handler(self) -> None:
        with pytest.raises(NoHandlerFoundError):
            parse_analyzer_output("index.go", "  \n")

    def test_empty_function_name_means_no_handler(self) -> None:
        with pytest.raises(NoHandlerFoundError):
            parse_analyzer_output("index.go", ",main\n")

    def test_missing_package_is_parse_error(self) -> None:
        with pytest.raises(ParseError):
            parse_analyzer_output("index.go", "Handler\n")

    def test_extra_fields_are_parse_error(self) -> None:
        with pytest.raises(ParseError):
            parse_analyzer_output("index.go", "Handler,main,extra\n")

    def test_function_name_syntax_not_validated(self) -> None:
        handler = parse_analyzer_output("index.go", "not-a-go-name,main")
        assert handler.function_name == "not-a-go-name"


# =============================================================================
# Analyzer Invocation
# =============================================================================


@pytest.mark.evergreen
class TestResolveHandler:
    """resolve_handler runs the analyzer and maps its failures."""

    def test_success(self, tmp_path: Path, make_analyzer) -> None:
        analyzer = make_analyzer("Handler,api")
        source = tmp_path / "index.go"
        source.write_text("package api\n")

        handler = resolve_handler("index.go", source, analyzer)

        assert handler == HandlerDescriptor("Handler", "api")

    def test_nonzero_exit_is_parse_error(self, tmp_path: Path, make_analyzer) -> None:
        analyzer = make_analyzer("", code=3)
        with pytest.raises(ParseError) as exc:
            resolve_handler("api/index.go", tmp_path / "index.go", analyzer)
        assert exc.value.entrypoint == "api/index.go"
        assert "status 3" in exc.value.reason

    def test_missing_analyzer_is_parse_error(self, tmp_path: Path) -> None:
        with pytest.raises(ParseError) as exc:
            resolve_handler("index.go", tmp_path / "index.go", tmp_path / "missing")
        assert "could not run" in exc.value.reason

    def test_empty_output_is_no_handler(self, tmp_path: Path, make_analyzer) -> None:
        analyzer = make_analyzer("")
        with pytest.raises(NoHandlerFoundError):
            resolve_handler("index.go", tmp_path / "index.go", analyzer)


@pytest.mark.evergreen
class TestBuildAnalyzer:
    """build_analyzer compiles the bundled analyze.go."""

    def test_returns_binary_path(self, tmp_path: Path, fake_go) -> None:
        out_dir = tmp_path / "analyzer"
        out_dir.mkdir()

        target = build_analyzer("index.go", fake_go.path, out_dir, env={"PATH": "/usr/bin:/bin"})

        assert target == out_dir / "analyze"
        assert target.exists()
        args = fake_go.calls()[0][2]
        assert args.startswith(f"build -o {target} ")
        assert args.endswith("analyze.go")

    def test_compile_failure_is_parse_error(self, tmp_path: Path, make_fake_go) -> None:
        go = make_fake_go(build_exit=1)
        with pytest.raises(ParseError) as exc:
            build_analyzer("index.go", go.path, tmp_path, env={"PATH": "/usr/bin:/bin"})
        assert "could not build analyzer" in exc.value.reason
