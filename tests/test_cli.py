# SPDX-License-Identifier: MIT
"""Tests for bcons CLI."""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from bcons.cli import main, parse_variables, regen_command, setup_logging

HELLO = """
TARGET_NAME = hello
SOURCES = main.c
"""


@pytest.fixture
def hello(tmp_path, write):
    write(tmp_path / "src" / "build.targets", HELLO)
    write(tmp_path / "src" / "main.c", "int main(void) { return 0; }\n")
    return tmp_path / "src"


def run(description: Path, build_dir: Path, *extra: str) -> int:
    return main([str(description), "-B", str(build_dir), *extra])


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_normal(self) -> None:
        """Test normal logging setup."""
        with patch("bcons.cli.logging.basicConfig") as config:
            setup_logging(verbose=False, debug=False)
        assert config.call_args.kwargs["level"] == logging.WARNING

    def test_setup_logging_verbose(self) -> None:
        with patch("bcons.cli.logging.basicConfig") as config:
            setup_logging(verbose=True, debug=False)
        assert config.call_args.kwargs["level"] == logging.INFO

    def test_setup_logging_debug(self) -> None:
        with patch("bcons.cli.logging.basicConfig") as config:
            setup_logging(verbose=True, debug=True)
        assert config.call_args.kwargs["level"] == logging.DEBUG
        assert "%(name)s" in config.call_args.kwargs["format"]


class TestParseVariables:
    """Tests for parse_variables function."""

    def test_parse_simple_variable(self) -> None:
        variables, remaining = parse_variables(["CC=gcc"])
        assert variables == {"CC": "gcc"}
        assert remaining == []

    def test_parse_value_with_equals(self) -> None:
        """Test parsing a variable whose value contains '='."""
        variables, _ = parse_variables(["FLAGS=-DX=1"])
        assert variables == {"FLAGS": "-DX=1"}

    def test_empty_value(self) -> None:
        variables, _ = parse_variables(["CODESIGN_IDENTITY="])
        assert variables == {"CODESIGN_IDENTITY": ""}

    def test_non_variables_remain(self) -> None:
        variables, remaining = parse_variables(["-v", "=oops", "hello"])
        assert variables == {}
        assert remaining == ["-v", "=oops", "hello"]


class TestRegenCommand:
    def test_reruns_with_same_arguments(self, tmp_path) -> None:
        command = regen_command(["build.targets", "-B", "out dir"], cwd=tmp_path)
        assert command.startswith(f"cd {shlex.quote(str(tmp_path))} && ")
        assert command.endswith("-m bcons.cli build.targets -B 'out dir'")
        assert shlex.quote(sys.executable) in command


class TestGenerate:
    """Tests for a full generation run."""

    def test_writes_ninja_file(self, hello, tmp_path) -> None:
        build = tmp_path / "build"
        assert run(hello / "build.targets", build) == 0

        content = (build / "build.ninja").read_text()
        assert "build hello: phony bin/hello\n" in content
        assert "rule regen\n" in content
        assert (build / "build.ninja.d").exists()

    def test_directory_description(self, hello, tmp_path) -> None:
        assert run(hello, tmp_path / "build") == 0
        assert (tmp_path / "build" / "build.ninja").exists()

    def test_output_option(self, hello, tmp_path) -> None:
        output = tmp_path / "other" / "main.ninja"
        assert run(hello, tmp_path / "build", "-o", str(output)) == 0
        assert output.exists()
        assert (tmp_path / "other" / "main.ninja.d").exists()

    def test_missing_description(self, tmp_path) -> None:
        assert run(tmp_path / "nope.targets", tmp_path / "build") == 1
        assert not (tmp_path / "build" / "build.ninja").exists()

    def test_description_error_writes_nothing(self, tmp_path, write) -> None:
        write(tmp_path / "build.targets", "TARGET_NAME = app\nSOURCES = main.c\nLINK = @ghost\n")
        assert run(tmp_path / "build.targets", tmp_path / "build") == 1
        assert not (tmp_path / "build" / "build.ninja").exists()

    def test_unbalanced_quote_is_reported(self, tmp_path, write, caplog) -> None:
        write(tmp_path / "build.targets", "TARGET_NAME = hello\nSOURCES = \"main.c\n")
        assert run(tmp_path / "build.targets", tmp_path / "build") == 1
        assert "build.targets:2" in caplog.text
        assert not (tmp_path / "build" / "build.ninja").exists()

    def test_failed_run_keeps_previous_file(self, hello, tmp_path) -> None:
        build = tmp_path / "build"
        assert run(hello, build) == 0
        before = (build / "build.ninja").read_text()

        (hello / "build.targets").write_text(HELLO + "LINK = @ghost\n")
        assert run(hello, build) == 1
        assert (build / "build.ninja").read_text() == before


class TestVariables:
    def test_define_option(self, hello, tmp_path) -> None:
        assert run(hello, tmp_path / "build", "-D", "CC=gcc-14") == 0
        content = (tmp_path / "build" / "build.ninja").read_text()
        assert "  cc = gcc-14\n" in content

    def test_trailing_variables(self, hello, tmp_path) -> None:
        assert run(hello, tmp_path / "build", "CC=gcc-13") == 0
        content = (tmp_path / "build" / "build.ninja").read_text()
        assert "  cc = gcc-13\n" in content

    def test_trailing_variables_override_defines(self, hello, tmp_path) -> None:
        assert run(hello, tmp_path / "build", "-D", "CC=gcc-14", "CC=gcc-13") == 0
        content = (tmp_path / "build" / "build.ninja").read_text()
        assert "  cc = gcc-13\n" in content

    def test_bad_define(self, hello, tmp_path) -> None:
        assert run(hello, tmp_path / "build", "-D", "nonsense") == 1

    def test_unexpected_argument(self, hello, tmp_path) -> None:
        assert run(hello, tmp_path / "build", "stray") == 1

    def test_variables_only_uses_default_description(self, hello, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(hello)
        assert main(["-B", str(tmp_path / "build"), "CC=gcc-12"]) == 0
        content = (tmp_path / "build" / "build.ninja").read_text()
        assert "  cc = gcc-12\n" in content


class TestExports:
    def test_compdb(self, hello, tmp_path) -> None:
        assert run(hello, tmp_path / "build", "--compdb") == 0
        entries = json.loads((tmp_path / "build" / "compile_commands.json").read_text())
        assert entries[0]["file"].endswith("main.c")

    def test_mermaid(self, hello, tmp_path) -> None:
        path = tmp_path / "docs" / "deps.mmd"
        assert run(hello, tmp_path / "build", "--mermaid", str(path)) == 0
        assert path.read_text().startswith("flowchart LR\n")

    def test_xcode(self, hello, tmp_path) -> None:
        assert run(hello, tmp_path / "build", "--xcode", str(tmp_path / "xc")) == 0
        assert (tmp_path / "xc" / "src.xcodeproj" / "project.pbxproj").exists()


class TestCLICommands:
    """Tests for running the CLI as a module."""

    def test_bcons_help(self) -> None:
        result = subprocess.run(
            [sys.executable, "-m", "bcons.cli", "--help"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "bcons" in result.stdout
        assert "--build-dir" in result.stdout

    def test_bcons_version(self) -> None:
        result = subprocess.run(
            [sys.executable, "-m", "bcons.cli", "--version"],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0
        assert "0.3.0" in result.stdout
