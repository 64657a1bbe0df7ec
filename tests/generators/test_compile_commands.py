# SPDX-License-Identifier: MIT
"""Tests for bcons.generators.compile_commands."""

import json
import os

from bcons.generators.compile_commands import CompileCommandsGenerator

PROJECT = {
    "build.targets": "TARGET_NAME = hello\nSOURCES = main.c util.cpp\nFLAGS = -Wall\n",
    "main.c": "",
    "util.cpp": "",
}


def generate(project):
    project.generate()
    return CompileCommandsGenerator().generate(project, project.build_dir)


class TestCompileCommandsGenerator:
    """Basic tests for CompileCommandsGenerator."""

    def test_is_generator(self):
        gen = CompileCommandsGenerator()
        assert gen.name == "compile_commands"
        assert gen.output_filename == "compile_commands.json"

    def test_entries(self, make_project, tmp_path):
        output = generate(make_project(PROJECT))
        entries = json.loads(output.read_text())

        assert [e["file"] for e in entries] == [
            str(tmp_path / "main.c"),
            str(tmp_path / "util.cpp"),
        ]
        main = entries[0]
        assert main["directory"] == str(tmp_path)
        assert main["output"] == str(tmp_path / "build" / "obj.hello" / "main.o")
        assert main["command"] == (
            f"clang -Wall -c {tmp_path / 'main.c'} -o {tmp_path / 'build' / 'obj.hello' / 'main.o'}"
        )
        assert entries[1]["command"].startswith("clang++ -Wall -c ")

    def test_only_compile_actions(self, make_project):
        output = generate(make_project(PROJECT))
        entries = json.loads(output.read_text())
        assert all(e["output"].endswith(".o") for e in entries)
        assert len(entries) == 2


class TestRootSymlink:
    def test_creates_symlink(self, make_project, tmp_path):
        generate(make_project(PROJECT))
        link = tmp_path / "compile_commands.json"
        assert link.is_symlink()
        assert os.readlink(link) == os.path.join("build", "compile_commands.json")

    def test_regenerate_keeps_symlink(self, make_project, tmp_path):
        project = make_project(PROJECT)
        generate(project)
        CompileCommandsGenerator().generate(project, project.build_dir)
        assert (tmp_path / "compile_commands.json").is_symlink()

    def test_regular_file_is_left_alone(self, make_project, tmp_path):
        (tmp_path / "compile_commands.json").write_text("[]\n")
        generate(make_project(PROJECT))
        link = tmp_path / "compile_commands.json"
        assert not link.is_symlink()
        assert link.read_text() == "[]\n"
