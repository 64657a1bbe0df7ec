# SPDX-License-Identifier: MIT
"""Ninja build file generator.

Writes the project's build graph as a Ninja file:

    ninja_required_version = 1.7
    builddir = .
    <global variables>

    rule compile
      command = $cc -MMD -MF $out.d $flags -c $in -o $out
      depfile = $out.d
      deps = gcc

    build obj.hello/main.o: compile ../src/main.c || obj.hello/include/hello/api.h
      cc = clang
      flags = -Wall

    build hello: phony bin/hello
    default hello

Paths are written relative to the Ninja file's directory. The file is
first written to a temporary sibling and renamed into place, so a
failed run never leaves a truncated file behind.

Every input the generation consumed is listed in a make-style
dependency file next to it (``build.ninja.d``). If a regeneration
command is given, a ``regen`` rule uses that listing to rebuild the
file itself whenever one of those inputs changes.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from bcons import __version__
from bcons.core.action import BuildAction, Rule
from bcons.core.errors import GenerateError
from bcons.generators.generator import BaseGenerator

if TYPE_CHECKING:
    from bcons.core.project import Project

logger = logging.getLogger(__name__)

NINJA_REQUIRED_VERSION = "1.7"


class NinjaGenerator(BaseGenerator):
    """Generator that writes a Ninja file from a project's build graph.

    Example:
        project.generate()
        NinjaGenerator().generate(project, project.build_dir)
        # Creates build/build.ninja and build/build.ninja.d
    """

    def __init__(
        self,
        *,
        output_filename: str = "build.ninja",
        regen_command: str | None = None,
    ) -> None:
        """Initialize the Ninja generator.

        Args:
            output_filename: Name of the Ninja file.
            regen_command: Shell command that regenerates the file; no
                regen rule is written if None.
        """
        super().__init__("ninja", output_filename)
        self._regen_command = regen_command
        self._output_dir = Path(".")

    @property
    def depfile_name(self) -> str:
        return f"{self.output_filename}.d"

    def generate(self, project: Project, output_dir: Path) -> Path:
        """Write the Ninja file and its dependency listing.

        Args:
            project: Project whose graph has been generated.
            output_dir: Directory of the Ninja file.

        Returns:
            Path of the Ninja file.

        Raises:
            GenerateError: If the files cannot be written.
        """
        output_dir = Path(output_dir).absolute()
        self._output_dir = output_dir
        output_file = output_dir / self.output_filename

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            self._write_atomically(output_file, lambda f: self._write(f, project))
            self._write_atomically(
                output_dir / self.depfile_name,
                lambda f: self._write_depfile(f, project),
            )
        except OSError as e:
            raise GenerateError(f"cannot write {output_file}: {e}") from e

        logger.info("wrote %s", output_file)
        return output_file

    def _write_atomically(self, path: Path, write: Callable[[TextIO], None]) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w") as f:
                write(f)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # Ninja file

    def _write(self, f: TextIO, project: Project) -> None:
        graph = project.graph
        f.write(f"# Generated by bcons {__version__}. Do not edit.\n\n")
        f.write(f"ninja_required_version = {NINJA_REQUIRED_VERSION}\n")
        f.write(f"builddir = {self._escape_path(project.build_dir)}\n")
        for name, value in graph.variables.items():
            f.write(f"{name} = {self._escape_value(value)}\n")
        f.write("\n")

        for rule in graph.rules.values():
            self._write_rule(f, rule)
        if self._regen_command is not None:
            self._write_rule(
                f,
                Rule(
                    name="regen",
                    command=self._regen_command,
                    description="Regenerating $out",
                    depfile=self.depfile_name,
                    generator=True,
                ),
            )

        for action in graph.actions:
            self._write_action(f, action)

        if self._regen_command is not None:
            f.write(
                f"build {self._escape_path(self._output_dir / self.output_filename)}: regen"
            )
            if project.descriptions:
                f.write(f" {self._escape_path(project.descriptions[0])}")
            f.write("\n\n")

        for name, paths in graph.aggregates.items():
            f.write(f"build {self._escape_name(name)}: phony")
            f.write(self._paths(paths))
            f.write("\n")
        if graph.aggregates:
            f.write("\n")

        if graph.defaults:
            names = " ".join(self._escape_name(d) for d in graph.defaults)
            f.write(f"default {names}\n")

    def _write_rule(self, f: TextIO, rule: Rule) -> None:
        f.write(f"rule {rule.name}\n")
        f.write(f"  command = {rule.command}\n")
        if rule.description:
            f.write(f"  description = {rule.description}\n")
        if rule.depfile:
            f.write(f"  depfile = {rule.depfile}\n")
        if rule.deps:
            f.write(f"  deps = {rule.deps}\n")
        if rule.pool:
            f.write(f"  pool = {rule.pool}\n")
        if rule.generator:
            f.write("  generator = 1\n")
        if rule.restat:
            f.write("  restat = 1\n")
        f.write("\n")

    def _write_action(self, f: TextIO, action: BuildAction) -> None:
        line = "build" + self._paths(action.outputs)
        if action.implicit_outputs:
            line += " |" + self._paths(action.implicit_outputs)
        line += f": {action.rule}" + self._paths(action.inputs)
        if action.implicit:
            line += " |" + self._paths(action.implicit)
        if action.order_only:
            line += " ||" + self._paths(action.order_only)
        f.write(line + "\n")
        self._write_variables(f, action.variables)
        f.write("\n")

    def _write_variables(self, f: TextIO, variables: Mapping[str, str]) -> None:
        for name, value in variables.items():
            f.write(f"  {name} = {self._escape_value(value)}\n")

    # Dependency listing

    def _write_depfile(self, f: TextIO, project: Project) -> None:
        target = self._escape_make(self.output_filename)
        inputs = [self._escape_make(self._relative(p)) for p in project.consumed_inputs()]
        f.write(f"{target}:")
        for item in inputs:
            f.write(f" \\\n  {item}")
        f.write("\n")

    # Escaping

    def _relative(self, path: Path | str) -> str:
        path = Path(path)
        if path.is_absolute():
            try:
                return os.path.relpath(path, self._output_dir)
            except ValueError:
                return str(path)
        return str(path)

    def _paths(self, paths: Iterable[Path]) -> str:
        return "".join(" " + self._escape_path(p) for p in paths)

    def _escape_path(self, path: Path | str) -> str:
        """Escape a path for use in a build line.

        Ninja treats $, space and : specially in paths.
        """
        text = self._relative(path).replace("\\", "/")
        return text.replace("$", "$$").replace(" ", "$ ").replace(":", "$:")

    def _escape_name(self, name: str) -> str:
        return name.replace("$", "$$").replace(" ", "$ ").replace(":", "$:")

    @staticmethod
    def _escape_value(value: str) -> str:
        """Escape a variable value; only $ and newlines are special."""
        return value.replace("$", "$$").replace("\n", " ")

    @staticmethod
    def _escape_make(text: str) -> str:
        return text.replace("\\", "/").replace(" ", "\\ ").replace("$", "$$").replace("#", "\\#")
