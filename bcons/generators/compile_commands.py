# SPDX-License-Identifier: MIT
"""compile_commands.json generator for IDE integration.

Generates a compile_commands.json file that IDEs and tools like
clangd or clang-tidy can use for code intelligence.
"""

from __future__ import annotations

import json
import logging
import os
import shlex
from pathlib import Path
from typing import TYPE_CHECKING, Any

from bcons.generators.generator import BaseGenerator

if TYPE_CHECKING:
    from bcons.core.action import BuildAction
    from bcons.core.project import Project

logger = logging.getLogger(__name__)


class CompileCommandsGenerator(BaseGenerator):
    """Generator for compile_commands.json.

    Creates a JSON compilation database from the project's compile
    actions, in the format expected by clang tools:

        [
            {
                "directory": "/path/to/project",
                "file": "/path/to/project/src/main.c",
                "command": "clang -Wall -c /path/to/project/src/main.c -o ...",
                "output": "/path/to/project/build/obj.hello/src/main.o"
            },
            ...
        ]

    Example:
        generator = CompileCommandsGenerator()
        generator.generate(project, project.build_dir)
        # Creates <build_dir>/compile_commands.json
    """

    def __init__(self) -> None:
        super().__init__("compile_commands", "compile_commands.json")

    def generate(self, project: Project, output_dir: Path) -> Path:
        """Generate compile_commands.json.

        Args:
            project: Generated project.
            output_dir: Directory to write compile_commands.json to.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / self.output_filename

        commands = [
            self._make_entry(action, project)
            for action in project.graph.actions_for_rule("compile")
        ]

        with open(output_file, "w") as f:
            json.dump(commands, f, indent=2)
            f.write("\n")
        logger.info("wrote %d compile commands to %s", len(commands), output_file)

        self._create_root_symlink(output_file, project)
        return output_file

    def _make_entry(self, action: BuildAction, project: Project) -> dict[str, Any]:
        source = action.inputs[0]
        output = action.outputs[0]
        cc = action.variables.get("cc", "cc")
        flags = action.variables.get("flags", "")
        parts = [cc, flags, "-c", shlex.quote(str(source)), "-o", shlex.quote(str(output))]
        return {
            "directory": str(project.root_dir),
            "file": str(source),
            "command": " ".join(p for p in parts if p),
            "output": str(output),
        }

    def _create_root_symlink(self, output_file: Path, project: Project) -> None:
        """Create a symlink to compile_commands.json in the project root.

        This lets clangd find the database without configuration. A
        regular file already at that location is left alone.
        """
        root_dir = project.root_dir
        link_path = root_dir / self.output_filename

        if output_file.resolve() == link_path.resolve():
            return

        target_path = os.path.relpath(output_file, root_dir)

        if link_path.is_symlink():
            if Path(os.readlink(link_path)) == Path(target_path):
                return
            link_path.unlink()
        elif link_path.exists():
            logger.warning(
                "compile_commands.json exists at project root as a "
                "regular file; not replacing with symlink"
            )
            return

        try:
            link_path.symlink_to(target_path)
        except OSError as e:
            logger.warning(
                "Could not create compile_commands.json symlink at project root: %s",
                e,
            )
