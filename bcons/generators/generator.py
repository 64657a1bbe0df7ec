# SPDX-License-Identifier: MIT
"""Generator protocol for build file generation.

Generators take a Project whose build graph has been generated and
write files from it (the Ninja file, IDE projects, diagrams).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from bcons.core.project import Project


@runtime_checkable
class Generator(Protocol):
    """Protocol for build file generators."""

    @property
    def name(self) -> str:
        """Generator name (e.g., 'ninja', 'mermaid', 'compile_commands')."""
        ...

    def generate(self, project: Project, output_dir: Path) -> Path:
        """Write files for a project and return the main file written.

        Args:
            project: The generated project.
            output_dir: Directory to write output files to.
        """
        ...


class BaseGenerator:
    """Base class for generators with common functionality."""

    def __init__(self, name: str, output_filename: str) -> None:
        """Initialize a generator.

        Args:
            name: Generator name.
            output_filename: Name of the main file written.
        """
        self._name = name
        self._output_filename = output_filename

    @property
    def name(self) -> str:
        return self._name

    @property
    def output_filename(self) -> str:
        return self._output_filename

    def generate(self, project: Project, output_dir: Path) -> Path:
        """Generate files. Subclasses must implement."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"
