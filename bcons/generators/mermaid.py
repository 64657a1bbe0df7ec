# SPDX-License-Identifier: MIT
"""Mermaid diagram generator for dependency visualization.

Generates Mermaid flowchart syntax showing how targets relate. Output
can be rendered in GitHub markdown, documentation tools, or the
Mermaid live editor (https://mermaid.live).
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from bcons.generators.generator import BaseGenerator

if TYPE_CHECKING:
    from bcons.core.project import Project
    from bcons.core.target import Target

logger = logging.getLogger(__name__)


class MermaidGenerator(BaseGenerator):
    """Generator that produces Mermaid flowchart diagrams.

    LINK dependencies are solid arrows from library to dependent;
    embedding is a dotted arrow from the embedded product to its bundle.

    Example output:
        ```mermaid
        flowchart LR
          support[support]
          hello[[hello]]
          viewer{{viewer.app}}
          support --> hello
          hello -.-> viewer
        ```

    Usage:
        generator = MermaidGenerator()
        generator.generate(project, Path("build"))
        # Creates build/deps.mmd
    """

    def __init__(
        self,
        *,
        direction: str = "LR",
        output_filename: str = "deps.mmd",
    ) -> None:
        """Initialize the Mermaid generator.

        Args:
            direction: Graph direction - "LR" (left-right), "TB" (top-bottom),
                      "RL" (right-left), or "BT" (bottom-top).
            output_filename: Name of the output file.
        """
        super().__init__("mermaid", output_filename)
        self._direction = direction

    def generate(self, project: Project, output_dir: Path) -> Path:
        """Generate Mermaid diagram file.

        Args:
            project: Project to visualize.
            output_dir: Directory to write output file to.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / self.output_filename

        with open(output_file, "w") as f:
            self._write(f, project)
        logger.info("wrote dependency graph to %s", output_file)
        return output_file

    def render(self, project: Project) -> str:
        """Return the diagram as text."""
        buffer = io.StringIO()
        self._write(buffer, project)
        return buffer.getvalue()

    def _write(self, f: TextIO, project: Project) -> None:
        f.write(f"flowchart {self._direction}\n")
        targets = project.targets
        if not targets:
            f.write("  empty[No targets]\n")
            return

        roots = {t.name for t in project.target_graph.roots()}
        for target in targets:
            opening, closing = self._get_target_shape(target, target.name in roots)
            label = self._get_target_label(target)
            f.write(f"  {self._sanitize_id(target.name)}{opening}{label}{closing}\n")

        f.write("\n")
        graph = project.target_graph
        for dependent, dependency in graph.link_edges():
            f.write(f"  {self._sanitize_id(dependency)} --> {self._sanitize_id(dependent)}\n")
        for embedder, embedded in graph.embedding_edges():
            f.write(f"  {self._sanitize_id(embedded)} -.-> {self._sanitize_id(embedder)}\n")

    def _get_target_label(self, target: Target) -> str:
        if target.resource_keys():
            return f"{target.name}.{target.bundle_extension()}"
        return target.name

    def _get_target_shape(self, target: Target, is_root: bool) -> tuple[str, str]:
        """Get Mermaid shape brackets for a target.

        Returns:
            Tuple of (opening, closing) brackets.
        """
        if target.resource_keys():
            return ("{{", "}}")  # Hexagon for bundles
        if is_root:
            return ("[[", "]]")  # Subroutine shape for executables
        return ("[", "]")  # Rectangle for libraries

    def _sanitize_id(self, name: str) -> str:
        """Sanitize a name for use as a Mermaid node ID."""
        result = name.replace("/", "_").replace("\\", "_")
        result = result.replace(".", "_").replace("-", "_")
        result = result.replace(" ", "_").replace(":", "_")
        if result and result[0].isdigit():
            result = "n" + result
        return result
