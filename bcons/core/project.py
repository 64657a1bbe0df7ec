# SPDX-License-Identifier: MIT
"""Project container for bcons builds.

The Project owns everything one generation run produces: the declared
targets, the plugin pipeline and the build graph. It loads the root
description (and, through TARGETS, every nested one), then assembles
the root targets in dependency order.

Configuration is layered, least specific first:

    built-in defaults (DEFAULT_SETTINGS, overridable from the environment)
    command-line variables
    root description
    nested descriptions ...
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

from bcons import get_var
from bcons.core.action import BuildGraph
from bcons.core.description import DEFAULT_DESCRIPTION_NAME, parse_description
from bcons.core.errors import (
    ConfigureError,
    DuplicateTargetError,
    UnknownTargetError,
)
from bcons.core.graph import TargetGraph
from bcons.core.pipeline import PipelineContext, PluginRegistry, TransformPipeline
from bcons.core.scope import ScopeChain, split_value
from bcons.core.target import ASSEMBLY_RULES, TEST_AGGREGATE, TEST_CONVENTIONS, Target
from bcons.plugins import default_registry
from bcons.util.macos import is_resource_key
from bcons.util.source_location import SourceLocation

logger = logging.getLogger(__name__)

# Built-in settings at the root of every scope chain.
DEFAULT_SETTINGS: dict[str, str] = {
    "CC": "clang",
    "CXX": "clang++",
    "CODESIGN": "codesign",
    "CODESIGN_IDENTITY": "-",
    "IBTOOL": "ibtool",
    "ACTOOL": "actool",
    "BISON": "bison",
    "FLEX": "flex",
    "CAPNP": "capnp",
    "PLUTIL": "plutil",
    "MARKDOWN": "markdown",
    "BUNDLE_EXTENSION": "app",
}

# Keys whose glob directories are inputs of the generation itself.
_GLOBBED_KEYS = ("SOURCES", "EXPORT", "IMPORT", *(key for key, _, _ in TEST_CONVENTIONS))


def default_settings() -> dict[str, str]:
    """DEFAULT_SETTINGS with values overridden from the environment."""
    return {key: get_var(key, value) or value for key, value in DEFAULT_SETTINGS.items()}


class Project:
    """Top-level container for a bcons generation run.

    Example:
        project = Project(build_dir="build")
        project.load("build.targets")
        graph = project.generate()

    Attributes:
        root_dir: Source tree root; the directory of the root description.
        build_dir: Directory for build outputs.
        variables: Command-line variables.
        graph: The build graph being generated.
        registry: Plugins available to the pipeline.
        context: Shared state handed to plugins.
        pipeline: The transform pipeline.
        root_scope: Defaults plus command-line variables.
        descriptions: Loaded description files, in load order.
    """

    __slots__ = (
        "root_dir",
        "build_dir",
        "variables",
        "graph",
        "registry",
        "context",
        "pipeline",
        "root_scope",
        "descriptions",
        "_targets",
        "_target_graph",
    )

    def __init__(
        self,
        *,
        root_dir: Path | str | None = None,
        build_dir: Path | str = "build",
        variables: Mapping[str, str] | None = None,
        registry: PluginRegistry | None = None,
    ) -> None:
        """Create a project.

        Args:
            root_dir: Source tree root (default: current dir).
            build_dir: Directory for build outputs (default: "build").
            variables: Variables layered over the built-in defaults.
            registry: Plugins to use (default: all built-in plugins).
        """
        self.root_dir = Path(root_dir).absolute() if root_dir else Path.cwd()
        self.build_dir = Path(build_dir).absolute()
        self.variables = dict(variables or {})
        self.graph = BuildGraph()
        for rule in ASSEMBLY_RULES:
            self.graph.add_rule(rule)
        self.registry = registry if registry is not None else default_registry()
        self.context = PipelineContext(self.graph, self.build_dir, self.root_dir)
        self.pipeline = TransformPipeline(self.registry, self.context)

        scope = ScopeChain.root(default_settings(), directory=self.root_dir)
        if self.variables:
            scope = scope.derive(self.variables, self.root_dir)
        self.root_scope = scope
        self.descriptions: list[Path] = []
        self._targets: dict[str, Target] = {}
        self._target_graph: TargetGraph | None = None

    # Loading

    def load(self, path: Path | str, parent: ScopeChain | None = None) -> ScopeChain:
        """Load a description file and, recursively, the files it lists.

        Args:
            path: Description file, or a directory holding build.targets.
            parent: Scope the file's scope derives from (default: root).

        Returns:
            The scope of the loaded file.

        Raises:
            ConfigureError: On unreadable or repeated files and bad names.
        """
        path = Path(path).absolute()
        if path.is_dir():
            path = path / DEFAULT_DESCRIPTION_NAME
        if path in self.descriptions:
            raise ConfigureError(f"description loaded twice: {path}")
        self.descriptions.append(path)
        logger.debug("loading %s", path)

        description = parse_description(path)
        scope = (parent or self.root_scope).derive(
            description.values,
            description.directory,
            origin=path,
            lines=description.lines,
        )

        if "TARGET_NAME" in description.values:
            location = SourceLocation(path, description.lines.get("TARGET_NAME"))
            names = split_value(description.values["TARGET_NAME"], location)
            if len(names) != 1:
                raise ConfigureError("TARGET_NAME must be a single name", location)
            if names[0] == TEST_AGGREGATE:
                raise ConfigureError(
                    f"'{TEST_AGGREGATE}' is reserved for the aggregate of all tests", location
                )
            self.add_target(
                Target(names[0], scope, self, description=path, defined_at=location)
            )

        for child in scope.glob_list("TARGETS", inherit=False).paths:
            self.load(child, scope)
        return scope

    def add_target(self, target: Target) -> None:
        """Register a target with the project.

        Raises:
            DuplicateTargetError: If a target with the same name exists.
        """
        if target.name in self._targets:
            existing = self._targets[target.name]
            raise DuplicateTargetError(target.name, target.defined_at, existing.defined_at)
        self._targets[target.name] = target

    def get_target(self, name: str) -> Target | None:
        """Get a target by name, or None if not declared."""
        return self._targets.get(name)

    def target(self, name: str) -> Target:
        """Get a declared target by name.

        Raises:
            UnknownTargetError: If no target has that name.
        """
        target = self._targets.get(name)
        if target is None:
            raise UnknownTargetError(name, "LINK")
        return target

    @property
    def targets(self) -> list[Target]:
        """All declared targets, in declaration order."""
        return list(self._targets.values())

    @property
    def target_graph(self) -> TargetGraph:
        if self._target_graph is None:
            self._target_graph = TargetGraph(self._targets)
        return self._target_graph

    # Generation

    def generate(self) -> BuildGraph:
        """Validate the targets and assemble every root.

        Returns:
            The complete build graph.

        Raises:
            BconsError: On any configuration problem.
        """
        self._target_graph = TargetGraph(self._targets)
        target_graph = self._target_graph
        target_graph.validate()
        order = target_graph.build_order()
        for target in order:
            target.assemble()
        # Libraries have no product but may still carry tests
        for target in self._targets.values():
            target.test_results()
        for target in target_graph.roots():
            self.graph.add_default(target.name)
        logger.info(
            "generated %d actions for %d targets", len(self.graph.actions), len(self._targets)
        )
        return self.graph

    def consumed_inputs(self) -> list[Path]:
        """Files and directories whose change requires regeneration."""
        inputs: list[Path] = list(self.descriptions)

        def add(path: Path) -> None:
            if path not in inputs:
                inputs.append(path)

        for target in self._targets.values():
            for key in [*_GLOBBED_KEYS, *target.resource_keys()]:
                result = target.scope.glob_list(key, inherit=False)
                for directory in result.directories:
                    add(directory)
                if is_resource_key(key):
                    for path in result.paths:
                        if path.is_dir():
                            add(path)
        return inputs

    def __repr__(self) -> str:
        return f"Project(build_dir={self.build_dir}, targets={len(self._targets)})"
