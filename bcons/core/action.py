# SPDX-License-Identifier: MIT
"""Declarative build actions.

The generation run accumulates everything the downstream executor
needs into one BuildGraph: rule templates, an ordered list of build
actions, phony aggregate targets and the default target list.
Nothing here executes anything.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from bcons.core.errors import GenerateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """A command template shared by many actions.

    Attributes:
        name: Rule name referenced by actions.
        command: Command line; may use $in, $out and action variables.
        description: Short progress text.
        depfile: Compiler-written dependency file, if any.
        deps: Dependency format ("gcc" or "msvc") for depfile parsing.
        pool: Job pool, e.g. "console" for interactive actions.
        generator: Mark actions that regenerate the build file itself.
        restat: Re-check output timestamps after the command runs.
    """

    name: str
    command: str
    description: str | None = None
    depfile: str | None = None
    deps: str | None = None
    pool: str | None = None
    generator: bool = False
    restat: bool = False


@dataclass(frozen=True)
class BuildAction:
    """One build statement.

    Attributes:
        rule: Name of the rule to run.
        outputs: Explicit outputs ($out).
        inputs: Explicit inputs ($in).
        implicit: Inputs that trigger rebuilds but are not in $in.
        order_only: Inputs that must exist first but never trigger rebuilds.
        implicit_outputs: Extra outputs not in $out.
        variables: Per-action variables such as "flags".
    """

    rule: str
    outputs: tuple[Path, ...]
    inputs: tuple[Path, ...] = ()
    implicit: tuple[Path, ...] = ()
    order_only: tuple[Path, ...] = ()
    implicit_outputs: tuple[Path, ...] = ()
    variables: Mapping[str, str] = field(default_factory=dict)

    @property
    def all_outputs(self) -> tuple[Path, ...]:
        return self.outputs + self.implicit_outputs


def _paths(items: Iterable[Path | str] | None) -> tuple[Path, ...]:
    if not items:
        return ()
    result: list[Path] = []
    for item in items:
        path = Path(item)
        if path not in result:
            result.append(path)
    return tuple(result)


class BuildGraph:
    """The complete action graph of one generation run.

    Attributes:
        variables: Global variables, written before the rules.
        rules: Registered rules by name.
        actions: Build actions in the order they were declared.
        aggregates: Phony targets: name to the paths it stands for.
        defaults: Names or paths built when no target is requested.
    """

    def __init__(self) -> None:
        self.variables: dict[str, str] = {}
        self.rules: dict[str, Rule] = {}
        self.actions: list[BuildAction] = []
        self.aggregates: dict[str, list[Path]] = {}
        self.defaults: list[str] = []
        self._producers: dict[Path, BuildAction] = {}

    def add_rule(self, rule: Rule) -> Rule:
        """Register a rule; re-registering an identical rule is a no-op."""
        existing = self.rules.get(rule.name)
        if existing is not None and existing != rule:
            raise GenerateError(f"conflicting definitions of rule '{rule.name}'")
        self.rules[rule.name] = rule
        return rule

    def add_action(
        self,
        rule: str,
        outputs: Iterable[Path | str],
        inputs: Iterable[Path | str] | None = None,
        *,
        implicit: Iterable[Path | str] | None = None,
        order_only: Iterable[Path | str] | None = None,
        implicit_outputs: Iterable[Path | str] | None = None,
        variables: Mapping[str, str] | None = None,
    ) -> BuildAction:
        """Declare a build action.

        Raises:
            GenerateError: If the rule is unknown or an output already has
                a producing action.
        """
        if rule not in self.rules:
            raise GenerateError(f"action uses undefined rule '{rule}'")
        action = BuildAction(
            rule=rule,
            outputs=_paths(outputs),
            inputs=_paths(inputs),
            implicit=_paths(implicit),
            order_only=_paths(order_only),
            implicit_outputs=_paths(implicit_outputs),
            variables=dict(variables or {}),
        )
        if not action.outputs:
            raise GenerateError(f"action for rule '{rule}' has no outputs")
        for output in action.all_outputs:
            if output in self._producers:
                raise GenerateError(f"multiple actions produce {output}")
        for output in action.all_outputs:
            self._producers[output] = action
        self.actions.append(action)
        logger.debug("%s -> %s", rule, ", ".join(str(o) for o in action.outputs))
        return action

    def producer(self, path: Path) -> BuildAction | None:
        """Return the action producing path, if any."""
        return self._producers.get(Path(path))

    def add_aggregate(self, name: str, paths: Iterable[Path | str]) -> None:
        """Declare (or extend) a phony aggregate target."""
        members = self.aggregates.setdefault(name, [])
        for path in _paths(paths):
            if path not in members:
                members.append(path)

    def add_default(self, name: str) -> None:
        if name not in self.defaults:
            self.defaults.append(name)

    def actions_for_rule(self, rule: str) -> list[BuildAction]:
        return [a for a in self.actions if a.rule == rule]

    def __repr__(self) -> str:
        return (
            f"BuildGraph(rules={len(self.rules)}, actions={len(self.actions)}, "
            f"aggregates={len(self.aggregates)})"
        )
