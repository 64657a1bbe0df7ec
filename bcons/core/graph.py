# SPDX-License-Identifier: MIT
"""Target dependency graph.

Two relations connect targets:

- LINK: a target links another target's objects. Targets named in
  some LINK list are libraries; everything else is a root, a product
  that can be built directly.
- Embedding: a bundle copies another root's finished product through
  an ``@name`` entry in a CP_* list.

Both relations must be acyclic. Roots are assembled so that embedded
products exist before the bundles that embed them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from bcons.core.errors import DependencyCycleError, EmbeddingError, UnknownTargetError
from bcons.core.target import Target

logger = logging.getLogger(__name__)


class TargetGraph:
    """Validation and ordering over a set of declared targets.

    Attributes:
        targets: Declared targets by name, in declaration order.
    """

    def __init__(self, targets: Mapping[str, Target]) -> None:
        self.targets = dict(targets)
        self._roots: list[Target] | None = None

    def validate(self) -> None:
        """Check references and LINK acyclicity.

        Raises:
            UnknownTargetError: If a LINK or CP_* entry names no target.
            DependencyCycleError: If LINK dependencies form a cycle.
        """
        for target in self.targets.values():
            for name in target.link_names():
                if name not in self.targets:
                    raise UnknownTargetError(name, "LINK", target.scope.location("LINK"))
            for key in target.resource_keys():
                for name in target.scope.glob_list(key, inherit=False).references:
                    if name not in self.targets:
                        raise UnknownTargetError(name, key, target.scope.location(key))
        self._check_link_cycles()

    def _check_link_cycles(self) -> None:
        visited: set[str] = set()
        in_stack: set[str] = set()
        path: list[str] = []

        def visit(name: str) -> None:
            if name in in_stack:
                start = path.index(name)
                raise DependencyCycleError(
                    [*path[start:], name],
                    kind="link",
                    location=self.targets[name].scope.location("LINK"),
                )
            if name in visited:
                return
            in_stack.add(name)
            path.append(name)
            for dep in self.targets[name].link_names():
                visit(dep)
            path.pop()
            in_stack.discard(name)
            visited.add(name)

        for name in self.targets:
            visit(name)

    def roots(self) -> list[Target]:
        """Targets no other target links, in declaration order."""
        if self._roots is None:
            linked: set[str] = set()
            for target in self.targets.values():
                linked.update(target.link_names())
            self._roots = [t for t in self.targets.values() if t.name not in linked]
        return self._roots

    def build_order(self) -> list[Target]:
        """Roots ordered so that every embedded root precedes its embedders.

        A root embeds what it names in its own CP_* lists and what its
        linked targets name in theirs, since their resources are staged
        into its bundle. Otherwise roots keep declaration order.

        Raises:
            EmbeddingError: If a bundle embeds a target that is not a root.
            DependencyCycleError: If embedding forms a cycle.
        """
        roots = self.roots()
        root_names = {t.name for t in roots}

        embeds: dict[str, list[str]] = {}
        for target in roots:
            names: list[str] = []
            for source in [target, *target.closure_targets()]:
                for name in source.embedded_names():
                    if name not in root_names:
                        raise EmbeddingError(
                            f"'{source.name}' embeds '{name}', which is linked by "
                            "another target and has no product of its own",
                            source.defined_at,
                        )
                    if name not in names:
                        names.append(name)
            embeds[target.name] = names

        order: list[Target] = []
        placed: set[str] = set()
        remaining = list(roots)
        while remaining:
            ready = next(
                (t for t in remaining if all(n in placed for n in embeds[t.name])), None
            )
            if ready is None:
                cycle = [t.name for t in remaining]
                raise DependencyCycleError(cycle + cycle[:1], kind="embedding")
            remaining.remove(ready)
            order.append(ready)
            placed.add(ready.name)

        logger.debug("build order: %s", ", ".join(t.name for t in order))
        return order

    def link_edges(self) -> list[tuple[str, str]]:
        """(dependent, dependency) pairs of the LINK relation."""
        return [(t.name, dep) for t in self.targets.values() for dep in t.link_names()]

    def embedding_edges(self) -> list[tuple[str, str]]:
        """(embedder, embedded) pairs of the embedding relation."""
        return [(t.name, dep) for t in self.targets.values() for dep in t.embedded_names()]
