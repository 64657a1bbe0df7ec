# SPDX-License-Identifier: MIT
"""Asset transformation pipeline.

A plugin declares which file suffixes it accepts and what it turns
them into (e.g. ``.y -> .c``, ``.c -> .o``). The pipeline feeds an
asset through the registered plugins until no plugin matches, and
returns the terminal assets. Plugins emit build actions into the
shared BuildGraph as a side effect.

Selection picks the plugin with the longest matching suffix. A plugin
is applied at most once along an asset's derivation chain: if the
best match was already applied, the next-longest match is tried. That
keeps "filter" plugins (same input and output suffix) from looping.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bcons.core.action import BuildGraph
from bcons.core.scope import ScopeChain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Asset:
    """A file together with the configuration it is processed under."""

    path: Path
    scope: ScopeChain

    def derive(self, path: Path, scope: ScopeChain | None = None) -> Asset:
        """Return a new asset for a derived file, keeping the scope by default."""
        return Asset(path, scope if scope is not None else self.scope)


class PipelineContext:
    """Shared state handed to plugins during one generation run.

    Attributes:
        graph: Build graph receiving rules and actions.
        build_dir: Root of all generated files.
        source_root: Root of the source tree.
        memo: Per-run cache for intermediate results shared between
            transforms (e.g. precompiled headers).
    """

    def __init__(self, graph: BuildGraph, build_dir: Path, source_root: Path) -> None:
        self.graph = graph
        self.build_dir = Path(build_dir)
        self.source_root = Path(source_root)
        self.memo: dict[Any, Any] = {}

    def target_dir(self, scope: ScopeChain) -> Path:
        """Intermediate-file directory for the target owning scope.

        Format: <build_dir>/obj.<target_name>. The "obj." prefix keeps the
        directory apart from the target's final outputs.
        """
        name = scope.get("TARGET_NAME")
        if not name or not isinstance(name, str):
            return self.build_dir / "obj"
        return self.build_dir / f"obj.{name}"

    def relative_source(self, path: Path, target_dir: Path) -> Path:
        """Path of a source relative to the tree it lives in."""
        for base in (target_dir, self.build_dir, self.source_root):
            try:
                return path.relative_to(base)
            except ValueError:
                continue
        return Path(path.name)

    def output_path(
        self,
        asset: Asset,
        plugin: BasePlugin,
        suffix: str | None = None,
    ) -> Path:
        """Compute where plugin writes its output for asset.

        The matched input suffix is replaced by the plugin's output suffix
        (or by suffix if given). Filter plugins write into a subdirectory
        named after the plugin so their output never collides with the
        input or with another filter's output.
        """
        matched = plugin.match(asset.path)
        if matched is None:
            raise ValueError(f"plugin {plugin.name} does not accept {asset.path}")
        out_suffix = suffix if suffix is not None else plugin.suffixes[plugin.canonical(matched)]

        target_dir = self.target_dir(asset.scope)
        rel = self.relative_source(asset.path, target_dir)
        if plugin.is_filter:
            rel = Path(plugin.name) / rel
        name = rel.name[: len(rel.name) - len(matched)] + out_suffix
        return target_dir / rel.parent / name


class BasePlugin(ABC):
    """Abstract base class for transform plugins.

    Subclasses declare their suffix mappings and implement transform().
    setup() runs once per generation run, before the plugin's first
    transform; it is the place to register rules.
    """

    def __init__(
        self,
        name: str,
        suffixes: Mapping[str, str],
        *,
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize a plugin.

        Args:
            name: Plugin identity, unique within a registry.
            suffixes: Input suffix to output suffix (e.g. {".c": ".o"}).
            aliases: Alternative input suffix to the canonical input
                suffix it behaves like (e.g. {".cc": ".cpp"}).
        """
        self._name = name
        self._suffixes = dict(suffixes)
        self._aliases = dict(aliases or {})
        for alias, canonical in self._aliases.items():
            if canonical not in self._suffixes:
                raise ValueError(
                    f"plugin {name}: alias {alias} refers to undeclared suffix {canonical}"
                )

    @property
    def name(self) -> str:
        return self._name

    @property
    def suffixes(self) -> dict[str, str]:
        return self._suffixes

    @property
    def aliases(self) -> dict[str, str]:
        return self._aliases

    @property
    def input_suffixes(self) -> list[str]:
        return [*self._suffixes, *self._aliases]

    @property
    def is_filter(self) -> bool:
        """True if any mapping keeps the suffix unchanged."""
        return any(src == dst for src, dst in self._suffixes.items())

    def match(self, path: Path) -> str | None:
        """Return the longest input suffix path ends with, if any."""
        name = Path(path).name
        best: str | None = None
        for suffix in self.input_suffixes:
            if name.endswith(suffix) and (best is None or len(suffix) > len(best)):
                best = suffix
        return best

    def canonical(self, suffix: str) -> str:
        """Resolve a suffix alias to its canonical input suffix."""
        return self._aliases.get(suffix, suffix)

    def setup(self, ctx: PipelineContext) -> None:
        """Prepare the plugin for a run. Default: nothing."""

    @abstractmethod
    def transform(self, asset: Asset, ctx: PipelineContext) -> list[Asset]:
        """Declare actions for asset and return the derived assets."""
        ...

    def __repr__(self) -> str:
        mappings = ", ".join(f"{s}->{d}" for s, d in self._suffixes.items())
        return f"{self.__class__.__name__}({self.name!r}, [{mappings}])"


class PluginRegistry:
    """Ordered table of registered plugins, queried by suffix."""

    def __init__(self) -> None:
        self._plugins: list[BasePlugin] = []

    def register(self, plugin: BasePlugin) -> BasePlugin:
        """Add a plugin.

        Raises:
            ValueError: If a plugin with the same name is registered.
        """
        if plugin.name in self:
            raise ValueError(f"plugin '{plugin.name}' is already registered")
        self._plugins.append(plugin)
        return plugin

    def get(self, name: str) -> BasePlugin | None:
        for plugin in self._plugins:
            if plugin.name == name:
                return plugin
        return None

    def matches(self, path: Path) -> list[tuple[str, BasePlugin]]:
        """All (suffix, plugin) pairs accepting path, most specific first.

        Longer suffixes come first; registration order breaks ties.
        """
        name = Path(path).name
        candidates: list[tuple[int, int, str, BasePlugin]] = []
        for order, plugin in enumerate(self._plugins):
            for suffix in plugin.input_suffixes:
                if name.endswith(suffix):
                    candidates.append((-len(suffix), order, suffix, plugin))
        candidates.sort(key=lambda c: (c[0], c[1]))
        return [(suffix, plugin) for _, _, suffix, plugin in candidates]

    def __contains__(self, name: object) -> bool:
        return any(p.name == name for p in self._plugins)

    def __iter__(self) -> Iterator[BasePlugin]:
        return iter(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)


class TransformPipeline:
    """Recursive rewrite engine over a PluginRegistry.

    Attributes:
        registry: Plugins to select from.
        context: Run context passed to every plugin.
    """

    def __init__(self, registry: PluginRegistry, context: PipelineContext) -> None:
        self.registry = registry
        self.context = context
        self._setup_done: dict[str, bool] = {}

    def select(self, path: Path, excluded: frozenset[str] = frozenset()) -> BasePlugin | None:
        """Pick the most specific plugin for path not in excluded."""
        for _, plugin in self.registry.matches(path):
            if plugin.name not in excluded:
                return plugin
        return None

    def run(self, asset: Asset) -> list[Asset]:
        """Transform asset until only terminal assets remain.

        Args:
            asset: The seed asset.

        Returns:
            Terminal assets in the order they were reached. An asset no
            plugin accepts is returned unchanged.
        """
        terminal: list[Asset] = []
        pending: deque[tuple[Asset, frozenset[str]]] = deque([(asset, frozenset())])

        while pending:
            current, applied = pending.popleft()
            plugin = self.select(current.path, applied)
            if plugin is None:
                terminal.append(current)
                continue

            self._ensure_setup(plugin)
            derived = plugin.transform(current, self.context)
            logger.debug(
                "%s: %s -> %s",
                plugin.name,
                current.path,
                ", ".join(str(d.path) for d in derived) or "(nothing)",
            )
            chain = applied | {plugin.name}
            pending.extend((d, chain) for d in derived)

        return terminal

    def _ensure_setup(self, plugin: BasePlugin) -> None:
        if self._setup_done.get(plugin.name):
            return
        self._setup_done[plugin.name] = True
        logger.debug("setting up plugin %s", plugin.name)
        plugin.setup(self.context)
