# SPDX-License-Identifier: MIT
"""Built-in transform plugins."""

from __future__ import annotations

from bcons.core.pipeline import PluginRegistry
from bcons.plugins.codegen import BisonPlugin, CapnpPlugin, FlexPlugin
from bcons.plugins.compile import OBJECT_SUFFIX, CompilePlugin
from bcons.plugins.resources import (
    ActoolPlugin,
    IbtoolPlugin,
    MarkdownPlugin,
    PlistPlugin,
)


def default_registry() -> PluginRegistry:
    """Create a registry holding every built-in plugin."""
    registry = PluginRegistry()
    for plugin in (
        CompilePlugin(),
        BisonPlugin(),
        FlexPlugin(),
        CapnpPlugin(),
        IbtoolPlugin(),
        ActoolPlugin(),
        PlistPlugin(),
        MarkdownPlugin(),
    ):
        registry.register(plugin)
    return registry


__all__ = [
    "OBJECT_SUFFIX",
    "ActoolPlugin",
    "BisonPlugin",
    "CapnpPlugin",
    "CompilePlugin",
    "FlexPlugin",
    "IbtoolPlugin",
    "MarkdownPlugin",
    "PlistPlugin",
    "default_registry",
]
