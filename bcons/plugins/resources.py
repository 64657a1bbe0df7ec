# SPDX-License-Identifier: MIT
"""Bundle resource processing.

- ibtool compiles interface files (.xib, .storyboard).
- actool compiles asset catalogs (.xcassets directories) into Assets.car.
- plist converts property lists to binary form. Input and output are
  both .plist, so its output lives under a "plist" subdirectory.
- markdown renders documents to HTML, optionally wrapped in the files
  named by HTML_HEADER and HTML_FOOTER.
"""

from __future__ import annotations

import logging

from bcons.core.action import Rule
from bcons.core.pipeline import Asset, BasePlugin, PipelineContext
from bcons.util.commands import helper_command
from bcons.util.macos import tree_files

logger = logging.getLogger(__name__)


def _deployment_target(asset: Asset) -> str:
    version = asset.scope.get_str("MIN_MACOS_VERSION")
    return f"--minimum-deployment-target {version}" if version else ""


class IbtoolPlugin(BasePlugin):
    """Compile Interface Builder documents."""

    RULE = Rule(
        name="ibtool",
        command="$ibtool --errors --warnings --notices $flags --compile $out $in",
        description="IBTOOL $out",
    )

    def __init__(self) -> None:
        super().__init__("ibtool", {".xib": ".nib", ".storyboard": ".storyboardc"})

    def setup(self, ctx: PipelineContext) -> None:
        ctx.graph.add_rule(self.RULE)

    def transform(self, asset: Asset, ctx: PipelineContext) -> list[Asset]:
        output = ctx.output_path(asset, self)
        ctx.graph.add_action(
            "ibtool",
            [output],
            [asset.path],
            variables={
                "ibtool": asset.scope.get_str("IBTOOL", "ibtool"),
                "flags": _deployment_target(asset),
            },
        )
        return [asset.derive(output)]


class ActoolPlugin(BasePlugin):
    """Compile an asset catalog.

    actool always names its output Assets.car, so each catalog gets its
    own output directory.
    """

    RULE = Rule(
        name="actool",
        command="$actool --compile $outdir --platform macosx $flags $in",
        description="ACTOOL $out",
    )
    OUTPUT_NAME = "Assets.car"

    def __init__(self) -> None:
        super().__init__("actool", {".xcassets": ".car"})

    def setup(self, ctx: PipelineContext) -> None:
        ctx.graph.add_rule(self.RULE)

    def transform(self, asset: Asset, ctx: PipelineContext) -> list[Asset]:
        outdir = ctx.output_path(asset, self).with_suffix("")
        output = outdir / self.OUTPUT_NAME
        implicit = tree_files(asset.path) if asset.path.is_dir() else []
        ctx.graph.add_action(
            "actool",
            [output],
            [asset.path],
            implicit=implicit,
            variables={
                "actool": asset.scope.get_str("ACTOOL", "actool"),
                "outdir": str(outdir),
                "flags": _deployment_target(asset),
            },
        )
        return [asset.derive(output)]


class PlistPlugin(BasePlugin):
    """Convert a property list to binary format."""

    RULE = Rule(
        name="plist",
        command="$plutil -convert binary1 -o $out $in",
        description="PLIST $out",
    )

    def __init__(self) -> None:
        super().__init__("plist", {".plist": ".plist"})

    def setup(self, ctx: PipelineContext) -> None:
        ctx.graph.add_rule(self.RULE)

    def transform(self, asset: Asset, ctx: PipelineContext) -> list[Asset]:
        output = ctx.output_path(asset, self)
        ctx.graph.add_action(
            "plist",
            [output],
            [asset.path],
            variables={"plutil": asset.scope.get_str("PLUTIL", "plutil")},
        )
        return [asset.derive(output)]


class MarkdownPlugin(BasePlugin):
    """Render a markdown document to HTML."""

    def __init__(self) -> None:
        super().__init__("markdown", {".md": ".html"})

    def setup(self, ctx: PipelineContext) -> None:
        ctx.graph.add_rule(
            Rule(name="markdown", command="$markdown $in > $out", description="MARKDOWN $out")
        )
        ctx.graph.add_rule(
            Rule(
                name="concat",
                command=f"{helper_command('concat')} $in $out",
                description="CONCAT $out",
            )
        )

    def transform(self, asset: Asset, ctx: PipelineContext) -> list[Asset]:
        tool = asset.scope.get_str("MARKDOWN", "markdown")
        header = asset.scope.get_path("HTML_HEADER")
        footer = asset.scope.get_path("HTML_FOOTER")
        output = ctx.output_path(asset, self)

        if header is None and footer is None:
            ctx.graph.add_action("markdown", [output], [asset.path], variables={"markdown": tool})
            return [asset.derive(output)]

        body = ctx.output_path(asset, self, ".body.html")
        ctx.graph.add_action("markdown", [body], [asset.path], variables={"markdown": tool})
        parts = [p for p in (header, body, footer) if p is not None]
        ctx.graph.add_action("concat", [output], parts)
        logger.debug("wrapping %s in %s", output, ", ".join(str(p) for p in parts))
        return [asset.derive(output)]
