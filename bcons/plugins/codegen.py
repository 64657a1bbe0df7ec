# SPDX-License-Identifier: MIT
"""Source generators: bison, flex and capnp.

Generated sources land in the target's intermediate directory and flow
on through the pipeline (usually into the compile plugin). Their scope
gets the output directory as an extra include directory so the
generated file finds the headers generated next to it; sibling assets
are unaffected.
"""

from __future__ import annotations

from pathlib import Path

from bcons.core.action import Rule
from bcons.core.pipeline import Asset, BasePlugin, PipelineContext


class SourceGeneratorPlugin(BasePlugin):
    """Base class for plugins that run a tool to produce source code.

    Subclasses set rule and tool_key/default_tool, and may override
    extra_outputs() and variables().
    """

    rule: Rule
    tool_key: str
    default_tool: str

    def setup(self, ctx: PipelineContext) -> None:
        ctx.graph.add_rule(self.rule)

    def extra_outputs(self, output: Path) -> list[Path]:
        """Files the tool writes besides output."""
        return []

    def variables(self, asset: Asset, output: Path) -> dict[str, str]:
        return {}

    def transform(self, asset: Asset, ctx: PipelineContext) -> list[Asset]:
        output = ctx.output_path(asset, self)
        variables = {"tool": asset.scope.get_str(self.tool_key, self.default_tool)}
        variables.update(self.variables(asset, output))
        ctx.graph.add_action(
            self.rule.name,
            [output],
            [asset.path],
            implicit_outputs=self.extra_outputs(output),
            variables=variables,
        )
        scope = asset.scope.derive({"IMPORT": (".",)}, output.parent)
        return [asset.derive(output, scope)]


class BisonPlugin(SourceGeneratorPlugin):
    """Generate a parser (and its header) from a grammar."""

    rule = Rule(
        name="bison",
        command="$tool --defines=$header -o $out $in",
        description="BISON $out",
    )
    tool_key = "BISON"
    default_tool = "bison"

    def __init__(self) -> None:
        super().__init__("bison", {".y": ".c", ".ypp": ".cpp"}, aliases={".yy": ".ypp"})

    @staticmethod
    def header(output: Path) -> Path:
        return output.with_suffix(".hpp" if output.suffix == ".cpp" else ".h")

    def extra_outputs(self, output: Path) -> list[Path]:
        return [self.header(output)]

    def variables(self, asset: Asset, output: Path) -> dict[str, str]:
        return {"header": str(self.header(output))}


class FlexPlugin(SourceGeneratorPlugin):
    """Generate a scanner from a lexer specification."""

    rule = Rule(name="flex", command="$tool -o $out $in", description="FLEX $out")
    tool_key = "FLEX"
    default_tool = "flex"

    def __init__(self) -> None:
        super().__init__("flex", {".l": ".c", ".ll": ".cpp"})


class CapnpPlugin(SourceGeneratorPlugin):
    """Generate C++ serialization code from a Cap'n Proto schema."""

    rule = Rule(
        name="capnp",
        command="$tool compile --src-prefix=$srcdir -oc++:$outdir $in",
        description="CAPNP $out",
    )
    tool_key = "CAPNP"
    default_tool = "capnp"

    def __init__(self) -> None:
        super().__init__("capnp", {".capnp": ".capnp.c++"})

    def extra_outputs(self, output: Path) -> list[Path]:
        # foo.capnp.c++ -> foo.capnp.h
        return [output.with_suffix(".h")]

    def variables(self, asset: Asset, output: Path) -> dict[str, str]:
        return {"srcdir": str(asset.path.parent), "outdir": str(output.parent)}
