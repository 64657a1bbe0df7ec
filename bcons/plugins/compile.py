# SPDX-License-Identifier: MIT
"""C, C++, Objective-C and Objective-C++ compilation.

Each source file becomes one object file. The compiler and flags come
from the asset's scope:

    cc     nearest CC (C, Objective-C) or CXX (C++, Objective-C++)
    flags  FLAGS + the language's flags (CFLAGS, CXXFLAGS, OBJCFLAGS,
           OBJCXXFLAGS) + -I for IMPORT and STAGED_INCLUDES
           + -mmacosx-version-min from MIN_MACOS_VERSION

If PRELUDE names a header, it is precompiled once per language and
flag set and included into every compilation.
"""

from __future__ import annotations

import hashlib
import logging
import shlex
from pathlib import Path
from typing import NamedTuple

from bcons.core.action import Rule
from bcons.core.pipeline import Asset, BasePlugin, PipelineContext
from bcons.core.scope import ScopeChain

logger = logging.getLogger(__name__)

OBJECT_SUFFIX = ".o"


class Language(NamedTuple):
    """A compiled language.

    Attributes:
        name: Name understood by the compiler's -x option.
        compiler_key: Scope key naming the compiler.
        flags_key: Scope key holding the language's own flags.
    """

    name: str
    compiler_key: str
    flags_key: str


LANGUAGES: dict[str, Language] = {
    ".c": Language("c", "CC", "CFLAGS"),
    ".cpp": Language("c++", "CXX", "CXXFLAGS"),
    ".m": Language("objective-c", "CC", "OBJCFLAGS"),
    ".mm": Language("objective-c++", "CXX", "OBJCXXFLAGS"),
}

DEFAULT_COMPILERS = {"CC": "clang", "CXX": "clang++"}

COMPILE_RULE = Rule(
    name="compile",
    command="$cc -MMD -MF $out.d $flags -c $in -o $out",
    description="CC $out",
    depfile="$out.d",
    deps="gcc",
)

PCH_RULE = Rule(
    name="pch",
    command="$cc -x $lang-header -MMD -MF $out.d $flags -c $in -o $out",
    description="PCH $out",
    depfile="$out.d",
    deps="gcc",
)


def include_dirs(scope: ScopeChain) -> list[Path]:
    """Include search directories: IMPORT first, then staged exports."""
    dirs: list[Path] = []
    candidates = [
        *scope.glob_list("IMPORT").paths,
        *(Path(p) for p in scope.get_list("STAGED_INCLUDES")),
    ]
    for path in candidates:
        if path not in dirs:
            dirs.append(path)
    return dirs


def compile_flags(scope: ScopeChain, language: Language) -> str:
    """Build the flag string for compiling language under scope."""
    parts: list[str] = []
    for key in ("FLAGS", language.flags_key):
        value = scope.accumulate(key)
        if value:
            parts.append(value)
    parts.extend("-I" + shlex.quote(str(d)) for d in include_dirs(scope))
    min_version = scope.get_str("MIN_MACOS_VERSION")
    if min_version:
        parts.append(f"-mmacosx-version-min={min_version}")
    return " ".join(parts)


class CompilePlugin(BasePlugin):
    """Compile a source file into an object file."""

    def __init__(self) -> None:
        super().__init__(
            "compile",
            {suffix: OBJECT_SUFFIX for suffix in LANGUAGES},
            aliases={".cc": ".cpp", ".cxx": ".cpp", ".c++": ".cpp"},
        )

    def setup(self, ctx: PipelineContext) -> None:
        ctx.graph.add_rule(COMPILE_RULE)
        ctx.graph.add_rule(PCH_RULE)

    def language(self, path: Path) -> Language:
        matched = self.match(path)
        if matched is None:
            raise ValueError(f"not a compilable source: {path}")
        return LANGUAGES[self.canonical(matched)]

    def transform(self, asset: Asset, ctx: PipelineContext) -> list[Asset]:
        scope = asset.scope
        language = self.language(asset.path)
        compiler = scope.get_str(
            language.compiler_key, DEFAULT_COMPILERS[language.compiler_key]
        )
        flags = compile_flags(scope, language)
        staged = [Path(p) for p in scope.get_list("STAGED_HEADERS")]

        implicit: list[Path] = []
        pch = self._precompiled_prelude(asset, language, compiler, flags, staged, ctx)
        if pch is not None:
            flags = f"{flags} -include-pch {shlex.quote(str(pch))}".strip()
            implicit.append(pch)

        output = ctx.output_path(asset, self)
        ctx.graph.add_action(
            "compile",
            [output],
            [asset.path],
            implicit=implicit,
            order_only=staged,
            variables={"cc": compiler, "flags": flags},
        )
        return [asset.derive(output)]

    def _precompiled_prelude(
        self,
        asset: Asset,
        language: Language,
        compiler: str,
        flags: str,
        staged: list[Path],
        ctx: PipelineContext,
    ) -> Path | None:
        prelude = asset.scope.get_path("PRELUDE")
        if prelude is None:
            return None

        key = ("pch", prelude, language.name, compiler, flags)
        cached = ctx.memo.get(key)
        if cached is not None:
            return cached

        digest = hashlib.sha1(f"{language.name}\0{compiler}\0{flags}".encode()).hexdigest()[:8]
        output = ctx.target_dir(asset.scope) / "pch" / f"{prelude.name}-{digest}.pch"
        ctx.graph.add_action(
            "pch",
            [output],
            [prelude],
            order_only=staged,
            variables={"cc": compiler, "lang": language.name, "flags": flags},
        )
        logger.debug("precompiling %s for %s as %s", prelude, language.name, output)
        ctx.memo[key] = output
        return output
