# SPDX-License-Identifier: MIT
"""Flag handling utilities for bcons.

Linker flags are collected from a target and every target in its link
closure, so the same flag usually shows up several times. Flags like
-framework, -F, -L or -Xlinker take their argument as the next token;
when de-duplicating, such a flag and its argument are one unit.

Flags that contain a ``$`` (e.g. ``-Wl,-rpath,$ORIGIN``) refer to a
variable that must survive until the loader or the shell resolves it.
They are shell-quoted so nothing on the way expands them early.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass, field

# Linker flags whose argument is the following token.
SEPARATED_ARG_FLAGS: frozenset[str] = frozenset(
    [
        "-framework",
        "-weak_framework",
        "-F",
        "-L",
        "-Xlinker",
        "-rpath",
        "-arch",
        "-install_name",
        "-exported_symbols_list",
        "-sectcreate",
    ]
)

# Marker of a variable left for later expansion.
DEFERRED_MARKER = "$"


def is_separated_arg_flag(
    flag: str, separated_arg_flags: frozenset[str] = SEPARATED_ARG_FLAGS
) -> bool:
    """Check if a flag takes its argument as a separate token.

    Examples:
        >>> is_separated_arg_flag("-framework")
        True
        >>> is_separated_arg_flag("-O2")
        False
    """
    return flag in separated_arg_flags


def _units(
    flags: list[str], separated_arg_flags: frozenset[str]
) -> list[tuple[str, ...]]:
    units: list[tuple[str, ...]] = []
    i = 0
    while i < len(flags):
        flag = flags[i]
        if is_separated_arg_flag(flag, separated_arg_flags) and i + 1 < len(flags):
            units.append((flag, flags[i + 1]))
            i += 2
        else:
            units.append((flag,))
            i += 1
    return units


def deduplicate_flags(
    flags: list[str], separated_arg_flags: frozenset[str] = SEPARATED_ARG_FLAGS
) -> list[str]:
    """De-duplicate a list of flags, preserving flag+argument pairs.

    The first occurrence wins, so the result keeps the original order.

    Examples:
        >>> deduplicate_flags(["-dead_strip", "-dead_strip"])
        ['-dead_strip']

        >>> deduplicate_flags(["-framework", "Cocoa", "-framework", "Cocoa"])
        ['-framework', 'Cocoa']

        >>> deduplicate_flags(["-F", "a", "-F", "b"])
        ['-F', 'a', '-F', 'b']
    """
    result: list[str] = []
    seen: set[tuple[str, ...]] = set()
    for unit in _units(flags, separated_arg_flags):
        if unit not in seen:
            seen.add(unit)
            result.extend(unit)
    return result


def quote_deferred(flag: str) -> str:
    """Shell-quote a flag that refers to a variable expanded later.

    Examples:
        >>> quote_deferred("-Wl,-rpath,$ORIGIN")
        "'-Wl,-rpath,$ORIGIN'"
        >>> quote_deferred("-lz")
        '-lz'
    """
    if DEFERRED_MARKER in flag:
        return shlex.quote(flag)
    return flag


@dataclass
class LinkFlags:
    """Link inputs and flags collected over a target's link closure.

    Attributes:
        static_archives: Paths of .a archives, passed as link inputs.
        dynamic_libs: -l references and shared library paths.
        frameworks: -framework pairs, de-duplicated.
        flags: Raw linker flags, de-duplicated, with deferred variables
            already quoted.
    """

    static_archives: list[str] = field(default_factory=list)
    dynamic_libs: list[str] = field(default_factory=list)
    frameworks: list[str] = field(default_factory=list)
    flags: list[str] = field(default_factory=list)

    def as_args(self) -> list[str]:
        """All flags in command-line order."""
        return [*self.static_archives, *self.dynamic_libs, *self.frameworks, *self.flags]
