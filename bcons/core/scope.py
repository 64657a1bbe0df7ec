# SPDX-License-Identifier: MIT
"""Hierarchical configuration scopes.

A ScopeChain is an ordered, immutable list of scopes from the most
specific (a single target description) to the least specific (the
built-in defaults). Each scope maps keys to either a raw string, as
written in a description file, or an already-structured tuple of
tokens.

Two families of lookup coexist and must not be confused:

- Accumulating lookups (accumulate, get_list, glob_list) collect the
  value of every scope that defines a key, leaf first. Flags declared
  in an enclosing description compose with the target's own flags.
- Nearest-definition lookups (get, get_path) stop at the first scope
  that defines the key, even when its value is empty. This is how a
  target overrides, or clears, a singular setting such as a header
  path.

Scopes are never modified after creation. derive() layers a new leaf
on top of an existing chain and shares the ancestors with it.
"""

from __future__ import annotations

import glob
import logging
import re
import shlex
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import NamedTuple

from bcons.core.errors import DescriptionSyntaxError
from bcons.util.source_location import SourceLocation

logger = logging.getLogger(__name__)

# Prefix marking a token as a reference to another target rather than a file.
REFERENCE_SIGIL = "@"

_GLOB_MAGIC = re.compile(r"[*?[]")

Value = str | tuple[str, ...]


@dataclass(frozen=True)
class Scope:
    """One level of configuration.

    Attributes:
        values: Key to raw string or token tuple.
        directory: Base directory for relative paths and globs.
        origin: Description file the values were read from.
        lines: Line number of each key in origin.
    """

    values: Mapping[str, Value]
    directory: Path | None = None
    origin: Path | None = None
    lines: Mapping[str, int] = field(default_factory=dict)

    def location(self, key: str) -> SourceLocation | None:
        """Return where key was declared in this scope, if known."""
        if self.origin is None:
            return None
        return SourceLocation(self.origin, self.lines.get(key))


class GlobResult(NamedTuple):
    """Result of a glob-expanding list lookup.

    Attributes:
        paths: Expanded file paths, in chain order.
        references: Target names referenced with the sigil, sigil removed.
        directories: Directories in which globs were evaluated.
    """

    paths: list[Path]
    references: list[str]
    directories: list[Path]


def _normalize(value: str | Sequence[str]) -> Value:
    if isinstance(value, str):
        return value
    return tuple(str(v) for v in value)


def split_value(value: Value, location: SourceLocation | None = None) -> list[str]:
    """Word-split a raw value; structured values are returned as-is.

    Raises:
        DescriptionSyntaxError: If the value has unbalanced quotes.
    """
    if isinstance(value, tuple):
        return list(value)
    try:
        return shlex.split(value)
    except ValueError as e:
        raise DescriptionSyntaxError(f"cannot split {value!r}: {e}", location) from e


def _glob_root(pattern: Path) -> Path:
    parts: list[str] = []
    for part in pattern.parts:
        if _GLOB_MAGIC.search(part):
            break
        parts.append(part)
    return Path(*parts) if parts else Path(".")


class ScopeChain:
    """Read-only configuration lookup over a chain of scopes.

    Example:
        defaults = ScopeChain.root({"FLAGS": "-O2"})
        app = defaults.derive({"FLAGS": "-g"}, directory=Path("app"))
        app.accumulate("FLAGS")   # "-g -O2"
        app.get("FLAGS")          # "-g"
    """

    __slots__ = ("_scopes",)

    def __init__(self, scopes: tuple[Scope, ...] = ()) -> None:
        self._scopes = scopes

    @classmethod
    def root(
        cls,
        values: Mapping[str, str | Sequence[str]] | None = None,
        *,
        directory: Path | str | None = None,
    ) -> ScopeChain:
        """Create a single-scope chain."""
        return cls().derive(values or {}, directory)

    @property
    def scopes(self) -> tuple[Scope, ...]:
        """Scopes from leaf to root."""
        return self._scopes

    @property
    def leaf(self) -> Scope | None:
        return self._scopes[0] if self._scopes else None

    @property
    def directory(self) -> Path | None:
        """Base directory of the leaf scope."""
        leaf = self.leaf
        return leaf.directory if leaf is not None else None

    def derive(
        self,
        overrides: Mapping[str, str | Sequence[str]],
        directory: Path | str | None = None,
        *,
        origin: Path | None = None,
        lines: Mapping[str, int] | None = None,
    ) -> ScopeChain:
        """Return a new chain with overrides layered on top of this one.

        Args:
            overrides: Values for the new leaf scope. Sequences are stored
                as structured token lists and are never word-split.
            directory: Base directory of the new scope; defaults to the
                current leaf's directory.
            origin: Description file the overrides came from.
            lines: Line number of each override key in origin.

        Returns:
            The derived chain. This chain is left untouched.
        """
        if directory is None:
            base = self.directory
        else:
            base = Path(directory)
        scope = Scope(
            values=MappingProxyType({k: _normalize(v) for k, v in overrides.items()}),
            directory=base,
            origin=origin,
            lines=MappingProxyType(dict(lines or {})),
        )
        return ScopeChain((scope, *self._scopes))

    # Traversal

    def entries(self, key: str) -> Iterator[tuple[Value, Scope]]:
        """Yield (value, scope) for every scope defining key, leaf first."""
        for scope in self._scopes:
            if key in scope.values:
                yield scope.values[key], scope

    def defines(self, key: str) -> bool:
        """Check whether any scope in the chain defines key."""
        return any(key in scope.values for scope in self._scopes)

    def keys(self) -> list[str]:
        """All keys defined anywhere in the chain, leaf first, de-duplicated."""
        seen: dict[str, None] = {}
        for scope in self._scopes:
            for key in scope.values:
                seen.setdefault(key, None)
        return list(seen)

    def location(self, key: str) -> SourceLocation | None:
        """Location of the nearest declaration of key."""
        for _, scope in self.entries(key):
            return scope.location(key)
        return None

    # Accumulating lookups

    def accumulate(self, key: str) -> str:
        """Concatenate the value of key from every defining scope.

        Values are joined with a single space, leaf first, so that
        contributions from different scopes never run together.
        """
        parts: list[str] = []
        for value, _ in self.entries(key):
            text = shlex.join(value) if isinstance(value, tuple) else value.strip()
            if text:
                parts.append(text)
        return " ".join(parts)

    def get_list(self, key: str) -> list[str]:
        """Word-split the value of key from every defining scope.

        Leaf tokens come before ancestor tokens.
        """
        tokens: list[str] = []
        for value, scope in self.entries(key):
            tokens.extend(split_value(value, scope.location(key)))
        return tokens

    def glob_list(self, key: str, *, inherit: bool = True) -> GlobResult:
        """Word-split and glob-expand key relative to each scope's directory.

        Tokens starting with the reference sigil are returned separately
        as target references and are never globbed. A token without glob
        characters is kept even if the file does not exist yet, since it
        may be generated or reported later.

        Args:
            key: Key to look up.
            inherit: If False, only the leaf scope is consulted.

        Returns:
            GlobResult with paths, references and glob directories.
        """
        scopes = self._scopes if inherit else self._scopes[:1]
        paths: list[Path] = []
        references: list[str] = []
        directories: list[Path] = []

        for scope in scopes:
            if key not in scope.values:
                continue
            for token in split_value(scope.values[key], scope.location(key)):
                if token.startswith(REFERENCE_SIGIL):
                    references.append(token[len(REFERENCE_SIGIL) :])
                    continue
                pattern = Path(token).expanduser()
                if scope.directory is not None and not pattern.is_absolute():
                    pattern = scope.directory / pattern
                if not _GLOB_MAGIC.search(token):
                    paths.append(pattern)
                    continue
                matches = sorted(glob.glob(str(pattern), recursive=True))
                if not matches:
                    logger.debug("%s: pattern '%s' matched nothing", key, token)
                paths.extend(Path(m) for m in matches)
                root = _glob_root(pattern)
                if root not in directories:
                    directories.append(root)

        return GlobResult(paths, references, directories)

    # Nearest-definition lookups

    def get(self, key: str, default: Value | None = None) -> Value | None:
        """Return the value from the nearest scope defining key."""
        for value, _ in self.entries(key):
            return value
        return default

    def get_str(self, key: str, default: str = "") -> str:
        """Return the nearest value of key as a command-line string."""
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, tuple):
            return shlex.join(value)
        return value.strip()

    def get_path(self, key: str) -> Path | None:
        """Return the nearest value of key as a path.

        The path is resolved against the directory of the scope that
        defines it. An empty nearest value yields None and hides any
        ancestor definition.
        """
        for value, scope in self.entries(key):
            tokens = split_value(value) if isinstance(value, tuple) else [value.strip()]
            text = tokens[0] if tokens else ""
            if not text:
                return None
            path = Path(text).expanduser()
            if scope.directory is not None and not path.is_absolute():
                path = scope.directory / path
            return path
        return None

    def __repr__(self) -> str:
        leaf = self.leaf
        keys = ", ".join(leaf.values) if leaf is not None else ""
        return f"ScopeChain(depth={len(self._scopes)}, leaf=[{keys}])"
