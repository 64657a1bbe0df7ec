# SPDX-License-Identifier: MIT
"""Target-description file parser.

Description files are flat, line-oriented declarations:

    # comment
    TARGET_NAME = hello
    SOURCES = src/*.c
    SOURCES += extra/util.c
    FLAGS = -Wall \\
            -Wextra
    LINK = @support

``+=`` appends to a value declared earlier in the same file, joined
with a space. ``-=`` is accepted by the grammar but replaces the value
exactly like ``=``; no subtraction is performed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from bcons.core.errors import ConfigureError, DescriptionSyntaxError
from bcons.util.source_location import SourceLocation

logger = logging.getLogger(__name__)

# Default file name when TARGETS names a directory.
DEFAULT_DESCRIPTION_NAME = "build.targets"

_ASSIGNMENT = re.compile(r"^(?P<key>[A-Za-z0-9_/]+)\s*(?P<op>\+=|-=|=)\s*(?P<value>.*)$")


@dataclass
class Description:
    """The parsed contents of one description file.

    Attributes:
        path: Path of the file.
        values: Key to raw value, in declaration order.
        lines: Key to the line of its first declaration.
    """

    path: Path
    values: dict[str, str] = field(default_factory=dict)
    lines: dict[str, int] = field(default_factory=dict)

    @property
    def directory(self) -> Path:
        return self.path.parent


def _logical_lines(text: str) -> list[tuple[int, str]]:
    """Join backslash-continued lines, keeping the starting line number."""
    result: list[tuple[int, str]] = []
    pending: list[str] = []
    start = 0
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.rstrip()
        if not pending:
            start = lineno
        if line.endswith("\\"):
            pending.append(line[:-1].strip())
            continue
        pending.append(line.strip())
        result.append((start, " ".join(p for p in pending if p)))
        pending = []
    if pending:
        result.append((start, " ".join(p for p in pending if p)))
    return result


def parse_text(text: str, path: Path) -> Description:
    """Parse description text.

    Args:
        text: File contents.
        path: File path, used for locations and relative paths.

    Returns:
        The parsed Description.

    Raises:
        DescriptionSyntaxError: On a line that is not a declaration.
    """
    description = Description(path)

    for lineno, line in _logical_lines(text):
        if not line or line.startswith("#"):
            continue
        match = _ASSIGNMENT.match(line)
        if match is None:
            raise DescriptionSyntaxError(
                f"expected KEY = value, got: {line}", SourceLocation(path, lineno)
            )
        key, op, value = match.group("key", "op", "value")
        value = value.strip()

        if op == "+=" and key in description.values:
            previous = description.values[key]
            description.values[key] = f"{previous} {value}" if previous else value
        else:
            if op == "-=":
                logger.debug("%s:%d: '-=' on %s replaces the value", path, lineno, key)
            description.values[key] = value
        description.lines.setdefault(key, lineno)

    return description


def parse_description(path: Path | str) -> Description:
    """Read and parse a description file."""
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigureError(f"cannot read description: {e}", SourceLocation(path)) from e
    return parse_text(text, path)
