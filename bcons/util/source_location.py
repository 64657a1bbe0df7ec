# SPDX-License-Identifier: MIT
"""Source locations for diagnostics.

A SourceLocation points at a line in a target-description file so that
configuration errors can be reported as ``file:line: message``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class SourceLocation:
    """A position in a target-description file.

    Attributes:
        filename: Path of the description file.
        lineno: 1-based line number, or None if only the file is known.
    """

    filename: Path
    lineno: int | None = None

    def __str__(self) -> str:
        if self.lineno is None:
            return str(self.filename)
        return f"{self.filename}:{self.lineno}"
