# SPDX-License-Identifier: MIT
"""Custom exceptions for bcons.

All bcons exceptions inherit from BconsError, which includes
optional source location information for better error messages.
Every error here is fatal: the CLI reports it and exits non-zero
without committing a build file.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bcons.util.source_location import SourceLocation


class BconsError(Exception):
    """Base class for all bcons exceptions.

    Attributes:
        message: The error message.
        location: Optional source location where the error occurred.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.message = message
        self.location = location
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class ConfigureError(BconsError):
    """Invalid target configuration.

    Raised when target descriptions are inconsistent or produce
    something the build cannot use.
    """


class DescriptionSyntaxError(ConfigureError):
    """A target-description line could not be parsed."""


class DuplicateTargetError(ConfigureError):
    """Two description files declare the same target name.

    Attributes:
        name: The duplicated target name.
    """

    def __init__(
        self,
        name: str,
        location: SourceLocation | None = None,
        previous: SourceLocation | None = None,
    ) -> None:
        self.name = name
        self.previous = previous
        message = f"duplicate target name: {name}"
        if previous is not None:
            message += f" (first declared at {previous})"
        super().__init__(message, location)


class UnknownTargetError(ConfigureError):
    """A LINK or resource entry references a target that was never declared.

    Attributes:
        reference: The undeclared target name.
        key: The description key holding the reference.
    """

    def __init__(
        self,
        reference: str,
        key: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.reference = reference
        self.key = key
        super().__init__(f"{key}: unknown target '{reference}'", location)


class EmbeddingError(ConfigureError):
    """A bundle embeds a target that cannot be embedded."""


class UnrecognizedAssetError(ConfigureError):
    """A source file did not transform into an object file.

    Attributes:
        target: Name of the target being compiled.
        path: The terminal file that is not an object.
    """

    def __init__(
        self,
        target: str,
        path: Path,
        location: SourceLocation | None = None,
    ) -> None:
        self.target = target
        self.path = path
        super().__init__(
            f"target '{target}': don't know how to build an object from {path}",
            location,
        )


class DependencyCycleError(BconsError):
    """Circular dependency detected between targets.

    Attributes:
        cycle: The target names forming the cycle.
        kind: Which relation the cycle is in ("link" or "embedding").
    """

    def __init__(
        self,
        cycle: list[str],
        kind: str = "link",
        location: SourceLocation | None = None,
    ) -> None:
        self.cycle = cycle
        self.kind = kind
        cycle_str = " -> ".join(cycle)
        super().__init__(f"{kind} dependency cycle: {cycle_str}", location)


class AlreadyAssembledError(BconsError):
    """assemble() was called twice on the same target."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"target '{name}' already assembled")


class GenerateError(BconsError):
    """Error during the generate phase.

    Raised when the build graph is inconsistent or build file
    generation fails.
    """
