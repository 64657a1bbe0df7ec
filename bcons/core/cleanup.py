# SPDX-License-Identifier: MIT
"""Removal of outputs that are no longer part of the build.

When a target, source or resource disappears from the descriptions,
its old outputs would otherwise linger in the build directory (and
worse, inside bundles). Before regenerating, the outputs declared by
the previous Ninja file are recorded; afterwards, every recorded
output the new file no longer declares is deleted.

Static archives are never deleted, since they may be provided from
outside the build, and neither is anything outside the build directory.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

_SKIPPED_SUFFIXES = (".a",)


class CleanupTracker:
    """Diff the outputs of two generations of a Ninja file.

    Example:
        tracker = CleanupTracker(Path("build/build.ninja"), Path("build"))
        tracker.begin()
        ...  # regenerate build.ninja
        removed = tracker.finish()

    Attributes:
        ninja_file: The Ninja file being regenerated.
        build_dir: Outputs outside this directory are never touched.
        ninja: Ninja executable used for the query.
    """

    def __init__(self, ninja_file: Path, build_dir: Path, ninja: str = "ninja") -> None:
        self.ninja_file = Path(ninja_file).absolute()
        self.build_dir = Path(build_dir).absolute()
        self.ninja = ninja
        self._before: set[Path] | None = None

    def snapshot(self) -> set[Path] | None:
        """Outputs declared by the Ninja file, or None if unavailable.

        Runs ``ninja -t targets all`` and keeps outputs whose rule is not
        phony, that are not static archives, and that lie under the
        build directory.
        """
        if not self.ninja_file.is_file():
            return None
        if shutil.which(self.ninja) is None:
            logger.debug("%s not found; stale outputs will not be removed", self.ninja)
            return None

        directory = self.ninja_file.parent
        try:
            output = subprocess.check_output(
                [self.ninja, "-C", str(directory), "-f", self.ninja_file.name,
                 "-t", "targets", "all"],
                text=True,
                stderr=subprocess.PIPE,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            logger.warning("cannot list outputs of %s: %s", self.ninja_file, e)
            return None
        return self._parse(output, directory)

    def _parse(self, output: str, directory: Path) -> set[Path]:
        # Format: "<path>: <rule>"
        outputs: set[Path] = set()
        for line in output.splitlines():
            path_text, sep, rule = line.rpartition(": ")
            if not sep or rule.strip() == "phony":
                continue
            path = Path(path_text)
            if not path.is_absolute():
                path = Path(os.path.normpath(directory / path))
            if path.suffix in _SKIPPED_SUFFIXES:
                continue
            if not path.absolute().is_relative_to(self.build_dir):
                continue
            outputs.add(path)
        return outputs

    def begin(self) -> None:
        """Record the outputs of the existing Ninja file."""
        self._before = self.snapshot()

    def finish(self) -> list[Path]:
        """Delete outputs the regenerated Ninja file no longer declares.

        Returns:
            The paths that were removed.
        """
        if self._before is None:
            return []
        after = self.snapshot()
        if after is None:
            return []

        removed: list[Path] = []
        for path in sorted(self._before - after):
            if not path.exists() and not path.is_symlink():
                continue
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except OSError as e:
                logger.warning("cannot remove stale output %s: %s", path, e)
                continue
            logger.info("removed stale output %s", path)
            removed.append(path)
        return removed
