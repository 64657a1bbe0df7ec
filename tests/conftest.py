# SPDX-License-Identifier: MIT
"""Shared fixtures for bcons tests."""

from __future__ import annotations

import textwrap
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

import bcons
from bcons.core.project import DEFAULT_SETTINGS, Project


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep tool overrides from the caller's environment out of the tests."""
    monkeypatch.delenv(bcons.VARS_ENV, raising=False)
    for key in DEFAULT_SETTINGS:
        monkeypatch.delenv(key, raising=False)
    bcons._reset_env_vars()
    yield
    bcons._reset_env_vars()


def _write(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text).lstrip("\n"))
    return path


@pytest.fixture
def write() -> Callable[..., Path]:
    """Write dedented text to a path, creating parent directories."""
    return _write


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Project]:
    """Load build.targets from tmp_path into a fresh project.

    Files are written first: a mapping of relative path to contents.
    """

    def factory(files: dict[str, str], **kwargs: object) -> Project:
        for name, text in files.items():
            _write(tmp_path / name, text)
        project = Project(root_dir=tmp_path, build_dir=tmp_path / "build", **kwargs)  # type: ignore[arg-type]
        project.load(tmp_path / "build.targets")
        return project

    return factory
