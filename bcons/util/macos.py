# SPDX-License-Identifier: MIT
"""macOS bundle layout and code-signing helpers.

A bundle is a directory tree:

    Hello.app/
      Contents/
        Info.plist                  (CP_CONTENTS)
        MacOS/Hello                 (the executable)
        Resources/...               (CP_RESOURCES)
        PlugIns/...                 (CP_PLUGINS)
        _CodeSignature/CodeResources

Resource categories are declared with ``CP_<CATEGORY>`` keys; this
module maps a category to its place inside the bundle.
"""

from __future__ import annotations

import shlex
from pathlib import Path, PurePosixPath

# Prefix of resource-category keys.
CATEGORY_PREFIX = "CP_"

# Category whose files land at the bundle's manifest location.
MANIFEST_CATEGORY = "CONTENTS"

DEFAULT_BUNDLE_EXTENSION = "app"

CONTENTS = PurePosixPath("Contents")

BUNDLE_CATEGORIES: dict[str, PurePosixPath] = {
    MANIFEST_CATEGORY: CONTENTS,
    "RESOURCES": CONTENTS / "Resources",
    "FRAMEWORKS": CONTENTS / "Frameworks",
    "PLUGINS": CONTENTS / "PlugIns",
    "SHARED_SUPPORT": CONTENTS / "SharedSupport",
    "MACOS": CONTENTS / "MacOS",
    "HELPERS": CONTENTS / "Helpers",
    "XPC_SERVICES": CONTENTS / "XPCServices",
    "LOGIN_ITEMS": CONTENTS / "Library" / "LoginItems",
}

SIGNATURE_PATH = CONTENTS / "_CodeSignature" / "CodeResources"


def is_resource_key(key: str) -> bool:
    """Check whether key declares a bundle resource category."""
    return key.startswith(CATEGORY_PREFIX) and len(key) > len(CATEGORY_PREFIX)


def category_path(key: str) -> PurePosixPath:
    """Bundle-relative directory for a resource-category key.

    Examples:
        >>> category_path("CP_RESOURCES")
        PurePosixPath('Contents/Resources')
        >>> category_path("CP_CONTENTS")
        PurePosixPath('Contents')
        >>> category_path("CP_Scripts")
        PurePosixPath('Contents/Scripts')
    """
    if not is_resource_key(key):
        raise ValueError(f"{key} is not a resource-category key")
    category = key[len(CATEGORY_PREFIX) :]
    known = BUNDLE_CATEGORIES.get(category.upper())
    if known is not None:
        return known
    return CONTENTS / category


def bundle_name(name: str, extension: str | None) -> str:
    """File name of a bundle, e.g. ``Hello.app``."""
    extension = (extension or DEFAULT_BUNDLE_EXTENSION).lstrip(".")
    return f"{name}.{extension}"


def executable_path(name: str) -> PurePosixPath:
    """Bundle-relative path of the bundle's executable."""
    return CONTENTS / "MacOS" / name


def tree_files(directory: Path) -> list[Path]:
    """Non-hidden files below directory, sorted.

    A file is skipped when any component of its path below directory
    starts with a dot, so .DS_Store and everything under .git is left
    out of copied directories and asset catalogs alike.
    """
    return sorted(
        p
        for p in directory.rglob("*")
        if p.is_file()
        and not any(part.startswith(".") for part in p.relative_to(directory).parts)
    )


def codesign_flags(
    identity: str,
    entitlements: Path | None = None,
    extra: str = "",
) -> str:
    """Build the argument string passed to codesign.

    Args:
        identity: Signing identity; "-" signs ad hoc.
        entitlements: Optional entitlements plist.
        extra: Additional flags, already shell-formatted.

    Returns:
        Shell-formatted flags.
    """
    args = ["--force", "--sign", identity or "-"]
    if entitlements is not None:
        args += ["--entitlements", str(entitlements)]
    parts = [shlex.join(args)]
    if extra:
        parts.append(extra)
    return " ".join(parts)
