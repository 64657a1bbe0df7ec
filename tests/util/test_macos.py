# SPDX-License-Identifier: MIT
"""Tests for bcons.util.macos."""

from pathlib import Path, PurePosixPath

import pytest

from bcons.util.macos import (
    SIGNATURE_PATH,
    bundle_name,
    category_path,
    codesign_flags,
    executable_path,
    is_resource_key,
    tree_files,
)


class TestCategories:
    def test_is_resource_key(self):
        assert is_resource_key("CP_RESOURCES")
        assert is_resource_key("CP_Scripts")
        assert not is_resource_key("CP_")
        assert not is_resource_key("SOURCES")

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("CP_CONTENTS", "Contents"),
            ("CP_RESOURCES", "Contents/Resources"),
            ("CP_resources", "Contents/Resources"),
            ("CP_FRAMEWORKS", "Contents/Frameworks"),
            ("CP_PLUGINS", "Contents/PlugIns"),
            ("CP_HELPERS", "Contents/Helpers"),
            ("CP_XPC_SERVICES", "Contents/XPCServices"),
            ("CP_LOGIN_ITEMS", "Contents/Library/LoginItems"),
            ("CP_Scripts", "Contents/Scripts"),
        ],
    )
    def test_category_path(self, key, expected):
        assert category_path(key) == PurePosixPath(expected)

    def test_category_path_rejects_other_keys(self):
        with pytest.raises(ValueError):
            category_path("SOURCES")


class TestBundleLayout:
    def test_bundle_name(self):
        assert bundle_name("Viewer", None) == "Viewer.app"
        assert bundle_name("Filter", ".bundle") == "Filter.bundle"

    def test_executable_path(self):
        assert executable_path("Viewer") == PurePosixPath("Contents/MacOS/Viewer")

    def test_signature_path(self):
        assert str(SIGNATURE_PATH) == "Contents/_CodeSignature/CodeResources"


class TestTreeFiles:
    def test_sorted_and_hidden_skipped(self, tmp_path, write):
        write(tmp_path / "Assets" / "b.png", "")
        write(tmp_path / "Assets" / "a" / "c.json", "")
        write(tmp_path / "Assets" / ".DS_Store", "")
        write(tmp_path / "Assets" / ".git" / "config", "")
        (tmp_path / "Assets" / "empty").mkdir()

        files = tree_files(tmp_path / "Assets")

        assert files == [
            tmp_path / "Assets" / "a" / "c.json",
            tmp_path / "Assets" / "b.png",
        ]

    def test_hidden_root_is_still_listed(self, tmp_path, write):
        write(tmp_path / ".hidden" / "x.txt", "")
        assert tree_files(tmp_path / ".hidden") == [tmp_path / ".hidden" / "x.txt"]


class TestCodesignFlags:
    def test_ad_hoc(self):
        assert codesign_flags("-") == "--force --sign -"

    def test_empty_identity_signs_ad_hoc(self):
        assert codesign_flags("") == "--force --sign -"

    def test_identity_is_quoted(self):
        flags = codesign_flags("Developer ID Application: Example (ABC123)")
        assert flags == "--force --sign 'Developer ID Application: Example (ABC123)'"

    def test_entitlements_and_extra(self):
        flags = codesign_flags("-", Path("/src/app.entitlements"), "--timestamp --options runtime")
        assert flags == (
            "--force --sign - --entitlements /src/app.entitlements --timestamp --options runtime"
        )
