# SPDX-License-Identifier: MIT
"""Tests for bcons.core.flags."""

from bcons.core.flags import (
    LinkFlags,
    deduplicate_flags,
    is_separated_arg_flag,
    quote_deferred,
)


class TestIsSeparatedArgFlag:
    def test_framework_takes_argument(self):
        assert is_separated_arg_flag("-framework")
        assert is_separated_arg_flag("-F")

    def test_attached_flags_do_not(self):
        assert not is_separated_arg_flag("-L/usr/lib")
        assert not is_separated_arg_flag("-dead_strip")

    def test_custom_set(self):
        assert is_separated_arg_flag("-custom", frozenset(["-custom"]))


class TestDeduplicateFlags:
    def test_simple_duplicates(self):
        assert deduplicate_flags(["-dead_strip", "-g", "-dead_strip"]) == ["-dead_strip", "-g"]

    def test_pairs_are_units(self):
        flags = ["-framework", "Cocoa", "-framework", "Metal", "-framework", "Cocoa"]
        assert deduplicate_flags(flags) == ["-framework", "Cocoa", "-framework", "Metal"]

    def test_same_flag_different_argument_kept(self):
        assert deduplicate_flags(["-F", "a", "-F", "b"]) == ["-F", "a", "-F", "b"]

    def test_trailing_separated_flag(self):
        assert deduplicate_flags(["-g", "-framework"]) == ["-g", "-framework"]

    def test_order_preserved(self):
        assert deduplicate_flags(["-b", "-a", "-b", "-c"]) == ["-b", "-a", "-c"]


class TestQuoteDeferred:
    def test_dollar_is_quoted(self):
        assert quote_deferred("-Wl,-rpath,$ORIGIN") == "'-Wl,-rpath,$ORIGIN'"

    def test_plain_flag_unchanged(self):
        assert quote_deferred("-lz") == "-lz"


class TestLinkFlags:
    def test_as_args_order(self):
        flags = LinkFlags(
            static_archives=["/lib/libfoo.a"],
            dynamic_libs=["-lz"],
            frameworks=["-framework", "Cocoa"],
            flags=["-dead_strip"],
        )
        assert flags.as_args() == [
            "/lib/libfoo.a",
            "-lz",
            "-framework",
            "Cocoa",
            "-dead_strip",
        ]

    def test_empty(self):
        assert LinkFlags().as_args() == []
