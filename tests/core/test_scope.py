# SPDX-License-Identifier: MIT
"""Tests for bcons.core.scope."""

from pathlib import Path

import pytest

from bcons.core.errors import DescriptionSyntaxError
from bcons.core.scope import ScopeChain, split_value
from bcons.util.source_location import SourceLocation


class TestDerive:
    def test_derive_leaves_parent_untouched(self):
        parent = ScopeChain.root({"FLAGS": "-O2"})
        child = parent.derive({"FLAGS": "-g"})

        assert parent.get("FLAGS") == "-O2"
        assert child.get("FLAGS") == "-g"
        assert len(parent.scopes) == 1
        assert len(child.scopes) == 2

    def test_siblings_are_independent(self):
        parent = ScopeChain.root({"CC": "clang"})
        a = parent.derive({"CC": "gcc"})
        b = parent.derive({})

        assert a.get("CC") == "gcc"
        assert b.get("CC") == "clang"

    def test_directory_defaults_to_leaf_directory(self, tmp_path):
        parent = ScopeChain.root({}, directory=tmp_path)
        assert parent.derive({}).directory == tmp_path
        assert parent.derive({}, tmp_path / "sub").directory == tmp_path / "sub"

    def test_location(self, tmp_path):
        origin = tmp_path / "build.targets"
        chain = ScopeChain.root({}).derive({"LINK": "@lib"}, origin=origin, lines={"LINK": 3})

        assert chain.location("LINK") == SourceLocation(origin, 3)
        assert str(chain.location("LINK")).endswith("build.targets:3")
        assert chain.location("SOURCES") is None


class TestAccumulatingLookups:
    def test_accumulate_leaf_first(self):
        chain = ScopeChain.root({"FLAGS": "-O2"}).derive({"FLAGS": "-g"})
        assert chain.accumulate("FLAGS") == "-g -O2"

    def test_accumulate_skips_undefining_scopes(self):
        chain = ScopeChain.root({"FLAGS": "-O2"}).derive({"CC": "gcc"}).derive({"FLAGS": "-g"})
        assert chain.accumulate("FLAGS") == "-g -O2"

    def test_accumulate_undefined_is_empty(self):
        assert ScopeChain.root({}).accumulate("FLAGS") == ""

    def test_accumulate_joins_structured_values(self):
        chain = ScopeChain.root({"FLAGS": ("-DNAME=a b", "-g")})
        assert chain.accumulate("FLAGS") == "'-DNAME=a b' -g"

    def test_get_list_word_splits_each_scope(self):
        chain = ScopeChain.root({"LIBS": "z m"}).derive({"LIBS": "'my lib'"})
        assert chain.get_list("LIBS") == ["my lib", "z", "m"]

    def test_structured_values_are_not_split(self):
        chain = ScopeChain.root({"X": ("a b", "c")})
        assert chain.get_list("X") == ["a b", "c"]
        assert split_value(("a b",)) == ["a b"]

    def test_unbalanced_quote_reports_declaring_line(self, tmp_path):
        origin = tmp_path / "build.targets"
        chain = ScopeChain.root({}).derive(
            {"SOURCES": "\"main.c"}, tmp_path, origin=origin, lines={"SOURCES": 2}
        )
        with pytest.raises(DescriptionSyntaxError, match="No closing quotation") as exc_info:
            chain.glob_list("SOURCES")
        assert exc_info.value.location == SourceLocation(origin, 2)

        with pytest.raises(DescriptionSyntaxError):
            chain.get_list("SOURCES")


class TestGlobList:
    def test_glob_relative_to_scope_directory(self, tmp_path):
        (tmp_path / "b.c").write_text("")
        (tmp_path / "a.c").write_text("")
        (tmp_path / "notes.txt").write_text("")

        chain = ScopeChain.root({"SOURCES": "*.c"}, directory=tmp_path)
        result = chain.glob_list("SOURCES")

        assert result.paths == [tmp_path / "a.c", tmp_path / "b.c"]
        assert result.directories == [tmp_path]
        assert result.references == []

    def test_literal_token_kept_without_match(self, tmp_path):
        chain = ScopeChain.root({"SOURCES": "generated.c"}, directory=tmp_path)
        assert chain.glob_list("SOURCES").paths == [tmp_path / "generated.c"]
        assert chain.glob_list("SOURCES").directories == []

    def test_references_are_not_globbed(self, tmp_path):
        chain = ScopeChain.root({"CP_HELPERS": "@tool data.txt"}, directory=tmp_path)
        result = chain.glob_list("CP_HELPERS")

        assert result.references == ["tool"]
        assert result.paths == [tmp_path / "data.txt"]

    def test_each_scope_uses_its_own_directory(self, tmp_path):
        outer = tmp_path
        inner = tmp_path / "inner"
        chain = ScopeChain.root({"IMPORT": "include"}, directory=outer).derive(
            {"IMPORT": "include"}, inner
        )
        assert chain.glob_list("IMPORT").paths == [inner / "include", outer / "include"]

    def test_inherit_false_reads_only_the_leaf(self, tmp_path):
        chain = ScopeChain.root({"SOURCES": "main.c"}, directory=tmp_path).derive({})
        assert chain.glob_list("SOURCES", inherit=False).paths == []
        assert chain.glob_list("SOURCES").paths == [tmp_path / "main.c"]

    def test_recursive_glob(self, tmp_path):
        (tmp_path / "src" / "deep").mkdir(parents=True)
        (tmp_path / "src" / "deep" / "x.c").write_text("")
        chain = ScopeChain.root({"SOURCES": "src/**/*.c"}, directory=tmp_path)

        result = chain.glob_list("SOURCES")
        assert result.paths == [tmp_path / "src" / "deep" / "x.c"]
        assert result.directories == [tmp_path / "src"]


class TestNearestLookups:
    def test_get_returns_nearest_even_if_empty(self):
        chain = ScopeChain.root({"PRELUDE": "pch.h"}).derive({"PRELUDE": ""})
        assert chain.get("PRELUDE") == ""

    def test_get_default(self):
        assert ScopeChain.root({}).get("CC", "cc") == "cc"

    def test_get_path_resolves_against_declaring_scope(self, tmp_path):
        chain = ScopeChain.root({"PRELUDE": "pch.h"}, directory=tmp_path).derive(
            {}, tmp_path / "sub"
        )
        assert chain.get_path("PRELUDE") == tmp_path / "pch.h"

    def test_empty_value_hides_ancestor_path(self, tmp_path):
        chain = ScopeChain.root({"PRELUDE": "pch.h"}, directory=tmp_path).derive(
            {"PRELUDE": ""}
        )
        assert chain.get_path("PRELUDE") is None

    def test_get_path_absolute(self, tmp_path):
        chain = ScopeChain.root({"CS_ENTITLEMENTS": str(tmp_path / "e.plist")}, directory=Path("x"))
        assert chain.get_path("CS_ENTITLEMENTS") == tmp_path / "e.plist"

    def test_get_str(self):
        chain = ScopeChain.root({"CC": " clang ", "ARGS": ("a b", "c")})
        assert chain.get_str("CC") == "clang"
        assert chain.get_str("ARGS") == "'a b' c"
        assert chain.get_str("CXX", "clang++") == "clang++"


class TestIntrospection:
    def test_keys_leaf_first_deduplicated(self):
        chain = ScopeChain.root({"A": "1", "B": "2"}).derive({"C": "3", "A": "4"})
        assert chain.keys() == ["C", "A", "B"]

    def test_defines(self):
        chain = ScopeChain.root({"A": ""})
        assert chain.defines("A")
        assert not chain.defines("B")

    def test_entries(self):
        chain = ScopeChain.root({"A": "1"}).derive({"A": "2"})
        assert [value for value, _ in chain.entries("A")] == ["2", "1"]
