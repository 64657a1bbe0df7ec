# SPDX-License-Identifier: MIT
"""Tests for bcons.core.graph."""

import pytest

from bcons.core.errors import DependencyCycleError, EmbeddingError, UnknownTargetError

ROOT = "TARGETS = a b c\n"


class TestValidate:
    def test_unknown_link_reports_file_and_line(self, make_project, tmp_path):
        project = make_project(
            {
                "build.targets": "TARGETS = a\n",
                "a/build.targets": "TARGET_NAME = a\nSOURCES = main.c\nLINK = @missing\n",
            }
        )
        with pytest.raises(UnknownTargetError) as exc_info:
            project.generate()

        error = exc_info.value
        assert error.reference == "missing"
        assert error.key == "LINK"
        assert error.location.filename == tmp_path / "a" / "build.targets"
        assert error.location.lineno == 3
        assert "missing" in str(error)

    def test_unknown_resource_reference(self, make_project):
        project = make_project(
            {
                "build.targets": "TARGETS = a\n",
                "a/build.targets": "TARGET_NAME = a\nCP_HELPERS = @ghost\n",
            }
        )
        with pytest.raises(UnknownTargetError) as exc_info:
            project.target_graph.validate()
        assert exc_info.value.key == "CP_HELPERS"

    def test_link_cycle(self, make_project):
        project = make_project(
            {
                "build.targets": ROOT,
                "a/build.targets": "TARGET_NAME = a\nLINK = @b\n",
                "b/build.targets": "TARGET_NAME = b\nLINK = @c\n",
                "c/build.targets": "TARGET_NAME = c\nLINK = @a\n",
            }
        )
        with pytest.raises(DependencyCycleError) as exc_info:
            project.target_graph.validate()
        assert exc_info.value.kind == "link"
        assert exc_info.value.cycle == ["a", "b", "c", "a"]

    def test_self_link_is_ignored(self, make_project):
        project = make_project(
            {
                "build.targets": "TARGETS = a\n",
                "a/build.targets": "TARGET_NAME = a\nLINK = @a\n",
            }
        )
        project.target_graph.validate()
        assert [t.name for t in project.target_graph.roots()] == ["a"]


class TestRootsAndOrder:
    def test_roots_exclude_linked_targets(self, make_project):
        project = make_project(
            {
                "build.targets": ROOT,
                "a/build.targets": "TARGET_NAME = a\nLINK = @b\n",
                "b/build.targets": "TARGET_NAME = b\n",
                "c/build.targets": "TARGET_NAME = c\n",
            }
        )
        assert [t.name for t in project.target_graph.roots()] == ["a", "c"]

    def test_embedded_roots_come_first(self, make_project):
        # a embeds b, b embeds c
        project = make_project(
            {
                "build.targets": ROOT,
                "a/build.targets": "TARGET_NAME = a\nCP_PLUGINS = @b\n",
                "b/build.targets": "TARGET_NAME = b\nCP_HELPERS = @c\n",
                "c/build.targets": "TARGET_NAME = c\n",
            }
        )
        assert [t.name for t in project.target_graph.build_order()] == ["c", "b", "a"]

    def test_independent_roots_keep_declaration_order(self, make_project):
        project = make_project(
            {
                "build.targets": ROOT,
                "a/build.targets": "TARGET_NAME = a\n",
                "b/build.targets": "TARGET_NAME = b\n",
                "c/build.targets": "TARGET_NAME = c\n",
            }
        )
        order = [t.name for t in project.target_graph.build_order()]
        assert order == ["a", "b", "c"]

    def test_embedded_root_moves_ahead_of_earlier_roots(self, make_project):
        project = make_project(
            {
                "build.targets": ROOT,
                "a/build.targets": "TARGET_NAME = a\nCP_HELPERS = @c\n",
                "b/build.targets": "TARGET_NAME = b\n",
                "c/build.targets": "TARGET_NAME = c\n",
            }
        )
        order = [t.name for t in project.target_graph.build_order()]
        assert order == ["b", "c", "a"]

    def test_embedding_through_a_linked_library(self, make_project):
        project = make_project(
            {
                "build.targets": "TARGETS = b a lib\n",
                "a/build.targets": "TARGET_NAME = a\nSOURCES = main.c\nLINK = @lib\n",
                "b/build.targets": "TARGET_NAME = b\nSOURCES = b.c\n",
                "lib/build.targets": "TARGET_NAME = lib\nSOURCES = lib.c\nCP_HELPERS = @b\n",
            }
        )
        order = [t.name for t in project.target_graph.build_order()]
        assert order == ["b", "a"]

        project.generate()
        helper = project.build_dir / "a.app" / "Contents" / "Helpers" / "b"
        assert project.graph.producer(helper).rule == "copy"

    def test_embedding_cycle_through_a_linked_library(self, make_project):
        project = make_project(
            {
                "build.targets": "TARGETS = a lib\n",
                "a/build.targets": "TARGET_NAME = a\nLINK = @lib\n",
                "lib/build.targets": "TARGET_NAME = lib\nCP_HELPERS = @a\n",
            }
        )
        with pytest.raises(DependencyCycleError) as exc_info:
            project.target_graph.build_order()
        assert exc_info.value.kind == "embedding"
        assert exc_info.value.cycle == ["a", "a"]

    def test_embedding_a_library_is_an_error(self, make_project):
        project = make_project(
            {
                "build.targets": ROOT,
                "a/build.targets": "TARGET_NAME = a\nLINK = @b\n",
                "b/build.targets": "TARGET_NAME = b\n",
                "c/build.targets": "TARGET_NAME = c\nCP_FRAMEWORKS = @b\n",
            }
        )
        with pytest.raises(EmbeddingError, match="'c' embeds 'b'"):
            project.target_graph.build_order()

    def test_embedding_cycle(self, make_project):
        project = make_project(
            {
                "build.targets": "TARGETS = a b\n",
                "a/build.targets": "TARGET_NAME = a\nCP_PLUGINS = @b\n",
                "b/build.targets": "TARGET_NAME = b\nCP_PLUGINS = @a\n",
            }
        )
        with pytest.raises(DependencyCycleError) as exc_info:
            project.target_graph.build_order()
        assert exc_info.value.kind == "embedding"


class TestEdges:
    def test_link_and_embedding_edges(self, make_project):
        project = make_project(
            {
                "build.targets": ROOT,
                "a/build.targets": "TARGET_NAME = a\nLINK = @b\nCP_HELPERS = @c\n",
                "b/build.targets": "TARGET_NAME = b\n",
                "c/build.targets": "TARGET_NAME = c\n",
            }
        )
        graph = project.target_graph
        assert graph.link_edges() == [("a", "b")]
        assert graph.embedding_edges() == [("a", "c")]
