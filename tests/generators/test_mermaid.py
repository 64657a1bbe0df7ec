# SPDX-License-Identifier: MIT
"""Tests for bcons.generators.mermaid."""

from bcons.generators.mermaid import MermaidGenerator

PROJECT = {
    "build.targets": "TARGETS = support hello helper viewer\n",
    "support/build.targets": "TARGET_NAME = support\nSOURCES = s.c\n",
    "hello/build.targets": "TARGET_NAME = hello\nSOURCES = h.c\nLINK = @support\n",
    "helper/build.targets": "TARGET_NAME = helper\nSOURCES = x.c\n",
    "viewer/build.targets": "TARGET_NAME = viewer\nSOURCES = v.c\nCP_HELPERS = @helper\n",
}


class TestMermaidGenerator:
    """Basic tests for MermaidGenerator."""

    def test_is_generator(self):
        gen = MermaidGenerator()
        assert gen.name == "mermaid"
        assert gen.output_filename == "deps.mmd"

    def test_empty_project(self, make_project):
        project = make_project({"build.targets": "# nothing\n"})
        assert MermaidGenerator().render(project) == "flowchart LR\n  empty[No targets]\n"

    def test_direction(self, make_project):
        project = make_project(PROJECT)
        assert MermaidGenerator(direction="TB").render(project).startswith("flowchart TB\n")


class TestMermaidShapes:
    def test_target_shapes(self, make_project):
        content = MermaidGenerator().render(make_project(PROJECT))
        assert "  support[support]\n" in content
        assert "  hello[[hello]]\n" in content
        assert "  helper[[helper]]\n" in content
        assert "  viewer{{viewer.app}}\n" in content

    def test_sanitize_id(self):
        gen = MermaidGenerator()
        assert gen._sanitize_id("my-lib.core") == "my_lib_core"
        assert gen._sanitize_id("3d") == "n3d"


class TestMermaidEdges:
    def test_link_and_embedding_edges(self, make_project):
        content = MermaidGenerator().render(make_project(PROJECT))
        assert "  support --> hello\n" in content
        assert "  helper -.-> viewer\n" in content
        assert "hello -.->" not in content

    def test_writes_file(self, make_project, tmp_path):
        project = make_project(PROJECT)
        output = MermaidGenerator(output_filename="graph.mmd").generate(project, tmp_path / "out")
        assert output == tmp_path / "out" / "graph.mmd"
        assert output.read_text() == MermaidGenerator().render(project)
