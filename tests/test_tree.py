"""Tests for the directory tree builder and renderer."""

import pytest

from commit_navigator.project_context import is_excluded_path
from commit_navigator.tree import (
    DirectoryNode,
    FileNode,
    build_tree,
    iter_paths,
    render_tree,
)


class TestBuildTree:
    """Test folding tracked paths into a tree."""

    def test_nested_paths(self):
        tree = build_tree(["src/app.py", "src/util/io.py", "README.md"])

        assert isinstance(tree.children["README.md"], FileNode)
        src = tree.children["src"]
        assert isinstance(src, DirectoryNode)
        assert isinstance(src.children["app.py"], FileNode)
        assert isinstance(src.children["util"], DirectoryNode)

    def test_depth_limit_coalesces_deeper_paths(self):
        tree = build_tree(["a/b/c/d/e.txt", "a/b/c/f.txt"], max_depth=3)

        c = tree.children["a"].children["b"].children["c"]
        assert isinstance(c, DirectoryNode)
        assert c.is_empty()
        assert list(iter_paths(tree)) == ["a", "a/b", "a/b/c"]

    def test_blank_lines_ignored(self):
        tree = build_tree(["", "  ", "main.go"])
        assert list(tree.children) == ["main.go"]

    def test_exclusion_predicate(self):
        tree = build_tree(
            ["src/app.py", "node_modules/x/index.js", "vendor/bundle/gem.rb"],
            exclude=is_excluded_path,
        )
        assert list(tree.children) == ["src"]

    def test_invalid_depth(self):
        with pytest.raises(ValueError):
            build_tree(["a.txt"], max_depth=0)


class TestRenderTree:
    """Test the indented outline rendering."""

    def test_connectors_and_sorting(self):
        tree = build_tree(["zeta.txt", "src/b.py", "src/a.py", "alpha.txt"])

        expected = (
            "├── alpha.txt\n"
            "├── src\n"
            "│   ├── a.py\n"
            "│   └── b.py\n"
            "└── zeta.txt\n"
        )
        assert render_tree(tree) == expected

    def test_last_directory_uses_space_prefix(self):
        tree = build_tree(["docs/guide/intro.md"])

        expected = "└── docs\n    └── guide\n        └── intro.md\n"
        assert render_tree(tree) == expected

    def test_empty_tree(self):
        assert render_tree(DirectoryNode()) == ""

    def test_render_is_deterministic(self):
        paths = ["b/x.py", "a/y.py", "c.txt"]
        assert render_tree(build_tree(paths)) == render_tree(build_tree(reversed(paths)))
