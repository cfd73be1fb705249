"""Directory tree built from tracked file paths.

A tree node is either a ``FileNode`` leaf or a ``DirectoryNode`` holding named
children. Building and rendering are pure functions over these types.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE_PREFIX = "│   "
SPACE_PREFIX = "    "


@dataclass(frozen=True)
class FileNode:
    """Leaf marker for a file."""


@dataclass
class DirectoryNode:
    """Directory with children keyed by name."""

    children: dict[str, TreeNode] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.children


TreeNode = FileNode | DirectoryNode


def build_tree(
    paths: Iterable[str],
    max_depth: int = 3,
    exclude: Callable[[str], bool] | None = None,
) -> DirectoryNode:
    """Fold slash-separated paths into a nested tree.

    Args:
        paths: Relative file paths, e.g. from ``git ls-files``
        max_depth: Maximum number of path components kept per path
        exclude: Predicate returning True for paths that must be skipped

    Returns:
        Root directory node. Components beyond ``max_depth`` are coalesced
        into the directory node at that depth.
    """
    if max_depth < 1:
        raise ValueError("max_depth must be at least 1")

    root = DirectoryNode()
    for path in paths:
        path = path.strip()
        if not path:
            continue
        if exclude is not None and exclude(path):
            continue

        parts = [part for part in path.split("/") if part]
        current = root
        for index, part in enumerate(parts[:max_depth]):
            if index == len(parts) - 1:
                # A directory of the same name wins over a file leaf
                current.children.setdefault(part, FileNode())
                break

            child = current.children.get(part)
            if not isinstance(child, DirectoryNode):
                child = DirectoryNode()
                current.children[part] = child
            current = child

    return root


def render_tree(node: DirectoryNode, prefix: str = "") -> str:
    """Render a tree as an indented outline.

    Children are sorted lexicographically; the last child of each level uses
    the ``└── `` connector, its siblings ``├── ``.
    """
    lines: list[str] = []
    names = sorted(node.children)
    for index, name in enumerate(names):
        is_last = index == len(names) - 1
        lines.append(f"{prefix}{LAST_BRANCH if is_last else BRANCH}{name}\n")

        child = node.children[name]
        if isinstance(child, DirectoryNode):
            lines.append(
                render_tree(child, prefix + (SPACE_PREFIX if is_last else PIPE_PREFIX))
            )

    return "".join(lines)


def iter_paths(node: DirectoryNode, parent: str = "") -> Iterable[str]:
    """Yield every node path in the tree, directories included."""
    for name in sorted(node.children):
        path = f"{parent}/{name}" if parent else name
        yield path
        child = node.children[name]
        if isinstance(child, DirectoryNode):
            yield from iter_paths(child, path)
