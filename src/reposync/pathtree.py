"""Conversion between flat path listings and a nested directory tree.

Remote hosting APIs list a repository as a flat sequence of paths.
:func:`build_tree` turns that listing into immutable :class:`TreeNode`
objects for browsing, and :func:`flatten_tree` turns it back.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum

from ._paths import _split_path
from .exceptions import ValidationError
from .objects import RemoteEntry

__all__ = [
    "NodeKind",
    "TreeNode",
    "build_tree",
    "flatten_tree",
    "iter_nodes",
    "find_node",
    "render_tree",
]


class NodeKind(str, Enum):
    """Kind of a :class:`TreeNode`: ``FILE`` or ``DIRECTORY``."""
    FILE = "file"
    DIRECTORY = "directory"

    def __str__(self) -> str:          # noqa: D105
        return self.value

    @classmethod
    def parse(cls, value: str | NodeKind | None) -> NodeKind:
        """Accept ``file``/``directory`` and the git names ``blob``/``tree``."""
        if value is None:
            return cls.FILE
        if isinstance(value, NodeKind):
            return value
        try:
            return _KIND_ALIASES[value]
        except KeyError:
            raise ValidationError(f"Unknown node kind {value!r}")


_KIND_ALIASES = {
    "file": NodeKind.FILE,
    "blob": NodeKind.FILE,
    "directory": NodeKind.DIRECTORY,
    "dir": NodeKind.DIRECTORY,
    "tree": NodeKind.DIRECTORY,
}


@dataclass(frozen=True, slots=True)
class TreeNode:
    """A node of the browsing tree.

    Attributes:
        name: Last path segment.
        path: Full slash-separated path from the repository root.
        kind: :class:`NodeKind` of the node.
        size: Size in bytes when the listing reported one.
        children: Sorted child nodes for directories, ``None`` for files.
    """

    name: str
    path: str
    kind: NodeKind
    size: int | None = None
    children: tuple[TreeNode, ...] | None = None

    @property
    def is_dir(self) -> bool:
        return self.kind is NodeKind.DIRECTORY

    def to_dict(self) -> dict:
        d: dict = {"name": self.name, "path": self.path, "kind": self.kind.value}
        if self.size is not None:
            d["size"] = self.size
        if self.children is not None:
            d["children"] = [c.to_dict() for c in self.children]
        return d


class _Draft:
    """Mutable node used while building; frozen into a TreeNode at the end."""

    __slots__ = ("name", "path", "kind", "size", "children", "index")

    def __init__(self, name: str, path: str, kind: NodeKind, size: int | None = None):
        self.name = name
        self.path = path
        self.kind = kind
        self.size = size
        self.children: list[_Draft] | None = [] if kind is NodeKind.DIRECTORY else None
        # name -> child, for O(1) reuse of synthesized directories
        self.index: dict[str, _Draft] = {}


def _record_fields(record) -> tuple[str, NodeKind, int | None]:
    if isinstance(record, str):
        return record, NodeKind.FILE, None
    if isinstance(record, RemoteEntry):
        return record.path, NodeKind.parse(record.kind), record.size
    if isinstance(record, Mapping):
        if "path" not in record:
            raise ValidationError("Path record has no 'path'")
        kind = record.get("kind", record.get("type"))
        return record["path"], NodeKind.parse(kind), record.get("size")
    raise ValidationError(f"Unsupported path record: {type(record).__name__}")


def _sort_key(node: _Draft) -> tuple[bool, str]:
    return (node.kind is not NodeKind.DIRECTORY, node.name.casefold())


def _freeze(drafts: list[_Draft]) -> tuple[TreeNode, ...]:
    # list.sort is stable: equal keys keep insertion order between runs
    drafts.sort(key=_sort_key)
    return tuple(
        TreeNode(
            name=d.name,
            path=d.path,
            kind=d.kind,
            size=d.size,
            children=_freeze(d.children) if d.children is not None else None,
        )
        for d in drafts
    )


def build_tree(records: Iterable[str | Mapping | RemoteEntry]) -> tuple[TreeNode, ...]:
    """Build a nested tree from a flat listing.

    Each record is a path string, a mapping with ``path`` and optional
    ``kind`` (or GitHub's ``type``) and ``size``, or a :class:`RemoteEntry`.
    Records without a kind are files. Intermediate directories are
    synthesized once per prefix.

    Raises:
        ValidationError: For a malformed path, or a path listed both as a
            file and as a directory.
    """
    roots: list[_Draft] = []
    root_index: dict[str, _Draft] = {}

    for record in records:
        path, kind, size = _record_fields(record)
        segments = _split_path(path)

        siblings, index = roots, root_index
        for depth, seg in enumerate(segments[:-1]):
            node = index.get(seg)
            if node is None:
                node = _Draft(seg, "/".join(segments[: depth + 1]), NodeKind.DIRECTORY)
                siblings.append(node)
                index[seg] = node
            elif node.kind is not NodeKind.DIRECTORY:
                raise ValidationError("Path is listed both as a file and a directory", node.path)
            siblings, index = node.children, node.index

        leaf = segments[-1]
        existing = index.get(leaf)
        if existing is not None:
            if existing.kind is not kind:
                raise ValidationError("Path is listed both as a file and a directory", path)
            if existing.size is None:
                existing.size = size
            continue
        node = _Draft(leaf, path, kind, size)
        siblings.append(node)
        index[leaf] = node

    return _freeze(roots)


def iter_nodes(nodes: Iterable[TreeNode]) -> Iterator[TreeNode]:
    """Yield every node depth-first, parents before their children."""
    for node in nodes:
        yield node
        if node.children is not None:
            yield from iter_nodes(node.children)


def flatten_tree(nodes: Iterable[TreeNode], *, include_directories: bool = False) -> list[str]:
    """Return the paths of a tree, depth-first.

    Files are emitted at their own path. Directories are expanded into
    their children and only emitted themselves when *include_directories*
    is true, so an empty directory vanishes otherwise.
    """
    return [
        node.path
        for node in iter_nodes(nodes)
        if include_directories or not node.is_dir
    ]


def find_node(nodes: Iterable[TreeNode], path: str) -> TreeNode | None:
    """Return the node at *path*, or ``None`` if absent."""
    level: Iterable[TreeNode] | None = nodes
    found = None
    for seg in _split_path(path):
        if level is None:
            return None
        found = next((n for n in level if n.name == seg), None)
        if found is None:
            return None
        level = found.children
    return found


def render_tree(nodes: Iterable[TreeNode], indent: str = "  ") -> str:
    """Render an indented listing, directories suffixed with ``/``."""
    lines: list[str] = []

    def _render(level: Iterable[TreeNode], depth: int) -> None:
        for node in level:
            suffix = "/" if node.is_dir else ""
            lines.append(f"{indent * depth}{node.name}{suffix}")
            if node.children:
                _render(node.children, depth + 1)

    _render(nodes, 0)
    return "\n".join(lines)
