"""Path index for content rules.

Rules are stored in a tree keyed by path segment. A node is terminal when a
rule was inserted ending exactly at it. Looking up a file returns the rule of
the deepest terminal node on the file's path, so an exact file rule wins over
a rule registered on one of its parent directories.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, TypeVar

T = TypeVar("T")


def _segments(path: Path | str) -> tuple[str, ...]:
    return Path(path).parts


@dataclass
class _Node(Generic[T]):
    children: dict[str, _Node[T]] = field(default_factory=dict)
    terminal: bool = False
    value: T | None = None


class PathTrie(Generic[T]):
    """Segment trie mapping paths to rules."""

    def __init__(self) -> None:
        self._root: _Node[T] = _Node()
        self._size = 0

    def insert(self, path: Path | str, value: T) -> None:
        """Register ``value`` at ``path``, replacing any previous value there."""
        node = self._root
        for segment in _segments(path):
            node = node.children.setdefault(segment, _Node())
        if not node.terminal:
            self._size += 1
        node.terminal = True
        node.value = value

    def search(self, path: Path | str) -> T | None:
        """Return the most specific value registered on ``path`` or an ancestor.

        Walks the segments while matching children exist and keeps the last
        terminal node seen. Returns ``None`` when no node on the walked chain
        is terminal.
        """
        node = self._root
        found: T | None = None
        for segment in _segments(path):
            child = node.children.get(segment)
            if child is None:
                break
            node = child
            if node.terminal:
                found = node.value
        return found

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        node = self._root
        for segment in _segments(path):
            child = node.children.get(segment)
            if child is None:
                return False
            node = child
        return node.terminal

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"PathTrie({self._size} entries)"
