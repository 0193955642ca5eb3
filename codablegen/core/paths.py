"""Path resolution: the shared trie of nested containers for one direction."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

CodingPath = tuple[str, ...]


class DecodingFallback(Enum):
    """What decoding does when a value (or its container) is unavailable."""

    THROW = "throw"
    IF_MISSING = "if_missing"
    IF_ERROR = "if_error"

    @classmethod
    def aggregate(cls, fallbacks: Iterable[DecodingFallback]) -> DecodingFallback:
        """Fallback of a container shared by members with the given fallbacks.

        Any member that must throw forces the container to be required. A
        container whose members all recover from errors may itself fail
        silently; otherwise it may only be absent.
        """
        seen = set(fallbacks)
        if not seen or cls.THROW in seen:
            return cls.THROW
        if seen == {cls.IF_ERROR}:
            return cls.IF_ERROR
        return cls.IF_MISSING


@dataclass
class PathNode:
    """A container in the trie, addressed by its index in the arena."""

    index: int
    key: str | None
    parent: int | None
    depth: int
    children: dict[str, int] = field(default_factory=dict)
    members: list[int] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.parent is None


@dataclass(frozen=True)
class PathConflict:
    """A member whose value position is also used as a container by another."""

    scalar: int
    nested: int
    path: CodingPath


def find_structural_conflicts(paths: Sequence[tuple[int, CodingPath]]) -> list[PathConflict]:
    """Find members whose full path is a container prefix of another path.

    Runs before any trie is built so that a shape conflict is reported once
    per offending member instead of being discovered during emission.
    """
    leaves: dict[CodingPath, int] = {}
    for member, path in paths:
        if path:
            leaves.setdefault(path, member)

    conflicts = []
    for member, path in paths:
        for depth in range(1, len(path)):
            prefix = path[:depth]
            if prefix in leaves:
                conflicts.append(PathConflict(leaves[prefix], member, prefix))
                break
    return conflicts


class PathTrie:
    """Arena of containers for every member path of one coding direction.

    A member with path `(a, b, c)` is bound to the container addressed by
    `(a, b)` under key `c`. Container identity is the prefix itself, so two
    members sharing a prefix share the container. Members with an empty
    path bind to the coder directly and are kept in `unkeyed`.
    """

    __slots__ = ("_nodes", "_by_prefix", "unkeyed")

    ROOT = 0

    def __init__(self) -> None:
        self._nodes: list[PathNode] = [PathNode(index=0, key=None, parent=None, depth=0)]
        self._by_prefix: dict[CodingPath, int] = {(): 0}
        self.unkeyed: list[int] = []

    def container_for(self, prefix: CodingPath) -> int:
        """Insert-or-get the container addressed by `prefix`."""
        existing = self._by_prefix.get(prefix)
        if existing is not None:
            return existing
        parent = self.container_for(prefix[:-1])
        node = PathNode(
            index=len(self._nodes),
            key=prefix[-1],
            parent=parent,
            depth=len(prefix),
        )
        self._nodes.append(node)
        self._nodes[parent].children[node.key] = node.index  # type: ignore[index]
        self._by_prefix[prefix] = node.index
        return node.index

    def insert(self, path: CodingPath, member: int) -> int | None:
        """Bind `member` at `path`; returns its container index."""
        if not path:
            self.unkeyed.append(member)
            return None
        index = self.container_for(path[:-1])
        self._nodes[index].members.append(member)
        return index

    def node(self, index: int) -> PathNode:
        return self._nodes[index]

    def prefix(self, index: int) -> CodingPath:
        keys: list[str] = []
        node = self._nodes[index]
        while node.parent is not None:
            keys.append(node.key)  # type: ignore[arg-type]
            node = self._nodes[node.parent]
        return tuple(reversed(keys))

    @property
    def has_keyed(self) -> bool:
        return len(self._nodes) > 1 or bool(self._nodes[0].members)

    def containers(self) -> list[PathNode]:
        """Containers in top-down breadth-first order, root first."""
        ordered = []
        queue = deque([self.ROOT])
        while queue:
            node = self._nodes[queue.popleft()]
            ordered.append(node)
            queue.extend(node.children.values())
        return ordered

    def subtree_members(self, index: int) -> list[int]:
        members: list[int] = []
        stack = [index]
        while stack:
            node = self._nodes[stack.pop()]
            members.extend(node.members)
            stack.extend(node.children.values())
        return members

    def fallback(
        self, index: int, fallback_of: Callable[[int], DecodingFallback]
    ) -> DecodingFallback:
        """Aggregated fallback of everything nested under a container."""
        return DecodingFallback.aggregate(fallback_of(m) for m in self.subtree_members(index))

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"PathTrie(containers={len(self._nodes)}, unkeyed={len(self.unkeyed)})"
