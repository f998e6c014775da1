"""
Arena-backed tree.

Nodes live in a single append-only list and refer to each other by index
(``NodeId``) instead of by reference, so the arena is the only owner of node
data and a node id stays valid for the arena's whole lifetime.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import Generic, Iterator, List, Optional, TypeVar

import numpy as np

T = TypeVar("T")

NodeId = int


class StructureError(ValueError):
    """Raised when parent/child links are inconsistent or would form a cycle."""

    pass


@dataclass
class Node(Generic[T]):
    """Single tree node: payload plus parent and ordered child ids."""

    data: T
    parent: Optional[NodeId] = None
    children: List[NodeId] = field(default_factory=list)

    def set_parent(self, parent: NodeId) -> None:
        self.parent = parent

    def add_child(self, child: NodeId) -> None:
        self.children.append(child)


class Arena(Generic[T]):
    """
    Append-only node store addressed by stable integer ids.

    Ids are handed out by ``create_node`` in increasing order starting at 0.
    Nothing is ever removed, so an id below ``len(arena)`` is always valid.
    """

    def __init__(self):
        self._nodes: List[Node[T]] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def create_node(self, data: T) -> NodeId:
        """Append a parentless, childless node and return its id."""
        index = len(self._nodes)
        self._nodes.append(Node(data))
        return index

    def _check_id(self, idx: NodeId) -> int:
        """Return ``idx`` as a plain int; numpy integers are accepted, bools are not."""
        if isinstance(idx, (bool, np.bool_)):
            raise IndexError(f"Node id must be an integer, got {type(idx).__name__}")
        try:
            idx = operator.index(idx)
        except TypeError:
            raise IndexError(f"Node id must be an integer, got {type(idx).__name__}") from None
        if not 0 <= idx < len(self._nodes):
            raise IndexError(f"Node id {idx} out of range for arena of size {len(self._nodes)}")
        return idx

    def get_node(self, idx: NodeId) -> Node[T]:
        """Return the node for ``idx``; raises IndexError when out of bounds."""
        return self._nodes[self._check_id(idx)]

    def get_node_mut(self, idx: NodeId) -> Node[T]:
        """
        Return the node for ``idx`` for in-place payload updates.

        Same object as ``get_node``; the separate name marks call sites that
        mutate. Tree shape should only change through ``link``.
        """
        return self._nodes[self._check_id(idx)]

    def link(self, parent: NodeId, child: NodeId) -> None:
        """
        Attach ``child`` under ``parent``, setting both sides of the link.

        Raises:
            IndexError: If either id is out of bounds
            StructureError: If the child already has a parent or the link
                would create a cycle
        """
        parent = self._check_id(parent)
        child = self._check_id(child)

        child_node = self._nodes[child]
        if child_node.parent is not None:
            raise StructureError(f"Node {child} already has parent {child_node.parent}")
        if parent == child:
            raise StructureError(f"Cannot link node {child} under itself")

        # Only a child with descendants can be an ancestor of parent
        if child_node.children:
            ancestor: Optional[NodeId] = parent
            while ancestor is not None:
                if ancestor == child:
                    raise StructureError(f"Linking {child} under {parent} would create a cycle")
                ancestor = self._nodes[ancestor].parent

        child_node.set_parent(parent)
        self._nodes[parent].add_child(child)

    def add_child_node(self, parent: NodeId, data: T) -> NodeId:
        """Create a node and link it as the last child of ``parent``."""
        parent = self._check_id(parent)
        child = self.create_node(data)
        self._nodes[child].set_parent(parent)
        self._nodes[parent].add_child(child)
        return child

    def roots(self) -> List[NodeId]:
        """Ids of all parentless nodes, in creation order."""
        return [i for i, node in enumerate(self._nodes) if node.parent is None]

    def validate(self) -> None:
        """
        Check that every parent/child link is recorded on both sides.

        Raises:
            StructureError: On the first inconsistent or dangling link
        """
        size = len(self._nodes)
        for idx, node in enumerate(self._nodes):
            if node.parent is not None:
                if not 0 <= node.parent < size:
                    raise StructureError(f"Node {idx} has dangling parent {node.parent}")
                if idx not in self._nodes[node.parent].children:
                    raise StructureError(
                        f"Node {idx} names parent {node.parent}, which does not list it as a child"
                    )
            for child in node.children:
                if not 0 <= child < size:
                    raise StructureError(f"Node {idx} has dangling child {child}")
                if self._nodes[child].parent != idx:
                    raise StructureError(
                        f"Node {idx} lists child {child}, whose parent is "
                        f"{self._nodes[child].parent}"
                    )

    def generator(self, node: NodeId) -> "PreorderTraversal[T]":
        """Lazy pre-order iterator over the payloads of the subtree at ``node``."""
        node = self._check_id(node)
        return PreorderTraversal(self, node)

    def iter_ids(self, node: NodeId) -> Iterator[NodeId]:
        """Lazy pre-order iterator over the ids of the subtree at ``node``."""
        node = self._check_id(node)
        return PreorderTraversal(self, node, yield_ids=True)


class PreorderTraversal(Iterator[T]):
    """
    Depth-first, pre-order walk driven by an explicit stack.

    Each frame is ``[node_id, next_child_position]``; only the current
    root-to-leaf path is on the stack, so memory grows with depth, not size.
    Children are read from the arena when first reached, never ahead of time.
    """

    def __init__(self, arena: Arena[T], root: NodeId, yield_ids: bool = False):
        self._arena = arena
        self._root: Optional[NodeId] = root
        self._stack: List[List[int]] = []
        self._yield_ids = yield_ids

    def __iter__(self) -> "PreorderTraversal[T]":
        return self

    def _emit(self, idx: NodeId):
        if self._yield_ids:
            return idx
        return self._arena.get_node(idx).data

    def __next__(self):
        if self._root is not None:
            root = self._root
            self._root = None
            self._stack.append([root, 0])
            return self._emit(root)

        while self._stack:
            frame = self._stack[-1]
            children = self._arena.get_node(frame[0]).children
            if frame[1] < len(children):
                child = children[frame[1]]
                frame[1] += 1
                self._stack.append([child, 0])
                return self._emit(child)
            self._stack.pop()

        raise StopIteration

    @property
    def depth(self) -> int:
        """Number of frames currently held (the length of the active path)."""
        return len(self._stack)
