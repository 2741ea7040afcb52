"""
traversal.py - Depth-first walks over the document model

Walks are pre-order and iterative, so deeply nested documents do not hit
the interpreter's recursion limit. Every node kind is dispatched in
``children``; an unknown kind is a programming error and raises TypeError.
"""

from typing import Iterator, Optional, Tuple

from .cursor import Cursor
from .model import Document, Mapping, MappingEntry, Node, Scalar, Sequence, SequenceEntry


def children(node: Node) -> Tuple[Node, ...]:
    """Return the direct children of a node in document order"""
    if isinstance(node, Document):
        return (node.block,)
    if isinstance(node, Mapping):
        return node.entries
    if isinstance(node, MappingEntry):
        return (node.value,)
    if isinstance(node, Sequence):
        return node.entries
    if isinstance(node, SequenceEntry):
        return (node.block,)
    if isinstance(node, Scalar):
        return ()
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def walk(node: Node, parent: Optional[Cursor] = None) -> Iterator[Cursor]:
    """
    Yield a cursor for ``node`` and every node below it, pre-order

    Args:
        node: Node to start from
        parent: Cursor of the node's parent, so that sub-scans keep their
            ancestor context

    Yields:
        Cursor positioned at each visited node
    """
    stack = [Cursor(node, parent)]
    while stack:
        cursor = stack.pop()
        yield cursor
        for child in reversed(children(cursor.value)):
            stack.append(cursor.child(child))


def iter_entries(node: Node, parent: Optional[Cursor] = None) -> Iterator[Cursor]:
    """Yield a cursor for every mapping entry at or below ``node``"""
    for cursor in walk(node, parent):
        if isinstance(cursor.value, MappingEntry):
            yield cursor


def find_entries(node: Node, key: str, parent: Optional[Cursor] = None) -> Iterator[Cursor]:
    """Yield a cursor for every mapping entry keyed ``key`` at or below ``node``"""
    for cursor in iter_entries(node, parent):
        if cursor.key == key:
            yield cursor


def iter_scalars(node: Node) -> Iterator[Scalar]:
    """Yield every scalar value at or below ``node`` (mapping keys excluded)"""
    for cursor in walk(node):
        if isinstance(cursor.value, Scalar):
            yield cursor.value
