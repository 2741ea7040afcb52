"""
cursor.py - Ancestor-aware view over a position in the document tree

A Cursor pairs a node with the chain of cursors leading to it from the
document root. Cursors are created by the traversal in
``ghaudit.core.traversal`` and only live for one pass over one document.
The tree itself never holds parent pointers.

All queries return None or False when the context they look for does not
exist; they never raise.
"""

from typing import Iterator, Optional, Type, TypeVar

from .model import Document, Mapping, MappingEntry, Node, Sequence, SequenceEntry

N = TypeVar("N")


class Cursor:
    """Immutable linked path from the document root to ``value``"""

    __slots__ = ("value", "parent")

    def __init__(self, value: Node, parent: Optional["Cursor"] = None) -> None:
        self.value = value
        self.parent = parent

    def __repr__(self) -> str:
        return f"Cursor({type(self.value).__name__}, depth={self.depth})"

    def child(self, value: Node) -> "Cursor":
        return Cursor(value, self)

    @property
    def depth(self) -> int:
        return sum(1 for _ in self.ancestors())

    @property
    def parent_value(self) -> Optional[Node]:
        return self.parent.value if self.parent is not None else None

    def ancestors(self, include_self: bool = False) -> Iterator["Cursor"]:
        """Walk upward towards the document, nearest first"""
        cursor = self if include_self else self.parent
        while cursor is not None:
            yield cursor
            cursor = cursor.parent

    def first_enclosing(self, kind: Type[N], include_self: bool = False) -> Optional["Cursor"]:
        """Return the nearest cursor whose value is an instance of ``kind``"""
        for cursor in self.ancestors(include_self):
            if isinstance(cursor.value, kind):
                return cursor
        return None

    def document(self) -> Optional[Document]:
        """Return the document this cursor belongs to"""
        root = self.first_enclosing(Document, include_self=True)
        return root.value if root is not None else None

    @property
    def key(self) -> Optional[str]:
        """Key of the current node when it is a mapping entry"""
        if isinstance(self.value, MappingEntry):
            return self.value.key.value
        return None

    def parent_entry(self) -> Optional["Cursor"]:
        """Return the cursor of the nearest enclosing mapping entry"""
        return self.first_enclosing(MappingEntry)

    def nearest_entry(self, key: str, include_self: bool = True) -> Optional["Cursor"]:
        """Return the nearest (optionally self-inclusive) entry keyed ``key``"""
        for cursor in self.ancestors(include_self):
            if cursor.key == key:
                return cursor
        return None

    def enclosing_mapping(self, *keys: str) -> Optional[Mapping]:
        """
        Walk upward to the first mapping that contains any of ``keys``

        The walk starts at the current node when it is itself a mapping.
        The nearest qualifying mapping wins regardless of which key matched.
        """
        for cursor in self.ancestors(include_self=True):
            value = cursor.value
            if isinstance(value, Mapping) and any(value.has_key(key) for key in keys):
                return value
        return None

    def enclosing_step(self) -> Optional[Mapping]:
        """Return the step mapping (the nearest mapping with ``uses`` or ``run``)"""
        return self.enclosing_mapping("uses", "run")

    def within(self, key: str) -> bool:
        """Return True if any enclosing mapping entry is keyed ``key``"""
        return self.nearest_entry(key, include_self=False) is not None

    def is_direct_child_of(self, key: str) -> bool:
        """
        Return True for an entry whose mapping is the value of an entry keyed ``key``

        ``jobs.build`` is a direct child of ``jobs``; ``jobs.build.steps`` is not.
        """
        if not isinstance(self.value, MappingEntry):
            return False
        mapping = self.parent
        if mapping is None or not isinstance(mapping.value, Mapping):
            return False
        owner = mapping.parent
        return owner is not None and owner.key == key

    def is_step_key(self) -> bool:
        """Return True for an entry that sits directly in a ``steps`` item"""
        if not isinstance(self.value, MappingEntry):
            return False
        chain = [cursor.value for cursor in self.ancestors()][:4]
        if len(chain) < 4:
            return False
        step, item, steps, owner = chain
        return (
            isinstance(step, Mapping)
            and isinstance(item, SequenceEntry)
            and isinstance(steps, Sequence)
            and isinstance(owner, MappingEntry)
            and owner.key.value == "steps"
        )

    def is_top_level(self) -> bool:
        """Return True for an entry of the document's root mapping"""
        mapping = self.parent
        return (
            isinstance(self.value, MappingEntry)
            and mapping is not None
            and isinstance(mapping.value, Mapping)
            and mapping.parent is not None
            and isinstance(mapping.parent.value, Document)
        )

    def job_id(self) -> Optional[str]:
        """Return the id of the job this node belongs to, if any"""
        for cursor in self.ancestors(include_self=True):
            if cursor.is_direct_child_of("jobs"):
                return cursor.key
        return None
