"""
model.py - Immutable document model for workflow YAML

This module defines the parse tree that every rule reads. A tree is built
once per YAML document by the parser adapter in ``ghaudit.utils.yaml_handler``
and is never modified afterwards. Nodes compare by identity, so the same
text appearing twice in a file still yields two distinct anchors.
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple, Union


@dataclass(frozen=True)
class Mark:
    """Source position of a node (1-based line and column)"""

    line: int = 1
    column: int = 1


START = Mark()


@dataclass(frozen=True, eq=False)
class Scalar:
    """Leaf node holding the raw text of a YAML scalar"""

    value: str
    prefix: str = ""
    start: Mark = START
    style: Optional[str] = None


@dataclass(frozen=True, eq=False)
class MappingEntry:
    """A single ``key: value`` pair"""

    key: Scalar
    value: "Block"
    prefix: str = ""
    start: Mark = START


@dataclass(frozen=True, eq=False)
class Mapping:
    """Ordered list of mapping entries"""

    entries: Tuple[MappingEntry, ...] = ()
    prefix: str = ""
    start: Mark = START
    flow: bool = False

    def keys(self) -> Iterator[str]:
        for entry in self.entries:
            yield entry.key.value

    def entry(self, key: str) -> Optional[MappingEntry]:
        """Return the first entry with the given key"""
        for entry in self.entries:
            if entry.key.value == key:
                return entry
        return None

    def get(self, key: str) -> Optional["Block"]:
        entry = self.entry(key)
        return entry.value if entry is not None else None

    def has_key(self, key: str) -> bool:
        return self.entry(key) is not None

    def scalar_value(self, key: str) -> Optional[str]:
        """Return the text of ``key`` when its value is a scalar"""
        return scalar_text(self.get(key))


@dataclass(frozen=True, eq=False)
class SequenceEntry:
    """A single ``- item`` of a sequence"""

    block: "Block"
    prefix: str = ""
    start: Mark = START


@dataclass(frozen=True, eq=False)
class Sequence:
    """Ordered list of sequence entries"""

    entries: Tuple[SequenceEntry, ...] = ()
    prefix: str = ""
    start: Mark = START
    flow: bool = False

    def blocks(self) -> Iterator["Block"]:
        for entry in self.entries:
            yield entry.block


Block = Union[Mapping, Sequence, Scalar]


@dataclass(frozen=True, eq=False)
class Document:
    """Root of one YAML document"""

    block: Block
    start: Mark = START


Node = Union[Document, Mapping, MappingEntry, Sequence, SequenceEntry, Scalar]


def scalar_text(block: Optional[Block]) -> Optional[str]:
    """
    Return the string value of a block if it is a scalar

    Args:
        block: Block to inspect (may be None)

    Returns:
        Scalar text, or None for mappings, sequences and missing values
    """
    if isinstance(block, Scalar):
        return block.value
    return None


def scalar_items(block: Optional[Block]) -> Iterator[str]:
    """Yield the scalar values held directly by a sequence"""
    if isinstance(block, Sequence):
        for item in block.blocks():
            if isinstance(item, Scalar):
                yield item.value
