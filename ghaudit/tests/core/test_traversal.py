"""
test_traversal.py - Tests for document walks
"""

import pytest

from ghaudit.core.model import Document, Mapping, MappingEntry, Scalar, Sequence, SequenceEntry
from ghaudit.core.traversal import children, find_entries, iter_entries, iter_scalars, walk
from ghaudit.utils.yaml_handler import parse_document

CONTENT = """a: 1
b:
  c: 2
d: [x, y]
"""


def test_walk_is_preorder():
    """Test that nodes are visited parent first, in document order."""
    document = parse_document(CONTENT)
    kinds = [type(cursor.value).__name__ for cursor in walk(document)]

    assert kinds[:5] == ["Document", "Mapping", "MappingEntry", "Scalar", "MappingEntry"]
    assert kinds.count("SequenceEntry") == 2


def test_walk_cursors_know_their_ancestors():
    """Test that every yielded cursor leads back to the document."""
    document = parse_document(CONTENT)

    for cursor in walk(document):
        assert cursor.document() is document


def test_iter_entries_in_document_order():
    """Test the order of mapping entries."""
    document = parse_document(CONTENT)

    assert [cursor.key for cursor in iter_entries(document)] == ["a", "b", "c", "d"]


def test_find_entries():
    """Test finding entries by key at any depth."""
    document = parse_document("jobs:\n  a:\n    uses: x\n  b:\n    uses: y\n")

    found = [cursor.value.value.value for cursor in find_entries(document, "uses")]
    assert found == ["x", "y"]
    assert list(find_entries(document, "run")) == []


def test_iter_scalars_skips_keys():
    """Test that only scalar values are yielded."""
    document = parse_document(CONTENT)

    assert [scalar.value for scalar in iter_scalars(document)] == ["1", "2", "x", "y"]


def test_children_of_each_kind():
    """Test children for every node kind."""
    scalar = Scalar(value="v")
    entry = MappingEntry(key=Scalar(value="k"), value=scalar)
    mapping = Mapping(entries=(entry,))
    item = SequenceEntry(block=mapping)
    sequence = Sequence(entries=(item,))
    document = Document(block=sequence)

    assert children(document) == (sequence,)
    assert children(sequence) == (item,)
    assert children(item) == (mapping,)
    assert children(mapping) == (entry,)
    assert children(entry) == (scalar,)
    assert children(scalar) == ()


def test_children_rejects_unknown_nodes():
    """Test that an unknown node kind is an error."""
    with pytest.raises(TypeError):
        children({"not": "a node"})


def test_walk_deeply_nested_document():
    """Test that deep documents do not exhaust the call stack."""
    block = Scalar(value="leaf")
    for _ in range(5000):
        block = Mapping(entries=(MappingEntry(key=Scalar(value="k"), value=block),))

    document = Document(block=block)
    assert sum(1 for _ in iter_entries(document)) == 5000
