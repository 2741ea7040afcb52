"""
yaml_handler.py - Build the document model from YAML text

PyYAML composes the text into a node graph; this module converts that graph
into the immutable tree of ``ghaudit.core.model``. Scalars keep their raw
text, so ``on`` stays the string ``"on"`` and ``true`` stays ``"true"``.

Each mapping entry and sequence entry also keeps its ``prefix``: the source
text between the end of the previous sibling and the start of the element.
Comments written above a step therefore end up in that step's prefix.
"""

import bisect
import logging
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import yaml
from yaml.composer import ComposerError
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from ..core.model import (
    Block,
    Document,
    Mapping,
    MappingEntry,
    Mark,
    Scalar,
    Sequence,
    SequenceEntry,
)

logger = logging.getLogger(__name__)

# Upper bound on the nodes a document may hold once every alias is expanded
MAX_EXPANDED_NODES = 100_000


class ModelBuilder:
    """Converts composed PyYAML nodes of one source text into model nodes"""

    def __init__(self, source: str) -> None:
        self.source = source
        self._line_starts = [0]
        for index, char in enumerate(source):
            if char == "\n":
                self._line_starts.append(index + 1)
        self._active: Set[int] = set()
        self._built: Dict[int, Tuple[Block, int]] = {}
        self._expanded = 0

    def mark(self, index: int) -> Mark:
        """Convert a character offset into a 1-based line/column mark"""
        line = bisect.bisect_right(self._line_starts, index) - 1
        return Mark(line=line + 1, column=index - self._line_starts[line] + 1)

    @staticmethod
    def node_mark(node: Node) -> Mark:
        return Mark(line=node.start_mark.line + 1, column=node.start_mark.column + 1)

    def end(self, node: Node) -> int:
        """
        Offset just past the last character of a node

        Block collections report their end at the next token, which may lie
        after trailing comments, so the end of the last child is used instead.
        """
        if isinstance(node, MappingNode) and not node.flow_style and node.value:
            return self.end(node.value[-1][1])
        if isinstance(node, SequenceNode) and not node.flow_style and node.value:
            return self.end(node.value[-1])
        return node.end_mark.index

    def _text(self, start: int, stop: int) -> str:
        if stop <= start:
            return ""
        return self.source[start:stop]

    def document(self, node: Node, offset: int = 0) -> Document:
        self._built = {}
        self._expanded = 0
        block, _ = self.block(node, offset)
        return Document(block=block, start=self.mark(offset))

    def _count(self, size: int, node: Node) -> None:
        self._expanded += size
        if self._expanded > MAX_EXPANDED_NODES:
            raise ComposerError(
                None,
                None,
                f"document expands to more than {MAX_EXPANDED_NODES} nodes through aliases",
                node.start_mark,
            )

    def block(self, node: Node, offset: int) -> Tuple[Block, int]:
        """
        Convert ``node`` whose leading text starts at ``offset``

        Block collections hand their leading text to their first entry.
        PyYAML gives every alias the node object of its anchor, so a node
        seen twice is converted once and the model node is shared.

        Returns:
            The converted block and the offset where its text ends

        Raises:
            yaml.YAMLError: If aliases expand the document past
                ``MAX_EXPANDED_NODES`` nodes
        """
        key = id(node)
        if key in self._active:
            # Recursive alias; cut the cycle.
            return Scalar(value="", start=self.node_mark(node)), offset
        if key in self._built:
            block, size = self._built[key]
            self._count(size, node)
            return block, offset

        before = self._expanded
        self._count(1, node)
        block, end = self._build(node, offset)
        self._built[key] = (block, self._expanded - before)
        return block, end

    def _build(self, node: Node, offset: int) -> Tuple[Block, int]:
        start = node.start_mark.index

        if isinstance(node, ScalarNode):
            scalar = Scalar(
                value=node.value,
                prefix=self._text(offset, start),
                start=self.node_mark(node),
                style=node.style,
            )
            return scalar, max(offset, node.end_mark.index)

        self._active.add(id(node))
        try:
            if isinstance(node, MappingNode):
                return self._mapping(node, offset)
            if isinstance(node, SequenceNode):
                return self._sequence(node, offset)
        finally:
            self._active.discard(id(node))
        raise TypeError(f"Unsupported YAML node: {type(node).__name__}")

    def _mapping(self, node: MappingNode, offset: int) -> Tuple[Mapping, int]:
        start = node.start_mark.index
        if node.flow_style:
            prefix, position = self._text(offset, start), start + 1
        else:
            prefix, position = "", offset

        entries = []
        for key_node, value_node in node.value:
            key = self._key(key_node)
            entry_prefix = self._text(position, key_node.start_mark.index)
            key_end = self.end(key_node)

            colon = self.source.find(":", key_end)
            value_offset = key_end
            if 0 <= colon <= value_node.start_mark.index:
                value_offset = colon + 1

            value, value_end = self.block(value_node, value_offset)
            entries.append(
                MappingEntry(
                    key=key,
                    value=value,
                    prefix=entry_prefix,
                    start=self.node_mark(key_node),
                )
            )
            position = max(position, key_end, value_end)

        end = max(position, node.end_mark.index) if node.flow_style else position
        mapping = Mapping(
            entries=tuple(entries),
            prefix=prefix,
            start=self.node_mark(node),
            flow=bool(node.flow_style),
        )
        return mapping, end

    def _sequence(self, node: SequenceNode, offset: int) -> Tuple[Sequence, int]:
        start = node.start_mark.index
        if node.flow_style:
            prefix, position = self._text(offset, start), start + 1
        else:
            prefix, position = "", offset

        entries = []
        for item in node.value:
            item_start = item.start_mark.index
            dash = self._dash_before(item_start) if not node.flow_style else None

            if dash is not None and dash >= position:
                entry_prefix = self._text(position, dash)
                entry_start = self.mark(dash)
                block, item_end = self.block(item, dash + 1)
            else:
                entry_prefix = self._text(position, item_start)
                entry_start = self.node_mark(item)
                block, item_end = self.block(item, item_start)

            entries.append(SequenceEntry(block=block, prefix=entry_prefix, start=entry_start))
            position = max(position, item_end)

        end = max(position, node.end_mark.index) if node.flow_style else position
        sequence = Sequence(
            entries=tuple(entries),
            prefix=prefix,
            start=self.node_mark(node),
            flow=bool(node.flow_style),
        )
        return sequence, end

    def _dash_before(self, index: int) -> Optional[int]:
        """Find the ``-`` indicator that introduces a block sequence item"""
        position = index - 1
        while position >= 0 and self.source[position] in " \t\r\n":
            position -= 1
        if position >= 0 and self.source[position] == "-":
            return position
        return None

    def _key(self, node: Node) -> Scalar:
        if isinstance(node, ScalarNode):
            return Scalar(value=node.value, start=self.node_mark(node), style=node.style)
        text = self._text(node.start_mark.index, self.end(node))
        return Scalar(value=text, start=self.node_mark(node))


def parse_documents(content: str) -> List[Document]:
    """
    Parse YAML text into one Document per YAML document in the stream

    Args:
        content: YAML source text

    Returns:
        List of documents (empty for an empty stream)

    Raises:
        yaml.YAMLError: If the text is not valid YAML
    """
    builder = ModelBuilder(content)
    documents = []
    offset = 0
    for node in yaml.compose_all(content, Loader=yaml.SafeLoader):
        if node is None:
            continue
        documents.append(builder.document(node, offset))
        offset = max(offset, builder.end(node))
    return documents


def parse_document(content: str) -> Optional[Document]:
    """Parse YAML text and return its first document, if any"""
    documents = parse_documents(content)
    return documents[0] if documents else None


def load_documents(file_path: str) -> List[Document]:
    """
    Read and parse a YAML file

    Raises:
        OSError: If the file cannot be read
        yaml.YAMLError: If YAML parsing fails
    """
    with open(file_path, "r", encoding="utf-8") as f:
        content = f.read()
    logger.debug("Parsing %s (%d bytes)", file_path, len(content))
    return parse_documents(content)


def find_github_workflow_files(repo_path: str) -> List[Path]:
    """
    Find GitHub Actions workflow files in a repository

    Args:
        repo_path: Path to repository

    Returns:
        Sorted list of ``.yml`` and ``.yaml`` files under ``.github/workflows``
    """
    path = Path(repo_path) / ".github" / "workflows"
    if not path.is_dir():
        return []

    files = [p for p in path.iterdir() if p.is_file() and p.suffix in (".yml", ".yaml")]
    return sorted(files)
