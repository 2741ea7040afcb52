"""
scope.py - Decide which documents a rule applies to

Two gates exist. Path-gated rules only run on files stored under
``.github/workflows/``. Shape-gated rules run on any YAML document whose
root mapping has a ``jobs`` or ``on`` key, wherever the file lives.
"""

from enum import Enum
from pathlib import PurePosixPath
from typing import Optional

from .model import Document, Mapping

WORKFLOW_GLOBS = (".github/workflows/*.yml", ".github/workflows/*.yaml")

WORKFLOW_KEYS = ("jobs", "on")


class Scope(Enum):
    """How a rule decides whether a document is a workflow"""

    WORKFLOW_PATH = "path"
    WORKFLOW_SHAPE = "shape"


def is_workflow_path(source_path: Optional[str]) -> bool:
    """
    Check whether a file path points into a workflows directory

    Args:
        source_path: Path of the file the document was read from

    Returns:
        True if the path ends in ``.github/workflows/<name>.yml`` or ``.yaml``
    """
    if not source_path:
        return False
    path = PurePosixPath(str(source_path).replace("\\", "/"))
    return any(path.match(pattern) for pattern in WORKFLOW_GLOBS)


def looks_like_workflow(document: Document) -> bool:
    """Check whether a document's root mapping has a ``jobs`` or ``on`` key"""
    block = document.block
    return isinstance(block, Mapping) and any(block.has_key(key) for key in WORKFLOW_KEYS)


def in_scope(scope: Scope, document: Document, source_path: Optional[str]) -> bool:
    """Apply the gate selected by ``scope``"""
    if scope is Scope.WORKFLOW_PATH:
        return is_workflow_path(source_path)
    return looks_like_workflow(document)
