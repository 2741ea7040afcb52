"""
core package for ghaudit - GitHub Actions workflow auditor

This package contains the document model, the traversal and the scanning
functionality.
"""

from .config import (
    ConfigurationError,
    disable_rules,
    generate_default_config,
    load_config,
    save_config,
)
from .cursor import Cursor
from .facts import DocumentFacts, collect_facts
from .model import (
    Document,
    Mapping,
    MappingEntry,
    Mark,
    Scalar,
    Sequence,
    SequenceEntry,
)
from .scanner import (
    SEVERITY_LEVELS,
    Finding,
    Severity,
    WorkflowScanner,
    scan_file,
    scan_repository,
)
from .scope import Scope, in_scope, is_workflow_path, looks_like_workflow
from .traversal import find_entries, iter_entries, walk

__all__ = [
    "WorkflowScanner",
    "Finding",
    "Severity",
    "scan_repository",
    "scan_file",
    "SEVERITY_LEVELS",
    "load_config",
    "generate_default_config",
    "save_config",
    "disable_rules",
    "ConfigurationError",
    "Document",
    "Mapping",
    "MappingEntry",
    "Mark",
    "Scalar",
    "Sequence",
    "SequenceEntry",
    "Cursor",
    "walk",
    "iter_entries",
    "find_entries",
    "Scope",
    "in_scope",
    "is_workflow_path",
    "looks_like_workflow",
    "DocumentFacts",
    "collect_facts",
]
