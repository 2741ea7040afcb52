"""
base.py - Base class for GitHub Actions security rules

This module provides the foundation for implementing rules in ghaudit.
A rule never walks the document itself. The engine walks every document
once and calls ``check`` for each mapping entry whose key the rule listed
in ``keys``, passing a cursor positioned at that entry together with the
document facts the rule asked for. ``check`` returns a message when the
entry is a problem and None otherwise.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Optional

from ..core.cursor import Cursor
from ..core.facts import DocumentFacts
from ..core.model import Document, MappingEntry, Node
from ..core.scanner import Finding, Severity
from ..core.scope import Scope, in_scope


class Rule(ABC):
    """Base class for all ghaudit rules"""

    # Keys of the mapping entries this rule inspects; None means every entry
    keys: Optional[FrozenSet[str]] = None

    scope: Scope = Scope.WORKFLOW_PATH

    def __init__(
        self,
        rule_id: str,
        severity: str,
        description: str,
        remediation: str,
        category: str = "security",
    ):
        """
        Initialize a rule

        Args:
            rule_id: Unique identifier for the rule
            severity: Severity level (CRITICAL, HIGH, MEDIUM, LOW)
            description: Human-readable description of the rule
            remediation: Generic remediation advice for this rule
            category: Category of the rule (security, best-practice, etc.)
        """
        self.rule_id = rule_id
        self.severity = severity
        self.description = description
        self.remediation = remediation
        self.category = category
        self.enabled = True
        self.options: Dict[str, Any] = {}

    def configure(self, options: Dict[str, Any]) -> None:
        """Apply the rule's section of the ``rules`` configuration"""
        self.options = dict(options)

    def applies_to(self, document: Document, file_path: Optional[str]) -> bool:
        """Check whether the document is in this rule's scope"""
        return in_scope(self.scope, document, file_path)

    def prepare(self, document: Document) -> Optional[DocumentFacts]:
        """
        Compute document-wide facts before the per-entry pass

        Rules that need facts override this. The result is passed to
        ``is_active`` and to every ``check`` call for the same document.
        """
        return None

    def is_active(self, facts: Optional[DocumentFacts]) -> bool:
        """Return False to skip the per-entry pass for this document"""
        return True

    def matches(self, entry: MappingEntry) -> bool:
        return self.keys is None or entry.key.value in self.keys

    @abstractmethod
    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        """
        Check one mapping entry

        Args:
            cursor: Cursor positioned at the entry
            facts: Result of ``prepare`` for this document

        Returns:
            Finding message, or None if the entry is fine
        """
        pass

    def create_finding(
        self,
        message: str,
        file_path: str,
        anchor: Optional[Node] = None,
        line_number: Optional[int] = None,
        column: Optional[int] = None,
        remediation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        severity: Optional[str] = None,
    ) -> Finding:
        """
        Create a Finding object for this rule

        Args:
            message: Message describing the issue
            file_path: Path to the workflow file
            anchor: Node the finding is attached to
            line_number: Line number where the issue was found
            column: Column number where the issue was found
            remediation: Specific remediation advice (defaults to rule's generic advice)
            context: Additional context for the finding
            severity: Severity override for this finding

        Returns:
            Finding object
        """
        rule_severity = severity or self.severity
        if isinstance(rule_severity, Severity):
            rule_severity = rule_severity.value

        return Finding(
            rule_id=self.rule_id,
            severity=rule_severity,
            message=message,
            file_path=file_path,
            line_number=line_number,
            column=column,
            remediation=remediation or self.remediation,
            context=context or {},
            anchor=anchor,
        )


def entry_of(cursor: Cursor) -> MappingEntry:
    """Return the mapping entry a rule's cursor points at"""
    entry = cursor.value
    if not isinstance(entry, MappingEntry):
        raise TypeError(f"Expected a mapping entry, got {type(entry).__name__}")
    return entry
