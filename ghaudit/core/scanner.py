"""
scanner.py - Core scanning functionality for ghaudit

This module handles scanning workflow text, files and repositories. Parsing
is delegated to ``ghaudit.utils.yaml_handler`` and rule evaluation to the
rule engine; this module feeds one to the other and keeps statistics.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

import yaml

from ..utils.yaml_handler import find_github_workflow_files, parse_documents
from .facts import DocumentFacts, collect_facts
from .model import Node
from .scope import looks_like_workflow

if TYPE_CHECKING:
    from ..rules.engine import RuleEngine

logger = logging.getLogger(__name__)


class Severity(Enum):
    """Enumeration of finding severity levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


SEVERITY_LEVELS = [level.value for level in Severity]


@dataclass
class Finding:
    """Represents a security finding in a workflow file"""

    rule_id: str
    severity: Union[str, Severity]
    message: str
    file_path: str
    line_number: Optional[int] = None
    column: Optional[int] = None
    remediation: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    anchor: Optional[Node] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        """Validate severity level"""
        if isinstance(self.severity, Severity):
            self.severity = self.severity.value
        if self.severity not in SEVERITY_LEVELS:
            raise ValueError(f"Invalid severity level: {self.severity}")


def new_stats(repo_path: Optional[str] = None) -> Dict[str, Any]:
    """Create an empty statistics dictionary"""
    return {
        "start_time": datetime.now().isoformat(),
        "repo_path": repo_path,
        "total_files": 0,
        "total_findings": 0,
        "severity_counts": {level: 0 for level in SEVERITY_LEVELS},
        "rule_counts": {},
        "errors": [],
        "workflows": {},
    }


def record_findings(stats: Dict[str, Any], findings: List[Finding]) -> None:
    """Add findings to the counters in ``stats``"""
    for finding in findings:
        stats["total_findings"] += 1
        stats["severity_counts"][finding.severity] = (
            stats["severity_counts"].get(finding.severity, 0) + 1
        )
        stats["rule_counts"][finding.rule_id] = stats["rule_counts"].get(finding.rule_id, 0) + 1


class WorkflowScanner:
    """Scans GitHub Actions workflow files for security issues"""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        engine: Optional["RuleEngine"] = None,
    ) -> None:
        """
        Initialize the scanner

        Args:
            config: Configuration dictionary for rules
            engine: Rule engine to use (one is built from ``config`` if omitted)
        """
        from ..rules.engine import RuleEngine

        self.config = config or {}
        self.engine = engine or RuleEngine(self.config)
        self.errors: List[Dict[str, str]] = []
        self.workflows: Dict[str, List[DocumentFacts]] = {}

    def scan_content(
        self,
        content: str,
        file_path: str,
        severity_threshold: str = Severity.LOW.value,
    ) -> List[Finding]:
        """
        Scan workflow text

        Args:
            content: YAML text, possibly holding several documents
            file_path: Path used for scope decisions and reporting
            severity_threshold: Minimum severity level to report

        Returns:
            List of findings

        Raises:
            yaml.YAMLError: If the text is not valid YAML
        """
        documents = parse_documents(content)
        self.workflows[file_path] = [
            collect_facts(document) for document in documents if looks_like_workflow(document)
        ]
        return self.engine.scan_documents(documents, file_path, severity_threshold)

    def scan_file(
        self, file_path: str, severity_threshold: str = Severity.LOW.value
    ) -> List[Finding]:
        """
        Scan a single workflow file for issues

        Unreadable or invalid files are logged and recorded in ``self.errors``.

        Args:
            file_path: Path to the workflow file
            severity_threshold: Minimum severity level to report

        Returns:
            List of findings
        """
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                content = f.read()
            return self.scan_content(content, file_path, severity_threshold)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.warning("Could not scan %s: %s", file_path, e)
            self.errors.append({"file_path": file_path, "message": str(e)})
            return []

    def scan_directory(
        self, directory_path: str, severity_threshold: str = Severity.LOW.value
    ) -> List[Finding]:
        """
        Scan all workflow files in a repository

        Args:
            directory_path: Repository root containing ``.github/workflows``
            severity_threshold: Minimum severity level to report

        Returns:
            List of findings
        """
        findings: List[Finding] = []

        for file_path in find_github_workflow_files(directory_path):
            findings.extend(self.scan_file(str(file_path), severity_threshold))

        return findings


def scan_repository(
    repo_path: str,
    config: Optional[Dict[str, Any]] = None,
    severity_threshold: str = Severity.LOW.value,
) -> Tuple[List[Finding], Dict[str, Any]]:
    """
    Scan a repository for workflow security issues

    Args:
        repo_path: Path to the repository
        config: Configuration for rules
        severity_threshold: Minimum severity level to report

    Returns:
        Tuple of (findings, stats)
    """
    scanner = WorkflowScanner(config=config)
    all_findings: List[Finding] = []
    stats = new_stats(repo_path)

    for workflow_file in find_github_workflow_files(repo_path):
        stats["total_files"] += 1
        file_findings = scanner.scan_file(str(workflow_file), severity_threshold)
        record_findings(stats, file_findings)
        all_findings.extend(file_findings)

    stats["errors"] = list(scanner.errors)
    stats["workflows"] = dict(scanner.workflows)
    stats["end_time"] = datetime.now().isoformat()

    return all_findings, stats


def scan_file(
    file_path: str,
    config: Optional[Dict[str, Any]] = None,
    severity_threshold: str = Severity.LOW.value,
) -> Tuple[List[Finding], Dict[str, Any]]:
    """
    Scan one workflow file and build statistics for it

    Args:
        file_path: Path to the workflow file
        config: Configuration for rules
        severity_threshold: Minimum severity level to report

    Returns:
        Tuple of (findings, stats)
    """
    scanner = WorkflowScanner(config=config)
    stats = new_stats()
    stats["total_files"] = 1

    findings = scanner.scan_file(file_path, severity_threshold)
    record_findings(stats, findings)

    stats["errors"] = list(scanner.errors)
    stats["workflows"] = dict(scanner.workflows)
    stats["end_time"] = datetime.now().isoformat()

    return findings, stats
