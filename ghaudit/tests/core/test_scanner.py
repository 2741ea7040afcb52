"""
test_scanner.py - Tests for the scanner module
"""

import os

import pytest

from ghaudit.core import SEVERITY_LEVELS, Finding, WorkflowScanner, scan_file, scan_repository
from ghaudit.core.scanner import Severity, new_stats, record_findings

WORKFLOW_PATH = ".github/workflows/test.yml"


def test_finding_severity_validation():
    """Test that Finding constructor validates severity levels."""

    finding = Finding(
        rule_id="test_rule",
        severity=Severity.HIGH,
        message="Test message",
        file_path="/path/to/file.yml",
    )
    assert finding.severity == Severity.HIGH.value

    with pytest.raises(ValueError):
        Finding(
            rule_id="test_rule",
            severity="INVALID",
            message="Test message",
            file_path="/path/to/file.yml",
        )


def test_severity_levels_are_ordered():
    """Test that severity levels go from least to most severe."""
    assert SEVERITY_LEVELS == ["LOW", "MEDIUM", "HIGH", "CRITICAL"]


def test_scan_clean_workflow(sample_workflow_content):
    """Test that a hardened workflow has no findings."""
    scanner = WorkflowScanner()

    assert scanner.scan_content(sample_workflow_content, WORKFLOW_PATH) == []


def test_scan_insecure_workflow(insecure_workflow_content):
    """Test that an insecure workflow produces the expected findings."""
    scanner = WorkflowScanner()
    findings = scanner.scan_content(insecure_workflow_content, WORKFLOW_PATH)

    rule_ids = {finding.rule_id for finding in findings}
    assert rule_ids == {
        "anonymous_jobs",
        "dangerous_triggers",
        "excessive_permissions",
        "github_env",
        "template_injection",
        "unpinned_actions",
        "missing_timeout",
    }
    assert sum(1 for f in findings if f.rule_id == "template_injection") == 2
    assert all(f.line_number is not None and f.column is not None for f in findings)
    assert all(f.file_path == WORKFLOW_PATH for f in findings)


def test_findings_are_grouped_by_rule(insecure_workflow_content):
    """Test that findings follow rule registration order, then document order."""
    scanner = WorkflowScanner()
    findings = scanner.scan_content(insecure_workflow_content, WORKFLOW_PATH)

    rule_order = [rule.rule_id for rule in scanner.engine.rules]
    positions = [rule_order.index(f.rule_id) for f in findings]
    assert positions == sorted(positions)

    injection_lines = [f.line_number for f in findings if f.rule_id == "template_injection"]
    assert injection_lines == sorted(injection_lines)


def test_scanning_is_idempotent(insecure_workflow_content):
    """Test that scanning the same text twice gives the same findings."""
    scanner = WorkflowScanner()

    first = scanner.scan_content(insecure_workflow_content, WORKFLOW_PATH)
    second = scanner.scan_content(insecure_workflow_content, WORKFLOW_PATH)

    assert first == second


def test_severity_threshold(insecure_workflow_content):
    """Test that findings below the threshold are not reported."""
    scanner = WorkflowScanner()
    findings = scanner.scan_content(insecure_workflow_content, WORKFLOW_PATH, "HIGH")

    assert findings
    assert {f.severity for f in findings} <= {"HIGH", "CRITICAL"}


def test_path_scoped_rules_skip_other_files():
    """Test that only shape-scoped rules run outside the workflows directory."""
    content = "on: pull_request_target\njobs:\n  a:\n    runs-on: x\n"
    scanner = WorkflowScanner()

    findings = scanner.scan_content(content, "ci/shared.yml")

    assert [f.rule_id for f in findings] == ["dangerous_triggers"]


def test_multi_document_content():
    """Test that every document of a stream is scanned."""
    content = "on: pull_request_target\n---\non: workflow_run\n"
    scanner = WorkflowScanner()

    findings = scanner.scan_content(content, WORKFLOW_PATH)

    assert [f.line_number for f in findings] == [1, 3]
    assert "pull_request_target" in findings[0].message
    assert "workflow_run" in findings[1].message


def test_scan_file(insecure_workflow_file):
    """Test scanning a single file."""
    scanner = WorkflowScanner()

    findings = scanner.scan_file(insecure_workflow_file)

    assert len(findings) > 0
    assert scanner.errors == []


def test_scan_file_with_invalid_yaml(temp_dir):
    """Test that unparsable files are recorded instead of raising."""
    workflows = os.path.join(temp_dir, ".github", "workflows")
    os.makedirs(workflows)
    path = os.path.join(workflows, "broken.yml")
    with open(path, "w") as f:
        f.write("on: [push\njobs:\n")

    scanner = WorkflowScanner()

    assert scanner.scan_file(path) == []
    assert len(scanner.errors) == 1
    assert scanner.errors[0]["file_path"] == path


def test_scan_file_with_alias_bomb(temp_dir):
    """Test that an alias bomb is recorded as an error instead of hanging."""
    workflows = os.path.join(temp_dir, ".github", "workflows")
    os.makedirs(workflows)
    path = os.path.join(workflows, "bomb.yml")
    lines = ["a0: &a0 [x, x, x, x, x, x, x, x, x]"]
    for level in range(1, 9):
        lines.append(f"a{level}: &a{level} [" + ", ".join([f"*a{level - 1}"] * 9) + "]")
    with open(path, "w") as f:
        f.write("\n".join(lines) + "\n")

    scanner = WorkflowScanner()

    assert scanner.scan_file(path) == []
    assert len(scanner.errors) == 1
    assert "expands to more than" in scanner.errors[0]["message"]


def test_scan_missing_file():
    """Test that unreadable files are recorded instead of raising."""
    scanner = WorkflowScanner()

    assert scanner.scan_file("/nonexistent/.github/workflows/ci.yml") == []
    assert len(scanner.errors) == 1


def test_scan_repository(mock_repo):
    """Test scanning a repository."""
    findings, stats = scan_repository(mock_repo)

    assert stats["total_files"] == 2
    assert stats["total_findings"] == len(findings)
    assert stats["errors"] == []
    assert "end_time" in stats
    assert all(f.file_path.endswith("insecure.yaml") for f in findings)
    assert sum(stats["severity_counts"].values()) == len(findings)
    assert stats["rule_counts"]["template_injection"] == 2

    assert len(stats["workflows"]) == 2
    insecure = next(
        facts for path, facts in stats["workflows"].items() if path.endswith("insecure.yaml")
    )
    assert insecure[0].dangerous_trigger == "pull_request_target"
    assert insecure[0].triggers == ("pull_request_target",)


def test_scan_repository_with_config(mock_repo):
    """Test that disabled rules do not report."""
    findings, _ = scan_repository(mock_repo, config={"template_injection": False})

    assert findings
    assert all(f.rule_id != "template_injection" for f in findings)


def test_scan_file_function(insecure_workflow_file):
    """Test the module-level single file scan."""
    findings, stats = scan_file(insecure_workflow_file, severity_threshold="CRITICAL")

    assert stats["total_files"] == 1
    assert {f.rule_id for f in findings} == {"template_injection"}
    assert stats["severity_counts"]["CRITICAL"] == 2


def test_record_findings():
    """Test statistics bookkeeping."""
    stats = new_stats("/repo")
    record_findings(
        stats,
        [
            Finding("a", "LOW", "m", "f.yml"),
            Finding("a", "HIGH", "m", "f.yml"),
        ],
    )

    assert stats["repo_path"] == "/repo"
    assert stats["total_findings"] == 2
    assert stats["severity_counts"]["LOW"] == 1
    assert stats["severity_counts"]["HIGH"] == 1
    assert stats["rule_counts"] == {"a": 2}
