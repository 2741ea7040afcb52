"""
conftest.py - Pytest fixtures for ghaudit tests
"""

import os
import tempfile

import pytest

from ghaudit.core.traversal import find_entries
from ghaudit.rules import RuleEngine
from ghaudit.utils.yaml_handler import parse_document, parse_documents

WORKFLOW_PATH = ".github/workflows/test.yml"


@pytest.fixture
def temp_dir():
    """Create a temporary directory that is removed after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def sample_workflow_content():
    """Sample GitHub Actions workflow content."""
    return """
name: Sample Workflow

on:
  push:
    branches: [ main ]
  pull_request:
    branches: [ main ]

permissions:
  contents: read

jobs:
  build:
    name: Build
    runs-on: ubuntu-latest
    timeout-minutes: 15
    steps:
      - uses: actions/checkout@b4ffde65f46336ab88eb53be808477a3936bae11
        with:
          persist-credentials: false
      - name: Install dependencies
        run: |
          python -m pip install --upgrade pip
          pip install -e .
      - name: Run tests
        run: pytest
"""


@pytest.fixture
def insecure_workflow_content():
    """Sample workflow with security issues."""
    return """
name: Insecure Workflow

on:
  pull_request_target:
    branches: [ main ]

permissions: write-all

jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v3
        with:
          ref: ${{ github.event.pull_request.head.ref }}
      - name: Run command
        run: |
          echo "Running with input ${{ github.event.pull_request.title }}"
      - name: Set environment variable
        run: echo "MY_VAR=${{ github.event.pull_request.body }}" >> $GITHUB_ENV
"""


def _write_workflow(repo_dir, name, content):
    workflows_dir = os.path.join(repo_dir, ".github", "workflows")
    os.makedirs(workflows_dir, exist_ok=True)
    path = os.path.join(workflows_dir, name)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    return path


@pytest.fixture
def sample_workflow_file(temp_dir, sample_workflow_content):
    """Create a sample workflow file in a temporary repository."""
    return _write_workflow(temp_dir, "sample.yml", sample_workflow_content)


@pytest.fixture
def insecure_workflow_file(temp_dir, insecure_workflow_content):
    """Create an insecure workflow file in a temporary repository."""
    return _write_workflow(temp_dir, "insecure.yml", insecure_workflow_content)


@pytest.fixture
def mock_repo(temp_dir, sample_workflow_content, insecure_workflow_content):
    """Create a repository with a secure and an insecure workflow."""
    _write_workflow(temp_dir, "sample.yml", sample_workflow_content)
    _write_workflow(temp_dir, "insecure.yaml", insecure_workflow_content)
    return temp_dir


@pytest.fixture
def run_rule():
    """Return a helper that scans YAML text and keeps one rule's findings."""

    def _run(rule_id, content, file_path=WORKFLOW_PATH, config=None):
        engine = RuleEngine(config)
        findings = engine.scan_documents(parse_documents(content), file_path)
        return [finding for finding in findings if finding.rule_id == rule_id]

    return _run


@pytest.fixture
def cursor_at():
    """Return a helper that finds the cursor of the first entry keyed ``key``."""

    def _cursor_at(content, key):
        document = parse_document(content)
        return next(find_entries(document, key))

    return _cursor_at


@pytest.fixture
def mock_findings():
    """Create mock findings for testing reporting functions."""
    from ghaudit.core import Finding

    return [
        Finding(
            rule_id="missing_timeout",
            severity="LOW",
            message="Job 'build' has no timeout-minutes set.",
            file_path="/path/to/repo/.github/workflows/ci.yml",
            line_number=10,
            column=3,
            remediation="Set 'timeout-minutes:' on the job",
            context={"key": "build", "job": "build"},
        ),
        Finding(
            rule_id="unpinned_actions",
            severity="MEDIUM",
            message="Action 'actions/checkout@v4' is not pinned to a commit SHA.",
            file_path="/path/to/repo/.github/workflows/ci.yml",
            line_number=15,
            column=9,
            remediation="Pin the action to a full 40 character commit SHA",
            context={"key": "uses", "job": "build"},
        ),
        Finding(
            rule_id="dangerous_triggers",
            severity="HIGH",
            message="The 'pull_request_target' trigger is almost always used insecurely.",
            file_path="/path/to/repo/.github/workflows/pr.yml",
            line_number=3,
            column=1,
            remediation="Prefer 'pull_request' or 'push' triggers",
        ),
        Finding(
            rule_id="template_injection",
            severity="CRITICAL",
            message="Potential template injection vulnerability.",
            file_path="/path/to/repo/.github/workflows/pr.yml",
            line_number=20,
            column=9,
            remediation="Pass the value through an environment variable",
            context={"key": "run", "job": "greet"},
        ),
        Finding(
            rule_id="anonymous_jobs",
            severity="LOW",
            message="Job has no name.",
            file_path="/path/to/repo/.github/workflows/pr.yml",
        ),
    ]


@pytest.fixture
def mock_stats():
    """Create mock statistics for testing reporting functions."""
    return {
        "start_time": "2026-05-01T12:00:00",
        "end_time": "2026-05-01T12:00:05",
        "repo_path": "/path/to/repo",
        "total_files": 2,
        "total_findings": 5,
        "severity_counts": {"CRITICAL": 1, "HIGH": 1, "MEDIUM": 1, "LOW": 2},
        "rule_counts": {
            "missing_timeout": 1,
            "unpinned_actions": 1,
            "dangerous_triggers": 1,
            "template_injection": 1,
            "anonymous_jobs": 1,
        },
        "errors": [],
    }


@pytest.fixture
def mock_summary(mock_stats):
    """Normalized form of the mock statistics."""
    from ghaudit.reports import summarize

    return summarize(mock_stats)
