"""
test_main.py - Tests for the main package functionality
"""

from unittest.mock import patch

import ghaudit


def test_version_info():
    """Test version information is accessible from the main package."""
    assert ghaudit.__version__ is not None
    assert isinstance(ghaudit.__version__, str)
    assert ghaudit.get_version() == ghaudit.__version__


def test_main_imports():
    """Test that key functions and classes are properly imported at the package level."""
    for name in ghaudit.__all__:
        assert hasattr(ghaudit, name), name

    assert hasattr(ghaudit, "Finding")
    assert hasattr(ghaudit, "WorkflowScanner")
    assert hasattr(ghaudit, "scan_repository")
    assert hasattr(ghaudit, "load_config")
    assert hasattr(ghaudit, "generate_report")
    assert hasattr(ghaudit, "RuleEngine")


def test_main_function():
    """Test the main entry point function."""
    with patch("ghaudit.cli.cli") as mock_cli:
        ghaudit.main()

        mock_cli.assert_called_once()


def test_package_scan_api(insecure_workflow_file):
    """Test scanning through the package-level API."""
    findings, stats = ghaudit.scan_file(insecure_workflow_file)

    assert stats["total_files"] == 1
    assert stats["total_findings"] == len(findings)
    assert any(finding.rule_id == "template_injection" for finding in findings)
