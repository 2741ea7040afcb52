"""
ghaudit - GitHub Actions workflow auditor

A static analyzer for GitHub Actions workflows. It parses workflow YAML into
an immutable document model, walks it once per document and reports
misconfigurations and security vulnerabilities with their source positions.
"""

from typing import Optional

from ghaudit.utils.version import __version__, get_version, get_version_info

from .core import (
    SEVERITY_LEVELS,
    ConfigurationError,
    Finding,
    Severity,
    WorkflowScanner,
    disable_rules,
    generate_default_config,
    load_config,
    save_config,
    scan_file,
    scan_repository,
)
from .reports import generate_report, print_report, save_report
from .rules import Rule, RuleEngine, create_rule_engine

__all__ = [
    "__version__",
    "get_version",
    "get_version_info",
    "Finding",
    "Severity",
    "WorkflowScanner",
    "scan_repository",
    "scan_file",
    "SEVERITY_LEVELS",
    "load_config",
    "generate_default_config",
    "save_config",
    "disable_rules",
    "ConfigurationError",
    "generate_report",
    "save_report",
    "print_report",
    "Rule",
    "RuleEngine",
    "create_rule_engine",
    "main",
]


def main() -> Optional[int]:
    """Main entry point for the ghaudit CLI tool"""
    from .cli import cli

    return cli()
