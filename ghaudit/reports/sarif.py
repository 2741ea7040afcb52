"""
sarif.py - SARIF format reporting for ghaudit

This module provides functionality for formatting scanning results in SARIF
(Static Analysis Results Interchange Format) format, suitable for GitHub
code scanning and other static analysis tools.

See https://docs.github.com/en/code-security/code-scanning/integrating-with-code-scanning/
sarif-support-for-code-scanning for more information on GitHub's SARIF support.
"""

import json
import os
from typing import TYPE_CHECKING, Any, Dict, List, Optional, cast

from ..core.scanner import Finding
from ..utils.version import __version__

if TYPE_CHECKING:
    from .report import ScanSummary

SARIF_VERSION = "2.1.0"
SARIF_SCHEMA = (
    "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"
)

GITHUB_SEVERITY_LEVELS = {
    "CRITICAL": "error",
    "HIGH": "error",
    "MEDIUM": "warning",
    "LOW": "note",
}

SECURITY_SEVERITY_SCORES = {
    "CRITICAL": 9.5,
    "HIGH": 8.0,
    "MEDIUM": 5.0,
    "LOW": 3.0,
}


def severity_to_sarif_level(severity: str) -> str:
    """
    Convert a ghaudit severity level to a SARIF level

    Args:
        severity: ghaudit severity level

    Returns:
        SARIF level
    """
    return GITHUB_SEVERITY_LEVELS.get(severity, "warning")


def rule_to_sarif_rule(
    rule_id: str,
    severity: str,
    description: Optional[str] = None,
    help_text: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Convert a ghaudit rule to a SARIF rule

    Args:
        rule_id: Rule ID
        severity: Rule severity
        description: Rule description
        help_text: Rule help text

    Returns:
        SARIF rule definition
    """
    sarif_rule = {
        "id": rule_id,
        "shortDescription": {"text": description or f"Rule {rule_id}"},
        "properties": {"security-severity": str(SECURITY_SEVERITY_SCORES.get(severity, 5.0))},
    }

    if help_text:
        sarif_rule["help"] = {"text": help_text}

    if description:
        sarif_rule["fullDescription"] = {"text": description}

    return sarif_rule


def artifact_uri(file_path: str, repo_root: Optional[str] = None) -> str:
    """Make ``file_path`` relative to ``repo_root`` when it lies inside it"""
    if repo_root and file_path.startswith(repo_root):
        file_path = os.path.relpath(file_path, repo_root)
    return file_path.replace(os.sep, "/")


def error_to_sarif_notification(
    error: Dict[str, str], repo_root: Optional[str] = None
) -> Dict[str, Any]:
    """Report a file that could not be scanned as a tool execution notification"""
    uri = artifact_uri(error["file_path"], repo_root)
    return {
        "level": "error",
        "message": {"text": error["message"]},
        "locations": [{"physicalLocation": {"artifactLocation": {"uri": uri}}}],
    }


def finding_to_sarif_result(finding: Finding, repo_root: Optional[str] = None) -> Dict[str, Any]:
    """
    Convert a ghaudit finding to a SARIF result

    Args:
        finding: Finding to convert
        repo_root: Repository root path for converting absolute paths to relative

    Returns:
        SARIF result
    """

    file_path = artifact_uri(finding.file_path, repo_root)

    result: Dict[str, Any] = {
        "ruleId": finding.rule_id,
        "level": severity_to_sarif_level(finding.severity),
        "message": {"text": finding.message},
        "locations": [{"physicalLocation": {"artifactLocation": {"uri": file_path}}}],
    }

    if finding.line_number is not None:
        locations = cast(List[Dict[str, Any]], result["locations"])
        physical_loc = cast(Dict[str, Any], locations[0]["physicalLocation"])
        physical_loc["region"] = {"startLine": finding.line_number}

        if finding.column is not None:
            region = cast(Dict[str, Any], physical_loc["region"])
            region["startColumn"] = finding.column

    if finding.remediation:
        result["fixes"] = [{"description": {"text": finding.remediation}}]

    result["properties"] = {"severity": finding.severity}

    if finding.context:
        properties = cast(Dict[str, Any], result["properties"])
        properties["context"] = finding.context

    return result


def generate_sarif_report(
    findings: List[Finding],
    summary: "ScanSummary",
    repo_root: Optional[str] = None,
    tool_name: str = "ghaudit",
    tool_version: str = __version__,
) -> str:
    """
    Generate a SARIF report from findings

    Args:
        findings: List of findings
        summary: Normalized scan statistics, used for run metadata
        repo_root: Repository root path for converting absolute paths to relative
        tool_name: Name of the analysis tool
        tool_version: Version of the analysis tool

    Returns:
        SARIF report as a JSON string
    """
    run: Dict[str, Any] = {
        "tool": {
            "driver": {
                "name": tool_name,
                "version": tool_version,
                "rules": [],
            }
        },
        "results": [],
        "properties": {
            "metrics": {
                "total_findings": summary.total_findings,
                "total_files": summary.total_files,
            }
        },
    }

    if summary.start_time:
        invocation: Dict[str, Any] = {
            "executionSuccessful": summary.successful,
            "startTimeUtc": summary.start_time,
        }
        if summary.end_time:
            invocation["endTimeUtc"] = summary.end_time
        if summary.errors:
            invocation["toolExecutionNotifications"] = [
                error_to_sarif_notification(error, repo_root) for error in summary.errors
            ]
        run["invocations"] = [invocation]

    rules_seen = set()

    for finding in findings:
        if finding.rule_id not in rules_seen:
            rules_seen.add(finding.rule_id)
            run["tool"]["driver"]["rules"].append(
                rule_to_sarif_rule(
                    finding.rule_id,
                    finding.severity,
                    description=finding.message,
                    help_text=finding.remediation,
                )
            )

        run["results"].append(finding_to_sarif_result(finding, repo_root))

    sarif: Dict[str, Any] = {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [run],
    }

    return json.dumps(sarif, indent=2)

