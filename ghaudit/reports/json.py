"""
json.py - JSON reporting for ghaudit

Every finding carries its location in the workflow (file, line, column, the
key it was reported at and the enclosing job) and the category and scope of
the rule that produced it. Scanned files are listed with the facts that
decided which rules ran on them, such as the untrusted trigger or whether
the workflow publishes releases.
"""

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..core.facts import DocumentFacts
from ..core.scanner import Finding
from ..rules import create_rule_engine
from ..utils.version import __version__

if TYPE_CHECKING:
    from .report import ScanSummary


def rule_index() -> Dict[str, Dict[str, Any]]:
    """Map rule ids to their entry in the rule catalog"""
    return {rule["id"]: rule for rule in create_rule_engine().list_rules()}


def location_to_dict(finding: Finding) -> Dict[str, Any]:
    """Describe where a finding was reported, leaving out unknown parts"""
    location: Dict[str, Any] = {"file": finding.file_path}

    line, column = finding.line_number, finding.column
    if line is None and finding.anchor is not None:
        line, column = finding.anchor.start.line, finding.anchor.start.column
    if line is not None:
        location["line"] = line
    if column is not None:
        location["column"] = column

    for name in ("key", "job"):
        if name in finding.context:
            location[name] = finding.context[name]

    return location


def finding_to_dict(
    finding: Finding, rules: Optional[Dict[str, Dict[str, Any]]] = None
) -> Dict[str, Any]:
    """
    Convert a Finding into a JSON-ready dictionary

    Args:
        finding: Finding to convert
        rules: Rule catalog from ``rule_index``; built on demand if omitted

    Returns:
        Dictionary representation of the finding
    """
    if rules is None:
        rules = rule_index()

    result: Dict[str, Any] = {
        "rule_id": finding.rule_id,
        "severity": finding.severity,
        "message": finding.message,
        "location": location_to_dict(finding),
    }

    rule = rules.get(finding.rule_id)
    if rule is not None:
        result["category"] = rule["category"]
        result["scope"] = rule["scope"]
    if finding.remediation:
        result["remediation"] = finding.remediation

    return result


def facts_to_dict(facts: DocumentFacts) -> Dict[str, Any]:
    return {
        "triggers": list(facts.triggers),
        "dangerous_trigger": facts.dangerous_trigger,
        "is_publishing": facts.is_publishing,
        "publisher_action": facts.publisher_action,
    }


def _summary_dict(summary: "ScanSummary") -> Dict[str, Any]:
    return {
        "total_files": summary.total_files,
        "total_findings": summary.total_findings,
        "severity_counts": summary.severity_counts,
        "rule_counts": summary.rule_counts,
        "errors": summary.errors,
        "scan_duration_seconds": summary.duration_seconds,
    }


def generate_json_report(
    findings: List[Finding], summary: "ScanSummary", include_stats: bool = True
) -> str:
    """
    Generate a JSON report of findings and statistics

    Args:
        findings: List of findings
        summary: Normalized scan statistics
        include_stats: Whether to include statistics and scanned workflows

    Returns:
        JSON string representation of the report
    """
    rules = rule_index()

    report: Dict[str, Any] = {
        "ghaudit_version": __version__,
        "generated_at": datetime.now().isoformat(),
        "findings": [finding_to_dict(finding, rules) for finding in findings],
    }

    if include_stats:
        report["stats"] = _summary_dict(summary)
        report["workflows"] = {
            file_path: [facts_to_dict(facts) for facts in documents]
            for file_path, documents in summary.workflows.items()
        }

    return json.dumps(report, indent=2)


def generate_json_summary(summary: "ScanSummary") -> str:
    """Generate a JSON summary of scan statistics without findings"""
    return json.dumps(
        {
            "ghaudit_version": __version__,
            "generated_at": datetime.now().isoformat(),
            "summary": _summary_dict(summary),
        },
        indent=2,
    )
