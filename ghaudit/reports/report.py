"""
report.py - Report dispatcher for ghaudit

Scanning produces a loose statistics dictionary. ``summarize`` turns it into
a ``ScanSummary`` once, and every output format is rendered from that
summary, so severity names, error lists and durations are resolved here and
nowhere else.
"""

import os
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from ..core.facts import DocumentFacts
from ..core.scanner import SEVERITY_LEVELS, Finding, Severity
from .console import format_console_report
from .json import generate_json_report, generate_json_summary
from .sarif import generate_sarif_report

REPORT_FORMATS = ("text", "json", "sarif")


@dataclass
class ScanSummary:
    """Normalized statistics of one scan"""

    total_files: int = 0
    total_findings: int = 0
    severity_counts: Dict[str, int] = field(default_factory=dict)
    rule_counts: Dict[str, int] = field(default_factory=dict)
    errors: List[Dict[str, str]] = field(default_factory=list)
    workflows: Dict[str, List[DocumentFacts]] = field(default_factory=dict)
    repo_path: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_seconds: Optional[float] = None

    @property
    def successful(self) -> bool:
        """True when every file could be read and parsed"""
        return not self.errors


def _level(severity: Union[str, Severity]) -> str:
    return Severity(severity).value


def _duration(start_time: Optional[str], end_time: Optional[str]) -> Optional[float]:
    if not start_time or not end_time:
        return None
    try:
        start = datetime.fromisoformat(start_time)
        end = datetime.fromisoformat(end_time)
    except (ValueError, TypeError):
        return None
    return (end - start).total_seconds()


def summarize(stats: Dict[str, Any]) -> ScanSummary:
    """
    Normalize a statistics dictionary from the scanner

    Severity keys may be ``Severity`` members or their names; the result
    holds every level, most severe first. Rules are ordered by their number
    of findings.

    Args:
        stats: Statistics as returned by ``scan_repository`` or ``scan_file``

    Returns:
        The summary every report format is rendered from
    """
    severity_counts = {level: 0 for level in reversed(SEVERITY_LEVELS)}
    for severity, count in (stats.get("severity_counts") or {}).items():
        severity_counts[_level(severity)] += count

    rule_counts = dict(
        sorted((stats.get("rule_counts") or {}).items(), key=lambda item: item[1], reverse=True)
    )

    return ScanSummary(
        total_files=stats.get("total_files", 0),
        total_findings=stats.get("total_findings", sum(severity_counts.values())),
        severity_counts=severity_counts,
        rule_counts=rule_counts,
        errors=list(stats.get("errors") or []),
        workflows=dict(stats.get("workflows") or {}),
        repo_path=stats.get("repo_path"),
        start_time=stats.get("start_time"),
        end_time=stats.get("end_time"),
        duration_seconds=_duration(stats.get("start_time"), stats.get("end_time")),
    )


def generate_report(
    findings: List[Finding],
    stats: Dict[str, Any],
    format: str = "text",
    repo_path: Optional[str] = None,
    verbose: bool = False,
    group_by_severity: bool = False,
    show_remediation: bool = True,
    show_context: bool = True,
    show_summary: bool = True,
    summary_only: bool = False,
    color: bool = True,
) -> str:
    """
    Generate a report in the specified format

    Args:
        findings: List of findings
        stats: Statistics dictionary from the scanner
        format: Output format ('text', 'json', 'sarif')
        repo_path: Repository path, SARIF locations are made relative to it
        verbose: Whether to include additional details (text only)
        group_by_severity: Whether to group findings by severity (text only)
        show_remediation: Whether to include remediation advice (text only)
        show_context: Whether verbose text lists the key and job of a finding
        show_summary: Whether to include summary statistics
        summary_only: Whether to only include summary information (json only)
        color: Whether to colorize text output

    Returns:
        Generated report as a string

    Raises:
        ValueError: If an invalid format is specified
    """
    if format not in REPORT_FORMATS:
        raise ValueError(f"Invalid report format: {format}")

    summary = summarize(stats)

    if format == "text":
        return format_console_report(
            findings,
            summary,
            verbose=verbose,
            group_by_severity=group_by_severity,
            show_remediation=show_remediation,
            show_context=show_context,
            show_summary=show_summary,
            color=color,
        )
    if format == "json":
        if summary_only:
            return generate_json_summary(summary)
        return generate_json_report(findings, summary, include_stats=show_summary)
    return generate_sarif_report(findings, summary, repo_root=repo_path or summary.repo_path)


def save_report(
    findings: List[Finding], stats: Dict[str, Any], output_path: str, **options: Any
) -> None:
    """
    Generate a report and write it to ``output_path``

    Accepts the options of ``generate_report``. Text written to a file is
    never colorized.

    Raises:
        OSError: If the file cannot be written
        ValueError: If an invalid format is specified
    """
    options["color"] = False
    report = generate_report(findings, stats, **options)

    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(report)


def print_report(findings: List[Finding], stats: Dict[str, Any], **options: Any) -> None:
    """
    Generate a report and print it to stdout

    Accepts the options of ``generate_report``.

    Raises:
        ValueError: If an invalid format is specified
    """
    report = generate_report(findings, stats, **options)
    sys.stdout.write(report if report.endswith("\n") else report + "\n")
    sys.stdout.flush()
