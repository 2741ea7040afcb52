"""
console.py - Console/terminal reporting for ghaudit

This module provides functionality for formatting and displaying scanning
results in a human-readable format for terminal output.
"""

import os
import sys
from typing import TYPE_CHECKING, Any, Dict, List, Optional, TextIO

import click

from ..core.scanner import SEVERITY_LEVELS, Finding

if TYPE_CHECKING:
    from .report import ScanSummary

COLORS = {
    "CRITICAL": "bright_red",
    "HIGH": "red",
    "MEDIUM": "yellow",
    "LOW": "blue",
    "RESET": "reset",
    "BOLD": "bold",
}


def get_severity_symbol(severity: str) -> str:
    """Get a symbol representing the severity level"""
    if severity == "CRITICAL":
        return "🚨"
    elif severity == "HIGH":
        return "❗"
    elif severity == "MEDIUM":
        return "⚠️"
    elif severity == "LOW":
        return "ℹ️"
    else:
        return "✓"


def colorize(text: str, color: str, enabled: bool = True) -> str:
    """
    Apply color to text if color output is enabled

    Args:
        text: Text to colorize
        color: Color or style to apply (a click.style keyword)
        enabled: Set to False to return the text unchanged

    Returns:
        Colorized text or original text if color is disabled
    """
    if not enabled or os.environ.get("NO_COLOR"):
        return text

    if color in ("bold", "underline"):
        return click.style(text, **{color: True})
    return click.style(text, fg=color)


def format_location(finding: Finding) -> str:
    """Format ``path:line:column`` for a finding, leaving out unknown parts"""
    location = finding.file_path
    if finding.line_number is not None:
        location += f":{finding.line_number}"
        if finding.column is not None:
            location += f":{finding.column}"
    return location


def format_finding(
    finding: Finding,
    verbose: bool = False,
    show_remediation: bool = True,
    color: bool = True,
    show_context: bool = True,
) -> str:
    """
    Format a single finding for console output

    Args:
        finding: Finding to format
        verbose: Whether to include additional details
        show_remediation: Whether to include remediation advice
        color: Whether to colorize the severity
        show_context: Whether verbose output lists the key and job

    Returns:
        Formatted finding as string
    """
    severity = finding.severity
    symbol = get_severity_symbol(severity)

    formatted = (
        f"{symbol} {colorize(severity, COLORS.get(severity, 'reset'), color)}: {finding.message}\n"
    )
    formatted += f"  Rule: {finding.rule_id}\n"
    formatted += f"  File: {format_location(finding)}\n"

    if show_remediation and finding.remediation:
        formatted += f"  Remediation: {finding.remediation}\n"

    if verbose and show_context and finding.context:
        formatted += "  Context:\n"
        for key, value in finding.context.items():
            formatted += f"    - {key}: {value}\n"

    return formatted


def format_findings_by_file(
    findings: List[Finding],
    verbose: bool = False,
    show_remediation: bool = True,
    color: bool = True,
    show_context: bool = True,
) -> str:
    """
    Format findings grouped by file, most severe first within a file

    Args:
        findings: List of findings to format
        verbose: Whether to include additional details
        show_remediation: Whether to include remediation advice
        color: Whether to colorize output
        show_context: Whether verbose output lists the key and job

    Returns:
        Formatted findings as string
    """
    if not findings:
        return "No issues found.\n"

    findings_by_file: Dict[str, List[Finding]] = {}
    for finding in findings:
        findings_by_file.setdefault(finding.file_path, []).append(finding)

    output = ""
    for file_path, file_findings in findings_by_file.items():
        output += f"\n{colorize('File: ' + file_path, 'bold', color)}\n"

        for level in reversed(SEVERITY_LEVELS):
            for finding in (f for f in file_findings if f.severity == level):
                output += (
                    format_finding(finding, verbose, show_remediation, color, show_context) + "\n"
                )

    return output


def format_findings_by_severity(
    findings: List[Finding],
    verbose: bool = False,
    show_remediation: bool = True,
    color: bool = True,
    show_context: bool = True,
) -> str:
    """Format findings grouped by severity, most severe group first"""
    if not findings:
        return "No issues found.\n"

    output = ""
    for level in reversed(SEVERITY_LEVELS):
        level_findings = [f for f in findings if f.severity == level]
        if not level_findings:
            continue

        heading = f"{level} Severity Issues ({len(level_findings)})"
        output += f"\n{colorize(heading, COLORS.get(level, 'reset'), color)}\n"
        output += "=" * 50 + "\n"

        for finding in level_findings:
            output += (
                format_finding(finding, verbose, show_remediation, color, show_context) + "\n"
            )

    return output


def format_summary(summary: "ScanSummary", color: bool = True) -> str:
    """
    Format summary statistics

    Args:
        summary: Normalized scan statistics
        color: Whether to colorize output

    Returns:
        Formatted summary as string
    """
    output = f"\n{colorize('Scan Summary', 'bold', color)}\n"
    output += "=" * 50 + "\n"

    output += f"Total files scanned: {summary.total_files}\n"
    output += f"Total issues found: {summary.total_findings}\n"

    output += "\nIssues by severity:\n"
    for level, count in summary.severity_counts.items():
        if count > 0:
            output += f"  {colorize(level, COLORS.get(level, 'reset'), color)}: {count}\n"

    if summary.rule_counts:
        output += "\nIssues by rule:\n"
        for rule, count in summary.rule_counts.items():
            output += f"  {rule}: {count}\n"

    if summary.errors:
        output += f"\nFiles that could not be scanned: {len(summary.errors)}\n"
        for error in summary.errors:
            output += f"  {error['file_path']}: {error['message']}\n"

    if summary.duration_seconds is not None:
        output += f"\nScan duration: {summary.duration_seconds:.2f} seconds\n"

    return output


def format_console_report(
    findings: List[Finding],
    summary: "ScanSummary",
    verbose: bool = False,
    group_by_severity: bool = False,
    show_remediation: bool = True,
    show_context: bool = True,
    show_summary: bool = True,
    color: bool = True,
) -> str:
    """
    Generate a complete console report

    Args:
        findings: List of findings
        summary: Normalized scan statistics
        verbose: Whether to include additional details
        group_by_severity: Whether to group findings by severity instead of by file
        show_remediation: Whether to include remediation advice
        show_context: Whether verbose output lists the key and job of a finding
        show_summary: Whether to include summary statistics
        color: Whether to colorize output

    Returns:
        Complete formatted report as string
    """
    options = dict(
        verbose=verbose, show_remediation=show_remediation, show_context=show_context, color=color
    )
    if group_by_severity:
        output = format_findings_by_severity(findings, **options)
    else:
        output = format_findings_by_file(findings, **options)

    if show_summary:
        output += format_summary(summary, color)

    return output


def print_console_report(
    findings: List[Finding],
    summary: "ScanSummary",
    output_stream: Optional[TextIO] = None,
    **options: Any,
) -> None:
    """
    Print console report to output stream

    Args:
        findings: List of findings
        summary: Normalized scan statistics
        output_stream: Output stream to write to (defaults to sys.stdout)
        options: Options of ``format_console_report``
    """
    report = format_console_report(findings, summary, **options)

    if output_stream is None:
        output_stream = sys.stdout

    output_stream.write(report)
    output_stream.flush()
