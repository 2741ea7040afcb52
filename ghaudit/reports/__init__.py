"""
reports package for ghaudit - GitHub Actions workflow auditor

This package contains reporting functionality for presenting scan results
as console text, JSON, or SARIF.
"""

from .console import (
    format_console_report,
    format_finding,
    format_summary,
    print_console_report,
)
from .json import generate_json_report, generate_json_summary
from .report import (
    REPORT_FORMATS,
    ScanSummary,
    generate_report,
    print_report,
    save_report,
    summarize,
)
from .sarif import generate_sarif_report

__all__ = [
    "REPORT_FORMATS",
    "ScanSummary",
    "summarize",
    "generate_report",
    "save_report",
    "print_report",
    "format_console_report",
    "print_console_report",
    "format_finding",
    "format_summary",
    "generate_json_report",
    "generate_json_summary",
    "generate_sarif_report",
]
