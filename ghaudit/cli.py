"""
cli.py - Command-line interface for ghaudit

This module provides the command-line interface for the ghaudit tool,
allowing users to audit GitHub Actions workflows for security issues.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, cast

import click
import yaml

from .core.config import ConfigurationError, disable_rules, generate_default_config, load_config
from .core.scanner import SEVERITY_LEVELS, Finding, scan_file, scan_repository
from .core.scope import looks_like_workflow
from .reports import REPORT_FORMATS, print_report, save_report, summarize
from .rules import create_rule_engine
from .utils.version import __version__
from .utils.yaml_handler import find_github_workflow_files, load_documents

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_config_or_exit(config: Optional[str]) -> Dict[str, Any]:
    try:
        return load_config(config)
    except ConfigurationError as e:
        click.echo(f"Error loading config file: {e}", err=True)
        sys.exit(1)


def _prepare_scan(
    repo_path: str,
    config: Optional[str],
    severity_threshold: str,
    *,
    disable: Tuple[str, ...] = (),
    echo: bool = True,
) -> Tuple[List[Finding], Dict[str, Any], Dict[str, Any]]:
    """Load config, discover workflow files, and perform a scan.

    Args:
        repo_path: Path to the repository root or a specific workflow file.
        config: Optional path to a YAML config file.
        severity_threshold: Minimum severity level to report.
        disable: Rules to disable before scanning.
        echo: Print progress messages.

    Returns:
        A tuple of (findings, stats, config_data) where config_data is the
        configuration dictionary used for scanning.
    """
    config_data = _load_config_or_exit(config)

    if disable:
        try:
            config_data = disable_rules(config_data, list(disable))
        except ConfigurationError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    path = Path(repo_path)
    if path.is_file() and path.suffix in [".yml", ".yaml"]:
        if echo:
            click.echo(f"Scanning single workflow file: {path}")
        findings, stats = scan_file(str(path), config_data, severity_threshold)
    else:
        if echo:
            click.echo(f"Scanning repository: {path}")
        workflow_dir = path / ".github" / "workflows"
        files_to_scan = find_github_workflow_files(repo_path)
        if not files_to_scan:
            click.echo(f"No workflows found at {workflow_dir}", err=True)
            sys.exit(1)

        if echo:
            click.echo(f"Found {len(files_to_scan)} workflow file(s) to scan")

        findings, stats = scan_repository(
            repo_path=repo_path,
            config=config_data,
            severity_threshold=severity_threshold,
        )

    return findings, stats, config_data


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """ghaudit - GitHub Actions workflow auditor

    A static analyzer for GitHub Actions workflows.
    Detects misconfigurations and security vulnerabilities, and provides remediation advice.
    """


@cli.command()
@click.argument("repo_path", type=click.Path())
@click.option("--config", type=click.Path(), help="Path to YAML config file for rule settings")
@click.option("--disable", multiple=True, help="Disable specific rule(s)")
@click.option(
    "--output",
    type=click.Choice(REPORT_FORMATS),
    default="text",
    help="Output format for results",
)
@click.option(
    "--output-file",
    type=click.Path(),
    help="Write output to file instead of stdout",
)
@click.option(
    "--severity-threshold",
    type=click.Choice(SEVERITY_LEVELS),
    default="LOW",
    help="Minimum severity level to report",
)
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--verbose", is_flag=True, help="Show detailed information and debug logging")
def scan(
    repo_path: str,
    config: Optional[str],
    disable: Tuple[str, ...],
    output: str,
    output_file: Optional[str],
    severity_threshold: str,
    no_color: bool,
    verbose: bool,
) -> None:
    """Audit GitHub Actions workflows for security issues

    REPO_PATH: Path to the repository root or specific workflow file
    """
    _configure_logging(verbose)
    logger.debug("Scanning %s (output=%s, threshold=%s)", repo_path, output, severity_threshold)

    findings, stats, config_data = _prepare_scan(
        repo_path,
        config,
        severity_threshold,
        disable=disable,
        echo=output == "text" and not output_file,
    )

    summary = summarize(stats)
    report_config = config_data.get("report", {})
    verbose = verbose or bool(report_config.get("verbose"))
    show_remediation = bool(report_config.get("include_remediation", True))
    show_context = bool(report_config.get("show_context", True))
    show_summary = bool(report_config.get("summary", True))

    if output_file:
        save_report(
            findings,
            stats,
            output_path=output_file,
            format=output,
            repo_path=repo_path,
            verbose=verbose,
            show_remediation=show_remediation,
            show_context=show_context,
            show_summary=show_summary,
        )
        click.echo(f"Results written to {output_file}")

        counts = ", ".join(f"{level}: {count}" for level, count in summary.severity_counts.items())
        click.echo(f"Scan complete: {summary.total_findings} issues found ({counts})")
    else:
        print_report(
            findings,
            stats,
            format=output,
            repo_path=repo_path,
            verbose=verbose,
            show_remediation=show_remediation,
            show_context=show_context,
            show_summary=show_summary,
            color=not no_color and bool(report_config.get("color_output", True)),
        )

    threshold_index = SEVERITY_LEVELS.index(severity_threshold)
    severe_findings = sum(summary.severity_counts[lvl] for lvl in SEVERITY_LEVELS[threshold_index:])

    if severe_findings > 0:
        sys.exit(1)


@cli.command()
@click.option("--config", type=click.Path(exists=True), help="Path to YAML config file to validate")
@click.option("--generate", is_flag=True, help="Generate a default config file")
@click.option("--output", type=click.Path(), help="Output path for generated config")
def config(config: Optional[str], generate: bool, output: Optional[str]) -> None:
    """View or validate current config"""
    if generate:
        try:
            config_str = generate_default_config(output_path=output)
        except ConfigurationError as e:
            click.echo(f"❌ {e}", err=True)
            sys.exit(1)

        if output:
            click.echo(f"Default config written to {output}")
        else:
            click.echo(config_str)
        return

    try:
        config_data = load_config(config)
    except ConfigurationError as e:
        click.echo(f"❌ Config validation failed: {e}", err=True)
        sys.exit(1)

    click.echo("✅ Config loaded and valid.")

    rule_engine = create_rule_engine(config_data)
    for rule_info in rule_engine.list_rules():
        click.echo(
            f" - {rule_info['id']}: "
            f"{'enabled' if rule_info['enabled'] else 'disabled'} "
            f"[{rule_info['severity']}]"
        )


@cli.command()
@click.option(
    "--format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
def rules(format: str) -> None:
    """List all available rules and what they do"""

    rule_engine = create_rule_engine()
    rules_list = rule_engine.list_rules()

    if format == "json":
        click.echo(json.dumps(rules_list, indent=2))
        return

    click.echo("🔍 ghaudit supports the following rules:")

    by_category: Dict[str, List[Dict[str, Any]]] = {}
    for rule in rules_list:
        category = cast(str, rule.get("category", "other"))
        by_category.setdefault(category, []).append(rule)

    severity_colors = {
        "LOW": "blue",
        "MEDIUM": "yellow",
        "HIGH": "red",
        "CRITICAL": "bright_red",
    }

    for category, category_rules in by_category.items():
        click.echo(f"\n{category.upper()}:")

        for rule in sorted(category_rules, key=lambda r: r["id"]):
            enabled_text = "✅ enabled" if rule["enabled"] else "❌ disabled"
            severity_text = click.style(
                f"[{rule['severity']}]", fg=severity_colors.get(rule["severity"], "white")
            )

            click.echo(f" - {rule['id']}: {enabled_text} {severity_text}")
            click.echo(f"   {rule['description']}")


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
def analyze(file_path: str) -> None:
    """Analyze a single workflow file with detailed explanation"""
    try:
        documents = load_documents(file_path)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        click.echo(f"Error analyzing file: {e}", err=True)
        sys.exit(1)

    if not any(looks_like_workflow(document) for document in documents):
        click.echo(f"⚠️ The file {file_path} does not appear to be a GitHub Actions workflow")
        sys.exit(1)

    rule_engine = create_rule_engine()
    findings = rule_engine.scan_documents(documents, file_path)

    click.echo(f"Analysis of {file_path}:\n")

    if not findings:
        click.echo("✅ No issues found!")
        return

    by_severity: Dict[str, List[Finding]] = {}
    for finding in findings:
        by_severity.setdefault(finding.severity, []).append(finding)

    for severity in reversed(SEVERITY_LEVELS):
        if severity not in by_severity:
            continue
        severity_findings = by_severity[severity]
        click.echo(f"{severity} issues ({len(severity_findings)}):")

        for finding in severity_findings:
            click.echo(f"  - {finding.message}")
            click.echo(f"    Rule: {finding.rule_id} (line {finding.line_number})")
            if finding.remediation:
                click.echo(f"    Remediation: {finding.remediation}")
        click.echo("")


if __name__ == "__main__":
    cli()
