"""
engine.py - Rule engine for ghaudit

This module provides the core rule engine that manages and runs security rules.
Each document is walked once; at every mapping entry each active rule whose
``keys`` match is asked to check the entry. Findings are returned grouped by
rule in registration order, and in document order within a rule.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from ..core.facts import DocumentFacts
from ..core.model import Document
from ..core.scanner import SEVERITY_LEVELS, Finding, Severity
from ..core.traversal import iter_entries
from .base import Rule
from .best_practices import AnonymousJobsRule, MissingTimeoutRule
from .credentials import ArtifactSecurityRule, HardcodedCredentialsRule, TrustedPublishingRule
from .injection import GitHubEnvRule, TemplateInjectionRule
from .permissions import (
    ExcessivePermissionsRule,
    InsecureCommandsRule,
    SecretsInheritRule,
    SelfHostedRunnerRule,
)
from .supply_chain import (
    CachePoisoningRule,
    ForbiddenUsesRule,
    ObfuscationRule,
    RefVersionMismatchRule,
    UnpinnedActionsRule,
    UnpinnedDockerImagesRule,
)
from .triggers import BotConditionsRule, DangerousTriggersRule

logger = logging.getLogger(__name__)


def _severity_value(severity: Union[str, Severity]) -> str:
    return severity.value if isinstance(severity, Severity) else severity


class RuleEngine:
    """Engine for managing and running GitHub Actions security rules"""

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the rule engine

        Args:
            config: Configuration dictionary
        """
        self.config = config or {}
        self.rules: List[Rule] = []

        self._register_default_rules()

        self._apply_config()

    def _register_default_rules(self) -> None:
        """Register the default set of rules"""

        self.rules.append(AnonymousJobsRule())
        self.rules.append(ArtifactSecurityRule())
        self.rules.append(BotConditionsRule())
        self.rules.append(CachePoisoningRule())
        self.rules.append(DangerousTriggersRule())
        self.rules.append(ExcessivePermissionsRule())
        self.rules.append(ForbiddenUsesRule())
        self.rules.append(GitHubEnvRule())
        self.rules.append(HardcodedCredentialsRule())
        self.rules.append(InsecureCommandsRule())
        self.rules.append(ObfuscationRule())
        self.rules.append(RefVersionMismatchRule())
        self.rules.append(SecretsInheritRule())
        self.rules.append(SelfHostedRunnerRule())
        self.rules.append(TemplateInjectionRule())
        self.rules.append(TrustedPublishingRule())
        self.rules.append(UnpinnedActionsRule())
        self.rules.append(UnpinnedDockerImagesRule())

        self.rules.append(MissingTimeoutRule())

    def _apply_config(self) -> None:
        """Apply configuration to rules"""
        if not self.config:
            return

        severity_thresholds = self.config.get("severity_thresholds") or {}
        rule_options = self.config.get("rules") or {}

        for rule in self.rules:
            rule_id = rule.rule_id
            rule_id_with_check = f"check_{rule_id}"

            if rule_id in self.config:
                rule.enabled = bool(self.config[rule_id])
            elif rule_id_with_check in self.config:
                rule.enabled = bool(self.config[rule_id_with_check])

            if rule_id in severity_thresholds:
                value = severity_thresholds[rule_id]
            elif rule_id_with_check in severity_thresholds:
                value = severity_thresholds[rule_id_with_check]
            else:
                value = None

            if value is not None:
                rule.severity = _severity_value(value)

            options = rule_options.get(rule_id)
            if options:
                rule.configure(options)

    def register_rule(self, rule: Rule) -> None:
        """
        Register a custom rule

        Args:
            rule: Rule instance to register
        """
        self.rules.append(rule)

    def get_rule_by_id(self, rule_id: str) -> Optional[Rule]:
        """
        Get a rule by its ID

        Args:
            rule_id: Rule ID to look for

        Returns:
            Rule instance or None if not found
        """
        for rule in self.rules:
            if rule.rule_id == rule_id:
                return rule
        return None

    def list_rules(self) -> List[Dict[str, Any]]:
        """
        Get information about all registered rules

        Returns:
            List of rule information dictionaries
        """
        rule_info_list = []
        for rule in self.rules:
            rule_info_list.append(
                {
                    "id": rule.rule_id,
                    "enabled": rule.enabled,
                    "severity": _severity_value(rule.severity),
                    "description": rule.description,
                    "remediation": rule.remediation,
                    "category": rule.category,
                    "scope": rule.scope.value,
                }
            )

        return rule_info_list

    def enable_rule(self, rule_id: str) -> bool:
        """
        Enable a rule

        Args:
            rule_id: ID of the rule to enable

        Returns:
            True if rule was found and enabled, False otherwise
        """
        rule = self.get_rule_by_id(rule_id)
        if rule:
            rule.enabled = True
            return True
        return False

    def disable_rule(self, rule_id: str) -> bool:
        """
        Disable a rule

        Args:
            rule_id: ID of the rule to disable

        Returns:
            True if rule was found and disabled, False otherwise
        """
        rule = self.get_rule_by_id(rule_id)
        if rule:
            rule.enabled = False
            return True
        return False

    def _selected_rules(self, severity_threshold: Optional[Union[str, Severity]]) -> List[Rule]:
        normalized_threshold = (
            _severity_value(severity_threshold) if severity_threshold is not None else None
        )

        selected = []
        for rule in self.rules:
            if not rule.enabled:
                continue
            if normalized_threshold and (
                SEVERITY_LEVELS.index(_severity_value(rule.severity))
                < SEVERITY_LEVELS.index(normalized_threshold)
            ):
                continue
            selected.append(rule)
        return selected

    def _active_rules(
        self, rules: List[Rule], document: Document, file_path: Optional[str]
    ) -> List[Tuple[Rule, Optional[DocumentFacts]]]:
        active = []
        for rule in rules:
            if not rule.applies_to(document, file_path):
                logger.debug("Rule %s does not apply to %s", rule.rule_id, file_path)
                continue
            try:
                facts = rule.prepare(document)
            except Exception:
                logger.exception("Rule %s failed to prepare %s", rule.rule_id, file_path)
                continue
            if rule.is_active(facts):
                active.append((rule, facts))
        return active

    def scan_document(
        self,
        document: Document,
        file_path: str,
        severity_threshold: Optional[Union[str, Severity]] = None,
    ) -> List[Finding]:
        """
        Scan one parsed document with all enabled rules

        A rule that raises while checking an entry is logged and the scan
        continues with the next entry; its failure never becomes a finding.

        Args:
            document: Parsed workflow document
            file_path: Path to the workflow file, used for scope decisions
            severity_threshold: Minimum severity level to report

        Returns:
            List of findings
        """
        active = self._active_rules(self._selected_rules(severity_threshold), document, file_path)
        if not active:
            return []

        findings_by_rule: Dict[str, List[Finding]] = {rule.rule_id: [] for rule, _ in active}

        for cursor in iter_entries(document):
            entry = cursor.value
            for rule, facts in active:
                if not rule.matches(entry):
                    continue
                try:
                    message = rule.check(cursor, facts)
                except Exception:
                    logger.exception(
                        "Rule %s failed at %s:%d", rule.rule_id, file_path, entry.start.line
                    )
                    continue
                if message is None:
                    continue

                context = {"key": cursor.key}
                job_id = cursor.job_id()
                if job_id is not None:
                    context["job"] = job_id

                findings_by_rule[rule.rule_id].append(
                    rule.create_finding(
                        message=message,
                        file_path=file_path,
                        anchor=entry,
                        line_number=entry.start.line,
                        column=entry.start.column,
                        context=context,
                    )
                )

        findings: List[Finding] = []
        for rule_findings in findings_by_rule.values():
            findings.extend(rule_findings)
        return findings

    def scan_documents(
        self,
        documents: List[Document],
        file_path: str,
        severity_threshold: Optional[Union[str, Severity]] = None,
    ) -> List[Finding]:
        """
        Scan every document of a multi-document file

        Args:
            documents: Parsed documents in file order
            file_path: Path to the workflow file
            severity_threshold: Minimum severity level to report

        Returns:
            List of findings, document by document
        """
        findings: List[Finding] = []
        for document in documents:
            findings.extend(self.scan_document(document, file_path, severity_threshold))
        return findings


def create_rule_engine(config: Optional[Dict[str, Any]] = None) -> RuleEngine:
    """
    Create a rule engine with the specified configuration

    Args:
        config: Configuration dictionary

    Returns:
        Configured RuleEngine instance
    """
    return RuleEngine(config)
