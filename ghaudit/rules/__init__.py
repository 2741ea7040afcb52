"""
rules package for ghaudit - GitHub Actions workflow auditor

This package contains the security rules and the rule engine that runs them
over parsed workflow documents.
"""

from .base import Rule, entry_of
from .best_practices import AnonymousJobsRule, MissingTimeoutRule
from .credentials import ArtifactSecurityRule, HardcodedCredentialsRule, TrustedPublishingRule
from .engine import RuleEngine, create_rule_engine
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

__all__ = [
    # Base class
    "Rule",
    "entry_of",
    # Rule engine
    "RuleEngine",
    "create_rule_engine",
    # Security rules
    "ArtifactSecurityRule",
    "BotConditionsRule",
    "CachePoisoningRule",
    "DangerousTriggersRule",
    "ExcessivePermissionsRule",
    "ForbiddenUsesRule",
    "GitHubEnvRule",
    "HardcodedCredentialsRule",
    "InsecureCommandsRule",
    "ObfuscationRule",
    "RefVersionMismatchRule",
    "SecretsInheritRule",
    "SelfHostedRunnerRule",
    "TemplateInjectionRule",
    "TrustedPublishingRule",
    "UnpinnedActionsRule",
    "UnpinnedDockerImagesRule",
    # Best practice rules
    "AnonymousJobsRule",
    "MissingTimeoutRule",
]
