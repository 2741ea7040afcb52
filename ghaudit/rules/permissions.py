"""
permissions.py - Rules about privileges granted to jobs

Covers the GITHUB_TOKEN permission block, secrets handed to reusable
workflows, the runners a job executes on and the legacy insecure
workflow commands switch.
"""

from typing import List, Optional

from ..core.cursor import Cursor
from ..core.facts import DocumentFacts
from ..core.model import Block, Mapping, Scalar, Sequence, scalar_items, scalar_text
from ..core.scope import Scope
from .base import Rule, entry_of

HIGH_RISK_PERMISSIONS = frozenset(
    {
        "actions",
        "attestations",
        "contents",
        "deployments",
        "id-token",
        "issues",
        "packages",
        "pages",
        "pull-requests",
    }
)

MEDIUM_RISK_PERMISSIONS = frozenset(
    {
        "checks",
        "discussions",
        "repository-projects",
        "security-events",
    }
)


class ExcessivePermissionsRule(Rule):
    """Flags blanket permissions and risky write scopes"""

    keys = frozenset({"permissions"})

    def __init__(self) -> None:
        super().__init__(
            rule_id="excessive_permissions",
            severity="MEDIUM",
            description="Detects overly broad GITHUB_TOKEN permissions",
            remediation=(
                "Grant only the scopes each job needs, e.g. 'permissions: {contents: read}', "
                "and add write scopes per job"
            ),
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        value = entry_of(cursor).value

        if isinstance(value, Scalar):
            if value.value == "write-all":
                return (
                    "Uses 'write-all' permissions which grants excessive access. "
                    "Consider using specific permissions instead."
                )
            if value.value == "read-all":
                return (
                    "Uses 'read-all' permissions. Consider using specific permissions "
                    "if only certain resources need to be accessed."
                )
            return None

        if isinstance(value, Mapping):
            issues = _risky_write_scopes(value)
            if issues:
                return (
                    "Contains potentially excessive write permissions: "
                    f"{', '.join(issues)}. Consider whether these permissions are necessary "
                    "and if they can be scoped more narrowly."
                )

        return None


def _risky_write_scopes(permissions: Mapping) -> List[str]:
    issues = []
    for entry in permissions.entries:
        name = entry.key.value
        if scalar_text(entry.value) != "write":
            continue
        if name in HIGH_RISK_PERMISSIONS:
            issues.append(f"{name}: write (high risk)")
        elif name in MEDIUM_RISK_PERMISSIONS:
            issues.append(f"{name}: write (medium risk)")
    return issues


class SecretsInheritRule(Rule):
    """Flags reusable workflow calls that pass every secret"""

    keys = frozenset({"secrets"})
    scope = Scope.WORKFLOW_SHAPE

    def __init__(self) -> None:
        super().__init__(
            rule_id="secrets_inherit",
            severity="MEDIUM",
            description="Detects reusable workflow calls using 'secrets: inherit'",
            remediation="List the secrets the called workflow needs under 'secrets:' explicitly",
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        if scalar_text(entry_of(cursor).value) != "inherit":
            return None
        return (
            "This reusable workflow unconditionally inherits all parent secrets. Consider "
            "explicitly passing only the required secrets to follow the principle of least "
            "privilege and reduce the risk of secret exposure to called workflows."
        )


SELF_HOSTED = "self-hosted"

_SELF_HOSTED_MESSAGE = (
    "Uses self-hosted runner which may have security implications in public repositories. "
    "Ensure runners are ephemeral and properly isolated."
)


class SelfHostedRunnerRule(Rule):
    """Flags jobs running on self-hosted runners"""

    keys = frozenset({"runs-on"})

    def __init__(self) -> None:
        super().__init__(
            rule_id="self_hosted_runner",
            severity="MEDIUM",
            description="Detects jobs that run on self-hosted runners",
            remediation=(
                "Use GitHub-hosted runners for untrusted code, or ephemeral, isolated "
                "self-hosted runners"
            ),
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        if not cursor.within("jobs"):
            return None
        value = entry_of(cursor).value

        if isinstance(value, Sequence):
            labels = list(value.blocks())
            if labels and scalar_text(labels[0]) == SELF_HOSTED:
                return _SELF_HOSTED_MESSAGE
            return None

        label = scalar_text(value)
        if label == SELF_HOSTED:
            return _SELF_HOSTED_MESSAGE
        if label and "${{" in label and "matrix." in label and _matrix_has_self_hosted(cursor):
            return (
                "Expression may expand to self-hosted runner. Verify that self-hosted "
                "runners are properly secured."
            )
        return None


def _matrix_has_self_hosted(cursor: Cursor) -> bool:
    job = cursor.enclosing_mapping("strategy")
    strategy = job.get("strategy") if job is not None else None
    if not isinstance(strategy, Mapping):
        return False
    matrix = strategy.get("matrix")
    if not isinstance(matrix, Mapping):
        return False
    return any(SELF_HOSTED in scalar_items(entry.value) for entry in matrix.entries)


INSECURE_COMMANDS_VAR = "ACTIONS_ALLOW_UNSECURE_COMMANDS"

TRUTHY_VALUES = frozenset({"true", "1", "yes", "on"})


def _is_truthy(value: Optional[Block]) -> bool:
    text = scalar_text(value)
    return text is not None and text.strip().lower() in TRUTHY_VALUES


class InsecureCommandsRule(Rule):
    """Flags re-enabling of the deprecated set-env / add-path commands"""

    keys = frozenset({INSECURE_COMMANDS_VAR})

    def __init__(self) -> None:
        super().__init__(
            rule_id="insecure_commands",
            severity="HIGH",
            description="Detects ACTIONS_ALLOW_UNSECURE_COMMANDS enabling insecure workflow commands",
            remediation=(
                "Remove ACTIONS_ALLOW_UNSECURE_COMMANDS and use environment files "
                "($GITHUB_ENV, $GITHUB_PATH) instead"
            ),
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        if not _is_truthy(entry_of(cursor).value):
            return None
        return (
            "Insecure commands are enabled via ACTIONS_ALLOW_UNSECURE_COMMANDS. This allows "
            "dangerous workflow commands that can lead to code injection. Remove this "
            "environment variable to disable insecure commands."
        )
