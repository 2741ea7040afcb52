"""
credentials.py - Rules about how workflows handle credentials

Covers tokens left behind by ``actions/checkout`` and uploaded as
artifacts, passwords written directly into a workflow, and publishing
steps that use long-lived credentials where OIDC trusted publishing is
available.
"""

import re
from typing import Optional

from ..core.cursor import Cursor
from ..core.facts import DocumentFacts
from ..core.model import Mapping, scalar_text
from ..core.traversal import find_entries
from .base import Rule, entry_of

CHECKOUT_ACTION = "actions/checkout"
UPLOAD_ARTIFACT_ACTION = "actions/upload-artifact"

DANGEROUS_PATHS = frozenset(
    {
        "~/.ssh/", "~/.ssh", ".ssh/", ".ssh",
        "~/.aws/", "~/.aws", ".aws/", ".aws",
        "~/.docker/", "~/.docker", ".docker/", ".docker",
        "~/.kube/", "~/.kube", ".kube/", ".kube",
        "~/.config/", "~/.config",
        "~/.gitconfig", ".gitconfig",
        "~/.npmrc", ".npmrc",
        "~/.pypirc", ".pypirc",
        "/etc/passwd", "/etc/shadow", "/etc/hosts",
        "/var/log/", "/var/log",
        "/tmp/", "/tmp",
        "/root/", "/root",
        "~/.bash_history", ".bash_history",
        "~/.zsh_history", ".zsh_history",
        "/home/", "/home",
    }
)

DANGEROUS_PATTERNS = ("config.json", "credentials", "token", "secret", "key", "password", "passwd")

WHOLE_TREE_PATHS = (".", "~", "/")


def is_dangerous_artifact_path(path: str) -> bool:
    """True if an upload path may sweep up credentials or configuration"""
    if any(dangerous in path for dangerous in DANGEROUS_PATHS):
        return True
    lowered = path.lower()
    if any(pattern in lowered for pattern in DANGEROUS_PATTERNS):
        return True
    return path.strip() in WHOLE_TREE_PATHS


def _step_inputs(step: Optional[Mapping]) -> Optional[Mapping]:
    inputs = step.get("with") if step is not None else None
    return inputs if isinstance(inputs, Mapping) else None


class ArtifactSecurityRule(Rule):
    """Flags credentials that can end up inside uploaded artifacts"""

    keys = frozenset({"uses"})

    def __init__(self) -> None:
        super().__init__(
            rule_id="artifact_security",
            severity="HIGH",
            description=(
                "Detects checkout credentials persisted into a workspace that is uploaded "
                "as an artifact, and uploads of credential-bearing paths"
            ),
            remediation=(
                "Set 'persist-credentials: false' on actions/checkout and upload only the "
                "build outputs you need"
            ),
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        if not cursor.is_step_key():
            return None
        uses = scalar_text(entry_of(cursor).value)
        if not uses:
            return None

        if uses.startswith(CHECKOUT_ACTION):
            return self._check_checkout(cursor)
        if uses.startswith(UPLOAD_ARTIFACT_ACTION):
            return self._check_upload(cursor)
        return None

    def _check_checkout(self, cursor: Cursor) -> Optional[str]:
        step = cursor.enclosing_mapping("uses")
        if step is None:
            return None

        inputs = _step_inputs(step)
        persist = inputs.scalar_value("persist-credentials") if inputs is not None else None
        if persist is not None and persist != "true":
            return None
        if not _uploads_artifact(cursor):
            return None

        if persist is None:
            return (
                "Checkout step does not disable credential persistence, which may expose "
                "credentials in artifacts."
            )
        return (
            "Checkout step explicitly enables credential persistence, which may expose "
            "credentials in artifacts."
        )

    def _check_upload(self, cursor: Cursor) -> Optional[str]:
        inputs = _step_inputs(cursor.enclosing_mapping("uses"))
        path = inputs.scalar_value("path") if inputs is not None else None
        if path is None or not is_dangerous_artifact_path(path):
            return None
        return (
            "Uploading potentially sensitive paths that may contain credentials or "
            "configuration files."
        )


def _uploads_artifact(cursor: Cursor) -> bool:
    document = cursor.document()
    if document is None:
        return False
    for uses in find_entries(document, "uses"):
        text = scalar_text(entry_of(uses).value)
        if text and text.startswith(UPLOAD_ARTIFACT_ACTION):
            return True
    return False


GITHUB_EXPRESSION_PATTERN = re.compile(r"\$\{\{.*?\}\}")


class HardcodedCredentialsRule(Rule):
    """Flags ``password:`` values that are not expressions"""

    keys = frozenset({"password"})

    def __init__(self) -> None:
        super().__init__(
            rule_id="hardcoded_credentials",
            severity="HIGH",
            description="Detects passwords written directly into workflow files",
            remediation="Store the value as a secret and reference it, e.g. ${{ secrets.REGISTRY_PASSWORD }}",
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        password = scalar_text(entry_of(cursor).value)
        if password is None or GITHUB_EXPRESSION_PATTERN.search(password):
            return None
        return (
            f"Container registry password '{password}' appears to be hardcoded. "
            "Use secrets (e.g., ${{ secrets.REGISTRY_PASSWORD }}) instead."
        )


KNOWN_PYTHON_TP_REGISTRIES = frozenset(
    {"https://upload.pypi.org/legacy/", "https://test.pypi.org/legacy/"}
)
KNOWN_RUBY_TP_REGISTRIES = frozenset({"https://rubygems.org"})
KNOWN_NPM_TP_REGISTRIES = frozenset({"https://registry.npmjs.org"})

PYPI_PUBLISH_ACTION = "pypa/gh-action-pypi-publish"
RELEASE_GEM_ACTION = "rubygems/release-gem"
RUBYGEMS_CREDENTIALS_ACTION = "rubygems/configure-rubygems-credentials"
SETUP_NODE_ACTION = "actions/setup-node"

PUBLISHING_ACTIONS = (
    PYPI_PUBLISH_ACTION,
    RELEASE_GEM_ACTION,
    RUBYGEMS_CREDENTIALS_ACTION,
    SETUP_NODE_ACTION,
)

MANUAL_PUBLISH_PATTERNS = [
    re.compile(r"twine\s+(.+\s+)?upload", re.DOTALL),
    re.compile(r"cargo\s+(.+\s+)?publish", re.DOTALL),
    re.compile(r"npm\s+(.+\s+)?publish", re.DOTALL),
    re.compile(r"yarn\s+(.+\s+)?npm\s+publish", re.DOTALL),
    re.compile(r"pnpm\s+(.+\s+)?publish", re.DOTALL),
    re.compile(r"gem\s+(.+\s+)?push", re.DOTALL),
    re.compile(r"uv\s+(.+\s+)?publish", re.DOTALL),
    re.compile(r"hatch\s+(.+\s+)?publish", re.DOTALL),
    re.compile(r"pdm\s+(.+\s+)?publish", re.DOTALL),
]

_MANUAL_CREDENTIALS_MESSAGE = (
    "Uses manual credentials instead of trusted publishing. Consider using OIDC trusted "
    "publishing for better security."
)


def uses_manual_credentials(uses: str, inputs: Mapping) -> bool:
    """
    Decide whether a publishing step authenticates with a stored credential

    Args:
        uses: The step's ``uses`` reference
        inputs: The step's ``with`` mapping

    Returns:
        True when the inputs combine a credential with a registry that
        supports trusted publishing
    """
    if uses.startswith(PYPI_PUBLISH_ACTION):
        registry = inputs.scalar_value("repository-url") or inputs.scalar_value("repository_url")
        return inputs.has_key("password") and registry in KNOWN_PYTHON_TP_REGISTRIES
    if uses.startswith(RELEASE_GEM_ACTION):
        return inputs.scalar_value("setup-trusted-publisher") == "false"
    if uses.startswith(RUBYGEMS_CREDENTIALS_ACTION):
        return (
            inputs.has_key("api-token")
            and inputs.scalar_value("gem-server") in KNOWN_RUBY_TP_REGISTRIES
        )
    if uses.startswith(SETUP_NODE_ACTION):
        return (
            inputs.scalar_value("registry-url") in KNOWN_NPM_TP_REGISTRIES
            and inputs.scalar_value("always-auth") == "true"
        )
    return False


def is_manual_credential_input(key: Optional[str], value: Optional[str]) -> bool:
    if value is None:
        return False
    if key in ("password", "api-token"):
        return True
    if key == "setup-trusted-publisher":
        return value == "false"
    if key == "always-auth":
        return value == "true"
    return False


class TrustedPublishingRule(Rule):
    """Flags publishing with long-lived credentials instead of OIDC"""

    def __init__(self) -> None:
        super().__init__(
            rule_id="trusted_publishing",
            severity="MEDIUM",
            description="Detects package publishing that uses manual credentials instead of trusted publishing",
            remediation=(
                "Configure trusted publishing on the registry, grant 'id-token: write' and "
                "drop the stored token"
            ),
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        key = cursor.key
        value = scalar_text(entry_of(cursor).value)

        if key == "uses":
            return self._check_uses(cursor, value)
        if key == "run":
            return self._check_run(value)
        if self._inside_publishing_inputs(cursor) and is_manual_credential_input(key, value):
            return "Manual credential used here"
        return None

    def _check_uses(self, cursor: Cursor, uses: Optional[str]) -> Optional[str]:
        if uses is None:
            return None
        inputs = _step_inputs(cursor.enclosing_mapping("uses"))
        if inputs is None or not uses_manual_credentials(uses, inputs):
            return None
        return _MANUAL_CREDENTIALS_MESSAGE

    def _check_run(self, command: Optional[str]) -> Optional[str]:
        if command is None:
            return None
        for pattern in MANUAL_PUBLISH_PATTERNS:
            if pattern.search(command):
                return (
                    "Manual publishing command detected. Consider using trusted publishing "
                    "actions instead."
                )
        return None

    def _inside_publishing_inputs(self, cursor: Cursor) -> bool:
        inputs = cursor.nearest_entry("with", include_self=False)
        if inputs is None:
            return False
        step = inputs.enclosing_mapping("uses")
        uses = step.scalar_value("uses") if step is not None else None
        return uses is not None and uses.startswith(PUBLISHING_ACTIONS)
