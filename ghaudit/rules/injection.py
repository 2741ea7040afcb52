"""
injection.py - Rules for code injection through expressions and env files

Expressions such as ``${{ github.event.pull_request.title }}`` are expanded
by the runner before a shell or script interpreter sees the text, so any
attacker-controlled value inside them becomes code.
"""

import re
from typing import Optional

from ..core.cursor import Cursor
from ..core.facts import DocumentFacts, collect_facts
from ..core.model import Document, Mapping, scalar_text
from ..core.traversal import iter_scalars
from ..utils.action_ref import action_name
from .base import Rule, entry_of

DANGEROUS_CONTEXTS = (
    "github.event.pull_request.title",
    "github.event.pull_request.body",
    "github.event.pull_request.head.ref",
    "github.event.pull_request.head.label",
    "github.event.pull_request.head.repo.default_branch",
    "github.event.pull_request.base.ref",
    "github.event.issue.title",
    "github.event.issue.body",
    "github.event.comment.body",
    "github.event.review.body",
    "github.event.pages[0].page_name",
    "github.event.commits[0].message",
    "github.event.head_commit.message",
    "github.event.commits[0].author.name",
    "github.event.commits[0].author.email",
    "github.head_ref",
)

CODE_INJECTION_ACTIONS = (
    "actions/github-script",
    "amadevus/pwsh-script",
    "jannekem/run-python-script-action",
    "cardinalby/js-eval-action",
)

EXPRESSION_PATTERN = re.compile(r"\$\{\{([^}]+)\}\}")
STEPS_OUTPUT_PATTERN = re.compile(r"steps\.[^.]+\.outputs\.[^\s}]+")

COMPLEX_EXPRESSION = "complex expression"


def find_vulnerable_input(text: str) -> Optional[str]:
    """
    Find the first user-controllable value expanded inside ``text``

    Args:
        text: Script or command text

    Returns:
        The matching context path, a ``steps.*.outputs.*`` reference,
        ``COMPLEX_EXPRESSION`` for function calls over dangerous contexts,
        or None
    """
    for match in EXPRESSION_PATTERN.finditer(text):
        expression = match.group(1).strip()
        dangerous = [context for context in DANGEROUS_CONTEXTS if context in expression]

        if dangerous and "(" in expression and ")" in expression:
            return COMPLEX_EXPRESSION
        if dangerous:
            return dangerous[0]

        steps_output = STEPS_OUTPUT_PATTERN.search(expression)
        if steps_output:
            return steps_output.group(0)

    return None


def _describe(vulnerable: str) -> str:
    if vulnerable == COMPLEX_EXPRESSION:
        return "User-controlled input in complex expression"
    return f"User-controlled input '{vulnerable}'"


class TemplateInjectionRule(Rule):
    """Flags user-controlled expressions expanded into scripts and commands"""

    keys = frozenset({"run", "uses", "script"})

    def __init__(self) -> None:
        super().__init__(
            rule_id="template_injection",
            severity="CRITICAL",
            description="Detects user-controlled expressions expanded into run commands and scripts",
            remediation=(
                "Pass the value through an environment variable (env: TITLE: ${{ ... }}) "
                "and reference it as \"$TITLE\" instead of expanding it inline"
            ),
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        key = cursor.key
        if key == "run" and cursor.is_step_key():
            return self._check_run(cursor)
        if key == "uses" and cursor.is_step_key():
            return self._check_uses(cursor)
        if key == "script":
            with_entry = cursor.parent_entry()
            if with_entry is not None and with_entry.key == "with" and with_entry.is_step_key():
                return self._check_script(cursor)
        return None

    def _check_run(self, cursor: Cursor) -> Optional[str]:
        command = scalar_text(entry_of(cursor).value)
        vulnerable = find_vulnerable_input(command) if command else None
        if vulnerable is None:
            return None
        return (
            f"Potential template injection vulnerability. {_describe(vulnerable)} "
            "used in run command without proper escaping."
        )

    def _check_script(self, cursor: Cursor) -> Optional[str]:
        script = scalar_text(entry_of(cursor).value)
        vulnerable = find_vulnerable_input(script) if script else None
        if vulnerable is None:
            return None
        return (
            f"Potential code injection in script. {_describe(vulnerable)} "
            "used in script without proper escaping."
        )

    def _check_uses(self, cursor: Cursor) -> Optional[str]:
        uses = scalar_text(entry_of(cursor).value)
        if uses is None or action_name(uses) not in CODE_INJECTION_ACTIONS:
            return None

        step = cursor.parent_value
        inputs = step.get("with") if isinstance(step, Mapping) else None
        if inputs is None:
            return None

        for scalar in iter_scalars(inputs):
            if find_vulnerable_input(scalar.value):
                return (
                    "Potential code injection in script input. "
                    "User-controlled content in script execution context."
                )
        return None


GITHUB_ENV_WRITE_PATTERN = re.compile(
    r"(?i)(>>?\s*[\"']?\$\{?GITHUB_ENV\}?[\"']?"
    r"|>>?\s*[\"']?%GITHUB_ENV%[\"']?"
    r"|>>?\s*[\"']?\$env:GITHUB_ENV[\"']?"
    r"|Out-File.*\$env:GITHUB_ENV"
    r"|Add-Content.*\$env:GITHUB_ENV"
    r"|Set-Content.*\$env:GITHUB_ENV"
    r"|Tee-Object.*\$env:GITHUB_ENV"
    r"|\|\s*tee\s+[\"']?\$\{?GITHUB_ENV\}?[\"']?)"
    r"|GITHUB_PATH"
)

STATIC_ECHO_PATTERN = re.compile(r"^\s*echo\s+[\"']?[^$`]*[\"']?\s*>>", re.MULTILINE)


def writes_environment_file(command: str) -> bool:
    """True if a run script writes to GITHUB_ENV or GITHUB_PATH with dynamic content"""
    if not GITHUB_ENV_WRITE_PATTERN.search(command):
        return False
    return not _is_static_echo(command)


def _is_static_echo(command: str) -> bool:
    return (
        STATIC_ECHO_PATTERN.search(command) is not None
        and "$" not in command
        and "`" not in command
    )


def _environment_file(command: str) -> str:
    upper = command.upper()
    if "GITHUB_ENV" in upper:
        return "GITHUB_ENV"
    if "GITHUB_PATH" in upper:
        return "GITHUB_PATH"
    return "environment file"


class GitHubEnvRule(Rule):
    """Flags writes to GITHUB_ENV / GITHUB_PATH in workflows with dangerous triggers"""

    keys = frozenset({"run"})

    def __init__(self) -> None:
        super().__init__(
            rule_id="github_env",
            severity="HIGH",
            description=(
                "Detects writes to GITHUB_ENV or GITHUB_PATH in workflows triggered by "
                "pull_request_target or workflow_run"
            ),
            remediation=(
                "Avoid writing untrusted data to environment files; use step outputs "
                "and validate values before use"
            ),
        )

    def prepare(self, document: Document) -> Optional[DocumentFacts]:
        return collect_facts(document)

    def is_active(self, facts: Optional[DocumentFacts]) -> bool:
        return facts is not None and facts.dangerous_trigger is not None

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        command = scalar_text(entry_of(cursor).value)
        if not command or not writes_environment_file(command):
            return None
        return (
            f"Write to {_environment_file(command)} may allow code execution in a workflow "
            "with dangerous triggers. This can lead to code injection when the written "
            "content includes user-controlled data. Ensure any dynamic content is properly "
            "sanitized or avoid writing to environment files in workflows triggered by "
            "untrusted events."
        )
