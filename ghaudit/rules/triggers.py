"""
triggers.py - Rules about what starts a workflow and who it trusts

These rules check the ``on:`` section and ``if:`` conditions. They apply to
any document shaped like a workflow, including reusable workflows stored
outside ``.github/workflows``.
"""

import re
from typing import Optional

from ..core.cursor import Cursor
from ..core.facts import DocumentFacts, first_dangerous_trigger
from ..core.model import scalar_text
from ..core.scope import Scope
from .base import Rule, entry_of

TRIGGER_MESSAGES = {
    "pull_request_target": (
        "The 'pull_request_target' trigger is almost always used insecurely. It runs with "
        "write permissions in the context of the target repository, potentially allowing "
        "code injection from pull requests. Consider using 'pull_request' instead, or "
        "implement proper isolation."
    ),
    "workflow_run": (
        "The 'workflow_run' trigger is almost always used insecurely. It can trigger "
        "workflows with sensitive permissions based on external events. Consider using "
        "more specific triggers with explicit safety checks."
    ),
}


class DangerousTriggersRule(Rule):
    """Flags workflows started by pull_request_target or workflow_run"""

    keys = frozenset({"on"})
    scope = Scope.WORKFLOW_SHAPE

    def __init__(self) -> None:
        super().__init__(
            rule_id="dangerous_triggers",
            severity="HIGH",
            description="Detects triggers that run untrusted code with repository privileges",
            remediation=(
                "Prefer 'pull_request' or 'push' triggers; if a privileged trigger is required, "
                "never check out or execute code from the triggering event"
            ),
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        trigger = first_dangerous_trigger(entry_of(cursor).value)
        if trigger is None:
            return None
        return TRIGGER_MESSAGES[trigger]


KNOWN_BOT_ACTOR_IDS = ("29110", "49699333", "27856297", "29139614")

SPOOFABLE_ACTOR_PATTERNS = [
    re.compile(r"github\.actor\s*==\s*['\"][^'\"]*\[bot\]['\"]"),
    re.compile(r"github\.triggering_actor\s*==\s*['\"][^'\"]*\[bot\]['\"]"),
    re.compile(r"github\.event\.pull_request\.sender\.login\s*==\s*['\"][^'\"]*\[bot\]['\"]"),
    re.compile(r"github\.actor\s*==\s*['\"]dependabot\[bot\]['\"]"),
    re.compile(r"github\.actor\s*==\s*['\"]renovate\[bot\]['\"]"),
    re.compile(r"github\.actor\s*==\s*['\"][^'\"]*bot[^'\"]*['\"]"),
]

CONTAINS_BOT_PATTERN = re.compile(r"contains\s*\(\s*github\.[^,]+,\s*['\"]bot['\"]\s*\)")

ACTOR_ID_STRING_PATTERN = re.compile(
    r"github\.(actor_id|event\.pull_request\.sender\.id)\s*==\s*['\"]\d+['\"]"
)


class BotConditionsRule(Rule):
    """Flags ``if:`` conditions that trust a bot by its spoofable name"""

    keys = frozenset({"if"})
    scope = Scope.WORKFLOW_SHAPE

    def __init__(self) -> None:
        super().__init__(
            rule_id="bot_conditions",
            severity="HIGH",
            description="Detects bot checks that compare actor names instead of actor IDs",
            remediation=(
                "Compare github.actor_id numerically against the bot's account ID, "
                "e.g. github.actor_id == 49699333"
            ),
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        condition = scalar_text(entry_of(cursor).value)
        if not condition:
            return None

        if any(pattern.search(condition) for pattern in SPOOFABLE_ACTOR_PATTERNS):
            return (
                "Bot actor name check is spoofable. Consider using actor_id instead "
                "for more secure bot validation."
            )

        if CONTAINS_BOT_PATTERN.search(condition):
            return (
                "Bot actor check using contains() is unreliable and spoofable. "
                "Use exact actor_id comparison instead."
            )

        if ACTOR_ID_STRING_PATTERN.search(condition) and _quotes_known_bot_id(condition):
            return (
                "Using string comparison for actor_id. Consider using numeric comparison "
                "for better reliability."
            )

        return None


def _quotes_known_bot_id(condition: str) -> bool:
    return any(
        f"'{actor_id}'" in condition or f'"{actor_id}"' in condition
        for actor_id in KNOWN_BOT_ACTOR_IDS
    )
