"""
supply_chain.py - Rules about the third-party code a workflow pulls in

Actions and container images referenced by mutable tags can change under a
workflow without any edit to the workflow itself. These rules look at
``uses:`` and ``image:`` references, the comments next to them and the
caching behaviour of actions in release workflows.
"""

import re
from typing import Dict, List, Optional

from ..core.cursor import Cursor
from ..core.facts import DocumentFacts, collect_facts
from ..core.model import Document, SequenceEntry, scalar_text
from ..core.scope import Scope
from ..utils.action_ref import DOCKER_PREFIX, parse_action_ref
from .base import Rule, entry_of


class UnpinnedActionsRule(Rule):
    """Flags step actions that are not pinned to a commit SHA"""

    keys = frozenset({"uses"})
    scope = Scope.WORKFLOW_SHAPE

    def __init__(self) -> None:
        super().__init__(
            rule_id="unpinned_actions",
            severity="MEDIUM",
            description="Detects GitHub Actions steps that are not pinned to a commit SHA",
            remediation=(
                "Pin the action to a full 40 character commit SHA and keep the tag in a "
                "comment, e.g. 'uses: actions/checkout@<sha> # v4.1.1'"
            ),
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        if not cursor.within("steps"):
            return None
        uses = scalar_text(entry_of(cursor).value)
        if not uses:
            return None

        ref = parse_action_ref(uses)
        if not ref.is_repository or ref.is_pinned:
            return None
        return (
            f"Action '{ref.raw}' is not pinned to a commit SHA. Consider pinning to a "
            "specific commit for security and reproducibility."
        )


DIGEST_PATTERN = re.compile(r"^sha256:[a-f0-9]{64}$")


class UnpinnedDockerImagesRule(Rule):
    """Flags container images referenced without a digest"""

    keys = frozenset({"image"})

    def __init__(self) -> None:
        super().__init__(
            rule_id="unpinned_docker_images",
            severity="MEDIUM",
            description="Detects container images that are not pinned to a sha256 digest",
            remediation="Reference the image by digest, e.g. 'image: alpine@sha256:<digest>'",
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        image = scalar_text(entry_of(cursor).value)
        if not image:
            return None

        reference = image.strip()
        if reference.startswith(DOCKER_PREFIX):
            reference = reference[len(DOCKER_PREFIX) :]

        if "@" in reference and DIGEST_PATTERN.match(reference.split("@", 1)[1]):
            return None
        return (
            f"Docker image '{image}' is not pinned to a digest. Consider pinning to a "
            "specific digest for security and reproducibility."
        )


KNOWN_DANGEROUS_ACTIONS = frozenset(
    {
        "actions/checkout@v1",
        "actions/checkout@v2",
        "actions/setup-node@v1",
        "actions/setup-node@v2",
        "actions/cache@v1",
        "actions/cache@v2",
    }
)

SUSPICIOUS_PATTERNS = frozenset(
    {
        "run",
        "exec",
        "eval",
        "malicious-org/",
        "download-and-run",
        "execute-script",
    }
)


class ForbiddenUsesRule(Rule):
    """
    Flags vulnerable, suspicious or oddly owned actions

    Accepts two options, merged into the built-in lists:

    - ``additional_dangerous_actions``: exact ``owner/repo@ref`` values
    - ``additional_suspicious_patterns``: case-insensitive substrings
    """

    keys = frozenset({"uses"})

    def __init__(self) -> None:
        super().__init__(
            rule_id="forbidden_uses",
            severity="HIGH",
            description="Detects known-vulnerable, suspicious, or unusually owned actions",
            remediation="Upgrade to a maintained release or replace the action with a trusted one",
        )
        self.dangerous_actions = set(KNOWN_DANGEROUS_ACTIONS)
        self.suspicious_patterns = set(SUSPICIOUS_PATTERNS)

    def configure(self, options: Dict[str, List[str]]) -> None:
        super().configure(options)
        self.dangerous_actions = KNOWN_DANGEROUS_ACTIONS | set(
            options.get("additional_dangerous_actions", [])
        )
        self.suspicious_patterns = SUSPICIOUS_PATTERNS | set(
            options.get("additional_suspicious_patterns", [])
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        uses = scalar_text(entry_of(cursor).value)
        if not uses:
            return None

        ref = parse_action_ref(uses)
        if not ref.is_repository:
            return None

        if ref.raw in self.dangerous_actions:
            return (
                f"Action '{ref.raw}' is known to have security vulnerabilities. Consider "
                "upgrading to a more recent version or using an alternative."
            )

        pattern = self._suspicious_pattern(ref.raw)
        if pattern is not None:
            return (
                f"Action '{ref.raw}' contains suspicious pattern '{pattern}'. Review this "
                "action carefully for potential security risks."
            )

        owner = ref.owner
        if owner is not None and len(owner) == 1 and not ref.raw.startswith("actions/"):
            return (
                f"Action '{ref.raw}' is from a single-character organization '{owner}' which "
                "may be suspicious. Verify the action's authenticity."
            )

        return None

    def _suspicious_pattern(self, uses: str) -> Optional[str]:
        lowered = uses.lower()
        matches = [p for p in self.suspicious_patterns if p.lower() in lowered]
        if not matches:
            return None
        # Longest match wins.
        return sorted(matches, key=lambda p: (-len(p), p))[0]


VERSION_COMMENT_PATTERNS = [
    re.compile(r"#\s*tag\s*=\s*(v?\d+(?:\.\d+)*(?:\.\d+)?)"),
    re.compile(r"#\s*(v?\d+(?:\.\d+)*(?:\.\d+)?)\s*$"),
    re.compile(r"#\s*(?:version|ver)\s*[:=]\s*(v?\d+(?:\.\d+)*(?:\.\d+)?)"),
    re.compile(r"#\s*tag\s*=\s*([vV]?\d+)"),
]


def has_version_comment(text: str) -> bool:
    return any(pattern.search(text) for pattern in VERSION_COMMENT_PATTERNS)


class RefVersionMismatchRule(Rule):
    """
    Flags SHA-pinned actions that carry a version comment

    The comment is not resolved against the SHA; any version-looking comment
    next to a pin is reported so that a human can confirm it.
    """

    keys = frozenset({"uses"})

    def __init__(self) -> None:
        super().__init__(
            rule_id="ref_version_mismatch",
            severity="LOW",
            description="Detects SHA-pinned actions whose version comment may not match the pin",
            remediation="Check that the version in the comment resolves to the pinned commit",
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        uses = scalar_text(entry_of(cursor).value)
        if not uses:
            return None

        ref = parse_action_ref(uses)
        if not ref.is_repository or not ref.is_pinned:
            return None

        prefixes = [entry_of(cursor).prefix]
        for ancestor in cursor.ancestors():
            if isinstance(ancestor.value, SequenceEntry):
                prefixes.append(ancestor.value.prefix)

        if not any(has_version_comment(prefix) for prefix in prefixes):
            return None
        return (
            "Action is pinned to a commit SHA but has a version comment that may not match. "
            "Verify the comment reflects the actual pinned version."
        )


OBFUSCATED_EXPRESSION_PATTERN = re.compile(r"\$\{\{[^}]*['\"]}|['\"]{2,}|\{\{[^}]*\$")


def has_obfuscated_path(uses: str) -> bool:
    """True if the action path contains empty, ``.`` or ``..`` components"""
    if "@" not in uses:
        return False
    path = uses.split("@", 1)[0]
    if "//" in path:
        return True
    return any(component in (".", "..") for component in path.split("/"))


class ObfuscationRule(Rule):
    """Flags action references and scripts written to hide what they run"""

    keys = frozenset({"uses", "run"})

    def __init__(self) -> None:
        super().__init__(
            rule_id="obfuscation",
            severity="MEDIUM",
            description="Detects obfuscated action paths and expressions",
            remediation="Write action references and expressions in their plain, canonical form",
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        text = scalar_text(entry_of(cursor).value)
        if text is None:
            return None

        if cursor.key == "uses":
            ref = parse_action_ref(text)
            if ref.is_repository and has_obfuscated_path(ref.raw):
                return (
                    "Action reference contains obfuscated path components that may hide "
                    "the actual action being used."
                )
            return None

        if OBFUSCATED_EXPRESSION_PATTERN.search(text):
            return (
                "Contains potentially obfuscated GitHub Actions expressions that may be "
                "attempting to hide malicious code."
            )
        return None


CACHE_AWARE_ACTIONS = frozenset(
    {
        "actions/cache",
        "actions/setup-java",
        "actions/setup-go",
        "actions/setup-node",
        "actions/setup-python",
        "actions/setup-dotnet",
        "astral-sh/setup-uv",
        "Swatinem/rust-cache",
        "ruby/setup-ruby",
        "PyO3/maturin-action",
        "mlugg/setup-zig",
        "oven-sh/setup-bun",
        "DeterminateSystems/magic-nix-cache-action",
        "graalvm/setup-graalvm",
        "gradle/actions/setup-gradle",
        "docker/setup-buildx-action",
        "actions-rust-lang/setup-rust-toolchain",
        "Mozilla-Actions/sccache-action",
        "nix-community/cache-nix-action",
        "jdx/mise-action",
    }
)


class CachePoisoningRule(Rule):
    """Flags caching actions in workflows that publish artifacts"""

    keys = frozenset({"uses"})
    scope = Scope.WORKFLOW_SHAPE

    def __init__(self) -> None:
        super().__init__(
            rule_id="cache_poisoning",
            severity="HIGH",
            description="Detects cache-aware actions in workflows that publish release artifacts",
            remediation=(
                "Disable caching in release workflows (e.g. 'cache: false' on setup-* actions) "
                "or restore caches read-only"
            ),
        )

    def prepare(self, document: Document) -> Optional[DocumentFacts]:
        return collect_facts(document)

    def is_active(self, facts: Optional[DocumentFacts]) -> bool:
        return facts is not None and facts.is_publishing

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        uses = scalar_text(entry_of(cursor).value)
        if not uses:
            return None

        name = parse_action_ref(uses).name
        if name not in CACHE_AWARE_ACTIONS:
            return None
        return (
            f"Action '{name}' uses caching in a workflow that publishes artifacts. This could "
            "lead to cache poisoning where malicious content gets cached and included in "
            "published artifacts. Consider disabling caching for this step or using "
            "read-only cache mode."
        )

