"""
best_practices.py - Rules for workflow hygiene

These do not point at an exploitable weakness on their own but make
workflows harder to operate and review.
"""

from typing import Optional

from ..core.cursor import Cursor
from ..core.facts import DocumentFacts
from ..core.model import Mapping
from ..core.traversal import find_entries
from .base import Rule, entry_of


def _job_mapping(cursor: Cursor) -> Optional[Mapping]:
    """Return the job definition when the cursor is at a ``jobs.<id>`` entry"""
    if not cursor.is_direct_child_of("jobs"):
        return None
    job = entry_of(cursor).value
    return job if isinstance(job, Mapping) else None


class AnonymousJobsRule(Rule):
    """Flags jobs without a ``name``"""

    def __init__(self) -> None:
        super().__init__(
            rule_id="anonymous_jobs",
            severity="LOW",
            description="Detects jobs that have no descriptive name",
            remediation="Add a 'name:' to the job",
            category="best-practice",
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        job = _job_mapping(cursor)
        # Reusable workflow calls take their name from the called workflow
        if job is None or job.has_key("name") or job.has_key("uses"):
            return None
        return (
            "Job has no name. Add a descriptive name to make it easier to identify in "
            "workflow runs."
        )


class MissingTimeoutRule(Rule):
    """Flags jobs that can run until the platform limit"""

    def __init__(self) -> None:
        super().__init__(
            rule_id="missing_timeout",
            severity="LOW",
            description="Detects jobs without a timeout-minutes limit",
            remediation="Set 'timeout-minutes:' on the job or on each of its steps",
            category="best-practice",
        )

    def check(self, cursor: Cursor, facts: Optional[DocumentFacts]) -> Optional[str]:
        job = _job_mapping(cursor)
        if job is None or job.has_key("uses"):
            return None
        if next(find_entries(job, "timeout-minutes"), None) is not None:
            return None
        return (
            f"Job '{cursor.key}' has no timeout-minutes set. A hung job keeps running "
            "until the 6 hour default limit."
        )
