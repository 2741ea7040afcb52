"""
facts.py - Document-wide facts gathered before the per-entry pass

Some rules only make sense once something is known about the whole
workflow, for example whether it is triggered by an untrusted event or
whether it publishes release artifacts. ``collect_facts`` computes these
from scratch for one document. The engine calls it separately for every
rule that asks for facts, so nothing is shared between rules or documents.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..utils.action_ref import action_name
from .model import Block, Document, Mapping, Scalar, Sequence, scalar_items

DANGEROUS_TRIGGERS = ("pull_request_target", "workflow_run")

PUBLISHER_ACTIONS = frozenset(
    {
        "pypa/gh-action-pypi-publish",
        "rubygems/release-gem",
        "jreleaser/release-action",
        "goreleaser/goreleaser-action",
        "softprops/action-gh-release",
        "release-drafter/release-drafter",
        "googleapis/release-please-action",
        "docker/build-push-action",
        "redhat-actions/push-to-registry",
    }
)

RELEASE_BRANCH_PATTERN = re.compile(r".*release.*", re.IGNORECASE)


@dataclass(frozen=True)
class DocumentFacts:
    """Facts about one workflow document"""

    triggers: Tuple[str, ...] = ()
    dangerous_trigger: Optional[str] = None
    publishing_trigger: bool = False
    publisher_action: Optional[str] = None

    @property
    def is_publishing(self) -> bool:
        """True if the workflow releases or invokes a known publisher action"""
        return self.publishing_trigger or self.publisher_action is not None


def trigger_names(block: Optional[Block]) -> List[str]:
    """
    List the event names of an ``on:`` value

    ``on: push``, ``on: [push, pull_request]`` and ``on: {push: ...}`` are all
    accepted. Anything else yields an empty list.
    """
    if isinstance(block, Scalar):
        return [block.value]
    if isinstance(block, Sequence):
        return list(scalar_items(block))
    if isinstance(block, Mapping):
        return list(block.keys())
    return []


def first_dangerous_trigger(block: Optional[Block]) -> Optional[str]:
    for name in trigger_names(block):
        if name in DANGEROUS_TRIGGERS:
            return name
    return None


def _is_release_push(push: Optional[Block]) -> bool:
    """
    Decide from the first ``tags`` or ``branches`` filter of a push trigger

    Whichever of the two comes first settles it, so ``branches: [main]``
    followed by ``tags`` is not a release push.
    """
    if not isinstance(push, Mapping):
        return False
    for entry in push.entries:
        if entry.key.value == "tags":
            return True
        if entry.key.value == "branches":
            return any(
                RELEASE_BRANCH_PATTERN.fullmatch(branch) for branch in scalar_items(entry.value)
            )
    return False


def is_publishing_trigger(block: Optional[Block]) -> bool:
    """True for ``release`` events and pushes of tags or release branches"""
    if "release" in trigger_names(block):
        return True
    if isinstance(block, Mapping):
        return _is_release_push(block.get("push"))
    return False


def find_publisher_action(root: Optional[Block]) -> Optional[str]:
    """Return the first known publisher action used by a job step"""
    if not isinstance(root, Mapping):
        return None
    jobs = root.get("jobs")
    if not isinstance(jobs, Mapping):
        return None

    for job_entry in jobs.entries:
        job = job_entry.value
        if not isinstance(job, Mapping):
            continue
        steps = job.get("steps")
        if not isinstance(steps, Sequence):
            continue
        for step in steps.blocks():
            if not isinstance(step, Mapping):
                continue
            uses = step.scalar_value("uses")
            if uses is not None and action_name(uses) in PUBLISHER_ACTIONS:
                return action_name(uses)

    return None


def collect_facts(document: Document) -> DocumentFacts:
    """
    Compute the document-wide facts of one workflow

    Args:
        document: Parsed workflow document

    Returns:
        A fresh DocumentFacts value
    """
    root = document.block
    on_value = root.get("on") if isinstance(root, Mapping) else None

    return DocumentFacts(
        triggers=tuple(trigger_names(on_value)),
        dangerous_trigger=first_dangerous_trigger(on_value),
        publishing_trigger=is_publishing_trigger(on_value),
        publisher_action=find_publisher_action(root),
    )
