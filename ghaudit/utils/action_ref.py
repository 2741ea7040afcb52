"""
action_ref.py - Parse ``uses:`` references

A reference has one of three forms:

- ``owner/repo[/path]@ref`` for actions hosted in a repository
- ``./path`` for actions stored in the same repository
- ``docker://image`` for container actions
"""

import re
from dataclasses import dataclass
from typing import Optional

COMMIT_SHA_PATTERN = re.compile(r"[a-f0-9]{40}")

LOCAL_PREFIX = "./"
DOCKER_PREFIX = "docker://"


@dataclass(frozen=True)
class ActionRef:
    """A parsed ``uses:`` value"""

    raw: str
    name: str
    version: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.raw.startswith(LOCAL_PREFIX)

    @property
    def is_docker(self) -> bool:
        return self.raw.startswith(DOCKER_PREFIX)

    @property
    def is_repository(self) -> bool:
        """True for references to actions hosted in a repository"""
        return not (self.is_local or self.is_docker)

    @property
    def is_pinned(self) -> bool:
        """True if the ref is a full 40 character commit SHA"""
        return self.version is not None and COMMIT_SHA_PATTERN.fullmatch(self.version) is not None

    @property
    def owner(self) -> Optional[str]:
        if "/" not in self.name:
            return None
        return self.name.split("/", 1)[0]


def parse_action_ref(value: str) -> ActionRef:
    """
    Split a ``uses:`` value into action name and version

    Args:
        value: Raw ``uses:`` text

    Returns:
        ActionRef; ``version`` is None when there is no ``@``
    """
    raw = value.strip()
    if raw.startswith(DOCKER_PREFIX) or "@" not in raw:
        return ActionRef(raw=raw, name=raw)
    name, version = raw.split("@", 1)
    return ActionRef(raw=raw, name=name, version=version)


def action_name(value: str) -> str:
    """Return the part of a ``uses:`` value before the ``@``"""
    return parse_action_ref(value).name
