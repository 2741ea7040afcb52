"""
test_scope.py - Tests for workflow scope decisions
"""

import pytest

from ghaudit.core.scope import Scope, in_scope, is_workflow_path, looks_like_workflow
from ghaudit.utils.yaml_handler import parse_document


@pytest.mark.parametrize(
    "path,expected",
    [
        (".github/workflows/ci.yml", True),
        (".github/workflows/ci.yaml", True),
        ("/home/user/repo/.github/workflows/release.yml", True),
        ("repo\\.github\\workflows\\ci.yml", True),
        ("docker-compose.yml", False),
        (".github/dependabot.yml", False),
        (".github/workflows/nested/ci.yml", False),
        (".github/workflows/ci.json", False),
        (None, False),
        ("", False),
    ],
)
def test_is_workflow_path(path, expected):
    """Test workflow path detection."""
    assert is_workflow_path(path) is expected


def test_looks_like_workflow():
    """Test detection of workflow-shaped documents."""
    assert looks_like_workflow(parse_document("on: push\n"))
    assert looks_like_workflow(parse_document("jobs:\n  a:\n    runs-on: x\n"))
    assert not looks_like_workflow(parse_document("services:\n  web:\n    image: nginx\n"))
    assert not looks_like_workflow(parse_document("- on\n- jobs\n"))
    assert not looks_like_workflow(parse_document("just text\n"))


def test_in_scope():
    """Test both scope gates."""
    reusable = parse_document("on:\n  workflow_call:\njobs: {}\n")

    assert in_scope(Scope.WORKFLOW_SHAPE, reusable, "ci/shared.yml")
    assert not in_scope(Scope.WORKFLOW_PATH, reusable, "ci/shared.yml")
    assert in_scope(Scope.WORKFLOW_PATH, reusable, ".github/workflows/shared.yml")
