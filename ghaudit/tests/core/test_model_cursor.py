"""
test_model_cursor.py - Tests for the document model and cursor queries
"""

import dataclasses

import pytest

from ghaudit.core.cursor import Cursor
from ghaudit.core.model import Mapping, MappingEntry, Scalar, Sequence, SequenceEntry
from ghaudit.utils.yaml_handler import parse_document

WORKFLOW = """name: CI
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      # first step
      - uses: actions/github-script@v7
        with:
          script: console.log("hi")
      - run: make
"""


def test_model_keeps_raw_scalar_text():
    """Test that scalars keep their source text instead of resolved values."""
    document = parse_document("on: push\nenabled: true\ncount: 3\n")

    assert list(document.block.keys()) == ["on", "enabled", "count"]
    assert document.block.scalar_value("enabled") == "true"
    assert document.block.scalar_value("count") == "3"


def test_mapping_accessors():
    """Test Mapping lookup helpers."""
    root = parse_document(WORKFLOW).block

    assert isinstance(root, Mapping)
    assert root.has_key("jobs")
    assert not root.has_key("permissions")
    assert root.get("permissions") is None
    assert root.scalar_value("jobs") is None
    assert isinstance(root.entry("jobs"), MappingEntry)


def test_positions_are_one_based():
    """Test line and column marks of mapping entries."""
    root = parse_document(WORKFLOW).block
    jobs = root.entry("jobs")
    build = jobs.value.entry("build")

    assert jobs.start.line == 3
    assert jobs.start.column == 1
    assert build.start.line == 4
    assert build.start.column == 3


def test_comment_lands_in_step_prefix():
    """Test that a comment above a step is kept in the step's prefix."""
    root = parse_document(WORKFLOW).block
    steps = root.get("jobs").get("build").get("steps")

    assert isinstance(steps, Sequence)
    first = steps.entries[0]
    assert isinstance(first, SequenceEntry)
    assert "# first step" in first.prefix
    assert "# first step" not in steps.entries[1].prefix
    assert first.start.line == 8


def test_model_is_immutable():
    """Test that model nodes cannot be modified."""
    scalar = Scalar(value="push")
    with pytest.raises(dataclasses.FrozenInstanceError):
        scalar.value = "pull_request_target"


def test_cursor_job_and_step_queries(cursor_at):
    """Test the job and step queries of a cursor."""
    uses = cursor_at(WORKFLOW, "uses")

    assert uses.key == "uses"
    assert uses.job_id() == "build"
    assert uses.is_step_key()
    assert uses.within("steps")
    assert uses.within("jobs")
    assert not uses.within("with")
    assert not uses.is_direct_child_of("jobs")


def test_cursor_enclosing_step_from_nested_entry(cursor_at):
    """Test resolving the enclosing step from inside its with block."""
    script = cursor_at(WORKFLOW, "script")

    assert not script.is_step_key()
    step = script.enclosing_step()
    assert step is not None
    assert step.scalar_value("uses") == "actions/github-script@v7"

    inputs = script.parent_entry()
    assert inputs.key == "with"
    assert inputs.is_step_key()


def test_cursor_direct_child_of_jobs(cursor_at):
    """Test that only job definitions are direct children of jobs."""
    build = cursor_at(WORKFLOW, "build")
    runs_on = cursor_at(WORKFLOW, "runs-on")

    assert build.is_direct_child_of("jobs")
    assert not runs_on.is_direct_child_of("jobs")
    assert build.job_id() == "build"


def test_cursor_queries_without_context(cursor_at):
    """Test that unresolvable queries return None or False."""
    name = cursor_at(WORKFLOW, "name")

    assert name.is_top_level()
    assert name.job_id() is None
    assert name.enclosing_step() is None
    assert name.nearest_entry("with") is None
    assert not name.is_step_key()
    assert not name.within("jobs")


def test_cursor_document_root(cursor_at):
    """Test walking to the document from a leaf."""
    script = cursor_at(WORKFLOW, "script")
    document = script.document()

    assert document is not None
    assert document.block.scalar_value("name") == "CI"


def test_detached_cursor():
    """Test a cursor without ancestors."""
    cursor = Cursor(Scalar(value="x"))

    assert cursor.depth == 0
    assert cursor.parent_value is None
    assert cursor.document() is None
    assert cursor.key is None
    assert cursor.job_id() is None
