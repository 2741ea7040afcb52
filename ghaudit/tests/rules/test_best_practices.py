"""
test_best_practices.py - Tests for workflow hygiene rules
"""


def test_anonymous_jobs(run_rule):
    """Test that only unnamed, non-reusable jobs are reported."""
    content = """
on: push
jobs:
  unnamed:
    runs-on: ubuntu-latest
  named:
    name: Named job
    runs-on: ubuntu-latest
  reusable:
    uses: org/repo/.github/workflows/ci.yml@main
"""
    findings = run_rule("anonymous_jobs", content)

    assert len(findings) == 1
    assert findings[0].line_number == 4
    assert findings[0].severity == "LOW"
    assert findings[0].context == {"key": "unnamed", "job": "unnamed"}
    assert findings[0].message == (
        "Job has no name. Add a descriptive name to make it easier to identify in "
        "workflow runs."
    )


def test_anonymous_jobs_ignores_nested_keys(run_rule):
    """Test that mappings deeper than jobs.<id> are not treated as jobs."""
    content = """
on: push
jobs:
  build:
    name: Build
    runs-on: ubuntu-latest
    services:
      db:
        image: postgres
"""
    assert run_rule("anonymous_jobs", content) == []


def test_missing_timeout(run_rule):
    """Test that jobs without any timeout are reported."""
    content = """
on: push
jobs:
  no-timeout:
    runs-on: ubuntu-latest
    steps:
      - run: make
  job-timeout:
    runs-on: ubuntu-latest
    timeout-minutes: 10
  step-timeout:
    runs-on: ubuntu-latest
    steps:
      - run: make
        timeout-minutes: 5
  reusable:
    uses: org/repo/.github/workflows/ci.yml@main
"""
    findings = run_rule("missing_timeout", content)

    assert len(findings) == 1
    assert findings[0].message == (
        "Job 'no-timeout' has no timeout-minutes set. A hung job keeps running "
        "until the 6 hour default limit."
    )
    assert findings[0].line_number == 4


def test_best_practice_rules_can_be_disabled(run_rule):
    """Test that the hygiene rules honour configuration."""
    content = """
on: push
jobs:
  build:
    runs-on: ubuntu-latest
"""
    config = {"anonymous_jobs": False, "check_missing_timeout": False}

    assert len(run_rule("anonymous_jobs", content)) == 1
    assert run_rule("anonymous_jobs", content, config=config) == []
    assert run_rule("missing_timeout", content, config=config) == []
