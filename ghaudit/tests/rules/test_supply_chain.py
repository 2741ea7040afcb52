"""
test_supply_chain.py - Tests for action and image reference rules
"""

import pytest

SHA = "b4ffde65f46336ab88eb53be808477a3936bae11"
DIGEST = "sha256:" + "a" * 64


def _steps(*uses):
    lines = "\n".join(f"      - uses: {value}" for value in uses)
    return f"""
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
{lines}
"""


def test_unpinned_actions_detects_tags(run_rule):
    """Test that tag and branch references are reported."""
    findings = run_rule("unpinned_actions", _steps("actions/checkout@v4", "org/action@main"))

    assert len(findings) == 2
    assert findings[0].message == (
        "Action 'actions/checkout@v4' is not pinned to a commit SHA. Consider pinning to a "
        "specific commit for security and reproducibility."
    )
    assert [f.line_number for f in findings] == [7, 8]


@pytest.mark.parametrize(
    "uses",
    [
        f"actions/checkout@{SHA}",
        "./local-action",
        "docker://alpine:latest",
    ],
)
def test_unpinned_actions_ignores_pinned_and_local(run_rule, uses):
    """Test that SHA pins, local actions and container actions are not reported."""
    assert run_rule("unpinned_actions", _steps(uses)) == []


def test_unpinned_actions_only_checks_steps(run_rule):
    """Test that reusable workflow calls are not reported."""
    content = """
on: push
jobs:
  call:
    uses: org/repo/.github/workflows/build.yml@main
"""
    assert run_rule("unpinned_actions", content) == []


def test_unpinned_actions_short_sha(run_rule):
    """Test that abbreviated SHAs are reported."""
    assert len(run_rule("unpinned_actions", _steps("actions/checkout@b4ffde6"))) == 1


@pytest.mark.parametrize("image", ["node:18", "alpine", "docker://alpine:latest"])
def test_unpinned_docker_images_detected(run_rule, image):
    """Test that images without a digest are reported."""
    content = f"""
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    container:
      image: {image}
"""
    findings = run_rule("unpinned_docker_images", content)

    assert len(findings) == 1
    assert f"Docker image '{image}' is not pinned to a digest" in findings[0].message


@pytest.mark.parametrize("image", [f"node@{DIGEST}", f"docker://alpine@{DIGEST}"])
def test_unpinned_docker_images_ignores_digests(run_rule, image):
    """Test that digest references are not reported."""
    content = f"""
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    services:
      db:
        image: {image}
"""
    assert run_rule("unpinned_docker_images", content) == []


def test_forbidden_uses_known_vulnerable(run_rule):
    """Test that known vulnerable releases are reported."""
    findings = run_rule("forbidden_uses", _steps("actions/checkout@v2", "actions/checkout@v4"))

    assert len(findings) == 1
    assert findings[0].message.startswith(
        "Action 'actions/checkout@v2' is known to have security vulnerabilities."
    )


def test_forbidden_uses_suspicious_pattern(run_rule):
    """Test that the longest matching suspicious pattern is named."""
    findings = run_rule("forbidden_uses", _steps("malicious-org/download-and-run@v1"))

    assert len(findings) == 1
    assert "suspicious pattern 'download-and-run'" in findings[0].message


def test_forbidden_uses_single_character_owner(run_rule):
    """Test that single-character owners are reported."""
    findings = run_rule("forbidden_uses", _steps("x/action@v1"))

    assert len(findings) == 1
    assert "single-character organization 'x'" in findings[0].message


def test_forbidden_uses_configured_additions(run_rule):
    """Test that configured actions and patterns are added to the built-in lists."""
    config = {
        "rules": {
            "forbidden_uses": {
                "additional_dangerous_actions": ["acme/deploy@v1"],
                "additional_suspicious_patterns": ["sketchy"],
            }
        }
    }
    content = _steps("acme/deploy@v1", "someone/sketchy-tool@v2", "actions/checkout@v2")

    findings = run_rule("forbidden_uses", content, config=config)

    assert len(findings) == 3
    assert "'acme/deploy@v1' is known to have security vulnerabilities" in findings[0].message
    assert "suspicious pattern 'sketchy'" in findings[1].message
    assert run_rule("forbidden_uses", _steps("acme/deploy@v1")) == []


@pytest.mark.parametrize("comment", ["# tag=v3", "# version: v2.8.0", "# v4.2.1", "# ver=1.2"])
def test_ref_version_mismatch_detects_comments(run_rule, comment):
    """Test that version comments next to SHA pins are reported."""
    content = f"""
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      {comment}
      - uses: actions/checkout@{SHA}
"""
    findings = run_rule("ref_version_mismatch", content)

    assert len(findings) == 1
    assert findings[0].severity == "LOW"
    assert findings[0].line_number == 8


def test_ref_version_mismatch_ignores_other_comments(run_rule):
    """Test that pins without version comments and tag refs are not reported."""
    content = f"""
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      # check out the code
      - uses: actions/checkout@{SHA}
      # tag=v3
      - uses: actions/setup-python@v5
"""
    assert run_rule("ref_version_mismatch", content) == []


def test_ref_version_mismatch_only_in_workflows_directory(run_rule):
    """Test that files outside the workflows directory are ignored."""
    content = f"""
on: push
jobs:
  build:
    steps:
      # tag=v3
      - uses: actions/checkout@{SHA}
"""
    assert len(run_rule("ref_version_mismatch", content)) == 1
    assert run_rule("ref_version_mismatch", content, file_path="docker-compose.yml") == []


@pytest.mark.parametrize(
    "uses", ["actions/checkout/./@v4", "actions//checkout@v4", "actions/checkout/../evil@v4"]
)
def test_obfuscation_in_uses(run_rule, uses):
    """Test that redundant path components are reported."""
    findings = run_rule("obfuscation", _steps(uses))

    assert len(findings) == 1
    assert "obfuscated path components" in findings[0].message


def test_obfuscation_in_run(run_rule):
    """Test that split tokens in commands are reported."""
    content = """
on: push
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - run: ev""al "$PAYLOAD"
      - run: make test
"""
    findings = run_rule("obfuscation", content)

    assert len(findings) == 1
    assert findings[0].line_number == 7
    assert "obfuscated GitHub Actions expressions" in findings[0].message


def test_obfuscation_ignores_plain_references(run_rule):
    """Test that canonical references are not reported."""
    assert run_rule("obfuscation", _steps("actions/checkout@v4", "./local/action")) == []


def _cache_workflow(on_block, *uses):
    steps = "\n".join(f"      - uses: {value}" for value in uses)
    return f"""
{on_block}
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
{steps}
"""


def test_cache_poisoning_on_release(run_rule):
    """Test that caching in release workflows is reported."""
    content = _cache_workflow("on: release", "actions/checkout@v4", "actions/setup-node@v4")

    findings = run_rule("cache_poisoning", content)

    assert len(findings) == 1
    assert findings[0].message.startswith(
        "Action 'actions/setup-node' uses caching in a workflow that publishes artifacts."
    )


@pytest.mark.parametrize(
    "on_block",
    [
        "on:\n  push:\n    tags: ['v*']",
        "on:\n  push:\n    branches: [release/1.x]",
    ],
)
def test_cache_poisoning_on_release_push(run_rule, on_block):
    """Test that tag and release branch pushes count as publishing."""
    content = _cache_workflow(on_block, "actions/cache@v4")

    assert len(run_rule("cache_poisoning", content)) == 1


def test_cache_poisoning_with_publisher_action(run_rule):
    """Test that a publisher action makes any workflow a publishing one."""
    content = _cache_workflow(
        "on: push", "Swatinem/rust-cache@v2", "softprops/action-gh-release@v2"
    )

    findings = run_rule("cache_poisoning", content)

    assert len(findings) == 1
    assert "'Swatinem/rust-cache'" in findings[0].message


def test_cache_poisoning_ignores_ordinary_pushes(run_rule):
    """Test that caching in a normal CI workflow is not reported."""
    content = _cache_workflow(
        "on:\n  push:\n    branches: [main]", "actions/setup-node@v4", "actions/cache@v4"
    )

    assert run_rule("cache_poisoning", content) == []
