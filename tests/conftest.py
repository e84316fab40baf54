"""
Pytest configuration and fixtures for accessctl tests.

This module provides shared fixtures used across unit and integration tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_policy_yaml() -> str:
    """Return a blog policy YAML with context-conditioned statements."""
    return """
version: "1.0"
statements:
  - resource: POST
    actions: [read]
    effect: allow
  - resource: POST
    actions: [read]
    effect: deny
    contexts:
      - {status: draft}
  - resource: POST
    actions: ["*"]
    effect: allow
    contexts:
      - {authorId: auth-123}
  - resource: USER
    actions: [read, invite]
    effect: allow
"""


@pytest.fixture
def bare_list_policy_yaml() -> str:
    """Return a policy written as a top-level list of statements."""
    return """
- resource: POST
  actions: [read]
  effect: allow
"""


@pytest.fixture
def sample_config_yaml() -> str:
    """Return a resource registry matching sample_policy_yaml."""
    return """
resources:
  POST: [create, read, update, delete]
  USER: [read, invite, delete]
  SETTINGS: [view, edit]
"""


@pytest.fixture
def policy_file(temp_dir: Path, sample_policy_yaml: str) -> Path:
    """Write sample_policy_yaml to disk."""
    path = temp_dir / "policy.yaml"
    path.write_text(sample_policy_yaml)
    return path


@pytest.fixture
def config_file(temp_dir: Path, sample_config_yaml: str) -> Path:
    """Write sample_config_yaml to disk."""
    path = temp_dir / "resources.yaml"
    path.write_text(sample_config_yaml)
    return path
