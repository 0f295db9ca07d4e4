"""Shared test fixtures and configuration."""

import tempfile
from pathlib import Path

import pytest

from todoexpand.config import ResolvedConfig


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests independent of the developer's environment and config files."""
    for name in (
        "OPENAI_API_KEY",
        "OPENAI_MODEL",
        "TODO_EXPAND_STYLE",
        "TODO_EXPAND_SECTIONS",
        "TODO_EXPAND_DRY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_repo_root(temp_dir):
    """Create a mock git repository root directory."""
    git_dir = temp_dir / ".git"
    git_dir.mkdir()
    return temp_dir


@pytest.fixture
def config():
    """Resolved configuration with caching and formatting off."""
    return ResolvedConfig(cache=False, format=False)


@pytest.fixture
def sample_source():
    """Source file with one `//` and one `#` TODO."""
    return "const a = 1 // TODO: tighten types\n# TODO add logging\nno todo here\n"


@pytest.fixture
def sample_batch_response():
    """Batched completion output for two TODOs."""
    return "Context: x\nGoal: y\n---\nContext: z\nGoal: w"
