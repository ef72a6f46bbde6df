"""
Pytest configuration and shared fixtures.

Provides fixtures for isolated config/env state, throwaway git repositories
and sample configuration used across the test suite.
"""

import shutil
import subprocess
from pathlib import Path

import pytest

from sprig.core.config import clear_cache
from sprig.core.config.models import SetupCommand, SetupConfig, SprigConfig

# ==============================================================================
# Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """
    Keep tests independent of the developer's machine.

    Clears sprig/host env vars, points XDG_CONFIG_HOME at an empty directory
    and drops the config cache before and after each test.
    """
    for name in (
        "CLAUDE_PROJECT_DIR",
        "SPRIG_WORKTREES_DIR",
        "SPRIG_BRANCH_PREFIX",
        "SPRIG_PORT_KEY",
        "SPRIG_PORT_LOW",
        "SPRIG_PORT_SPAN",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    clear_cache()
    yield
    clear_cache()


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def user_config_dir(tmp_path):
    """Provide a temporary XDG_CONFIG_HOME/sprig directory."""
    config_dir = tmp_path / "xdg-config" / "sprig"
    config_dir.mkdir(parents=True)
    return config_dir


def _git(cwd: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=cwd, capture_output=True, check=True)


@pytest.fixture
def git_repo(tmp_path):
    """
    Provide a real git repository with one commit.

    Creates:
    - README.md (committed)
    - .env with DEV_PORT=3000 (untracked, like a real project secret file)
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init")
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "user.name", "Test User")
    _git(repo, "config", "commit.gpgsign", "false")

    (repo / "README.md").write_text("# Test Project\n")
    _git(repo, "add", "README.md")
    _git(repo, "commit", "-m", "Initial commit")

    (repo / ".env").write_text("API_URL=http://localhost\nDEV_PORT=3000\n")

    return repo.resolve()


@pytest.fixture
def git():
    """Run a git command in a directory and return its stdout."""

    def run(cwd: Path, *args: str) -> str:
        result = subprocess.run(
            ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
        )
        return result.stdout.strip()

    return run


# ==============================================================================
# Sample Data Fixtures
# ==============================================================================


@pytest.fixture
def sample_config():
    """Provide a SprigConfig with defaults and no setup commands."""
    return SprigConfig()


@pytest.fixture
def config_with_setup():
    """Provide a SprigConfig whose setup has one failing and one passing command."""
    return SprigConfig(
        setup=SetupConfig(
            commands=[
                SetupCommand(name="broken step", command="exit 3"),
                SetupCommand(command="echo installed > installed.txt"),
            ]
        )
    )
