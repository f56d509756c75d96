"""Shared fixtures."""

import shutil
import subprocess
from pathlib import Path

import pytest

GIT_IDENTITY = [
    "-c",
    "user.name=Test User",
    "-c",
    "user.email=test@example.com",
    "-c",
    "commit.gpgsign=false",
]


def pytest_configure(config):
    config.addinivalue_line("markers", "git: test needs a git executable")


def pytest_collection_modifyitems(config, items):
    if shutil.which("git") is not None:
        return
    skip_git = pytest.mark.skip(reason="git not installed")
    for item in items:
        if "git" in item.keywords:
            item.add_marker(skip_git)


@pytest.fixture
def run_git():
    """Run a git command synchronously. Returns stripped stdout."""

    def _run(*args: str, cwd: Path) -> str:
        result = subprocess.run(
            ["git", *GIT_IDENTITY, *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()

    return _run


@pytest.fixture
def git_remote(tmp_path, run_git) -> Path:
    """Bare repository with one commit on main."""
    remote = tmp_path / "remote.git"
    seed = tmp_path / "seed"
    remote.mkdir()
    seed.mkdir()

    run_git("init", "--bare", cwd=remote)
    run_git("init", cwd=seed)
    run_git("checkout", "-b", "main", cwd=seed)
    (seed / "README.md").write_text("# build cache\n")
    run_git("add", "README.md", cwd=seed)
    run_git("commit", "-m", "initial", cwd=seed)
    run_git("remote", "add", "origin", str(remote), cwd=seed)
    run_git("push", "origin", "main", cwd=seed)
    return remote
