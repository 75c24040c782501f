"""Shared pytest fixtures for the beans test suite.

Provides reusable fixtures for:
- Real git repositories in temporary directories
- Mock asyncio subprocesses
- A recording fake for git commands run by the module implementations
- Configs and registries rooted in ``tmp_path``
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from beans.config import Config
from beans.process import ProcessResult
from beans.registry import BeanRegistry

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


# ---------------------------------------------------------------------------
# Git repositories
# ---------------------------------------------------------------------------


def git(*args: str, cwd: Path) -> str:
    """Run git synchronously in a test and return stripped stdout."""
    completed = subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )
    return completed.stdout.strip()


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Temporary git repository with an initial commit.

    Creates a real git repo in a temp directory so that tests depending on
    git operations (worktrees, branches, etc.) have a valid repo to work in.
    """
    repo_dir = tmp_path / "src" / "linux"
    repo_dir.mkdir(parents=True)
    git("init", "-b", "master", cwd=repo_dir)
    git("config", "user.email", "test@beans.local", cwd=repo_dir)
    git("config", "user.name", "Beans Test", cwd=repo_dir)
    git("config", "commit.gpgsign", "false", cwd=repo_dir)
    (repo_dir / "Makefile").write_text("all:\n", encoding="utf-8")
    git("add", ".", cwd=repo_dir)
    git("commit", "-m", "Initial commit", cwd=repo_dir)
    yield repo_dir


# ---------------------------------------------------------------------------
# Subprocess mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int | None = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


def result(args: list[str] | None = None, returncode: int | None = 0,
           stdout: str = "", stderr: str = "") -> ProcessResult:
    return ProcessResult(args=args or ["git"], returncode=returncode,
                         stdout=stdout, stderr=stderr)


class FakeGit:
    """Stands in for the git calls made by the module implementations.

    ``run_git`` calls are recorded and answered from ``returncodes`` (keyed
    by the first two arguments, e.g. ``"worktree add"``); queries answer
    from ``branch``, ``hash`` and ``clean``.
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.returncodes: dict[str, list[int | None]] = {}
        self.branch = "feature-x"
        self.hash = "a" * 40
        self.clean = True
        self.failure_stderr = "fatal: boom"

    async def run_git(self, *args: str, cwd=None, timeout=None) -> ProcessResult:
        self.calls.append({"args": list(args), "cwd": cwd})
        key = " ".join(args[:2])
        codes = self.returncodes.get(key)
        code = codes.pop(0) if codes else 0
        return result(["git", *args], returncode=code,
                      stderr="" if code == 0 else self.failure_stderr)

    async def current_branch(self, path, timeout=None) -> str:
        self.calls.append({"args": ["branch", "--show-current"], "cwd": path})
        return self.branch

    async def current_commit_hash(self, path, timeout=None) -> str:
        self.calls.append({"args": ["log", "-1", "--pretty=%H"], "cwd": path})
        return self.hash

    async def is_clean(self, path, timeout=None) -> bool:
        self.calls.append({"args": ["status", "--porcelain"], "cwd": path})
        return self.clean

    @property
    def mutating_calls(self) -> list[list[str]]:
        return [c["args"] for c in self.calls if c["args"][0] in ("worktree", "switch")]


@pytest.fixture
def fake_git():
    """Patch the git helpers of both module kinds with one ``FakeGit``."""
    fake = FakeGit()
    with patch("beans.modules.kernel.run_git", side_effect=fake.run_git), \
         patch("beans.modules.kernel.current_branch", side_effect=fake.current_branch), \
         patch("beans.modules.kernel.current_commit_hash", side_effect=fake.current_commit_hash), \
         patch("beans.modules.kernel.is_clean", side_effect=fake.is_clean), \
         patch("beans.modules.mkosi_kernel.run_git", side_effect=fake.run_git), \
         patch("beans.modules.mkosi_kernel.current_branch", side_effect=fake.current_branch), \
         patch("beans.modules.mkosi_kernel.current_commit_hash",
               side_effect=fake.current_commit_hash):
        yield fake


# ---------------------------------------------------------------------------
# Config & registry
# ---------------------------------------------------------------------------


@pytest.fixture
def beans_config(tmp_path: Path) -> Config:
    return Config(beans_dir=tmp_path / "beans")


@pytest.fixture
def registry(beans_config: Config) -> BeanRegistry:
    return BeanRegistry(beans_config)
