"""Read-only git queries against a working directory.

Each query shells out to git and raises ``ToolInvocationError`` if git
itself reports failure.
"""

from __future__ import annotations

from pathlib import Path

from .process import ProcessResult
from .utils import run_command


async def run_git(
    *args: str,
    cwd: str | Path | None = None,
    timeout: float | None = None,
) -> ProcessResult:
    """Run a git command and return its result without classifying it."""
    return await run_command(["git", *args], cwd=cwd, timeout=timeout)


async def current_branch(path: str | Path, timeout: float | None = None) -> str:
    """Name of the branch checked out at *path*, or ``""`` when detached."""
    result = await run_git("branch", "--show-current", cwd=path, timeout=timeout)
    return result.expect_success().stdout.strip()


async def current_commit_hash(path: str | Path, timeout: float | None = None) -> str:
    """Full hash of ``HEAD`` at *path*."""
    result = await run_git("log", "-1", "--pretty=%H", cwd=path, timeout=timeout)
    return result.expect_success().stdout.strip()


async def is_clean(path: str | Path, timeout: float | None = None) -> bool:
    """Whether the working tree at *path* has no uncommitted changes.

    Untracked files count as changes: they would be left out of a baseline
    advanced to the current commit.
    """
    result = await run_git("status", "--porcelain", cwd=path, timeout=timeout)
    return result.expect_success().stdout.strip() == ""


async def list_branches(path: str | Path, timeout: float | None = None) -> str:
    """Verbose branch listing (``git branch -v``) for display."""
    result = await run_git("branch", "-v", cwd=path, timeout=timeout)
    return result.expect_success().stdout
