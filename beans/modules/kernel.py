"""Worktree-backed module (kernel tree, btrfs-progs, fstests).

Each loaded module owns two worktrees of its source repository:

* the *dev* worktree at ``<bean>/<bean_relative_dev_path>``, on a new branch
  named after the bean;
* the *clean* worktree at ``clean_path``, detached, used as the build/test
  baseline.  ``sync`` advances it to the dev worktree's current commit.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from rich.panel import Panel

from ..errors import DirtyWorkingTreeError, NotLoadedError
from ..git import current_branch, current_commit_hash, is_clean, run_git
from ..utils import console
from .base import BeanModule, Loaded, Unloaded, bean_name_from, expect_branch_created

# git exits 128 when the clean worktree is already registered.
CLEAN_WORKTREE_EXIT_CODES = (0, 128)


class KernelModule(BeanModule):
    """Module checked out as a dev worktree plus a detached clean worktree."""

    kind: Literal["kernel"] = "kernel"
    clean_path: Path = Field(..., description="Detached baseline worktree")
    base_ref: str | None = Field(
        default=None, description="Start point for the dev branch (default: HEAD)"
    )

    async def load(self, bean_path: Path) -> None:
        if self.is_loaded:
            return

        branch_name = bean_name_from(bean_path)
        dev_path = self.module_path(bean_path)

        console.print(
            f"[cyan]Loading[/cyan] [bold]{self.name}[/bold] "
            f"on branch [green]{branch_name}[/green]..."
        )

        args = ["worktree", "add", str(dev_path), "-b", branch_name]
        if self.base_ref:
            args.append(self.base_ref)
        expect_branch_created(
            await run_git(*args, cwd=self.source_path), branch_name, self.source_path
        )

        (
            await run_git(
                "worktree", "add", str(self.clean_path), "-d",
                cwd=self.source_path,
            )
        ).expect(CLEAN_WORKTREE_EXIT_CODES)

        self.status = Loaded(
            branch=await current_branch(dev_path),
            hash=await current_commit_hash(dev_path),
        )

        console.print(
            Panel(
                f"[green]Module loaded[/green]\n"
                f"  Dev:    {dev_path}\n"
                f"  Clean:  {self.clean_path}\n"
                f"  Branch: {self.status.branch}\n"
                f"  Hash:   {self.status.hash}",
                title=self.name,
                border_style="green",
            )
        )

    async def sync(self, bean_path: Path) -> None:
        if not self.is_loaded:
            raise NotLoadedError(self.name)

        dev_path = self.module_path(bean_path)

        if not await is_clean(dev_path):
            raise DirtyWorkingTreeError(self.name, str(dev_path))

        branch = await current_branch(dev_path)

        console.print(
            f"[cyan]Syncing[/cyan] [bold]{self.name}[/bold] clean worktree "
            f"to [green]{branch}[/green]..."
        )

        (
            await run_git("switch", branch, "--detach", cwd=self.clean_path)
        ).expect_success()

        self.status = Loaded(branch=branch, hash=await current_commit_hash(dev_path))

        console.print(f"[green]Synced {self.name}:[/green] {self.status.hash}")

    async def unload(self, bean_path: Path) -> None:
        if not self.is_loaded:
            return

        dev_path = self.module_path(bean_path)

        console.print(f"[yellow]Unloading[/yellow] [bold]{self.name}[/bold]...")

        (
            await run_git("worktree", "remove", str(dev_path), cwd=self.source_path)
        ).expect_success()

        # Only recorded once git has confirmed the removal.
        self.status = Unloaded()

        console.print(f"[green]Unloaded {self.name}[/green]")
