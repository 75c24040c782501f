"""mkosi-kernel build configuration module.

Each bean gets its own mkosi-kernel worktree at
``<bean>/<bean_relative_dev_path>``, on a branch named after the bean, so
beans with different profiles or configuration branches do not share mkosi's
local configuration and output.  No clean baseline is kept for it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field

from ..errors import NotLoadedError
from ..git import current_branch, current_commit_hash, run_git
from ..utils import console
from .base import BeanModule, Loaded, Unloaded, bean_name_from, expect_branch_created

PROFILES_DIR = "mkosi.profiles"


class MkosiKernelModule(BeanModule):
    kind: Literal["mkosi-kernel"] = "mkosi-kernel"
    profile: str | None = Field(default=None, description="mkosi profile to build with")
    base_ref: str | None = Field(
        default=None, description="Start point for the bean branch (default: HEAD)"
    )

    def config_dir(self, bean_path: Path) -> Path:
        """Directory mkosi runs in: the bean's own checkout."""
        return self.module_path(bean_path)

    def available_profiles(self) -> list[str]:
        """Profile names found under ``mkosi.profiles/`` in the source tree."""
        profiles_dir = self.source_path / PROFILES_DIR
        if not profiles_dir.is_dir():
            return []
        return sorted(p.stem for p in profiles_dir.glob("*.conf"))

    async def _read_status(self, checkout: Path) -> Loaded:
        return Loaded(
            branch=await current_branch(checkout),
            hash=await current_commit_hash(checkout),
        )

    async def load(self, bean_path: Path) -> None:
        if self.is_loaded:
            return

        branch_name = bean_name_from(bean_path)
        checkout = self.module_path(bean_path)

        console.print(
            f"[cyan]Loading[/cyan] [bold]{self.name}[/bold] "
            f"on branch [green]{branch_name}[/green]..."
        )

        args = ["worktree", "add", str(checkout), "-b", branch_name]
        if self.base_ref:
            args.append(self.base_ref)
        expect_branch_created(
            await run_git(*args, cwd=self.source_path), branch_name, self.source_path
        )

        self.status = await self._read_status(checkout)
        console.print(f"[green]Loaded {self.name}:[/green] {checkout}")

    async def sync(self, bean_path: Path) -> None:
        if not self.is_loaded:
            raise NotLoadedError(self.name)
        self.status = await self._read_status(self.module_path(bean_path))

    async def unload(self, bean_path: Path) -> None:
        if not self.is_loaded:
            return

        checkout = self.module_path(bean_path)
        (
            await run_git("worktree", "remove", str(checkout), cwd=self.source_path)
        ).expect_success()

        self.status = Unloaded()
        console.print(f"[green]Unloaded {self.name}[/green]")
