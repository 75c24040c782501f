"""Lifecycle contract shared by every module kind.

A module is one version-controlled component checked out inside a bean.
Whatever its kind, it exposes exactly three operations over the owning
bean's directory:

    load    Unloaded -> Loaded   (no-op when already loaded)
    sync    Loaded   -> Loaded   (refreshed; NotLoadedError when unloaded)
    unload  Loaded   -> Unloaded (no-op when already unloaded)

The recorded ``status`` mirrors what is on disk: branch and hash are always
read back from the checkout after a mutating git command succeeds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from ..errors import BranchExistsError, InvalidEnvironmentNameError, ToolInvocationError
from ..process import ProcessResult


class Unloaded(BaseModel):
    """The module has no checkout in the bean."""

    state: Literal["unloaded"] = "unloaded"


class Loaded(BaseModel):
    """The module is checked out at ``branch`` with ``HEAD`` at ``hash``."""

    state: Literal["loaded"] = "loaded"
    branch: str
    hash: str


ModuleStatus = Annotated[Union[Unloaded, Loaded], Field(discriminator="state")]


def bean_name_from(bean_path: str | Path) -> str:
    """Return the final path component of *bean_path*.

    Raises:
        InvalidEnvironmentNameError: If the path has no final component.
    """
    name = Path(bean_path).name
    if not name:
        raise InvalidEnvironmentNameError(
            f"Unable to get bean name from bean path: {bean_path}"
        )
    return name


def expect_branch_created(result: ProcessResult, branch: str, source_path: Path) -> ProcessResult:
    """Check a ``git worktree add -b <branch>`` result.

    Unload keeps the bean branch, so loading a module again after an unload
    fails here until the branch is deleted or renamed.

    Raises:
        BranchExistsError: If git refused because *branch* already exists.
        ToolInvocationError: For any other failure.
    """
    try:
        return result.expect_success()
    except ToolInvocationError as exc:
        if f"a branch named '{branch}' already exists" not in exc.stderr:
            raise
        raise BranchExistsError(
            f"Branch '{branch}' already exists in {source_path}. "
            f"Delete it with 'git -C {source_path} branch -D {branch}' "
            f"(or rename it) before loading again.",
            kind=exc.kind,
            command=exc.command,
            returncode=exc.returncode,
            stderr=exc.stderr,
        ) from exc


class BeanModule(BaseModel, ABC):
    """Base class for every module kind.

    Subclasses narrow ``kind`` to a ``Literal`` so that a bean's module list
    can be persisted and restored as a tagged union.
    """

    name: str
    kind: str
    source_path: Path = Field(..., description="Backing source repository")
    bean_relative_dev_path: Path = Field(
        ..., description="Checkout location relative to the bean directory"
    )
    status: ModuleStatus = Field(default_factory=Unloaded)

    @property
    def is_loaded(self) -> bool:
        return isinstance(self.status, Loaded)

    def module_path(self, bean_path: str | Path) -> Path:
        """Absolute path of this module's checkout inside *bean_path*."""
        return Path(bean_path) / self.bean_relative_dev_path

    @abstractmethod
    async def load(self, bean_path: Path) -> None:
        """Bring the module from ``Unloaded`` to ``Loaded``."""

    @abstractmethod
    async def sync(self, bean_path: Path) -> None:
        """Refresh a loaded module."""

    @abstractmethod
    async def unload(self, bean_path: Path) -> None:
        """Return the module to ``Unloaded``."""
