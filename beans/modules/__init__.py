"""beans module kinds.

Key classes:
    BeanModule         - Abstract load/sync/unload lifecycle contract
    KernelModule       - Dev worktree + detached clean worktree per bean
    MkosiKernelModule  - In-place build configuration with a profile
"""

from typing import Annotated, Union

from pydantic import Field

from .base import BeanModule, Loaded, ModuleStatus, Unloaded, bean_name_from
from .kernel import CLEAN_WORKTREE_EXIT_CODES, KernelModule
from .mkosi_kernel import MkosiKernelModule

AnyModule = Annotated[Union[KernelModule, MkosiKernelModule], Field(discriminator="kind")]

__all__ = [
    # Lifecycle contract
    "BeanModule",
    "ModuleStatus",
    "Loaded",
    "Unloaded",
    "bean_name_from",
    # Module kinds
    "AnyModule",
    "KernelModule",
    "MkosiKernelModule",
    "CLEAN_WORKTREE_EXIT_CODES",
]
