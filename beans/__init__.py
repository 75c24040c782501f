"""beans: per-feature kernel development environments built on git worktrees.

Key classes:
    BeanRegistry       - Bean directories, persisted configuration, lifecycle dispatch
    KernelModule       - Dev worktree + detached clean worktree per bean
    MkosiKernelModule  - mkosi-kernel build configuration with a profile
    ProcessResult      - Exit status classification for external commands
"""

from .config import BeanConfig, Config
from .errors import (
    BeansError,
    DirtyWorkingTreeError,
    InvalidEnvironmentNameError,
    NotLoadedError,
    ToolInvocationError,
)
from .modules import BeanModule, KernelModule, Loaded, MkosiKernelModule, Unloaded
from .process import ProcessResult
from .registry import BeanRegistry

__version__ = "0.1.0"

__all__ = [
    "BeanConfig",
    "BeanModule",
    "BeanRegistry",
    "BeansError",
    "Config",
    "DirtyWorkingTreeError",
    "InvalidEnvironmentNameError",
    "KernelModule",
    "Loaded",
    "MkosiKernelModule",
    "NotLoadedError",
    "ProcessResult",
    "ToolInvocationError",
    "Unloaded",
]
