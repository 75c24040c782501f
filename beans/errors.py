"""Exception hierarchy for beans.

Every failure raised by the lifecycle core derives from ``BeansError`` so the
command-line front end can report it uniformly.  Errors carry the structured
details (command, stderr, exit code) needed to tell the user which step
failed and why.
"""

from __future__ import annotations

from enum import Enum


class BeansError(Exception):
    """Base class for all beans errors."""


class FailureKind(str, Enum):
    """Why a subprocess result was rejected."""

    UNEXPECTED_EXIT = "unexpected_exit"
    NO_EXIT_CODE = "no_exit_code"


class ToolInvocationError(BeansError):
    """Raised when an external command exits outside its allowed codes."""

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.UNEXPECTED_EXIT,
        command: str = "",
        returncode: int | None = None,
        stderr: str = "",
    ):
        self.kind = kind
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class InvalidEnvironmentNameError(BeansError):
    """Raised when a bean name or bean path cannot be used."""


class NotLoadedError(BeansError):
    """Raised when syncing a module that is not loaded."""

    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f"Cannot sync module '{module_name}': it is not loaded.")


class DirtyWorkingTreeError(BeansError):
    """Raised when syncing over uncommitted changes."""

    def __init__(self, module_name: str, path: str):
        self.module_name = module_name
        self.path = path
        super().__init__(
            f"Working tree of module '{module_name}' at {path} is not clean. "
            "Commit all changes before syncing."
        )


class BeanNotFoundError(BeansError):
    """Raised when a bean has no configuration on disk."""


class BeanExistsError(BeansError):
    """Raised when creating a bean that is already configured."""


class UnknownModuleError(BeansError):
    """Raised when a module name is not configured for a bean."""


class ModuleNotConfiguredError(BeansError):
    """Raised when a tool needs a module the bean does not have."""


class PromptAbortedError(BeansError):
    """Raised when interactive input stays invalid for too many attempts."""


class BranchExistsError(ToolInvocationError):
    """Raised when a module's bean branch already exists in its source repository."""


class InvalidBeanConfigError(BeansError):
    """Raised when a persisted bean configuration cannot be parsed."""
