"""Bean registry: resolves bean names to directories and modules.

The registry owns the on-disk layout under ``Config.beans_dir``::

    <beans_dir>/
        beans.env              optional environment defaults
        <bean>/
            bean.json          BeanConfig (module list + status)
            <module>/          dev worktree per module
            .clean/<module>/   clean worktree per module

Lifecycle operations are dispatched to the bean's modules one after another
in configuration order.  The bean configuration is saved after every module
operation, whether it succeeded or not, so the persisted status always
matches the in-memory status.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from .config import BEAN_CONFIG_FILE, MKOSI_KERNEL, BeanConfig, Config
from .errors import (
    BeanExistsError,
    BeanNotFoundError,
    InvalidBeanConfigError,
    InvalidEnvironmentNameError,
    UnknownModuleError,
)
from .git import run_git
from .modules import BeanModule, KernelModule, MkosiKernelModule
from .utils import console, print_step

# The bean name doubles as directory name and git branch name.
BEAN_NAME_CHARS = re.compile(r"[A-Za-z0-9._-]")
CLEAN_DIR = ".clean"


def validate_bean_name(name: str) -> str:
    """Return *name* if it is usable as a bean name.

    Allowed are ASCII letters, digits, ``.``, ``_`` and ``-``, starting with
    a letter or digit.  Names git rejects as branch names (``..`` anywhere,
    a trailing ``.`` or ``.lock``) are refused as well.

    Raises:
        InvalidEnvironmentNameError: If the name is empty, hidden, contains
            other characters, or is not a valid branch name.
    """
    if not name or not name.strip():
        raise InvalidEnvironmentNameError("Bean name must not be empty.")
    if name.startswith("."):
        raise InvalidEnvironmentNameError(f"Bean name '{name}' must not start with '.'.")
    bad = sorted({c for c in name if not BEAN_NAME_CHARS.fullmatch(c)})
    if bad:
        shown = " ".join(repr(c) for c in bad)
        raise InvalidEnvironmentNameError(
            f"Bean name '{name}' contains invalid characters: {shown}"
        )
    if not name[0].isalnum():
        raise InvalidEnvironmentNameError(
            f"Bean name '{name}' must start with a letter or digit."
        )
    if ".." in name or name.endswith(".") or name.endswith(".lock"):
        raise InvalidEnvironmentNameError(
            f"Bean name '{name}' is not a valid git branch name."
        )
    return name


class BeanRegistry:
    """Creates, lists, persists and drives beans under a root directory."""

    def __init__(self, config: Config):
        self.config = config
        self.beans_dir = Path(config.beans_dir)

    # ------------------------------------------------------------------
    # Paths & persistence
    # ------------------------------------------------------------------

    def bean_path(self, name: str) -> Path:
        return self.beans_dir / validate_bean_name(name)

    def config_path(self, name: str) -> Path:
        return self.bean_path(name) / BEAN_CONFIG_FILE

    def exists(self, name: str) -> bool:
        return self.config_path(name).is_file()

    def create(self, name: str) -> BeanConfig:
        """Create the bean directory and an empty configuration.

        Raises:
            InvalidEnvironmentNameError: If *name* is not a valid bean name.
            BeanExistsError: If the bean is already configured.
        """
        bean_path = self.bean_path(name)
        if self.exists(name):
            raise BeanExistsError(f"Bean '{name}' already exists at {bean_path}.")

        print_step(f"setting up new bean {name} at {self.beans_dir}")
        bean_path.mkdir(parents=True, exist_ok=True)
        bean = BeanConfig(name=name)
        self.save(bean)
        return bean

    def read(self, name: str) -> BeanConfig:
        """Load a bean's configuration.

        Raises:
            BeanNotFoundError: If the bean has no configuration on disk.
            InvalidBeanConfigError: If the configuration cannot be parsed.
        """
        path = self.config_path(name)
        if not path.is_file():
            raise BeanNotFoundError(f"Bean '{name}' not found in {self.beans_dir}.")
        try:
            return BeanConfig.load(path)
        except ValidationError as exc:
            raise InvalidBeanConfigError(
                f"Bean configuration {path} is invalid:\n{exc}"
            ) from exc

    def save(self, bean: BeanConfig) -> Path:
        return bean.save(self.config_path(bean.name))

    def list_beans(self) -> list[str]:
        """Names of all configured beans, sorted."""
        if not self.beans_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.beans_dir.iterdir()
            if entry.is_dir()
            and not entry.name.startswith(".")
            and not entry.name.endswith(".env")
            and (entry / BEAN_CONFIG_FILE).is_file()
        )

    # ------------------------------------------------------------------
    # Module configuration
    # ------------------------------------------------------------------

    def build_module(
        self,
        bean_name: str,
        module_name: str,
        source_path: Path,
        base_ref: str | None = None,
        profile: str | None = None,
    ) -> BeanModule:
        """Create the module instance for *module_name* in *bean_name*.

        ``mkosi-kernel`` becomes an ``MkosiKernelModule``; every other module
        is a worktree-backed ``KernelModule`` checked out at ``<module>/``
        with its clean worktree at ``.clean/<module>/``.
        """
        if module_name == MKOSI_KERNEL:
            return MkosiKernelModule(
                name=module_name,
                source_path=source_path,
                bean_relative_dev_path=Path(module_name),
                profile=profile,
                base_ref=base_ref,
            )
        return KernelModule(
            name=module_name,
            source_path=source_path,
            bean_relative_dev_path=Path(module_name),
            clean_path=self.bean_path(bean_name) / CLEAN_DIR / module_name,
            base_ref=base_ref,
        )

    def add_module(self, bean: BeanConfig, module: BeanModule) -> None:
        """Add *module* to *bean* and persist it.

        A module that is already configured is replaced only while unloaded.
        A loaded mkosi-kernel module still takes the new profile, which only
        affects later ``mkosi`` runs.
        """
        existing = bean.modules.get(module.name)
        if (
            isinstance(existing, MkosiKernelModule)
            and isinstance(module, MkosiKernelModule)
            and existing.is_loaded
        ):
            if module.profile and module.profile != existing.profile:
                existing.profile = module.profile
                self.save(bean)
                console.print(f"[green]Profile of {module.name} set to {module.profile}[/green]")
            return
        if existing is not None and existing.is_loaded:
            console.print(
                f"[yellow]Module {module.name} is loaded; keeping its configuration.[/yellow]"
            )
            return
        bean.modules[module.name] = module
        self.save(bean)

    def select_modules(
        self, bean: BeanConfig, names: Iterable[str] | None = None
    ) -> list[BeanModule]:
        """Resolve module names (all modules if *names* is empty or ``None``).

        Raises:
            UnknownModuleError: If a name is not configured for the bean.
        """
        wanted = list(names or [])
        if not wanted:
            return list(bean.modules.values())
        unknown = [name for name in wanted if name not in bean.modules]
        if unknown:
            raise UnknownModuleError(
                f"Bean '{bean.name}' has no module(s): {', '.join(unknown)}. "
                f"Configured: {', '.join(bean.modules) or 'none'}"
            )
        return [module for name, module in bean.modules.items() if name in wanted]

    # ------------------------------------------------------------------
    # Lifecycle dispatch
    # ------------------------------------------------------------------

    async def _dispatch(
        self, operation: str, name: str, modules: Iterable[str] | None
    ) -> BeanConfig:
        bean = self.read(name)
        bean_path = self.bean_path(name)

        for module in self.select_modules(bean, modules):
            print_step(f"{operation} module {module.name}")
            try:
                await getattr(module, operation)(bean_path)
            finally:
                self.save(bean)

        return bean

    async def load(self, name: str, modules: Iterable[str] | None = None) -> BeanConfig:
        """Load the selected modules of bean *name*."""
        return await self._dispatch("load", name, modules)

    async def sync(self, name: str, modules: Iterable[str] | None = None) -> BeanConfig:
        """Sync the selected modules of bean *name*."""
        return await self._dispatch("sync", name, modules)

    async def unload(self, name: str, modules: Iterable[str] | None = None) -> BeanConfig:
        """Unload the selected modules of bean *name*."""
        return await self._dispatch("unload", name, modules)

    async def remove(self, name: str) -> None:
        """Unload every module of bean *name*, then delete its directory.

        Clean worktrees live inside the bean directory, so each source
        repository's worktree list is pruned after the directory is gone.
        """
        bean_path = self.bean_path(name)
        bean = await self.unload(name)

        console.print(f"[yellow]Removing bean[/yellow] [bold]{name}[/bold]...")
        shutil.rmtree(bean_path)

        for module in bean.modules.values():
            (await run_git("worktree", "prune", cwd=module.source_path)).expect_success()

        console.print(f"[green]Removed bean:[/green] {name}")
