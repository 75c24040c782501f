"""beans configuration.

``Config`` holds the tool-wide settings (where beans live, where the source
repositories are).  It is resolved once at startup by ``Config.from_env`` and
then passed explicitly to the registry and the command handlers.

``BeanConfig`` is the persisted per-bean document: the bean's name and the
modules it is configured with, including each module's lifecycle status.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .modules import AnyModule

ENV_FILE = "beans.env"
BEAN_CONFIG_FILE = "bean.json"

MKOSI_KERNEL = "mkosi-kernel"
LINUX = "linux"
BTRFS_PROGS = "btrfs-progs"
FSTESTS = "fstests"

# Configuration order, which is also the order lifecycle operations run in.
MODULE_NAMES: tuple[str, ...] = (MKOSI_KERNEL, LINUX, BTRFS_PROGS, FSTESTS)


def default_beans_dir() -> Path:
    """``$XDG_CONFIG_HOME/beans``, falling back to ``~/.config/beans``."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "beans"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Config(BaseModel):
    """Global beans configuration."""

    beans_dir: Path = Field(default_factory=default_beans_dir)
    mkosi_kernel_dir: Path | None = Field(default=None, description="mkosi-kernel checkout")
    linux_dir: Path | None = Field(default=None, description="Linux source repository")
    btrfs_progs_dir: Path | None = Field(default=None, description="btrfs-progs repository")
    fstests_dir: Path | None = Field(default=None, description="fstests repository")
    fast_fstests_dir: Path | None = Field(default=None, description="fast-fstests checkout")

    def source_dirs(self) -> dict[str, Path]:
        """Return ``{module_name: source repository}`` for configured modules."""
        candidates = {
            MKOSI_KERNEL: self.mkosi_kernel_dir,
            LINUX: self.linux_dir,
            BTRFS_PROGS: self.btrfs_progs_dir,
            FSTESTS: self.fstests_dir,
        }
        return {name: path for name, path in candidates.items() if path is not None}

    @classmethod
    def from_env(cls, beans_dir: Path | None = None) -> "Config":
        """Build a ``Config`` from environment variables.

        ``<beans_dir>/beans.env`` is loaded first if it exists; variables
        already set in the environment take precedence over it.

        Recognised variables (all optional):
            BEANS_DIR, MKOSI_KERNEL_DIR, LINUX_DIR, BTRFS_PROGS_DIR,
            FSTESTS_DIR, FAST_FSTESTS_DIR.
        """
        if beans_dir is None:
            beans_dir = (
                Path(os.environ["BEANS_DIR"])
                if os.environ.get("BEANS_DIR")
                else default_beans_dir()
            )

        env_file = beans_dir / ENV_FILE
        if env_file.exists():
            load_dotenv(env_file, override=False)

        kwargs: dict[str, Any] = {}
        for field_name, variable in (
            ("mkosi_kernel_dir", "MKOSI_KERNEL_DIR"),
            ("linux_dir", "LINUX_DIR"),
            ("btrfs_progs_dir", "BTRFS_PROGS_DIR"),
            ("fstests_dir", "FSTESTS_DIR"),
            ("fast_fstests_dir", "FAST_FSTESTS_DIR"),
        ):
            if os.environ.get(variable):
                kwargs[field_name] = Path(os.environ[variable])

        return cls(beans_dir=beans_dir, **kwargs)


class BeanConfig(BaseModel):
    """Persisted configuration of a single bean."""

    name: str
    modules: dict[str, AnyModule] = Field(default_factory=dict)
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)

    def save(self, path: Path) -> Path:
        """Persist the bean configuration as JSON.

        Args:
            path: Destination file.

        Returns:
            The path the file was written to.
        """
        self.updated_at = _now()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "BeanConfig":
        """Load a previously-saved bean configuration."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)
