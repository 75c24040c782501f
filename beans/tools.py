"""Wrappers around the external build tool (mkosi) and test runner (fast-fstests).

Both tools run with the terminal's own stdin/stdout/stderr; beans only
builds their argument lists and working directories.
"""

from __future__ import annotations

from pathlib import Path

from .config import MKOSI_KERNEL, BeanConfig
from .errors import ModuleNotConfiguredError
from .modules import KernelModule, MkosiKernelModule
from .utils import console, run_command

FAST_FSTESTS_SCRIPT = "src/fast-fstests.py"


def mkosi_module(bean: BeanConfig) -> MkosiKernelModule:
    """Return the bean's mkosi-kernel module.

    Raises:
        ModuleNotConfiguredError: If the bean has none.
    """
    module = bean.modules.get(MKOSI_KERNEL)
    if not isinstance(module, MkosiKernelModule):
        raise ModuleNotConfiguredError(
            f"{MKOSI_KERNEL} not configured for bean {bean.name}"
        )
    return module


def mkosi_config_dir(bean: BeanConfig, bean_path: Path) -> Path:
    """The bean's mkosi-kernel checkout.

    Raises:
        ModuleNotConfiguredError: If the bean has no mkosi-kernel module or
            it is not loaded.
    """
    module = mkosi_module(bean)
    if not module.is_loaded:
        raise ModuleNotConfiguredError(
            f"{MKOSI_KERNEL} is not loaded for bean {bean.name}; "
            f"run 'beans load {bean.name} {MKOSI_KERNEL}'"
        )
    return module.config_dir(bean_path)


def mkosi_args(
    bean: BeanConfig,
    bean_path: Path,
    extra_args: list[str] | None = None,
    use_profile: bool = True,
) -> list[str]:
    """Build the mkosi argument list for *bean*.

    Every loaded worktree module is passed as a build source
    (``<dev worktree>:<module>``); the bean's profile comes first unless
    *use_profile* is false.
    """
    args: list[str] = []

    module = bean.modules.get(MKOSI_KERNEL)
    if use_profile and isinstance(module, MkosiKernelModule) and module.profile:
        args.append(f"--profile={module.profile}")

    build_sources = [
        f"{m.module_path(bean_path)}:{m.name}"
        for m in bean.modules.values()
        if isinstance(m, KernelModule) and m.is_loaded
    ]
    if build_sources:
        args.append(f"--build-sources={','.join(build_sources)}")

    return args + list(extra_args or [])


async def run_mkosi(
    bean: BeanConfig,
    bean_path: Path,
    extra_args: list[str] | None = None,
    use_profile: bool = True,
) -> int:
    """Run mkosi for *bean* and return its exit code (-1 if it reported none)."""
    module = mkosi_module(bean)
    workdir = mkosi_config_dir(bean, bean_path)
    args = mkosi_args(bean, bean_path, extra_args, use_profile=use_profile)

    if use_profile and module.profile:
        console.print(f"[cyan]Using mkosi-kernel profile[/cyan] [bold]{module.profile}[/bold]")
    console.print(f"[dim]mkosi {' '.join(args)}[/dim]")

    result = await run_command(["mkosi", *args], cwd=workdir, capture=False)
    return result.exit_code if result.exit_code is not None else -1


def fast_fstests_args(mkosi_config_dir: Path, extra_args: list[str] | None = None) -> list[str]:
    return [
        "pytest",
        FAST_FSTESTS_SCRIPT,
        "--mkosi-config-dir",
        str(mkosi_config_dir),
        *(extra_args or []),
    ]


async def run_fast_fstests(
    bean: BeanConfig,
    bean_path: Path,
    fast_fstests_dir: Path,
    extra_args: list[str] | None = None,
) -> int:
    """Run fast-fstests against *bean*'s mkosi configuration."""
    cmd = fast_fstests_args(mkosi_config_dir(bean, bean_path), extra_args)

    console.print(f"[dim]{' '.join(cmd)}[/dim]")

    result = await run_command(cmd, cwd=fast_fstests_dir, capture=False)
    return result.exit_code if result.exit_code is not None else -1
