"""beans command-line interface.

Usage::

    beans configure feature-x
    beans sync feature-x linux
    beans mkosi feature-x -- boot
    beans fast-fstests feature-x -- -g quick
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from rich.markup import escape

from .config import MODULE_NAMES, Config
from .errors import BeansError
from .modules import Loaded, MkosiKernelModule
from .prompts import prompt_module_selection, prompt_profile
from .registry import BeanRegistry
from .tools import run_fast_fstests, run_mkosi
from .utils import console, print_error, print_success, print_summary_table, print_warning

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def resolve_config(args: argparse.Namespace) -> Config:
    """Resolve configuration once: environment first, then CLI overrides."""
    config = Config.from_env(beans_dir=args.beans_dir)
    overrides: dict[str, Any] = {
        field: getattr(args, field)
        for field in ("mkosi_kernel_dir", "linux_dir", "btrfs_progs_dir", "fstests_dir")
        if getattr(args, field, None) is not None
    }
    return config.model_copy(update=overrides) if overrides else config


def _parse_base_refs(values: list[str]) -> dict[str, str]:
    refs: dict[str, str] = {}
    for value in values:
        module, sep, ref = value.partition("=")
        if not sep or not module or not ref:
            raise BeansError(f"Invalid --base-ref '{value}', expected MODULE=REF")
        refs[module] = ref
    return refs


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def cmd_configure(registry: BeanRegistry, args: argparse.Namespace) -> int:
    base_refs = _parse_base_refs(args.base_ref)
    sources = registry.config.source_dirs()
    if not sources:
        print_warning(
            "No module source directories configured; set MKOSI_KERNEL_DIR, "
            "LINUX_DIR, BTRFS_PROGS_DIR or FSTESTS_DIR."
        )

    bean = registry.read(args.name) if registry.exists(args.name) else registry.create(args.name)

    for module_name in MODULE_NAMES:
        source = sources.get(module_name)
        if source is None:
            continue

        base_ref = base_refs.get(module_name)
        if args.interactive:
            include, chosen_ref = await prompt_module_selection(module_name, source)
            if not include:
                continue
            base_ref = chosen_ref or base_ref

        module = registry.build_module(args.name, module_name, source, base_ref=base_ref)
        if isinstance(module, MkosiKernelModule):
            module.profile = args.profile or (prompt_profile(module) if args.interactive else None)
        registry.add_module(bean, module)

    if not args.no_load:
        await registry.load(args.name)

    print_success(f"Bean {args.name} configured with: {', '.join(bean.modules) or 'no modules'}")
    return 0


async def cmd_load(registry: BeanRegistry, args: argparse.Namespace) -> int:
    await registry.load(args.name, args.modules)
    return 0


async def cmd_sync(registry: BeanRegistry, args: argparse.Namespace) -> int:
    await registry.sync(args.name, None if args.all else args.modules)
    return 0


async def cmd_unload(registry: BeanRegistry, args: argparse.Namespace) -> int:
    await registry.unload(args.name, args.modules)
    return 0


async def cmd_remove(registry: BeanRegistry, args: argparse.Namespace) -> int:
    await registry.remove(args.name)
    return 0


async def cmd_list(registry: BeanRegistry, args: argparse.Namespace) -> int:
    console.print("[cyan]--- listing beans ---[/cyan]")
    for name in registry.list_beans():
        console.print(name)
    return 0


async def cmd_status(registry: BeanRegistry, args: argparse.Namespace) -> int:
    bean = registry.read(args.name)
    bean_path = registry.bean_path(args.name)
    rows = []
    for module in bean.modules.values():
        status = module.status
        if isinstance(status, Loaded):
            rows.append((module.name, module.kind, "loaded", status.branch, status.hash[:12],
                         str(module.module_path(bean_path))))
        else:
            rows.append((module.name, module.kind, "unloaded", "", "", ""))
    print_summary_table(
        rows,
        columns=("Module", "Kind", "State", "Branch", "Hash", "Path"),
        title=f"Bean {bean.name}",
    )
    return 0


async def cmd_mkosi(registry: BeanRegistry, args: argparse.Namespace) -> int:
    bean = registry.read(args.name)
    return await run_mkosi(
        bean,
        registry.bean_path(args.name),
        _strip_separator(args.mkosi_args),
        use_profile=not args.no_profile,
    )


async def cmd_fast_fstests(registry: BeanRegistry, args: argparse.Namespace) -> int:
    fast_fstests_dir = args.fast_fstests_dir or registry.config.fast_fstests_dir
    if fast_fstests_dir is None:
        raise BeansError("fast-fstests directory not set; use --fast-fstests-dir or FAST_FSTESTS_DIR")
    bean = registry.read(args.name)
    return await run_fast_fstests(
        bean,
        registry.bean_path(args.name),
        fast_fstests_dir,
        _strip_separator(args.fast_fstests_args),
    )


def _strip_separator(extra: list[str]) -> list[str]:
    return extra[1:] if extra and extra[0] == "--" else extra


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="beans",
        description="beans -- per-feature kernel development environments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  beans configure feature-x\n"
            "  beans sync feature-x --all\n"
            "  beans mkosi feature-x -- boot\n"
        ),
    )
    parser.add_argument("--beans-dir", type=Path, default=None,
                        help="Directory holding beans (default: ~/.config/beans)")
    parser.add_argument("--mkosi-kernel-dir", type=Path, default=None,
                        help="Path to mkosi-kernel")
    parser.add_argument("--linux-dir", type=Path, default=None, help="Path to linux")
    parser.add_argument("--btrfs-progs-dir", type=Path, default=None,
                        help="Path to btrfs-progs")
    parser.add_argument("--fstests-dir", type=Path, default=None, help="Path to fstests")

    sub = parser.add_subparsers(dest="command", required=True)

    configure = sub.add_parser("configure", help="Create or extend a bean")
    configure.add_argument("name", help="Name of the bean")
    configure.add_argument("-i", "--interactive", action="store_true", help="Run interactively")
    configure.add_argument("-p", "--profile", default=None, help="mkosi-kernel profile")
    configure.add_argument("--base-ref", action="append", default=[], metavar="MODULE=REF",
                           help="Start a module's bean branch from REF")
    configure.add_argument("--no-load", action="store_true",
                           help="Only record the modules, do not create worktrees")
    configure.set_defaults(handler=cmd_configure)

    for command, handler, help_text in (
        ("load", cmd_load, "Load modules into a bean"),
        ("unload", cmd_unload, "Unload modules from a bean"),
    ):
        p = sub.add_parser(command, help=help_text)
        p.add_argument("name", help="Name of the bean")
        p.add_argument("modules", nargs="*", help="Modules (default: all)")
        p.set_defaults(handler=handler)

    sync = sub.add_parser("sync", help="Advance clean worktrees to the bean branches")
    sync.add_argument("name", help="Name of the bean")
    sync.add_argument("modules", nargs="*", help="Modules (default: all)")
    sync.add_argument("-a", "--all", action="store_true", help="Sync all modules")
    sync.set_defaults(handler=cmd_sync)

    status = sub.add_parser("status", help="Show module status of a bean")
    status.add_argument("name", help="Name of the bean")
    status.set_defaults(handler=cmd_status)

    list_cmd = sub.add_parser("list", aliases=["ls"], help="List beans")
    list_cmd.set_defaults(handler=cmd_list)

    remove = sub.add_parser("remove", help="Unload all modules and delete a bean")
    remove.add_argument("name", help="Name of the bean")
    remove.set_defaults(handler=cmd_remove)

    mkosi = sub.add_parser("mkosi", help="mkosi wrapper for a bean")
    mkosi.add_argument("name", help="Name of the bean")
    mkosi.add_argument("-n", "--no-profile", action="store_true",
                       help="Do not pass the bean's profile to mkosi")
    mkosi.add_argument("mkosi_args", nargs=argparse.REMAINDER,
                       help="Arguments passed to mkosi")
    mkosi.set_defaults(handler=cmd_mkosi)

    fstests = sub.add_parser("fast-fstests", help="fast-fstests wrapper for a bean")
    fstests.add_argument("name", help="Name of the bean")
    fstests.add_argument("--fast-fstests-dir", type=Path, default=None,
                         help="Path to fast-fstests")
    fstests.add_argument("fast_fstests_args", nargs=argparse.REMAINDER,
                         help="Arguments passed to fast-fstests")
    fstests.set_defaults(handler=cmd_fast_fstests)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``beans`` and ``python -m beans``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        registry = BeanRegistry(resolve_config(args))
        code = asyncio.run(args.handler(registry, args))
    except BeansError as exc:
        print_error(f"Error: {escape(str(exc))}")
        sys.exit(1)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
