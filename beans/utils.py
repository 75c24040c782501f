"""Shared utility functions for beans.

Provides async command execution and the Rich-based console helpers used by
every other module for user-facing output.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .errors import ToolInvocationError
from .process import ProcessResult

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = None,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> ProcessResult:
    """Run a command asynchronously and return its ``ProcessResult``.

    The result is returned whatever the exit status; callers classify it with
    ``expect_success`` or ``expect``.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
            ``None`` waits indefinitely.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams and the result strings are empty).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``ProcessResult``.  A process killed on timeout has no return code.

    Raises:
        ToolInvocationError: If the program or the working directory does not
            exist.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=stdout_pipe,
            stderr=stderr_pipe,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    except FileNotFoundError as exc:
        if cwd and not Path(cwd).is_dir():
            raise ToolInvocationError(
                f"Working directory does not exist: {cwd}", command=" ".join(cmd)
            ) from exc
        raise ToolInvocationError(
            f"Command not found: {cmd[0]} (is it installed and on PATH?)",
            command=" ".join(cmd),
        ) from exc

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return ProcessResult(
            args=list(cmd),
            returncode=None,
            stderr=f"Command timed out after {timeout}s: {' '.join(cmd)}",
            cwd=Path(cwd) if cwd else None,
        )

    return ProcessResult(
        args=list(cmd),
        returncode=process.returncode,
        stdout=(stdout_bytes or b"").decode("utf-8", errors="replace").strip(),
        stderr=(stderr_bytes or b"").decode("utf-8", errors="replace").strip(),
        cwd=Path(cwd) if cwd else None,
    )


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_step(message: str) -> None:
    """Print a ``--- message ---`` progress line."""
    console.print(f"[cyan]---[/cyan] {message} [cyan]---[/cyan]")


def print_summary_table(
    rows: list[tuple[str, ...]],
    columns: tuple[str, ...],
    title: str = "Summary",
) -> None:
    """Print a table with the given column headers.

    Args:
        rows: One tuple per row, matching *columns* in length.
        columns: Column headers; the first is rendered dim.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for index, column in enumerate(columns):
        if index == 0:
            table.add_column(column, style="dim", no_wrap=True)
        else:
            table.add_column(column)

    for row in rows:
        table.add_row(*(str(value) for value in row))

    console.print(table)


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
