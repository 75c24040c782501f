"""Classification of finished subprocesses.

A ``ProcessResult`` is what every external command run by beans produces.
Callers decide what counts as success: most git commands must exit 0, but
some return a distinguished non-zero code meaning "already in the desired
state", which idempotent setup code passes as allowed.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .errors import FailureKind, ToolInvocationError


@dataclass
class ProcessResult:
    """Outcome of a finished external command."""

    args: list[str]
    returncode: int | None
    stdout: str = ""
    stderr: str = ""
    cwd: Path | None = field(default=None)

    @property
    def command(self) -> str:
        return " ".join(self.args)

    @property
    def exit_code(self) -> int | None:
        """Numeric exit code, or ``None`` if the process was killed by a signal."""
        if self.returncode is None or self.returncode < 0:
            return None
        return self.returncode

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def expect_success(self) -> "ProcessResult":
        """Return ``self`` if the command succeeded, raise otherwise.

        Raises:
            ToolInvocationError: With kind ``UNEXPECTED_EXIT``.
        """
        if self.success:
            return self
        raise ToolInvocationError(
            f"Command failed (exit {self.returncode}): {self.command}"
            + (f"\n{self.stderr}" if self.stderr else ""),
            kind=FailureKind.UNEXPECTED_EXIT,
            command=self.command,
            returncode=self.returncode,
            stderr=self.stderr,
        )

    def expect(self, allowed_codes: Iterable[int]) -> "ProcessResult":
        """Return ``self`` if the exit code is one of *allowed_codes*.

        Raises:
            ToolInvocationError: ``NO_EXIT_CODE`` when the process reported no
                numeric exit code, ``UNEXPECTED_EXIT`` when the code is not
                in the allow-list.
        """
        code = self.exit_code
        if code is None:
            raise ToolInvocationError(
                f"Unable to get exit code for command: {self.command}",
                kind=FailureKind.NO_EXIT_CODE,
                command=self.command,
                returncode=self.returncode,
                stderr=self.stderr,
            )

        allowed = list(allowed_codes)
        if code in allowed:
            return self

        raise ToolInvocationError(
            f"Unexpected exit code {code} (allowed: {allowed}): {self.command}"
            + (f"\n{self.stderr}" if self.stderr else ""),
            kind=FailureKind.UNEXPECTED_EXIT,
            command=self.command,
            returncode=code,
            stderr=self.stderr,
        )
