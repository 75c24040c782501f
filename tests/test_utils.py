"""Unit tests for command execution and console helpers (beans.utils)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from beans.errors import ToolInvocationError
from beans.utils import (
    print_error,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)


class TestPrintHelpers:
    @pytest.mark.unit
    def test_messages(self, capsys):
        print_step("setting up new bean feature-x")
        print_success("done")
        print_warning("careful")
        print_error("broken")
        out = capsys.readouterr().out
        assert "--- setting up new bean feature-x ---" in out
        for text in ("done", "careful", "broken"):
            assert text in out

    @pytest.mark.unit
    def test_summary_table(self, capsys):
        print_summary_table(
            [("linux", "loaded"), ("fstests", "unloaded")],
            columns=("Module", "State"),
            title="Bean feature-x",
        )
        out = capsys.readouterr().out
        assert "Bean feature-x" in out
        assert "fstests" in out
        assert "unloaded" in out


class TestRunCommandLaunchFailures:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_program(self, tmp_path: Path):
        spawn = AsyncMock(side_effect=FileNotFoundError(2, "No such file", "mkosi"))
        with patch("asyncio.create_subprocess_exec", spawn):
            with pytest.raises(ToolInvocationError, match="Command not found: mkosi") as exc_info:
                await run_command(["mkosi", "build"], cwd=tmp_path)
        assert exc_info.value.command == "mkosi build"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_working_directory(self, tmp_path: Path):
        missing = tmp_path / "feature-x" / "mkosi-kernel"
        spawn = AsyncMock(side_effect=FileNotFoundError(2, "No such file", str(missing)))
        with patch("asyncio.create_subprocess_exec", spawn):
            with pytest.raises(ToolInvocationError, match="Working directory does not exist"):
                await run_command(["mkosi"], cwd=missing)
