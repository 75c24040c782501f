"""Unit tests for the command-line front end (beans.cli)."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from beans.cli import build_parser, main, resolve_config
from beans.config import BeanConfig
from beans.registry import BeanRegistry


def _run(argv: list[str]) -> None:
    with patch.dict(os.environ, {}, clear=True):
        main(argv)


class TestParser:
    @pytest.mark.unit
    def test_list_alias(self):
        args = build_parser().parse_args(["ls"])
        assert args.command == "ls"

    @pytest.mark.unit
    def test_sync_modules(self):
        args = build_parser().parse_args(["sync", "feature-x", "linux", "fstests"])
        assert args.modules == ["linux", "fstests"]
        assert args.all is False

    @pytest.mark.unit
    def test_mkosi_passthrough(self):
        args = build_parser().parse_args(["mkosi", "feature-x", "--", "boot", "-f"])
        assert args.mkosi_args[-2:] == ["boot", "-f"]

    @pytest.mark.unit
    def test_cli_overrides_env(self, tmp_path: Path):
        args = build_parser().parse_args(
            ["--beans-dir", str(tmp_path), "--linux-dir", "/cli/linux", "list"]
        )
        with patch.dict(os.environ, {"LINUX_DIR": "/env/linux", "FSTESTS_DIR": "/env/fstests"},
                        clear=True):
            config = resolve_config(args)
        assert config.beans_dir == tmp_path
        assert config.linux_dir == Path("/cli/linux")
        assert config.fstests_dir == Path("/env/fstests")


class TestCommands:
    @pytest.mark.unit
    def test_configure_no_load(self, tmp_path: Path):
        _run(["--beans-dir", str(tmp_path), "--linux-dir", "/src/linux",
              "--mkosi-kernel-dir", "/src/mkosi-kernel",
              "configure", "feature-x", "-p", "btrfs", "--base-ref", "linux=for-next",
              "--no-load"])

        bean = BeanConfig.load(tmp_path / "feature-x" / "bean.json")
        assert list(bean.modules) == ["mkosi-kernel", "linux"]
        assert bean.modules["mkosi-kernel"].profile == "btrfs"
        assert bean.modules["linux"].base_ref == "for-next"
        assert not bean.modules["linux"].is_loaded

    @pytest.mark.unit
    def test_configure_loads(self, tmp_path: Path):
        with patch.object(BeanRegistry, "load", AsyncMock()) as load:
            _run(["--beans-dir", str(tmp_path), "--linux-dir", "/src/linux",
                  "configure", "feature-x"])
        load.assert_awaited_once_with("feature-x")

    @pytest.mark.unit
    def test_bad_base_ref_exits(self, tmp_path: Path):
        with pytest.raises(SystemExit) as exc_info:
            _run(["--beans-dir", str(tmp_path), "configure", "feature-x", "--base-ref", "linux"])
        assert exc_info.value.code == 1

    @pytest.mark.unit
    def test_invalid_bean_name_exits(self, tmp_path: Path):
        with pytest.raises(SystemExit) as exc_info:
            _run(["--beans-dir", str(tmp_path), "configure", "a/b", "--no-load"])
        assert exc_info.value.code == 1

    @pytest.mark.unit
    def test_sync_unknown_bean_exits(self, tmp_path: Path):
        with pytest.raises(SystemExit) as exc_info:
            _run(["--beans-dir", str(tmp_path), "sync", "nope", "--all"])
        assert exc_info.value.code == 1

    @pytest.mark.unit
    def test_sync_all_dispatches_every_module(self, tmp_path: Path):
        with patch.object(BeanRegistry, "sync", AsyncMock()) as sync:
            _run(["--beans-dir", str(tmp_path), "sync", "feature-x", "linux", "--all"])
        sync.assert_awaited_once_with("feature-x", None)

    @pytest.mark.unit
    def test_list(self, tmp_path: Path, capsys):
        _run(["--beans-dir", str(tmp_path), "configure", "feature-x", "--no-load"])
        _run(["--beans-dir", str(tmp_path), "list"])
        assert "feature-x" in capsys.readouterr().out

    @pytest.mark.unit
    def test_status(self, tmp_path: Path, capsys):
        _run(["--beans-dir", str(tmp_path), "--linux-dir", "/src/linux",
              "configure", "feature-x", "--no-load"])
        _run(["--beans-dir", str(tmp_path), "status", "feature-x"])
        out = capsys.readouterr().out
        assert "linux" in out
        assert "unloaded" in out

    @pytest.mark.unit
    def test_mkosi_nonzero_exit(self, tmp_path: Path):
        _run(["--beans-dir", str(tmp_path), "--mkosi-kernel-dir", "/src/mkosi-kernel",
              "configure", "feature-x", "--no-load"])
        with patch("beans.cli.run_mkosi", AsyncMock(return_value=3)) as run:
            with pytest.raises(SystemExit) as exc_info:
                _run(["--beans-dir", str(tmp_path), "mkosi", "feature-x", "--", "boot"])
        assert exc_info.value.code == 3
        assert run.call_args.args[2] == ["boot"]

    @pytest.mark.unit
    def test_fast_fstests_requires_dir(self, tmp_path: Path):
        _run(["--beans-dir", str(tmp_path), "configure", "feature-x", "--no-load"])
        with pytest.raises(SystemExit) as exc_info:
            _run(["--beans-dir", str(tmp_path), "fast-fstests", "feature-x"])
        assert exc_info.value.code == 1

    @pytest.mark.unit
    def test_corrupt_bean_config_exits(self, tmp_path: Path, capsys):
        _run(["--beans-dir", str(tmp_path), "configure", "feature-x", "--no-load"])
        (tmp_path / "feature-x" / "bean.json").write_text("{truncated", encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            _run(["--beans-dir", str(tmp_path), "status", "feature-x"])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Error:" in out
        assert "Traceback" not in out

    @pytest.mark.unit
    def test_missing_git_exits(self, tmp_path: Path, capsys):
        _run(["--beans-dir", str(tmp_path), "--linux-dir", str(tmp_path),
              "configure", "feature-x", "--no-load"])
        spawn = AsyncMock(side_effect=FileNotFoundError(2, "No such file", "git"))

        with patch("asyncio.create_subprocess_exec", spawn):
            with pytest.raises(SystemExit) as exc_info:
                _run(["--beans-dir", str(tmp_path), "load", "feature-x"])

        assert exc_info.value.code == 1
        assert "Command not found: git" in capsys.readouterr().out
