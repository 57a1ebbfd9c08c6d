from __future__ import annotations

import logging
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cli_monitor.config import AppConfig, KnownItemsConfig
from cli_monitor.main import (
    BUILTIN_AGENTS,
    _parse_args,
    build_pipeline,
    build_registry,
    resolve_config,
    run_monitor,
)
from cli_monitor.parsing.models import ItemKind, ItemOrigin


def _fake_process(chunks, exit_code=0):
    proc = MagicMock()
    proc.spawn = AsyncMock()
    proc.terminate = AsyncMock()
    proc.command_line = "claude"
    proc.read_available.side_effect = list(chunks) + [""] * 5
    proc.is_alive.return_value = False
    proc.exit_code.return_value = exit_code
    return proc


class TestBuildRegistry:
    @pytest.mark.asyncio
    async def test_builtin_agents_included(self):
        reg = build_registry(KnownItemsConfig(), ttl=30.0)
        await reg.refresh()
        assert set(reg.names(ItemKind.AGENT)) == {a["name"] for a in BUILTIN_AGENTS}
        assert reg.get("agent__Explore").origin == ItemOrigin.BUILTIN

    @pytest.mark.asyncio
    async def test_configured_items(self):
        known = KnownItemsConfig(mcps=["github"], skills=["commit"], agents=["code-reviewer", "Plan"])
        reg = build_registry(known, ttl=30.0)
        await reg.refresh()
        assert await reg.resolve_type("github") == ItemKind.MCP
        assert await reg.resolve_type("commit") == ItemKind.SKILL
        assert reg.get("agent__code-reviewer").origin == ItemOrigin.FILE
        # a configured name replaces the builtin entry of the same name
        assert reg.get("agent__Plan").origin == ItemOrigin.FILE


class TestBuildPipeline:
    @pytest.mark.asyncio
    async def test_uses_monitor_settings(self):
        config = AppConfig()
        config.monitor.history_capacity = 20
        config.monitor.history_retain = 5
        pipeline = build_pipeline(config)
        assert pipeline.history.capacity == 20
        assert pipeline.history.retain == 5
        pipeline.dispose()

    @pytest.mark.asyncio
    async def test_logs_events_and_state(self, caplog):
        pipeline = build_pipeline(AppConfig())
        with caplog.at_level(logging.INFO, logger="cli_monitor.main"):
            pipeline.feed("● /commit(Create a git commit)\n[Bash] git status\n☐ Update docs\n")
        pipeline.dispose()
        assert "[skill_call] commit: Create a git commit" in caplog.text
        assert "[tool_call] Bash: git status" in caplog.text
        assert "[plan_progress] Update docs" in caplog.text
        assert "START skill commit (start)" in caplog.text


class TestRunMonitor:
    @pytest.mark.asyncio
    async def test_feeds_output_and_returns_exit_code(self, caplog):
        config = AppConfig()
        config.status_inbox.enabled = False
        proc = _fake_process(["[Bash] npm test\n"], exit_code=3)
        with patch("cli_monitor.main.CliProcess", return_value=proc), \
                caplog.at_level(logging.INFO, logger="cli_monitor.main"):
            code = await run_monitor(config)
        assert code == 3
        proc.spawn.assert_awaited_once()
        proc.terminate.assert_awaited_once()
        assert "[tool_call] Bash: npm test" in caplog.text
        assert "Observed 1 events" in caplog.text

    @pytest.mark.asyncio
    async def test_status_inbox_started_and_stopped(self, tmp_path):
        config = AppConfig()
        config.status_inbox.path = str(tmp_path / "status.json")
        proc = _fake_process([])
        inbox = MagicMock()
        inbox.stop = AsyncMock()
        with patch("cli_monitor.main.CliProcess", return_value=proc), \
                patch("cli_monitor.main.StatusInbox", return_value=inbox) as inbox_cls:
            code = await run_monitor(config)
        assert code == 0
        assert inbox_cls.call_args.args[0] == str(tmp_path / "status.json")
        inbox.start.assert_called_once()
        inbox.stop.assert_awaited_once()


class TestResolveConfig:
    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("monitor:\n  dedup_window_ms: 1500\n")
        assert resolve_config(str(path)).monitor.dedup_window_ms == 1500

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = resolve_config(None)
        assert config.monitor.dedup_window_ms == 3000

    def test_picks_up_local_config(self, tmp_path, monkeypatch):
        (tmp_path / "config.yaml").write_text("cli:\n  command: claude-beta\n")
        monkeypatch.chdir(tmp_path)
        assert resolve_config(None).cli.command == "claude-beta"


class TestParseArgs:
    def test_defaults(self):
        with patch.object(sys, "argv", ["main"]):
            args = _parse_args()
            assert args.config is None
            assert args.debug is False
            assert args.trace is False
            assert args.verbose is False

    def test_custom_config_and_debug(self):
        with patch.object(sys, "argv", ["main", "my.yaml", "--debug"]):
            args = _parse_args()
            assert args.config == "my.yaml"
            assert args.debug is True

    def test_trace_verbose_flags(self):
        with patch.object(sys, "argv", ["main", "--trace", "--verbose"]):
            args = _parse_args()
            assert args.trace is True
            assert args.verbose is True
