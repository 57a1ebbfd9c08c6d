from __future__ import annotations

import asyncio

import pytest

from cli_monitor.cli_process import CliProcess


class TestCliProcess:
    @pytest.mark.asyncio
    async def test_spawn_and_read(self):
        proc = CliProcess(command="echo", args=["● /commit(Create a git commit)"], cwd="/tmp")
        await proc.spawn()
        await asyncio.sleep(0.3)
        output = proc.read_available()
        assert "/commit" in output
        await proc.terminate()

    @pytest.mark.asyncio
    async def test_terminate(self):
        proc = CliProcess(command="cat", args=[], cwd="/tmp")
        await proc.spawn()
        assert proc.is_alive()
        await proc.terminate()
        assert not proc.is_alive()

    @pytest.mark.asyncio
    async def test_exit_code_after_terminate(self):
        proc = CliProcess(command="cat", args=[], cwd="/tmp")
        await proc.spawn()
        await proc.terminate()
        assert proc.exit_code() is not None

    @pytest.mark.asyncio
    async def test_read_from_empty_buffer(self):
        proc = CliProcess(command="cat", args=[], cwd="/tmp")
        await proc.spawn()
        assert isinstance(proc.read_available(), str)
        await proc.terminate()

    @pytest.mark.asyncio
    async def test_read_after_exit(self):
        proc = CliProcess(command="true", args=[], cwd="/tmp")
        await proc.spawn()
        await asyncio.sleep(0.3)
        assert isinstance(proc.read_available(), str)
        assert not proc.is_alive()

    @pytest.mark.asyncio
    async def test_cwd_is_set(self, tmp_path):
        proc = CliProcess(command="pwd", args=[], cwd=str(tmp_path))
        await proc.spawn()
        await asyncio.sleep(0.3)
        assert str(tmp_path) in proc.read_available()
        await proc.terminate()

    def test_not_spawned(self):
        proc = CliProcess(command="cat", args=[], cwd="/tmp")
        assert proc.is_alive() is False
        assert proc.read_available() == ""
        assert proc.exit_code() is None

    def test_command_line(self):
        proc = CliProcess(command="claude", args=["--model", "opus plan"], cwd="/tmp")
        assert proc.command_line == "claude --model 'opus plan'"

    def test_env_expands_home(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/tester")
        proc = CliProcess(command="cat", args=[], cwd="/tmp", env={"CLAUDE_CONFIG_DIR": "~/.claude-work"})
        assert proc._env["CLAUDE_CONFIG_DIR"] == "/home/tester/.claude-work"

    def test_env_inherits_current(self, monkeypatch):
        monkeypatch.setenv("CLI_MONITOR_TEST_VAR", "yes")
        proc = CliProcess(command="cat", args=[], cwd="/tmp")
        assert proc._env["CLI_MONITOR_TEST_VAR"] == "yes"
