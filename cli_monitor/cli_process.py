from __future__ import annotations

import asyncio
import logging
import os
import shlex
from pathlib import Path

import pexpect

from cli_monitor.log_setup import TRACE

logger = logging.getLogger(__name__)


class CliProcess:
    """Async wrapper around a pexpect-managed CLI subprocess.

    Spawns the monitored coding-assistant CLI under a PTY so it emits the
    same escape-laden output a user would see, and drains that output in
    raw chunks for the classification pipeline. Blocking pexpect calls run
    on the default executor.
    """

    def __init__(self, command: str, args: list[str], cwd: str, env: dict[str, str] | None = None) -> None:
        """Initialize a CliProcess without spawning it.

        Args:
            command: The CLI command to execute (e.g. "claude").
            args: List of command-line arguments to pass.
            cwd: Working directory in which to spawn the process.
            env: Extra environment variables to set for the process.
                 Merged on top of the current environment. Tilde (~)
                 in values is expanded to the user home directory.
        """
        self._command = command
        self._args = args
        self._cwd = cwd
        self._env = self._build_env(env or {})
        self._process: pexpect.spawn | None = None

    @staticmethod
    def _build_env(extra: dict[str, str]) -> dict[str, str]:
        """Merge extra env vars into a copy of the current environment.

        Expands ~ to the user home directory in values.
        """
        merged = os.environ.copy()
        for key, value in extra.items():
            value = str(value)
            merged[key] = str(Path(value).expanduser()) if "~" in value else value
        return merged

    async def spawn(self) -> None:
        """Spawn the CLI in a PTY on a background thread."""
        logger.debug("Spawning process: cmd=%s args=%s cwd=%s", self._command, self._args, self._cwd)
        loop = asyncio.get_running_loop()
        self._process = await loop.run_in_executor(
            None,
            lambda: pexpect.spawn(
                self._command,
                args=list(self._args),
                cwd=self._cwd,
                env=self._env,
                encoding="utf-8",
                codec_errors="replace",
                timeout=5,
                maxread=4096,
            ),
        )
        logger.debug("Process spawned pid=%d", self._process.pid)

    @property
    def command_line(self) -> str:
        return shlex.join([self._command, *self._args])

    def is_alive(self) -> bool:
        """Return True if the process has been spawned and is still running."""
        if self._process is None:
            return False
        return self._process.isalive()

    def read_available(self) -> str:
        """Read all currently available output from the PTY.

        Drains the PTY in a non-blocking loop and returns everything read.
        Safe to call when no output is available or before spawning.

        Returns:
            Accumulated raw output, or an empty string.
        """
        if self._process is None:
            return ""
        chunks: list[str] = []
        try:
            while True:
                try:
                    chunk = self._process.read_nonblocking(size=4096, timeout=0)
                    logger.log(TRACE, "PTY read chunk len=%d", len(chunk))
                    chunks.append(chunk)
                except pexpect.TIMEOUT:
                    break
                except pexpect.EOF:
                    break
        except OSError as exc:
            logger.warning("Unexpected error draining PTY buffer: %s", exc)
        return "".join(chunks)

    async def terminate(self) -> None:
        """Close the PTY process if it is still alive."""
        if self._process is None:
            return
        logger.debug("Terminating process pid=%s", self._process.pid)
        loop = asyncio.get_running_loop()
        if self._process.isalive():
            await loop.run_in_executor(None, self._process.close, True)

    def exit_code(self) -> int | None:
        """Return the exit code or signal number of the terminated process.

        Returns:
            The integer exit code, the signal number that killed the
            process, or None if unavailable.
        """
        if self._process is None:
            return None
        # pexpect sets signalstatus (not exitstatus) when process is killed by signal
        if self._process.exitstatus is not None:
            return self._process.exitstatus
        return self._process.signalstatus
