"""Out-of-band start/stop reports from the CLI's hook system.

A hook script writes the latest status to a file as JSON::

    {"hookSpecificOutput": {
        "hookEventName": "SubagentStart",
        "additionalContext": "{\\"event\\": \\"START\\", \\"agentId\\": ...}",
        "systemMessage": "I'm going to use the Task tool to launch a x agent"}}

:class:`StatusInbox` polls that file and hands each new report to a
callback. Parsing never raises: malformed payloads fall back to free-text
extraction from ``systemMessage`` and are otherwise dropped.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Callable

from cli_monitor.parsing.models import ItemKind, StatusReport

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 500

_HOOK_EVENTS = {"SubagentStart": "start", "SubagentStop": "stop"}
_STATUS_EVENTS = {"start": "start", "stop": "stop"}

# "... launch a bug-debugger agent ..." / "The commit skill has completed"
_SYSTEM_MESSAGE_RES: tuple[tuple[re.Pattern, ItemKind], ...] = (
    (re.compile(r"([\w-]+)\s+agent\b"), ItemKind.AGENT),
    (re.compile(r"([\w-]+)\s+skill\b"), ItemKind.SKILL),
    (re.compile(r"([\w-]+)\s+plugin\b"), ItemKind.PLUGIN),
)


def _kind(value: Any) -> ItemKind:
    try:
        return ItemKind(str(value).lower())
    except ValueError:
        return ItemKind.AGENT


def _from_status(data: dict, default_event: str | None = None) -> StatusReport | None:
    event = _STATUS_EVENTS.get(str(data.get("event", "")).lower(), default_event)
    item_id = data.get("agentId") or data.get("id")
    if event is None or not item_id:
        return None
    return StatusReport(
        event=event,
        id=str(item_id),
        display_name=str(data.get("agentName") or data.get("displayName") or item_id),
        kind=_kind(data.get("type") or data.get("kind") or "agent"),
        timestamp=float(data.get("timestamp") or time.time() * 1000),
        model=data.get("model"),
        description=data.get("description"),
    )


def _from_system_message(event: str, message: str) -> StatusReport | None:
    for pattern, kind in _SYSTEM_MESSAGE_RES:
        m = pattern.search(message)
        if m:
            return StatusReport(
                event=event,
                id=m.group(1),
                display_name=m.group(1),
                kind=kind,
                timestamp=time.time() * 1000,
            )
    return None


def parse_status_message(raw: str | bytes | dict) -> StatusReport | None:
    """Parse one status payload into a StatusReport.

    Accepts the hook envelope or a bare status object, as a JSON string or
    an already-decoded dict.

    Returns:
        The parsed report, or None when nothing usable could be extracted.
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug("Status payload is not JSON (partial write?)")
            return None
    else:
        data = raw
    if not isinstance(data, dict):
        return None

    hook = data.get("hookSpecificOutput")
    if not isinstance(hook, dict):
        try:
            return _from_status(data)
        except (TypeError, ValueError):
            return None

    name = hook.get("hookEventName")
    event = _HOOK_EVENTS.get(name) if isinstance(name, str) else None
    if event is None:
        return None

    context = hook.get("additionalContext")
    if context:
        try:
            status = json.loads(context) if isinstance(context, str) else context
            if isinstance(status, dict):
                report = _from_status(status, default_event=event)
                if report is not None:
                    return report
        except (TypeError, ValueError):
            logger.warning("Unparseable additionalContext: %r", str(context)[:120])

    message = hook.get("systemMessage")
    if isinstance(message, str) and message:
        return _from_system_message(event, message)
    return None


class StatusInbox:
    """Poll a status file and deliver each changed payload as a StatusReport."""

    def __init__(
        self,
        path: str,
        callback: Callable[[StatusReport], None],
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    ) -> None:
        self.path = Path(path)
        self._callback = callback
        self._interval = poll_interval_ms / 1000
        self._task: asyncio.Task | None = None
        self._last_content: str | None = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling on the running event loop."""
        if self.is_active:
            logger.debug("Status inbox already watching %s", self.path)
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Watching status inbox %s", self.path)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("Stopped watching status inbox")

    def _read(self) -> str | None:
        try:
            # partial writes can end mid-character
            return self.path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None

    async def poll_once(self) -> StatusReport | None:
        """Read the file once; deliver and return a report if it changed."""
        loop = asyncio.get_running_loop()
        try:
            content = await loop.run_in_executor(None, self._read)
        except (OSError, ValueError) as exc:
            logger.warning("Cannot read status inbox %s: %s", self.path, exc)
            return None
        if content is None or not content.strip() or content == self._last_content:
            return None
        self._last_content = content

        report = parse_status_message(content)
        if report is None:
            logger.debug("Dropped unusable status payload")
            return None
        logger.debug("Status %s %s %s", report.event, report.kind.value, report.id)
        try:
            self._callback(report)
        except Exception:
            logger.exception("Status callback failed for %s", report.id)
        return report

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Status inbox poll failed")
            await asyncio.sleep(self._interval)
