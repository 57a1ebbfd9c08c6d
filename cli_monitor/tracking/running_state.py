"""Active-unit lifecycle: Inactive → Active → Inactive, per item id.

Two channels feed the same id-keyed map: events classified from terminal
text and out-of-band hook status reports. Whichever reports last wins.

An item leaves the Active state when

- a stop is reported for its id,
- an end-of-execution phrase is seen (stops every active id, since the
  CLI does not say which unit finished), or
- its timeout fires without any stop.

Each :class:`ActiveItem` owns its timer handle; every exit from Active
cancels it, so a stopped item can never be stopped again by its timer.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from cli_monitor.parsing.line_patterns import is_end_signal
from cli_monitor.parsing.models import (
    ActiveItem,
    Event,
    ItemKind,
    StateChange,
    StateSource,
    StatusReport,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10000

StateCallback = Callable[[StateChange], None]


class RunningStateTracker:
    """Track which named units are currently executing."""

    def __init__(
        self,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        self._timeout = timeout_ms / 1000
        self._clock = clock
        self._active: dict[str, ActiveItem] = {}
        self._subscribers: list[StateCallback] = []

    def __len__(self) -> int:
        return len(self._active)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, callback: StateCallback) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: StateCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _notify(self, item: ActiveItem, state: str, reason: str) -> None:
        change = StateChange(
            id=item.id,
            display_name=item.display_name,
            kind=item.kind,
            state=state,
            reason=reason,
        )
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception:
                logger.exception("State subscriber failed for %s %s", state, item.id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(
        self,
        item_id: str,
        display_name: str,
        kind: ItemKind,
        source: StateSource = StateSource.TERMINAL,
    ) -> ActiveItem:
        """Mark ``item_id`` active and (re)arm its timeout.

        Starting an id that is already active replaces its entry; the old
        timer is cancelled before the new one is armed.

        Without a running event loop the item is tracked without a timeout
        and stays active until a stop or an end signal.
        """
        previous = self._active.pop(item_id, None)
        if previous is not None and previous.timer is not None:
            previous.timer.cancel()

        item = ActiveItem(
            id=item_id,
            display_name=display_name,
            kind=kind,
            started_at=self._clock(),
            source=source,
        )
        item.timer = self._arm(item)
        self._active[item_id] = item

        logger.debug(
            "%s %s %s (%s)",
            "Restarted" if previous is not None else "Started",
            kind.value, item_id, source.value,
        )
        self._notify(item, "start", "start")
        return item

    def _arm(self, item: ActiveItem) -> asyncio.TimerHandle | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, %s tracked without timeout", item.id)
            return None
        return loop.call_later(self._timeout, self._expire, item)

    def stop(self, item_id: str, reason: str = "stop") -> bool:
        """Stop ``item_id``; return False if it was not active."""
        item = self._active.pop(item_id, None)
        if item is None:
            logger.debug("Stop for inactive id %s ignored", item_id)
            return False
        if item.timer is not None:
            item.timer.cancel()
            item.timer = None
        logger.debug("Stopped %s %s (%s)", item.kind.value, item_id, reason)
        self._notify(item, "stop", reason)
        return True

    def stop_all(self, reason: str = "stop") -> list[ActiveItem]:
        """Stop every active item; return the items that were stopped."""
        stopped = list(self._active.values())
        for item in stopped:
            self.stop(item.id, reason)
        return stopped

    def _expire(self, item: ActiveItem) -> None:
        # A restart replaces the entry; only the current owner may expire it
        if self._active.get(item.id) is not item:
            return
        item.timer = None
        logger.debug("Timeout for %s %s, auto-stopping", item.kind.value, item.id)
        self.stop(item.id, reason="timeout")

    # ------------------------------------------------------------------
    # Channel adapters
    # ------------------------------------------------------------------

    def observe(self, event: Event) -> ActiveItem | None:
        """Start tracking the unit a classified start-type event names."""
        kind = event.item_kind
        name = event.item_name
        if kind is None or not name:
            return None
        return self.start(name, event.content or name, kind, StateSource.TERMINAL)

    @staticmethod
    def is_end_signal(text: str) -> bool:
        return is_end_signal(text)

    def handle_end_signal(self, text: str) -> list[ActiveItem]:
        """Stop every active item when ``text`` is an end-of-execution phrase."""
        if not self._active or not is_end_signal(text):
            return []
        logger.debug("End signal %r stops %d items", text[:60], len(self._active))
        return self.stop_all(reason="end_signal")

    def apply_status(self, report: StatusReport) -> None:
        """Apply an out-of-band start/stop report."""
        if report.event == "start":
            self.start(report.id, report.display_name, report.kind, StateSource.HOOK)
        elif report.event == "stop":
            self.stop(report.id)
        else:
            logger.warning("Unknown status event %r for %s", report.event, report.id)

    # ------------------------------------------------------------------
    # Queries and teardown
    # ------------------------------------------------------------------

    def active_items(self) -> list[ActiveItem]:
        return list(self._active.values())

    def is_active(self, item_id: str) -> bool:
        return item_id in self._active

    def get(self, item_id: str) -> ActiveItem | None:
        return self._active.get(item_id)

    def dispose(self) -> None:
        """Cancel every armed timer and forget all items without notifying."""
        for item in self._active.values():
            if item.timer is not None:
                item.timer.cancel()
                item.timer = None
        self._active.clear()
