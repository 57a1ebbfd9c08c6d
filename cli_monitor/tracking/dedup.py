from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

from cli_monitor.log_setup import TRACE
from cli_monitor.parsing.models import Event

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 3000
# Only this much of the content participates in the dedup key
KEY_CONTENT_CHARS = 100


class EventDeduplicator:
    """Suppress identical events repeated within a sliding time window.

    Keys are ``kind:content[:100]``. Only literal repeats are suppressed;
    bursts of distinct events always pass. A suppressed repeat does not
    extend the window. Keys older than twice the window are swept.
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self._window = window_ms / 1000
        self._clock = clock
        self._last_seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._last_seen)

    @staticmethod
    def key_for(event: Event) -> str:
        return f"{event.kind.value}:{event.content[:KEY_CONTENT_CHARS]}"

    def admit(self, event: Event) -> bool:
        """Record ``event`` and return True unless it repeats within the window."""
        key = self.key_for(event)
        now = self._clock()
        last = self._last_seen.get(key)
        if last is not None and now - last < self._window:
            logger.log(TRACE, "Skipping duplicate %s", key[:60])
            return False
        self._last_seen[key] = now
        return True

    def sweep(self) -> int:
        """Drop keys not seen for twice the window; return how many were dropped."""
        now = self._clock()
        expired = [k for k, seen in self._last_seen.items() if now - seen > self._window * 2]
        for key in expired:
            del self._last_seen[key]
        return len(expired)

    def filter(self, events: Iterable[Event]) -> list[Event]:
        """Admit a batch of events in order, then sweep expired keys."""
        fresh = [event for event in events if self.admit(event)]
        self.sweep()
        return fresh

    def clear(self) -> None:
        self._last_seen.clear()
