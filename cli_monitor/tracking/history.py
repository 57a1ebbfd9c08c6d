from __future__ import annotations

from typing import Iterable

from cli_monitor.parsing.models import Event

DEFAULT_CAPACITY = 1000
DEFAULT_RETAIN = 500


class EventHistory:
    """Append-only event buffer with a hard cap and bulk trimming.

    Once the length exceeds ``capacity`` the oldest entries are discarded
    in one pass so that only the newest ``retain`` remain.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, retain: int = DEFAULT_RETAIN) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if not 0 <= retain < capacity:
            raise ValueError("retain must be smaller than capacity")
        self.capacity = capacity
        self.retain = retain
        self._events: list[Event] = []

    def __len__(self) -> int:
        return len(self._events)

    def append(self, event: Event) -> None:
        self._events.append(event)
        if len(self._events) > self.capacity:
            del self._events[: len(self._events) - self.retain]

    def extend(self, events: Iterable[Event]) -> None:
        for event in events:
            self.append(event)

    def get_all(self) -> list[Event]:
        """Return a copy of the buffered events, oldest first."""
        return list(self._events)

    def clear(self) -> None:
        self._events = []
