"""Per-chunk tracking state: dedup window, active units, event history."""

from cli_monitor.tracking.dedup import EventDeduplicator  # noqa: F401
from cli_monitor.tracking.history import EventHistory  # noqa: F401
from cli_monitor.tracking.running_state import RunningStateTracker  # noqa: F401

__all__ = ["EventDeduplicator", "EventHistory", "RunningStateTracker"]
