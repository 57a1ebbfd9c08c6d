"""OutputPipeline: raw terminal chunks in, typed events and state changes out.

Per chunk::

    clean_text → lines → (skip "> " user input)
        → LineClassifier (+ TypeRegistry) → EventDeduplicator
        → EventHistory → RunningStateTracker.observe → end-signal scan

then discovered MCP names are merged into the registry, dedup keys are
swept, and ``on_events`` receives the batch. ``feed`` is synchronous and
never raises to the ingestion loop.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from cli_monitor.log_setup import TRACE
from cli_monitor.parsing.line_classifier import LineClassifier
from cli_monitor.parsing.line_patterns import is_user_input
from cli_monitor.parsing.models import (
    ActiveItem,
    Event,
    ItemKind,
    NamedItem,
    PlanProgress,
    StateChange,
    StatusReport,
)
from cli_monitor.parsing.normalizer import clean_text, split_lines
from cli_monitor.parsing.plan import summarize_plan
from cli_monitor.registry import TypeRegistry
from cli_monitor.tracking.dedup import DEFAULT_WINDOW_MS, EventDeduplicator
from cli_monitor.tracking.history import DEFAULT_CAPACITY, DEFAULT_RETAIN, EventHistory
from cli_monitor.tracking.running_state import DEFAULT_TIMEOUT_MS, RunningStateTracker

logger = logging.getLogger(__name__)


class OutputPipeline:
    """Classification, dedup, running-state and history for one terminal."""

    def __init__(
        self,
        registry: TypeRegistry | None = None,
        *,
        dedup_window_ms: int = DEFAULT_WINDOW_MS,
        active_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        history_capacity: int = DEFAULT_CAPACITY,
        history_retain: int = DEFAULT_RETAIN,
        on_events: Callable[[list[Event]], None] | None = None,
        on_state_change: Callable[[StateChange], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Wire the pipeline stages together.

        Args:
            registry: Type registry consulted for bare ``● name`` markers.
                A private, source-less registry is used when omitted.
            dedup_window_ms: Window within which identical events are dropped.
            active_timeout_ms: Auto-stop delay for active units.
            history_capacity: Hard cap of the event history.
            history_retain: Entries kept when the cap is exceeded.
            on_events: Called once per chunk with the newly emitted events.
            on_state_change: Called for every start/stop/timeout transition.
            clock: Monotonic time source shared by dedup and tracker.
        """
        self.registry = registry if registry is not None else TypeRegistry()
        self.classifier = LineClassifier(self.registry)
        self.dedup = EventDeduplicator(dedup_window_ms, clock=clock)
        self.tracker = RunningStateTracker(active_timeout_ms, clock=clock)
        self.history = EventHistory(history_capacity, history_retain)
        self._on_events = on_events
        if on_state_change is not None:
            self.tracker.subscribe(on_state_change)
        self._disposed = False

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def feed(self, chunk: str) -> list[Event]:
        """Process one raw chunk of terminal output.

        Returns:
            The events emitted for this chunk, in line order. Empty when
            nothing was recognized or the pipeline is disposed.
        """
        if self._disposed or not chunk:
            return []
        try:
            emitted = self._process(chunk)
        except Exception:
            logger.exception("Failed to process chunk of %d chars", len(chunk))
            return []

        if emitted and self._on_events is not None:
            try:
                self._on_events(emitted)
            except Exception:
                logger.exception("Event callback failed")
        return emitted

    def _process(self, chunk: str) -> list[Event]:
        lines = split_lines(clean_text(chunk))
        logger.log(TRACE, "feed chunk len=%d lines=%d", len(chunk), len(lines))

        emitted: list[Event] = []
        for line in lines:
            if is_user_input(line):
                logger.log(TRACE, "Skipping user input %r", line[:60])
                continue
            event = self.classifier.classify(line)
            if event is not None and self.dedup.admit(event):
                self.history.append(event)
                emitted.append(event)
                self._track(event)
            try:
                self.tracker.handle_end_signal(line)
            except Exception:
                logger.exception("End-signal handling failed for %r", line[:60])

        self._sync_discovered_mcps()
        self.dedup.sweep()
        if emitted:
            logger.debug("Emitted %d events", len(emitted))
        return emitted

    def _track(self, event: Event) -> None:
        # recorded events stay emitted even if tracking fails
        try:
            self.tracker.observe(event)
        except Exception:
            logger.exception("Failed to track %s %r", event.kind.value, event.content[:60])

    def _sync_discovered_mcps(self) -> None:
        pending = [
            name for name in self.classifier.discovered_mcps
            if self.registry.get(NamedItem.make_id(ItemKind.MCP, name)) is None
        ]
        if pending:
            self.registry.mark_dynamic(pending, ItemKind.MCP)

    def handle_status(self, report: StatusReport) -> None:
        """Apply a report from the out-of-band status channel."""
        if self._disposed:
            return
        self.tracker.apply_status(report)

    # ------------------------------------------------------------------
    # Caller-facing queries
    # ------------------------------------------------------------------

    def get_events(self) -> list[Event]:
        return self.history.get_all()

    def clear_events(self) -> None:
        self.history.clear()

    async def resolve_type(self, name: str) -> ItemKind | None:
        return await self.registry.resolve_type(name)

    async def refresh_cache(self) -> None:
        await self.registry.refresh()

    def discovered_mcps(self) -> list[str]:
        return self.classifier.discovered_mcps

    def active_items(self) -> list[ActiveItem]:
        return self.tracker.active_items()

    def plan_progress(self) -> PlanProgress | None:
        return summarize_plan(self.history.get_all())

    def dispose(self) -> None:
        """Cancel all timers and clear every map. Safe to call twice."""
        if self._disposed:
            return
        self._disposed = True
        self.tracker.dispose()
        self.registry.close()
        self.dedup.clear()
        self.history.clear()
        logger.debug("Pipeline disposed")
