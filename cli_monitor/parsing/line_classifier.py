"""Classify one cleaned terminal line into at most one :class:`Event`.

Rules are tried in priority order and the first match wins:

  1. ``● /name(...)``       → skill call (format prefix beats the registry)
  2. ``● mcp-name(...)``    → MCP call, name fed back to the registry
  3. ``● name(...)``        → kind looked up in the registry, agent if unknown
  4. ``[skill] n: a`` / ``[agent] n: a`` → skill / agent call
  5. ``[Tool] action``      → tool call
  6. ``✓ 1. step`` / ``☐ step`` → plan progress

Independently of the outcome, each line is scanned for
``<server>_result_<word>`` to learn MCP server names passively.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Callable

from cli_monitor.log_setup import TRACE
from cli_monitor.parsing.line_patterns import (
    GENERIC_MARKER_RE,
    LEGACY_AGENT_RE,
    LEGACY_SKILL_RE,
    MCP_MARKER_RE,
    MCP_RESULT_MIN_LENGTH,
    MCP_RESULT_RE,
    MCP_RESULT_STOPLIST,
    PLAN_CHECKED,
    PLAN_STEP_RE,
    SKILL_MARKER_RE,
    TOOL_CALL_RE,
)
from cli_monitor.parsing.models import Event, EventKind, ItemKind

if TYPE_CHECKING:
    from cli_monitor.registry import TypeRegistry

logger = logging.getLogger(__name__)

RuleBuilder = Callable[[re.Match, str], Event]


class LineClassifier:
    """Priority-ordered rule cascade over single lines of CLI output."""

    def __init__(self, registry: TypeRegistry | None = None) -> None:
        self.registry = registry
        # dict keeps discovery order without duplicates
        self._discovered_mcps: dict[str, None] = {}
        self._rules: tuple[tuple[str, re.Pattern, RuleBuilder], ...] = (
            ("skill_marker", SKILL_MARKER_RE, self._skill_marker),
            ("mcp_marker", MCP_MARKER_RE, self._mcp_marker),
            ("generic_marker", GENERIC_MARKER_RE, self._generic_marker),
            ("legacy_skill", LEGACY_SKILL_RE, self._legacy_skill),
            ("legacy_agent", LEGACY_AGENT_RE, self._legacy_agent),
            ("tool_call", TOOL_CALL_RE, self._tool_call),
            ("plan_step", PLAN_STEP_RE, self._plan_step),
        )

    @property
    def discovered_mcps(self) -> list[str]:
        """MCP server names learned from ``*_result_*`` lines, in discovery order."""
        return list(self._discovered_mcps)

    def classify(self, line: str) -> Event | None:
        """Classify a single line.

        Args:
            line: One line of cleaned terminal text.

        Returns:
            The event produced by the first matching rule, or None when no
            rule matches (ordinary prose, the common case).
        """
        stripped = line.strip()
        if not stripped:
            return None

        self._scan_discovery(stripped)

        for name, pattern, build in self._rules:
            m = pattern.match(stripped)
            if m:
                event = build(m, stripped)
                logger.log(
                    TRACE, "rule %s -> %s %r", name, event.kind.value, event.content[:80]
                )
                return event

        logger.log(TRACE, "no rule matched %r", stripped[:80])
        return None

    # ------------------------------------------------------------------
    # Rule builders
    # ------------------------------------------------------------------

    @staticmethod
    def _item_event(kind: ItemKind, name: str, content: str, line: str) -> Event:
        return Event(
            kind=kind.event_kind,
            content=content,
            details={kind.detail_key: name, "name": name, "raw": line},
        )

    def _skill_marker(self, m: re.Match, line: str) -> Event:
        name = m.group("name")
        return self._item_event(ItemKind.SKILL, name, m.group("description") or name, line)

    def _mcp_marker(self, m: re.Match, line: str) -> Event:
        server = m.group("name")
        if self.registry is not None:
            self.registry.mark_dynamic([server], ItemKind.MCP)
        return self._item_event(
            ItemKind.MCP, server, m.group("description") or f"MCP: {server}", line
        )

    def _generic_marker(self, m: re.Match, line: str) -> Event:
        name = m.group("name")
        kind = self.registry.lookup(name) if self.registry is not None else None
        if kind is None:
            logger.log(TRACE, "registry miss for %r, defaulting to agent", name)
            kind = ItemKind.AGENT
        return self._item_event(kind, name, m.group("description") or name, line)

    @staticmethod
    def _legacy_skill(m: re.Match, line: str) -> Event:
        return Event(
            kind=EventKind.SKILL_CALL,
            content=m.group("action"),
            details={"skill": m.group("name"), "raw": line},
        )

    @staticmethod
    def _legacy_agent(m: re.Match, line: str) -> Event:
        return Event(
            kind=EventKind.AGENT_CALL,
            content=m.group("action"),
            details={"agent": m.group("name"), "raw": line},
        )

    @staticmethod
    def _tool_call(m: re.Match, line: str) -> Event:
        return Event(
            kind=EventKind.TOOL_CALL,
            content=m.group("action"),
            details={"tool": m.group("tool"), "raw": line},
        )

    @staticmethod
    def _plan_step(m: re.Match, line: str) -> Event:
        return Event(
            kind=EventKind.PLAN_PROGRESS,
            content=m.group("description"),
            details={"completed": m.group("glyph") in PLAN_CHECKED, "raw": line},
        )

    # ------------------------------------------------------------------
    # Passive discovery
    # ------------------------------------------------------------------

    def _scan_discovery(self, line: str) -> None:
        m = MCP_RESULT_RE.match(line)
        if not m:
            return
        name = m.group("name")
        if len(name) < MCP_RESULT_MIN_LENGTH or name.lower() in MCP_RESULT_STOPLIST:
            return
        if name not in self._discovered_mcps:
            self._discovered_mcps[name] = None
            logger.debug("Discovered MCP server %s", name)
