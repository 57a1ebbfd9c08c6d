"""Shared data types for the output classification and tracking pipeline."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class EventKind(Enum):
    """Categories of classified terminal activity."""

    TOOL_CALL = "tool_call"
    SKILL_CALL = "skill_call"
    AGENT_CALL = "agent_call"
    PLUGIN_CALL = "plugin_call"
    MCP_CALL = "mcp_call"
    USER_MESSAGE = "user_message"
    PLAN_PROGRESS = "plan_progress"
    OTHER = "other"


class ItemKind(Enum):
    """Kinds of named executable units the monitor can highlight."""

    MCP = "mcp"
    PLUGIN = "plugin"
    SKILL = "skill"
    AGENT = "agent"

    @property
    def event_kind(self) -> EventKind:
        return _START_EVENT_KINDS[self]

    @property
    def detail_key(self) -> str:
        """Key under which an event's ``details`` carry the item name."""
        return self.value

    @classmethod
    def from_event_kind(cls, kind: EventKind) -> ItemKind | None:
        for item_kind, event_kind in _START_EVENT_KINDS.items():
            if event_kind is kind:
                return item_kind
        return None


_START_EVENT_KINDS = {
    ItemKind.MCP: EventKind.MCP_CALL,
    ItemKind.PLUGIN: EventKind.PLUGIN_CALL,
    ItemKind.SKILL: EventKind.SKILL_CALL,
    ItemKind.AGENT: EventKind.AGENT_CALL,
}

# Tie-break order when one display name is claimed by several kinds
KIND_PRIORITY: tuple[ItemKind, ...] = (
    ItemKind.MCP,
    ItemKind.PLUGIN,
    ItemKind.SKILL,
    ItemKind.AGENT,
)


class ItemOrigin(Enum):
    """Where a registry entry came from."""

    FILE = "file"
    BUILTIN = "builtin"
    DYNAMIC = "dynamic"


class StateSource(Enum):
    """Channel that reported a running-state transition."""

    TERMINAL = "terminal"
    HOOK = "hook"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    """One classified occurrence extracted from a terminal line.

    ``details`` is stored as a read-only view and left out of the hash.
    """

    kind: EventKind
    content: str
    details: Mapping[str, Any] = field(default_factory=dict, hash=False)
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @property
    def item_kind(self) -> ItemKind | None:
        return ItemKind.from_event_kind(self.kind)

    @property
    def item_name(self) -> str | None:
        """Resolved unit name for start-type events, else None."""
        item_kind = self.item_kind
        if item_kind is None:
            return None
        return self.details.get(item_kind.detail_key) or None


@dataclass(frozen=True)
class NamedItem:
    """Registry entry for a known agent, skill, plugin or MCP server."""

    id: str
    display_name: str
    kind: ItemKind
    origin: ItemOrigin = ItemOrigin.FILE
    metadata: dict = field(default_factory=dict)

    @staticmethod
    def make_id(kind: ItemKind, name: str) -> str:
        return f"{kind.value}__{name}"


@dataclass
class ActiveItem:
    """A unit currently believed to be executing, with its own expiry timer."""

    id: str
    display_name: str
    kind: ItemKind
    started_at: float
    source: StateSource = StateSource.TERMINAL
    timer: asyncio.TimerHandle | None = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class StateChange:
    """Start/stop notification delivered to running-state subscribers."""

    id: str
    display_name: str
    kind: ItemKind
    state: str
    reason: str = ""


@dataclass(frozen=True)
class StatusReport:
    """Out-of-band start/stop message from the hook status channel."""

    event: str
    id: str
    display_name: str
    kind: ItemKind
    timestamp: float = 0.0
    model: str | None = None
    description: str | None = None


@dataclass
class PlanStep:
    """One checkbox line of a plan."""

    description: str
    completed: bool
    in_progress: bool = False


@dataclass
class PlanProgress:
    """Aggregate completion of the most recently observed plan."""

    current: int
    total: int
    steps: list[PlanStep] = field(default_factory=list)
