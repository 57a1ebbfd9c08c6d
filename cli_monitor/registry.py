"""TTL-cached registry of known agent, skill, plugin and MCP names.

The classifier uses it to decide what a bare ``● name`` marker refers to.
Snapshots are rebuilt wholesale from four async sources; dynamically
observed MCP servers are upserted between rebuilds.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Iterable

from cli_monitor.log_setup import TRACE
from cli_monitor.parsing.models import KIND_PRIORITY, ItemKind, ItemOrigin, NamedItem

logger = logging.getLogger(__name__)

ItemSource = Callable[[], Awaitable[Iterable[Any]]]

DEFAULT_TTL_SECONDS = 30.0


def _describe(item: Any) -> tuple[str, ItemOrigin, dict]:
    """Extract (name, origin, metadata) from a string, mapping or object."""
    if isinstance(item, str):
        return item, ItemOrigin.FILE, {}
    if isinstance(item, Mapping):
        data = dict(item)
    else:
        data = {k: v for k, v in vars(item).items() if not k.startswith("_")}
    name = str(data.pop("name"))
    origin = ItemOrigin.BUILTIN if data.get("source") == "builtin" else ItemOrigin.FILE
    return name, origin, data


class TypeRegistry:
    """Point-in-time snapshot mapping display names to item kinds."""

    def __init__(
        self,
        mcps: ItemSource | None = None,
        plugins: ItemSource | None = None,
        skills: ItemSource | None = None,
        agents: ItemSource | None = None,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty, stale registry.

        Args:
            mcps: Async callable listing MCP servers.
            plugins: Async callable listing installed plugins.
            skills: Async callable listing available skills.
            agents: Async callable listing known agents.
            ttl: Seconds a snapshot stays fresh.
            clock: Monotonic time source, injectable for tests.
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        # Refresh order is fixed: MCP, plugin, skill, agent
        self._sources: tuple[tuple[ItemKind, ItemSource | None], ...] = (
            (ItemKind.MCP, mcps),
            (ItemKind.PLUGIN, plugins),
            (ItemKind.SKILL, skills),
            (ItemKind.AGENT, agents),
        )
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, NamedItem] = {}
        self._last_refresh: float | None = None
        self._refresh_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def is_stale(self) -> bool:
        if self._last_refresh is None:
            return True
        return self._clock() - self._last_refresh >= self._ttl

    async def refresh(self) -> None:
        """Rebuild the snapshot from every source.

        A failing source is logged and skipped; the others still load.
        Entries from the previous snapshot, dynamic ones included, are
        discarded.
        """
        entries: dict[str, NamedItem] = {}
        for kind, source in self._sources:
            if source is None:
                continue
            try:
                items = await source()
                for item in items:
                    name, origin, metadata = _describe(item)
                    item_id = NamedItem.make_id(kind, name)
                    entries[item_id] = NamedItem(
                        id=item_id,
                        display_name=name,
                        kind=kind,
                        origin=origin,
                        metadata=metadata,
                    )
            except Exception:
                logger.exception("Failed to load %s items", kind.value)
        self._entries = entries
        self._last_refresh = self._clock()

        counts = {kind.value: len(self.names(kind)) for kind in KIND_PRIORITY}
        logger.debug(
            "Registry refreshed: %d mcp, %d plugin, %d skill, %d agent",
            counts["mcp"], counts["plugin"], counts["skill"], counts["agent"],
        )

    def _schedule_refresh(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.log(TRACE, "registry stale but no running loop, serving snapshot")
            return
        self._refresh_task = loop.create_task(self.refresh())

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _resolve(self, name: str) -> ItemKind | None:
        if name.startswith("/"):
            return ItemKind.SKILL
        if name.startswith("mcp-"):
            return ItemKind.MCP
        kinds = {e.kind for e in self._entries.values() if e.display_name == name}
        for kind in KIND_PRIORITY:
            if kind in kinds:
                return kind
        return None

    def lookup(self, name: str) -> ItemKind | None:
        """Resolve ``name`` from the current snapshot without waiting.

        A stale snapshot triggers one background refresh; the answer still
        comes from the snapshot in hand.

        Returns:
            The resolved kind, or None when no entry claims the name.
        """
        if self.is_stale():
            self._schedule_refresh()
        return self._resolve(name)

    async def resolve_type(self, name: str) -> ItemKind | None:
        """Resolve ``name``, refreshing first when the snapshot is stale."""
        if self.is_stale():
            if self._refresh_task is not None and not self._refresh_task.done():
                await self._refresh_task
            else:
                await self.refresh()
        return self._resolve(name)

    def mark_dynamic(self, names: Iterable[str], kind: ItemKind = ItemKind.MCP) -> None:
        """Upsert dynamically observed names without touching the TTL clock."""
        added = []
        for name in names:
            item_id = NamedItem.make_id(kind, name)
            existing = self._entries.get(item_id)
            if existing is not None and existing.origin is ItemOrigin.DYNAMIC:
                continue
            self._entries[item_id] = NamedItem(
                id=item_id, display_name=name, kind=kind, origin=ItemOrigin.DYNAMIC,
            )
            added.append(name)
        if added:
            logger.debug("Dynamic %s entries: %s", kind.value, ", ".join(added))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get(self, item_id: str) -> NamedItem | None:
        return self._entries.get(item_id)

    def items(self, kind: ItemKind | None = None) -> list[NamedItem]:
        return [e for e in self._entries.values() if kind is None or e.kind is kind]

    def names(self, kind: ItemKind) -> list[str]:
        return [e.display_name for e in self.items(kind)]

    def close(self) -> None:
        """Cancel a background refresh still in flight."""
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = None
