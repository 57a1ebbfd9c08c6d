"""Terminal output parsing: normalizer → line patterns → line classifier → plan summary."""

from cli_monitor.parsing.models import Event, EventKind, ItemKind  # noqa: F401

__all__ = ["Event", "EventKind", "ItemKind"]
