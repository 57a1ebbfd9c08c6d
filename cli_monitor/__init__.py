"""Claude Code activity monitor: terminal output → typed events and running-state."""

__version__ = "0.1.0"
