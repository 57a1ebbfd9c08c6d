from unittest.mock import AsyncMock

import pytest

from cli_monitor.registry import TypeRegistry


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_registry():
    """Build a registry from plain name lists, one AsyncMock source per kind."""

    def _make(mcps=(), plugins=(), skills=(), agents=(), **kwargs) -> TypeRegistry:
        return TypeRegistry(
            mcps=AsyncMock(return_value=list(mcps)),
            plugins=AsyncMock(return_value=list(plugins)),
            skills=AsyncMock(return_value=list(skills)),
            agents=AsyncMock(return_value=list(agents)),
            **kwargs,
        )

    return _make
