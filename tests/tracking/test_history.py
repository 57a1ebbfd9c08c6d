import pytest

from cli_monitor.parsing.models import Event, EventKind
from cli_monitor.tracking.history import EventHistory


def _events(n):
    return [Event(EventKind.TOOL_CALL, f"cmd {i}", {"tool": "Bash"}) for i in range(n)]


class TestEventHistory:
    def test_keeps_insertion_order(self):
        history = EventHistory()
        history.extend(_events(3))
        assert [e.content for e in history.get_all()] == ["cmd 0", "cmd 1", "cmd 2"]

    def test_at_capacity_no_trim(self):
        history = EventHistory(capacity=1000, retain=500)
        history.extend(_events(1000))
        assert len(history) == 1000

    def test_exceeding_capacity_keeps_newest_retain(self):
        history = EventHistory(capacity=1000, retain=500)
        history.extend(_events(1001))
        events = history.get_all()
        assert len(events) == 500
        assert events[0].content == "cmd 501"
        assert events[-1].content == "cmd 1000"

    def test_never_exceeds_capacity(self):
        history = EventHistory(capacity=10, retain=4)
        for event in _events(57):
            history.append(event)
            assert len(history) <= 10

    def test_get_all_returns_copy(self):
        history = EventHistory()
        history.extend(_events(2))
        history.get_all().clear()
        assert len(history) == 2

    def test_clear(self):
        history = EventHistory()
        history.extend(_events(5))
        history.clear()
        assert history.get_all() == []

    @pytest.mark.parametrize("capacity,retain", [(0, 0), (10, 10), (10, 11), (10, -1)])
    def test_rejects_bad_sizes(self, capacity, retain):
        with pytest.raises(ValueError):
            EventHistory(capacity, retain)
