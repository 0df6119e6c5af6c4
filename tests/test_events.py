"""
Tests for the event bus and reentrancy guard.

Tests:
- Event creation and serialization
- Handler dispatch, filtering and failure isolation
- History and statistics
- Guard acquisition and release
"""

import logging
from unittest.mock import Mock

import pytest

from unigrid.core import (
    CallbackEventHandler,
    Event,
    EventBus,
    EventType,
    LoggingEventHandler,
    ReentrancyGuard,
)
from unigrid.errors import ReentrancyDetected


class TestEvent:
    """Tests for Event dataclass."""

    def test_to_dict(self):
        """Test event serialization."""
        event = Event(
            event_id=1,
            event_type=EventType.DEPOSIT,
            caller="alice",
            details={"token0_amount": 1000},
        )

        data = event.to_dict()

        assert data["event_type"] == "DEPOSIT"
        assert data["caller"] == "alice"
        assert data["details"] == {"token0_amount": 1000}
        assert "timestamp" in data

    def test_str(self):
        """Test string form names the type and caller."""
        event = Event(1, EventType.SWEEP, "bob", {"retired": [1, 2]})

        assert str(event).startswith("SWEEP(bob)")


class TestEventBus:
    """Tests for EventBus class."""

    @pytest.fixture
    def bus(self):
        return EventBus(max_history=5)

    def test_publish_returns_event(self, bus):
        """Test published events get increasing ids."""
        first = bus.publish(EventType.DEPOSIT, "alice", {"amount": 1})
        second = bus.publish(EventType.WITHDRAW, "alice")

        assert first.event_id == 1
        assert second.event_id == 2
        assert second.details == {}

    def test_dispatch_to_handlers(self, bus):
        """Test every handler sees the event."""
        callback = Mock()
        bus.add_handler(CallbackEventHandler(callback))

        event = bus.publish(EventType.COMPOUND, "alice", {"fees0": 5})

        callback.assert_called_once_with(event)

    def test_filtered_handler(self, bus):
        """Test handlers restricted to event types."""
        callback = Mock()
        handler = CallbackEventHandler(callback, [EventType.SWEEP])
        bus.add_handler(handler)

        bus.publish(EventType.DEPOSIT, "alice")
        bus.publish(EventType.SWEEP, "alice")

        assert callback.call_count == 1
        assert callback.call_args[0][0].event_type == EventType.SWEEP

    def test_failing_callback_isolated(self, bus):
        """Test a failing handler does not block others."""
        failing = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        bus.add_handler(CallbackEventHandler(failing))
        bus.add_handler(CallbackEventHandler(healthy))

        bus.publish(EventType.CLOSE, "alice")

        healthy.assert_called_once()

    def test_remove_handler(self, bus):
        """Test removed handlers no longer receive events."""
        callback = Mock()
        handler = CallbackEventHandler(callback)
        bus.add_handler(handler)
        bus.remove_handler(handler)

        bus.publish(EventType.DEPOSIT, "alice")

        callback.assert_not_called()

    def test_logging_handler(self, bus, caplog):
        """Test events are logged."""
        bus.add_handler(LoggingEventHandler())

        with caplog.at_level(logging.INFO):
            bus.publish(EventType.ETHER_RECOVERED, "owner", {"amount": 7})

        assert "ETHER_RECOVERED" in caplog.text

    def test_history_bounded(self, bus):
        """Test history keeps only the newest events."""
        for _ in range(8):
            bus.publish(EventType.DEPOSIT, "alice")

        history = bus.get_history()
        assert len(history) == 5
        assert history[0].event_id == 4

    def test_history_filter(self, bus):
        """Test filtering history by type."""
        bus.publish(EventType.DEPOSIT, "alice")
        bus.publish(EventType.WITHDRAW, "alice")
        bus.publish(EventType.DEPOSIT, "bob")

        deposits = bus.get_history(EventType.DEPOSIT)
        assert [e.caller for e in deposits] == ["alice", "bob"]

    def test_clear_history(self, bus):
        """Test clearing history."""
        bus.publish(EventType.DEPOSIT, "alice")
        bus.clear_history()

        assert bus.get_history() == []

    def test_stats(self, bus):
        """Test counts by type."""
        bus.add_handler(LoggingEventHandler())
        bus.publish(EventType.DEPOSIT, "alice")
        bus.publish(EventType.DEPOSIT, "alice")
        bus.publish(EventType.SWEEP, "alice")

        stats = bus.get_stats()

        assert stats["total_events"] == 3
        assert stats["by_type"]["DEPOSIT"] == 2
        assert stats["handler_count"] == 1


class TestReentrancyGuard:
    """Tests for ReentrancyGuard class."""

    def test_holds_during_block(self):
        """Test holder is set inside the block only."""
        guard = ReentrancyGuard()

        with guard.enter("deposit"):
            assert guard.locked is True
            assert guard.holder == "deposit"

        assert guard.locked is False
        assert guard.holder is None

    def test_nested_entry_rejected(self):
        """Test a second entry while held raises."""
        guard = ReentrancyGuard()

        with guard.enter("deposit"):
            with pytest.raises(ReentrancyDetected, match="while deposit is in progress"):
                with guard.enter("withdraw"):
                    pass
            assert guard.holder == "deposit"

    def test_released_on_exception(self):
        """Test the guard is released when the block raises."""
        guard = ReentrancyGuard()

        with pytest.raises(RuntimeError):
            with guard.enter("compound"):
                raise RuntimeError("failed")

        assert guard.locked is False
        with guard.enter("compound"):
            pass
