"""
Lifecycle Events for the grid manager.

Provides:
- Event types for every state-changing operation
- Event handlers (logging, callbacks)
- Event bus with history

The manager buffers events while an operation runs and publishes them
only once the operation commits. A failed operation publishes nothing.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of manager lifecycle events."""

    # Capital flows
    DEPOSIT = auto()  # Caller supplied new capital
    WITHDRAW = auto()  # All liquidity returned to the owner
    COMPOUND = auto()  # Fees reinvested
    SWEEP = auto()  # Out-of-band positions retired and redeployed

    # Position lifecycle
    POSITION_MINTED = auto()
    POSITION_INCREASED = auto()
    POSITION_DECOMMISSIONED = auto()  # Liquidity fully removed
    CLOSE = auto()  # Ledger burned and cleared

    # Escape hatches
    EMERGENCY_WITHDRAW = auto()
    ETHER_RECOVERED = auto()

    # Configuration
    GRID_STEP_UPDATED = auto()
    GRID_QUANTITY_UPDATED = auto()
    MIN_FEES_UPDATED = auto()


@dataclass
class Event:
    """A single lifecycle event."""

    event_id: int
    event_type: EventType
    caller: str
    details: Dict[str, Any]
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event to dictionary."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.name,
            "caller": self.caller,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.event_type.name}({self.caller}): {self.details}"


class EventHandler(ABC):
    """Base class for event handlers."""

    @abstractmethod
    def handle(self, event: Event) -> bool:
        """
        Handle an event.

        Args:
            event: Event to handle

        Returns:
            True if handled successfully
        """
        pass


class LoggingEventHandler(EventHandler):
    """Handler that logs events."""

    def __init__(self, level: int = logging.INFO):
        self._level = level

    def handle(self, event: Event) -> bool:
        logger.log(self._level, f"[EVENT] {event}")
        return True


class CallbackEventHandler(EventHandler):
    """Handler that calls a callback function."""

    def __init__(
        self,
        callback: Callable[[Event], None],
        event_types: Optional[List[EventType]] = None,
    ):
        self._callback = callback
        self._event_types = set(event_types) if event_types else None

    def handle(self, event: Event) -> bool:
        if self._event_types is not None and event.event_type not in self._event_types:
            return False
        try:
            self._callback(event)
            return True
        except Exception as e:
            logger.error(f"Event callback failed: {e}")
            return False


class EventBus:
    """
    Dispatches committed events to registered handlers.

    Usage:
        bus = EventBus()
        bus.add_handler(LoggingEventHandler())
        bus.add_handler(CallbackEventHandler(on_deposit, [EventType.DEPOSIT]))

        bus.publish(EventType.DEPOSIT, "alice", {"amount0": 1000, "amount1": 2000})
    """

    def __init__(self, max_history: int = 1000):
        self._handlers: List[EventHandler] = []
        self._history: List[Event] = []
        self._counter = 0
        self._max_history = max_history

    def add_handler(self, handler: EventHandler) -> None:
        """Add an event handler."""
        self._handlers.append(handler)
        logger.debug(f"Added event handler: {handler.__class__.__name__}")

    def remove_handler(self, handler: EventHandler) -> None:
        """Remove an event handler."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def publish(
        self,
        event_type: EventType,
        caller: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> Event:
        """
        Record and dispatch an event.

        Args:
            event_type: Type of event
            caller: Principal that triggered it
            details: Event payload

        Returns:
            The published event
        """
        self._counter += 1
        event = Event(
            event_id=self._counter,
            event_type=event_type,
            caller=caller,
            details=details or {},
        )

        self._history.append(event)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history :]

        for handler in self._handlers:
            try:
                handler.handle(event)
            except Exception as e:
                logger.error(f"Handler {handler.__class__.__name__} failed: {e}")

        return event

    def get_history(self, event_type: Optional[EventType] = None) -> List[Event]:
        """Get published events, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.event_type == event_type]

    def clear_history(self) -> None:
        """Forget published events."""
        self._history.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get event statistics."""
        type_counts: Dict[str, int] = {}
        for event in self._history:
            type_counts[event.event_type.name] = type_counts.get(event.event_type.name, 0) + 1

        return {
            "total_events": len(self._history),
            "by_type": type_counts,
            "handler_count": len(self._handlers),
        }
