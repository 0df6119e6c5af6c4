"""
Core Module.

Stateful parts of the grid position manager:
- GridPositionManager: Orchestrates deposit, withdraw, compound, sweep and close
- PositionLedger: Authoritative record of positions and the active set
- ReentrancyGuard: Scoped rejection of nested operations
- EventBus: Publishes lifecycle events after each commit
- StateManager: SQLite persistence of configuration and ledger

Usage:
    from unigrid.core import GridPositionManager, EventBus, LoggingEventHandler

    bus = EventBus()
    bus.add_handler(LoggingEventHandler())

    manager = GridPositionManager(owner="alice", assets=assets, event_bus=bus)
    manager.initialize(venue, GridSettings(grid_quantity=10, grid_step=1))
"""

from .position_ledger import (
    Position,
    PositionLedger,
)
from .guard import ReentrancyGuard
from .events import (
    CallbackEventHandler,
    Event,
    EventBus,
    EventHandler,
    EventType,
    LoggingEventHandler,
)
from .state_manager import StateManager
from .manager import (
    MAX_COLLECT,
    GridPositionManager,
    ManagerState,
)

__all__ = [
    # Ledger
    "Position",
    "PositionLedger",
    # Guard
    "ReentrancyGuard",
    # Events
    "CallbackEventHandler",
    "Event",
    "EventBus",
    "EventHandler",
    "EventType",
    "LoggingEventHandler",
    # Persistence
    "StateManager",
    # Manager
    "MAX_COLLECT",
    "GridPositionManager",
    "ManagerState",
]
