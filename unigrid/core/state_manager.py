"""
State Manager for manager persistence.

Provides:
- Grid configuration record (single row)
- Position table keyed by venue-assigned id
- Derived active-id set
- Event log of committed operations
- SQLite-based atomic writes (one transaction per commit)
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from config.settings import GridSettings

from .events import Event
from .position_ledger import PositionLedger

logger = logging.getLogger(__name__)


class StateManager:
    """
    Persists manager state so a restarted process resumes where it stopped.

    Usage:
        state_mgr = StateManager("data/unigrid.db")

        # After every committed operation
        state_mgr.save(settings, ledger)

        # On restart
        if state_mgr.has_state():
            settings, ledger = state_mgr.load()
    """

    SCHEMA = """
    -- Grid configuration (single row, updated atomically)
    CREATE TABLE IF NOT EXISTS grid_config (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        grid_quantity INTEGER NOT NULL,
        grid_step INTEGER NOT NULL,
        token0_min_fees TEXT NOT NULL,
        token1_min_fees TEXT NOT NULL,
        place_reference_cell INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT
    );

    -- Positions keyed by venue id (liquidity as TEXT, may exceed 64 bits)
    CREATE TABLE IF NOT EXISTS positions (
        position_id INTEGER PRIMARY KEY,
        seq INTEGER NOT NULL,
        tick_lower INTEGER NOT NULL,
        tick_upper INTEGER NOT NULL,
        liquidity TEXT NOT NULL
    );

    -- Active set, slot order preserved
    CREATE TABLE IF NOT EXISTS active_positions (
        slot INTEGER PRIMARY KEY,
        position_id INTEGER NOT NULL UNIQUE
    );

    -- Committed lifecycle events
    CREATE TABLE IF NOT EXISTS events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        event_type TEXT NOT NULL,
        caller TEXT NOT NULL,
        details TEXT NOT NULL,
        timestamp TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_positions_range ON positions(tick_lower, tick_upper);
    CREATE INDEX IF NOT EXISTS idx_events_type ON events(event_type);
    """

    def __init__(self, db_path: str = "data/unigrid.db"):
        """
        Initialize state manager.

        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_database()
        logger.info(f"StateManager initialized with database: {self._db_path}")

    def _init_database(self) -> None:
        """Initialize database schema."""
        with sqlite3.connect(self._db_path) as conn:
            conn.executescript(self.SCHEMA)
            conn.commit()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection."""
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    # === Core State Operations ===

    def save(self, settings: GridSettings, ledger: PositionLedger) -> None:
        """
        Save configuration, positions and active set in one transaction.

        Args:
            settings: Current grid settings
            ledger: Current position ledger
        """
        now = datetime.utcnow().isoformat()

        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO grid_config
                (id, grid_quantity, grid_step, token0_min_fees, token1_min_fees,
                 place_reference_cell, updated_at)
                VALUES (1, ?, ?, ?, ?, ?, ?)
                """,
                (
                    settings.grid_quantity,
                    settings.grid_step,
                    str(settings.token0_min_fees),
                    str(settings.token1_min_fees),
                    int(settings.place_reference_cell),
                    now,
                ),
            )

            conn.execute("DELETE FROM positions")
            conn.executemany(
                """
                INSERT INTO positions (position_id, seq, tick_lower, tick_upper, liquidity)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (p.position_id, seq, p.tick_lower, p.tick_upper, str(p.liquidity))
                    for seq, p in enumerate(ledger.all())
                ],
            )

            conn.execute("DELETE FROM active_positions")
            conn.executemany(
                "INSERT INTO active_positions (slot, position_id) VALUES (?, ?)",
                list(enumerate(ledger.active_ids())),
            )

            conn.commit()

        logger.debug(f"State saved: {len(ledger)} positions, {len(ledger.active_ids())} active")

    def load(self) -> Optional[Tuple[GridSettings, PositionLedger]]:
        """
        Load saved configuration and ledger.

        Returns:
            (settings, ledger) if state exists, None otherwise
        """
        with self._get_connection() as conn:
            config_row = conn.execute("SELECT * FROM grid_config WHERE id = 1").fetchone()
            if config_row is None:
                return None

            position_rows = conn.execute(
                "SELECT * FROM positions ORDER BY seq"
            ).fetchall()
            active_rows = conn.execute(
                "SELECT position_id FROM active_positions ORDER BY slot"
            ).fetchall()

        settings = GridSettings(
            grid_quantity=config_row["grid_quantity"],
            grid_step=config_row["grid_step"],
            token0_min_fees=int(config_row["token0_min_fees"]),
            token1_min_fees=int(config_row["token1_min_fees"]),
            place_reference_cell=bool(config_row["place_reference_cell"]),
        )
        ledger = PositionLedger.from_dict({
            "positions": [dict(row) for row in position_rows],
            "active": [row["position_id"] for row in active_rows],
        })
        ledger.verify()

        logger.info(f"Loaded state: {len(ledger)} positions")
        return settings, ledger

    def has_state(self) -> bool:
        """Check if saved state exists."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT COUNT(*) as count FROM grid_config WHERE id = 1"
            )
            row = cursor.fetchone()
            return row["count"] > 0

    def clear_state(self) -> None:
        """Clear saved state (fresh start)."""
        with self._get_connection() as conn:
            conn.execute("DELETE FROM grid_config")
            conn.execute("DELETE FROM positions")
            conn.execute("DELETE FROM active_positions")
            conn.commit()
        logger.info("Manager state cleared")

    # === Event Log ===

    def log_events(self, events: List[Event]) -> None:
        """
        Append committed events to the event log.

        Args:
            events: Published events, in order
        """
        with self._get_connection() as conn:
            conn.executemany(
                """
                INSERT INTO events (event_type, caller, details, timestamp)
                VALUES (?, ?, ?, ?)
                """,
                [
                    (
                        e.event_type.name,
                        e.caller,
                        json.dumps(e.details, default=str),
                        e.timestamp.isoformat(),
                    )
                    for e in events
                ],
            )
            conn.commit()

    def get_event_history(
        self,
        event_type: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Get committed events, newest first.

        Args:
            event_type: Filter by EventType name
            limit: Maximum rows

        Returns:
            List of event dictionaries
        """
        query = "SELECT * FROM events"
        params: List[Any] = []
        if event_type:
            query += " WHERE event_type = ?"
            params.append(event_type)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            {**dict(row), "details": json.loads(row["details"])}
            for row in rows
        ]

    def get_stats(self) -> Dict[str, Any]:
        """Get database statistics."""
        with self._get_connection() as conn:
            positions = conn.execute("SELECT COUNT(*) FROM positions").fetchone()[0]
            active = conn.execute("SELECT COUNT(*) FROM active_positions").fetchone()[0]
            events = conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]

        return {
            "positions": positions,
            "active_positions": active,
            "events": events,
            "db_path": str(self._db_path),
        }
