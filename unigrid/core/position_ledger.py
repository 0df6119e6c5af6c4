"""
Position Ledger for tracking venue positions.

Provides:
- Record of every position minted by the manager (keyed by venue id)
- Lookup by exact (tick_lower, tick_upper) range
- Active set of positions holding liquidity, with O(1) membership
  and O(1) swap-remove
- Explicit post-condition: a position is active iff its liquidity > 0
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from unigrid.errors import LedgerInvariantError, PositionNotFound

logger = logging.getLogger(__name__)


@dataclass
class Position:
    """A single liquidity placement at the venue."""

    position_id: int  # Venue-assigned, never reused
    tick_lower: int
    tick_upper: int
    liquidity: int = 0

    def __post_init__(self):
        """Validate position."""
        if self.tick_lower >= self.tick_upper:
            raise ValueError(
                f"tick_lower must be below tick_upper, got "
                f"[{self.tick_lower}, {self.tick_upper}]"
            )
        if self.liquidity < 0:
            raise ValueError(f"Liquidity cannot be negative, got {self.liquidity}")

    @property
    def tick_range(self) -> Tuple[int, int]:
        """Get (tick_lower, tick_upper)."""
        return self.tick_lower, self.tick_upper

    def contains_tick(self, tick: int) -> bool:
        """Check if tick lies in [tick_lower, tick_upper)."""
        return self.tick_lower <= tick < self.tick_upper

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "position_id": self.position_id,
            "tick_lower": self.tick_lower,
            "tick_upper": self.tick_upper,
            "liquidity": str(self.liquidity),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        """Deserialize from dictionary."""
        return cls(
            position_id=int(data["position_id"]),
            tick_lower=int(data["tick_lower"]),
            tick_upper=int(data["tick_upper"]),
            liquidity=int(data["liquidity"]),
        )


class PositionLedger:
    """
    Authoritative record of all positions and the active subset.

    Callers update liquidity with upsert() and membership with
    activate() / deactivate(); verify() checks that both agree.

    Usage:
        ledger = PositionLedger()

        position_id = ledger.upsert(-600, -540, liquidity, position_id=minted_id)
        ledger.activate(position_id)

        ledger.upsert(-600, -540, -liquidity)
        ledger.deactivate(position_id)

        ledger.verify()
    """

    def __init__(self):
        self._positions: Dict[int, Position] = {}  # Insertion ordered
        self._by_range: Dict[Tuple[int, int], int] = {}
        self._active: List[int] = []
        self._active_slots: Dict[int, int] = {}  # position_id -> index in _active

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, position_id: int) -> bool:
        return position_id in self._positions

    # === Lookup ===

    def get(self, position_id: int) -> Position:
        """
        Get a position by id.

        Raises:
            PositionNotFound: If the id is not tracked
        """
        position = self._positions.get(position_id)
        if position is None:
            raise PositionNotFound(f"Position {position_id} not found")
        return position

    def find(self, tick_lower: int, tick_upper: int) -> Optional[int]:
        """Find the position id covering exactly this range."""
        return self._by_range.get((tick_lower, tick_upper))

    def all(self) -> List[Position]:
        """Get every tracked position, in mint order."""
        return list(self._positions.values())

    def active(self) -> List[Position]:
        """Get positions currently in the active set."""
        return [self._positions[position_id] for position_id in self._active]

    def active_ids(self) -> List[int]:
        """Get ids in the active set."""
        return list(self._active)

    def is_active(self, position_id: int) -> bool:
        """Check active-set membership in O(1)."""
        return position_id in self._active_slots

    # === Mutation ===

    def upsert(
        self,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int,
        position_id: Optional[int] = None,
    ) -> int:
        """
        Apply a liquidity change to the position covering a range.

        Finds the existing position by exact tick match, or records a new
        one under position_id (the id the venue assigned at mint).

        Args:
            tick_lower: Lower tick of the range
            tick_upper: Upper tick of the range
            liquidity_delta: Signed liquidity change
            position_id: Venue id, required when the range is new

        Returns:
            Id of the updated position

        Raises:
            LedgerInvariantError: On id mismatch, id reuse, or liquidity
                going negative
        """
        existing_id = self.find(tick_lower, tick_upper)

        if existing_id is not None:
            if position_id is not None and position_id != existing_id:
                raise LedgerInvariantError(
                    f"Range [{tick_lower}, {tick_upper}] belongs to position "
                    f"{existing_id}, not {position_id}"
                )
            position = self._positions[existing_id]
            new_liquidity = position.liquidity + liquidity_delta
            if new_liquidity < 0:
                raise LedgerInvariantError(
                    f"Position {existing_id} liquidity would go negative: "
                    f"{position.liquidity} + {liquidity_delta}"
                )
            position.liquidity = new_liquidity
            logger.debug(
                f"Position {existing_id} liquidity {liquidity_delta:+d} -> {new_liquidity}"
            )
            return existing_id

        if position_id is None:
            raise LedgerInvariantError(
                f"No position for range [{tick_lower}, {tick_upper}] and no id given"
            )
        if position_id in self._positions:
            raise LedgerInvariantError(f"Position id {position_id} already used")
        if liquidity_delta < 0:
            raise LedgerInvariantError(
                f"New position {position_id} cannot start with negative liquidity"
            )

        self._positions[position_id] = Position(
            position_id=position_id,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity=liquidity_delta,
        )
        self._by_range[(tick_lower, tick_upper)] = position_id
        logger.debug(
            f"Recorded position {position_id} [{tick_lower}, {tick_upper}) "
            f"liquidity={liquidity_delta}"
        )
        return position_id

    def activate(self, position_id: int) -> None:
        """Add a position to the active set (no-op if already active)."""
        self.get(position_id)
        if position_id in self._active_slots:
            return
        self._active_slots[position_id] = len(self._active)
        self._active.append(position_id)

    def deactivate(self, position_id: int) -> None:
        """Remove a position from the active set by swap-remove (no-op if inactive)."""
        slot = self._active_slots.pop(position_id, None)
        if slot is None:
            return

        last_id = self._active.pop()
        if last_id != position_id:
            self._active[slot] = last_id
            self._active_slots[last_id] = slot

    def clear(self) -> None:
        """Forget every position."""
        self._positions.clear()
        self._by_range.clear()
        self._active.clear()
        self._active_slots.clear()

    # === Invariants ===

    def verify(self) -> None:
        """
        Check that the active set matches liquidity for every position.

        Raises:
            LedgerInvariantError: If any position is active with zero
                liquidity, inactive with liquidity, or the active index
                is out of sync
        """
        for position in self._positions.values():
            active = self.is_active(position.position_id)
            if active != (position.liquidity > 0):
                raise LedgerInvariantError(
                    f"Position {position.position_id} active={active} "
                    f"but liquidity={position.liquidity}",
                    details={"position_id": position.position_id},
                )

        for slot, position_id in enumerate(self._active):
            if self._active_slots.get(position_id) != slot:
                raise LedgerInvariantError(f"Active index out of sync for {position_id}")
        if len(self._active_slots) != len(self._active):
            raise LedgerInvariantError("Active index size mismatch")

    # === Snapshot / persistence ===

    def snapshot(self) -> Dict[str, Any]:
        """Capture the complete ledger for rollback."""
        return {
            "positions": copy.deepcopy(self._positions),
            "active": list(self._active),
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        """Restore a snapshot taken with snapshot()."""
        self._positions = copy.deepcopy(snapshot["positions"])
        self._by_range = {
            position.tick_range: position_id
            for position_id, position in self._positions.items()
        }
        self._active = list(snapshot["active"])
        self._active_slots = {
            position_id: slot for slot, position_id in enumerate(self._active)
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "positions": [position.to_dict() for position in self._positions.values()],
            "active": list(self._active),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PositionLedger":
        """Deserialize from dictionary."""
        ledger = cls()
        ledger.restore({
            "positions": {
                position.position_id: position
                for position in (
                    Position.from_dict(item) for item in data.get("positions", [])
                )
            },
            "active": [int(position_id) for position_id in data.get("active", [])],
        })
        return ledger
