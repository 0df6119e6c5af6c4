"""
Venue interface consumed by the grid manager.

The venue is the pool plus its position-custody service. The manager
only ever talks to it through this surface. `sender` identifies the
account acting on the venue (the manager), the way a contract call
carries its caller.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class PoolState:
    """Instantaneous pool price."""

    sqrt_price_x96: int
    tick: int


@dataclass(frozen=True)
class MintResult:
    """Outcome of minting a new position."""

    position_id: int
    liquidity: int
    amount0: int
    amount1: int


@dataclass(frozen=True)
class IncreaseResult:
    """Outcome of adding liquidity to an existing position."""

    liquidity: int
    amount0: int
    amount1: int


class Venue(ABC):
    """
    Concentrated-liquidity venue.

    Implementations must reject calls whose deadline has passed and
    calls whose realized amounts fall below the given minimums.
    """

    # === Pool reads ===

    @abstractmethod
    def current_state(self) -> PoolState:
        """Get the current price and tick."""
        pass

    @abstractmethod
    def time_weighted_tick(self, window_seconds: int) -> int:
        """Get the arithmetic mean tick over the trailing window."""
        pass

    @property
    @abstractmethod
    def tick_spacing(self) -> int:
        """Minimum distance between usable ticks."""
        pass

    @property
    @abstractmethod
    def fee_tier(self) -> int:
        """Swap fee in hundredths of a bip."""
        pass

    @property
    @abstractmethod
    def token0(self) -> str:
        pass

    @property
    @abstractmethod
    def token1(self) -> str:
        pass

    @property
    @abstractmethod
    def custody_account(self) -> str:
        """Account that pulls deposits and needs the manager's approval."""
        pass

    # === Position custody ===

    @abstractmethod
    def mint(
        self,
        sender: str,
        tick_lower: int,
        tick_upper: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int,
        amount1_min: int,
        deadline: float,
    ) -> MintResult:
        """Open a new position owned by sender."""
        pass

    @abstractmethod
    def increase_liquidity(
        self,
        sender: str,
        position_id: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int,
        amount1_min: int,
        deadline: float,
    ) -> IncreaseResult:
        """Add liquidity to an existing position."""
        pass

    @abstractmethod
    def decrease_liquidity(
        self,
        sender: str,
        position_id: int,
        liquidity: int,
        amount0_min: int,
        amount1_min: int,
        deadline: float,
    ) -> Tuple[int, int]:
        """
        Remove liquidity; proceeds become owed to the position.

        Returns:
            (amount0, amount1) credited as owed
        """
        pass

    @abstractmethod
    def collect(
        self,
        sender: str,
        position_id: int,
        recipient: str,
        amount0_max: int,
        amount1_max: int,
    ) -> Tuple[int, int]:
        """
        Pay out owed tokens (withdrawn liquidity plus fees).

        Returns:
            (amount0, amount1) transferred to recipient
        """
        pass

    @abstractmethod
    def burn(self, sender: str, position_id: int) -> None:
        """Destroy an empty position."""
        pass

    # === Rollback support ===

    def snapshot(self) -> Optional[Any]:
        """Capture venue state, or None if the venue cannot roll back."""
        return None

    def restore(self, snapshot: Optional[Any]) -> None:
        """Restore a snapshot taken with snapshot()."""
        pass
