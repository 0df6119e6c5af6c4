"""
Paper Venue for offline runs and tests.

In-memory concentrated-liquidity venue:
- Positions with liquidity and owed tokens, ids assigned sequentially
- Deadline, slippage and tick-alignment checks on every call
- Tick observations for time-weighted average tick queries
- Simulated fee accrual and price moves

Token movements go through a shared AssetBook, pulling deposits with
the allowance the manager grants the custody account.
"""

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from config.settings import PaperVenueSettings
from unigrid.errors import UnalignedTick, VenueError
from unigrid.grid.tick_grid import MAX_TICK, MIN_TICK

from .assets import AssetBook
from .base import IncreaseResult, MintResult, PoolState, Venue
from .liquidity_math import (
    amounts_for_liquidity,
    liquidity_for_amounts,
    tick_to_sqrt_price_x96,
)

logger = logging.getLogger(__name__)


@dataclass
class VenuePosition:
    """Venue-side record of a position."""

    owner: str
    tick_lower: int
    tick_upper: int
    liquidity: int = 0
    tokens_owed0: int = 0
    tokens_owed1: int = 0


class PaperVenue(Venue):
    """
    Simulated venue backed by an AssetBook.

    Usage:
        assets = AssetBook()
        venue = PaperVenue(assets, token0="WETH", token1="USDC", tick_spacing=10)

        venue.set_tick(120)
        venue.accrue_fees(position_id, 50, 75)
    """

    def __init__(
        self,
        assets: AssetBook,
        token0: str = "WETH",
        token1: str = "USDC",
        tick_spacing: int = 10,
        fee_tier: int = 500,
        initial_tick: int = 0,
        account: str = "paper-venue",
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize paper venue.

        Args:
            assets: Shared asset book
            token0: Base token symbol
            token1: Quote token symbol
            tick_spacing: Venue tick spacing
            fee_tier: Swap fee in hundredths of a bip
            initial_tick: Starting tick
            account: Custody account name
            clock: Time source in seconds (defaults to time.time)
        """
        if tick_spacing <= 0:
            raise ValueError(f"Tick spacing must be positive, got {tick_spacing}")
        if token0 == token1:
            raise ValueError("Venue tokens must differ")

        self._assets = assets
        self._token0 = token0
        self._token1 = token1
        self._tick_spacing = tick_spacing
        self._fee_tier = fee_tier
        self._account = account
        self._clock = clock or time.time

        self._tick = initial_tick
        self._positions: Dict[int, VenuePosition] = {}
        self._next_id = 1
        self._observations: List[Tuple[float, int]] = [(self._clock(), initial_tick)]

    @classmethod
    def from_settings(
        cls,
        settings: PaperVenueSettings,
        assets: AssetBook,
        clock: Optional[Callable[[], float]] = None,
    ) -> "PaperVenue":
        """Create a venue from configuration."""
        return cls(
            assets,
            token0=settings.token0,
            token1=settings.token1,
            tick_spacing=settings.tick_spacing,
            fee_tier=settings.fee_tier,
            initial_tick=settings.initial_tick,
            clock=clock,
        )

    # === Pool reads ===

    def current_state(self) -> PoolState:
        return PoolState(sqrt_price_x96=tick_to_sqrt_price_x96(self._tick), tick=self._tick)

    def time_weighted_tick(self, window_seconds: int) -> int:
        """
        Mean tick over the trailing window, each tick weighted by how long
        it was current. Rounds towards negative infinity.

        History shorter than the window is averaged over what exists.
        """
        now = self._clock()
        start = now - window_seconds

        times = np.array([t for t, _ in self._observations], dtype=float)
        ticks = np.array([k for _, k in self._observations], dtype=float)
        ends = np.append(times[1:], now)

        durations = np.clip(np.minimum(ends, now) - np.maximum(times, start), 0.0, None)
        total = durations.sum()
        if total <= 0:
            return self._tick

        return int(np.floor((ticks * durations).sum() / total))

    @property
    def tick_spacing(self) -> int:
        return self._tick_spacing

    @property
    def fee_tier(self) -> int:
        return self._fee_tier

    @property
    def token0(self) -> str:
        return self._token0

    @property
    def token1(self) -> str:
        return self._token1

    @property
    def custody_account(self) -> str:
        return self._account

    # === Position custody ===

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
        self._check_deadline(deadline)
        self._check_ticks(tick_lower, tick_upper)

        liquidity, amount0, amount1 = self._add_liquidity(
            sender, tick_lower, tick_upper,
            amount0_desired, amount1_desired, amount0_min, amount1_min,
        )

        position_id = self._next_id
        self._next_id += 1
        self._positions[position_id] = VenuePosition(
            owner=sender,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity=liquidity,
        )

        logger.debug(
            f"Minted position {position_id} [{tick_lower}, {tick_upper}) "
            f"L={liquidity} amounts=({amount0}, {amount1})"
        )
        return MintResult(position_id, liquidity, amount0, amount1)

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
        self._check_deadline(deadline)
        position = self._owned_position(sender, position_id)

        liquidity, amount0, amount1 = self._add_liquidity(
            sender, position.tick_lower, position.tick_upper,
            amount0_desired, amount1_desired, amount0_min, amount1_min,
        )
        position.liquidity += liquidity

        logger.debug(f"Increased position {position_id} by L={liquidity}")
        return IncreaseResult(liquidity, amount0, amount1)

    def decrease_liquidity(
        self,
        sender: str,
        position_id: int,
        liquidity: int,
        amount0_min: int,
        amount1_min: int,
        deadline: float,
    ) -> Tuple[int, int]:
        self._check_deadline(deadline)
        position = self._owned_position(sender, position_id)

        if liquidity <= 0 or liquidity > position.liquidity:
            raise VenueError(
                f"Cannot remove L={liquidity} from position {position_id} "
                f"holding L={position.liquidity}"
            )

        amount0, amount1 = amounts_for_liquidity(
            tick_to_sqrt_price_x96(self._tick),
            tick_to_sqrt_price_x96(position.tick_lower),
            tick_to_sqrt_price_x96(position.tick_upper),
            liquidity,
        )
        if amount0 < amount0_min or amount1 < amount1_min:
            raise VenueError("Price slippage check")

        position.liquidity -= liquidity
        position.tokens_owed0 += amount0
        position.tokens_owed1 += amount1

        logger.debug(f"Decreased position {position_id} by L={liquidity}")
        return amount0, amount1

    def collect(
        self,
        sender: str,
        position_id: int,
        recipient: str,
        amount0_max: int,
        amount1_max: int,
    ) -> Tuple[int, int]:
        position = self._owned_position(sender, position_id)

        amount0 = min(position.tokens_owed0, amount0_max)
        amount1 = min(position.tokens_owed1, amount1_max)
        position.tokens_owed0 -= amount0
        position.tokens_owed1 -= amount1

        self._assets.transfer(self._token0, self._account, recipient, amount0)
        self._assets.transfer(self._token1, self._account, recipient, amount1)
        return amount0, amount1

    def burn(self, sender: str, position_id: int) -> None:
        position = self._owned_position(sender, position_id)
        if position.liquidity or position.tokens_owed0 or position.tokens_owed1:
            raise VenueError(f"Position {position_id} not cleared")
        del self._positions[position_id]
        logger.debug(f"Burned position {position_id}")

    # === Simulation ===

    def set_tick(self, tick: int) -> None:
        """Move the pool price and record an observation."""
        if tick < MIN_TICK or tick > MAX_TICK:
            raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")
        self._tick = tick
        self._observations.append((self._clock(), tick))

    def accrue_fees(self, position_id: int, fee0: int, fee1: int) -> None:
        """Credit swap fees to a position (paid into custody by traders)."""
        position = self.get_position(position_id)
        position.tokens_owed0 += fee0
        position.tokens_owed1 += fee1
        self._assets.credit(self._token0, self._account, fee0)
        self._assets.credit(self._token1, self._account, fee1)

    def get_position(self, position_id: int) -> VenuePosition:
        """Get a venue-side position."""
        position = self._positions.get(position_id)
        if position is None:
            raise VenueError(f"Invalid position id {position_id}")
        return position

    def position_ids(self) -> List[int]:
        """Get ids of all live (unburned) positions."""
        return list(self._positions)

    # === Rollback support ===

    def snapshot(self) -> Dict[str, Any]:
        return {
            "tick": self._tick,
            "positions": copy.deepcopy(self._positions),
            "next_id": self._next_id,
            "observations": list(self._observations),
        }

    def restore(self, snapshot: Optional[Dict[str, Any]]) -> None:
        if snapshot is None:
            return
        self._tick = snapshot["tick"]
        self._positions = copy.deepcopy(snapshot["positions"])
        self._next_id = snapshot["next_id"]
        self._observations = list(snapshot["observations"])

    # === Internals ===

    def _check_deadline(self, deadline: float) -> None:
        if self._clock() > deadline:
            raise VenueError("Transaction too old")

    def _check_ticks(self, tick_lower: int, tick_upper: int) -> None:
        if tick_lower >= tick_upper:
            raise VenueError(f"Invalid range [{tick_lower}, {tick_upper})")
        if tick_lower < MIN_TICK or tick_upper > MAX_TICK:
            raise VenueError(f"Range [{tick_lower}, {tick_upper}) outside tick domain")
        if tick_lower % self._tick_spacing or tick_upper % self._tick_spacing:
            raise UnalignedTick(
                f"Range [{tick_lower}, {tick_upper}) not aligned to spacing "
                f"{self._tick_spacing}"
            )

    def _owned_position(self, sender: str, position_id: int) -> VenuePosition:
        position = self.get_position(position_id)
        if position.owner != sender:
            raise VenueError(f"{sender} is not approved for position {position_id}")
        return position

    def _add_liquidity(
        self,
        sender: str,
        tick_lower: int,
        tick_upper: int,
        amount0_desired: int,
        amount1_desired: int,
        amount0_min: int,
        amount1_min: int,
    ) -> Tuple[int, int, int]:
        """Size liquidity from desired amounts and pull the tokens it needs."""
        sqrt_price = tick_to_sqrt_price_x96(self._tick)
        sqrt_a = tick_to_sqrt_price_x96(tick_lower)
        sqrt_b = tick_to_sqrt_price_x96(tick_upper)

        liquidity = liquidity_for_amounts(
            sqrt_price, sqrt_a, sqrt_b, amount0_desired, amount1_desired
        )
        if liquidity == 0:
            raise VenueError("Zero liquidity")

        amount0, amount1 = amounts_for_liquidity(
            sqrt_price, sqrt_a, sqrt_b, liquidity, round_up=True
        )
        if amount0 < amount0_min or amount1 < amount1_min:
            raise VenueError("Price slippage check")

        self._assets.transfer_from(self._account, self._token0, sender, self._account, amount0)
        self._assets.transfer_from(self._account, self._token1, sender, self._account, amount1)
        return liquidity, amount0, amount1
