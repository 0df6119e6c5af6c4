"""
Cell Planner for turning grid boundaries and weights into funded cells.

Each cell is sized from its weight and placed on the side of the
reference tick the venue expects:
- Cells entirely above the reference tick hold only token0
- Cells entirely at or below the reference tick hold only token1
- The cell containing the reference tick is skipped, unless the
  place_reference_cell policy is enabled and both tokens are available,
  in which case it receives both tokens and its minimums are relaxed to
  zero (two-sided cells carry no slippage protection)
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import List

from .distribution import BPS
from .tick_grid import TickGrid

logger = logging.getLogger(__name__)


class CellSide(Enum):
    """Position of a cell relative to the reference tick."""

    ABOVE = auto()  # tick_lower > reference, token0 only
    BELOW = auto()  # tick_upper <= reference, token1 only
    STRADDLE = auto()  # Contains the reference tick


@dataclass(frozen=True)
class GridCell:
    """One grid cell as planned for a single operation."""

    tick_lower: int
    tick_upper: int
    current_tick: int
    weight: int  # Basis points
    token0_share: int  # Desired token0
    token1_share: int  # Desired token1
    amount0_min: int = 0
    amount1_min: int = 0

    @property
    def side(self) -> CellSide:
        """Side of the reference tick this cell lies on."""
        return cell_side(self.tick_lower, self.tick_upper, self.current_tick)

    @property
    def is_funded(self) -> bool:
        """Whether the cell receives any tokens."""
        return self.token0_share > 0 or self.token1_share > 0

    @property
    def is_two_sided(self) -> bool:
        """Whether both tokens go into this cell."""
        return self.token0_share > 0 and self.token1_share > 0


def cell_side(tick_lower: int, tick_upper: int, current_tick: int) -> CellSide:
    """Classify a tick range against the current tick."""
    if tick_lower > current_tick:
        return CellSide.ABOVE
    if tick_upper <= current_tick:
        return CellSide.BELOW
    return CellSide.STRADDLE


def min_amount(desired: int, slippage_bps: int) -> int:
    """Minimum acceptable amount for a desired amount under slippage."""
    return desired * (BPS - slippage_bps) // BPS


def plan_cells(
    grid: TickGrid,
    weights: List[int],
    amount0: int,
    amount1: int,
    slippage_bps: int,
    place_reference_cell: bool = False,
) -> List[GridCell]:
    """
    Plan token shares for every cell of a grid.

    Args:
        grid: Grid boundaries
        weights: One basis-point weight per cell
        amount0: Total token0 available
        amount1: Total token1 available
        slippage_bps: Slippage tolerance for one-sided cells
        place_reference_cell: Fund the cell containing the reference tick

    Returns:
        One GridCell per grid cell, lowest first (unfunded cells included)
    """
    if len(weights) != grid.num_cells:
        raise ValueError(
            f"Need one weight per cell, got {len(weights)} for {grid.num_cells} cells"
        )

    cells: List[GridCell] = []
    reference = grid.reference_tick

    for (lower, upper), weight in zip(grid.cells(), weights):
        side = cell_side(lower, upper, reference)
        share0 = amount0 * weight // BPS
        share1 = amount1 * weight // BPS

        if side == CellSide.ABOVE:
            cell = GridCell(
                tick_lower=lower,
                tick_upper=upper,
                current_tick=reference,
                weight=weight,
                token0_share=share0,
                token1_share=0,
                amount0_min=min_amount(share0, slippage_bps),
            )
        elif side == CellSide.BELOW:
            cell = GridCell(
                tick_lower=lower,
                tick_upper=upper,
                current_tick=reference,
                weight=weight,
                token0_share=0,
                token1_share=share1,
                amount1_min=min_amount(share1, slippage_bps),
            )
        elif place_reference_cell and share0 > 0 and share1 > 0:
            cell = GridCell(
                tick_lower=lower,
                tick_upper=upper,
                current_tick=reference,
                weight=weight,
                token0_share=share0,
                token1_share=share1,
            )
        else:
            logger.debug(f"Skipping reference cell [{lower}, {upper}) at tick {reference}")
            cell = GridCell(
                tick_lower=lower,
                tick_upper=upper,
                current_tick=reference,
                weight=weight,
                token0_share=0,
                token1_share=0,
            )

        cells.append(cell)

    return cells
