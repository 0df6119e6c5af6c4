"""
Tick Grid Calculator for computing aligned grid boundaries.

Calculates grid tick boundaries based on:
- Reference tick (current venue tick)
- Grid type (neutral band, buy side, sell side)
- Grid quantity and step (step multiplies the venue tick spacing)

Every boundary is floor-aligned to the effective spacing so that each
cell is tradeable on the venue.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

from config.settings import GridType
from unigrid.errors import DegenerateGrid, InvalidRange

logger = logging.getLogger(__name__)

# Venue tick domain
MIN_TICK = -887272
MAX_TICK = 887272


@dataclass(frozen=True)
class TickGrid:
    """Ordered, aligned boundaries of one grid computation."""

    ticks: Tuple[int, ...]  # Ascending, evenly spaced
    spacing: int  # Effective spacing (tick_spacing * grid_step)
    reference_tick: int
    grid_type: GridType

    @property
    def lower(self) -> int:
        """Lowest boundary."""
        return self.ticks[0]

    @property
    def upper(self) -> int:
        """Highest boundary."""
        return self.ticks[-1]

    @property
    def num_cells(self) -> int:
        """Number of cells between boundaries."""
        return len(self.ticks) - 1

    def cells(self) -> List[Tuple[int, int]]:
        """Get (tick_lower, tick_upper) for every cell, lowest first."""
        return list(zip(self.ticks[:-1], self.ticks[1:]))

    def reference_cell_index(self) -> int:
        """
        Index of the cell containing the reference tick.

        Returns:
            Cell index, or -1 if the reference tick is outside the grid
        """
        for index, (lower, upper) in enumerate(self.cells()):
            if lower <= self.reference_tick < upper:
                return index
        return -1


def align_tick(tick: int, spacing: int) -> int:
    """
    Floor-align a tick to a multiple of spacing.

    Python's modulo follows the divisor's sign, so negative ticks round
    down (towards lower prices) as well.
    """
    return tick - tick % spacing


class TickGridCalculator:
    """
    Calculates aligned grid boundaries around a reference tick.

    Example:
        calculator = TickGridCalculator()
        grid = calculator.compute(
            reference_tick=1000,
            grid_type=GridType.NEUTRAL,
            grid_quantity=6,
            grid_step=2,
            tick_spacing=10,
        )
        grid.ticks  # (940, 960, 980, 1000, 1020, 1040, 1060)
    """

    def compute(
        self,
        reference_tick: int,
        grid_type: GridType,
        grid_quantity: int,
        grid_step: int,
        tick_spacing: int,
    ) -> TickGrid:
        """
        Compute grid boundaries.

        Args:
            reference_tick: Current venue tick
            grid_type: NEUTRAL, BUY or SELL
            grid_quantity: Number of grid steps
            grid_step: Multiplier on tick spacing
            tick_spacing: Venue tick spacing

        Returns:
            TickGrid with ascending aligned boundaries

        Raises:
            InvalidRange: On non-positive inputs, out-of-domain ranges or
                fewer than two boundaries
            DegenerateGrid: If the grid would hold a single cell
        """
        if grid_quantity <= 0 or grid_step <= 0 or tick_spacing <= 0:
            raise InvalidRange(
                f"Quantity, step and spacing must be positive, got "
                f"quantity={grid_quantity}, step={grid_step}, spacing={tick_spacing}"
            )

        spacing = tick_spacing * grid_step
        steps = grid_quantity // 2 if grid_type == GridType.NEUTRAL else grid_quantity
        half_range = steps * spacing

        if grid_type == GridType.NEUTRAL:
            lower = reference_tick - half_range
            upper = reference_tick + half_range
        elif grid_type == GridType.BUY:
            lower = reference_tick - half_range
            upper = reference_tick
        else:
            lower = reference_tick
            upper = reference_tick + half_range

        lower = align_tick(lower, spacing)
        upper = align_tick(upper, spacing)

        # Python ints never wrap, so overflow is checked explicitly
        if lower < MIN_TICK or upper > MAX_TICK:
            raise InvalidRange(
                f"Grid range [{lower}, {upper}] exceeds tick domain "
                f"[{MIN_TICK}, {MAX_TICK}]"
            )

        ticks = tuple(range(lower, upper + 1, spacing))

        if len(ticks) < 2:
            raise InvalidRange(
                f"Grid needs at least 2 boundaries, got {len(ticks)} "
                f"(reference={reference_tick}, spacing={spacing})"
            )
        if len(ticks) - 1 <= 1:
            raise DegenerateGrid(
                f"Grid has a single cell [{ticks[0]}, {ticks[1]}]"
            )

        grid = TickGrid(
            ticks=ticks,
            spacing=spacing,
            reference_tick=reference_tick,
            grid_type=grid_type,
        )

        logger.debug(
            f"Computed {grid_type.name} grid: {grid.num_cells} cells, "
            f"range=[{grid.lower}, {grid.upper}], spacing={spacing}"
        )

        return grid

    def calculate(
        self,
        reference_tick: int,
        grid_type: GridType,
        grid_quantity: int,
        grid_step: int,
        tick_spacing: int,
    ) -> List[int]:
        """Compute grid boundaries as a plain list of ticks."""
        grid = self.compute(
            reference_tick, grid_type, grid_quantity, grid_step, tick_spacing
        )
        return list(grid.ticks)
