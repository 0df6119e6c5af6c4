"""
Grid Module.

Pure grid computations, independent of any venue state:
- TickGridCalculator: Aligned tick boundaries around a reference tick
- compute_weights: Basis-point weights per cell
- plan_cells: Token shares and minimums per cell

Usage:
    from unigrid.grid import TickGridCalculator, compute_weights, plan_cells

    grid = TickGridCalculator().compute(
        reference_tick=1000,
        grid_type=GridType.NEUTRAL,
        grid_quantity=10,
        grid_step=1,
        tick_spacing=10,
    )
    weights = compute_weights(grid.num_cells, DistributionKind.FLAT)
    cells = plan_cells(grid, weights, amount0, amount1, slippage_bps=100)
"""

from .tick_grid import (
    MIN_TICK,
    MAX_TICK,
    TickGrid,
    TickGridCalculator,
    align_tick,
)
from .distribution import (
    BPS,
    compute_weights,
)
from .cell_planner import (
    CellSide,
    GridCell,
    cell_side,
    min_amount,
    plan_cells,
)

__all__ = [
    # Tick grid
    "MIN_TICK",
    "MAX_TICK",
    "TickGrid",
    "TickGridCalculator",
    "align_tick",
    # Distribution
    "BPS",
    "compute_weights",
    # Cell planner
    "CellSide",
    "GridCell",
    "cell_side",
    "min_amount",
    "plan_cells",
]
