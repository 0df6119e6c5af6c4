"""
Tests for cell planning.

Tests:
- Side classification against the reference tick
- Token shares and slippage minimums per side
- Reference cell policy
"""

import pytest

from unigrid.grid import (
    CellSide,
    GridCell,
    TickGridCalculator,
    cell_side,
    compute_weights,
    min_amount,
    plan_cells,
)
from config.settings import DistributionKind, GridType


@pytest.fixture
def neutral_grid():
    """Neutral grid [980, 1020] around an aligned reference of 1000."""
    return TickGridCalculator().compute(1000, GridType.NEUTRAL, 4, 1, 10)


class TestCellSide:
    """Tests for cell_side and min_amount helpers."""

    def test_above(self):
        """Test cells strictly above the reference."""
        assert cell_side(1010, 1020, 1000) == CellSide.ABOVE

    def test_below_includes_upper_equal(self):
        """Test a cell ending at the reference is below it."""
        assert cell_side(990, 1000, 1000) == CellSide.BELOW
        assert cell_side(900, 950, 1000) == CellSide.BELOW

    def test_straddle(self):
        """Test cells containing the reference."""
        assert cell_side(1000, 1010, 1000) == CellSide.STRADDLE
        assert cell_side(1000, 1010, 1005) == CellSide.STRADDLE

    def test_min_amount(self):
        """Test slippage minimum floors."""
        assert min_amount(1000, 500) == 950
        assert min_amount(250, 100) == 247
        assert min_amount(0, 100) == 0
        assert min_amount(1000, 0) == 1000


class TestGridCell:
    """Tests for GridCell properties."""

    def test_unfunded(self):
        """Test an empty cell."""
        cell = GridCell(0, 10, 0, 1000, 0, 0)

        assert cell.is_funded is False
        assert cell.is_two_sided is False
        assert cell.side == CellSide.STRADDLE

    def test_two_sided(self):
        """Test a cell with both tokens."""
        cell = GridCell(0, 10, 5, 1000, 100, 200)

        assert cell.is_funded is True
        assert cell.is_two_sided is True


class TestPlanCells:
    """Tests for plan_cells function."""

    def test_one_sided_shares(self, neutral_grid):
        """Test each side receives only its token, with minimums."""
        weights = compute_weights(neutral_grid.num_cells, DistributionKind.FLAT)
        cells = plan_cells(neutral_grid, weights, 1000, 2000, 100)

        assert [c.side for c in cells] == [
            CellSide.BELOW, CellSide.BELOW, CellSide.STRADDLE, CellSide.ABOVE,
        ]

        below = cells[0]
        assert (below.token0_share, below.token1_share) == (0, 500)
        assert (below.amount0_min, below.amount1_min) == (0, 495)

        above = cells[3]
        assert (above.token0_share, above.token1_share) == (250, 0)
        assert (above.amount0_min, above.amount1_min) == (247, 0)

    def test_reference_cell_skipped_by_default(self, neutral_grid):
        """Test the straddling cell receives nothing."""
        weights = compute_weights(neutral_grid.num_cells, DistributionKind.FLAT)
        cells = plan_cells(neutral_grid, weights, 1000, 2000, 100)

        assert cells[2].is_funded is False

    def test_reference_cell_placed_when_enabled(self, neutral_grid):
        """Test the straddling cell gets both tokens and no minimums."""
        weights = compute_weights(neutral_grid.num_cells, DistributionKind.FLAT)
        cells = plan_cells(
            neutral_grid, weights, 1000, 2000, 100, place_reference_cell=True
        )

        reference = cells[2]
        assert reference.is_two_sided is True
        assert (reference.token0_share, reference.token1_share) == (250, 500)
        assert (reference.amount0_min, reference.amount1_min) == (0, 0)

    def test_reference_cell_needs_both_tokens(self, neutral_grid):
        """Test the straddling cell stays empty when one token is missing."""
        weights = compute_weights(neutral_grid.num_cells, DistributionKind.FLAT)
        cells = plan_cells(
            neutral_grid, weights, 0, 2000, 100, place_reference_cell=True
        )

        assert cells[2].is_funded is False
        assert cells[3].is_funded is False
        assert cells[0].token1_share == 500

    def test_shares_never_exceed_totals(self, neutral_grid):
        """Test planned shares fit the available amounts."""
        weights = compute_weights(neutral_grid.num_cells, DistributionKind.FIBONACCI)
        cells = plan_cells(
            neutral_grid, weights, 12345, 67891, 300, place_reference_cell=True
        )

        assert sum(c.token0_share for c in cells) <= 12345
        assert sum(c.token1_share for c in cells) <= 67891

    def test_sell_grid_all_token0(self):
        """Test sell grid cells above the reference hold only token0."""
        grid = TickGridCalculator().compute(1000, GridType.SELL, 4, 1, 10)
        weights = compute_weights(grid.num_cells, DistributionKind.FLAT)
        cells = plan_cells(grid, weights, 1000, 0, 50)

        assert cells[0].is_funded is False  # [1000, 1010) contains the reference
        assert all(c.token1_share == 0 for c in cells)
        assert [c.token0_share for c in cells[1:]] == [250, 250, 250]

    def test_weight_count_mismatch(self, neutral_grid):
        """Test that weights must match the cell count."""
        with pytest.raises(ValueError, match="one weight per cell"):
            plan_cells(neutral_grid, [5000, 5000], 1000, 1000, 100)
