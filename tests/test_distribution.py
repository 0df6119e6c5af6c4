"""
Tests for distribution weights.

Tests:
- Flat, linear, reverse-linear and Fibonacci weights
- Floor rounding (totals never exceed 10000)
- Reserved kinds and invalid cell counts
"""

import pytest

from unigrid.grid import BPS, compute_weights
from unigrid.errors import DistributionNotImplemented, InvalidCellCount
from config.settings import DistributionKind

IMPLEMENTED = [
    DistributionKind.FLAT,
    DistributionKind.LINEAR,
    DistributionKind.REVERSE_LINEAR,
    DistributionKind.FIBONACCI,
]


class TestFlat:
    """Tests for FLAT distribution."""

    def test_even_split(self):
        """Test cells share 10000 equally."""
        assert compute_weights(5, DistributionKind.FLAT) == [2000] * 5

    def test_remainder_not_redistributed(self):
        """Test leftover basis points stay unallocated."""
        weights = compute_weights(3, DistributionKind.FLAT)

        assert weights == [3333, 3333, 3333]
        assert sum(weights) == 9999

    def test_single_cell(self):
        """Test one cell takes everything."""
        assert compute_weights(1, DistributionKind.FLAT) == [BPS]


class TestLinear:
    """Tests for LINEAR and REVERSE_LINEAR distributions."""

    def test_linear_increasing(self):
        """Test weights grow with cell index."""
        assert compute_weights(4, DistributionKind.LINEAR) == [1000, 2000, 3000, 4000]

    def test_reverse_linear_decreasing(self):
        """Test weights shrink with cell index."""
        assert compute_weights(4, DistributionKind.REVERSE_LINEAR) == [4000, 3000, 2000, 1000]

    def test_linear_floors(self):
        """Test linear weights are floored."""
        weights = compute_weights(3, DistributionKind.LINEAR)

        assert weights == [1666, 3333, 5000]
        assert sum(weights) == 9999

    @pytest.mark.parametrize("n", range(1, 51))
    def test_reverse_is_mirror(self, n):
        """Test reverse-linear mirrors linear."""
        linear = compute_weights(n, DistributionKind.LINEAR)
        reverse = compute_weights(n, DistributionKind.REVERSE_LINEAR)

        assert reverse == linear[::-1]


class TestFibonacci:
    """Tests for FIBONACCI distribution."""

    def test_five_cells(self):
        """Test weights follow 1, 1, 2, 3, 5."""
        assert compute_weights(5, DistributionKind.FIBONACCI) == [833, 833, 1666, 2500, 4166]

    def test_two_cells(self):
        """Test the two seed values split evenly."""
        assert compute_weights(2, DistributionKind.FIBONACCI) == [5000, 5000]

    def test_non_decreasing(self):
        """Test weights never decrease with index."""
        weights = compute_weights(20, DistributionKind.FIBONACCI)

        assert all(a <= b for a, b in zip(weights, weights[1:]))


class TestConservation:
    """Tests for weight totals across all kinds."""

    @pytest.mark.parametrize("kind", IMPLEMENTED)
    @pytest.mark.parametrize("n", [1, 2, 3, 7, 10, 33, 100])
    def test_total_bounded(self, kind, n):
        """Test floor rounding loses less than one bp per cell."""
        weights = compute_weights(n, kind)

        assert len(weights) == n
        assert BPS - n < sum(weights) <= BPS
        assert all(w >= 0 for w in weights)

    @pytest.mark.parametrize("kind", IMPLEMENTED)
    def test_single_cell_takes_all(self, kind):
        """Test every kind gives one cell the full weight."""
        assert compute_weights(1, kind) == [BPS]


class TestErrors:
    """Tests for rejected inputs."""

    @pytest.mark.parametrize("kind", [DistributionKind.SIGMOID, DistributionKind.LOGARITHMIC])
    def test_reserved_kinds(self, kind):
        """Test reserved kinds raise for any cell count."""
        with pytest.raises(DistributionNotImplemented) as exc_info:
            compute_weights(5, kind)

        assert exc_info.value.error_info.code == "PRE:NotImplemented"

    @pytest.mark.parametrize("n", [0, -1])
    def test_non_positive_count(self, n):
        """Test non-positive cell counts are rejected."""
        with pytest.raises(InvalidCellCount):
            compute_weights(n, DistributionKind.FLAT)
