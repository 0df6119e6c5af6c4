"""
Distribution weights for spreading capital across grid cells.

Weights are integer basis points, index 0 is the lowest-price cell.

Rounding: every kind uses floor division, so totals may undershoot
10000. FLAT in particular never redistributes its remainder; the
undershoot is at most cell_count - 1 bps and simply stays unallocated.
"""

from typing import Callable, Dict, List

from config.settings import DistributionKind
from unigrid.errors import DistributionNotImplemented, InvalidCellCount

BPS = 10000


def _flat_weights(n: int) -> List[int]:
    return [BPS // n] * n


def _linear_weights(n: int) -> List[int]:
    total = n * (n + 1) // 2
    return [(i + 1) * BPS // total for i in range(n)]


def _reverse_linear_weights(n: int) -> List[int]:
    total = n * (n + 1) // 2
    return [(n - i) * BPS // total for i in range(n)]


def _fibonacci_numbers(n: int) -> List[int]:
    """First n Fibonacci numbers seeded 1, 1."""
    fib = [1, 1][:n]
    while len(fib) < n:
        fib.append(fib[-1] + fib[-2])
    return fib


def _fibonacci_weights(n: int) -> List[int]:
    fib = _fibonacci_numbers(n)
    total = sum(fib)
    return [f * BPS // total for f in fib]


_WEIGHT_FUNCTIONS: Dict[DistributionKind, Callable[[int], List[int]]] = {
    DistributionKind.FLAT: _flat_weights,
    DistributionKind.LINEAR: _linear_weights,
    DistributionKind.REVERSE_LINEAR: _reverse_linear_weights,
    DistributionKind.FIBONACCI: _fibonacci_weights,
}


def compute_weights(cell_count: int, kind: DistributionKind) -> List[int]:
    """
    Compute basis-point weights for each grid cell.

    Args:
        cell_count: Number of cells (must be positive)
        kind: Distribution kind

    Returns:
        cell_count weights, lowest-price cell first

    Raises:
        InvalidCellCount: If cell_count is not positive
        DistributionNotImplemented: For SIGMOID and LOGARITHMIC
    """
    if cell_count <= 0:
        raise InvalidCellCount(f"Cell count must be positive, got {cell_count}")

    weight_fn = _WEIGHT_FUNCTIONS.get(kind)
    if weight_fn is None:
        raise DistributionNotImplemented(f"Distribution {kind.name} is not implemented")

    return weight_fn(cell_count)
