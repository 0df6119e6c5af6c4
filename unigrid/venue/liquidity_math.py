"""
Concentrated liquidity math.

Conversions between ticks, Q64.96 square-root prices, liquidity and
token amounts. All amounts are integer token units; prices are
sqrt(1.0001 ** tick) scaled by 2**96.

A range [sqrt_a, sqrt_b) holds:
- only token0 while the price is at or below sqrt_a
- only token1 once the price reaches sqrt_b
- both tokens in between
"""

from typing import Tuple

from unigrid.grid.tick_grid import MAX_TICK, MIN_TICK

Q96 = 2 ** 96
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342


def tick_to_sqrt_price_x96(tick: int) -> int:
    """Convert a tick to its Q64.96 square-root price."""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")

    sqrt_price_x96 = int(1.0001 ** (tick / 2.0) * Q96)
    return max(MIN_SQRT_RATIO, min(MAX_SQRT_RATIO, sqrt_price_x96))


def mul_div(a: int, b: int, denominator: int) -> int:
    """(a * b) // denominator without intermediate rounding."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return (a * b) // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """Ceiling of (a * b) / denominator."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return -((-a * b) // denominator)


def _ordered(sqrt_a: int, sqrt_b: int) -> Tuple[int, int]:
    return (sqrt_a, sqrt_b) if sqrt_a <= sqrt_b else (sqrt_b, sqrt_a)


# === Liquidity from amounts ===

def liquidity_for_amount0(sqrt_a: int, sqrt_b: int, amount0: int) -> int:
    """Liquidity provided by amount0 across [sqrt_a, sqrt_b)."""
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)
    if sqrt_a == sqrt_b:
        return 0
    intermediate = mul_div(sqrt_a, sqrt_b, Q96)
    return mul_div(amount0, intermediate, sqrt_b - sqrt_a)


def liquidity_for_amount1(sqrt_a: int, sqrt_b: int, amount1: int) -> int:
    """Liquidity provided by amount1 across [sqrt_a, sqrt_b)."""
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)
    if sqrt_a == sqrt_b:
        return 0
    return mul_div(amount1, Q96, sqrt_b - sqrt_a)


def liquidity_for_amounts(
    sqrt_price: int,
    sqrt_a: int,
    sqrt_b: int,
    amount0: int,
    amount1: int,
) -> int:
    """
    Maximum liquidity that the given amounts can back at the current price.

    Args:
        sqrt_price: Current Q64.96 square-root price
        sqrt_a: Lower bound of the range
        sqrt_b: Upper bound of the range
        amount0: Available token0
        amount1: Available token1

    Returns:
        Liquidity (rounded down)
    """
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)

    if sqrt_price <= sqrt_a:
        return liquidity_for_amount0(sqrt_a, sqrt_b, amount0)
    if sqrt_price < sqrt_b:
        return min(
            liquidity_for_amount0(sqrt_price, sqrt_b, amount0),
            liquidity_for_amount1(sqrt_a, sqrt_price, amount1),
        )
    return liquidity_for_amount1(sqrt_a, sqrt_b, amount1)


# === Amounts from liquidity ===

def amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool = False) -> int:
    """Token0 backing liquidity across [sqrt_a, sqrt_b)."""
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)
    if liquidity == 0 or sqrt_a == sqrt_b:
        return 0

    numerator1 = liquidity << 96
    numerator2 = sqrt_b - sqrt_a
    if round_up:
        return mul_div_rounding_up(
            mul_div_rounding_up(numerator1, numerator2, sqrt_b), 1, sqrt_a
        )
    return mul_div(numerator1, numerator2, sqrt_b) // sqrt_a


def amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool = False) -> int:
    """Token1 backing liquidity across [sqrt_a, sqrt_b)."""
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)
    if liquidity == 0 or sqrt_a == sqrt_b:
        return 0

    if round_up:
        return mul_div_rounding_up(liquidity, sqrt_b - sqrt_a, Q96)
    return mul_div(liquidity, sqrt_b - sqrt_a, Q96)


def amounts_for_liquidity(
    sqrt_price: int,
    sqrt_a: int,
    sqrt_b: int,
    liquidity: int,
    round_up: bool = False,
) -> Tuple[int, int]:
    """
    Token amounts backing liquidity at the current price.

    Rounding up gives what a depositor must pay; rounding down gives
    what a withdrawal returns.

    Returns:
        (amount0, amount1)
    """
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)

    if sqrt_price <= sqrt_a:
        return amount0_delta(sqrt_a, sqrt_b, liquidity, round_up), 0
    if sqrt_price < sqrt_b:
        return (
            amount0_delta(sqrt_price, sqrt_b, liquidity, round_up),
            amount1_delta(sqrt_a, sqrt_price, liquidity, round_up),
        )
    return 0, amount1_delta(sqrt_a, sqrt_b, liquidity, round_up)


def amounts_for_range(
    current_tick: int,
    tick_lower: int,
    tick_upper: int,
    liquidity: int,
) -> Tuple[int, int]:
    """Token amounts (rounded down) backing liquidity in a tick range."""
    return amounts_for_liquidity(
        tick_to_sqrt_price_x96(current_tick),
        tick_to_sqrt_price_x96(tick_lower),
        tick_to_sqrt_price_x96(tick_upper),
        liquidity,
    )
