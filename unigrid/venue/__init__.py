"""
Venue Module.

Everything on the far side of the manager's external calls:
- Venue: Interface the manager consumes (pool reads, position custody)
- PaperVenue: In-memory implementation for paper runs and tests
- AssetBook: Token and native-currency balances shared with the manager
- liquidity_math: Tick, price, liquidity and amount conversions

Usage:
    from unigrid.venue import AssetBook, PaperVenue

    assets = AssetBook()
    venue = PaperVenue(assets, token0="WETH", token1="USDC", tick_spacing=10)
    state = venue.current_state()
"""

from .base import (
    IncreaseResult,
    MintResult,
    PoolState,
    Venue,
)
from .assets import (
    UNLIMITED_ALLOWANCE,
    AssetBook,
)
from .liquidity_math import (
    Q96,
    amounts_for_liquidity,
    amounts_for_range,
    liquidity_for_amounts,
    tick_to_sqrt_price_x96,
)
from .paper import (
    PaperVenue,
    VenuePosition,
)

__all__ = [
    # Interface
    "IncreaseResult",
    "MintResult",
    "PoolState",
    "Venue",
    # Assets
    "UNLIMITED_ALLOWANCE",
    "AssetBook",
    # Math
    "Q96",
    "amounts_for_liquidity",
    "amounts_for_range",
    "liquidity_for_amounts",
    "tick_to_sqrt_price_x96",
    # Paper venue
    "PaperVenue",
    "VenuePosition",
]
