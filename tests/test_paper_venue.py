"""
Tests for the paper venue, asset book and liquidity math.

Tests:
- Tick to price conversion and liquidity sizing
- Token balances, allowances and native currency
- Mint, increase, decrease, collect and burn
- Deadline, slippage and alignment checks
- Time-weighted tick over a fake clock
- Snapshot and restore
"""

import pytest

from unigrid.venue import (
    Q96,
    UNLIMITED_ALLOWANCE,
    AssetBook,
    PaperVenue,
    amounts_for_liquidity,
    amounts_for_range,
    liquidity_for_amounts,
    tick_to_sqrt_price_x96,
)
from unigrid.errors import UnalignedTick, VenueError


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestLiquidityMath:
    """Tests for liquidity math helpers."""

    def test_tick_zero_is_unit_price(self):
        """Test tick 0 maps to exactly 2**96."""
        assert tick_to_sqrt_price_x96(0) == Q96

    def test_price_increases_with_tick(self):
        """Test conversion is monotonic."""
        prices = [tick_to_sqrt_price_x96(t) for t in (-1000, -10, 0, 10, 1000)]

        assert prices == sorted(prices)
        assert len(set(prices)) == len(prices)

    def test_out_of_bounds_tick(self):
        """Test ticks outside the domain are rejected."""
        with pytest.raises(ValueError, match="out of bounds"):
            tick_to_sqrt_price_x96(887273)

    def test_range_above_price_uses_token0(self):
        """Test a range above the price is sized from token0 only."""
        price = tick_to_sqrt_price_x96(0)
        sqrt_a = tick_to_sqrt_price_x96(10)
        sqrt_b = tick_to_sqrt_price_x96(20)

        assert liquidity_for_amounts(price, sqrt_a, sqrt_b, 1000, 0) > 0
        assert liquidity_for_amounts(price, sqrt_a, sqrt_b, 0, 1000) == 0

    def test_range_below_price_uses_token1(self):
        """Test a range below the price is sized from token1 only."""
        price = tick_to_sqrt_price_x96(0)
        sqrt_a = tick_to_sqrt_price_x96(-20)
        sqrt_b = tick_to_sqrt_price_x96(-10)

        assert liquidity_for_amounts(price, sqrt_a, sqrt_b, 0, 1000) > 0
        assert liquidity_for_amounts(price, sqrt_a, sqrt_b, 1000, 0) == 0

    def test_amounts_by_side(self):
        """Test backing amounts follow the price's side of the range."""
        assert amounts_for_range(0, 10, 20, 10**9)[1] == 0
        assert amounts_for_range(0, -20, -10, 10**9)[0] == 0

        amount0, amount1 = amounts_for_range(15, 10, 20, 10**9)
        assert amount0 > 0 and amount1 > 0

    def test_round_up_covers_round_down(self):
        """Test deposit amounts are never below withdrawal amounts."""
        price = tick_to_sqrt_price_x96(15)
        sqrt_a = tick_to_sqrt_price_x96(10)
        sqrt_b = tick_to_sqrt_price_x96(20)

        down = amounts_for_liquidity(price, sqrt_a, sqrt_b, 123456789)
        up = amounts_for_liquidity(price, sqrt_a, sqrt_b, 123456789, round_up=True)

        assert up[0] >= down[0] and up[1] >= down[1]

    def test_sized_liquidity_fits_amounts(self):
        """Test liquidity from amounts never needs more than supplied."""
        price = tick_to_sqrt_price_x96(0)
        sqrt_a = tick_to_sqrt_price_x96(10)
        sqrt_b = tick_to_sqrt_price_x96(20)

        liquidity = liquidity_for_amounts(price, sqrt_a, sqrt_b, 1000, 0)
        amount0, _ = amounts_for_liquidity(price, sqrt_a, sqrt_b, liquidity, round_up=True)

        assert amount0 <= 1000


class TestAssetBook:
    """Tests for AssetBook class."""

    @pytest.fixture
    def assets(self):
        assets = AssetBook()
        assets.credit("WETH", "alice", 1000)
        return assets

    def test_transfer(self, assets):
        """Test moving tokens between accounts."""
        assets.transfer("WETH", "alice", "bob", 400)

        assert assets.balance_of("WETH", "alice") == 600
        assert assets.balance_of("WETH", "bob") == 400

    def test_transfer_insufficient(self, assets):
        """Test overdrawing is rejected."""
        with pytest.raises(VenueError):
            assets.transfer("WETH", "alice", "bob", 1001)

    def test_transfer_from_consumes_allowance(self, assets):
        """Test finite allowances are decremented."""
        assets.approve("WETH", "alice", "manager", 500)
        assets.transfer_from("manager", "WETH", "alice", "manager", 300)

        assert assets.allowance("WETH", "alice", "manager") == 200
        assert assets.balance_of("WETH", "manager") == 300

    def test_unlimited_allowance_kept(self, assets):
        """Test unlimited allowances are not decremented."""
        assets.approve("WETH", "alice", "manager", UNLIMITED_ALLOWANCE)
        assets.transfer_from("manager", "WETH", "alice", "manager", 300)

        assert assets.allowance("WETH", "alice", "manager") == UNLIMITED_ALLOWANCE

    def test_transfer_from_without_allowance(self, assets):
        """Test pulling without approval is rejected."""
        with pytest.raises(VenueError, match="Insufficient allowance"):
            assets.transfer_from("manager", "WETH", "alice", "manager", 1)

    def test_native_balance(self, assets):
        """Test native currency bookkeeping."""
        assets.credit_native("manager", 10)
        assets.transfer_native("manager", "owner", 4)

        assert assets.native_balance_of("manager") == 6
        assert assets.native_balance_of("owner") == 4
        with pytest.raises(VenueError):
            assets.transfer_native("manager", "owner", 7)

    def test_snapshot_restore(self, assets):
        """Test restore brings back balances and allowances."""
        assets.approve("WETH", "alice", "manager", 100)
        snapshot = assets.snapshot()

        assets.transfer("WETH", "alice", "bob", 1000)
        assets.approve("WETH", "alice", "manager", 0)
        assets.credit_native("alice", 5)
        assets.restore(snapshot)

        assert assets.balance_of("WETH", "alice") == 1000
        assert assets.balance_of("WETH", "bob") == 0
        assert assets.allowance("WETH", "alice", "manager") == 100
        assert assets.native_balance_of("alice") == 0


class TestPaperVenue:
    """Tests for PaperVenue custody calls."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def assets(self):
        assets = AssetBook()
        assets.credit("WETH", "lp", 10**9)
        assets.credit("USDC", "lp", 10**9)
        assets.approve("WETH", "lp", "paper-venue", UNLIMITED_ALLOWANCE)
        assets.approve("USDC", "lp", "paper-venue", UNLIMITED_ALLOWANCE)
        return assets

    @pytest.fixture
    def venue(self, assets, clock):
        return PaperVenue(assets, tick_spacing=10, initial_tick=0, clock=clock)

    def mint_above(self, venue, clock, amount0=1000):
        return venue.mint("lp", 10, 20, amount0, 0, 0, 0, clock() + 60)

    def test_properties(self, venue):
        """Test venue metadata."""
        assert venue.token0 == "WETH"
        assert venue.token1 == "USDC"
        assert venue.tick_spacing == 10
        assert venue.fee_tier == 500
        assert venue.custody_account == "paper-venue"
        assert venue.current_state().tick == 0
        assert venue.current_state().sqrt_price_x96 == Q96

    def test_mint_above_price(self, venue, assets, clock):
        """Test minting a range above the price takes token0 only."""
        result = venue.mint("lp", 10, 20, 1000, 0, 990, 0, clock() + 60)

        assert result.position_id == 1
        assert result.liquidity > 0
        assert 990 <= result.amount0 <= 1000
        assert result.amount1 == 0
        assert assets.balance_of("WETH", "paper-venue") == result.amount0
        assert venue.get_position(1).liquidity == result.liquidity

    def test_mint_below_price(self, venue, clock):
        """Test minting a range below the price takes token1 only."""
        result = venue.mint("lp", -20, -10, 0, 1000, 0, 990, clock() + 60)

        assert result.amount0 == 0
        assert 990 <= result.amount1 <= 1000

    def test_ids_sequential(self, venue, clock):
        """Test position ids are assigned in order."""
        first = self.mint_above(venue, clock)
        second = venue.mint("lp", 20, 30, 1000, 0, 0, 0, clock() + 60)

        assert (first.position_id, second.position_id) == (1, 2)
        assert venue.position_ids() == [1, 2]

    def test_expired_deadline(self, venue, clock):
        """Test calls after their deadline are rejected."""
        with pytest.raises(VenueError, match="Transaction too old"):
            venue.mint("lp", 10, 20, 1000, 0, 0, 0, clock() - 1)

    def test_slippage_check(self, venue, clock):
        """Test minimums above what the venue takes are rejected."""
        with pytest.raises(VenueError, match="Price slippage check"):
            venue.mint("lp", 10, 20, 1000, 0, 1001, 0, clock() + 60)

    def test_zero_liquidity(self, venue, clock):
        """Test the wrong token for the range yields no liquidity."""
        with pytest.raises(VenueError, match="Zero liquidity"):
            venue.mint("lp", 10, 20, 0, 1000, 0, 0, clock() + 60)

    def test_unaligned_ticks(self, venue, clock):
        """Test ranges off the tick spacing are rejected."""
        with pytest.raises(UnalignedTick):
            venue.mint("lp", 15, 20, 1000, 0, 0, 0, clock() + 60)

    def test_inverted_range(self, venue, clock):
        """Test lower must be below upper."""
        with pytest.raises(VenueError, match="Invalid range"):
            venue.mint("lp", 20, 10, 1000, 0, 0, 0, clock() + 60)

    def test_mint_without_allowance(self, venue, assets, clock):
        """Test tokens are pulled with the sender's approval only."""
        assets.credit("WETH", "bob", 1000)

        with pytest.raises(VenueError, match="Insufficient allowance"):
            venue.mint("bob", 10, 20, 1000, 0, 0, 0, clock() + 60)

    def test_increase_liquidity(self, venue, clock):
        """Test adding to an existing position."""
        minted = self.mint_above(venue, clock)
        added = venue.increase_liquidity("lp", minted.position_id, 500, 0, 0, 0, clock() + 60)

        assert added.liquidity > 0
        assert venue.get_position(1).liquidity == minted.liquidity + added.liquidity

    def test_decrease_collect_burn(self, venue, assets, clock):
        """Test the full exit path of a position."""
        minted = self.mint_above(venue, clock)
        before = assets.balance_of("WETH", "lp")

        amount0, amount1 = venue.decrease_liquidity(
            "lp", 1, minted.liquidity, 0, 0, clock() + 60
        )
        assert minted.amount0 - 1 <= amount0 <= minted.amount0
        assert amount1 == 0

        with pytest.raises(VenueError, match="not cleared"):
            venue.burn("lp", 1)

        collected = venue.collect("lp", 1, "lp", 2**128 - 1, 2**128 - 1)
        assert collected == (amount0, 0)
        assert assets.balance_of("WETH", "lp") == before + amount0

        venue.burn("lp", 1)
        assert venue.position_ids() == []

    def test_decrease_too_much(self, venue, clock):
        """Test removing more than the position holds."""
        minted = self.mint_above(venue, clock)

        with pytest.raises(VenueError, match="Cannot remove"):
            venue.decrease_liquidity("lp", 1, minted.liquidity + 1, 0, 0, clock() + 60)

    def test_collect_respects_max(self, venue, clock):
        """Test partial collection leaves the rest owed."""
        self.mint_above(venue, clock)
        venue.accrue_fees(1, 50, 80)

        assert venue.collect("lp", 1, "lp", 20, 2**128 - 1) == (20, 80)
        assert venue.get_position(1).tokens_owed0 == 30

    def test_only_owner_can_operate(self, venue, clock):
        """Test positions are bound to their minter."""
        self.mint_above(venue, clock)

        with pytest.raises(VenueError, match="not approved"):
            venue.collect("mallory", 1, "mallory", 1, 1)

    def test_unknown_position(self, venue):
        """Test lookups of missing ids."""
        with pytest.raises(VenueError, match="Invalid position id"):
            venue.get_position(99)

    def test_set_tick_bounds(self, venue):
        """Test price moves stay inside the tick domain."""
        with pytest.raises(ValueError):
            venue.set_tick(900000)

    def test_snapshot_restore(self, venue, clock):
        """Test restore discards positions and price moves."""
        snapshot = venue.snapshot()
        self.mint_above(venue, clock)
        venue.set_tick(50)

        venue.restore(snapshot)

        assert venue.position_ids() == []
        assert venue.current_state().tick == 0
        assert self.mint_above(venue, clock).position_id == 1

    def test_from_settings(self, assets):
        """Test construction from configuration."""
        from config.settings import PaperVenueSettings

        venue = PaperVenue.from_settings(
            PaperVenueSettings(tick_spacing=60, initial_tick=120), assets
        )

        assert venue.tick_spacing == 60
        assert venue.current_state().tick == 120


class TestTimeWeightedTick:
    """Tests for PaperVenue.time_weighted_tick."""

    @pytest.fixture
    def clock(self):
        return FakeClock(start=0.0)

    @pytest.fixture
    def venue(self, clock):
        return PaperVenue(AssetBook(), initial_tick=0, clock=clock)

    def test_no_elapsed_time(self, venue):
        """Test an empty window returns the current tick."""
        venue.set_tick(70)

        assert venue.time_weighted_tick(300) == 70

    def test_weighted_mean(self, venue, clock):
        """Test ticks are weighted by how long they were current."""
        clock.advance(100)
        venue.set_tick(100)
        clock.advance(200)

        assert venue.time_weighted_tick(300) == 66

    def test_window_excludes_old_ticks(self, venue, clock):
        """Test ticks before the window are ignored."""
        clock.advance(100)
        venue.set_tick(100)
        clock.advance(200)

        assert venue.time_weighted_tick(100) == 100

    def test_rounds_down_for_negative(self, venue, clock):
        """Test negative means round towards negative infinity."""
        clock.advance(100)
        venue.set_tick(-1)
        clock.advance(200)

        assert venue.time_weighted_tick(300) == -1

    def test_short_history(self, venue, clock):
        """Test history shorter than the window is averaged as is."""
        clock.advance(50)
        venue.set_tick(40)
        clock.advance(50)

        assert venue.time_weighted_tick(3600) == 20
