"""
Grid Position Manager for orchestrating liquidity across grid cells.

Handles:
- One-time initialization against a venue
- Deposit, withdraw, compound, sweep and close
- Emergency escape hatches (drain tokens and native currency)
- Owner-only configuration setters
- Atomic operations with full rollback on failure
- Event publication and state persistence after commit
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from config.settings import (
    MAX_GRID_QUANTITY,
    MAX_GRID_STEP,
    MAX_SLIPPAGE_BPS,
    MIN_GRID_QUANTITY,
    MIN_GRID_STEP,
    DistributionKind,
    GridSettings,
    GridType,
    GuardSettings,
)
from unigrid.errors import (
    AccessDenied,
    ActivePositionsRemaining,
    AlreadyInitialized,
    InsufficientBalance,
    InsufficientFees,
    InvalidAmount,
    InvalidConfiguration,
    NativeTransferRejected,
    NotInitialized,
    NothingToRecover,
    PriceDeviationTooHigh,
    SlippageTooHigh,
)
from unigrid.grid import (
    GridCell,
    TickGridCalculator,
    compute_weights,
    plan_cells,
)
from unigrid.venue import (
    UNLIMITED_ALLOWANCE,
    AssetBook,
    PoolState,
    Venue,
    amounts_for_liquidity,
    liquidity_for_amounts,
    tick_to_sqrt_price_x96,
)

from .events import Event, EventBus, EventType
from .guard import ReentrancyGuard
from .position_ledger import Position, PositionLedger
from .state_manager import StateManager

logger = logging.getLogger(__name__)

# Collect everything a position is owed
MAX_COLLECT = 2 ** 128 - 1


class ManagerState(Enum):
    """Lifecycle state of a manager instance."""

    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class GridPositionManager:
    """
    Places and maintains grid liquidity on a concentrated-liquidity venue.

    Every public mutating operation runs as one atomic unit: ledger,
    settings, balances and (where supported) venue state are snapshotted
    on entry and restored if anything fails. Re-entering any mutating
    operation while another is in progress is rejected.

    Example:
        assets = AssetBook()
        venue = PaperVenue(assets, tick_spacing=10)
        manager = GridPositionManager(owner="alice", assets=assets)
        manager.initialize(venue, GridSettings(grid_quantity=10, grid_step=1))

        assets.approve("WETH", "alice", manager.address, 1000)
        assets.approve("USDC", "alice", manager.address, 2000)
        manager.deposit("alice", 1000, 2000, slippage_bps=100)

        manager.compound("alice", slippage_bps=100)
        manager.sweep("alice", slippage_bps=100)
        manager.withdraw("alice")
        manager.close("alice")
    """

    def __init__(
        self,
        owner: str,
        assets: AssetBook,
        address: str = "grid-manager",
        guards: Optional[GuardSettings] = None,
        event_bus: Optional[EventBus] = None,
        state_manager: Optional[StateManager] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize grid position manager.

        Args:
            owner: Principal allowed to run privileged operations
            assets: Asset book holding the manager's balances
            address: Account name of this manager instance
            guards: Slippage, TWAP and deadline limits
            event_bus: Receives events after each commit
            state_manager: Persists state after each commit
            clock: Time source in seconds (defaults to time.time)
        """
        if not owner:
            raise InvalidConfiguration("Owner is required")
        if not address or address == owner:
            raise InvalidConfiguration(f"Invalid manager address: {address!r}")

        self._owner = owner
        self._assets = assets
        self._address = address
        self._guards = guards or GuardSettings()
        self._events = event_bus or EventBus()
        self._state_manager = state_manager
        self._clock = clock or time.time

        # State
        self._state = ManagerState.UNINITIALIZED
        self._venue: Optional[Venue] = None
        self._settings = GridSettings()
        self._ledger = PositionLedger()
        self._calculator = TickGridCalculator()
        self._guard = ReentrancyGuard()
        self._pending_events: List[Tuple[EventType, str, Dict[str, Any]]] = []

        # Statistics
        self._total_minted = 0
        self._total_decommissioned = 0
        self._total_rollbacks = 0

    # === Properties ===

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def address(self) -> str:
        return self._address

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def events(self) -> EventBus:
        """Event bus receiving committed events."""
        return self._events

    @property
    def settings(self) -> GridSettings:
        """Copy of the current grid settings."""
        return replace(self._settings)

    @property
    def grid_quantity(self) -> int:
        return self._settings.grid_quantity

    @property
    def grid_step(self) -> int:
        return self._settings.grid_step

    @property
    def position_count(self) -> int:
        """Number of ledger-tracked positions (active or not)."""
        return len(self._ledger)

    @property
    def fee_tier(self) -> int:
        return self._require_venue().fee_tier

    # === Initialization ===

    def initialize(self, venue: Venue, settings: Optional[GridSettings] = None) -> None:
        """
        Bind to a venue and set the grid configuration (once).

        Grants the venue's custody account unlimited approval for both
        venue tokens.

        Raises:
            AlreadyInitialized: On a second call
            InvalidConfiguration: If venue is missing or settings out of bounds
        """
        if self._state != ManagerState.UNINITIALIZED:
            raise AlreadyInitialized()
        if venue is None:
            raise InvalidConfiguration("Venue handle is required")

        settings = replace(settings) if settings else GridSettings()
        errors = settings.validate()
        if errors:
            raise InvalidConfiguration("; ".join(errors), details={"errors": errors})

        self._venue = venue
        self._settings = settings
        for token in (venue.token0, venue.token1):
            self._assets.approve(
                token, self._address, venue.custody_account, UNLIMITED_ALLOWANCE
            )
        self._state = ManagerState.ACTIVE

        logger.info(
            f"Manager initialized: owner={self._owner}, "
            f"pair={venue.token0}/{venue.token1}, spacing={venue.tick_spacing}, "
            f"quantity={settings.grid_quantity}, step={settings.grid_step}"
        )

    def recover_state(self) -> bool:
        """
        Replace settings and ledger with the persisted copy, if any.

        Returns:
            True if state was restored
        """
        self._require_initialized()
        if self._state_manager is None or not self._state_manager.has_state():
            return False

        loaded = self._state_manager.load()
        if loaded is None:
            return False

        self._settings, self._ledger = loaded
        logger.info(
            f"Recovered state: {len(self._ledger)} positions, "
            f"{len(self._ledger.active_ids())} active"
        )
        return True

    # === Capital operations ===

    def deposit(
        self,
        caller: str,
        token0_amount: int,
        token1_amount: int,
        slippage_bps: int,
        grid_type: GridType = GridType.NEUTRAL,
        distribution: DistributionKind = DistributionKind.FLAT,
    ) -> int:
        """
        Pull capital from the caller and spread it across the grid.

        The caller must have approved this manager for both amounts.
        Capital the grid cannot place (skipped cells, rounding) stays in
        the manager and is picked up by the next compound, sweep or
        withdraw.

        Args:
            caller: Depositing principal
            token0_amount: Token0 to deposit
            token1_amount: Token1 to deposit
            slippage_bps: Slippage tolerance for one-sided cells
            grid_type: NEUTRAL, BUY or SELL
            distribution: Capital weighting across cells

        Returns:
            Number of cells that received liquidity

        Raises:
            InvalidAmount: If amounts do not suit the grid type
            SlippageTooHigh: If slippage exceeds the cap
            InsufficientBalance: If no cell could receive liquidity
        """
        self._require_initialized()
        self._check_slippage(slippage_bps)
        self._check_amounts(grid_type, token0_amount, token1_amount)

        with self._atomic("deposit"):
            venue = self._venue
            self._assets.transfer_from(
                self._address, venue.token0, caller, self._address, token0_amount
            )
            self._assets.transfer_from(
                self._address, venue.token1, caller, self._address, token1_amount
            )

            placed = self._distribute(
                token0_amount, token1_amount, slippage_bps, grid_type, distribution
            )

            self._emit(EventType.DEPOSIT, caller, {
                "token0_amount": token0_amount,
                "token1_amount": token1_amount,
                "grid_type": grid_type.value,
                "distribution": distribution.value,
                "positions": placed,
            })

        logger.info(
            f"Deposit by {caller}: ({token0_amount}, {token1_amount}) "
            f"into {placed} cells"
        )
        return placed

    def withdraw(self, caller: str) -> Tuple[int, int]:
        """
        Remove all liquidity and send every token the manager holds to the owner.

        Returns:
            (amount0, amount1) transferred

        Raises:
            AccessDenied: If caller is not the owner
        """
        self._require_initialized()
        self._only_owner(caller)

        with self._atomic("withdraw"):
            deadline = self._deadline()
            for position in self._ledger.active():
                self._decommission(position, caller, deadline)

            amount0, amount1 = self._drain_tokens(caller)
            self._emit(EventType.WITHDRAW, caller, {
                "amount0": amount0,
                "amount1": amount1,
            })

        logger.info(f"Withdraw to {caller}: ({amount0}, {amount1})")
        return amount0, amount1

    def compound(
        self,
        caller: str,
        slippage_bps: int,
        grid_type: GridType = GridType.NEUTRAL,
        distribution: DistributionKind = DistributionKind.FLAT,
    ) -> Tuple[int, int]:
        """
        Collect fees from every active position and reinvest the balance.

        Reinvestment happens only if the collected token0 fees exceed
        token0_min_fees or the token1 fees exceed token1_min_fees. Idle
        balance is reinvested along with the fees.

        Returns:
            (fees0, fees1) collected

        Raises:
            InsufficientFees: If neither threshold is exceeded (the
                collection is rolled back)
        """
        self._require_initialized()
        self._check_slippage(slippage_bps)

        with self._atomic("compound"):
            fees0, fees1 = self._collect_fees()
            balance0, balance1 = self._balances()

            if not (
                fees0 > self._settings.token0_min_fees
                or fees1 > self._settings.token1_min_fees
            ):
                raise InsufficientFees(
                    f"Fees ({fees0}, {fees1}) do not exceed minimums "
                    f"({self._settings.token0_min_fees}, {self._settings.token1_min_fees})",
                    details={"fees0": fees0, "fees1": fees1},
                )

            placed = self._distribute(
                balance0, balance1, slippage_bps, grid_type, distribution
            )

            self._emit(EventType.COMPOUND, caller, {
                "fees0": fees0,
                "fees1": fees1,
                "amount0": balance0,
                "amount1": balance1,
                "positions": placed,
            })

        logger.info(f"Compound: fees ({fees0}, {fees1}), reinvested into {placed} cells")
        return fees0, fees1

    def sweep(
        self,
        caller: str,
        slippage_bps: int,
        grid_type: GridType = GridType.NEUTRAL,
        distribution: DistributionKind = DistributionKind.FLAT,
    ) -> List[int]:
        """
        Retire positions that drifted out of band and redeploy the proceeds.

        The band is grid_quantity // 2 effective spacings either side of
        the current tick (at least one). A position is retired only if
        its whole range lies outside the band.

        Returns:
            Ids of retired positions

        Raises:
            PriceDeviationTooHigh: If the current tick is too far from the
                time-weighted tick
        """
        self._require_initialized()
        self._check_slippage(slippage_bps)

        with self._atomic("sweep"):
            venue = self._venue
            state = venue.current_state()
            twap = venue.time_weighted_tick(self._guards.twap_window_seconds)
            deviation = abs(state.tick - twap)

            if deviation > self._guards.max_tick_deviation:
                raise PriceDeviationTooHigh(
                    f"Tick {state.tick} deviates {deviation} from TWAP {twap} "
                    f"(max {self._guards.max_tick_deviation})",
                    details={"tick": state.tick, "twap": twap},
                )

            half_band = (
                max(self._settings.grid_quantity // 2, 1)
                * venue.tick_spacing
                * self._settings.grid_step
            )
            band_lower = state.tick - half_band
            band_upper = state.tick + half_band

            retired = [
                position
                for position in self._ledger.active()
                if position.tick_upper < band_lower or position.tick_lower > band_upper
            ]

            deadline = self._deadline()
            for position in retired:
                self._decommission(position, caller, deadline)

            placed = 0
            if retired:
                balance0, balance1 = self._balances()
                placed = self._distribute(
                    balance0, balance1, slippage_bps, grid_type, distribution,
                    require_placement=False,
                )

            retired_ids = [position.position_id for position in retired]
            self._emit(EventType.SWEEP, caller, {
                "tick": state.tick,
                "twap": twap,
                "retired": retired_ids,
                "positions": placed,
            })

        logger.info(
            f"Sweep at tick {state.tick}: retired {len(retired_ids)}, "
            f"redeployed into {placed} cells"
        )
        return retired_ids

    def close(self, caller: str) -> int:
        """
        Burn every tracked position and clear the ledger.

        Calling close on an empty ledger is a no-op.

        Returns:
            Number of positions burned

        Raises:
            AccessDenied: If caller is not the owner
            ActivePositionsRemaining: If any position still holds liquidity
        """
        self._require_initialized()
        self._only_owner(caller)

        with self._atomic("close"):
            active_ids = self._ledger.active_ids()
            if active_ids:
                raise ActivePositionsRemaining(
                    f"{len(active_ids)} positions still active",
                    details={"active": active_ids},
                )

            burned = [position.position_id for position in self._ledger.all()]
            for position_id in burned:
                # Drain anything still owed so the venue accepts the burn
                self._venue.collect(
                    self._address, position_id, self._address, MAX_COLLECT, MAX_COLLECT
                )
                self._venue.burn(self._address, position_id)
            self._ledger.clear()

            if burned:
                self._emit(EventType.CLOSE, caller, {"burned": burned})

        if burned:
            logger.info(f"Closed grid: burned {len(burned)} positions")
        return len(burned)

    # === Escape hatches ===

    def emergency_withdraw(self, caller: str) -> Tuple[int, int, int]:
        """
        Decommission everything and drain tokens and native currency to the owner.

        Returns:
            (amount0, amount1, native) transferred
        """
        self._require_initialized()
        self._only_owner(caller)

        with self._atomic("emergency_withdraw"):
            deadline = self._deadline()
            for position in self._ledger.active():
                self._decommission(position, caller, deadline)

            amount0, amount1 = self._drain_tokens(self._owner)
            native = self._assets.native_balance_of(self._address)
            if native:
                self._assets.transfer_native(self._address, self._owner, native)

            self._emit(EventType.EMERGENCY_WITHDRAW, caller, {
                "amount0": amount0,
                "amount1": amount1,
                "native": native,
            })

        logger.warning(
            f"Emergency withdraw by {caller}: ({amount0}, {amount1}), native={native}"
        )
        return amount0, amount1, native

    def recover_ether(self, caller: str) -> int:
        """
        Send any native-currency balance to the owner.

        Returns:
            Amount recovered

        Raises:
            NothingToRecover: If the balance is zero
        """
        self._only_owner(caller)

        with self._atomic("recover_ether"):
            native = self._assets.native_balance_of(self._address)
            if native == 0:
                raise NothingToRecover()

            self._assets.transfer_native(self._address, self._owner, native)
            self._emit(EventType.ETHER_RECOVERED, caller, {"amount": native})

        logger.info(f"Recovered {native} native to {self._owner}")
        return native

    def receive_native(self, sender: str, amount: int) -> None:
        """Reject every native-currency transfer into the manager."""
        raise NativeTransferRejected(details={"sender": sender, "amount": amount})

    # === Configuration setters ===

    def set_grid_step(self, caller: str, grid_step: int) -> None:
        """Update the tick-spacing multiplier (owner only)."""
        self._require_initialized()
        self._only_owner(caller)
        if not MIN_GRID_STEP <= grid_step <= MAX_GRID_STEP:
            raise InvalidConfiguration(
                f"grid_step must be in [{MIN_GRID_STEP}, {MAX_GRID_STEP}], got {grid_step}"
            )

        with self._atomic("set_grid_step"):
            old = self._settings.grid_step
            self._settings.grid_step = grid_step
            self._emit(EventType.GRID_STEP_UPDATED, caller, {"old": old, "new": grid_step})

        logger.info(f"Grid step updated: {old} -> {grid_step}")

    def set_grid_quantity(self, caller: str, grid_quantity: int) -> None:
        """Update the number of grid steps (owner only)."""
        self._require_initialized()
        self._only_owner(caller)
        if not MIN_GRID_QUANTITY <= grid_quantity <= MAX_GRID_QUANTITY:
            raise InvalidConfiguration(
                f"grid_quantity must be in [{MIN_GRID_QUANTITY}, {MAX_GRID_QUANTITY}], "
                f"got {grid_quantity}"
            )

        with self._atomic("set_grid_quantity"):
            old = self._settings.grid_quantity
            self._settings.grid_quantity = grid_quantity
            self._emit(
                EventType.GRID_QUANTITY_UPDATED, caller, {"old": old, "new": grid_quantity}
            )

        logger.info(f"Grid quantity updated: {old} -> {grid_quantity}")

    def set_min_fees(self, caller: str, token0_min_fees: int, token1_min_fees: int) -> None:
        """Update compounding thresholds (owner only)."""
        self._require_initialized()
        self._only_owner(caller)
        if token0_min_fees < 0 or token1_min_fees < 0:
            raise InvalidConfiguration("Minimum fee thresholds cannot be negative")

        with self._atomic("set_min_fees"):
            self._settings.token0_min_fees = token0_min_fees
            self._settings.token1_min_fees = token1_min_fees
            self._emit(EventType.MIN_FEES_UPDATED, caller, {
                "token0_min_fees": token0_min_fees,
                "token1_min_fees": token1_min_fees,
            })

        logger.info(f"Minimum fees updated: ({token0_min_fees}, {token1_min_fees})")

    # === Views ===

    def active_position_ids(self) -> List[int]:
        return self._ledger.active_ids()

    def position(self, position_id: int) -> Position:
        """
        Get a copy of a tracked position.

        Raises:
            PositionNotFound: If the id is not tracked
        """
        return replace(self._ledger.get(position_id))

    def positions(self) -> List[Position]:
        """Copies of every tracked position."""
        return [replace(p) for p in self._ledger.all()]

    def active_positions(self) -> List[Position]:
        return [replace(p) for p in self._ledger.active()]

    def is_active(self, position_id: int) -> bool:
        return self._ledger.is_active(position_id)

    def total_liquidity_in_token_units(self) -> Tuple[int, int]:
        """
        Token amounts backing all active liquidity at the current price.

        Returns:
            (amount0, amount1), rounded down per position
        """
        state = self._require_venue().current_state()
        total0 = total1 = 0
        for position in self._ledger.active():
            amount0, amount1 = amounts_for_liquidity(
                state.sqrt_price_x96,
                tick_to_sqrt_price_x96(position.tick_lower),
                tick_to_sqrt_price_x96(position.tick_upper),
                position.liquidity,
            )
            total0 += amount0
            total1 += amount1
        return total0, total1

    def is_reference_tick_in_any_active_position(self) -> bool:
        """Check if any active position's range contains the current tick."""
        tick = self._require_venue().current_state().tick
        return any(position.contains_tick(tick) for position in self._ledger.active())

    def get_stats(self) -> Dict[str, Any]:
        """Get manager statistics."""
        stats: Dict[str, Any] = {
            "state": self._state.value,
            "owner": self._owner,
            "grid_quantity": self._settings.grid_quantity,
            "grid_step": self._settings.grid_step,
            "token0_min_fees": self._settings.token0_min_fees,
            "token1_min_fees": self._settings.token1_min_fees,
            "place_reference_cell": self._settings.place_reference_cell,
            "position_count": len(self._ledger),
            "active_positions": len(self._ledger.active_ids()),
            "total_minted": self._total_minted,
            "total_decommissioned": self._total_decommissioned,
            "total_rollbacks": self._total_rollbacks,
        }
        if self._venue is not None:
            balance0, balance1 = self._balances()
            stats.update({
                "tick": self._venue.current_state().tick,
                "idle_token0": balance0,
                "idle_token1": balance1,
            })
        return stats

    # === Atomic execution ===

    @contextmanager
    def _atomic(self, operation: str) -> Iterator[None]:
        """
        Run a block as one unit of work.

        Holds the reentrancy guard, snapshots all mutable state, and on
        any exception restores it and re-raises. On success verifies the
        ledger, persists, then publishes the buffered events.
        """
        with self._guard.enter(operation):
            ledger_snapshot = self._ledger.snapshot()
            settings_snapshot = replace(self._settings)
            assets_snapshot = self._assets.snapshot()
            venue_snapshot = self._venue.snapshot() if self._venue else None
            counters = (self._total_minted, self._total_decommissioned)
            self._pending_events = []

            try:
                yield
                self._ledger.verify()
                if self._state_manager:
                    self._state_manager.save(self._settings, self._ledger)
            except Exception as e:
                logger.warning(f"{operation} failed, rolling back: {e}")
                self._ledger.restore(ledger_snapshot)
                self._settings = settings_snapshot
                self._assets.restore(assets_snapshot)
                if self._venue:
                    self._venue.restore(venue_snapshot)
                self._total_minted, self._total_decommissioned = counters
                self._pending_events = []
                self._total_rollbacks += 1
                raise

            pending, self._pending_events = self._pending_events, []

        published = self._publish(pending)
        if self._state_manager and published:
            try:
                self._state_manager.log_events(published)
            except Exception as e:
                logger.error(f"Event log write after {operation} failed: {e}")

    def _emit(self, event_type: EventType, caller: str, details: Dict[str, Any]) -> None:
        """Buffer an event until the current operation commits."""
        self._pending_events.append((event_type, caller, details))

    def _publish(self, pending: List[Tuple[EventType, str, Dict[str, Any]]]) -> List[Event]:
        return [
            self._events.publish(event_type, caller, details)
            for event_type, caller, details in pending
        ]

    # === Placement ===

    def _distribute(
        self,
        amount0: int,
        amount1: int,
        slippage_bps: int,
        grid_type: GridType,
        distribution: DistributionKind,
        require_placement: bool = True,
    ) -> int:
        """
        Spread amounts across a freshly computed grid.

        Returns:
            Number of cells that received liquidity

        Raises:
            InsufficientBalance: If require_placement and no cell was funded
        """
        venue = self._venue
        state = venue.current_state()

        grid = self._calculator.compute(
            reference_tick=state.tick,
            grid_type=grid_type,
            grid_quantity=self._settings.grid_quantity,
            grid_step=self._settings.grid_step,
            tick_spacing=venue.tick_spacing,
        )
        weights = compute_weights(grid.num_cells, distribution)
        cells = plan_cells(
            grid,
            weights,
            amount0,
            amount1,
            slippage_bps,
            place_reference_cell=self._settings.place_reference_cell,
        )

        deadline = self._deadline()
        placed = 0
        for cell in cells:
            if not cell.is_funded:
                continue
            if self._cell_liquidity(state, cell) == 0:
                logger.debug(
                    f"Skipping cell [{cell.tick_lower}, {cell.tick_upper}): zero liquidity"
                )
                continue
            self._place(cell, deadline)
            placed += 1

        if placed == 0 and require_placement:
            raise InsufficientBalance(
                f"No cell received liquidity from ({amount0}, {amount1})",
                details={"amount0": amount0, "amount1": amount1, "cells": len(cells)},
            )
        return placed

    def _cell_liquidity(self, state: PoolState, cell: GridCell) -> int:
        return liquidity_for_amounts(
            state.sqrt_price_x96,
            tick_to_sqrt_price_x96(cell.tick_lower),
            tick_to_sqrt_price_x96(cell.tick_upper),
            cell.token0_share,
            cell.token1_share,
        )

    def _place(self, cell: GridCell, deadline: float) -> int:
        """Increase the position covering a cell, or mint one."""
        venue = self._venue
        position_id = self._ledger.find(cell.tick_lower, cell.tick_upper)

        if position_id is None:
            result = venue.mint(
                self._address,
                cell.tick_lower,
                cell.tick_upper,
                cell.token0_share,
                cell.token1_share,
                cell.amount0_min,
                cell.amount1_min,
                deadline,
            )
            position_id = self._ledger.upsert(
                cell.tick_lower, cell.tick_upper, result.liquidity,
                position_id=result.position_id,
            )
            self._total_minted += 1
            event_type = EventType.POSITION_MINTED
        else:
            result = venue.increase_liquidity(
                self._address,
                position_id,
                cell.token0_share,
                cell.token1_share,
                cell.amount0_min,
                cell.amount1_min,
                deadline,
            )
            self._ledger.upsert(cell.tick_lower, cell.tick_upper, result.liquidity)
            event_type = EventType.POSITION_INCREASED

        self._ledger.activate(position_id)
        self._emit(event_type, self._address, {
            "position_id": position_id,
            "tick_lower": cell.tick_lower,
            "tick_upper": cell.tick_upper,
            "liquidity": result.liquidity,
            "amount0": result.amount0,
            "amount1": result.amount1,
        })
        return position_id

    def _decommission(self, position: Position, caller: str, deadline: float) -> Tuple[int, int]:
        """Remove all liquidity from a position and collect it to the manager."""
        venue = self._venue
        liquidity = position.liquidity

        venue.decrease_liquidity(self._address, position.position_id, liquidity, 0, 0, deadline)
        amount0, amount1 = venue.collect(
            self._address, position.position_id, self._address, MAX_COLLECT, MAX_COLLECT
        )

        self._ledger.upsert(position.tick_lower, position.tick_upper, -liquidity)
        self._ledger.deactivate(position.position_id)
        self._total_decommissioned += 1

        self._emit(EventType.POSITION_DECOMMISSIONED, caller, {
            "position_id": position.position_id,
            "liquidity": liquidity,
            "amount0": amount0,
            "amount1": amount1,
        })
        return amount0, amount1

    def _collect_fees(self) -> Tuple[int, int]:
        total0 = total1 = 0
        for position in self._ledger.active():
            amount0, amount1 = self._venue.collect(
                self._address, position.position_id, self._address, MAX_COLLECT, MAX_COLLECT
            )
            total0 += amount0
            total1 += amount1
        return total0, total1

    def _drain_tokens(self, recipient: str) -> Tuple[int, int]:
        amount0, amount1 = self._balances()
        self._assets.transfer(self._venue.token0, self._address, recipient, amount0)
        self._assets.transfer(self._venue.token1, self._address, recipient, amount1)
        return amount0, amount1

    def _balances(self) -> Tuple[int, int]:
        return (
            self._assets.balance_of(self._venue.token0, self._address),
            self._assets.balance_of(self._venue.token1, self._address),
        )

    # === Guards ===

    def _deadline(self) -> float:
        return self._clock() + self._guards.deadline_seconds

    def _require_initialized(self) -> None:
        if self._state != ManagerState.ACTIVE:
            raise NotInitialized()

    def _require_venue(self) -> Venue:
        self._require_initialized()
        return self._venue

    def _only_owner(self, caller: str) -> None:
        if caller != self._owner:
            logger.warning(f"Rejected privileged call from {caller}")
            raise AccessDenied(details={"caller": caller})

    def _check_slippage(self, slippage_bps: int) -> None:
        limit = min(self._guards.max_slippage_bps, MAX_SLIPPAGE_BPS)
        if not 0 <= slippage_bps <= limit:
            raise SlippageTooHigh(
                f"Slippage {slippage_bps} bps outside [0, {limit}]",
                details={"slippage_bps": slippage_bps},
            )

    def _check_amounts(self, grid_type: GridType, amount0: int, amount1: int) -> None:
        if amount0 < 0 or amount1 < 0:
            raise InvalidAmount(f"Amounts cannot be negative: ({amount0}, {amount1})")

        if grid_type == GridType.NEUTRAL and (amount0 == 0 or amount1 == 0):
            raise InvalidAmount("NEUTRAL grid requires both token amounts")
        if grid_type == GridType.BUY and amount1 == 0:
            raise InvalidAmount("BUY grid requires token1")
        if grid_type == GridType.SELL and amount0 == 0:
            raise InvalidAmount("SELL grid requires token0")
