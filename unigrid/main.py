#!/usr/bin/env python3
"""
Uni-Grid Position Manager - Main Entry Point.

Runs a paper session: builds an in-memory venue, funds the owner, and
executes the requested actions in order against one manager instance.

Usage:
    python -m unigrid.main config/config.yaml plan
    python -m unigrid.main config/config.yaml deposit compound withdraw close
    python -m unigrid.main config/config.yaml deposit sweep --move-to 400
    python -m unigrid.main config/config.yaml --dry-run

Environment:
    UNIGRID_GRID_QUANTITY, UNIGRID_GRID_STEP: Grid shape overrides
    UNIGRID_INITIAL_TICK: Starting paper venue tick
    UNIGRID_LOG_LEVEL: Log level override
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from config.settings import DistributionKind, GridType, ManagerConfig
from unigrid.core import (
    EventBus,
    GridPositionManager,
    LoggingEventHandler,
    StateManager,
)
from unigrid.errors import GridManagerError, is_retryable
from unigrid.grid import TickGridCalculator, compute_weights, plan_cells
from unigrid.utils.config_loader import ConfigLoader
from unigrid.venue import AssetBook, PaperVenue

ACTIONS = ["plan", "deposit", "accrue", "compound", "sweep", "withdraw", "close"]


def setup_logging(level: str, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the manager.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path for logging
    """
    console_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    file_format = (
        "%(asctime)s [%(levelname)s] %(name)s "
        "(%(filename)s:%(lineno)d): %(message)s"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter(console_format))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)  # Log everything to file
        file_handler.setFormatter(logging.Formatter(file_format))
        root_logger.addHandler(file_handler)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Uni-Grid concentrated liquidity position manager (paper venue)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the grid that a deposit would place
  python -m unigrid.main config/config.yaml plan --amount0 1000 --amount1 2000

  # Deposit, accrue simulated fees, compound
  python -m unigrid.main config/config.yaml deposit accrue compound --fees0 500

  # Deposit, move the price, sweep stale positions
  python -m unigrid.main config/config.yaml deposit sweep --move-to 400

  # Validate configuration without running
  python -m unigrid.main config/config.yaml --dry-run
        """,
    )

    parser.add_argument(
        "config",
        type=str,
        help="Path to configuration YAML file",
    )

    parser.add_argument(
        "actions",
        nargs="*",
        help=f"Actions to run in order: {', '.join(ACTIONS)} (default: plan)",
    )

    parser.add_argument("--amount0", type=int, default=1000, help="Token0 to deposit")
    parser.add_argument("--amount1", type=int, default=2000, help="Token1 to deposit")

    parser.add_argument(
        "--slippage-bps",
        type=int,
        default=100,
        help="Slippage tolerance in basis points (default: 100)",
    )

    parser.add_argument(
        "--grid-type",
        type=str,
        default=GridType.NEUTRAL.value,
        choices=[t.value for t in GridType],
        help="Grid side (default: neutral)",
    )

    parser.add_argument(
        "--distribution",
        type=str,
        default=DistributionKind.FLAT.value,
        choices=[k.value for k in DistributionKind],
        help="Capital weighting (default: flat)",
    )

    parser.add_argument(
        "--reference-tick",
        type=int,
        default=None,
        help="Starting venue tick (overrides config)",
    )

    parser.add_argument(
        "--move-to",
        type=int,
        default=None,
        help="Move the venue tick here before sweeping",
    )

    parser.add_argument("--fees0", type=int, default=0, help="Token0 fees per position for accrue")
    parser.add_argument("--fees1", type=int, default=0, help="Token1 fees per position for accrue")

    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Clear saved state before running",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and exit",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Log file path (default: none, console only)",
    )

    args = parser.parse_args(argv)

    args.actions = args.actions or ["plan"]
    unknown = [a for a in args.actions if a not in ACTIONS]
    if unknown:
        parser.error(f"unknown actions: {', '.join(unknown)}")

    return args


def print_config_summary(config: ManagerConfig) -> None:
    """Print configuration summary."""
    print("\nConfiguration:")
    print(f"  Pair: {config.paper.token0}/{config.paper.token1}")
    print(f"  Tick spacing: {config.paper.tick_spacing}")
    print(f"  Grid quantity: {config.grid.grid_quantity}")
    print(f"  Grid step: {config.grid.grid_step}")
    print(f"  Min fees: ({config.grid.token0_min_fees}, {config.grid.token1_min_fees})")
    print(f"  Place reference cell: {config.grid.place_reference_cell}")
    print(f"  Max slippage: {config.guards.max_slippage_bps} bps")
    print(f"  Database: {config.database.path if config.database.enabled else 'disabled'}")
    print()


def print_plan(config: ManagerConfig, tick: int, args: argparse.Namespace) -> None:
    """Print the cells a deposit would fund at the given tick."""
    grid = TickGridCalculator().compute(
        reference_tick=tick,
        grid_type=GridType(args.grid_type),
        grid_quantity=config.grid.grid_quantity,
        grid_step=config.grid.grid_step,
        tick_spacing=config.paper.tick_spacing,
    )
    weights = compute_weights(grid.num_cells, DistributionKind(args.distribution))
    cells = plan_cells(
        grid,
        weights,
        args.amount0,
        args.amount1,
        args.slippage_bps,
        place_reference_cell=config.grid.place_reference_cell,
    )

    print(f"Grid at tick {tick}: {list(grid.ticks)}")
    for cell in cells:
        print(
            f"  [{cell.tick_lower:>8}, {cell.tick_upper:>8})  {cell.side.name:<8} "
            f"weight={cell.weight:>5}  token0={cell.token0_share:>10}  "
            f"token1={cell.token1_share:>10}"
        )


def main(args: argparse.Namespace) -> int:
    """
    Main entry point.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    logger = logging.getLogger(__name__)

    try:
        config = ConfigLoader(args.config).load()
    except Exception as e:
        print(f"Error loading config: {e}")
        return 1

    if args.reference_tick is not None:
        config.paper.initial_tick = args.reference_tick

    print_config_summary(config)

    if args.dry_run:
        print("Dry run complete - configuration is valid")
        return 0

    state_manager = None
    if config.database.enabled:
        state_manager = StateManager(config.database.path)
        if args.fresh:
            state_manager.clear_state()

    owner = config.paper.owner
    assets = AssetBook()
    venue = PaperVenue.from_settings(config.paper, assets)
    assets.credit(venue.token0, owner, config.paper.owner_balance0)
    assets.credit(venue.token1, owner, config.paper.owner_balance1)

    bus = EventBus()
    bus.add_handler(LoggingEventHandler())

    manager = GridPositionManager(
        owner=owner,
        assets=assets,
        guards=config.guards,
        event_bus=bus,
        state_manager=state_manager,
    )
    manager.initialize(venue, config.grid)

    grid_type = GridType(args.grid_type)
    distribution = DistributionKind(args.distribution)

    for action in args.actions:
        logger.info(f"Running {action}")
        try:
            if action == "plan":
                print_plan(config, venue.current_state().tick, args)
            elif action == "deposit":
                assets.approve(venue.token0, owner, manager.address, args.amount0)
                assets.approve(venue.token1, owner, manager.address, args.amount1)
                manager.deposit(
                    owner, args.amount0, args.amount1, args.slippage_bps,
                    grid_type, distribution,
                )
            elif action == "accrue":
                for position_id in manager.active_position_ids():
                    venue.accrue_fees(position_id, args.fees0, args.fees1)
            elif action == "compound":
                manager.compound(owner, args.slippage_bps, grid_type, distribution)
            elif action == "sweep":
                if args.move_to is not None:
                    venue.set_tick(args.move_to)
                manager.sweep(owner, args.slippage_bps, grid_type, distribution)
            elif action == "withdraw":
                manager.withdraw(owner)
            elif action == "close":
                manager.close(owner)
        except GridManagerError as e:
            hint = " (retry later)" if is_retryable(e) else ""
            logger.error(f"{action} failed: {e}{hint}")
            return 2

    stats = manager.get_stats()
    print("\nManager:")
    for key, value in stats.items():
        print(f"  {key}: {value}")
    print(f"  owner balances: ({assets.balance_of(venue.token0, owner)}, "
          f"{assets.balance_of(venue.token1, owner)})")
    return 0


def run() -> None:
    """Console entry point."""
    args = parse_args()
    setup_logging(args.log_level, args.log_file)

    logger = logging.getLogger(__name__)
    logger.info("Starting uni-grid position manager")
    logger.info(f"Config: {args.config}")

    try:
        exit_code = main(args)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        exit_code = 0

    sys.exit(exit_code)


if __name__ == "__main__":
    run()
