"""
Configuration dataclasses for the uni-grid position manager.

All configuration parameters are defined here with sensible defaults.
Values can be overridden via config.yaml or environment variables.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class GridType(Enum):
    """Which side of the reference tick the grid covers."""
    NEUTRAL = "neutral"  # Band straddling the reference tick
    BUY = "buy"  # Band at or below the reference tick
    SELL = "sell"  # Band at or above the reference tick


class DistributionKind(Enum):
    """Weighting functions for spreading capital across grid cells."""
    FLAT = "flat"
    LINEAR = "linear"
    REVERSE_LINEAR = "reverse_linear"
    FIBONACCI = "fibonacci"
    SIGMOID = "sigmoid"  # Reserved
    LOGARITHMIC = "logarithmic"  # Reserved


# ===========================================
# GRID CONFIGURATION
# ===========================================

# Bounds enforced at initialization and by every setter
MIN_GRID_QUANTITY = 1
MAX_GRID_QUANTITY = 1000
MIN_GRID_STEP = 1
MAX_GRID_STEP = 10000

# Ceiling on caller-supplied slippage, whatever GuardSettings allows
MAX_SLIPPAGE_BPS = 500


@dataclass
class GridSettings:
    """Grid shape and compounding thresholds."""

    grid_quantity: int = 10  # Number of grid steps
    grid_step: int = 1  # Multiplier on venue tick spacing
    token0_min_fees: int = 0  # Compound refused unless token0 fees exceed this
    token1_min_fees: int = 0  # ... or token1 fees exceed this
    place_reference_cell: bool = False  # Fund the cell containing the reference tick

    def validate(self) -> List[str]:
        """
        Validate grid bounds.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not MIN_GRID_QUANTITY <= self.grid_quantity <= MAX_GRID_QUANTITY:
            errors.append(
                f"grid_quantity must be in [{MIN_GRID_QUANTITY}, {MAX_GRID_QUANTITY}], "
                f"got {self.grid_quantity}"
            )
        if not MIN_GRID_STEP <= self.grid_step <= MAX_GRID_STEP:
            errors.append(
                f"grid_step must be in [{MIN_GRID_STEP}, {MAX_GRID_STEP}], "
                f"got {self.grid_step}"
            )
        if self.token0_min_fees < 0 or self.token1_min_fees < 0:
            errors.append("Minimum fee thresholds cannot be negative")

        return errors


@dataclass
class GuardSettings:
    """Safety limits applied to every venue interaction."""

    max_slippage_bps: int = MAX_SLIPPAGE_BPS  # Cap on caller-supplied slippage
    twap_window_seconds: int = 300  # Look-back window for sweep price check
    max_tick_deviation: int = 100  # Allowed |tick - twap| for sweep
    deadline_seconds: int = 300  # Validity of each pending venue call


# ===========================================
# PAPER VENUE CONFIGURATION
# ===========================================

@dataclass
class PaperVenueSettings:
    """In-memory venue used for paper runs."""

    token0: str = "WETH"
    token1: str = "USDC"
    tick_spacing: int = 10
    fee_tier: int = 500  # Hundredths of a bip (500 = 0.05%)
    initial_tick: int = 0
    owner: str = "owner"
    owner_balance0: int = 10**18
    owner_balance1: int = 10**18


# ===========================================
# STORAGE CONFIGURATION
# ===========================================

@dataclass
class DatabaseConfig:
    """SQLite database configuration."""

    path: str = "data/unigrid.db"
    enabled: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file_path: Optional[str] = None


# ===========================================
# MAIN CONFIGURATION
# ===========================================

@dataclass
class ManagerConfig:
    """Complete manager configuration combining all sub-configs."""

    grid: GridSettings = field(default_factory=GridSettings)
    guards: GuardSettings = field(default_factory=GuardSettings)
    paper: PaperVenueSettings = field(default_factory=PaperVenueSettings)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> List[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of error messages (empty if valid)
        """
        errors = self.grid.validate()

        if not 0 <= self.guards.max_slippage_bps <= MAX_SLIPPAGE_BPS:
            errors.append(
                f"max_slippage_bps must be in [0, {MAX_SLIPPAGE_BPS}], "
                f"got {self.guards.max_slippage_bps}"
            )
        if self.guards.twap_window_seconds <= 0:
            errors.append("twap_window_seconds must be positive")
        if self.guards.max_tick_deviation < 0:
            errors.append("max_tick_deviation cannot be negative")
        if self.guards.deadline_seconds <= 0:
            errors.append("deadline_seconds must be positive")

        if self.paper.tick_spacing <= 0:
            errors.append(f"Tick spacing must be positive, got {self.paper.tick_spacing}")
        if self.paper.token0 == self.paper.token1:
            errors.append("Paper venue tokens must differ")

        return errors
