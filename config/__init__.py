"""Configuration module for the uni-grid position manager."""

from .settings import (
    GridType,
    DistributionKind,
    GridSettings,
    GuardSettings,
    PaperVenueSettings,
    DatabaseConfig,
    LoggingConfig,
    ManagerConfig,
    MIN_GRID_QUANTITY,
    MAX_GRID_QUANTITY,
    MIN_GRID_STEP,
    MAX_GRID_STEP,
    MAX_SLIPPAGE_BPS,
)

__all__ = [
    "GridType",
    "DistributionKind",
    "GridSettings",
    "GuardSettings",
    "PaperVenueSettings",
    "DatabaseConfig",
    "LoggingConfig",
    "ManagerConfig",
    "MIN_GRID_QUANTITY",
    "MAX_GRID_QUANTITY",
    "MIN_GRID_STEP",
    "MAX_GRID_STEP",
    "MAX_SLIPPAGE_BPS",
]
