"""
Configuration loader for the uni-grid position manager.

Loads configuration from:
1. YAML file (config/config.yaml)
2. Environment variables (UNIGRID_* prefix)
3. .env file (via python-dotenv)

Environment variables override YAML values.
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from config.settings import (
    ManagerConfig,
    GridSettings,
    GuardSettings,
    PaperVenueSettings,
    DatabaseConfig,
    LoggingConfig,
)

logger = logging.getLogger(__name__)


class ConfigLoader:
    """
    Loads and validates manager configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (UNIGRID_*)
    2. YAML config file
    3. Default values in dataclasses
    """

    ENV_PREFIX = "UNIGRID_"

    def __init__(
        self,
        config_path: Optional[str] = None,
        env_file: Optional[str] = None,
    ):
        """
        Initialize config loader.

        Args:
            config_path: Path to YAML config file. If None, uses config/config.yaml
            env_file: Path to .env file. If None, uses .env in project root
        """
        self._config_path = Path(config_path) if config_path else Path("config/config.yaml")
        self._env_file = Path(env_file) if env_file else Path(".env")

        # Load .env file if exists
        if self._env_file.exists():
            load_dotenv(self._env_file)
            logger.debug(f"Loaded environment from {self._env_file}")

    def load(self) -> ManagerConfig:
        """
        Load complete manager configuration.

        Returns:
            ManagerConfig with all settings populated

        Raises:
            ValueError: If configuration is invalid
        """
        yaml_config = self._load_yaml()
        config = self._build_config(yaml_config)

        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(f"Config error: {error}")
            raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

        return config

    def _load_yaml(self) -> Dict[str, Any]:
        """Load YAML configuration file."""
        if not self._config_path.exists():
            logger.warning(f"Config file not found: {self._config_path}, using defaults")
            return {}

        with open(self._config_path) as f:
            config = yaml.safe_load(f) or {}

        logger.info(f"Loaded config from {self._config_path}")
        return config

    def _get_env(self, key: str, default: Any = None) -> Any:
        """
        Get environment variable with UNIGRID_ prefix.

        Args:
            key: Variable name (without prefix)
            default: Default value if not set

        Returns:
            Environment variable value or default
        """
        full_key = f"{self.ENV_PREFIX}{key}"
        value = os.environ.get(full_key)

        if value is None:
            return default

        # Type conversion based on default type
        if isinstance(default, bool):
            return value.lower() in ("true", "1", "yes")
        elif isinstance(default, int):
            return int(value)
        elif isinstance(default, float):
            return float(value)

        return value

    def _build_config(self, yaml_config: Dict[str, Any]) -> ManagerConfig:
        """Build ManagerConfig from YAML and environment."""

        # Build Grid settings
        grid_yaml = yaml_config.get("grid", {})
        grid = GridSettings(
            grid_quantity=self._get_env(
                "GRID_QUANTITY",
                grid_yaml.get("grid_quantity", 10)
            ),
            grid_step=self._get_env(
                "GRID_STEP",
                grid_yaml.get("grid_step", 1)
            ),
            token0_min_fees=self._get_env(
                "TOKEN0_MIN_FEES",
                grid_yaml.get("token0_min_fees", 0)
            ),
            token1_min_fees=self._get_env(
                "TOKEN1_MIN_FEES",
                grid_yaml.get("token1_min_fees", 0)
            ),
            place_reference_cell=self._get_env(
                "PLACE_REFERENCE_CELL",
                grid_yaml.get("place_reference_cell", False)
            ),
        )

        # Build Guard settings
        guards_yaml = yaml_config.get("guards", {})
        guards = GuardSettings(
            max_slippage_bps=guards_yaml.get("max_slippage_bps", 500),
            twap_window_seconds=guards_yaml.get("twap_window_seconds", 300),
            max_tick_deviation=guards_yaml.get("max_tick_deviation", 100),
            deadline_seconds=self._get_env(
                "DEADLINE_SECONDS",
                guards_yaml.get("deadline_seconds", 300)
            ),
        )

        # Build Paper venue settings
        paper_yaml = yaml_config.get("paper", {})
        paper = PaperVenueSettings(
            token0=paper_yaml.get("token0", "WETH"),
            token1=paper_yaml.get("token1", "USDC"),
            tick_spacing=paper_yaml.get("tick_spacing", 10),
            fee_tier=paper_yaml.get("fee_tier", 500),
            initial_tick=self._get_env(
                "INITIAL_TICK",
                paper_yaml.get("initial_tick", 0)
            ),
            owner=self._get_env("OWNER", paper_yaml.get("owner", "owner")),
            owner_balance0=int(paper_yaml.get("owner_balance0", 10**18)),
            owner_balance1=int(paper_yaml.get("owner_balance1", 10**18)),
        )

        # Build Database config
        db_yaml = yaml_config.get("database", {})
        database = DatabaseConfig(
            path=self._get_env("DB_PATH", db_yaml.get("path", "data/unigrid.db")),
            enabled=db_yaml.get("enabled", True),
        )

        # Build Logging config
        logging_yaml = yaml_config.get("logging", {})
        log_config = LoggingConfig(
            level=self._get_env("LOG_LEVEL", logging_yaml.get("level", "INFO")),
            file_path=logging_yaml.get("file_path"),
        )

        return ManagerConfig(
            grid=grid,
            guards=guards,
            paper=paper,
            database=database,
            logging=log_config,
        )
