"""
Grid Manager Error Handling.

Error taxonomy for the grid position manager:
- Configuration errors (bad handles or bounds, rejected before any state change)
- Precondition errors (bad amounts, slippage above the cap, unknown positions)
- Economic guards (not enough fees or balance, manipulated price)
- Invariant errors (ledger inconsistencies, active positions blocking close)
- Access errors (non-owner callers, reentrant calls)
- Venue errors (the venue rejected a call)

Every error is fail-fast and aborts the whole operation. Nothing is retried
internally; retrying (e.g. a sweep after price settles) is up to the caller.

Error codes reference:
- CFG:*  - configuration
- PRE:*  - preconditions
- ECO:*  - economic guards
- INV:*  - invariants
- ACC:*  - access control
- VEN:*  - venue rejections
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = auto()       # Expected, caller can simply try later
    MEDIUM = auto()    # Caller supplied bad input
    HIGH = auto()      # Operation refused for safety reasons
    CRITICAL = auto()  # Internal state would be corrupted


class ErrorCategory(Enum):
    """Categories of grid manager errors."""
    CONFIGURATION = "configuration"
    PRECONDITION = "precondition"
    ECONOMIC_GUARD = "economic_guard"
    INVARIANT = "invariant"
    ACCESS = "access"
    VENUE = "venue"
    UNKNOWN = "unknown"


@dataclass
class ErrorInfo:
    """Catalog entry describing an error code."""
    code: str
    message: str
    category: ErrorCategory
    severity: ErrorSeverity


ERROR_CATALOG: Dict[str, ErrorInfo] = {
    # Configuration
    "CFG:InvalidConfiguration": ErrorInfo(
        code="CFG:InvalidConfiguration",
        message="Invalid configuration value",
        category=ErrorCategory.CONFIGURATION,
        severity=ErrorSeverity.MEDIUM,
    ),
    "CFG:AlreadyInitialized": ErrorInfo(
        code="CFG:AlreadyInitialized",
        message="Manager already initialized",
        category=ErrorCategory.CONFIGURATION,
        severity=ErrorSeverity.MEDIUM,
    ),
    "CFG:NotInitialized": ErrorInfo(
        code="CFG:NotInitialized",
        message="Manager not initialized",
        category=ErrorCategory.CONFIGURATION,
        severity=ErrorSeverity.MEDIUM,
    ),

    # Preconditions
    "PRE:InvalidRange": ErrorInfo(
        code="PRE:InvalidRange",
        message="Grid range is invalid",
        category=ErrorCategory.PRECONDITION,
        severity=ErrorSeverity.MEDIUM,
    ),
    "PRE:DegenerateGrid": ErrorInfo(
        code="PRE:DegenerateGrid",
        message="Grid must contain more than one cell",
        category=ErrorCategory.PRECONDITION,
        severity=ErrorSeverity.MEDIUM,
    ),
    "PRE:InvalidCellCount": ErrorInfo(
        code="PRE:InvalidCellCount",
        message="Cell count must be positive",
        category=ErrorCategory.PRECONDITION,
        severity=ErrorSeverity.MEDIUM,
    ),
    "PRE:NotImplemented": ErrorInfo(
        code="PRE:NotImplemented",
        message="Distribution kind is reserved and not implemented",
        category=ErrorCategory.PRECONDITION,
        severity=ErrorSeverity.MEDIUM,
    ),
    "PRE:InvalidAmount": ErrorInfo(
        code="PRE:InvalidAmount",
        message="Invalid token amount for grid type",
        category=ErrorCategory.PRECONDITION,
        severity=ErrorSeverity.MEDIUM,
    ),
    "PRE:SlippageTooHigh": ErrorInfo(
        code="PRE:SlippageTooHigh",
        message="Slippage exceeds the hard cap",
        category=ErrorCategory.PRECONDITION,
        severity=ErrorSeverity.MEDIUM,
    ),
    "PRE:PositionNotFound": ErrorInfo(
        code="PRE:PositionNotFound",
        message="Position is not tracked by the ledger",
        category=ErrorCategory.PRECONDITION,
        severity=ErrorSeverity.MEDIUM,
    ),
    "PRE:UnalignedTick": ErrorInfo(
        code="PRE:UnalignedTick",
        message="Tick is not a multiple of the tick spacing",
        category=ErrorCategory.PRECONDITION,
        severity=ErrorSeverity.MEDIUM,
    ),
    "PRE:NativeTransferRejected": ErrorInfo(
        code="PRE:NativeTransferRejected",
        message="Ether transfers not allowed",
        category=ErrorCategory.PRECONDITION,
        severity=ErrorSeverity.LOW,
    ),

    # Economic guards
    "ECO:InsufficientBalance": ErrorInfo(
        code="ECO:InsufficientBalance",
        message="No cell received any liquidity",
        category=ErrorCategory.ECONOMIC_GUARD,
        severity=ErrorSeverity.LOW,
    ),
    "ECO:InsufficientFees": ErrorInfo(
        code="ECO:InsufficientFees",
        message="Collected fees are below the compounding threshold",
        category=ErrorCategory.ECONOMIC_GUARD,
        severity=ErrorSeverity.LOW,
    ),
    "ECO:PriceDeviationTooHigh": ErrorInfo(
        code="ECO:PriceDeviationTooHigh",
        message="Current tick deviates too far from the time-weighted tick",
        category=ErrorCategory.ECONOMIC_GUARD,
        severity=ErrorSeverity.HIGH,
    ),
    "ECO:NothingToRecover": ErrorInfo(
        code="ECO:NothingToRecover",
        message="No native balance to recover",
        category=ErrorCategory.ECONOMIC_GUARD,
        severity=ErrorSeverity.LOW,
    ),

    # Invariants
    "INV:ActivePositionsRemaining": ErrorInfo(
        code="INV:ActivePositionsRemaining",
        message="Active positions must be withdrawn first",
        category=ErrorCategory.INVARIANT,
        severity=ErrorSeverity.HIGH,
    ),
    "INV:LedgerInvariant": ErrorInfo(
        code="INV:LedgerInvariant",
        message="Active set does not match position liquidity",
        category=ErrorCategory.INVARIANT,
        severity=ErrorSeverity.CRITICAL,
    ),

    # Access
    "ACC:NotOwner": ErrorInfo(
        code="ACC:NotOwner",
        message="Ownable: caller is not the owner",
        category=ErrorCategory.ACCESS,
        severity=ErrorSeverity.HIGH,
    ),
    "ACC:ReentrancyDetected": ErrorInfo(
        code="ACC:ReentrancyDetected",
        message="Reentrant call",
        category=ErrorCategory.ACCESS,
        severity=ErrorSeverity.CRITICAL,
    ),

    # Venue
    "VEN:Rejected": ErrorInfo(
        code="VEN:Rejected",
        message="Venue rejected the call",
        category=ErrorCategory.VENUE,
        severity=ErrorSeverity.HIGH,
    ),
}


class GridManagerError(Exception):
    """Base exception for grid manager errors."""

    code = "UNKNOWN"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        error_info: Optional[ErrorInfo] = None,
    ):
        self.error_info = error_info or self._classify_error(self.code)
        self.details = details or {}
        self.message = message or self.error_info.message

        super().__init__(f"{self.error_info.code}: {self.message}")

    def _classify_error(self, error_code: str) -> ErrorInfo:
        """Classify an error code into ErrorInfo."""
        if error_code in ERROR_CATALOG:
            return ERROR_CATALOG[error_code]

        # Prefix match keeps unknown codes in the right family
        for code, info in ERROR_CATALOG.items():
            if error_code.startswith(code.split(":")[0] + ":"):
                return ErrorInfo(
                    code=error_code,
                    message=error_code,
                    category=info.category,
                    severity=info.severity,
                )

        return ErrorInfo(
            code=error_code,
            message=f"Unknown error: {error_code}",
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.MEDIUM,
        )

    @property
    def category(self) -> ErrorCategory:
        """Get error category."""
        return self.error_info.category

    @property
    def severity(self) -> ErrorSeverity:
        """Get error severity."""
        return self.error_info.severity


# === Configuration ===

class InvalidConfiguration(GridManagerError):
    code = "CFG:InvalidConfiguration"


class AlreadyInitialized(GridManagerError):
    code = "CFG:AlreadyInitialized"


class NotInitialized(GridManagerError):
    code = "CFG:NotInitialized"


# === Preconditions ===

class InvalidRange(GridManagerError):
    code = "PRE:InvalidRange"


class DegenerateGrid(GridManagerError):
    code = "PRE:DegenerateGrid"


class InvalidCellCount(GridManagerError):
    code = "PRE:InvalidCellCount"


class DistributionNotImplemented(GridManagerError):
    """Raised for reserved distribution kinds (SIGMOID, LOGARITHMIC)."""
    code = "PRE:NotImplemented"


class InvalidAmount(GridManagerError):
    code = "PRE:InvalidAmount"


class SlippageTooHigh(GridManagerError):
    code = "PRE:SlippageTooHigh"


class PositionNotFound(GridManagerError):
    code = "PRE:PositionNotFound"


class UnalignedTick(GridManagerError):
    code = "PRE:UnalignedTick"


class NativeTransferRejected(GridManagerError):
    code = "PRE:NativeTransferRejected"


# === Economic guards ===

class InsufficientBalance(GridManagerError):
    code = "ECO:InsufficientBalance"


class InsufficientFees(GridManagerError):
    code = "ECO:InsufficientFees"


class PriceDeviationTooHigh(GridManagerError):
    code = "ECO:PriceDeviationTooHigh"


class NothingToRecover(GridManagerError):
    code = "ECO:NothingToRecover"


# === Invariants ===

class ActivePositionsRemaining(GridManagerError):
    code = "INV:ActivePositionsRemaining"


class LedgerInvariantError(GridManagerError):
    code = "INV:LedgerInvariant"


# === Access ===

class AccessDenied(GridManagerError):
    code = "ACC:NotOwner"


class ReentrancyDetected(GridManagerError):
    code = "ACC:ReentrancyDetected"


# === Venue ===

class VenueError(GridManagerError):
    """Venue-side rejection (slippage check, expired deadline, bad burn)."""
    code = "VEN:Rejected"


def is_retryable(error: GridManagerError) -> bool:
    """
    Check whether a caller may reasonably re-attempt the same call later.

    Economic guards depend on market state (fees accrue, price settles),
    so the same call can succeed later. Everything else needs different
    input or a different caller.
    """
    return error.category == ErrorCategory.ECONOMIC_GUARD
