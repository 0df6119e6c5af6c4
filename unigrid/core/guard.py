"""
Reentrancy Guard for manager operations.

A mutating operation calls out to the venue before its bookkeeping is
final. Any callee that re-enters the manager during that window would
observe a half-updated ledger, so nested entry is rejected outright.

Usage:
    from unigrid.core.guard import ReentrancyGuard

    guard = ReentrancyGuard()

    with guard.enter("deposit"):
        # Mutate state and call the venue...
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from unigrid.errors import ReentrancyDetected

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """
    Scoped non-reentrant lock.

    Acquired on entry and released on every exit path, including
    exceptions raised inside the block.

    Attributes:
        holder: Name of the operation currently inside the guard
    """

    def __init__(self):
        self._holder: Optional[str] = None

    @property
    def holder(self) -> Optional[str]:
        """Get the operation currently holding the guard."""
        return self._holder

    @property
    def locked(self) -> bool:
        """Check if an operation is in progress."""
        return self._holder is not None

    @contextmanager
    def enter(self, operation: str) -> Iterator["ReentrancyGuard"]:
        """
        Hold the guard for the duration of a block.

        Args:
            operation: Name of the operation, for diagnostics

        Raises:
            ReentrancyDetected: If another operation already holds the guard
        """
        if self._holder is not None:
            logger.warning(f"Rejected reentrant {operation} during {self._holder}")
            raise ReentrancyDetected(
                f"Reentrant call to {operation} while {self._holder} is in progress",
                details={"operation": operation, "holder": self._holder},
            )

        self._holder = operation
        try:
            yield self
        finally:
            self._holder = None
