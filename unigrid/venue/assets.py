"""
Asset Book for token and native-currency balances.

Holds balances per asset and account, spending allowances, and native
currency balances. Shared between the manager and the paper venue so
that every transfer is visible to both, and snapshotted alongside the
ledger so failed operations leave no balance change behind.
"""

import copy
import logging
from collections import defaultdict
from typing import Any, Dict, Tuple

from unigrid.errors import VenueError

logger = logging.getLogger(__name__)

# Approval that is never drawn down
UNLIMITED_ALLOWANCE = 2 ** 256 - 1


class AssetBook:
    """
    In-memory token balances with allowance-based transfers.

    Usage:
        assets = AssetBook()
        assets.credit("WETH", "alice", 10**18)

        assets.approve("WETH", owner="alice", spender="manager", amount=10**18)
        assets.transfer_from("manager", "WETH", "alice", "manager", 10**17)
    """

    def __init__(self):
        self._balances: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._allowances: Dict[Tuple[str, str, str], int] = {}
        self._native: Dict[str, int] = defaultdict(int)

    # === Tokens ===

    def balance_of(self, asset: str, account: str) -> int:
        """Get an account's balance of an asset."""
        return self._balances[asset][account]

    def credit(self, asset: str, account: str, amount: int) -> None:
        """Create new units of an asset in an account."""
        if amount < 0:
            raise ValueError(f"Credit amount cannot be negative: {amount}")
        self._balances[asset][account] += amount

    def transfer(self, asset: str, sender: str, recipient: str, amount: int) -> None:
        """
        Move an asset between accounts.

        Raises:
            VenueError: If the sender balance is insufficient
        """
        if amount < 0:
            raise ValueError(f"Transfer amount cannot be negative: {amount}")
        if amount == 0:
            return

        balance = self._balances[asset][sender]
        if balance < amount:
            raise VenueError(
                f"Transfer amount exceeds balance: {sender} holds {balance} {asset}, "
                f"needs {amount}",
                details={"asset": asset, "account": sender},
            )

        self._balances[asset][sender] = balance - amount
        self._balances[asset][recipient] += amount
        logger.debug(f"Transfer {amount} {asset}: {sender} -> {recipient}")

    def approve(self, asset: str, owner: str, spender: str, amount: int) -> None:
        """Set how much of owner's asset spender may move."""
        if amount < 0:
            raise ValueError(f"Allowance cannot be negative: {amount}")
        self._allowances[(asset, owner, spender)] = amount

    def allowance(self, asset: str, owner: str, spender: str) -> int:
        """Get remaining allowance."""
        return self._allowances.get((asset, owner, spender), 0)

    def transfer_from(
        self,
        spender: str,
        asset: str,
        sender: str,
        recipient: str,
        amount: int,
    ) -> None:
        """
        Move an asset on behalf of its owner.

        Raises:
            VenueError: If the allowance or balance is insufficient
        """
        if amount == 0:
            return

        if spender != sender:
            allowed = self.allowance(asset, sender, spender)
            if allowed < amount:
                raise VenueError(
                    f"Insufficient allowance: {spender} may move {allowed} {asset} "
                    f"from {sender}, needs {amount}",
                    details={"asset": asset, "owner": sender, "spender": spender},
                )
            self.transfer(asset, sender, recipient, amount)
            if allowed != UNLIMITED_ALLOWANCE:
                self._allowances[(asset, sender, spender)] = allowed - amount
            return

        self.transfer(asset, sender, recipient, amount)

    # === Native currency ===

    def native_balance_of(self, account: str) -> int:
        """Get an account's native currency balance."""
        return self._native[account]

    def credit_native(self, account: str, amount: int) -> None:
        """
        Add native currency to an account unconditionally.

        Models balance that arrives without passing through the
        account's receive hook (e.g. forced transfers).
        """
        if amount < 0:
            raise ValueError(f"Credit amount cannot be negative: {amount}")
        self._native[account] += amount

    def transfer_native(self, sender: str, recipient: str, amount: int) -> None:
        """Move native currency between accounts."""
        balance = self._native[sender]
        if balance < amount:
            raise VenueError(
                f"Native transfer exceeds balance: {sender} holds {balance}, needs {amount}"
            )
        self._native[sender] = balance - amount
        self._native[recipient] += amount

    # === Snapshot ===

    def snapshot(self) -> Dict[str, Any]:
        """Capture all balances and allowances."""
        return {
            "balances": {
                asset: dict(accounts) for asset, accounts in self._balances.items()
            },
            "allowances": dict(self._allowances),
            "native": dict(self._native),
        }

    def restore(self, snapshot: Dict[str, Any]) -> None:
        """Restore a snapshot taken with snapshot()."""
        self._balances = defaultdict(lambda: defaultdict(int))
        for asset, accounts in snapshot["balances"].items():
            self._balances[asset].update(accounts)
        self._allowances = copy.copy(snapshot["allowances"])
        self._native = defaultdict(int, snapshot["native"])
