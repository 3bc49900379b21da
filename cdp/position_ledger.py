"""
position_ledger.py - Per-user collateral and debt bookkeeping

The PositionLedger holds every position's collateral-per-asset and aggregate
debt. It is pure bookkeeping: it knows nothing about prices or solvency, and
it is mutated only by the Hub inside an atomic transition.

Positions spring into existence on first touch and are never deleted. Any
user the ledger has never seen reads as all zeros.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, List, Tuple

from .core import checked_add, checked_sub, InsufficientBalance


# (collateral, debt) copy used to roll a failed transition back.
LedgerSnapshot = Tuple[Dict[str, Dict[str, int]], Dict[str, int]]


class PositionLedger:
    """
    Unsigned balances keyed by user.

    Decreases that would go below zero raise InsufficientBalance and leave
    the balance untouched. Increases past UINT256_MAX raise Overflow.

    Thread Safety:
        Not thread-safe. The Hub serializes all access.
    """

    def __init__(self):
        self._collateral: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._debt: Dict[str, int] = defaultdict(int)

    # ========================================================================
    # READS
    # ========================================================================

    def collateral_balance(self, user: str, asset: str) -> int:
        if user not in self._collateral:
            return 0
        return self._collateral[user].get(asset, 0)

    def debt_balance(self, user: str) -> int:
        return self._debt.get(user, 0)

    def users(self) -> List[str]:
        """Return every user with a position, sorted for deterministic iteration."""
        return sorted(set(self._collateral) | set(self._debt))

    def total_debt(self) -> int:
        return sum(self._debt[u] for u in sorted(self._debt))

    def total_collateral(self, asset: str) -> int:
        return sum(self._collateral[u].get(asset, 0) for u in sorted(self._collateral))

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def increase_collateral(self, user: str, asset: str, amount: int) -> None:
        self._collateral[user][asset] = checked_add(self.collateral_balance(user, asset), amount)

    def decrease_collateral(self, user: str, asset: str, amount: int) -> None:
        current = self.collateral_balance(user, asset)
        if amount > current:
            raise InsufficientBalance(
                f"{user} holds {current} {asset}, cannot remove {amount}"
            )
        self._collateral[user][asset] = checked_sub(current, amount)

    def increase_debt(self, user: str, amount: int) -> None:
        self._debt[user] = checked_add(self.debt_balance(user), amount)

    def decrease_debt(self, user: str, amount: int) -> None:
        current = self.debt_balance(user)
        if amount > current:
            raise InsufficientBalance(f"{user} owes {current}, cannot repay {amount}")
        self._debt[user] = checked_sub(current, amount)

    # ========================================================================
    # SNAPSHOTS
    # ========================================================================

    def snapshot(self) -> LedgerSnapshot:
        """Capture an independent copy of all balances."""
        collateral = {user: dict(assets) for user, assets in self._collateral.items()}
        return collateral, dict(self._debt)

    def restore(self, snapshot: LedgerSnapshot) -> None:
        """Replace all balances with a previously captured snapshot."""
        collateral, debt = snapshot
        self._collateral = defaultdict(lambda: defaultdict(int))
        for user, assets in collateral.items():
            self._collateral[user] = defaultdict(int, assets)
        self._debt = defaultdict(int, debt)

    def __repr__(self) -> str:
        return f"PositionLedger({len(self.users())} positions, total_debt={self.total_debt()})"
