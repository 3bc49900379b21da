"""
token.py - In-process fungible token collaborators

The engine treats token mechanics as external. These implementations give
it something concrete to talk to in simulations and tests:

- Token: a collateral asset with balances, allowances and open issuance
- SyntheticToken: the synthetic unit, with mint and burn gated to its owner

Both keep balances as unsigned ints and support snapshot()/restore(), which
lets the Hub roll them back together with its own ledger.
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, Optional, Tuple

from .core import (
    UINT256_MAX,
    checked_add, checked_sub,
    InsufficientBalance, NotOwner,
)


# (balances, allowances, total_supply)
TokenSnapshot = Tuple[Dict[str, int], Dict[Tuple[str, str], int], int]


def _require_unsigned(amount: int) -> None:
    if amount < 0:
        raise ValueError(f"token amount cannot be negative, got {amount}")


class FungibleToken:
    """
    Balance and allowance bookkeeping shared by all tokens.

    transfer() and transfer_from() report failure by returning False and
    leave state unchanged; they never raise on insufficient funds or on a
    negative amount. approve(), mint and burn raise ValueError on a negative
    amount.
    """

    def __init__(self, symbol: str, name: Optional[str] = None, decimals: int = 18):
        self.symbol = symbol
        self.name = name or symbol
        self.decimals = decimals
        self.total_supply = 0
        self._balances: Dict[str, int] = defaultdict(int)
        self._allowances: Dict[Tuple[str, str], int] = defaultdict(int)

    def balance_of(self, wallet: str) -> int:
        return self._balances.get(wallet, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        _require_unsigned(amount)
        self._allowances[(owner, spender)] = amount
        return True

    def transfer(self, from_: str, to: str, amount: int) -> bool:
        if amount < 0 or self.balance_of(from_) < amount:
            return False
        self._move(from_, to, amount)
        return True

    def transfer_from(self, from_: str, to: str, amount: int, spender: Optional[str] = None) -> bool:
        """
        Move tokens on behalf of from_.

        When spender is given, the move also consumes spender's allowance.
        An allowance of UINT256_MAX is treated as unlimited.
        """
        if amount < 0 or self.balance_of(from_) < amount:
            return False
        if spender is not None and spender != from_:
            allowed = self.allowance(from_, spender)
            if allowed < amount:
                return False
            if allowed != UINT256_MAX:
                self._allowances[(from_, spender)] = allowed - amount
        self._move(from_, to, amount)
        return True

    def _move(self, from_: str, to: str, amount: int) -> None:
        self._balances[from_] = checked_sub(self.balance_of(from_), amount)
        self._balances[to] = checked_add(self.balance_of(to), amount)

    def _issue(self, to: str, amount: int) -> None:
        _require_unsigned(amount)
        self.total_supply = checked_add(self.total_supply, amount)
        self._balances[to] = checked_add(self.balance_of(to), amount)

    def _retire(self, from_: str, amount: int) -> None:
        _require_unsigned(amount)
        held = self.balance_of(from_)
        if amount > held:
            raise InsufficientBalance(f"{from_} holds {held} {self.symbol}, cannot burn {amount}")
        self._balances[from_] = held - amount
        self.total_supply = checked_sub(self.total_supply, amount)

    def snapshot(self) -> TokenSnapshot:
        return dict(self._balances), dict(self._allowances), self.total_supply

    def restore(self, snapshot: TokenSnapshot) -> None:
        balances, allowances, total_supply = snapshot
        self._balances = defaultdict(int, balances)
        self._allowances = defaultdict(int, allowances)
        self.total_supply = total_supply

    def __repr__(self):
        return f"{type(self).__name__}({self.symbol}, supply={self.total_supply})"


class Token(FungibleToken):
    """Collateral token. Anyone may mint, which is how wallets get funded."""

    def mint(self, to: str, amount: int) -> None:
        self._issue(to, amount)


class SyntheticToken(FungibleToken):
    """
    The synthetic unit of account.

    Only the owner may mint or burn; in a deployment the owner is the Hub's
    address. Zero-amount mints and burns are no-ops.
    """

    def __init__(self, symbol: str = "DSC", name: Optional[str] = None, owner: Optional[str] = None):
        super().__init__(symbol, name or "Decentralized Stable Coin", decimals=18)
        self.owner = owner

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        if self.owner is not None and caller != self.owner:
            raise NotOwner(f"{caller} is not the owner of {self.symbol}")
        self.owner = new_owner

    def mint(self, caller: str, to: str, amount: int) -> None:
        self._require_owner(caller)
        if amount == 0:
            return
        self._issue(to, amount)

    def burn(self, caller: str, from_: str, amount: int) -> None:
        self._require_owner(caller)
        if amount == 0:
            return
        self._retire(from_, amount)

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise NotOwner(f"{caller} is not the owner of {self.symbol}")
