"""
Core types and pure functions for the collateralized debt position engine.

This module provides the foundational data structures and protocols for the engine:
1. Constants: fixed-point precision, solvency parameters, oracle limits
2. Checked arithmetic: unsigned 256-bit bounded add/sub/mul
3. Exceptions: EngineError and the named failure taxonomy
4. Protocols: EngineView for read-only access, collaborator interfaces
5. Immutable data structures: PriceObservation, CollateralRegistry

All functions in this module are pure. Nothing here mutates engine state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import (
    Dict, Tuple, Optional, Sequence, Protocol, Mapping, runtime_checkable
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Largest value an unsigned balance may hold.
UINT256_MAX = 2 ** 256 - 1

# 18-decimal fixed point used for prices, debt and health factors.
FEED_PRECISION = 18
PRECISION = 10 ** FEED_PRECISION

# Oracle observations older than this many seconds are rejected.
MAX_PRICE_AGE = 3600

# Only LIQUIDATION_THRESHOLD / LIQUIDATION_PRECISION (50%) of collateral
# value counts toward solvency.
LIQUIDATION_THRESHOLD = 50
LIQUIDATION_PRECISION = 100

# Liquidator incentive, paid in seized collateral (10%).
LIQUIDATION_BONUS = 10

# Health factor at or above this value is solvent.
MIN_HEALTH_FACTOR = PRECISION

# Returned for positions with no debt.
MAX_HEALTH_FACTOR = UINT256_MAX


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from asset id to an amount in that asset's native precision.
CollateralMap = Dict[str, int]

# Mapping from asset id to a validated 18-decimal price.
PriceMap = Dict[str, int]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class EngineError(Exception):
    """Base exception for all engine errors."""
    pass


# Validation errors: rejected before any state is touched.

class ValidationError(EngineError):
    """Raised when an input is malformed."""
    pass


class NeedsMoreThanZero(ValidationError):
    """Raised when an amount that must be positive is zero."""
    pass


class TokenNotAllowed(ValidationError):
    """Raised when an asset is not in the collateral registry."""
    pass


class LengthNotMatch(ValidationError):
    """Raised when asset and price source lists differ in length."""
    pass


class CollateralTokenAlreadySet(ValidationError):
    """Raised when an asset appears twice in the collateral registry."""
    pass


class UnsupportedFeedDecimals(ValidationError):
    """Raised when a price source reports more than 18 decimals."""
    pass


# Solvency errors: the computed mutation is not allowed to commit.

class SolvencyError(EngineError):
    """Raised when a transition would leave a position in a forbidden solvency state."""
    pass


class HealthFactorTooLow(SolvencyError):
    """Raised when a position's health factor would fall below the minimum."""
    pass


class HealthFactorEnough(SolvencyError):
    """Raised when liquidating a position that is already healthy."""
    pass


class HealthFactorNotImproved(HealthFactorTooLow):
    """Raised when a liquidation does not strictly improve the victim's health factor."""
    pass


# Liquidity errors: not enough balance to cover a decrease or a seizure.

class LiquidityError(EngineError):
    """Raised when a balance cannot cover the requested amount."""
    pass


class InsufficientBalance(LiquidityError):
    """Raised when a decrease would take a balance below zero."""
    pass


class InsufficientCollateral(LiquidityError):
    """Raised when a liquidation would seize more collateral than the victim holds."""
    pass


# Oracle errors: the price needed by an operation is unusable.

class OracleError(EngineError):
    """Raised when a price observation fails validation."""
    pass


class StalePrice(OracleError):
    """Raised when a price observation is older than MAX_PRICE_AGE."""
    pass


class InvalidPrice(OracleError):
    """Raised when a price observation is zero or negative."""
    pass


class InconsistentRound(OracleError):
    """Raised when an observation was answered in an earlier round than it claims."""
    pass


# Interaction errors: an external collaborator misbehaved.

class InteractionError(EngineError):
    """Raised when a collaborator call fails or is not permitted."""
    pass


class TransferFailed(InteractionError):
    """Raised when an asset transfer collaborator reports failure."""
    pass


class ReentrantCall(InteractionError):
    """Raised when a mutating operation is entered while another is in flight."""
    pass


class NotOwner(InteractionError):
    """Raised when a mint or burn is requested by anyone but the token owner."""
    pass


class ArithmeticFault(EngineError):
    """Base exception for arithmetic that leaves the unsigned 256-bit range."""
    pass


class Overflow(ArithmeticFault):
    """Raised when a result exceeds UINT256_MAX."""
    pass


class Underflow(ArithmeticFault):
    """Raised when an unsigned operand is negative."""
    pass


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def _require_unsigned(a: int, b: int) -> None:
    if a < 0 or b < 0:
        raise Underflow(f"negative operand in ({a}, {b})")


def checked_add(a: int, b: int) -> int:
    """Add two unsigned values, raising Overflow above UINT256_MAX."""
    _require_unsigned(a, b)
    result = a + b
    if result > UINT256_MAX:
        raise Overflow(f"{a} + {b} overflows uint256")
    return result


def checked_sub(a: int, b: int) -> int:
    """Subtract b from a, raising InsufficientBalance if the result would be negative."""
    _require_unsigned(a, b)
    if b > a:
        raise InsufficientBalance(f"cannot subtract {b} from {a}")
    return a - b


def checked_mul(a: int, b: int) -> int:
    """Multiply two unsigned values, raising Overflow above UINT256_MAX."""
    _require_unsigned(a, b)
    result = a * b
    if result > UINT256_MAX:
        raise Overflow(f"{a} * {b} overflows uint256")
    return result


def to_decimal(amount: int, decimals: int = FEED_PRECISION) -> Decimal:
    """Render a fixed-point integer as a Decimal for display."""
    return Decimal(amount).scaleb(-decimals)


# ============================================================================
# PRICE OBSERVATIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PriceObservation:
    """
    A raw round of oracle data, as reported by a price source.

    Attributes:
        round_id: Round the observation claims to belong to.
        answer: Price in the source's native decimals (signed; may be invalid).
        updated_at: Unix timestamp of the observation.
        answered_in_round: Round in which the answer was actually computed.
    """
    round_id: int
    answer: int
    updated_at: int
    answered_in_round: int


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class PriceSource(Protocol):
    """
    Price source collaborator.

    Consumed as a black box producing timestamped observations. The engine
    never trusts an observation without running it through the price validator.
    """

    def latest_observation(self) -> PriceObservation:
        """Return the most recent observation."""
        ...

    def native_decimals(self) -> int:
        """Return the number of decimals the answer is expressed in."""
        ...


@runtime_checkable
class AssetTransfer(Protocol):
    """
    Asset transfer collaborator for a collateral token.

    Both calls report failure by returning False. The engine turns a False
    into TransferFailed and aborts the whole transition.
    """

    def transfer_from(self, from_: str, to: str, amount: int, spender: Optional[str] = None) -> bool:
        ...

    def transfer(self, from_: str, to: str, amount: int) -> bool:
        ...


@runtime_checkable
class SyntheticUnit(Protocol):
    """Synthetic unit collaborator. Mint and burn are gated to the engine."""

    def mint(self, caller: str, to: str, amount: int) -> None:
        ...

    def burn(self, caller: str, from_: str, amount: int) -> None:
        ...


@runtime_checkable
class Journaled(Protocol):
    """
    A collaborator whose state can be captured and restored.

    The engine snapshots every journaled collaborator at the start of a
    transition and restores it if the transition fails.
    """

    def snapshot(self) -> object:
        ...

    def restore(self, snapshot: object) -> None:
        ...


@runtime_checkable
class EngineView(Protocol):
    """
    Read-only interface to engine state.

    Solvency and liquidation functions accept an EngineView to declare that
    they only read. The Hub implements this protocol; tests use FakeView.
    """

    @property
    def current_time(self) -> int:
        """Return the engine's logical clock, in unix seconds."""
        ...

    @property
    def registry(self) -> 'CollateralRegistry':
        """Return the collateral registry."""
        ...

    def collateral_balance(self, user: str, asset: str) -> int:
        """Return a user's deposited amount of an asset (0 if never seen)."""
        ...

    def debt_balance(self, user: str) -> int:
        """Return a user's outstanding debt (0 if never seen)."""
        ...


# ============================================================================
# COLLATERAL REGISTRY
# ============================================================================

@dataclass(frozen=True, slots=True)
class CollateralRegistry:
    """
    Closed, ordered set of collateral assets and their price sources.

    Built once at construction and never changed. Each asset maps to exactly
    one price source; iteration follows registration order.

    Attributes:
        assets: Asset ids in registration order.
        price_sources: Price source for each asset, same order as assets.
    """
    assets: Tuple[str, ...]
    price_sources: Tuple[PriceSource, ...]
    _index: Mapping[str, int] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        if len(self.assets) != len(self.price_sources):
            raise LengthNotMatch(
                f"{len(self.assets)} assets but {len(self.price_sources)} price sources"
            )
        index: Dict[str, int] = {}
        for i, asset in enumerate(self.assets):
            if not asset or not asset.strip():
                raise ValueError("Collateral asset id cannot be empty")
            if asset in index:
                raise CollateralTokenAlreadySet(f"Collateral {asset} already registered")
            index[asset] = i
        object.__setattr__(self, '_index', index)

    @classmethod
    def build(cls, assets: Sequence[str], price_sources: Sequence[PriceSource]) -> CollateralRegistry:
        """Create a registry from parallel sequences."""
        return cls(assets=tuple(assets), price_sources=tuple(price_sources))

    def __contains__(self, asset: object) -> bool:
        return asset in self._index

    def __iter__(self):
        return iter(self.assets)

    def __len__(self) -> int:
        return len(self.assets)

    def handle(self, asset: str) -> int:
        """Return the asset's position in the registry."""
        if asset not in self._index:
            raise TokenNotAllowed(f"Collateral {asset} not allowed")
        return self._index[asset]

    def price_source(self, asset: str) -> PriceSource:
        """Return the price source bound to an asset."""
        return self.price_sources[self.handle(asset)]

    def require(self, asset: str) -> None:
        """Raise TokenNotAllowed unless the asset is registered."""
        self.handle(asset)

    def __repr__(self) -> str:
        return f"CollateralRegistry({', '.join(self.assets)})"
