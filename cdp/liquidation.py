"""
liquidation.py - Repay-and-seize planning for undercollateralized positions

A liquidator repays part of a victim's debt with synthetic units and receives
the equivalent collateral plus a 10% bonus. This module holds the pure
arithmetic and the solvency gates; the Hub executes the resulting plan inside
an atomic transition.

Algorithm:
    1. debt_to_repay must be nonzero                     (NeedsMoreThanZero)
    2. initial_hf = health_factor(victim) < 1e18          (else HealthFactorEnough)
    3. seize_base  = debt_to_repay * 1e18 / price
    4. with_bonus  = seize_base + seize_base * 10 / 100
    5. if seize_base < held < with_bonus: seize held      (near-threshold cap)
    6. seize > held                                       (InsufficientCollateral)
    7. move collateral victim -> liquidator, retire debt  (Hub)
    8. ending_hf > initial_hf                             (else HealthFactorNotImproved)

The cap in step 5 lets positions sitting between 100% and 110% collateral
still be liquidated with a partial bonus.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from .core import (
    EngineView,
    LIQUIDATION_BONUS, LIQUIDATION_PRECISION, MIN_HEALTH_FACTOR,
    NeedsMoreThanZero, HealthFactorEnough, HealthFactorNotImproved,
    InsufficientCollateral,
)
from .solvency import calculate_token_amount, compute_health_factor, compute_price


@dataclass(frozen=True, slots=True)
class SeizurePlan:
    """
    Collateral to move from victim to liquidator for a given repayment.

    Attributes:
        debt_to_repay: Synthetic units the liquidator retires
        seize_base: Collateral worth exactly debt_to_repay
        bonus: Incentive on top of seize_base (full 10%, before capping)
        seize_amount: Collateral actually moved
        held: Victim's balance of the asset before liquidation
        capped: True when seize_amount was cut down to held
    """
    debt_to_repay: int
    seize_base: int
    bonus: int
    seize_amount: int
    held: int
    capped: bool


@dataclass(frozen=True, slots=True)
class LiquidationResult:
    """Outcome of a committed liquidation."""
    victim: str
    liquidator: str
    asset: str
    debt_repaid: int
    collateral_seized: int
    initial_health_factor: int
    ending_health_factor: int


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_seizure(debt_to_repay: int, price: int, held: int) -> SeizurePlan:
    """
    Size the collateral seizure for a repayment.

    PURE FUNCTION - All inputs explicit.

    Args:
        debt_to_repay: Synthetic units being repaid (18 decimals)
        price: Validated 18-decimal price of the seized asset
        held: Victim's deposited balance of the asset

    Returns:
        SeizurePlan

    Raises:
        NeedsMoreThanZero: If debt_to_repay is not positive
        InsufficientCollateral: If even the capped seizure exceeds held
    """
    if debt_to_repay <= 0:
        raise NeedsMoreThanZero(f"debt to repay must be more than zero, got {debt_to_repay}")

    seize_base = calculate_token_amount(price, debt_to_repay)
    bonus = seize_base * LIQUIDATION_BONUS // LIQUIDATION_PRECISION
    seize_amount = seize_base + bonus

    capped = seize_base < held < seize_amount
    if capped:
        seize_amount = held

    if seize_amount > held:
        raise InsufficientCollateral(
            f"seizure of {seize_amount} exceeds held collateral {held}"
        )

    return SeizurePlan(
        debt_to_repay=debt_to_repay,
        seize_base=seize_base,
        bonus=bonus,
        seize_amount=seize_amount,
        held=held,
        capped=capped,
    )


def check_liquidatable(health_factor: int) -> None:
    """Raise HealthFactorEnough unless the position is below the minimum."""
    if health_factor >= MIN_HEALTH_FACTOR:
        raise HealthFactorEnough(f"health factor {health_factor} is not below {MIN_HEALTH_FACTOR}")


def check_improvement(initial_health_factor: int, ending_health_factor: int) -> None:
    """Raise HealthFactorNotImproved unless the health factor strictly rose."""
    if ending_health_factor <= initial_health_factor:
        raise HealthFactorNotImproved(
            f"health factor went from {initial_health_factor} to {ending_health_factor}"
        )


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def plan_liquidation(view: EngineView, asset: str, victim: str, debt_to_repay: int) -> Tuple[int, SeizurePlan]:
    """
    Run the pre-execution steps of a liquidation against current state.

    Returns:
        (initial_health_factor, SeizurePlan)

    Example:
        initial_hf, plan = plan_liquidation(hub, "WETH", "alice", 200 * 10**18)
    """
    view.registry.require(asset)
    if debt_to_repay <= 0:
        raise NeedsMoreThanZero(f"debt to repay must be more than zero, got {debt_to_repay}")

    initial_health_factor = compute_health_factor(view, victim)
    check_liquidatable(initial_health_factor)

    plan = calculate_seizure(
        debt_to_repay,
        compute_price(view, asset),
        view.collateral_balance(victim, asset),
    )
    return initial_health_factor, plan
