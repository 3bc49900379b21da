"""
solvency.py - Collateral valuation and health factor

This module derives USD collateral value and the health factor from ledger
state plus validated prices, using a pure function architecture.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. PURE CALCULATION FUNCTIONS (calculate_*):
   - Take all inputs explicitly as parameters
   - No EngineView, no oracle calls
   - Example: calculate_health_factor(total_debt, collateral_value_usd) -> int

2. ADAPTER FUNCTIONS (load_prices, load_collateral):
   - Read from EngineView and the price sources once
   - The ONLY place that touches oracles for solvency math

3. CONVENIENCE FUNCTIONS (compute_*):
   - Combine loading + pure calculation
   - Take (view, user) for API flexibility

Key Formulas (all 18-decimal fixed point, floor division):
    usd_value         = amount * price / 1e18
    collateral_value  = sum(usd_value(balance[asset], price[asset]) for asset in registry)
    health_factor     = collateral_value * 1e18 * 50 / (debt * 100)
    health_factor     = MAX_HEALTH_FACTOR                       (if debt == 0)

Price policy:
    load_prices() validates the feed of EVERY registered asset, including
    assets the user holds none of. A single stale or invalid feed therefore
    blocks solvency computation for all users until it is refreshed.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Mapping, Sequence

from .core import (
    EngineView, CollateralMap, PriceMap,
    PRECISION, LIQUIDATION_THRESHOLD, LIQUIDATION_PRECISION,
    MIN_HEALTH_FACTOR, MAX_HEALTH_FACTOR,
    checked_add, checked_mul,
)
from .oracle import quote_price


@dataclass(frozen=True, slots=True)
class AccountInformation:
    """
    Debt and collateral value of a single position.

    Attributes:
        total_debt: Outstanding synthetic debt (18 decimals)
        collateral_value_usd: Collateral value in USD (18 decimals), unweighted
    """
    total_debt: int
    collateral_value_usd: int


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_usd_value(price: int, amount: int) -> int:
    """Value of amount units at an 18-decimal price, in 18-decimal USD."""
    return checked_mul(amount, price) // PRECISION


def calculate_token_amount(price: int, usd_amount: int) -> int:
    """Units of an asset worth usd_amount at an 18-decimal price."""
    return checked_mul(usd_amount, PRECISION) // price


def calculate_collateral_value(
    assets: Sequence[str],
    collateral: Mapping[str, int],
    prices: Mapping[str, int],
) -> int:
    """
    Sum the USD value of a collateral map over the given assets.

    PURE FUNCTION - All inputs explicit.

    Args:
        assets: Asset ids to sum over, in registry order
        collateral: Asset id -> deposited amount (missing means zero)
        prices: Asset id -> validated 18-decimal price; must cover every asset

    Returns:
        Total collateral value in 18-decimal USD
    """
    total = 0
    for asset in assets:
        total = checked_add(total, calculate_usd_value(prices[asset], collateral.get(asset, 0)))
    return total


def calculate_health_factor(total_debt: int, collateral_value_usd: int) -> int:
    """
    Compute the health factor of a position.

    PURE FUNCTION - All inputs explicit.

    Returns MAX_HEALTH_FACTOR when there is no debt. Otherwise the ratio of
    threshold-weighted collateral value to debt, scaled by 1e18.

    Example:
        # $4000 of collateral against 2000 units of debt sits exactly at 1e18
        calculate_health_factor(2000 * 10**18, 4000 * 10**18) == 10**18
    """
    if total_debt == 0:
        return MAX_HEALTH_FACTOR
    numerator = checked_mul(checked_mul(collateral_value_usd, PRECISION), LIQUIDATION_THRESHOLD)
    return numerator // checked_mul(total_debt, LIQUIDATION_PRECISION)


def is_healthy(health_factor: int) -> bool:
    return health_factor >= MIN_HEALTH_FACTOR


# ============================================================================
# ADAPTER FUNCTIONS
# ============================================================================

def load_prices(view: EngineView) -> PriceMap:
    """Validate and return the current price of every registered asset."""
    registry = view.registry
    prices: Dict[str, int] = {}
    for asset, source in zip(registry.assets, registry.price_sources):
        prices[asset] = quote_price(source, view.current_time).price
    return prices


def load_collateral(view: EngineView, user: str) -> CollateralMap:
    return {asset: view.collateral_balance(user, asset) for asset in view.registry}


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def compute_price(view: EngineView, asset: str) -> int:
    """Validated 18-decimal price of a single registered asset."""
    return quote_price(view.registry.price_source(asset), view.current_time).price


def compute_collateral_value(view: EngineView, user: str) -> int:
    """USD value of everything a user has deposited."""
    return calculate_collateral_value(
        view.registry.assets, load_collateral(view, user), load_prices(view)
    )


def compute_account_information(view: EngineView, user: str) -> AccountInformation:
    return AccountInformation(
        total_debt=view.debt_balance(user),
        collateral_value_usd=compute_collateral_value(view, user),
    )


def compute_health_factor(view: EngineView, user: str) -> int:
    """
    Health factor of a user's position at current prices.

    Collateral is valued before the zero-debt check, so the price policy
    above applies to every user, indebted or not.
    """
    info = compute_account_information(view, user)
    return calculate_health_factor(info.total_debt, info.collateral_value_usd)
