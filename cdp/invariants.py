"""
invariants.py - System-wide solvency checks

verify_solvency() recomputes the global invariants from ledger state and
current prices. It is read-only and never raises on a violation; it reports.
"""

from __future__ import annotations
from typing import Any, Dict, List

from .core import LIQUIDATION_PRECISION, LIQUIDATION_THRESHOLD, MIN_HEALTH_FACTOR, PRECISION
from .solvency import (
    calculate_collateral_value, calculate_health_factor, load_collateral, load_prices,
)


def verify_solvency(hub) -> Dict[str, Any]:
    """
    Verify the global invariants of a hub at current prices.

    Checks:
        1. Every user with nonzero debt has health factor >= 1e18
        2. No collateral or debt balance is negative
        3. total debt <= total collateral value * 50 / 100
        4. Synthetic supply equals total ledger debt (when the synthetic
           collaborator exposes total_supply)

    Args:
        hub: Hub to inspect

    Returns:
        Dict with keys:
        - 'valid': bool - True if every invariant holds
        - 'total_debt': int - Sum of debt over all positions
        - 'total_collateral_value': int - Sum of USD collateral value
        - 'violations': List[Dict] - One entry per failed check, each with
          'invariant' and the values involved

    Raises:
        OracleError: If any registered price feed fails validation

    Example:
        result = verify_solvency(hub)
        assert result['valid'], f"Invariant violated: {result['violations']}"
    """
    ledger = hub.ledger
    assets = hub.registry.assets
    prices = load_prices(hub)

    violations: List[Dict[str, Any]] = []
    total_debt = 0
    total_collateral_value = 0

    for user in ledger.users():
        collateral = load_collateral(hub, user)
        debt = ledger.debt_balance(user)

        for asset, amount in collateral.items():
            if amount < 0:
                violations.append({
                    'invariant': 'non_negative_collateral',
                    'user': user,
                    'asset': asset,
                    'amount': amount,
                })
        if debt < 0:
            violations.append({'invariant': 'non_negative_debt', 'user': user, 'amount': debt})

        value = calculate_collateral_value(assets, collateral, prices)
        total_debt += debt
        total_collateral_value += value

        if debt > 0:
            health_factor = calculate_health_factor(debt, value)
            if health_factor < MIN_HEALTH_FACTOR:
                violations.append({
                    'invariant': 'health_factor',
                    'user': user,
                    'health_factor': health_factor,
                    'debt': debt,
                    'collateral_value': value,
                })

    # Compared without division so rounding never hides a violation.
    if total_debt * LIQUIDATION_PRECISION > total_collateral_value * LIQUIDATION_THRESHOLD:
        violations.append({
            'invariant': 'system_collateralization',
            'total_debt': total_debt,
            'max_debt': total_collateral_value * LIQUIDATION_THRESHOLD // LIQUIDATION_PRECISION,
        })

    supply = getattr(hub.synthetic, 'total_supply', None)
    if supply is not None and supply != total_debt:
        violations.append({
            'invariant': 'synthetic_supply',
            'expected': total_debt,
            'actual': supply,
            'difference': abs(supply - total_debt),
        })

    return {
        'valid': len(violations) == 0,
        'total_debt': total_debt,
        'total_collateral_value': total_collateral_value,
        'violations': violations,
    }


def collateralization_ratio(hub) -> int:
    """System collateral value over total debt, scaled 1e18 (0 when there is no debt)."""
    result = verify_solvency(hub)
    if result['total_debt'] == 0:
        return 0
    return result['total_collateral_value'] * PRECISION // result['total_debt']
