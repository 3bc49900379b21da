"""
conftest.py - Shared pytest fixtures for engine tests

Provides common fixtures used across unit, conformance and functional tests:
- Price feeds and tokens (WETH at $4000, WBTC at $60000)
- An empty hub, a funded hub, and a hub with a position at exactly 1e18
"""

import pytest

from cdp import Hub, Token, SyntheticToken, StaticPriceFeed

from tests.scenario import ONE, FEED_DECIMALS, ETH_USD, BTC_USD, HUB, fund


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================

@pytest.fixture
def eth_feed():
    return StaticPriceFeed(decimals=FEED_DECIMALS, initial_answer=ETH_USD, updated_at=0)


@pytest.fixture
def btc_feed():
    return StaticPriceFeed(decimals=FEED_DECIMALS, initial_answer=BTC_USD, updated_at=0)


@pytest.fixture
def weth():
    return Token("WETH", "Wrapped Ether")


@pytest.fixture
def wbtc():
    return Token("WBTC", "Wrapped Bitcoin")


@pytest.fixture
def dsc():
    return SyntheticToken(owner=HUB)


# =============================================================================
# HUB FIXTURES
# =============================================================================

@pytest.fixture
def hub(eth_feed, btc_feed, weth, wbtc, dsc):
    """Hub with WETH and WBTC registered, no positions, clock at 0."""
    return Hub(
        HUB,
        ["WETH", "WBTC"],
        [eth_feed, btc_feed],
        dsc,
        {"WETH": weth, "WBTC": wbtc},
        initial_time=0,
        verbose=False,
    )


@pytest.fixture
def funded_hub(hub, weth, wbtc):
    """Hub where alice and liquidator each hold 10 WETH and 1 WBTC, approved."""
    for user in ("alice", "liquidator"):
        fund(weth, hub, user, 10 * ONE)
        fund(wbtc, hub, user, ONE)
    return hub


@pytest.fixture
def position_hub(funded_hub):
    """alice has 1 WETH deposited and 2000 DSC minted: health factor exactly 1e18."""
    funded_hub.deposit_and_mint("alice", "WETH", ONE, 2000 * ONE)
    return funded_hub
