"""
cdp - Collateralized Debt Position Engine

Users lock collateral assets with a Hub and mint a synthetic unit of account
against them. Every position must keep a health factor of at least 1e18;
positions that fall below it can be liquidated by anyone holding synthetic
units, for a 10% collateral bonus.

Usage:
    from cdp import Hub, Token, SyntheticToken, StaticPriceFeed

    weth = Token("WETH")
    eth_usd = StaticPriceFeed(decimals=8, initial_answer=4000_00000000)
    dsc = SyntheticToken(owner="hub")
    hub = Hub("hub", ["WETH"], [eth_usd], dsc, {"WETH": weth})

    # Fund and approve, then open a position at exactly 1e18 health factor
    weth.mint("alice", 10**18)
    weth.approve("alice", hub.address, 10**18)
    hub.deposit_and_mint("alice", "WETH", 10**18, 2000 * 10**18)

    hub.get_health_factor("alice")   # 10**18
"""

# Core types
from .core import (
    EngineView,
    PriceSource,
    AssetTransfer,
    SyntheticUnit,
    Journaled,
    PriceObservation,
    CollateralRegistry,
    checked_add,
    checked_sub,
    checked_mul,
    to_decimal,
    UINT256_MAX,
    FEED_PRECISION,
    PRECISION,
    MAX_PRICE_AGE,
    LIQUIDATION_THRESHOLD,
    LIQUIDATION_PRECISION,
    LIQUIDATION_BONUS,
    MIN_HEALTH_FACTOR,
    MAX_HEALTH_FACTOR,
    EngineError,
    ValidationError,
    NeedsMoreThanZero,
    TokenNotAllowed,
    LengthNotMatch,
    CollateralTokenAlreadySet,
    UnsupportedFeedDecimals,
    SolvencyError,
    HealthFactorTooLow,
    HealthFactorEnough,
    HealthFactorNotImproved,
    LiquidityError,
    InsufficientBalance,
    InsufficientCollateral,
    OracleError,
    StalePrice,
    InvalidPrice,
    InconsistentRound,
    InteractionError,
    TransferFailed,
    ReentrantCall,
    NotOwner,
    ArithmeticFault,
    Overflow,
    Underflow,
)

# Price validation and sources
from .oracle import PriceQuote, normalize_price, validate_observation, quote_price
from .price_feed import StaticPriceFeed, TimeSeriesPriceFeed

# Bookkeeping
from .position_ledger import PositionLedger

# Solvency
from .solvency import (
    AccountInformation,
    calculate_usd_value,
    calculate_token_amount,
    calculate_collateral_value,
    calculate_health_factor,
    is_healthy,
    load_prices,
    load_collateral,
    compute_price,
    compute_collateral_value,
    compute_account_information,
    compute_health_factor,
)

# Liquidation
from .liquidation import (
    SeizurePlan,
    LiquidationResult,
    calculate_seizure,
    check_liquidatable,
    check_improvement,
    plan_liquidation,
)

# Events
from .events import (
    Event,
    EventRecord,
    EventLog,
    EVENT_COLLATERAL_DEPOSITED,
    EVENT_COLLATERAL_REDEEMED,
    EVENT_SYNTHETIC_MINTED,
    EVENT_SYNTHETIC_BURNED,
    EVENT_LIQUIDATED,
)

# Collaborators
from .token import FungibleToken, Token, SyntheticToken

# Orchestrator
from .hub import Hub

# Invariants
from .invariants import verify_solvency, collateralization_ratio

__all__ = [
    # Core
    'EngineView', 'PriceSource', 'AssetTransfer', 'SyntheticUnit', 'Journaled',
    'PriceObservation', 'CollateralRegistry',
    'checked_add', 'checked_sub', 'checked_mul', 'to_decimal',
    'UINT256_MAX', 'FEED_PRECISION', 'PRECISION', 'MAX_PRICE_AGE',
    'LIQUIDATION_THRESHOLD', 'LIQUIDATION_PRECISION', 'LIQUIDATION_BONUS',
    'MIN_HEALTH_FACTOR', 'MAX_HEALTH_FACTOR',
    # Errors
    'EngineError', 'ValidationError', 'NeedsMoreThanZero', 'TokenNotAllowed',
    'LengthNotMatch', 'CollateralTokenAlreadySet', 'UnsupportedFeedDecimals',
    'SolvencyError', 'HealthFactorTooLow', 'HealthFactorEnough', 'HealthFactorNotImproved',
    'LiquidityError', 'InsufficientBalance', 'InsufficientCollateral',
    'OracleError', 'StalePrice', 'InvalidPrice', 'InconsistentRound',
    'InteractionError', 'TransferFailed', 'ReentrantCall', 'NotOwner',
    'ArithmeticFault', 'Overflow', 'Underflow',
    # Oracle
    'PriceQuote', 'normalize_price', 'validate_observation', 'quote_price',
    'StaticPriceFeed', 'TimeSeriesPriceFeed',
    # Ledger
    'PositionLedger',
    # Solvency
    'AccountInformation', 'calculate_usd_value', 'calculate_token_amount',
    'calculate_collateral_value', 'calculate_health_factor', 'is_healthy',
    'load_prices', 'load_collateral', 'compute_price', 'compute_collateral_value',
    'compute_account_information', 'compute_health_factor',
    # Liquidation
    'SeizurePlan', 'LiquidationResult', 'calculate_seizure', 'check_liquidatable',
    'check_improvement', 'plan_liquidation',
    # Events
    'Event', 'EventRecord', 'EventLog',
    'EVENT_COLLATERAL_DEPOSITED', 'EVENT_COLLATERAL_REDEEMED', 'EVENT_SYNTHETIC_MINTED',
    'EVENT_SYNTHETIC_BURNED', 'EVENT_LIQUIDATED',
    # Collaborators
    'FungibleToken', 'Token', 'SyntheticToken',
    # Orchestrator
    'Hub',
    # Invariants
    'verify_solvency', 'collateralization_ratio',
]

__version__ = '1.0.0'
