"""
oracle.py - Price validation and normalization

Turns a raw PriceObservation into an 18-decimal price the solvency engine can
use, or raises an OracleError. There is no retry and no fallback source: a
stale feed fails every computation that depends on it until it is refreshed.

Checks run in a fixed order:
    1. Staleness:   now - updated_at > MAX_PRICE_AGE   -> StalePrice
    2. Sign:        answer <= 0                        -> InvalidPrice
    3. Round:       answered_in_round < round_id       -> InconsistentRound
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import (
    PriceObservation, PriceSource,
    FEED_PRECISION, MAX_PRICE_AGE,
    StalePrice, InvalidPrice, InconsistentRound, UnsupportedFeedDecimals,
)


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """
    A validated price, produced fresh on every call and never persisted.

    Attributes:
        price: Price normalized to 18 decimals.
        updated_at: Timestamp of the underlying observation.
        round_id: Round the observation belongs to.
        answered_in_round: Round in which the answer was computed.
    """
    price: int
    updated_at: int
    round_id: int
    answered_in_round: int


def normalize_price(answer: int, native_decimals: int) -> int:
    """Scale an answer from native decimals to 18 decimals."""
    if native_decimals < 0 or native_decimals > FEED_PRECISION:
        raise UnsupportedFeedDecimals(
            f"price source reports {native_decimals} decimals, at most {FEED_PRECISION} supported"
        )
    return answer * 10 ** (FEED_PRECISION - native_decimals)


def validate_observation(observation: PriceObservation, native_decimals: int, now: int) -> int:
    """
    Validate a raw observation and return its 18-decimal price.

    Args:
        observation: Raw round data from a price source
        native_decimals: Decimals the answer is expressed in
        now: Current time in unix seconds

    Returns:
        The price scaled to 18 decimals

    Raises:
        StalePrice: If the observation is older than MAX_PRICE_AGE
        InvalidPrice: If the answer is zero or negative
        InconsistentRound: If answered_in_round < round_id
    """
    age = now - observation.updated_at
    if age > MAX_PRICE_AGE:
        raise StalePrice(
            f"observation from round {observation.round_id} is {age}s old (max {MAX_PRICE_AGE}s)"
        )
    if observation.answer <= 0:
        raise InvalidPrice(f"non-positive answer {observation.answer} in round {observation.round_id}")
    if observation.answered_in_round < observation.round_id:
        raise InconsistentRound(
            f"round {observation.round_id} answered in earlier round {observation.answered_in_round}"
        )
    return normalize_price(observation.answer, native_decimals)


def quote_price(source: PriceSource, now: int) -> PriceQuote:
    """Fetch the latest observation from a source and validate it."""
    observation = source.latest_observation()
    price = validate_observation(observation, source.native_decimals(), now)
    return PriceQuote(
        price=price,
        updated_at=observation.updated_at,
        round_id=observation.round_id,
        answered_in_round=observation.answered_in_round,
    )
