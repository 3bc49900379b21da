"""
test_oracle.py - Unit tests for price validation

Tests:
- Normalization from native decimals to 18 decimals
- Staleness, sign and round-consistency checks and their order
- quote_price against a live feed
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from cdp import (
    PriceObservation, PriceQuote, StaticPriceFeed,
    MAX_PRICE_AGE, PRECISION,
    normalize_price, validate_observation, quote_price,
    StalePrice, InvalidPrice, InconsistentRound, UnsupportedFeedDecimals,
)


def observation(answer=4000_00000000, updated_at=0, round_id=1, answered_in_round=1):
    return PriceObservation(
        round_id=round_id, answer=answer, updated_at=updated_at, answered_in_round=answered_in_round
    )


class TestNormalizePrice:

    def test_eight_decimal_feed(self):
        assert normalize_price(4000_00000000, 8) == 4000 * PRECISION

    def test_eighteen_decimal_feed_unchanged(self):
        assert normalize_price(123, 18) == 123

    def test_zero_decimal_feed(self):
        assert normalize_price(7, 0) == 7 * PRECISION

    def test_more_than_eighteen_decimals_rejected(self):
        with pytest.raises(UnsupportedFeedDecimals):
            normalize_price(4000, 19)

    @given(st.integers(min_value=1, max_value=10 ** 12), st.integers(min_value=0, max_value=18))
    @settings(max_examples=50)
    def test_scaling_is_exact(self, answer, decimals):
        """PROPERTY: normalization never loses precision."""
        assert normalize_price(answer, decimals) // 10 ** (18 - decimals) == answer


class TestValidateObservation:

    def test_fresh_observation(self):
        assert validate_observation(observation(), 8, now=100) == 4000 * PRECISION

    def test_exactly_max_age_is_fresh(self):
        assert validate_observation(observation(updated_at=0), 8, now=MAX_PRICE_AGE) == 4000 * PRECISION

    def test_one_second_past_max_age_is_stale(self):
        with pytest.raises(StalePrice):
            validate_observation(observation(updated_at=0), 8, now=MAX_PRICE_AGE + 1)

    def test_zero_answer(self):
        with pytest.raises(InvalidPrice):
            validate_observation(observation(answer=0), 8, now=0)

    def test_negative_answer(self):
        with pytest.raises(InvalidPrice):
            validate_observation(observation(answer=-1), 8, now=0)

    def test_answered_in_earlier_round(self):
        with pytest.raises(InconsistentRound):
            validate_observation(observation(round_id=5, answered_in_round=4), 8, now=0)

    def test_answered_in_later_round_is_accepted(self):
        assert validate_observation(observation(round_id=5, answered_in_round=6), 8, now=0) > 0

    def test_staleness_checked_before_sign(self):
        with pytest.raises(StalePrice):
            validate_observation(observation(answer=0, updated_at=0), 8, now=MAX_PRICE_AGE + 1)

    def test_sign_checked_before_round(self):
        with pytest.raises(InvalidPrice):
            validate_observation(observation(answer=0, round_id=2, answered_in_round=1), 8, now=0)


class TestQuotePrice:

    def test_quote_from_feed(self):
        feed = StaticPriceFeed(decimals=8, initial_answer=2000_00000000, updated_at=50)
        quote = quote_price(feed, now=60)
        assert quote == PriceQuote(price=2000 * PRECISION, updated_at=50, round_id=1, answered_in_round=1)

    def test_quote_is_refetched_each_call(self):
        feed = StaticPriceFeed(decimals=8, initial_answer=2000_00000000)
        assert quote_price(feed, now=0).price == 2000 * PRECISION
        feed.update_answer(1500_00000000, updated_at=0)
        assert quote_price(feed, now=0).price == 1500 * PRECISION

    def test_stale_feed_fails_every_time(self):
        feed = StaticPriceFeed(decimals=8, initial_answer=2000_00000000, updated_at=0)
        for _ in range(3):
            with pytest.raises(StalePrice):
                quote_price(feed, now=MAX_PRICE_AGE + 1)
