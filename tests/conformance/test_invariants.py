"""
Solvency Invariant Conformance Tests

INVARIANTS (checked after every step of random operation sequences):

    1. ∀ user: collateral(user, asset) ≥ 0 ∧ debt(user) ≥ 0
    2. synthetic total supply = Σ debt(user)
    3. hub custody of asset = Σ collateral(user, asset)
    4. ∀ user whose last health-checked operation ran at price p,
       price ≥ p ∧ debt(user) > 0 ⟹ health_factor(user) ≥ 1e18
    5. a failed operation leaves all state unchanged

A stable-price sequence of operations also keeps verify_solvency() valid.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.stateful import RuleBasedStateMachine, rule, invariant, initialize

from cdp import (
    Hub, Token, SyntheticToken, StaticPriceFeed,
    EngineError, MIN_HEALTH_FACTOR, verify_solvency,
)
from tests.scenario import ONE, ETH_USD, FEED_DECIMALS, capture_state, fund


USERS = ["alice", "bob", "carol"]

users = st.sampled_from(USERS)
collateral_amounts = st.integers(min_value=1, max_value=10).map(lambda n: n * ONE)
debt_amounts = st.integers(min_value=1, max_value=20_000).map(lambda n: n * ONE)
prices = st.integers(min_value=500, max_value=8_000)


class EngineMachine(RuleBasedStateMachine):
    """Random deposits, mints, redemptions, burns, price moves and liquidations."""

    @initialize()
    def setup(self):
        self.weth = Token("WETH")
        self.dsc = SyntheticToken(owner="hub")
        self.feed = StaticPriceFeed(FEED_DECIMALS, ETH_USD)
        self.hub = Hub("hub", ["WETH"], [self.feed], self.dsc, {"WETH": self.weth}, verbose=False)
        self.checked_at = {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def price(self):
        return self.feed.latest_observation().answer

    def attempt(self, user, operation):
        """Run an operation; on failure require that nothing changed."""
        before = capture_state(self.hub)
        try:
            operation()
        except EngineError:
            assert capture_state(self.hub) == before
            return False
        self.checked_at[user] = self.price()
        return True

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    @rule(user=users, amount=collateral_amounts)
    def deposit(self, user, amount):
        fund(self.weth, self.hub, user, amount)
        self.attempt(user, lambda: self.hub.deposit(user, "WETH", amount))

    @rule(user=users, amount=debt_amounts)
    def mint(self, user, amount):
        self.attempt(user, lambda: self.hub.mint(user, amount))

    @rule(user=users, amount=collateral_amounts)
    def redeem(self, user, amount):
        self.attempt(user, lambda: self.hub.redeem(user, "WETH", amount))

    @rule(user=users, amount=debt_amounts)
    def burn(self, user, amount):
        self.attempt(user, lambda: self.hub.burn(user, amount))

    @rule(dollars=prices)
    def move_price(self, dollars):
        self.feed.update_answer(dollars * 10 ** FEED_DECIMALS, self.hub.current_time)

    @rule(liquidator=users, victim=users, amount=debt_amounts)
    def liquidate(self, liquidator, victim, amount):
        before = capture_state(self.hub)
        try:
            result = self.hub.liquidate(liquidator, "WETH", victim, amount)
        except EngineError:
            assert capture_state(self.hub) == before
            return
        assert result.ending_health_factor > result.initial_health_factor
        self.checked_at.pop(victim, None)
        self.checked_at[liquidator] = self.price()

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    @invariant()
    def balances_non_negative(self):
        for user in self.hub.ledger.users():
            assert self.hub.ledger.collateral_balance(user, "WETH") >= 0
            assert self.hub.ledger.debt_balance(user) >= 0

    @invariant()
    def supply_matches_debt(self):
        assert self.dsc.total_supply == self.hub.ledger.total_debt()

    @invariant()
    def custody_matches_collateral(self):
        assert self.weth.balance_of(self.hub.address) == self.hub.ledger.total_collateral("WETH")

    @invariant()
    def checked_positions_stay_healthy(self):
        price = self.price()
        for user, checked_price in self.checked_at.items():
            if price >= checked_price and self.hub.ledger.debt_balance(user) > 0:
                assert self.hub.get_health_factor(user) >= MIN_HEALTH_FACTOR

    @invariant()
    def log_is_contiguous(self):
        assert [r.sequence_number for r in self.hub.event_log] == list(range(len(self.hub.event_log)))


EngineMachine.TestCase.settings = settings(max_examples=50, stateful_step_count=30, deadline=None)
TestEngineMachine = EngineMachine.TestCase


class TestStablePriceSolvency:
    """Without price moves, no operation sequence can break system solvency."""

    @given(st.lists(
        st.tuples(st.sampled_from(["deposit", "mint", "redeem", "burn"]), users, st.integers(1, 5000)),
        max_size=40,
    ))
    @settings(max_examples=50, deadline=None)
    def test_verify_solvency_holds(self, steps):
        weth = Token("WETH")
        dsc = SyntheticToken(owner="hub")
        hub = Hub("hub", ["WETH"], [StaticPriceFeed(8, ETH_USD)], dsc, {"WETH": weth}, verbose=False)

        for op, user, n in steps:
            try:
                if op == "deposit":
                    fund(weth, hub, user, n * ONE // 1000)
                    hub.deposit(user, "WETH", n * ONE // 1000)
                elif op == "mint":
                    hub.mint(user, n * ONE)
                elif op == "redeem":
                    hub.redeem(user, "WETH", n * ONE // 1000)
                else:
                    hub.burn(user, n * ONE)
            except EngineError:
                pass

            result = verify_solvency(hub)
            assert result['valid'], f"Invariant violated: {result['violations']}"
