"""
test_events.py - Unit tests for events and the committed event log
"""

from cdp import (
    Event, EventLog, PRECISION,
    EVENT_COLLATERAL_DEPOSITED, EVENT_SYNTHETIC_MINTED, EVENT_LIQUIDATED,
)
from cdp.events import (
    collateral_deposited, collateral_redeemed, synthetic_minted, synthetic_burned,
    liquidated, format_transition,
)


class TestEventFactories:

    def test_redeemed_records_destination(self):
        event = collateral_redeemed("alice", "liquidator", "WETH", 5)
        assert event.user == "alice"
        assert event.counterparty == "liquidator"
        assert event.asset == "WETH"

    def test_burned_records_payer(self):
        event = synthetic_burned("alice", "liquidator", 7)
        assert event.user == "alice"
        assert event.counterparty == "liquidator"
        assert event.asset is None

    def test_liquidated_details(self):
        event = liquidated("alice", "liq", "WETH", 200, 56, 975, 1022)
        assert event.kind == EVENT_LIQUIDATED
        assert event.amount == 200
        assert event.details == {
            'collateral_seized': 56,
            'initial_health_factor': 975,
            'ending_health_factor': 1022,
        }

    def test_repr_uses_decimal_amounts(self):
        assert "1.5" in repr(synthetic_minted("alice", 3 * PRECISION // 2))


class TestEventLog:

    def test_commit_stamps_records(self):
        log = EventLog()
        log.commit("tx:hub:000000000000", 10, [collateral_deposited("alice", "WETH", 1)])
        records = log.commit("tx:hub:000000000001", 20, [
            collateral_deposited("bob", "WETH", 2),
            synthetic_minted("bob", 3),
        ])
        assert [r.sequence_number for r in records] == [1, 2]
        assert all(r.tx_id == "tx:hub:000000000001" for r in records)
        assert all(r.timestamp == 20 for r in records)
        assert len(log) == 3
        assert log[0].event.user == "alice"

    def test_filter(self):
        log = EventLog()
        log.commit("tx:a", 0, [
            collateral_deposited("alice", "WETH", 1),
            synthetic_minted("alice", 2),
            collateral_deposited("bob", "WETH", 3),
        ])
        assert len(log.filter(kind=EVENT_COLLATERAL_DEPOSITED)) == 2
        assert len(log.filter(user="alice")) == 2
        assert [r.event.amount for r in log.filter(kind=EVENT_SYNTHETIC_MINTED, user="alice")] == [2]

    def test_empty_commit(self):
        log = EventLog()
        assert log.commit("tx:a", 0, []) == []
        assert len(log) == 0

    def test_iteration_is_a_copy(self):
        log = EventLog()
        log.commit("tx:a", 0, [synthetic_minted("alice", 1)])
        records = list(log)
        log.commit("tx:b", 0, [synthetic_minted("alice", 1)])
        assert len(records) == 1


class TestFormatTransition:

    def test_block_lists_events_and_outcome(self):
        text = format_transition(
            "tx:hub:000000000000", "deposit_and_mint",
            [Event(EVENT_COLLATERAL_DEPOSITED, "alice", PRECISION, asset="WETH")],
            "APPLIED", "✓",
        )
        assert "tx:hub:000000000000" in text
        assert "deposit_and_mint" in text
        assert "Events (1)" in text
        assert "✓ APPLIED" in text
