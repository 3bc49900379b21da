"""
events.py - Observability events and the committed event log

Events describe what a transition changed. The Hub buffers them while a
transition runs and appends them to the EventLog only when the transition
commits, so the log never shows effects that were rolled back.

Event kinds (strings, matching the engine's naming elsewhere):
    COLLATERAL_DEPOSITED   user deposited collateral
    COLLATERAL_REDEEMED    collateral left a position (redeem or seizure)
    SYNTHETIC_MINTED       debt was taken on and synthetic units minted
    SYNTHETIC_BURNED       debt was repaid and synthetic units retired
    LIQUIDATED             a liquidation completed
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from .core import to_decimal


EVENT_COLLATERAL_DEPOSITED = "COLLATERAL_DEPOSITED"
EVENT_COLLATERAL_REDEEMED = "COLLATERAL_REDEEMED"
EVENT_SYNTHETIC_MINTED = "SYNTHETIC_MINTED"
EVENT_SYNTHETIC_BURNED = "SYNTHETIC_BURNED"
EVENT_LIQUIDATED = "LIQUIDATED"


@dataclass(frozen=True, slots=True)
class Event:
    """
    A single observability notification.

    Attributes:
        kind: One of the EVENT_* constants
        user: Position the event is about
        amount: Amount moved (collateral units or synthetic units)
        asset: Collateral asset, if any
        counterparty: Other wallet involved (redeem destination, payer, liquidator)
        details: Extra kind-specific fields
    """
    kind: str
    user: str
    amount: int
    asset: Optional[str] = None
    counterparty: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def __repr__(self) -> str:
        parts = [f"{self.kind} {self.user}"]
        if self.asset:
            parts.append(f"{to_decimal(self.amount)} {self.asset}")
        else:
            parts.append(f"{to_decimal(self.amount)}")
        if self.counterparty:
            parts.append(f"counterparty={self.counterparty}")
        return f"Event({', '.join(parts)})"


def collateral_deposited(user: str, asset: str, amount: int) -> Event:
    return Event(EVENT_COLLATERAL_DEPOSITED, user, amount, asset=asset)


def collateral_redeemed(redeemed_from: str, redeemed_to: str, asset: str, amount: int) -> Event:
    return Event(EVENT_COLLATERAL_REDEEMED, redeemed_from, amount, asset=asset, counterparty=redeemed_to)


def synthetic_minted(user: str, amount: int) -> Event:
    return Event(EVENT_SYNTHETIC_MINTED, user, amount)


def synthetic_burned(on_behalf_of: str, payer: str, amount: int) -> Event:
    return Event(EVENT_SYNTHETIC_BURNED, on_behalf_of, amount, counterparty=payer)


def liquidated(
    victim: str,
    liquidator: str,
    asset: str,
    debt_repaid: int,
    collateral_seized: int,
    initial_health_factor: int,
    ending_health_factor: int,
) -> Event:
    return Event(
        EVENT_LIQUIDATED, victim, debt_repaid,
        asset=asset,
        counterparty=liquidator,
        details={
            'collateral_seized': collateral_seized,
            'initial_health_factor': initial_health_factor,
            'ending_health_factor': ending_health_factor,
        },
    )


@dataclass(frozen=True, slots=True)
class EventRecord:
    """
    A committed event.

    Attributes:
        event: The event itself
        tx_id: Identifier of the transition that emitted it
        sequence_number: Monotonic position in the log
        timestamp: Hub clock time at commit
    """
    event: Event
    tx_id: str
    sequence_number: int
    timestamp: int


class EventLog:
    """
    Append-only log of committed events.

    Records are never modified or removed. Each commit appends the events of
    one transition, all sharing the same tx_id.
    """

    def __init__(self):
        self._records: List[EventRecord] = []

    def commit(self, tx_id: str, timestamp: int, events: List[Event]) -> List[EventRecord]:
        """Append the events of one committed transition and return their records."""
        records = []
        for event in events:
            record = EventRecord(
                event=event,
                tx_id=tx_id,
                sequence_number=len(self._records),
                timestamp=timestamp,
            )
            self._records.append(record)
            records.append(record)
        return records

    def filter(self, kind: Optional[str] = None, user: Optional[str] = None) -> List[EventRecord]:
        """Return records matching an event kind and/or a user."""
        return [
            r for r in self._records
            if (kind is None or r.event.kind == kind)
            and (user is None or r.event.user == user)
        ]

    def __iter__(self) -> Iterator[EventRecord]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> EventRecord:
        return self._records[index]

    def __repr__(self) -> str:
        return f"EventLog({len(self._records)} events)"


def format_transition(tx_id: str, label: str, events: List[Event], result: str, icon: str) -> str:
    """Render a transition and its outcome as a boxed block for verbose output."""
    w = 100
    bar = "─" * w

    def pad(text: str) -> str:
        if len(text) > w:
            return text[:w-3] + "..."
        return text + " " * (w - len(text))

    lines = [
        "",
        f"┌{bar}┐",
        f"│{pad(' Transition: ' + tx_id)}│",
        f"│{pad('   operation : ' + label)}│",
        f"├{bar}┤",
        f"│{pad(' Events (' + str(len(events)) + '):')}│",
    ]
    for i, event in enumerate(events):
        lines.append(f"│{pad(f'   [{i}] {event!r}')}│")
    lines.append(f"├{bar}┤")
    lines.append(f"│{pad(' ' + icon + ' ' + result)}│")
    lines.append(f"└{bar}┘")
    return "\n".join(lines)
