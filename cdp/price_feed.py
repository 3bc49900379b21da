"""
price_feed.py - In-process price sources

Provides price source implementations for local use, simulations and tests.
Production deployments plug in their own PriceSource; the engine only ever
sees the PriceSource protocol and validates everything it reads.

Classes:
- StaticPriceFeed: A settable aggregator holding a single current round
- TimeSeriesPriceFeed: Time-varying answers looked up against a clock

Answers are expressed in the feed's native decimals (8 is typical for USD
pairs). Normalization to 18 decimals happens in the price validator.
"""

from bisect import bisect_right
from typing import Callable, List, Optional, Tuple

from .core import PriceObservation


class StaticPriceFeed:
    """
    Price source holding one current round, updated explicitly.

    Each update_answer() opens a new round that is answered in itself.
    update_round_data() sets every field directly, which lets callers
    reproduce stale or inconsistent rounds.
    """

    def __init__(self, decimals: int, initial_answer: int, updated_at: int = 0):
        """
        Initialize with a first round.

        Args:
            decimals: Native decimals of the answer
            initial_answer: Answer for round 1
            updated_at: Timestamp of round 1
        """
        self.decimals = decimals
        self.round_id = 0
        self.answer = 0
        self.updated_at = 0
        self.answered_in_round = 0
        self.update_answer(initial_answer, updated_at)

    def latest_observation(self) -> PriceObservation:
        return PriceObservation(
            round_id=self.round_id,
            answer=self.answer,
            updated_at=self.updated_at,
            answered_in_round=self.answered_in_round,
        )

    def native_decimals(self) -> int:
        return self.decimals

    def update_answer(self, answer: int, updated_at: int) -> None:
        """Open a new round with the given answer."""
        self.round_id += 1
        self.answer = answer
        self.updated_at = updated_at
        self.answered_in_round = self.round_id

    def update_round_data(self, round_id: int, answer: int, updated_at: int, answered_in_round: int) -> None:
        """Overwrite the current round with arbitrary data."""
        self.round_id = round_id
        self.answer = answer
        self.updated_at = updated_at
        self.answered_in_round = answered_in_round

    def __repr__(self):
        return f"StaticPriceFeed(answer={self.answer}, decimals={self.decimals}, round={self.round_id})"


class TimeSeriesPriceFeed:
    """
    Price source with time-varying answers.

    Stores a price history and returns the most recent observation at or
    before the bound clock's time. Round ids are 1-based positions in the
    history, so every observation is answered in its own round.

    Supports two initialization patterns:
    - Empty initialization for incremental addition via add_price()
    - Batch initialization with a complete price path for simulations
    """

    def __init__(
        self,
        decimals: int,
        price_path: Optional[List[Tuple[int, int]]] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Initialize price source.

        Args:
            decimals: Native decimals of the answers
            price_path: Optional list of (timestamp, answer) tuples
            clock: Zero-argument callable returning the current unix time.
                   Usually bound later with bind().

        Examples:
            feed = TimeSeriesPriceFeed(8, [(0, 2000_00000000), (3600, 1900_00000000)])
            feed.bind(lambda: hub.current_time)
        """
        self.decimals = decimals
        self.price_history: List[Tuple[int, int]] = sorted(price_path or [], key=lambda x: x[0])
        self._clock = clock

    def bind(self, clock: Callable[[], int]) -> None:
        """Attach the clock used by latest_observation()."""
        self._clock = clock

    def add_price(self, timestamp: int, answer: int) -> None:
        """Add an observation, keeping the history sorted by timestamp."""
        self.price_history.append((timestamp, answer))
        self.price_history.sort(key=lambda x: x[0])

    def observation_at(self, timestamp: int) -> PriceObservation:
        """
        Return the latest observation at or before timestamp.

        Returns an all-zero observation if nothing was observed yet, which
        the price validator rejects.
        """
        timestamps = [ts for ts, _ in self.price_history]
        idx = bisect_right(timestamps, timestamp)
        if idx == 0:
            return PriceObservation(round_id=0, answer=0, updated_at=0, answered_in_round=0)
        ts, answer = self.price_history[idx - 1]
        return PriceObservation(round_id=idx, answer=answer, updated_at=ts, answered_in_round=idx)

    def latest_observation(self) -> PriceObservation:
        if self._clock is None:
            raise ValueError("TimeSeriesPriceFeed has no clock; call bind() first")
        return self.observation_at(self._clock())

    def native_decimals(self) -> int:
        return self.decimals

    def get_all_timestamps(self) -> List[int]:
        """Return every observation timestamp in order."""
        return [ts for ts, _ in self.price_history]

    def __repr__(self):
        return f"TimeSeriesPriceFeed({len(self.price_history)} observations, decimals={self.decimals})"
