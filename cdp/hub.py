"""
hub.py - Position orchestrator

The Hub is the single entry point of the engine. It is the only component
that mutates the PositionLedger, and every mutation runs as one atomic
transition:

    checks -> effects -> events -> interactions -> post-condition

Any failure at any stage restores the ledger and every journaled
collaborator to their state before the transition, discards the buffered
events, and re-raises the original typed error. Only committed transitions
reach the EventLog.

Key responsibilities:
    - Implements EngineView so solvency/liquidation functions can read state
    - Guards every mutating operation against reentrant calls
    - Keeps every indebted position at or above MIN_HEALTH_FACTOR
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, List, Mapping, Optional, Sequence

from .core import (
    AssetTransfer, CollateralRegistry, Journaled, PriceSource, SyntheticUnit,
    MAX_PRICE_AGE, MIN_HEALTH_FACTOR, PRECISION,
    LIQUIDATION_BONUS, LIQUIDATION_PRECISION, LIQUIDATION_THRESHOLD,
    HealthFactorTooLow, InsufficientBalance, NeedsMoreThanZero, ReentrantCall,
    TransferFailed,
)
from .events import (
    Event, EventLog, EventRecord, format_transition,
    collateral_deposited, collateral_redeemed, liquidated,
    synthetic_burned, synthetic_minted,
)
from .liquidation import LiquidationResult, check_improvement, plan_liquidation
from .position_ledger import PositionLedger
from .solvency import (
    AccountInformation,
    calculate_health_factor, calculate_token_amount, calculate_usd_value,
    compute_account_information, compute_collateral_value, compute_health_factor,
    compute_price,
)


class Hub:
    """
    Collateralized debt position engine.

    Users lock registered collateral with the Hub and mint synthetic units
    against it. Positions whose health factor falls below 1e18 may be
    liquidated by anyone holding synthetic units.

    Thread Safety:
        Not thread-safe. Operations are strictly sequential; a call that
        re-enters the Hub while another operation is in flight is rejected
        with ReentrantCall.

    Example:
        weth = Token("WETH")
        dsc = SyntheticToken(owner="hub")
        hub = Hub("hub", ["WETH"], [eth_feed], dsc, {"WETH": weth})

        weth.mint("alice", 10 * 10**18)
        weth.approve("alice", hub.address, 10 * 10**18)
        hub.deposit_and_mint("alice", "WETH", 10 * 10**18, 5_000 * 10**18)
    """

    def __init__(
        self,
        name: str,
        collateral_assets: Sequence[str],
        price_sources: Sequence[PriceSource],
        synthetic: SyntheticUnit,
        tokens: Mapping[str, AssetTransfer],
        initial_time: int = 0,
        verbose: bool = True,
        address: Optional[str] = None,
    ):
        """
        Create a hub. The collateral registry is closed after this call.

        Args:
            name: Hub identifier, used in transition ids
            collateral_assets: Asset ids, in registry order
            price_sources: Price source per asset, same order
            synthetic: Synthetic unit collaborator; must be owned by address
            tokens: Transfer collaborator per asset id
            initial_time: Starting logical time, in unix seconds
            verbose: Print committed and rejected transitions
            address: Wallet that custodies collateral (default: name)

        Raises:
            LengthNotMatch: If the asset and price source lists differ in length
            CollateralTokenAlreadySet: If an asset is listed twice
            ValueError: If an asset has no transfer collaborator
        """
        self.name = name
        self.address = address or name
        self._registry = CollateralRegistry.build(collateral_assets, price_sources)
        missing = [asset for asset in self._registry if asset not in tokens]
        if missing:
            raise ValueError(f"No transfer collaborator for {', '.join(missing)}")
        self._tokens = {asset: tokens[asset] for asset in self._registry}
        self.synthetic = synthetic
        self.ledger = PositionLedger()
        self.event_log = EventLog()
        self.verbose = verbose
        self._current_time = initial_time
        self._next_sequence = 0
        self._entered = False
        self._pending_events: List[Event] = []

    # ========================================================================
    # EngineView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> int:
        """Current logical time of the hub, in unix seconds."""
        return self._current_time

    @property
    def registry(self) -> CollateralRegistry:
        return self._registry

    def collateral_balance(self, user: str, asset: str) -> int:
        return self.ledger.collateral_balance(user, asset)

    def debt_balance(self, user: str) -> int:
        return self.ledger.debt_balance(user)

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: int) -> None:
        """
        Advance the hub's logical clock. Time only moves forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(f"Cannot move time backwards: {new_time} < {self._current_time}")
        self._current_time = new_time

    # ========================================================================
    # ATOMIC TRANSITIONS
    # ========================================================================

    def _journaled(self) -> List[Journaled]:
        collaborators: List[object] = [self.synthetic, *self._tokens.values()]
        unique = {id(c): c for c in collaborators}
        return [c for c in unique.values() if isinstance(c, Journaled)]

    @contextmanager
    def _transition(self, label: str) -> Iterator[List[EventRecord]]:
        """
        Run a block as a single indivisible state transition.

        Acquires the reentrancy guard, snapshots the ledger and every
        journaled collaborator, and buffers emitted events. On failure all
        snapshots are restored and the error propagates unchanged, interrupts
        included. On success the yielded list is filled with the committed
        records. The guard is released on every exit path.
        """
        if self._entered:
            raise ReentrantCall(f"{label} entered while another operation is in flight")
        self._entered = True
        tx_id = f"tx:{self.name}:{self._next_sequence:012d}"
        ledger_snapshot = self.ledger.snapshot()
        journals = [(c, c.snapshot()) for c in self._journaled()]
        self._pending_events = []
        records: List[EventRecord] = []
        try:
            yield records
        except BaseException as exc:
            self.ledger.restore(ledger_snapshot)
            for collaborator, snapshot in journals:
                collaborator.restore(snapshot)
            discarded = self._pending_events
            self._pending_events = []
            if self.verbose:
                print(format_transition(
                    tx_id, label, discarded, f"REJECTED: {type(exc).__name__}: {exc}", "✗"
                ))
            raise
        else:
            events = self._pending_events
            self._pending_events = []
            records.extend(self.event_log.commit(tx_id, self._current_time, events))
            self._next_sequence += 1
            if self.verbose:
                print(format_transition(tx_id, label, events, "APPLIED", "✓"))
        finally:
            self._entered = False

    def _emit(self, event: Event) -> None:
        self._pending_events.append(event)

    # ========================================================================
    # CHECKS
    # ========================================================================

    @staticmethod
    def _require_nonzero(amount: int, what: str) -> None:
        if amount <= 0:
            raise NeedsMoreThanZero(f"{what} must be more than zero, got {amount}")

    @staticmethod
    def _require_not_negative(amount: int, what: str) -> None:
        if amount < 0:
            raise NeedsMoreThanZero(f"{what} cannot be negative, got {amount}")

    def _require_health(self, user: str) -> None:
        health_factor = compute_health_factor(self, user)
        if health_factor < MIN_HEALTH_FACTOR:
            raise HealthFactorTooLow(
                f"{user} health factor {health_factor} is below {MIN_HEALTH_FACTOR}"
            )

    # ========================================================================
    # INTERACTIONS
    # ========================================================================

    def _pull_collateral(self, user: str, asset: str, amount: int) -> None:
        if not self._tokens[asset].transfer_from(user, self.address, amount, spender=self.address):
            raise TransferFailed(f"transfer of {amount} {asset} from {user} failed")

    def _push_collateral(self, to: str, asset: str, amount: int) -> None:
        if not self._tokens[asset].transfer(self.address, to, amount):
            raise TransferFailed(f"transfer of {amount} {asset} to {to} failed")

    # ========================================================================
    # MUTATING OPERATIONS
    # ========================================================================

    def deposit_and_mint(self, user: str, asset: str, amount_collateral: int, amount_to_mint: int) -> List[EventRecord]:
        """
        Deposit collateral and mint synthetic units in one transition.

        A zero amount_to_mint skips the mint leg.

        Raises:
            TokenNotAllowed, NeedsMoreThanZero, TransferFailed,
            HealthFactorTooLow, OracleError
        """
        with self._transition("deposit_and_mint") as records:
            # Checks
            self._registry.require(asset)
            self._require_nonzero(amount_collateral, "collateral amount")
            self._require_not_negative(amount_to_mint, "mint amount")

            # Effects
            self.ledger.increase_collateral(user, asset, amount_collateral)
            if amount_to_mint:
                self.ledger.increase_debt(user, amount_to_mint)

            # Events
            self._emit(collateral_deposited(user, asset, amount_collateral))
            if amount_to_mint:
                self._emit(synthetic_minted(user, amount_to_mint))

            # Interactions
            self._pull_collateral(user, asset, amount_collateral)
            if amount_to_mint:
                self.synthetic.mint(self.address, user, amount_to_mint)

            # Post-condition
            self._require_health(user)
        return records

    def deposit(self, user: str, asset: str, amount: int) -> List[EventRecord]:
        """Deposit collateral without minting."""
        return self.deposit_and_mint(user, asset, amount, 0)

    def mint(self, user: str, amount: int) -> List[EventRecord]:
        """Take on debt and receive synthetic units, with no collateral movement."""
        with self._transition("mint") as records:
            self._require_nonzero(amount, "mint amount")

            self.ledger.increase_debt(user, amount)
            self._emit(synthetic_minted(user, amount))
            self.synthetic.mint(self.address, user, amount)

            self._require_health(user)
        return records

    def redeem_and_burn(self, user: str, asset: str, amount_collateral: int, amount_to_burn: int) -> List[EventRecord]:
        """
        Repay debt and withdraw collateral in one transition.

        The burn leg runs before the redeem leg so the position never looks
        less healthy than its end state. A zero amount_to_burn skips the burn.

        Raises:
            TokenNotAllowed, NeedsMoreThanZero, InsufficientBalance,
            TransferFailed, HealthFactorTooLow, OracleError
        """
        with self._transition("redeem_and_burn") as records:
            # Checks
            self._registry.require(asset)
            self._require_nonzero(amount_collateral, "collateral amount")
            self._require_not_negative(amount_to_burn, "burn amount")
            held = self.ledger.collateral_balance(user, asset)
            if amount_collateral > held:
                raise InsufficientBalance(
                    f"{user} holds {held} {asset}, cannot redeem {amount_collateral}"
                )

            # Effects
            if amount_to_burn:
                self.ledger.decrease_debt(user, amount_to_burn)
            self.ledger.decrease_collateral(user, asset, amount_collateral)

            # Events
            if amount_to_burn:
                self._emit(synthetic_burned(user, user, amount_to_burn))
            self._emit(collateral_redeemed(user, user, asset, amount_collateral))

            # Interactions
            if amount_to_burn:
                self.synthetic.burn(self.address, user, amount_to_burn)
            self._push_collateral(user, asset, amount_collateral)

            # Post-condition
            self._require_health(user)
        return records

    def redeem(self, user: str, asset: str, amount: int) -> List[EventRecord]:
        """Withdraw collateral without repaying debt."""
        return self.redeem_and_burn(user, asset, amount, 0)

    def burn(self, user: str, amount: int) -> List[EventRecord]:
        """Repay debt by retiring synthetic units, with no collateral movement."""
        with self._transition("burn") as records:
            self._require_nonzero(amount, "burn amount")

            self.ledger.decrease_debt(user, amount)
            self._emit(synthetic_burned(user, user, amount))
            self.synthetic.burn(self.address, user, amount)

            self._require_health(user)
        return records

    def liquidate(self, liquidator: str, asset: str, victim: str, debt_to_repay: int) -> LiquidationResult:
        """
        Repay part of an unhealthy position's debt in exchange for its collateral.

        The liquidator's synthetic units are retired; the victim's debt drops
        by the same amount and the liquidator receives the seized collateral,
        including a bonus of up to 10%.

        Raises:
            TokenNotAllowed: If asset is not registered
            NeedsMoreThanZero: If debt_to_repay is not positive
            HealthFactorEnough: If the victim is not below the minimum health factor
            InsufficientCollateral: If the victim cannot cover the seizure
            InsufficientBalance: If debt_to_repay exceeds the victim's debt,
                                 or the liquidator lacks the synthetic units
            HealthFactorNotImproved: If the victim's health factor does not rise
            HealthFactorTooLow: If the liquidator ends up unhealthy
        """
        with self._transition("liquidate"):
            # Checks
            initial_health_factor, plan = plan_liquidation(self, asset, victim, debt_to_repay)

            # Effects
            self.ledger.decrease_collateral(victim, asset, plan.seize_amount)
            self.ledger.decrease_debt(victim, debt_to_repay)
            ending_health_factor = compute_health_factor(self, victim)

            # Events
            self._emit(collateral_redeemed(victim, liquidator, asset, plan.seize_amount))
            self._emit(synthetic_burned(victim, liquidator, debt_to_repay))
            self._emit(liquidated(
                victim, liquidator, asset, debt_to_repay, plan.seize_amount,
                initial_health_factor, ending_health_factor,
            ))

            # Interactions
            self._push_collateral(liquidator, asset, plan.seize_amount)
            self.synthetic.burn(self.address, liquidator, debt_to_repay)

            # Post-conditions
            check_improvement(initial_health_factor, ending_health_factor)
            self._require_health(liquidator)

        return LiquidationResult(
            victim=victim,
            liquidator=liquidator,
            asset=asset,
            debt_repaid=debt_to_repay,
            collateral_seized=plan.seize_amount,
            initial_health_factor=initial_health_factor,
            ending_health_factor=ending_health_factor,
        )

    # ========================================================================
    # READ-ONLY QUERIES
    # ========================================================================

    def get_health_factor(self, user: str) -> int:
        return compute_health_factor(self, user)

    def get_account_information(self, user: str) -> AccountInformation:
        return compute_account_information(self, user)

    def get_collateral_value_in_usd_for_user(self, user: str) -> int:
        return compute_collateral_value(self, user)

    def get_collateral_amount_for_user(self, user: str, asset: str) -> int:
        self._registry.require(asset)
        return self.ledger.collateral_balance(user, asset)

    def get_collateral_balance_of_user(self, user: str, asset: str) -> int:
        return self.get_collateral_amount_for_user(user, asset)

    def get_token_value_in_usd(self, asset: str, amount: int) -> int:
        """USD value (18 decimals) of amount units of a registered asset."""
        return calculate_usd_value(compute_price(self, asset), amount)

    def get_collateral_token_amount(self, asset: str, usd_amount: int) -> int:
        """Units of a registered asset worth usd_amount (18 decimals)."""
        return calculate_token_amount(compute_price(self, asset), usd_amount)

    @staticmethod
    def calculate_health_factor(total_debt: int, collateral_value_usd: int) -> int:
        return calculate_health_factor(total_debt, collateral_value_usd)

    def get_collateral_tokens(self) -> List[str]:
        return list(self._registry.assets)

    def get_collateral_price_source(self, asset: str) -> PriceSource:
        return self._registry.price_source(asset)

    def get_synthetic(self) -> SyntheticUnit:
        return self.synthetic

    @staticmethod
    def get_min_health_factor() -> int:
        return MIN_HEALTH_FACTOR

    @staticmethod
    def get_precision() -> int:
        return PRECISION

    @staticmethod
    def get_liquidation_threshold() -> int:
        return LIQUIDATION_THRESHOLD

    @staticmethod
    def get_liquidation_bonus() -> int:
        return LIQUIDATION_BONUS

    @staticmethod
    def get_liquidation_precision() -> int:
        return LIQUIDATION_PRECISION

    @staticmethod
    def get_max_price_age() -> int:
        return MAX_PRICE_AGE

    def __repr__(self) -> str:
        return (
            f"Hub({self.name}, collateral={list(self._registry.assets)}, "
            f"positions={len(self.ledger.users())}, t={self._current_time})"
        )
