"""
Release Ledger — the state machine that owns a vesting pool.

States and transitions:

    UNINITIALIZED ──initialize──▶ ACTIVE ◀──unpause── PAUSED
                                     └──────pause──────▶┘

- ``release`` is only legal while ACTIVE.
- ``withdraw`` is only legal while PAUSED or UNINITIALIZED, and never
  touches the part of the balance still owed to the beneficiary.
- ``set_beneficiary`` is legal in any initialized state.

Every mutation runs under a per-ledger lock and commits by swapping one
immutable ``VestingLedgerState`` reference, after any token transfer has been
confirmed. A refused or failed operation leaves the state untouched.
Readers use ``state`` without locking.

When a journal is attached, each mutation is written to it before the
in-memory commit. A release is journaled before its transfer and reverted
if the transfer fails, so the durable record never shows less released
than the beneficiary has actually received.

Usage:
    ledger = VestingLedger(
        token=token,
        account="vesting-ledger",
        owner_account="owner",
        total_vesting_pool=100_000_000 * 10**18,
        clock=ManualClock(start=t0),
    )
    ledger.initialize(start_time=t0, beneficiary="alice")
    event = ledger.release()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from typing import Callable, Protocol

from vestledger.token.collaborators import TokenLedger
from vestledger.vesting.builder import build_schedule, validate_tranche_config
from vestledger.vesting.calculator import total_vested
from vestledger.vesting.clock import Clock, SystemClock
from vestledger.vesting.errors import (
    AlreadyInitialized,
    ClockRegression,
    InsufficientWithdrawable,
    InvalidAmount,
    InvalidBeneficiary,
    InvalidPauseTransition,
    NotActive,
    NotInitialized,
    NotPaused,
    PersistenceError,
    TransferFailed,
)
from vestledger.vesting.guard import withdrawable_amount
from vestledger.vesting.schema import (
    DEFAULT_TRANCHE_CONFIG,
    LedgerStatus,
    ReleaseEvent,
    TrancheConfig,
    VestingLedgerState,
)

logger = logging.getLogger(__name__)

# Called after every committed mutation with the new state and the
# release events appended by that mutation (possibly none).
LedgerListener = Callable[[VestingLedgerState, tuple[ReleaseEvent, ...]], None]


class LedgerJournal(Protocol):
    """Durable write-ahead record of ledger mutations."""

    def write(self, state: VestingLedgerState, new_events: tuple[ReleaseEvent, ...]) -> None:
        """Record ``state`` and ``new_events`` in one atomic write."""
        ...

    def revert(self, previous_state: VestingLedgerState, new_events: tuple[ReleaseEvent, ...]) -> None:
        """Undo the last write: restore ``previous_state`` and drop ``new_events``."""
        ...


class VestingLedger:
    """
    Single-beneficiary vesting ledger.

    The ledger holds its pool on the token ledger under ``account``.
    Withdrawals go to ``owner_account``. Access control is not checked
    here; callers are expected to have passed an owner check for the
    administrative operations.
    """

    def __init__(
        self,
        token: TokenLedger,
        account: str,
        owner_account: str,
        total_vesting_pool: int,
        tranche_config: Sequence[TrancheConfig] = DEFAULT_TRANCHE_CONFIG,
        clock: Clock | None = None,
        listeners: Iterable[LedgerListener] = (),
        journal: LedgerJournal | None = None,
    ) -> None:
        """
        Initialize an uninitialized ledger.

        Args:
            token: Token ledger holding the pool.
            account: This ledger's holder identity on the token ledger.
            owner_account: Recipient of owner withdrawals.
            total_vesting_pool: Atomic units allocated to the beneficiary.
            tranche_config: Tranche table used when the schedule is built.
            clock: Source of the current time. Defaults to wall time.
            listeners: Callbacks notified after each committed mutation.
            journal: Durable record written before each commit.
        """
        validate_tranche_config(tranche_config)
        if total_vesting_pool < 0:
            raise ValueError(f"Vesting pool must not be negative, got {total_vesting_pool}")

        self.token = token
        self.account = account
        self.owner_account = owner_account
        self.total_vesting_pool = total_vesting_pool
        self.tranche_config = tuple(tranche_config)
        self.clock = clock or SystemClock()
        self.listeners: list[LedgerListener] = list(listeners)
        self.journal = journal

        self._state = VestingLedgerState()
        self._events: tuple[ReleaseEvent, ...] = ()
        self._last_observed_time = 0
        self._lock = threading.RLock()

    @classmethod
    def restore(
        cls,
        state: VestingLedgerState,
        events: Sequence[ReleaseEvent] = (),
        **kwargs,
    ) -> VestingLedger:
        """
        Rebuild a ledger from a persisted state and release-event log.

        The latest event timestamp becomes the clock floor, so a restored
        ledger still refuses to move backwards in time.
        """
        ledger = cls(**kwargs)
        ledger._state = state
        ledger._events = tuple(events)
        if events:
            ledger._last_observed_time = max(event.timestamp for event in events)
        logger.info(
            "Vesting ledger restored: status=%s released=%s events=%d",
            state.status.value, state.total_released, len(events),
        )
        return ledger

    # ── Reads ───────────────────────────────────────────────────

    @property
    def state(self) -> VestingLedgerState:
        """The latest committed snapshot."""
        return self._state

    def snapshot(self) -> VestingLedgerState:
        return self._state

    def events(self) -> tuple[ReleaseEvent, ...]:
        return self._events

    def now(self) -> int:
        """
        Read the clock, refusing any time earlier than one already seen.

        Raises:
            ClockRegression: If the clock went backwards.
        """
        with self._lock:
            timestamp = self.clock.now()
            if timestamp < self._last_observed_time:
                raise ClockRegression(
                    f"Clock reported {timestamp}, earlier than previously "
                    f"observed {self._last_observed_time}"
                )
            self._last_observed_time = timestamp
            return timestamp

    # ── Lifecycle ───────────────────────────────────────────────

    def initialize(self, start_time: int, beneficiary: str) -> VestingLedgerState:
        """
        Build the schedule and activate vesting. Legal exactly once.

        Raises:
            AlreadyInitialized: If the ledger was already initialized.
            InvalidBeneficiary: If ``beneficiary`` is empty.
            ScheduleConfigError: If the schedule cannot be built.
        """
        with self._lock:
            if self._state.initialized:
                logger.warning("Initialize refused: ledger already initialized")
                raise AlreadyInitialized("Vesting ledger is already initialized")
            if not beneficiary:
                raise InvalidBeneficiary("Beneficiary must not be empty")

            schedule = build_schedule(start_time, self.total_vesting_pool, self.tranche_config)
            new_state = VestingLedgerState(
                status=LedgerStatus.ACTIVE,
                global_start_time=start_time,
                beneficiary=beneficiary,
                total_released=0,
                schedule=schedule,
            )
            self._commit(new_state)

            logger.info(
                "Vesting ledger initialized: start=%d beneficiary=%s pool=%s tranches=%d",
                start_time, beneficiary, self.total_vesting_pool, len(schedule),
            )
            return new_state

    def pause(self) -> VestingLedgerState:
        """Halt vesting operations. Legal only while ACTIVE."""
        return self._transition(LedgerStatus.ACTIVE, LedgerStatus.PAUSED, "pause")

    def unpause(self) -> VestingLedgerState:
        """Resume vesting operations. Legal only while PAUSED."""
        return self._transition(LedgerStatus.PAUSED, LedgerStatus.ACTIVE, "unpause")

    def set_beneficiary(self, new_beneficiary: str) -> VestingLedgerState:
        """
        Reassign the recipient of future releases.

        Released totals and the schedule are unaffected.

        Raises:
            NotInitialized: Before initialization.
            InvalidBeneficiary: If ``new_beneficiary`` is empty.
        """
        with self._lock:
            state = self._state
            if not state.initialized:
                raise NotInitialized("Cannot set a beneficiary before initialization")
            if not new_beneficiary:
                raise InvalidBeneficiary("Beneficiary must not be empty")

            new_state = state.model_copy(update={"beneficiary": new_beneficiary})
            self._commit(new_state)
            logger.info(
                "Beneficiary reassigned: %s -> %s", state.beneficiary, new_beneficiary
            )
            return new_state

    def set_owner_account(self, new_owner: str) -> None:
        """Redirect future withdrawals to ``new_owner``."""
        with self._lock:
            previous, self.owner_account = self.owner_account, new_owner
            logger.info("Withdrawal recipient changed: %s -> %s", previous, new_owner)

    # ── Token movements ─────────────────────────────────────────

    def release(self) -> ReleaseEvent | None:
        """
        Transfer everything vested but not yet released to the beneficiary.

        Returns:
            The ReleaseEvent, or None when nothing was releasable.

        Raises:
            NotActive: While paused or uninitialized.
            TransferFailed: If the token ledger refuses the transfer.
            ClockRegression: If the clock went backwards.
            PersistenceError: If the journal cannot record the release, or
                cannot revert it after a failed transfer.
        """
        with self._lock:
            state = self._state
            if state.paused:
                logger.warning("Release refused: ledger is %s", state.status.value)
                raise NotActive(f"Release requires an active schedule, ledger is {state.status.value}")

            now = self.now()
            releasable = total_vested(state.schedule, now) - state.total_released
            if releasable <= 0:
                logger.debug("Release at %d: nothing releasable", now)
                return None

            event = ReleaseEvent(beneficiary=state.beneficiary, amount=releasable, timestamp=now)
            new_state = state.model_copy(
                update={"total_released": state.total_released + releasable}
            )

            self._journal_write(new_state, (event,))
            try:
                self._transfer(state.beneficiary, releasable)
            except TransferFailed:
                self._journal_revert(state, (event,))
                raise
            self._publish(new_state, (event,))

            logger.info(
                "Released %s to %s at %d (total released %s)",
                releasable, state.beneficiary, now, new_state.total_released,
            )
            return event

    def withdraw(self, amount: int) -> int:
        """
        Return unreserved tokens to the owner.

        Args:
            amount: Atomic units to withdraw.

        Returns:
            The amount withdrawn.

        Raises:
            NotPaused: While vesting is active.
            InvalidAmount: If ``amount`` is not positive.
            InsufficientWithdrawable: If ``amount`` exceeds the unreserved balance.
            TransferFailed: If the token ledger refuses the transfer.
        """
        with self._lock:
            state = self._state
            if state.status == LedgerStatus.ACTIVE:
                logger.warning("Withdraw refused: ledger is active")
                raise NotPaused("Withdraw is only allowed while paused or uninitialized")
            if amount <= 0:
                raise InvalidAmount(f"Withdraw amount must be positive, got {amount}")

            balance = self.token.balance_of(self.account)
            available = withdrawable_amount(state, balance)
            if amount > available:
                logger.warning(
                    "Withdraw refused: requested %s, withdrawable %s", amount, available
                )
                raise InsufficientWithdrawable(
                    f"Withdraw amount {amount} exceeds withdrawable balance {available}"
                )

            self._transfer(self.owner_account, amount)
            logger.info("Withdrew %s to %s", amount, self.owner_account)
            return amount

    # ── Internal ────────────────────────────────────────────────

    def _transition(
        self,
        source: LedgerStatus,
        target: LedgerStatus,
        operation: str,
    ) -> VestingLedgerState:
        with self._lock:
            state = self._state
            if state.status != source:
                logger.warning("%s refused: ledger is %s", operation, state.status.value)
                raise InvalidPauseTransition(
                    f"Cannot {operation} a ledger that is {state.status.value}"
                )
            new_state = state.model_copy(update={"status": target})
            self._commit(new_state)
            logger.info("Vesting ledger %s: %s -> %s", operation, source.value, target.value)
            return new_state

    def _transfer(self, recipient: str, amount: int) -> None:
        try:
            ok = self.token.transfer(self.account, recipient, amount)
        except Exception as exc:
            raise TransferFailed(f"Transfer of {amount} to {recipient} failed: {exc}") from exc
        if not ok:
            logger.warning("Token ledger refused transfer of %s to %s", amount, recipient)
            raise TransferFailed(f"Transfer amount {amount} exceeds balance")

    def _journal_write(
        self,
        new_state: VestingLedgerState,
        new_events: tuple[ReleaseEvent, ...],
    ) -> None:
        if self.journal is None:
            return
        try:
            self.journal.write(new_state, new_events)
        except Exception as exc:
            logger.error("Journal write failed, mutation abandoned: %s", exc)
            raise PersistenceError(f"Could not record ledger mutation: {exc}") from exc

    def _journal_revert(
        self,
        previous_state: VestingLedgerState,
        new_events: tuple[ReleaseEvent, ...],
    ) -> None:
        if self.journal is None:
            return
        try:
            self.journal.revert(previous_state, new_events)
        except Exception as exc:
            # The journal now overstates the released total; nothing is re-paid.
            logger.error("Journal revert failed after refused transfer: %s", exc)
            raise PersistenceError(
                f"Transfer failed and the journaled release could not be reverted: {exc}"
            ) from exc

    def _commit(
        self,
        new_state: VestingLedgerState,
        new_events: tuple[ReleaseEvent, ...] = (),
    ) -> None:
        """Journal, then publish a new state. Caller holds the lock."""
        self._journal_write(new_state, new_events)
        self._publish(new_state, new_events)

    def _publish(
        self,
        new_state: VestingLedgerState,
        new_events: tuple[ReleaseEvent, ...] = (),
    ) -> None:
        """Swap in a new state and notify listeners. Caller holds the lock."""
        if new_events:
            self._events = self._events + new_events
        self._state = new_state
        for listener in self.listeners:
            listener(new_state, new_events)
