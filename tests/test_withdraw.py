"""
Tests for the Withdrawal Guard and the ledger's withdraw operation.

Validates:
- Full balance withdrawable before initialization
- Withdraw refused while active
- Unreleased pool reserved while paused
- Releases shrink the reservation
- Refused or failing token transfers leave balances and status untouched
"""

from __future__ import annotations

import pytest

from vestledger.token.collaborators import InMemoryTokenLedger
from vestledger.vesting.clock import ManualClock
from vestledger.vesting.errors import (
    InsufficientWithdrawable,
    InvalidAmount,
    NotPaused,
    TransferFailed,
)
from vestledger.vesting.guard import outstanding_obligation, withdrawable_amount
from vestledger.vesting.ledger import VestingLedger
from vestledger.vesting.queries import VestingQueries
from vestledger.vesting.schema import ONE_DAY, LedgerStatus, VestingLedgerState

T0 = 1_700_000_000
POOL = 100_000_000 * 10**18


class ExplodingToken(InMemoryTokenLedger):
    """Token ledger whose transfers raise."""

    def transfer(self, sender, recipient, amount):
        raise RuntimeError("node unreachable")


class RefusingToken(InMemoryTokenLedger):
    """Token ledger that declines every transfer."""

    def transfer(self, sender, recipient, amount):
        return False


class TestGuard:
    """Pure obligation arithmetic."""

    def test_nothing_reserved_before_initialization(self):
        state = VestingLedgerState()
        assert outstanding_obligation(state) == 0
        assert withdrawable_amount(state, 500) == 500

    def test_never_negative(self):
        state = VestingLedgerState()
        assert withdrawable_amount(state, 0) == 0


class TestWithdraw:
    """Owner withdrawals through the ledger."""

    def setup_method(self):
        self.token = InMemoryTokenLedger()
        self.token.mint("owner", POOL)
        self.clock = ManualClock(T0)
        self.ledger = VestingLedger(
            token=self.token,
            account="vesting",
            owner_account="owner",
            total_vesting_pool=POOL,
            clock=self.clock,
        )
        self.queries = VestingQueries(self.ledger)

    def test_withdrawable_equals_balance_before_initialize(self):
        assert self.queries.get_withdrawable_amount() == 0
        self.token.transfer("owner", "vesting", POOL)
        assert self.queries.get_withdrawable_amount() == POOL

    def test_withdraw_flow(self):
        self.token.transfer("owner", "vesting", POOL)
        assert self.ledger.withdraw(10_000) == 10_000
        assert self.queries.get_withdrawable_amount() == POOL - 10_000
        assert self.token.balance_of("owner") == 10_000

        self.ledger.initialize(T0, "beneficiary")
        with pytest.raises(NotPaused):
            self.ledger.withdraw(10_000)

        self.ledger.pause()
        with pytest.raises(InsufficientWithdrawable):
            self.ledger.withdraw(POOL)
        # The whole pool is owed and the balance is short by the first withdrawal.
        assert self.queries.get_withdrawable_amount() == 0

        self.token.mint("owner", 30_000)
        self.token.transfer("owner", "vesting", 30_000)
        assert self.queries.get_withdrawable_amount() == 20_000
        self.ledger.withdraw(20_000)
        assert self.token.balance_of("owner") == 20_000 + 10_000
        assert self.queries.get_withdrawable_amount() == 0

    def test_surplus_above_pool_is_withdrawable(self):
        self.token.transfer("owner", "vesting", POOL)
        self.token.mint("vesting", 5_000)
        self.ledger.initialize(T0, "beneficiary")
        self.ledger.pause()
        assert self.queries.get_withdrawable_amount() == 5_000
        self.ledger.withdraw(5_000)
        assert self.token.balance_of("vesting") == POOL

    def test_released_tokens_no_longer_reserved(self):
        self.token.transfer("owner", "vesting", POOL)
        self.token.mint("vesting", 1_000)
        self.ledger.initialize(T0, "beneficiary")
        self.clock.set(T0 + ONE_DAY)
        event = self.ledger.release()
        self.ledger.pause()

        state = self.ledger.state
        assert outstanding_obligation(state) == POOL - event.amount
        # Balance dropped by the release, obligation by the same amount.
        assert self.queries.get_withdrawable_amount() == 1_000

    def test_non_positive_amount_rejected(self):
        with pytest.raises(InvalidAmount):
            self.ledger.withdraw(0)

    def test_refused_withdraw_leaves_balances(self):
        self.token.transfer("owner", "vesting", 100)
        with pytest.raises(InsufficientWithdrawable):
            self.ledger.withdraw(101)
        assert self.token.balance_of("vesting") == 100
        assert self.ledger.state.status == LedgerStatus.UNINITIALIZED


class TestWithdrawTransferFailure:
    """Collaborator failures during withdraw."""

    def _paused_ledger(self, token):
        token.mint("vesting", POOL + 5_000)
        ledger = VestingLedger(
            token=token,
            account="vesting",
            owner_account="owner",
            total_vesting_pool=POOL,
            clock=ManualClock(T0),
        )
        ledger.initialize(T0, "beneficiary")
        ledger.pause()
        return ledger

    def test_raising_transfer_is_chained(self):
        token = ExplodingToken()
        ledger = self._paused_ledger(token)

        with pytest.raises(TransferFailed) as excinfo:
            ledger.withdraw(5_000)

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert token.balance_of("vesting") == POOL + 5_000
        assert token.balance_of("owner") == 0
        assert ledger.state.status == LedgerStatus.PAUSED

    def test_refused_transfer(self):
        token = RefusingToken()
        ledger = self._paused_ledger(token)

        with pytest.raises(TransferFailed):
            ledger.withdraw(5_000)

        assert token.balance_of("vesting") == POOL + 5_000
        assert token.balance_of("owner") == 0
        assert ledger.state.status == LedgerStatus.PAUSED
        assert VestingQueries(ledger).get_withdrawable_amount() == 5_000
