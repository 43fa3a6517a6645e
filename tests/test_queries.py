"""
Tests for the Query Façade.

Validates:
- Gating of amount queries before initialization and while paused
- Releasable amount across the reference six-tranche schedule
- Release info consistency after partial releases
- Ungated accessors and their defaults
"""

from __future__ import annotations

import pytest

from vestledger.token.collaborators import InMemoryTokenLedger
from vestledger.vesting.clock import ManualClock
from vestledger.vesting.errors import NotActive
from vestledger.vesting.ledger import VestingLedger
from vestledger.vesting.queries import VestingQueries
from vestledger.vesting.schema import ONE_DAY, LedgerStatus

T0 = 1_700_000_000
MONTH = 30 * ONE_DAY
TOKEN = 10**18
TOTAL_SUPPLY = 100_000_000
POOL = TOTAL_SUPPLY * TOKEN


class TestQueryGating:
    """Amount queries refuse to answer unless the ledger is active."""

    def setup_method(self):
        self.clock = ManualClock(T0)
        self.ledger = VestingLedger(
            token=InMemoryTokenLedger(),
            account="vesting",
            owner_account="owner",
            total_vesting_pool=POOL,
            clock=self.clock,
        )
        self.queries = VestingQueries(self.ledger)

    @pytest.mark.parametrize(
        "query",
        ["get_releasable_amount", "get_release_info", "get_daily_releasable_amount"],
    )
    def test_gated_before_initialize(self, query):
        with pytest.raises(NotActive):
            getattr(self.queries, query)()

    @pytest.mark.parametrize(
        "query",
        ["get_releasable_amount", "get_release_info", "get_daily_releasable_amount"],
    )
    def test_gated_while_paused(self, query):
        self.ledger.initialize(T0, "beneficiary")
        self.ledger.pause()
        with pytest.raises(NotActive):
            getattr(self.queries, query)(T0 + MONTH)

    def test_accessors_before_initialize(self):
        assert self.queries.get_start_time() == 0
        assert self.queries.get_beneficiary_address() is None
        assert self.queries.get_vesting_schedules_count() == 0
        assert self.queries.get_status() == LedgerStatus.UNINITIALIZED
        with pytest.raises(IndexError):
            self.queries.get_vesting_schedule(0)

    def test_accessors_after_initialize(self):
        self.ledger.initialize(T0, "beneficiary")
        assert self.queries.get_start_time() == T0
        assert self.queries.get_beneficiary_address() == "beneficiary"
        assert self.queries.get_vesting_schedules_count() == 6
        tranche = self.queries.get_vesting_schedule(5)
        assert tranche.start_time == T0 + 5 * MONTH
        assert tranche.total_amount == TOTAL_SUPPLY * 15 // 100 * TOKEN

    def test_accessors_not_gated_while_paused(self):
        self.ledger.initialize(T0, "beneficiary")
        self.ledger.pause()
        assert self.queries.get_start_time() == T0
        assert self.queries.get_vesting_schedules_count() == 6


class TestReleasableAmount:
    """Releasable amount along the reference schedule."""

    def setup_method(self):
        self.clock = ManualClock(T0)
        self.ledger = VestingLedger(
            token=InMemoryTokenLedger(),
            account="vesting",
            owner_account="owner",
            total_vesting_pool=POOL,
            clock=self.clock,
        )
        self.queries = VestingQueries(self.ledger)
        self.ledger.initialize(T0, "beneficiary")

    def test_fast_forward_month_by_month(self):
        expected_percent = [20, 40, 55, 70, 85, 100]
        self.clock.set(T0 + MONTH)
        for month, pct in enumerate(expected_percent, start=1):
            assert self.queries.get_releasable_amount() == TOTAL_SUPPLY * pct // 100 * TOKEN, (
                f"Release amount after {month} months"
            )
            self.clock.advance(MONTH)

    def test_fully_vested_stops_growing(self):
        self.clock.set(T0 + 6 * MONTH + ONE_DAY)
        assert self.queries.get_releasable_amount() == POOL

    def test_explicit_timestamp_does_not_move_clock(self):
        assert self.queries.get_releasable_amount(T0 + 3 * MONTH) == 55_000_000 * TOKEN
        assert self.ledger.now() == T0

    def test_daily_rate_at_start(self):
        assert self.queries.get_daily_releasable_amount(T0) == TOTAL_SUPPLY * TOKEN // 5 // 30

    def test_daily_rate_after_schedule(self):
        assert self.queries.get_daily_releasable_amount(T0 + 6 * MONTH) == 0


class TestReleaseInfo:
    """Release info after partial releases."""

    def setup_method(self):
        self.token = InMemoryTokenLedger()
        self.token.mint("vesting", POOL)
        self.clock = ManualClock(T0)
        self.ledger = VestingLedger(
            token=self.token,
            account="vesting",
            owner_account="owner",
            total_vesting_pool=POOL,
            clock=self.clock,
        )
        self.queries = VestingQueries(self.ledger)
        self.ledger.initialize(T0, "beneficiary")

    def test_release_info_tracks_released_and_releasable(self):
        self.clock.set(T0 + 99)
        event = self.ledger.release()

        self.clock.set(T0 + 199)
        info = self.queries.get_release_info()
        tranche0 = self.queries.get_vesting_schedule(0)

        assert info.released == event.amount
        assert info.total == tranche0.total_amount * 199 // MONTH
        assert info.releasable == info.total - info.released
        assert self.token.balance_of("beneficiary") == info.released

    def test_past_timestamp_reports_zero_releasable(self):
        self.clock.set(T0 + ONE_DAY)
        self.ledger.release()
        assert self.queries.get_releasable_amount(T0 + 10) == 0

    def test_release_events_exposed(self):
        self.clock.set(T0 + ONE_DAY)
        event = self.ledger.release()
        assert self.queries.get_release_events() == (event,)
