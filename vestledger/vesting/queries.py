"""
Query Façade — read-only views over a vesting ledger.

Each query reads one committed snapshot of the ledger and derives its answer
from it, so a query never mixes fields from two different commits. The
amount queries are gated: they raise ``NotActive`` while the ledger is
paused or not yet initialized. The plain accessors are never gated and
return defaults before initialization.

``at`` is an optional timestamp. Leaving it out evaluates at the ledger
clock's current time; passing it evaluates a what-if without touching the
clock.
"""

from __future__ import annotations

from vestledger.vesting.calculator import daily_rate, total_vested
from vestledger.vesting.errors import NotActive
from vestledger.vesting.guard import withdrawable_amount
from vestledger.vesting.ledger import VestingLedger
from vestledger.vesting.schema import (
    LedgerStatus,
    ReleaseEvent,
    ReleaseInfo,
    Tranche,
    VestingLedgerState,
)


class VestingQueries:
    """Read-only views composed from the calculator, guard and ledger state."""

    def __init__(self, ledger: VestingLedger) -> None:
        self.ledger = ledger

    # ── Gated amount queries ────────────────────────────────────

    def get_releasable_amount(self, at: int | None = None) -> int:
        """
        Vested-to-date minus already released.

        A what-if time earlier than the last release reports 0.
        """
        state = self._active_state()
        return self._releasable(state, self._resolve(at))

    def get_release_info(self, at: int | None = None) -> ReleaseInfo:
        state = self._active_state()
        releasable = self._releasable(state, self._resolve(at))
        return ReleaseInfo(
            released=state.total_released,
            releasable=releasable,
            total=state.total_released + releasable,
        )

    def get_daily_releasable_amount(self, at: int | None = None) -> int:
        """Per-day rate of the tranche running at ``at``."""
        state = self._active_state()
        return daily_rate(state.schedule, self._resolve(at))

    # ── Ungated accessors ───────────────────────────────────────

    def get_vesting_schedules_count(self) -> int:
        return len(self.ledger.state.schedule)

    def get_vesting_schedule(self, index: int) -> Tranche:
        schedule = self.ledger.state.schedule
        if not 0 <= index < len(schedule):
            raise IndexError(f"Tranche index {index} out of range (count={len(schedule)})")
        return schedule[index]

    def get_start_time(self) -> int:
        start = self.ledger.state.global_start_time
        return 0 if start is None else start

    def get_beneficiary_address(self) -> str | None:
        return self.ledger.state.beneficiary

    def get_withdrawable_amount(self) -> int:
        state = self.ledger.state
        return withdrawable_amount(state, self.get_token_balance())

    def get_token_balance(self) -> int:
        return self.ledger.token.balance_of(self.ledger.account)

    def get_status(self) -> LedgerStatus:
        return self.ledger.state.status

    def get_release_events(self) -> tuple[ReleaseEvent, ...]:
        return self.ledger.events()

    # ── Internal ────────────────────────────────────────────────

    def _active_state(self) -> VestingLedgerState:
        state = self.ledger.state
        if state.paused:
            raise NotActive(f"Vesting schedule is not active, ledger is {state.status.value}")
        return state

    def _resolve(self, at: int | None) -> int:
        return self.ledger.now() if at is None else at

    @staticmethod
    def _releasable(state: VestingLedgerState, t: int) -> int:
        return max(0, total_vested(state.schedule, t) - state.total_released)
