"""
Withdrawal Guard — how much of the held balance the owner may take back.

Tokens still owed to the beneficiary (the unreleased part of the pool) are
reserved. Before a schedule exists nothing is reserved, so the whole
balance is withdrawable.
"""

from __future__ import annotations

from vestledger.vesting.schema import VestingLedgerState


def outstanding_obligation(state: VestingLedgerState) -> int:
    """Units of the pool not yet released to the beneficiary."""
    if not state.initialized:
        return 0
    return state.total_vesting_pool - state.total_released


def withdrawable_amount(state: VestingLedgerState, balance: int) -> int:
    """Portion of ``balance`` not reserved for future vesting obligations."""
    return max(0, balance - outstanding_obligation(state))
