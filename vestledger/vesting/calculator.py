"""
Vesting Calculator — cumulative vested amount and daily rate at a timestamp.

Each tranche vests linearly between its start and end, clamped on both
sides. Division truncates toward zero, so until a tranche ends up to one
unit of it may remain unvested; at its end it contributes the full amount.
``total_vested`` is monotone non-decreasing in time for a fixed schedule.
"""

from __future__ import annotations

from collections.abc import Sequence

from vestledger.vesting.schema import ONE_DAY, Tranche


def vested_amount(tranche: Tranche, t: int) -> int:
    """Amount of a single tranche vested at time ``t``."""
    elapsed = min(max(t - tranche.start_time, 0), tranche.duration)
    return tranche.total_amount * elapsed // tranche.duration


def total_vested(schedule: Sequence[Tranche], t: int) -> int:
    """Cumulative amount vested across the whole schedule at time ``t``."""
    return sum(vested_amount(tranche, t) for tranche in schedule)


def find_tranche(schedule: Sequence[Tranche], t: int) -> Tranche | None:
    """Return the tranche whose half-open window [start, end) contains ``t``."""
    for tranche in schedule:
        if tranche.start_time <= t < tranche.end_time:
            return tranche
    return None


def tranche_daily_rate(tranche: Tranche) -> int:
    """Whole amount of a tranche divided by its length in whole days."""
    days = tranche.duration // ONE_DAY
    if days == 0:
        return tranche.total_amount
    return tranche.total_amount // days


def daily_rate(schedule: Sequence[Tranche], t: int) -> int:
    """
    Per-day release rate of the tranche running at time ``t``.

    Before the first tranche the first tranche's rate is reported; once
    the last tranche has ended the schedule is exhausted and the rate is 0.
    """
    if not schedule:
        return 0

    if t < schedule[0].start_time:
        return tranche_daily_rate(schedule[0])

    tranche = find_tranche(schedule, t)
    if tranche is None:
        return 0
    return tranche_daily_rate(tranche)
