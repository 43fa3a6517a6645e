"""
Schedule Builder — turns a start time and a tranche table into tranches.

Tranches are placed back to back with no gap or overlap. Amounts are
computed with integer arithmetic as ``pool * percentage // 100``; the
rounding remainder is assigned to the last tranche so the tranche amounts
always sum to exactly the pool.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from vestledger.vesting.errors import ScheduleConfigError
from vestledger.vesting.schema import DEFAULT_TRANCHE_CONFIG, Tranche, TrancheConfig

logger = logging.getLogger(__name__)


def validate_tranche_config(config: Sequence[TrancheConfig]) -> None:
    """
    Check that a tranche table can produce a valid schedule.

    Raises:
        ScheduleConfigError: If the table is empty, a row is out of range,
            or the percentages do not sum to 100.
    """
    if not config:
        raise ScheduleConfigError("Tranche configuration must not be empty")

    for position, row in enumerate(config):
        if not 0 < row.percentage <= 100:
            raise ScheduleConfigError(
                f"Tranche {position}: percentage {row.percentage} outside 1..100"
            )
        if row.duration <= 0:
            raise ScheduleConfigError(
                f"Tranche {position}: duration must be positive, got {row.duration}"
            )

    total = sum(row.percentage for row in config)
    if total != 100:
        raise ScheduleConfigError(f"Tranche percentages sum to {total}, expected 100")


def build_schedule(
    global_start_time: int,
    total_vesting_pool: int,
    config: Sequence[TrancheConfig] = DEFAULT_TRANCHE_CONFIG,
) -> tuple[Tranche, ...]:
    """
    Build the ordered tranche list for a vesting pool.

    Args:
        global_start_time: Timestamp at which the first tranche starts.
        total_vesting_pool: Atomic units allocated to the beneficiary.
        config: Tranche table of (percentage, duration) rows.

    Returns:
        Tuple of tranches, ordered by index.

    Raises:
        ScheduleConfigError: On an invalid table, negative pool or start time.
    """
    validate_tranche_config(config)
    if total_vesting_pool < 0:
        raise ScheduleConfigError(f"Vesting pool must not be negative, got {total_vesting_pool}")
    if global_start_time < 0:
        raise ScheduleConfigError(f"Start time must not be negative, got {global_start_time}")

    amounts = [total_vesting_pool * row.percentage // 100 for row in config]
    amounts[-1] += total_vesting_pool - sum(amounts)

    tranches = []
    start_time = global_start_time
    for index, (row, amount) in enumerate(zip(config, amounts)):
        tranches.append(
            Tranche(
                index=index,
                total_amount=amount,
                start_time=start_time,
                duration=row.duration,
            )
        )
        start_time += row.duration

    logger.debug(
        "Schedule built: tranches=%d pool=%s start=%d end=%d",
        len(tranches), total_vesting_pool, global_start_time, start_time,
    )
    return tuple(tranches)
