"""
Vesting Schema — Pydantic models for every vesting ledger entity.

These models are the canonical data structures of the ledger. They are all
frozen: the Release Ledger commits a mutation by building a new
``VestingLedgerState`` and swapping the reference, so any snapshot a reader
holds stays internally consistent.

Amounts are integer atomic token units, timestamps are integer Unix seconds
and durations are integer seconds.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

ONE_DAY = 24 * 60 * 60


# ════════════════════════════════════════════════════════════════
# Enumerations
# ════════════════════════════════════════════════════════════════


class LedgerStatus(str, enum.Enum):
    """Lifecycle states of a vesting ledger."""

    UNINITIALIZED = "uninitialized"  # No schedule yet, gated like PAUSED
    ACTIVE = "active"  # Vesting running, release enabled
    PAUSED = "paused"  # Halted by the owner after having been active


# ════════════════════════════════════════════════════════════════
# Schedule Models
# ════════════════════════════════════════════════════════════════


class TrancheConfig(BaseModel):
    """One row of the tranche configuration table."""

    model_config = ConfigDict(frozen=True)

    percentage: int = Field(description="Share of the pool released by this tranche")
    duration: int = Field(description="Length of the linear release, in seconds")


DEFAULT_TRANCHE_CONFIG: tuple[TrancheConfig, ...] = (
    TrancheConfig(percentage=20, duration=30 * ONE_DAY),
    TrancheConfig(percentage=20, duration=30 * ONE_DAY),
    TrancheConfig(percentage=15, duration=30 * ONE_DAY),
    TrancheConfig(percentage=15, duration=30 * ONE_DAY),
    TrancheConfig(percentage=15, duration=30 * ONE_DAY),
    TrancheConfig(percentage=15, duration=30 * ONE_DAY),
)


class Tranche(BaseModel):
    """
    A fixed-amount, fixed-duration linear release segment.

    Tranches are laid back to back: each one starts where the previous one
    ends.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(description="Position in the schedule, starting at 0")
    total_amount: int = Field(ge=0, description="Atomic units released by this tranche")
    start_time: int = Field(description="Timestamp at which release begins")
    duration: int = Field(gt=0, description="Seconds over which the amount vests")

    @property
    def end_time(self) -> int:
        return self.start_time + self.duration


# ════════════════════════════════════════════════════════════════
# Ledger State
# ════════════════════════════════════════════════════════════════


class ReleaseEvent(BaseModel):
    """Record of a single successful release. Holds the delta, not the running total."""

    model_config = ConfigDict(frozen=True)

    beneficiary: str
    amount: int = Field(gt=0)
    timestamp: int


class VestingLedgerState(BaseModel):
    """
    Immutable snapshot of the mutable core of a vesting ledger.

    ``schedule`` is empty until initialization and fixed afterwards. Only
    ``status``, ``beneficiary`` and ``total_released`` change after that.
    """

    model_config = ConfigDict(frozen=True)

    status: LedgerStatus = LedgerStatus.UNINITIALIZED
    global_start_time: int | None = None
    beneficiary: str | None = None
    total_released: int = Field(default=0, ge=0)
    schedule: tuple[Tranche, ...] = ()

    @computed_field
    @property
    def initialized(self) -> bool:
        return self.status != LedgerStatus.UNINITIALIZED

    @computed_field
    @property
    def paused(self) -> bool:
        """Uninitialized ledgers count as paused."""
        return self.status != LedgerStatus.ACTIVE

    @computed_field
    @property
    def total_vesting_pool(self) -> int:
        return sum(tranche.total_amount for tranche in self.schedule)


class ReleaseInfo(BaseModel):
    """Summary returned by the release-info query."""

    model_config = ConfigDict(frozen=True)

    released: int
    releasable: int
    total: int
