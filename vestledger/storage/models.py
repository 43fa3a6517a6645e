"""
Vesting Storage — SQLAlchemy models for the durable ledger state.

Persisted layout is exactly the ledger state plus the release-event log:

1. ``vesting_ledgers``  — one row per ledger: status, start, beneficiary,
   total released
2. ``vesting_tranches`` — the schedule, written once at initialization
3. ``release_events``   — APPEND-ONLY log of release deltas

Amounts are stored as decimal strings: pools in atomic units routinely
exceed 64-bit integer columns.
"""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all vesting models."""
    pass


class VestingLedgerDB(Base):
    """Current state of a single vesting ledger."""

    __tablename__ = "vesting_ledgers"

    ledger_id = Column(String(100), primary_key=True)
    status = Column(
        String(20), nullable=False, default="uninitialized",
        comment="uninitialized, active, or paused",
    )
    global_start_time = Column(
        BigInteger, nullable=True,
        comment="Unix timestamp at which the first tranche starts",
    )
    beneficiary = Column(String(200), nullable=True)
    total_released = Column(
        String(80), nullable=False, default="0",
        comment="Cumulative released atomic units (decimal string)",
    )

    def __repr__(self) -> str:
        return (
            f"<VestingLedger id={self.ledger_id} status={self.status} "
            f"released={self.total_released}>"
        )


class TrancheDB(Base):
    """A schedule tranche. Written once, never updated."""

    __tablename__ = "vesting_tranches"

    ledger_id = Column(
        String(100), ForeignKey("vesting_ledgers.ledger_id"), primary_key=True,
    )
    tranche_index = Column(Integer, primary_key=True)
    total_amount = Column(String(80), nullable=False)
    start_time = Column(BigInteger, nullable=False)
    duration = Column(BigInteger, nullable=False)


class ReleaseEventDB(Base):
    """
    A single release, as emitted by the ledger.

    This table is APPEND-ONLY. Rows are never updated; the only delete is the
    revert of a journaled release whose token transfer failed.
    """

    __tablename__ = "release_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ledger_id = Column(
        String(100), ForeignKey("vesting_ledgers.ledger_id"), nullable=False,
    )
    sequence_number = Column(
        Integer, nullable=False,
        comment="Position of the event in this ledger's log, starting at 0",
    )
    beneficiary = Column(String(200), nullable=False)
    amount = Column(String(80), nullable=False, comment="Released delta (decimal string)")
    timestamp = Column(BigInteger, nullable=False)

    __table_args__ = (
        UniqueConstraint("ledger_id", "sequence_number", name="uq_release_event_seq"),
        Index("ix_release_event_ledger_timestamp", "ledger_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return (
            f"<ReleaseEvent ledger={self.ledger_id} seq={self.sequence_number} "
            f"amount={self.amount}>"
        )
