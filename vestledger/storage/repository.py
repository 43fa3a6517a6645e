"""
Ledger Repository — durable storage for vesting ledger state.

The repository mirrors what the in-memory ledger commits:

- ``save_state`` upserts the ledger row and writes the schedule the first
  time it appears
- ``append_events`` inserts release events after the last stored sequence
  number
- ``record`` does both in a single transaction
- ``revert`` undoes a ``record`` whose token transfer failed; it is the
  only path that deletes release events
- ``load`` rebuilds the state snapshot and event log

``journal(ledger_id)`` returns a ``RepositoryJournal`` that a
``VestingLedger`` writes to before every commit.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from vestledger.storage.models import Base, ReleaseEventDB, TrancheDB, VestingLedgerDB
from vestledger.vesting.schema import (
    LedgerStatus,
    ReleaseEvent,
    Tranche,
    VestingLedgerState,
)

logger = logging.getLogger(__name__)


class LedgerRepository:
    """
    SQLAlchemy-backed store for vesting ledgers.

    Usage:
        repository = LedgerRepository("sqlite:///vestledger.db")
        repository.initialize()  # Create tables
        ledger.journal = repository.journal("default")
    """

    def __init__(self, database_url: str) -> None:
        """
        Args:
            database_url: SQLAlchemy connection string (sync driver).
        """
        self.engine = create_engine(database_url, echo=False)
        self.SessionLocal = sessionmaker(bind=self.engine)

    def initialize(self) -> None:
        """Create the schema if it does not exist."""
        Base.metadata.create_all(self.engine)

    def save_state(self, ledger_id: str, state: VestingLedgerState) -> None:
        """Upsert the ledger row; write the schedule if not stored yet."""
        with self.SessionLocal() as session:
            self._write_state(session, ledger_id, state)
            session.commit()

        logger.debug(
            "Ledger state saved: id=%s status=%s released=%s",
            ledger_id, state.status.value, state.total_released,
        )

    def append_events(
        self,
        ledger_id: str,
        events: Sequence[ReleaseEvent],
    ) -> None:
        """Append release events after the last stored sequence number."""
        if not events:
            return

        with self.SessionLocal() as session:
            first_seq = self._write_events(session, ledger_id, events)
            session.commit()

        logger.info(
            "Release events appended: id=%s count=%d first_seq=%d",
            ledger_id, len(events), first_seq,
        )

    def record(
        self,
        ledger_id: str,
        state: VestingLedgerState,
        events: Sequence[ReleaseEvent] = (),
    ) -> None:
        """Write the ledger row and new release events in one transaction."""
        with self.SessionLocal() as session:
            self._write_state(session, ledger_id, state)
            if events:
                self._write_events(session, ledger_id, events)
            session.commit()

        logger.debug(
            "Ledger mutation recorded: id=%s status=%s released=%s events=%d",
            ledger_id, state.status.value, state.total_released, len(events),
        )

    def revert(
        self,
        ledger_id: str,
        previous_state: VestingLedgerState,
        events: Sequence[ReleaseEvent] = (),
    ) -> None:
        """
        Undo the latest ``record`` in one transaction.

        Restores ``previous_state`` and deletes the ``len(events)`` most
        recent release events of the ledger.
        """
        with self.SessionLocal() as session:
            self._write_state(session, ledger_id, previous_state)
            if events:
                sequence_numbers = session.execute(
                    select(ReleaseEventDB.sequence_number)
                    .where(ReleaseEventDB.ledger_id == ledger_id)
                    .order_by(ReleaseEventDB.sequence_number.desc())
                    .limit(len(events))
                ).scalars().all()
                session.execute(
                    delete(ReleaseEventDB)
                    .where(ReleaseEventDB.ledger_id == ledger_id)
                    .where(ReleaseEventDB.sequence_number.in_(sequence_numbers))
                )
            session.commit()

        logger.warning(
            "Ledger mutation reverted: id=%s released=%s dropped_events=%d",
            ledger_id, previous_state.total_released, len(events),
        )

    def load(
        self,
        ledger_id: str,
    ) -> tuple[VestingLedgerState, tuple[ReleaseEvent, ...]] | None:
        """
        Load a ledger's state and event log.

        Returns:
            Tuple of (state, events), or None if the ledger is unknown.
        """
        with self.SessionLocal() as session:
            row = session.get(VestingLedgerDB, ledger_id)
            if row is None:
                return None

            tranches = session.execute(
                select(TrancheDB)
                .where(TrancheDB.ledger_id == ledger_id)
                .order_by(TrancheDB.tranche_index.asc())
            ).scalars().all()
            event_rows = session.execute(
                select(ReleaseEventDB)
                .where(ReleaseEventDB.ledger_id == ledger_id)
                .order_by(ReleaseEventDB.sequence_number.asc())
            ).scalars().all()

            state = VestingLedgerState(
                status=LedgerStatus(row.status),
                global_start_time=row.global_start_time,
                beneficiary=row.beneficiary,
                total_released=int(row.total_released),
                schedule=tuple(
                    Tranche(
                        index=t.tranche_index,
                        total_amount=int(t.total_amount),
                        start_time=t.start_time,
                        duration=t.duration,
                    )
                    for t in tranches
                ),
            )
            events = tuple(
                ReleaseEvent(
                    beneficiary=e.beneficiary,
                    amount=int(e.amount),
                    timestamp=e.timestamp,
                )
                for e in event_rows
            )
            return state, events

    def get_event_count(self, ledger_id: str) -> int:
        with self.SessionLocal() as session:
            result = session.execute(
                select(func.count())
                .select_from(ReleaseEventDB)
                .where(ReleaseEventDB.ledger_id == ledger_id)
            )
            return result.scalar() or 0

    def journal(self, ledger_id: str) -> RepositoryJournal:
        """Build a write-ahead journal for one ledger."""
        return RepositoryJournal(self, ledger_id)

    # ── Internal ────────────────────────────────────────────────

    def _write_state(self, session: Session, ledger_id: str, state: VestingLedgerState) -> None:
        row = session.get(VestingLedgerDB, ledger_id)
        if row is None:
            row = VestingLedgerDB(ledger_id=ledger_id)
            session.add(row)

        row.status = state.status.value
        row.global_start_time = state.global_start_time
        row.beneficiary = state.beneficiary
        row.total_released = str(state.total_released)

        stored_tranches = session.execute(
            select(func.count())
            .select_from(TrancheDB)
            .where(TrancheDB.ledger_id == ledger_id)
        ).scalar() or 0
        if state.schedule and stored_tranches == 0:
            session.flush()
            for tranche in state.schedule:
                session.add(
                    TrancheDB(
                        ledger_id=ledger_id,
                        tranche_index=tranche.index,
                        total_amount=str(tranche.total_amount),
                        start_time=tranche.start_time,
                        duration=tranche.duration,
                    )
                )

    def _write_events(
        self,
        session: Session,
        ledger_id: str,
        events: Sequence[ReleaseEvent],
    ) -> int:
        """Stage ``events`` and return the first sequence number used."""
        last_seq = session.execute(
            select(func.max(ReleaseEventDB.sequence_number))
            .where(ReleaseEventDB.ledger_id == ledger_id)
        ).scalar()
        next_seq = 0 if last_seq is None else last_seq + 1

        for offset, event in enumerate(events):
            session.add(
                ReleaseEventDB(
                    ledger_id=ledger_id,
                    sequence_number=next_seq + offset,
                    beneficiary=event.beneficiary,
                    amount=str(event.amount),
                    timestamp=event.timestamp,
                )
            )
        return next_seq


class RepositoryJournal:
    """``LedgerJournal`` backed by a ``LedgerRepository``."""

    def __init__(self, repository: LedgerRepository, ledger_id: str) -> None:
        self.repository = repository
        self.ledger_id = ledger_id

    def write(self, state: VestingLedgerState, new_events: tuple[ReleaseEvent, ...]) -> None:
        self.repository.record(self.ledger_id, state, new_events)

    def revert(self, previous_state: VestingLedgerState, new_events: tuple[ReleaseEvent, ...]) -> None:
        self.repository.revert(self.ledger_id, previous_state, new_events)
