"""
Vesting Service — wires the ledger to its collaborators.

The service is the surface used by the CLI and the HTTP API:

- owner-checked administrative operations (initialize, pause, unpause,
  set beneficiary, withdraw, transfer ownership)
- release, open to any caller
- the read-only queries
- optional write-ahead persistence of every mutation

Usage:
    service = VestingService.from_settings(token=token, clock=clock)
    service.initialize(caller="owner", start_time=t0, beneficiary="alice")
    service.release()
    info = service.get_release_info()
"""

from __future__ import annotations

import logging
from typing import Any

from vestledger.config import VestingSettings, settings as default_settings
from vestledger.governance.permissions import OwnerGuard
from vestledger.storage.repository import LedgerRepository
from vestledger.token.collaborators import InMemoryTokenLedger, TokenLedger
from vestledger.vesting.clock import Clock
from vestledger.vesting.ledger import VestingLedger
from vestledger.vesting.queries import VestingQueries
from vestledger.vesting.schema import (
    LedgerStatus,
    ReleaseEvent,
    ReleaseInfo,
    Tranche,
    VestingLedgerState,
)

logger = logging.getLogger(__name__)


class VestingService:
    """Owner-gated facade over one vesting ledger."""

    def __init__(
        self,
        ledger: VestingLedger,
        guard: OwnerGuard,
        repository: LedgerRepository | None = None,
        ledger_id: str = "default",
    ) -> None:
        self.ledger = ledger
        self.queries = VestingQueries(ledger)
        self.guard = guard
        self.repository = repository
        self.ledger_id = ledger_id

        if repository is not None:
            ledger.journal = repository.journal(ledger_id)

    @classmethod
    def from_settings(
        cls,
        config: VestingSettings | None = None,
        token: TokenLedger | None = None,
        clock: Clock | None = None,
        persist: bool = True,
    ) -> VestingService:
        """
        Build a service from settings, restoring persisted state if present.

        Args:
            config: Settings to use. Defaults to the module-level settings.
            token: Token ledger. Defaults to an empty in-memory ledger.
            clock: Clock. Defaults to wall time.
            persist: Attach a repository at ``config.database_url``.
        """
        config = config or default_settings
        if token is None:
            token = InMemoryTokenLedger(symbol=config.token_symbol, decimals=config.token_decimals)

        ledger_kwargs: dict[str, Any] = {
            "token": token,
            "account": config.ledger_account,
            "owner_account": config.owner_account,
            "total_vesting_pool": config.total_vesting_pool,
            "tranche_config": config.tranches,
            "clock": clock,
        }

        repository = None
        ledger = None
        if persist:
            repository = LedgerRepository(config.database_url)
            repository.initialize()
            stored = repository.load(config.ledger_id)
            if stored is not None:
                state, events = stored
                ledger = VestingLedger.restore(state, events, **ledger_kwargs)

        if ledger is None:
            ledger = VestingLedger(**ledger_kwargs)
            if repository is not None:
                repository.save_state(config.ledger_id, ledger.state)

        return cls(
            ledger=ledger,
            guard=OwnerGuard(config.owner_account),
            repository=repository,
            ledger_id=config.ledger_id,
        )

    # ── Administrative operations (owner only) ──────────────────

    def initialize(self, caller: str, start_time: int, beneficiary: str) -> VestingLedgerState:
        self.guard.require_owner(caller)
        return self.ledger.initialize(start_time, beneficiary)

    def pause(self, caller: str) -> VestingLedgerState:
        self.guard.require_owner(caller)
        return self.ledger.pause()

    def unpause(self, caller: str) -> VestingLedgerState:
        self.guard.require_owner(caller)
        return self.ledger.unpause()

    def set_beneficiary(self, caller: str, new_beneficiary: str) -> VestingLedgerState:
        self.guard.require_owner(caller)
        return self.ledger.set_beneficiary(new_beneficiary)

    def withdraw(self, caller: str, amount: int) -> int:
        self.guard.require_owner(caller)
        return self.ledger.withdraw(amount)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """
        Hand over ownership; withdrawals follow the new owner.

        Ownership is not persisted. A service rebuilt with ``from_settings``
        starts again with ``settings.owner_account`` as the owner.
        """
        self.guard.transfer_ownership(caller, new_owner)
        self.ledger.set_owner_account(new_owner)

    # ── Open operations ─────────────────────────────────────────

    def release(self) -> ReleaseEvent | None:
        return self.ledger.release()

    # ── Queries ─────────────────────────────────────────────────

    def get_releasable_amount(self, at: int | None = None) -> int:
        return self.queries.get_releasable_amount(at)

    def get_release_info(self, at: int | None = None) -> ReleaseInfo:
        return self.queries.get_release_info(at)

    def get_daily_releasable_amount(self, at: int | None = None) -> int:
        return self.queries.get_daily_releasable_amount(at)

    def get_schedule(self) -> tuple[Tranche, ...]:
        return self.ledger.state.schedule

    def get_withdrawable_amount(self) -> int:
        return self.queries.get_withdrawable_amount()

    def get_status(self) -> LedgerStatus:
        return self.queries.get_status()

    def get_release_events(self) -> tuple[ReleaseEvent, ...]:
        return self.queries.get_release_events()

    def describe(self) -> dict[str, Any]:
        """Plain summary of the ledger, for display."""
        state = self.ledger.state
        return {
            "ledger_id": self.ledger_id,
            "status": state.status.value,
            "owner": self.guard.owner,
            "beneficiary": state.beneficiary,
            "start_time": self.queries.get_start_time(),
            "total_vesting_pool": state.total_vesting_pool,
            "total_released": state.total_released,
            "tranches": len(state.schedule),
            "token_balance": self.queries.get_token_balance(),
            "withdrawable": self.queries.get_withdrawable_amount(),
        }
