"""
Owner Access Control — the capability check in front of admin operations.

The vesting core never checks who is calling. This module holds the owner
identity and answers the question "may this caller run an administrative
operation?" before the service forwards the call to the ledger.

Administrative operations: initialize, pause, unpause, set beneficiary,
withdraw. Release is open to any caller.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum

from vestledger.vesting.errors import NotOwner

logger = logging.getLogger(__name__)


class AccessDecision(str, Enum):
    """Result of an ownership check."""

    AUTHORIZED = "authorized"
    FORBIDDEN = "forbidden"


@dataclass
class AccessCheckResult:
    """Result of checking a caller against the current owner."""

    decision: AccessDecision
    caller: str
    owner: str
    reason: str

    @property
    def is_allowed(self) -> bool:
        return self.decision == AccessDecision.AUTHORIZED


class OwnerGuard:
    """
    Single-owner capability check.

    Usage:
        guard = OwnerGuard(owner="owner")
        guard.require_owner(caller)   # raises NotOwner otherwise
    """

    def __init__(self, owner: str) -> None:
        if not owner:
            raise ValueError("Owner identity must not be empty")
        self._owner = owner
        self._lock = threading.Lock()

    @property
    def owner(self) -> str:
        return self._owner

    def check(self, caller: str | None) -> AccessCheckResult:
        """Check ``caller`` without raising."""
        owner = self._owner
        if caller and caller == owner:
            return AccessCheckResult(
                decision=AccessDecision.AUTHORIZED,
                caller=caller,
                owner=owner,
                reason="Caller is the owner",
            )
        return AccessCheckResult(
            decision=AccessDecision.FORBIDDEN,
            caller=caller or "",
            owner=owner,
            reason=f"Caller {caller!r} is not the owner",
        )

    def require_owner(self, caller: str | None) -> None:
        """
        Raises:
            NotOwner: If ``caller`` is not the current owner.
        """
        result = self.check(caller)
        if not result.is_allowed:
            logger.warning("Owner check failed: %s", result.reason)
            raise NotOwner(f"Ownable: caller {caller!r} is not the owner")

    def transfer_ownership(self, caller: str | None, new_owner: str) -> None:
        """Hand ownership to ``new_owner``. Only the current owner may do this."""
        with self._lock:
            self.require_owner(caller)
            if not new_owner:
                raise ValueError("New owner identity must not be empty")
            previous, self._owner = self._owner, new_owner
        logger.info("Ownership transferred: %s -> %s", previous, new_owner)
