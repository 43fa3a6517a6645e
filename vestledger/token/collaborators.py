"""
Token ledger collaborator — the fungible-token side of a vesting ledger.

The vesting core only ever asks the token ledger to move units out of its
own account and to report a balance. ``InMemoryTokenLedger`` is a minimal
reference implementation: a balance table with mint and transfer, where a
transfer exceeding the sender's balance fails without moving anything.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

logger = logging.getLogger(__name__)


class TokenLedger(Protocol):
    """Interface the vesting core requires from a token ledger."""

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` units; return False if the transfer was refused."""
        ...

    def balance_of(self, holder: str) -> int: ...


class InMemoryTokenLedger:
    """
    Balance table for a single fungible token.

    Usage:
        token = InMemoryTokenLedger(symbol="TBT", decimals=18)
        token.mint("owner", 100_000_000 * 10**18)
        token.transfer("owner", "vesting-ledger", token.balance_of("owner"))
    """

    def __init__(self, symbol: str = "TBT", decimals: int = 18) -> None:
        self.symbol = symbol
        self.decimals = decimals
        self._balances: dict[str, int] = {}
        self._total_supply = 0
        self._lock = threading.Lock()

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def mint(self, holder: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Cannot mint a negative amount: {amount}")
        with self._lock:
            self._balances[holder] = self._balances.get(holder, 0) + amount
            self._total_supply += amount
        logger.info("Minted %s %s to %s", amount, self.symbol, holder)

    def balance_of(self, holder: str) -> int:
        return self._balances.get(holder, 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError(f"Cannot transfer a negative amount: {amount}")
        with self._lock:
            balance = self._balances.get(sender, 0)
            if amount > balance:
                logger.warning(
                    "Transfer refused: %s holds %s %s, asked to send %s",
                    sender, balance, self.symbol, amount,
                )
                return False
            self._balances[sender] = balance - amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount
        logger.debug("Transferred %s %s from %s to %s", amount, self.symbol, sender, recipient)
        return True
