"""
Clock collaborators — the source of "now" for a vesting ledger.

The ledger only needs ``now() -> int``. ``SystemClock`` reads wall time;
``ManualClock`` is set and advanced explicitly, for simulations and tests.
"""

from __future__ import annotations

import time
from typing import Callable, Protocol


class Clock(Protocol):
    """Anything that reports the current Unix timestamp in whole seconds."""

    def now(self) -> int: ...


class SystemClock:
    """Wall-clock time, optionally via an injected time provider."""

    def __init__(self, time_provider: Callable[[], float] | None = None) -> None:
        self._time_provider = time_provider or time.time

    def now(self) -> int:
        timestamp = self._time_provider()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return a numeric timestamp") from exc


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: int = 0) -> None:
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> None:
        self._now = timestamp

    def advance(self, seconds: int) -> int:
        self._now += seconds
        return self._now
