"""Exceptions raised by the vesting core and its collaborators."""

from __future__ import annotations


class VestingError(Exception):
    """Base class for every refused vesting operation."""
    pass


class AlreadyInitialized(VestingError):
    """Raised when initialize() is called on an initialized ledger."""
    pass


class NotInitialized(VestingError):
    """Raised when an operation needs a schedule that does not exist yet."""
    pass


class NotActive(VestingError):
    """Raised when an operation requires an active, non-paused schedule."""
    pass


class InvalidPauseTransition(VestingError):
    """Raised on pause() while not active, or unpause() while not paused."""
    pass


class NotPaused(VestingError):
    """Raised when withdraw() is attempted while vesting is active."""
    pass


class InsufficientWithdrawable(VestingError):
    """Raised when a withdrawal would dip into tokens owed to the beneficiary."""
    pass


class TransferFailed(VestingError):
    """Raised when the token ledger refuses or fails a transfer."""
    pass


class InvalidAmount(VestingError):
    """Raised for non-positive withdrawal amounts."""
    pass


class InvalidBeneficiary(VestingError):
    """Raised for an empty beneficiary identity."""
    pass


class ClockRegression(VestingError):
    """Raised when the clock reports a time earlier than one already observed."""
    pass


class NotOwner(VestingError):
    """Raised when a non-owner invokes an administrative operation."""
    pass


class ScheduleConfigError(VestingError, ValueError):
    """Raised when a tranche configuration table cannot produce a valid schedule."""
    pass


class PersistenceError(VestingError):
    """Raised when the ledger journal cannot durably record or revert a mutation."""
    pass
