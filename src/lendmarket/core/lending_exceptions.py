"""
Lending-specific exception hierarchy for LendMarket.

Every failure raised by the lending engine or its contract collaborators is
a subclass of LendingError, so callers can catch the whole family while
still branching on the precise reason. A raised error always means the
operation (and any enclosing batch) was rolled back.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class LendingError(Exception):
    """Base exception for all lending-related errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried
    """

    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Lookup Errors ====================


class NotFoundError(LendingError):
    """Raised when a listing, asset, token or allow list does not exist."""
    pass


# ==================== Validation Errors ====================


class InvalidParametersError(LendingError):
    """Raised when listing parameters break the lending rules.

    Examples: period out of range, split not summing to 100, too many
    revenue tokens, third-party share without a third party.
    """
    pass


class ParameterMismatchError(InvalidParametersError):
    """Raised when the terms echoed by a borrower differ from the stored listing."""
    pass


# ==================== Permission Errors ====================


class PermissionDeniedError(LendingError):
    """Raised when the caller is not allowed to perform the operation."""
    pass


class NotOwnerError(PermissionDeniedError):
    """Raised when the caller does not own the asset."""
    pass


class SelfMatchError(PermissionDeniedError):
    """Raised when a lender tries to borrow their own listing."""
    pass


class NotWhitelistedError(PermissionDeniedError):
    """Raised when the caller is not a member of the listing's allow list."""
    pass


# ==================== State Transition Errors ====================


class IllegalStateTransitionError(LendingError):
    """Raised when a listing or asset is in the wrong state for the operation."""
    pass


class AlreadyMatchedError(IllegalStateTransitionError):
    """Raised when a listing has already been agreed by a borrower."""
    pass


class ListingCanceledError(IllegalStateTransitionError):
    """Raised when acting on a canceled listing."""
    pass


class AssetLockedError(IllegalStateTransitionError):
    """Raised when an asset is locked by another operation."""
    pass


class AlreadyBorrowingError(IllegalStateTransitionError):
    """Raised when a borrower already holds an active loan."""
    pass


class LoanPeriodNotElapsedError(IllegalStateTransitionError):
    """Raised when a lender ends a loan before its period is over."""
    pass


# ==================== Transfer Errors ====================


class TransferFailureError(LendingError):
    """Raised when an underlying token or asset transfer is rejected."""
    recoverable = True  # Caller can top up balance/allowance and retry


class NotImplementedOperationError(LendingError):
    """Raised by lending flows that exist as placeholders only."""
    pass


__all__ = [
    "LendingError",
    "NotFoundError",
    "InvalidParametersError",
    "ParameterMismatchError",
    "PermissionDeniedError",
    "NotOwnerError",
    "SelfMatchError",
    "NotWhitelistedError",
    "IllegalStateTransitionError",
    "AlreadyMatchedError",
    "ListingCanceledError",
    "AssetLockedError",
    "AlreadyBorrowingError",
    "LoanPeriodNotElapsedError",
    "TransferFailureError",
    "NotImplementedOperationError",
]
