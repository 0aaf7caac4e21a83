"""
One-loan-per-borrower tracking.

Each borrower may hold at most one active loan. The slot stores the asset id
being borrowed; a borrower without an entry is not borrowing, which keeps
"no loan" distinct from "borrowing asset 0".
"""

from __future__ import annotations

import logging
from typing import Optional

from ..lending_exceptions import AlreadyBorrowingError
from .storage import LendingStorage

logger = logging.getLogger(__name__)


class BorrowerSlots:
    """Borrower loan-limit tracker backed by ``LendingStorage.borrower_slots``."""

    def __init__(self, storage: LendingStorage) -> None:
        self.storage = storage

    def is_borrowing(self, borrower: str) -> bool:
        return borrower in self.storage.borrower_slots

    def borrowed_asset(self, borrower: str) -> Optional[int]:
        return self.storage.borrower_slots.get(borrower)

    def add_borrower_slot(self, borrower: str, asset_id: int) -> None:
        """
        Record that borrower now holds asset_id.

        Raises:
            AlreadyBorrowingError: If the borrower already holds a loan
        """
        current = self.storage.borrower_slots.get(borrower)
        if current is not None:
            raise AlreadyBorrowingError(
                f"Borrower {borrower} is already borrowing asset {current}",
                details={"borrower": borrower, "asset_id": current},
            )
        self.storage.journal.set_item(self.storage.borrower_slots, borrower, asset_id)

    def release_borrower_slot(self, borrower: Optional[str], asset_id: int) -> bool:
        """
        Free the borrower's slot if it records asset_id.

        Loans agreed before slots were tracked have no entry (or an entry for
        another asset); those are left untouched.
        """
        if borrower is None or self.storage.borrower_slots.get(borrower) != asset_id:
            logger.debug(
                "Borrower slot not released",
                extra={"event": "lending.slot_mismatch", "borrower": (borrower or "")[:10], "asset_id": asset_id},
            )
            return False
        self.storage.journal.pop_item(self.storage.borrower_slots, borrower)
        return True
