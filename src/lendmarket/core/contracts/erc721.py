"""
ERC721 Non-Fungible Asset Registry.

Holds the unique assets that owners lend out. On top of the basic ERC721
operations (ownership, transferFrom, operator approvals) every asset carries
the data the lending engine relies on:
- a lock flag that blocks user transfers while the asset is listed or lent
- a lifecycle status (only active assets can be lent)
- the collateral token backing it and the address of its revenue escrow
- the lending operator: the lender that keeps rights over a lent asset

The lending engine moves assets through ``transfer`` and toggles locks and
lending operators directly; those calls bypass user approvals and are meant
for the marketplace contract only. A lending operator is scoped to a single
asset and never authorizes ``transfer_from``; it leaves the holder's
account-wide operator approvals untouched.

Security features:
- Owner verification on user transfers
- Locked assets cannot be transferred by users
- Zero address checks
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..constants import ZERO_ADDRESS
from ..journal import UndoJournal
from ..lending_exceptions import (
    AssetLockedError,
    NotFoundError,
    PermissionDeniedError,
    TransferFailureError,
)

logger = logging.getLogger(__name__)


class AssetStatus(Enum):
    """Lifecycle status of an asset."""
    DORMANT = 0
    PENDING = 1
    ACTIVE = 2


# Only assets in these states can be listed for lending
LENDABLE_STATUSES = frozenset({AssetStatus.ACTIVE})


@dataclass
class ERC721Registry:
    """
    ERC721 asset registry with lending extensions.

    Implements ownership, transfers and operator approvals plus the
    lock/status/collateral/escrow bookkeeping used by the lending engine.
    """

    # Collection metadata
    name: str
    symbol: str

    # Contract address
    address: str = ""

    # Owner (for minting)
    owner: str = ""

    # Token state
    owners: dict[int, str] = field(default_factory=dict)  # tokenId -> owner
    operator_approvals: dict[str, dict[str, bool]] = field(
        default_factory=dict
    )  # owner -> operator -> approved

    # Lending extensions
    locked: set[int] = field(default_factory=set)
    statuses: dict[int, AssetStatus] = field(default_factory=dict)
    collateral: dict[int, str] = field(default_factory=dict)  # tokenId -> collateral token
    escrows: dict[int, str] = field(default_factory=dict)  # tokenId -> escrow address
    lending_operators: dict[int, str] = field(default_factory=dict)  # tokenId -> lender

    journal: UndoJournal = field(default_factory=UndoJournal, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Initialize asset contract."""
        if not self.address:
            addr_input = f"{self.name}{self.symbol}{time.time()}".encode()
            addr_hash = hashlib.sha3_256(addr_input).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.owner = self._normalize(self.owner)

    # ==================== View Functions ====================

    def owner_of(self, token_id: int) -> str:
        """
        Get the owner of an asset.

        Raises:
            NotFoundError: If the asset doesn't exist
        """
        owner = self.owners.get(token_id)
        if not owner:
            raise NotFoundError(f"ERC721: token {token_id} does not exist")
        return owner

    def status_of(self, token_id: int) -> AssetStatus:
        self._require_minted(token_id)
        return self.statuses[token_id]

    def is_locked(self, token_id: int) -> bool:
        self._require_minted(token_id)
        return token_id in self.locked

    def collateral_of(self, token_id: int) -> str:
        """Collateral token backing the asset (excluded from revenue splits)."""
        self._require_minted(token_id)
        return self.collateral.get(token_id, "")

    def escrow_of(self, token_id: int) -> str:
        """Address of the escrow account that collects the asset's revenue."""
        self._require_minted(token_id)
        escrow = self.escrows.get(token_id)
        if not escrow:
            raise NotFoundError(f"ERC721: token {token_id} has no escrow")
        return escrow

    def lending_operator_of(self, token_id: int) -> Optional[str]:
        """Lender holding operator rights over a lent asset, if any."""
        self._require_minted(token_id)
        return self.lending_operators.get(token_id)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        owner_norm = self._normalize(owner)
        operator_norm = self._normalize(operator)
        return self.operator_approvals.get(owner_norm, {}).get(operator_norm, False)

    # ==================== User Functions ====================

    def set_approval_for_all(
        self, caller: str, operator: str, approved: bool
    ) -> bool:
        """Set or revoke operator approval for all of caller's assets."""
        caller_norm = self._normalize(caller)
        operator_norm = self._normalize(operator)

        if operator_norm == caller_norm:
            raise PermissionDeniedError("ERC721: approve to caller")

        if caller_norm not in self.operator_approvals:
            self.journal.set_item(self.operator_approvals, caller_norm, {})
        self.journal.set_item(self.operator_approvals[caller_norm], operator_norm, approved)
        return True

    def transfer_from(
        self, caller: str, from_addr: str, to_addr: str, token_id: int
    ) -> bool:
        """
        User-initiated transfer.

        Only the owner or an account-wide operator may move the asset; a
        lending operator may not.

        Raises:
            AssetLockedError: If the asset is listed or lent
            PermissionDeniedError: If caller is neither owner nor operator
        """
        from_norm = self._normalize(from_addr)
        caller_norm = self._normalize(caller)

        owner = self.owner_of(token_id)
        if token_id in self.locked:
            raise AssetLockedError(f"ERC721: token {token_id} is locked")

        if caller_norm != owner and not self.is_approved_for_all(owner, caller_norm):
            raise PermissionDeniedError("ERC721: caller is not owner nor approved")

        self.transfer(from_norm, to_addr, token_id)
        return True

    # ==================== Marketplace Functions ====================

    def transfer(self, from_addr: str, to_addr: str, token_id: int) -> None:
        """
        Move an asset between accounts without approval checks.

        Raises:
            TransferFailureError: If from_addr is not the owner or to_addr is zero
        """
        from_norm = self._normalize(from_addr)
        to_norm = self._normalize(to_addr)

        owner = self.owner_of(token_id)
        if owner != from_norm:
            raise TransferFailureError(
                "ERC721: transfer from incorrect owner",
                details={"token_id": token_id, "owner": owner, "from": from_norm},
            )

        if to_norm == ZERO_ADDRESS or not to_norm:
            raise TransferFailureError("ERC721: transfer to zero address")

        self.journal.set_item(self.owners, token_id, to_norm)

        logger.debug(
            "ERC721 transfer",
            extra={
                "event": "erc721.transfer",
                "collection": self.symbol,
                "token_id": token_id,
                "from": from_norm[:10],
                "to": to_norm[:10],
            }
        )

    def set_locked(self, token_id: int, locked: bool) -> None:
        self._require_minted(token_id)
        if locked:
            self.journal.add_member(self.locked, token_id)
        else:
            self.journal.discard_member(self.locked, token_id)

    def set_lending_operator(self, token_id: int, operator: str) -> None:
        """Give the lender operator rights over this one asset."""
        self._require_minted(token_id)
        self.journal.set_item(self.lending_operators, token_id, self._normalize(operator))

    def clear_lending_operator(self, token_id: int) -> None:
        self.journal.pop_item(self.lending_operators, token_id)

    # ==================== Minting ====================

    def mint(
        self,
        minter: str,
        to: str,
        token_id: int,
        status: AssetStatus = AssetStatus.ACTIVE,
        collateral: str = "",
        escrow: str = "",
    ) -> int:
        """
        Mint a new asset.

        Args:
            minter: Address calling mint (must be owner)
            to: Recipient address
            token_id: Asset id (0 is a valid id)
            status: Initial lifecycle status
            collateral: Collateral token address
            escrow: Revenue escrow address

        Returns:
            Minted asset id
        """
        self._require_owner(minter)

        to_norm = self._normalize(to)
        if to_norm == ZERO_ADDRESS or not to_norm:
            raise TransferFailureError("ERC721: mint to zero address")
        if token_id in self.owners:
            raise TransferFailureError(f"ERC721: token {token_id} already minted")

        self.journal.set_item(self.owners, token_id, to_norm)
        self.journal.set_item(self.statuses, token_id, status)
        if collateral:
            self.journal.set_item(self.collateral, token_id, collateral.lower())
        if escrow:
            self.journal.set_item(self.escrows, token_id, escrow.lower())

        logger.info(
            "ERC721 mint",
            extra={
                "event": "erc721.mint",
                "collection": self.symbol,
                "token_id": token_id,
                "to": to_norm[:10],
                "status": status.name,
            }
        )

        return token_id

    def set_status(self, caller: str, token_id: int, status: AssetStatus) -> None:
        self._require_owner(caller)
        self._require_minted(token_id)
        self.journal.set_item(self.statuses, token_id, status)

    # ==================== Helpers ====================

    def _normalize(self, address: str) -> str:
        """Normalize address to lowercase."""
        return address.lower()

    def _require_minted(self, token_id: int) -> None:
        if token_id not in self.owners:
            raise NotFoundError(f"ERC721: token {token_id} does not exist")

    def _require_owner(self, caller: str) -> None:
        if self._normalize(caller) != self.owner:
            raise PermissionDeniedError("ERC721: caller is not contract owner")
