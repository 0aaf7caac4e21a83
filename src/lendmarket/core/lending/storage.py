"""
Listing store for the lending engine.

One LendingStorage instance holds every piece of lending state, partitioned
by concern:
- listings: canonical records keyed by monotonic listing id
- asset_to_listing: the current non-terminal listing of each asset
- listing_heads / owner_listing_heads: head pointers of the global and
  per-owner chains, per status bucket
- listing_nodes / owner_listing_nodes: intrusive list nodes keyed by
  (status, listing_id)
- borrower_slots: the asset each borrower currently holds
- lent_assets: assets each lender currently has lent out
- revenue_token_allow_list: tokens a listing may name as revenue tokens
- access_rights: (asset_id, action) -> permission value

Every write goes through ``journal`` so an engine transaction can undo it.
The store supports ``save()/load()`` for JSON persistence.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..constants import FIRST_LISTING_ID
from ..journal import UndoJournal
from ..lending_exceptions import NotFoundError
from .models import ListNode, Listing, ListingState, ListingStatus

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1


@dataclass
class LendingStorage:
    """Process-wide lending state shared by every engine component."""

    listings: dict[int, Listing] = field(default_factory=dict)
    next_listing_id: int = FIRST_LISTING_ID
    asset_to_listing: dict[int, int] = field(default_factory=dict)

    listing_heads: dict[ListingStatus, int] = field(default_factory=dict)
    owner_listing_heads: dict[tuple[str, ListingStatus], int] = field(default_factory=dict)
    listing_nodes: dict[tuple[ListingStatus, int], ListNode] = field(default_factory=dict)
    owner_listing_nodes: dict[tuple[ListingStatus, int], ListNode] = field(default_factory=dict)

    borrower_slots: dict[str, int] = field(default_factory=dict)
    lent_assets: dict[str, set[int]] = field(default_factory=dict)
    revenue_token_allow_list: set[str] = field(default_factory=set)
    access_rights: dict[tuple[int, int], int] = field(default_factory=dict)

    journal: UndoJournal = field(default_factory=UndoJournal, repr=False, compare=False)

    # ==================== Listings ====================

    def allocate_listing_id(self) -> int:
        listing_id = self.next_listing_id
        self.journal.set_attr(self, "next_listing_id", listing_id + 1)
        return listing_id

    def add_listing(self, listing: Listing) -> None:
        """Write a new listing and make it the asset's current listing."""
        self.journal.set_item(self.listings, listing.listing_id, listing)
        self.journal.set_item(self.asset_to_listing, listing.asset_id, listing.listing_id)

    def clear_asset_listing(self, asset_id: int) -> None:
        self.journal.pop_item(self.asset_to_listing, asset_id)

    def get_listing(self, listing_id: int) -> Listing:
        """
        Get a listing by id.

        Raises:
            NotFoundError: If no listing was ever created with this id
        """
        listing = self.listings.get(listing_id)
        if listing is None or listing.time_created == 0:
            raise NotFoundError(
                f"Listing {listing_id} not found", details={"listing_id": listing_id}
            )
        return listing

    def get_listing_id_by_asset(self, asset_id: int) -> int:
        """
        Get the current listing id of an asset.

        Raises:
            NotFoundError: If the asset has no current listing
        """
        listing_id = self.asset_to_listing.get(asset_id, 0)
        if not listing_id:
            raise NotFoundError(
                f"Asset {asset_id} has no active listing", details={"asset_id": asset_id}
            )
        return listing_id

    def current_listing(self, asset_id: int) -> Optional[Listing]:
        listing_id = self.asset_to_listing.get(asset_id, 0)
        return self.listings.get(listing_id) if listing_id else None

    def is_listed(self, asset_id: int) -> bool:
        listing = self.current_listing(asset_id)
        return listing is not None and listing.state is ListingState.OPEN

    def is_actively_lent(self, asset_id: int) -> bool:
        listing = self.current_listing(asset_id)
        return listing is not None and listing.state is ListingState.MATCHED_ACTIVE

    # ==================== Lent assets ====================

    def add_lent_asset(self, lender: str, asset_id: int) -> None:
        if lender not in self.lent_assets:
            self.journal.set_item(self.lent_assets, lender, set())
        self.journal.add_member(self.lent_assets[lender], asset_id)

    def remove_lent_asset(self, lender: str, asset_id: int) -> None:
        assets = self.lent_assets.get(lender)
        if assets is None:
            return
        self.journal.discard_member(assets, asset_id)
        if not assets:
            self.journal.pop_item(self.lent_assets, lender)

    # ==================== Administration ====================

    def allow_revenue_token(self, token: str) -> None:
        self.journal.add_member(self.revenue_token_allow_list, token)

    def disallow_revenue_token(self, token: str) -> None:
        self.journal.discard_member(self.revenue_token_allow_list, token)

    def set_access_right(self, asset_id: int, action: int, value: int) -> None:
        self.journal.set_item(self.access_rights, (asset_id, action), value)

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        def nodes(table: dict[tuple[ListingStatus, int], ListNode]) -> list[Dict[str, Any]]:
            return [
                {
                    "status": status.value,
                    "listing_id": node.listing_id,
                    "parent_listing_id": node.parent_listing_id,
                    "child_listing_id": node.child_listing_id,
                }
                for (status, _), node in sorted(table.items(), key=lambda item: (item[0][0].value, item[0][1]))
                if node.is_linked
            ]

        return {
            "version": STATE_FORMAT_VERSION,
            "next_listing_id": self.next_listing_id,
            "listings": [listing.to_dict() for _, listing in sorted(self.listings.items())],
            "asset_to_listing": {str(k): v for k, v in self.asset_to_listing.items()},
            "listing_heads": {status.value: head for status, head in self.listing_heads.items()},
            "owner_listing_heads": [
                {"owner": owner, "status": status.value, "head": head}
                for (owner, status), head in sorted(
                    self.owner_listing_heads.items(), key=lambda item: (item[0][0], item[0][1].value)
                )
            ],
            "listing_nodes": nodes(self.listing_nodes),
            "owner_listing_nodes": nodes(self.owner_listing_nodes),
            "borrower_slots": dict(self.borrower_slots),
            "lent_assets": {lender: sorted(ids) for lender, ids in self.lent_assets.items()},
            "revenue_token_allow_list": sorted(self.revenue_token_allow_list),
            "access_rights": [
                {"asset_id": asset_id, "action": action, "value": value}
                for (asset_id, action), value in sorted(self.access_rights.items())
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LendingStorage":
        version = data.get("version", STATE_FORMAT_VERSION)
        if version != STATE_FORMAT_VERSION:
            raise ValueError(f"Unsupported lending state version {version}")

        def nodes(entries: list[Dict[str, Any]]) -> dict[tuple[ListingStatus, int], ListNode]:
            table = {}
            for entry in entries:
                status = ListingStatus(entry["status"])
                table[(status, entry["listing_id"])] = ListNode(
                    listing_id=entry["listing_id"],
                    parent_listing_id=entry["parent_listing_id"],
                    child_listing_id=entry["child_listing_id"],
                )
            return table

        storage = cls(next_listing_id=data.get("next_listing_id", FIRST_LISTING_ID))
        for entry in data.get("listings", []):
            listing = Listing.from_dict(entry)
            storage.listings[listing.listing_id] = listing
        storage.asset_to_listing = {int(k): v for k, v in data.get("asset_to_listing", {}).items()}
        storage.listing_heads = {
            ListingStatus(status): head for status, head in data.get("listing_heads", {}).items()
        }
        storage.owner_listing_heads = {
            (entry["owner"], ListingStatus(entry["status"])): entry["head"]
            for entry in data.get("owner_listing_heads", [])
        }
        storage.listing_nodes = nodes(data.get("listing_nodes", []))
        storage.owner_listing_nodes = nodes(data.get("owner_listing_nodes", []))
        storage.borrower_slots = dict(data.get("borrower_slots", {}))
        storage.lent_assets = {
            lender: set(ids) for lender, ids in data.get("lent_assets", {}).items()
        }
        storage.revenue_token_allow_list = set(data.get("revenue_token_allow_list", []))
        storage.access_rights = {
            (entry["asset_id"], entry["action"]): entry["value"]
            for entry in data.get("access_rights", [])
        }
        return storage

    def save(self, path: str) -> None:
        """Write the store as JSON, replacing the file atomically."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, sort_keys=True)
        os.replace(tmp_path, target)

        logger.info(
            "Lending state saved",
            extra={"event": "lending.state_saved", "path": str(target), "listings": len(self.listings)},
        )

    @classmethod
    def load(cls, path: str) -> "LendingStorage":
        """Load a store saved with ``save``; a missing file yields an empty store."""
        if not os.path.exists(path):
            logger.info(
                "No lending state file, starting empty",
                extra={"event": "lending.state_missing", "path": path},
            )
            return cls()
        with open(path, "r", encoding="utf-8") as handle:
            return cls.from_dict(json.load(handle))
