"""
Dual intrusive list index over listings.

For each status bucket ("listed", "agreed") there is one global chain and
one chain per owner. Both are doubly linked through ListNode records keyed
by (status, listing_id), so inserting at the head and removing from any
position are O(1). The two chains are always updated together.

Walking a chain starts at its head and follows ``child_listing_id``, which
yields listings from newest to oldest.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from ..constants import UNLINKED_LISTING_ID
from .models import ListNode, ListingStatus
from .storage import LendingStorage

logger = logging.getLogger(__name__)


class ListingIndex:
    """Maintains the global and per-owner chains inside a LendingStorage."""

    def __init__(self, storage: LendingStorage) -> None:
        self.storage = storage

    def insert_at_head(self, owner: str, listing_id: int, status: ListingStatus) -> None:
        """Splice a listing in front of both the global and the owner chain."""
        storage = self.storage
        self._insert(storage.listing_nodes, storage.listing_heads, status, status, listing_id)
        self._insert(
            storage.owner_listing_nodes,
            storage.owner_listing_heads,
            (owner, status),
            status,
            listing_id,
        )

    def remove(self, owner: str, listing_id: int, status: ListingStatus) -> None:
        """Splice a listing out of both chains; unlinked listings are ignored."""
        storage = self.storage
        self._remove(storage.listing_nodes, storage.listing_heads, status, status, listing_id)
        self._remove(
            storage.owner_listing_nodes,
            storage.owner_listing_heads,
            (owner, status),
            status,
            listing_id,
        )

    def is_indexed(self, listing_id: int, status: ListingStatus) -> bool:
        return self._node(self.storage.listing_nodes, status, listing_id).is_linked

    def iter_listing_ids(
        self, status: ListingStatus, owner: Optional[str] = None
    ) -> Iterator[int]:
        """Yield listing ids of a chain from head to tail."""
        if owner is None:
            nodes = self.storage.listing_nodes
            current = self.storage.listing_heads.get(status, UNLINKED_LISTING_ID)
        else:
            nodes = self.storage.owner_listing_nodes
            current = self.storage.owner_listing_heads.get((owner, status), UNLINKED_LISTING_ID)

        while current != UNLINKED_LISTING_ID:
            yield current
            current = self._node(nodes, status, current).child_listing_id

    def listing_ids(
        self,
        status: ListingStatus,
        owner: Optional[str] = None,
        length: Optional[int] = None,
    ) -> list[int]:
        """Up to ``length`` listing ids of a chain, newest first."""
        ids = []
        for listing_id in self.iter_listing_ids(status, owner):
            if length is not None and len(ids) >= length:
                break
            ids.append(listing_id)
        return ids

    # ==================== Chain primitives ====================

    @staticmethod
    def _node(nodes: dict, status: ListingStatus, listing_id: int) -> ListNode:
        return nodes.get((status, listing_id)) or ListNode()

    def _insert(self, nodes: dict, heads: dict, head_key, status: ListingStatus, listing_id: int) -> None:
        journal = self.storage.journal
        node = ListNode(listing_id=listing_id)
        head_id = heads.get(head_key, UNLINKED_LISTING_ID)
        if head_id != UNLINKED_LISTING_ID:
            journal.set_attr(nodes[(status, head_id)], "parent_listing_id", listing_id)
            node.child_listing_id = head_id
        journal.set_item(nodes, (status, listing_id), node)
        journal.set_item(heads, head_key, listing_id)

    def _remove(self, nodes: dict, heads: dict, head_key, status: ListingStatus, listing_id: int) -> None:
        journal = self.storage.journal
        node = self._node(nodes, status, listing_id)
        if not node.is_linked:
            return

        if node.parent_listing_id != UNLINKED_LISTING_ID:
            journal.set_attr(nodes[(status, node.parent_listing_id)], "child_listing_id", node.child_listing_id)
        if node.child_listing_id != UNLINKED_LISTING_ID:
            journal.set_attr(nodes[(status, node.child_listing_id)], "parent_listing_id", node.parent_listing_id)

        if heads.get(head_key) == listing_id:
            if node.child_listing_id == UNLINKED_LISTING_ID:
                journal.pop_item(heads, head_key)
            else:
                journal.set_item(heads, head_key, node.child_listing_id)

        # Missing key reads back as the unlinked sentinel
        journal.pop_item(nodes, (status, listing_id))
