"""
Unit tests for the dual intrusive listing index.

Coverage targets:
- Global and per-owner chains are walked newest first
- Removal from head, middle and tail keeps links consistent
- Removing an unlinked listing is a no-op
"""

import pytest

from lendmarket.core.lending import ListingIndex, ListingStatus, LendingStorage, ListNode

ALICE = "0x" + "1" * 40
BOB = "0x" + "2" * 40


def assert_chain_consistent(index, status, owner=None):
    """Every node's neighbours point back at it and the head has no parent."""
    storage = index.storage
    nodes = storage.listing_nodes if owner is None else storage.owner_listing_nodes
    ids = index.listing_ids(status, owner=owner)
    for position, listing_id in enumerate(ids):
        node = nodes[(status, listing_id)]
        expected_parent = ids[position - 1] if position else 0
        expected_child = ids[position + 1] if position + 1 < len(ids) else 0
        assert node.parent_listing_id == expected_parent
        assert node.child_listing_id == expected_child


class TestListingIndex:

    @pytest.fixture
    def index(self):
        return ListingIndex(LendingStorage())

    @pytest.fixture
    def populated(self, index):
        index.insert_at_head(ALICE, 1, ListingStatus.LISTED)
        index.insert_at_head(BOB, 2, ListingStatus.LISTED)
        index.insert_at_head(ALICE, 3, ListingStatus.LISTED)
        index.insert_at_head(ALICE, 4, ListingStatus.LISTED)
        return index

    def test_empty_chain(self, index):
        assert index.listing_ids(ListingStatus.LISTED) == []
        assert index.listing_ids(ListingStatus.AGREED, owner=ALICE) == []

    def test_newest_first(self, populated):
        assert populated.listing_ids(ListingStatus.LISTED) == [4, 3, 2, 1]
        assert populated.listing_ids(ListingStatus.LISTED, owner=ALICE) == [4, 3, 1]
        assert populated.listing_ids(ListingStatus.LISTED, owner=BOB) == [2]

    def test_length_limits_results(self, populated):
        assert populated.listing_ids(ListingStatus.LISTED, length=2) == [4, 3]
        assert populated.listing_ids(ListingStatus.LISTED, length=0) == []
        assert populated.listing_ids(ListingStatus.LISTED, owner=ALICE, length=10) == [4, 3, 1]

    def test_remove_middle(self, populated):
        populated.remove(ALICE, 3, ListingStatus.LISTED)

        assert populated.listing_ids(ListingStatus.LISTED) == [4, 2, 1]
        assert populated.listing_ids(ListingStatus.LISTED, owner=ALICE) == [4, 1]
        assert_chain_consistent(populated, ListingStatus.LISTED)
        assert_chain_consistent(populated, ListingStatus.LISTED, owner=ALICE)

    def test_remove_head_and_tail(self, populated):
        populated.remove(ALICE, 4, ListingStatus.LISTED)
        populated.remove(ALICE, 1, ListingStatus.LISTED)

        assert populated.listing_ids(ListingStatus.LISTED) == [3, 2]
        assert populated.storage.listing_heads[ListingStatus.LISTED] == 3
        assert populated.listing_ids(ListingStatus.LISTED, owner=ALICE) == [3]
        assert_chain_consistent(populated, ListingStatus.LISTED)
        assert_chain_consistent(populated, ListingStatus.LISTED, owner=ALICE)

    def test_removing_last_entry_clears_head(self, index):
        index.insert_at_head(BOB, 7, ListingStatus.AGREED)
        index.remove(BOB, 7, ListingStatus.AGREED)

        assert ListingStatus.AGREED not in index.storage.listing_heads
        assert (BOB, ListingStatus.AGREED) not in index.storage.owner_listing_heads
        assert index.listing_ids(ListingStatus.AGREED) == []

    def test_removed_node_reads_as_unlinked(self, populated):
        populated.remove(ALICE, 3, ListingStatus.LISTED)

        assert not populated.is_indexed(3, ListingStatus.LISTED)
        assert (ListingStatus.LISTED, 3) not in populated.storage.listing_nodes
        assert populated._node(populated.storage.listing_nodes, ListingStatus.LISTED, 3) == ListNode()

    def test_remove_unlinked_is_noop(self, populated):
        populated.remove(ALICE, 99, ListingStatus.LISTED)
        populated.remove(ALICE, 1, ListingStatus.AGREED)

        assert populated.listing_ids(ListingStatus.LISTED) == [4, 3, 2, 1]

    def test_out_of_order_removal_keeps_chains_consistent(self, populated):
        for listing_id, owner in ((2, BOB), (4, ALICE), (1, ALICE)):
            populated.remove(owner, listing_id, ListingStatus.LISTED)
            assert_chain_consistent(populated, ListingStatus.LISTED)
            assert_chain_consistent(populated, ListingStatus.LISTED, owner=ALICE)

        assert populated.listing_ids(ListingStatus.LISTED) == [3]
        assert populated.listing_ids(ListingStatus.LISTED, owner=BOB) == []

    def test_buckets_are_independent(self, populated):
        populated.remove(ALICE, 3, ListingStatus.LISTED)
        populated.insert_at_head(ALICE, 3, ListingStatus.AGREED)

        assert populated.listing_ids(ListingStatus.AGREED) == [3]
        assert populated.listing_ids(ListingStatus.AGREED, owner=ALICE) == [3]
        assert populated.is_indexed(3, ListingStatus.AGREED)
        assert not populated.is_indexed(3, ListingStatus.LISTED)
