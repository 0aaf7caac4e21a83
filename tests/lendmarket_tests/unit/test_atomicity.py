"""
Rollback tests for the lending engine.

A failed operation, or a failed item inside a batch, must leave storage,
asset ownership, locks and token balances exactly as they were.
"""

import pytest

from lendmarket.core.constants import SECONDS_PER_DAY
from lendmarket.core.lending_exceptions import InvalidParametersError, LoanPeriodNotElapsedError, TransferFailureError

from lending_helpers import ADMIN, BORROWER, LENDER, OTHER


def state_of(market):
    return {
        "storage": market.engine.storage.to_dict(),
        "owners": dict(market.assets.owners),
        "locked": set(market.assets.locked),
        "approvals": {k: dict(v) for k, v in market.assets.operator_approvals.items()},
        "balances": {
            token.symbol: dict(token.balances) for token in (market.fee, market.revenue, market.bonus)
        },
    }


def sample(market, name, labels=None):
    return market.metrics.registry.get_sample_value(name, labels or {}) or 0


class TestSingleOperationRollback:

    def test_failed_fee_transfer_changes_nothing(self, market):
        market.mint_asset(1)
        listing_id = market.engine.create_listing(LENDER, market.params(1, initial_cost=50))
        market.fund(BORROWER, 49)
        before = state_of(market)

        with pytest.raises(TransferFailureError):
            market.engine.agree_listing(BORROWER, listing_id, market.terms(listing_id))

        assert state_of(market) == before

    def test_split_summing_to_99_changes_nothing(self, market):
        market.mint_asset(1)
        before = state_of(market)

        with pytest.raises(InvalidParametersError):
            market.engine.create_listing(LENDER, market.params(1, revenue_split=(50, 49, 0)))

        assert state_of(market) == before
        assert market.engine.storage.next_listing_id == 1
        assert not market.engine.is_listed(1)
        assert len(market.engine.journal) == 0

    def test_failure_is_counted(self, market):
        market.mint_asset(1)

        with pytest.raises(InvalidParametersError):
            market.engine.create_listing(LENDER, market.params(1, period=0))

        assert sample(
            market,
            "lendmarket_operation_failures_total",
            {"operation": "create", "error": "InvalidParametersError"},
        ) == 1
        assert sample(market, "lendmarket_listings_created_total") == 0


class TestBatchRollback:

    def test_batch_add_is_all_or_nothing(self, market):
        market.mint_asset(1)
        market.mint_asset(2)
        before = state_of(market)

        with pytest.raises(InvalidParametersError):
            market.facet.batch_add_lendings(
                LENDER, [market.params(1), market.params(2, revenue_split=(60, 60, 0))]
            )

        assert state_of(market) == before
        assert not market.assets.is_locked(1)
        assert sample(market, "lendmarket_listings_created_total") == 0
        assert sample(
            market,
            "lendmarket_operation_failures_total",
            {"operation": "batch_add", "error": "InvalidParametersError"},
        ) == 1

    def test_batch_add_success(self, market):
        market.mint_asset(1)
        market.mint_asset(2)

        ids = market.facet.batch_add_lendings(LENDER, [market.params(1), market.params(2)])

        assert ids == [1, 2]
        assert sample(market, "lendmarket_listings_created_total") == 2
        assert sample(market, "lendmarket_active_listings", {"status": "listed"}) == 2

    def test_batch_claim_and_end_rolls_back_completed_items(self, market):
        first = market.list_and_agree(1)
        market.clock.advance(SECONDS_PER_DAY)
        second = market.list_and_agree(2, borrower=OTHER)
        market.deposit_revenue(1, market.revenue, 100)
        before = state_of(market)

        # The first loan may end but the second is still running
        with pytest.raises(LoanPeriodNotElapsedError):
            market.facet.batch_claim_and_end(LENDER, [first, second])

        assert state_of(market) == before
        assert market.engine.is_actively_lent(1)
        assert market.revenue.balance_of(LENDER) == 0

    def test_batch_cancel(self, market):
        market.mint_asset(1)
        market.mint_asset(2)
        ids = market.facet.batch_add_lendings(LENDER, [market.params(1), market.params(2)])

        market.facet.batch_cancel_lendings(LENDER, ids)

        assert all(market.engine.get_listing(i).canceled for i in ids)
        assert sample(market, "lendmarket_active_listings", {"status": "listed"}) == 0


class TestExplicitTransactions:

    def test_outer_transaction_rolls_back_inner_operations(self, market):
        market.mint_asset(1)
        listing_id = market.engine.create_listing(LENDER, market.params(1))
        market.fund(BORROWER, 10)
        before = state_of(market)

        with pytest.raises(RuntimeError):
            with market.engine.transaction("scripted"):
                market.engine.agree_listing(BORROWER, listing_id, market.terms(listing_id))
                assert market.assets.owner_of(1) == BORROWER
                raise RuntimeError("abort")

        assert state_of(market) == before
        assert market.fee.balance_of(BORROWER) == 10
        assert sample(market, "lendmarket_listings_agreed_total") == 0

    def test_journal_cleared_on_commit(self, market):
        market.mint_asset(1)

        market.engine.create_listing(LENDER, market.params(1))

        assert not market.engine.journal.active
        assert len(market.engine.journal) == 0

    def test_journal_records_only_touched_entries(self, market):
        def writes_for_create(asset_id):
            market.mint_asset(asset_id)
            with market.engine.transaction("scripted"):
                market.engine.create_listing(LENDER, market.params(asset_id))
                return len(market.engine.journal)

        first = writes_for_create(1)
        for asset_id in range(2, 30):
            market.mint_asset(asset_id)
            market.engine.create_listing(LENDER, market.params(asset_id))

        # Only the two old head nodes gain a parent link
        assert writes_for_create(30) == first + 2

    def test_rollback_restores_listing_fields(self, market):
        market.mint_asset(1)
        listing_id = market.engine.create_listing(LENDER, market.params(1))
        listing = market.engine.get_listing(listing_id)

        with pytest.raises(RuntimeError):
            with market.engine.transaction("scripted"):
                market.engine.cancel_listing(LENDER, listing_id)
                assert listing.canceled
                raise RuntimeError("abort")

        assert market.engine.get_listing(listing_id) is listing
        assert not listing.canceled
        assert market.engine.is_listed(1)
        assert market.assets.is_locked(1)

    def test_token_objects_survive_rollback(self, market):
        fee = market.tokens.get_token(market.fee.address)

        with pytest.raises(RuntimeError):
            with market.engine.transaction("scripted"):
                market.fee.mint(ADMIN, OTHER, 5)
                raise RuntimeError("abort")

        assert market.tokens.get_token(market.fee.address) is fee
        assert fee.balance_of(OTHER) == 0
