"""
Lending lifecycle engine.

Validates and executes every transition of a listing:

    create -> Open --agree--> MatchedActive --end--> Completed
               |
               +--cancel--> Canceled

Asset moves, locks and token transfers are delegated to the contract
collaborators; the engine owns every precondition and the order of
bookkeeping. Each public operation runs inside ``transaction()``: the engine
shares one undo journal with its storage and the asset and token registries,
and every write they make is journaled. If anything raises, the journal is
rolled back, so a failed call leaves no partial effects. Nested calls join
the outermost transaction, which makes batches all-or-nothing.
"""

from __future__ import annotations

import hashlib
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator, Optional

from .. import config
from ..constants import MAX_LENDING_PERIOD, MAX_REVENUE_TOKENS, OPEN_ALLOW_LIST, REVENUE_SPLIT_TOTAL
from ..contracts.allow_list import AllowListRegistry
from ..contracts.erc20 import ERC20Registry
from ..contracts.erc721 import LENDABLE_STATUSES, ERC721Registry
from ..contracts.escrow import EscrowRegistry
from ..journal import UndoJournal
from ..lending_exceptions import (
    AlreadyBorrowingError,
    AlreadyMatchedError,
    AssetLockedError,
    IllegalStateTransitionError,
    InvalidParametersError,
    ListingCanceledError,
    LoanPeriodNotElapsedError,
    NotFoundError,
    NotImplementedOperationError,
    NotOwnerError,
    NotWhitelistedError,
    ParameterMismatchError,
    PermissionDeniedError,
    SelfMatchError,
    TransferFailureError,
)
from ..lending_metrics import LendingMetrics
from ..logging_config import setup_lending_logging
from .borrower_slots import BorrowerSlots
from .list_index import ListingIndex
from .models import (
    AgreementTerms,
    LendingParams,
    Listing,
    ListingState,
    ListingStatus,
    RevenuePayout,
    normalize_address,
)
from .revenue import RevenueSplitCalculator
from .storage import LendingStorage

logger = logging.getLogger(__name__)


class LendingEngine:
    """
    Lifecycle engine for asset lending.

    Args:
        owner: Administrator allowed to manage the revenue-token allow list
        assets: Registry of lendable assets
        tokens: Fungible token registry (fees and revenue)
        escrows: Escrow accounts holding each asset's revenue
        allow_lists: Borrower allow lists
        fee_token: Token upfront fees are paid in
        storage: Existing state to operate on (a fresh store by default)
        address: The engine's own address, used as token spender
        clock: Returns the current unix time
        metrics: Optional Prometheus metrics sink
    """

    def __init__(
        self,
        owner: str,
        assets: ERC721Registry,
        tokens: ERC20Registry,
        escrows: EscrowRegistry,
        allow_lists: AllowListRegistry,
        fee_token: str = "",
        storage: Optional[LendingStorage] = None,
        address: str = "",
        clock: Callable[[], float] = time.time,
        metrics: Optional[LendingMetrics] = None,
    ) -> None:
        if not address:
            addr_hash = hashlib.sha3_256(f"lending-engine:{owner}".encode()).digest()
            address = f"0x{addr_hash[-20:].hex()}"

        self.owner = owner.lower()
        self.address = address.lower()
        self.assets = assets
        self.tokens = tokens
        self.escrows = escrows
        self.allow_lists = allow_lists
        self.fee_token = fee_token.lower()
        self.storage = storage if storage is not None else LendingStorage()
        self.index = ListingIndex(self.storage)
        self.slots = BorrowerSlots(self.storage)
        self.revenue = RevenueSplitCalculator(tokens, self.address)
        self.metrics = metrics
        self.state_file: Optional[str] = None

        self.journal = UndoJournal()
        self.storage.journal = self.journal
        self.assets.journal = self.journal
        self.tokens.attach_journal(self.journal)

        self._clock = clock
        self._tx_depth = 0
        self._pending_metrics: list[tuple[str, tuple]] = []

    @classmethod
    def from_config(
        cls,
        owner: str,
        assets: ERC721Registry,
        tokens: ERC20Registry,
        escrows: EscrowRegistry,
        allow_lists: AllowListRegistry,
        cfg: Any = None,
        registry: Any = None,
        **kwargs: Any,
    ) -> "LendingEngine":
        """
        Build an engine from the active network configuration.

        Sets up package logging, takes the fee token from ``FEE_TOKEN``,
        resumes the state saved at ``STATE_FILE`` and records metrics into
        ``registry`` only when ``METRICS_ENABLED`` is on.
        """
        cfg = cfg or config.Config
        setup_lending_logging(cfg=cfg)

        storage = LendingStorage.load(cfg.STATE_FILE)
        metrics = LendingMetrics(registry=registry) if cfg.METRICS_ENABLED else None
        engine = cls(
            owner,
            assets,
            tokens,
            escrows,
            allow_lists,
            fee_token=cfg.FEE_TOKEN,
            storage=storage,
            metrics=metrics,
            **kwargs,
        )
        engine.state_file = cfg.STATE_FILE

        logger.info(
            "Lending engine configured",
            extra={
                "event": "lending.configured",
                "environment": cfg.ENVIRONMENT,
                "fee_token": cfg.FEE_TOKEN[:10],
                "listings": len(storage.listings),
                "metrics_enabled": cfg.METRICS_ENABLED,
            }
        )
        return engine

    def save_state(self, path: Optional[str] = None) -> None:
        """Persist the store to ``path`` or the configured state file."""
        target = path or self.state_file
        if not target:
            raise InvalidParametersError("No state file configured")
        self.storage.save(target)

    # ==================== Transactions ====================

    @contextmanager
    def transaction(self, operation: str) -> Iterator[None]:
        """
        Run a block atomically.

        On any exception every journaled write made inside the block is
        undone and the exception propagates. Metrics queued inside the block
        are only published on success.
        """
        if self._tx_depth:
            self._tx_depth += 1
            try:
                yield
            finally:
                self._tx_depth -= 1
            return

        self.journal.begin()
        self._tx_depth = 1
        try:
            yield
        except Exception as exc:
            self.journal.rollback()
            self._pending_metrics.clear()
            logger.warning(
                "Lending operation rolled back",
                extra={
                    "event": "lending.rollback",
                    "operation": operation,
                    "error": type(exc).__name__,
                    "reason": str(exc),
                }
            )
            if self.metrics is not None:
                self.metrics.record_failure(operation, exc)
            raise
        else:
            self.journal.commit()
        finally:
            # Interrupted without an exception (e.g. KeyboardInterrupt)
            if self.journal.active:
                self.journal.rollback()
                self._pending_metrics.clear()
            self._tx_depth = 0

        self._publish_metrics()

    def _queue_metric(self, name: str, *args: Any) -> None:
        if self.metrics is not None:
            self._pending_metrics.append((name, args))

    def _publish_metrics(self) -> None:
        pending, self._pending_metrics = self._pending_metrics, []
        if self.metrics is None:
            return
        for name, args in pending:
            getattr(self.metrics, name)(*args)
        for status in ListingStatus:
            count = sum(1 for node_status, _ in self.storage.listing_nodes if node_status is status)
            self.metrics.set_active_listings(status.value, count)

    def _now(self) -> int:
        return int(self._clock())

    # ==================== Create ====================

    def create_listing(self, caller: str, params: LendingParams) -> int:
        """
        List an asset for lending.

        Any open listing of the same asset is canceled first.

        Returns:
            The new listing id

        Raises:
            NotOwnerError: If caller does not own the asset
            InvalidParametersError: If params break the lending rules
            AlreadyMatchedError: If the asset's current listing is agreed
            AssetLockedError: If the asset is locked without a listing
        """
        with self.transaction("create"):
            return self._create_listing(normalize_address(caller) or "", params)

    def _create_listing(self, caller: str, params: LendingParams) -> int:
        asset_id = params.asset_id
        original_owner, third_party, revenue_tokens = self._validate_params(params)

        owner = self.assets.owner_of(asset_id)
        if owner != caller:
            raise NotOwnerError(
                f"Caller does not own asset {asset_id}",
                details={"asset_id": asset_id, "caller": caller},
            )
        if self.assets.status_of(asset_id) not in LENDABLE_STATUSES:
            raise InvalidParametersError(
                f"Asset {asset_id} is not in a lendable state",
                details={"asset_id": asset_id, "status": self.assets.status_of(asset_id).name},
            )

        prior = self.storage.current_listing(asset_id)
        if prior is not None:
            if prior.time_agreed:
                raise AlreadyMatchedError(
                    f"Asset {asset_id} is already lent under listing {prior.listing_id}",
                    details={"listing_id": prior.listing_id},
                )
            self._cancel(prior)
        elif self.assets.is_locked(asset_id):
            raise AssetLockedError(f"Asset {asset_id} is locked", details={"asset_id": asset_id})

        listing = Listing(
            listing_id=self.storage.allocate_listing_id(),
            asset_id=asset_id,
            lender=caller,
            original_owner=original_owner,
            third_party=third_party,
            initial_cost=params.initial_cost,
            period=params.period,
            revenue_split=tuple(params.revenue_split),
            allow_list_id=params.allow_list_id,
            revenue_tokens=revenue_tokens,
            time_created=self._now(),
        )
        self.storage.add_listing(listing)
        self.index.insert_at_head(caller, listing.listing_id, ListingStatus.LISTED)
        self.assets.set_locked(asset_id, True)

        logger.info(
            "Listing created",
            extra={
                "event": "lending.create",
                "listing_id": listing.listing_id,
                "asset_id": asset_id,
                "lender": caller[:10],
                "initial_cost": listing.initial_cost,
                "period": listing.period,
                "revenue_split": list(listing.revenue_split),
            }
        )
        self._queue_metric("record_created")
        return listing.listing_id

    def _validate_params(self, params: LendingParams) -> tuple[str, Optional[str], tuple[str, ...]]:
        """Check listing parameters; returns normalized owner, third party and tokens."""
        original_owner = normalize_address(params.original_owner)
        if original_owner is None:
            raise InvalidParametersError("Original owner cannot be empty")

        if params.initial_cost < 0:
            raise InvalidParametersError("Initial cost cannot be negative")

        if params.period <= 0 or params.period > MAX_LENDING_PERIOD:
            raise InvalidParametersError(
                f"Period must be between 1 and {MAX_LENDING_PERIOD} seconds",
                details={"period": params.period},
            )

        split = tuple(params.revenue_split)
        if len(split) != 3 or any(share < 0 for share in split):
            raise InvalidParametersError("Revenue split must be three non-negative percentages")
        if sum(split) != REVENUE_SPLIT_TOTAL:
            raise InvalidParametersError(
                f"Revenue split must sum to {REVENUE_SPLIT_TOTAL}",
                details={"revenue_split": list(split)},
            )

        third_party = normalize_address(params.third_party)
        if third_party is None and split[2] != 0:
            raise InvalidParametersError("Third-party share must be 0 without a third party")

        revenue_tokens = tuple(token.lower() for token in params.revenue_tokens)
        if len(revenue_tokens) > MAX_REVENUE_TOKENS:
            raise InvalidParametersError(
                f"At most {MAX_REVENUE_TOKENS} revenue tokens are allowed",
                details={"count": len(revenue_tokens)},
            )
        if len(set(revenue_tokens)) != len(revenue_tokens):
            raise InvalidParametersError("Revenue tokens must be unique")
        for token in revenue_tokens:
            if token not in self.storage.revenue_token_allow_list:
                raise InvalidParametersError(
                    f"Token {token} is not an allowed revenue token", details={"token": token}
                )

        if params.allow_list_id != OPEN_ALLOW_LIST and not self.allow_lists.exists(params.allow_list_id):
            raise NotFoundError(
                f"Allow list {params.allow_list_id} not found",
                details={"allow_list_id": params.allow_list_id},
            )

        return original_owner, third_party, revenue_tokens

    # ==================== Agree ====================

    def agree_listing(self, caller: str, listing_id: int, terms: AgreementTerms) -> None:
        """
        Borrow a listed asset.

        ``terms`` must repeat the listing's asset id, initial cost, period and
        split exactly, so a borrower never agrees to terms that changed after
        they looked at the listing.

        Raises:
            NotFoundError, ListingCanceledError, AlreadyMatchedError,
            ParameterMismatchError, SelfMatchError, NotWhitelistedError,
            AlreadyBorrowingError, TransferFailureError
        """
        with self.transaction("agree"):
            self._agree_listing(normalize_address(caller) or "", listing_id, terms)

    def _agree_listing(self, caller: str, listing_id: int, terms: AgreementTerms) -> None:
        listing = self.storage.get_listing(listing_id)
        if listing.canceled:
            raise ListingCanceledError(f"Listing {listing_id} is canceled")
        if listing.time_agreed:
            raise AlreadyMatchedError(f"Listing {listing_id} is already agreed")

        echoed = AgreementTerms(
            asset_id=terms.asset_id,
            initial_cost=terms.initial_cost,
            period=terms.period,
            revenue_split=tuple(terms.revenue_split),
        )
        if echoed != listing.terms():
            raise ParameterMismatchError(
                f"Terms do not match listing {listing_id}",
                details={"listing_id": listing_id},
            )

        if caller == listing.lender:
            raise SelfMatchError("Lender cannot borrow their own listing")
        if listing.allow_list_id != OPEN_ALLOW_LIST and not self.allow_lists.is_member(listing.allow_list_id, caller):
            raise NotWhitelistedError(
                f"Caller is not on allow list {listing.allow_list_id}",
                details={"allow_list_id": listing.allow_list_id},
            )
        if self.slots.is_borrowing(caller):
            raise AlreadyBorrowingError(
                "Borrower already has an active loan",
                details={"asset_id": self.slots.borrowed_asset(caller)},
            )

        if listing.initial_cost > 0:
            if not self.fee_token:
                raise TransferFailureError("No fee token configured for upfront costs")
            self.tokens.transfer_from(
                self.fee_token, self.address, caller, listing.lender, listing.initial_cost
            )

        now = self._now()
        self.journal.set_attr(listing, "borrower", caller)
        self.journal.set_attr(listing, "time_agreed", now)
        self.journal.set_attr(listing, "time_last_claimed", now)

        self.index.remove(listing.lender, listing_id, ListingStatus.LISTED)
        self.index.insert_at_head(listing.lender, listing_id, ListingStatus.AGREED)
        self.storage.add_lent_asset(listing.lender, listing.asset_id)
        self.slots.add_borrower_slot(caller, listing.asset_id)

        self.assets.transfer(listing.lender, caller, listing.asset_id)
        self.assets.set_lending_operator(listing.asset_id, listing.lender)

        logger.info(
            "Listing agreed",
            extra={
                "event": "lending.agree",
                "listing_id": listing_id,
                "asset_id": listing.asset_id,
                "lender": listing.lender[:10],
                "borrower": caller[:10],
                "initial_cost": listing.initial_cost,
            }
        )
        self._queue_metric("record_agreed", listing.initial_cost)

    # ==================== Cancel ====================

    def cancel_listing(self, caller: str, listing_id: int) -> None:
        """
        Withdraw an open listing. Canceling a canceled listing does nothing.

        Raises:
            NotFoundError: If the listing does not exist
            PermissionDeniedError: If caller is not the lender
            AlreadyMatchedError: If a borrower already agreed
        """
        with self.transaction("cancel"):
            caller = normalize_address(caller) or ""
            listing = self.storage.get_listing(listing_id)
            if caller != listing.lender:
                raise PermissionDeniedError(
                    f"Only the lender can cancel listing {listing_id}",
                    details={"listing_id": listing_id},
                )
            if listing.canceled:
                return
            if listing.time_agreed:
                raise AlreadyMatchedError(
                    f"Listing {listing_id} is agreed; end the loan instead",
                    details={"listing_id": listing_id},
                )
            self._cancel(listing)

    def cancel_listing_by_asset(self, caller: str, asset_id: int) -> None:
        """Cancel the current listing of an asset."""
        with self.transaction("cancel"):
            self.cancel_listing(caller, self.storage.get_listing_id_by_asset(asset_id))

    def _cancel(self, listing: Listing) -> None:
        self.journal.set_attr(listing, "canceled", True)
        self.index.remove(listing.lender, listing.listing_id, ListingStatus.LISTED)
        self.assets.set_locked(listing.asset_id, False)
        if self.storage.asset_to_listing.get(listing.asset_id) == listing.listing_id:
            self.storage.clear_asset_listing(listing.asset_id)

        logger.info(
            "Listing canceled",
            extra={
                "event": "lending.cancel",
                "listing_id": listing.listing_id,
                "asset_id": listing.asset_id,
                "lender": listing.lender[:10],
            }
        )
        self._queue_metric("record_canceled")

    # ==================== Claim & End ====================

    def claim_revenue(self, caller: str, listing_id: int) -> list[RevenuePayout]:
        """
        Distribute the revenue escrowed for a lent asset.

        Raises:
            NotFoundError: If the listing does not exist
            IllegalStateTransitionError: If the listing is not an active loan
            PermissionDeniedError: If caller is neither lender nor borrower
        """
        with self.transaction("claim"):
            caller = normalize_address(caller) or ""
            listing = self._get_active_loan(listing_id)
            self._require_party(caller, listing)
            return self._claim(listing)

    def end_listing(self, caller: str, listing_id: int) -> None:
        """
        Return a lent asset to its lender.

        The borrower can end at any time; the lender only once the loan
        period has passed.

        Raises:
            NotFoundError, IllegalStateTransitionError, PermissionDeniedError,
            LoanPeriodNotElapsedError
        """
        with self.transaction("end"):
            caller = normalize_address(caller) or ""
            listing = self._get_active_loan(listing_id)
            self._require_can_end(caller, listing)
            self._end(caller, listing)

    def claim_and_end(self, caller: str, listing_id: int) -> list[RevenuePayout]:
        """Claim outstanding revenue, then end the loan, as one operation."""
        with self.transaction("claim_and_end"):
            caller = normalize_address(caller) or ""
            listing = self._get_active_loan(listing_id)
            self._require_can_end(caller, listing)
            payouts = self._claim(listing)
            self._end(caller, listing)
            return payouts

    def claim_and_relist(self, caller: str, listing_id: int) -> None:
        raise NotImplementedOperationError("claim_and_relist is not implemented")

    def claim_and_renew(self, caller: str, listing_id: int) -> None:
        raise NotImplementedOperationError("claim_and_renew is not implemented")

    def _get_active_loan(self, listing_id: int) -> Listing:
        listing = self.storage.get_listing(listing_id)
        if listing.state is not ListingState.MATCHED_ACTIVE:
            raise IllegalStateTransitionError(
                f"Listing {listing_id} is not an active loan",
                details={"listing_id": listing_id, "state": listing.state.value},
            )
        return listing

    @staticmethod
    def _require_party(caller: str, listing: Listing) -> None:
        if caller not in (listing.lender, listing.borrower):
            raise PermissionDeniedError(
                f"Only the lender or borrower can act on listing {listing.listing_id}",
                details={"listing_id": listing.listing_id},
            )

    def _require_can_end(self, caller: str, listing: Listing) -> None:
        self._require_party(caller, listing)
        if caller == listing.borrower:
            return
        # Stored periods above the current cap are treated as the cap
        ends_at = listing.time_agreed + min(listing.period, MAX_LENDING_PERIOD)
        if self._now() < ends_at:
            raise LoanPeriodNotElapsedError(
                f"Loan {listing.listing_id} cannot be ended by the lender before {ends_at}",
                details={"listing_id": listing.listing_id, "ends_at": ends_at},
            )

    def _claim(self, listing: Listing) -> list[RevenuePayout]:
        escrow = self.escrows.get(self.assets.escrow_of(listing.asset_id))
        collateral = self.assets.collateral_of(listing.asset_id)
        payouts = self.revenue.distribute(listing, escrow, collateral)
        self.journal.set_attr(listing, "time_last_claimed", self._now())

        logger.info(
            "Revenue claimed",
            extra={
                "event": "lending.claim",
                "listing_id": listing.listing_id,
                "asset_id": listing.asset_id,
                "tokens": len(payouts),
                "distributed": sum(payout.distributed for payout in payouts),
            }
        )
        self._queue_metric("record_claim", payouts)
        return payouts

    def _end(self, caller: str, listing: Listing) -> None:
        borrower = listing.borrower or ""
        self.assets.set_locked(listing.asset_id, False)
        self.assets.transfer(borrower, listing.lender, listing.asset_id)
        self.journal.set_attr(listing, "completed", True)
        self.storage.clear_asset_listing(listing.asset_id)
        self.index.remove(listing.lender, listing.listing_id, ListingStatus.AGREED)
        self.slots.release_borrower_slot(listing.borrower, listing.asset_id)
        self.storage.remove_lent_asset(listing.lender, listing.asset_id)
        self.assets.clear_lending_operator(listing.asset_id)

        ended_by = "borrower" if caller == listing.borrower else "lender"
        logger.info(
            "Loan ended",
            extra={
                "event": "lending.end",
                "listing_id": listing.listing_id,
                "asset_id": listing.asset_id,
                "ended_by": ended_by,
            }
        )
        self._queue_metric("record_completed", ended_by)

    # ==================== Revenue token allow list ====================

    def add_revenue_tokens(self, caller: str, tokens: Iterable[str]) -> None:
        with self.transaction("add_revenue_tokens"):
            self._require_admin(caller)
            for token in tokens:
                self.tokens.get_token(token)
                self.storage.allow_revenue_token(token.lower())

    def remove_revenue_tokens(self, caller: str, tokens: Iterable[str]) -> None:
        """Disallow tokens for new listings; existing listings keep them."""
        with self.transaction("remove_revenue_tokens"):
            self._require_admin(caller)
            for token in tokens:
                self.storage.disallow_revenue_token(token.lower())

    def is_revenue_token(self, token: str) -> bool:
        return token.lower() in self.storage.revenue_token_allow_list

    def _require_admin(self, caller: str) -> None:
        if (normalize_address(caller) or "") != self.owner:
            raise PermissionDeniedError("Caller is not the lending administrator")

    # ==================== Access rights ====================

    def get_access_right(self, asset_id: int, action: int) -> int:
        return self.storage.access_rights.get((asset_id, action), 0)

    def set_access_right(self, caller: str, asset_id: int, action: int, value: int) -> None:
        """
        Set the permission value for one action on an asset.

        Raises:
            NotOwnerError: If caller does not own the asset
            IllegalStateTransitionError: If the asset is currently lent out
        """
        with self.transaction("set_access_right"):
            caller = normalize_address(caller) or ""
            if value < 0:
                raise InvalidParametersError("Access right value cannot be negative")
            if self.assets.owner_of(asset_id) != caller:
                raise NotOwnerError(f"Caller does not own asset {asset_id}")
            if self.storage.is_actively_lent(asset_id):
                raise IllegalStateTransitionError(
                    f"Access rights of asset {asset_id} cannot change while it is lent"
                )
            self.storage.set_access_right(asset_id, action, value)

    # ==================== Queries ====================

    def get_listing(self, listing_id: int) -> Listing:
        return self.storage.get_listing(listing_id)

    def get_listing_id_by_asset(self, asset_id: int) -> int:
        return self.storage.get_listing_id_by_asset(asset_id)

    def get_listing_by_asset(self, asset_id: int) -> Listing:
        return self.storage.get_listing(self.storage.get_listing_id_by_asset(asset_id))

    def is_listed(self, asset_id: int) -> bool:
        return self.storage.is_listed(asset_id)

    def is_actively_lent(self, asset_id: int) -> bool:
        return self.storage.is_actively_lent(asset_id)

    def get_listings(self, status: ListingStatus, length: Optional[int] = None) -> list[Listing]:
        """Listings of a status bucket across all owners, newest first."""
        return [self.storage.listings[i] for i in self.index.listing_ids(status, length=length)]

    def get_owner_listings(
        self, owner: str, status: ListingStatus, length: Optional[int] = None
    ) -> list[Listing]:
        """One owner's listings of a status bucket, newest first."""
        owner = normalize_address(owner) or ""
        return [
            self.storage.listings[i]
            for i in self.index.listing_ids(status, owner=owner, length=length)
        ]

    def lent_asset_ids(self, lender: str) -> list[int]:
        return sorted(self.storage.lent_assets.get(normalize_address(lender) or "", ()))

    def lent_asset_count(self, lender: str) -> int:
        return len(self.storage.lent_assets.get(normalize_address(lender) or "", ()))

    def is_borrowing(self, borrower: str) -> bool:
        return self.slots.is_borrowing(normalize_address(borrower) or "")

    def borrowed_asset(self, borrower: str) -> Optional[int]:
        return self.slots.borrowed_asset(normalize_address(borrower) or "")

    def preview_revenue(self, listing_id: int) -> list[RevenuePayout]:
        """What a claim would pay out now, without moving funds."""
        listing = self._get_active_loan(listing_id)
        escrow = self.escrows.get(self.assets.escrow_of(listing.asset_id))
        return self.revenue.preview(listing, escrow, self.assets.collateral_of(listing.asset_id))
