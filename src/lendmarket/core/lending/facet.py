"""
Lending facet: the callable surface of the lending engine.

Every entry point takes the raw ``sender`` of a call and resolves the
effective caller through ``resolve_sender``, so relayed (meta) transactions
act on behalf of the signer rather than the relayer. Batch variants run all
of their items in one engine transaction: either every item succeeds or none
does.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Iterable, Optional, Sequence

from .engine import LendingEngine
from .models import AgreementTerms, LendingParams, Listing, ListingStatus, RevenuePayout

SenderResolver = Callable[[str], str]


def _same_sender(sender: str) -> str:
    return sender


class LendingFacet:
    """
    External entry points of the lending marketplace.

    Args:
        engine: Engine executing the lifecycle
        resolve_sender: Maps a raw sender to the effective caller
    """

    EXTERNAL_FUNCTIONS = (
        "add_lending",
        "batch_add_lendings",
        "cancel_lending",
        "cancel_lending_by_asset",
        "batch_cancel_lendings",
        "batch_cancel_lendings_by_asset",
        "agree_lending",
        "batch_agree_lendings",
        "claim",
        "batch_claim",
        "claim_and_end",
        "batch_claim_and_end",
        "claim_and_relist",
        "claim_and_renew",
        "get_lending_listing",
        "get_lending_listing_by_asset",
        "get_listings",
        "get_owner_listings",
        "is_listed",
        "is_actively_lent",
        "get_access_right",
        "set_access_right",
        "add_revenue_tokens",
        "remove_revenue_tokens",
    )

    def __init__(
        self,
        engine: LendingEngine,
        resolve_sender: Optional[SenderResolver] = None,
    ) -> None:
        self.engine = engine
        self.resolve_sender = resolve_sender or _same_sender

    def function_selectors(self) -> dict[bytes, str]:
        """4-byte selector -> function name, for registering the facet."""
        return {
            hashlib.sha3_256(name.encode()).digest()[:4]: name
            for name in self.EXTERNAL_FUNCTIONS
        }

    def _caller(self, sender: str) -> str:
        return self.resolve_sender(sender)

    # ==================== Listing ====================

    def add_lending(self, sender: str, params: LendingParams) -> int:
        return self.engine.create_listing(self._caller(sender), params)

    def batch_add_lendings(self, sender: str, params: Sequence[LendingParams]) -> list[int]:
        caller = self._caller(sender)
        with self.engine.transaction("batch_add"):
            return [self.engine.create_listing(caller, item) for item in params]

    def cancel_lending(self, sender: str, listing_id: int) -> None:
        self.engine.cancel_listing(self._caller(sender), listing_id)

    def cancel_lending_by_asset(self, sender: str, asset_id: int) -> None:
        self.engine.cancel_listing_by_asset(self._caller(sender), asset_id)

    def batch_cancel_lendings(self, sender: str, listing_ids: Iterable[int]) -> None:
        caller = self._caller(sender)
        with self.engine.transaction("batch_cancel"):
            for listing_id in listing_ids:
                self.engine.cancel_listing(caller, listing_id)

    def batch_cancel_lendings_by_asset(self, sender: str, asset_ids: Iterable[int]) -> None:
        caller = self._caller(sender)
        with self.engine.transaction("batch_cancel"):
            for asset_id in asset_ids:
                self.engine.cancel_listing_by_asset(caller, asset_id)

    # ==================== Borrowing ====================

    def agree_lending(self, sender: str, listing_id: int, terms: AgreementTerms) -> None:
        self.engine.agree_listing(self._caller(sender), listing_id, terms)

    def batch_agree_lendings(
        self, sender: str, agreements: Sequence[tuple[int, AgreementTerms]]
    ) -> None:
        caller = self._caller(sender)
        with self.engine.transaction("batch_agree"):
            for listing_id, terms in agreements:
                self.engine.agree_listing(caller, listing_id, terms)

    def claim(self, sender: str, listing_id: int) -> list[RevenuePayout]:
        return self.engine.claim_revenue(self._caller(sender), listing_id)

    def batch_claim(self, sender: str, listing_ids: Iterable[int]) -> list[list[RevenuePayout]]:
        caller = self._caller(sender)
        with self.engine.transaction("batch_claim"):
            return [self.engine.claim_revenue(caller, listing_id) for listing_id in listing_ids]

    def claim_and_end(self, sender: str, listing_id: int) -> list[RevenuePayout]:
        return self.engine.claim_and_end(self._caller(sender), listing_id)

    def batch_claim_and_end(
        self, sender: str, listing_ids: Iterable[int]
    ) -> list[list[RevenuePayout]]:
        caller = self._caller(sender)
        with self.engine.transaction("batch_claim_and_end"):
            return [self.engine.claim_and_end(caller, listing_id) for listing_id in listing_ids]

    def claim_and_relist(self, sender: str, listing_id: int) -> None:
        self.engine.claim_and_relist(self._caller(sender), listing_id)

    def claim_and_renew(self, sender: str, listing_id: int) -> None:
        self.engine.claim_and_renew(self._caller(sender), listing_id)

    # ==================== Views ====================

    def get_lending_listing(self, listing_id: int) -> Listing:
        return self.engine.get_listing(listing_id)

    def get_lending_listing_by_asset(self, asset_id: int) -> Listing:
        return self.engine.get_listing_by_asset(asset_id)

    def get_listings(self, status: ListingStatus, length: Optional[int] = None) -> list[Listing]:
        return self.engine.get_listings(status, length)

    def get_owner_listings(
        self, owner: str, status: ListingStatus, length: Optional[int] = None
    ) -> list[Listing]:
        return self.engine.get_owner_listings(owner, status, length)

    def is_listed(self, asset_id: int) -> bool:
        return self.engine.is_listed(asset_id)

    def is_actively_lent(self, asset_id: int) -> bool:
        return self.engine.is_actively_lent(asset_id)

    # ==================== Access rights & admin ====================

    def get_access_right(self, asset_id: int, action: int) -> int:
        return self.engine.get_access_right(asset_id, action)

    def set_access_right(self, sender: str, asset_id: int, action: int, value: int) -> None:
        self.engine.set_access_right(self._caller(sender), asset_id, action, value)

    def add_revenue_tokens(self, sender: str, tokens: Iterable[str]) -> None:
        self.engine.add_revenue_tokens(self._caller(sender), tokens)

    def remove_revenue_tokens(self, sender: str, tokens: Iterable[str]) -> None:
        self.engine.remove_revenue_tokens(self._caller(sender), tokens)
