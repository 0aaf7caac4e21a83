"""
Data model for lending listings.

A Listing is one offer to lend an asset and, once a borrower agrees, the
record of the active loan. Listings are never deleted: canceled and
completed listings stay readable by id but drop out of every live index.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..constants import UNLINKED_LISTING_ID, ZERO_ADDRESS


class ListingStatus(Enum):
    """Status bucket a listing is indexed under."""
    LISTED = "listed"
    AGREED = "agreed"


class ListingState(Enum):
    """Lifecycle state of a listing."""
    OPEN = "open"
    MATCHED_ACTIVE = "matched_active"
    CANCELED = "canceled"
    COMPLETED = "completed"


def normalize_address(address: Optional[str]) -> Optional[str]:
    """Lowercase an address; empty and zero addresses become None."""
    if not address:
        return None
    address = address.lower()
    if address == ZERO_ADDRESS:
        return None
    return address


@dataclass(frozen=True)
class LendingParams:
    """Parameters a lender supplies when listing an asset."""

    asset_id: int
    initial_cost: int
    period: int
    revenue_split: tuple[int, int, int]
    original_owner: str
    third_party: Optional[str] = None
    allow_list_id: int = 0
    revenue_tokens: tuple[str, ...] = ()


@dataclass(frozen=True)
class AgreementTerms:
    """Terms a borrower echoes back when agreeing to a listing."""

    asset_id: int
    initial_cost: int
    period: int
    revenue_split: tuple[int, int, int]


@dataclass
class Listing:
    """One lending offer, and the loan it becomes once agreed."""

    listing_id: int
    asset_id: int
    lender: str
    original_owner: str
    initial_cost: int
    period: int
    revenue_split: tuple[int, int, int]
    time_created: int
    borrower: Optional[str] = None
    third_party: Optional[str] = None
    allow_list_id: int = 0
    revenue_tokens: tuple[str, ...] = ()
    time_agreed: int = 0
    time_last_claimed: int = 0
    canceled: bool = False
    completed: bool = False

    @property
    def state(self) -> ListingState:
        if self.canceled:
            return ListingState.CANCELED
        if self.completed:
            return ListingState.COMPLETED
        if self.time_agreed:
            return ListingState.MATCHED_ACTIVE
        return ListingState.OPEN

    @property
    def is_terminal(self) -> bool:
        return self.canceled or self.completed

    def terms(self) -> AgreementTerms:
        return AgreementTerms(
            asset_id=self.asset_id,
            initial_cost=self.initial_cost,
            period=self.period,
            revenue_split=self.revenue_split,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "listing_id": self.listing_id,
            "asset_id": self.asset_id,
            "lender": self.lender,
            "borrower": self.borrower,
            "original_owner": self.original_owner,
            "third_party": self.third_party,
            "initial_cost": self.initial_cost,
            "period": self.period,
            "revenue_split": list(self.revenue_split),
            "allow_list_id": self.allow_list_id,
            "revenue_tokens": list(self.revenue_tokens),
            "time_created": self.time_created,
            "time_agreed": self.time_agreed,
            "time_last_claimed": self.time_last_claimed,
            "canceled": self.canceled,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Listing":
        return cls(
            listing_id=data["listing_id"],
            asset_id=data["asset_id"],
            lender=data["lender"],
            borrower=data.get("borrower"),
            original_owner=data["original_owner"],
            third_party=data.get("third_party"),
            initial_cost=data["initial_cost"],
            period=data["period"],
            revenue_split=tuple(data["revenue_split"]),
            allow_list_id=data.get("allow_list_id", 0),
            revenue_tokens=tuple(data.get("revenue_tokens", ())),
            time_created=data["time_created"],
            time_agreed=data.get("time_agreed", 0),
            time_last_claimed=data.get("time_last_claimed", 0),
            canceled=data.get("canceled", False),
            completed=data.get("completed", False),
        )


@dataclass
class ListNode:
    """
    Intrusive link of a listing inside one chain.

    ``child_listing_id`` points toward older entries (away from the head),
    ``parent_listing_id`` toward newer ones. A node whose ``listing_id`` is
    0 is not linked into any chain.
    """

    listing_id: int = UNLINKED_LISTING_ID
    parent_listing_id: int = UNLINKED_LISTING_ID
    child_listing_id: int = UNLINKED_LISTING_ID

    @property
    def is_linked(self) -> bool:
        return self.listing_id != UNLINKED_LISTING_ID


@dataclass
class RevenuePayout:
    """Amounts of one revenue token sent to each party during a claim."""

    token: str
    balance: int
    owner_recipient: str
    borrower_recipient: str
    third_party_recipient: Optional[str] = None
    owner_amount: int = 0
    borrower_amount: int = 0
    third_party_amount: int = 0

    @property
    def distributed(self) -> int:
        return self.owner_amount + self.borrower_amount + self.third_party_amount

    @property
    def remainder(self) -> int:
        return self.balance - self.distributed

    def amounts(self) -> Dict[str, int]:
        return {
            "owner": self.owner_amount,
            "borrower": self.borrower_amount,
            "third_party": self.third_party_amount,
        }
