"""
Asset lending: listings, lifecycle engine, indexes and revenue split.
"""

from .borrower_slots import BorrowerSlots
from .engine import LendingEngine
from .facet import LendingFacet
from .list_index import ListingIndex
from .models import (
    AgreementTerms,
    LendingParams,
    Listing,
    ListingState,
    ListingStatus,
    ListNode,
    RevenuePayout,
    normalize_address,
)
from .revenue import RevenueSplitCalculator, split_amounts
from .storage import STATE_FORMAT_VERSION, LendingStorage

__all__ = [
    "AgreementTerms",
    "BorrowerSlots",
    "LendingEngine",
    "LendingFacet",
    "LendingParams",
    "LendingStorage",
    "Listing",
    "ListingIndex",
    "ListingState",
    "ListingStatus",
    "ListNode",
    "RevenuePayout",
    "RevenueSplitCalculator",
    "STATE_FORMAT_VERSION",
    "normalize_address",
    "split_amounts",
]
