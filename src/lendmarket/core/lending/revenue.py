"""
Revenue split for active loans.

While an asset is on loan its escrow accumulates revenue tokens. A claim
splits each token's escrowed balance by the listing's percentages:

    owner    = floor(balance * split[0] / 100)   -> original owner (or lender)
    borrower = floor(balance * split[1] / 100)   -> borrower
    third    = floor(balance * split[2] / 100)   -> third party, if one is set

Rounding remainders stay in escrow and are picked up by the next claim. The
asset's collateral token is never distributed since it backs the asset
rather than being earned by it.
"""

from __future__ import annotations

import logging

from ..constants import REVENUE_SPLIT_TOTAL, UINT256_MAX
from ..contracts.erc20 import ERC20Registry
from ..contracts.escrow import EscrowAccount
from .models import Listing, RevenuePayout

logger = logging.getLogger(__name__)


def split_amounts(balance: int, revenue_split: tuple[int, int, int], has_third_party: bool) -> tuple[int, int, int]:
    """Owner, borrower and third-party amounts for one balance."""
    owner_amount = balance * revenue_split[0] // REVENUE_SPLIT_TOTAL
    borrower_amount = balance * revenue_split[1] // REVENUE_SPLIT_TOTAL
    third_party_amount = 0
    if has_third_party:
        third_party_amount = balance * revenue_split[2] // REVENUE_SPLIT_TOTAL
    return owner_amount, borrower_amount, third_party_amount


class RevenueSplitCalculator:
    """
    Computes and pays out the three-way revenue split of a listing.

    Args:
        tokens: Registry used to move revenue tokens out of escrow
        spender: Address the escrow authorizes to withdraw (the marketplace)
    """

    def __init__(self, tokens: ERC20Registry, spender: str) -> None:
        self.tokens = tokens
        self.spender = spender

    def preview(self, listing: Listing, escrow: EscrowAccount, collateral_token: str) -> list[RevenuePayout]:
        """Payouts a claim would make right now, without moving anything."""
        owner_recipient = listing.original_owner or listing.lender
        payouts = []
        for token in listing.revenue_tokens:
            payout = RevenuePayout(
                token=token,
                balance=0,
                owner_recipient=owner_recipient,
                borrower_recipient=listing.borrower or "",
                third_party_recipient=listing.third_party,
            )
            payouts.append(payout)
            if token == collateral_token:
                continue
            payout.balance = escrow.balance_of(token)
            if payout.balance == 0:
                continue
            (
                payout.owner_amount,
                payout.borrower_amount,
                payout.third_party_amount,
            ) = split_amounts(payout.balance, listing.revenue_split, listing.third_party is not None)
        return payouts

    def distribute(self, listing: Listing, escrow: EscrowAccount, collateral_token: str) -> list[RevenuePayout]:
        """
        Pay out the split of every revenue token held in escrow.

        Returns:
            One RevenuePayout per configured revenue token
        """
        payouts = self.preview(listing, escrow, collateral_token)
        for payout in payouts:
            if payout.distributed == 0:
                continue

            if escrow.allowance(payout.token, self.spender) < payout.balance:
                escrow.approve(payout.token, self.spender, UINT256_MAX)

            self._pay(escrow, payout.token, payout.owner_recipient, payout.owner_amount)
            self._pay(escrow, payout.token, payout.borrower_recipient, payout.borrower_amount)
            if payout.third_party_recipient is not None:
                self._pay(escrow, payout.token, payout.third_party_recipient, payout.third_party_amount)

            logger.info(
                "Revenue distributed",
                extra={
                    "event": "lending.revenue_distributed",
                    "listing_id": listing.listing_id,
                    "token": payout.token[:10],
                    "balance": payout.balance,
                    "owner_amount": payout.owner_amount,
                    "borrower_amount": payout.borrower_amount,
                    "third_party_amount": payout.third_party_amount,
                    "remainder": payout.remainder,
                }
            )
        return payouts

    def _pay(self, escrow: EscrowAccount, token: str, recipient: str, amount: int) -> None:
        if amount == 0:
            return
        self.tokens.transfer_from(token, self.spender, escrow.address, recipient, amount)
