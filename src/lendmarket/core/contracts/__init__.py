"""
LendMarket Contract Collaborators.

In-process contracts the lending engine drives:
- ERC20: fungible fee and revenue tokens, plus a registry that moves them
- ERC721: the lendable assets, with lock flags, status, collateral and escrow
- Escrow: per-asset revenue custody
- Allow lists: borrower restrictions for listings
"""

from .allow_list import AllowList, AllowListRegistry
from .erc20 import ERC20Registry, ERC20Token
from .erc721 import LENDABLE_STATUSES, AssetStatus, ERC721Registry
from .escrow import EscrowAccount, EscrowRegistry

__all__ = [
    "AllowList",
    "AllowListRegistry",
    "ERC20Registry",
    "ERC20Token",
    "ERC721Registry",
    "AssetStatus",
    "LENDABLE_STATUSES",
    "EscrowAccount",
    "EscrowRegistry",
]
