"""
Per-asset escrow accounts.

Each lendable asset has a dedicated escrow that accumulates the revenue the
asset earns. Balances live in the ERC20 tokens themselves; the escrow is the
account that holds them and the party that grants the marketplace an
allowance to withdraw.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

from .erc20 import ERC20Registry
from ..lending_exceptions import NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class EscrowAccount:
    """Custodial account for one asset's revenue."""

    address: str
    asset_id: int
    tokens: ERC20Registry

    def balance_of(self, token: str) -> int:
        return self.tokens.get_token(token).balance_of(self.address)

    def allowance(self, token: str, spender: str) -> int:
        return self.tokens.get_token(token).allowance(self.address, spender)

    def approve(self, token: str, spender: str, amount: int) -> bool:
        """Authorize ``spender`` to withdraw ``amount`` of ``token``."""
        approved = self.tokens.get_token(token).approve(self.address, spender, amount)
        logger.info(
            "Escrow approval granted",
            extra={
                "event": "escrow.approve",
                "escrow": self.address[:10],
                "asset_id": self.asset_id,
                "token": token[:10],
                "spender": spender[:10],
            }
        )
        return approved


class EscrowRegistry:
    """Opens and looks up escrow accounts by address."""

    def __init__(self, tokens: ERC20Registry) -> None:
        self.tokens = tokens
        self.accounts: dict[str, EscrowAccount] = {}

    def open_escrow(self, asset_id: int, address: str = "") -> EscrowAccount:
        """Open the escrow for an asset; the address is derived from the asset id by default."""
        if not address:
            addr_hash = hashlib.sha3_256(f"escrow:{asset_id}".encode()).digest()
            address = f"0x{addr_hash[-20:].hex()}"
        account = EscrowAccount(address=address.lower(), asset_id=asset_id, tokens=self.tokens)
        self.accounts[account.address] = account
        return account

    def get(self, address: str) -> EscrowAccount:
        account = self.accounts.get(address.lower())
        if account is None:
            raise NotFoundError(f"Escrow {address} not found")
        return account
