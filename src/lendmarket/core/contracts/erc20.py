"""
ERC20 fee and revenue tokens.

Fungible tokens used by the lending marketplace: the upfront-fee token paid
by borrowers and the revenue tokens an asset's escrow accumulates while it
is on loan. Includes:
- approve / transferFrom with allowance accounting
- Minting (owner only)
- A registry that moves any registered token on behalf of a spender

Security features:
- Zero address checks
- Balance underflow prevention
- Allowance validation
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field

from ..constants import UINT256_MAX, ZERO_ADDRESS
from ..journal import UndoJournal
from ..lending_exceptions import NotFoundError, PermissionDeniedError, TransferFailureError

logger = logging.getLogger(__name__)


@dataclass
class ERC20Token:
    """
    ERC20 token with in-memory balances and allowances.

    Security considerations:
    - Zero address checks on all operations
    - Transfers fail loudly on insufficient balance or allowance
    """

    # Token metadata
    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0

    # Contract address
    address: str = ""

    # Owner (for minting permissions)
    owner: str = ""

    # State
    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[str, dict[str, int]] = field(default_factory=dict)

    journal: UndoJournal = field(default_factory=UndoJournal, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Initialize token after dataclass creation."""
        if not self.address:
            # Generate address from name/symbol hash
            addr_input = f"{self.name}{self.symbol}{time.time()}".encode()
            addr_hash = hashlib.sha3_256(addr_input).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.address = self._normalize(self.address)
        self.owner = self._normalize(self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        """Get the token balance of an account."""
        return self.balances.get(self._normalize(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        """Get the allowance granted by owner to spender."""
        owner_norm = self._normalize(owner)
        spender_norm = self._normalize(spender)
        return self.allowances.get(owner_norm, {}).get(spender_norm, 0)

    # ==================== State-Changing Functions ====================

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """
        Approve spender to spend tokens on behalf of owner.

        Args:
            owner: Token owner (msg.sender)
            spender: Address being approved
            amount: Amount to approve

        Returns:
            True if successful
        """
        owner_norm = self._normalize(owner)
        spender_norm = self._normalize(spender)

        self._validate_address(spender_norm, "spender")
        self._validate_amount(amount)

        self._set_allowance(owner_norm, spender_norm, amount)
        return True

    def transfer_from(
        self, spender: str, from_addr: str, to_addr: str, amount: int
    ) -> bool:
        """
        Transfer tokens using an allowance.

        Args:
            spender: Address executing transfer (msg.sender)
            from_addr: Token owner
            to_addr: Recipient
            amount: Amount to transfer

        Returns:
            True if successful

        Raises:
            TransferFailureError: If allowance or balance is insufficient
        """
        spender_norm = self._normalize(spender)
        from_norm = self._normalize(from_addr)
        to_norm = self._normalize(to_addr)

        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        current_allowance = self.allowance(from_norm, spender_norm)
        if current_allowance < amount:
            raise TransferFailureError(
                f"ERC20: insufficient allowance ({current_allowance} < {amount})",
                details={"token": self.address, "owner": from_norm, "spender": spender_norm},
            )

        from_balance = self.balances.get(from_norm, 0)
        if from_balance < amount:
            raise TransferFailureError(
                f"ERC20: transfer amount exceeds balance ({amount} > {from_balance})",
                details={"token": self.address, "from": from_norm, "amount": amount},
            )

        # Unlimited allowances are never decremented
        if current_allowance != UINT256_MAX:
            self._set_allowance(from_norm, spender_norm, current_allowance - amount)

        self._move(from_norm, to_norm, amount)
        return True

    # ==================== Minting ====================

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """
        Mint new tokens (owner only).

        Raises:
            PermissionDeniedError: If minter is not the token owner
        """
        self._require_owner(minter)

        to_norm = self._normalize(to)
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        self.journal.set_attr(self, "total_supply", self.total_supply + amount)
        self.journal.set_item(self.balances, to_norm, self.balances.get(to_norm, 0) + amount)

        logger.info(
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )

        return True

    # ==================== Helpers ====================

    def _move(self, from_norm: str, to_norm: str, amount: int) -> None:
        self.journal.set_item(self.balances, from_norm, self.balances.get(from_norm, 0) - amount)
        self.journal.set_item(self.balances, to_norm, self.balances.get(to_norm, 0) + amount)

        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": from_norm[:10],
                "to": to_norm[:10],
                "amount": amount,
            }
        )

    def _set_allowance(self, owner_norm: str, spender_norm: str, amount: int) -> None:
        if owner_norm not in self.allowances:
            self.journal.set_item(self.allowances, owner_norm, {})
        self.journal.set_item(self.allowances[owner_norm], spender_norm, amount)

    def _normalize(self, address: str) -> str:
        """Normalize address to lowercase."""
        return address.lower()

    def _validate_address(self, address: str, field: str) -> None:
        """Validate address is not zero."""
        if address == ZERO_ADDRESS or not address:
            raise TransferFailureError(f"ERC20: {field} is zero address")

    def _validate_amount(self, amount: int) -> None:
        """Validate amount is valid."""
        if amount < 0:
            raise TransferFailureError("ERC20: amount cannot be negative")
        if amount > UINT256_MAX:
            raise TransferFailureError("ERC20: amount exceeds uint256")

    def _require_owner(self, caller: str) -> None:
        """Require caller is owner."""
        if self._normalize(caller) != self.owner:
            raise PermissionDeniedError("ERC20: caller is not owner")


class ERC20Registry:
    """
    Registry of deployed ERC20 tokens.

    Acts as the fungible-token mover for the lending engine: any registered
    token can be moved with ``transfer_from(token, spender, from, to, amount)``.
    Every token shares the registry's journal, so engine transactions can
    undo token writes.
    """

    def __init__(self) -> None:
        self.deployed_tokens: dict[str, ERC20Token] = {}
        self.journal = UndoJournal()

    def attach_journal(self, journal: UndoJournal) -> None:
        self.journal = journal
        for token in self.deployed_tokens.values():
            token.journal = journal

    def create_token(
        self,
        creator: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        address: str = "",
    ) -> ERC20Token:
        """
        Create and register a new ERC20 token.

        Args:
            creator: Address creating the token (becomes owner)
            name: Token name
            symbol: Token symbol (ticker)
            decimals: Decimal places (default 18)
            address: Optional fixed contract address

        Returns:
            Deployed ERC20Token instance
        """
        token = ERC20Token(
            name=name,
            symbol=symbol,
            decimals=decimals,
            owner=creator,
            address=address,
            journal=self.journal,
        )
        self.deployed_tokens[token.address] = token

        logger.info(
            "ERC20 token created",
            extra={
                "event": "erc20.created",
                "address": token.address,
                "symbol": symbol,
                "creator": creator[:10],
            }
        )

        return token

    def get_token(self, address: str) -> ERC20Token:
        """
        Get a deployed token by address.

        Raises:
            NotFoundError: If no token is registered at address
        """
        token = self.deployed_tokens.get(address.lower())
        if token is None:
            raise NotFoundError(f"ERC20: token {address} not found")
        return token

    def is_registered(self, address: str) -> bool:
        return address.lower() in self.deployed_tokens

    def transfer_from(
        self, token: str, spender: str, from_addr: str, to_addr: str, amount: int
    ) -> bool:
        """Move ``amount`` of ``token`` using spender's allowance."""
        return self.get_token(token).transfer_from(spender, from_addr, to_addr, amount)
