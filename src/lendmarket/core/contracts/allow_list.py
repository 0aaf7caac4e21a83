"""
Allow lists for restricted listings.

A lender can restrict who may borrow a listing by pointing it at an allow
list. Lists are owned by the address that created them; membership carries a
rank, and a rank of 0 means "not a member".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from ..lending_exceptions import InvalidParametersError, NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)


@dataclass
class AllowList:
    """A named set of addresses with per-member rank."""

    list_id: int
    owner: str
    name: str
    members: dict[str, int] = field(default_factory=dict)  # address -> rank


@dataclass
class AllowListRegistry:
    """
    Registry of allow lists.

    Usage:
        registry = AllowListRegistry()
        list_id = registry.create("0xowner", "guild", ["0xfriend"])
        assert registry.is_member(list_id, "0xfriend") == 1
    """

    lists: dict[int, AllowList] = field(default_factory=dict)
    next_list_id: int = 1

    def exists(self, list_id: int) -> bool:
        return list_id in self.lists

    def get(self, list_id: int) -> AllowList:
        allow_list = self.lists.get(list_id)
        if allow_list is None:
            raise NotFoundError(f"Allow list {list_id} not found")
        return allow_list

    def is_member(self, list_id: int, address: str) -> int:
        """Rank of address in the list; 0 when absent or the list does not exist."""
        allow_list = self.lists.get(list_id)
        if allow_list is None:
            return 0
        return allow_list.members.get(address.lower(), 0)

    def create(self, owner: str, name: str, addresses: Iterable[str] = ()) -> int:
        if not name:
            raise InvalidParametersError("Allow list name cannot be empty")

        list_id = self.next_list_id
        self.next_list_id += 1
        self.lists[list_id] = AllowList(list_id=list_id, owner=owner.lower(), name=name)
        self._set_members(self.lists[list_id], addresses, 1)

        logger.info(
            "Allow list created",
            extra={"event": "allow_list.created", "list_id": list_id, "owner": owner[:10]},
        )
        return list_id

    def add_members(self, caller: str, list_id: int, addresses: Iterable[str], rank: int = 1) -> None:
        if rank <= 0:
            raise InvalidParametersError("Allow list rank must be positive")
        allow_list = self._owned_list(caller, list_id)
        self._set_members(allow_list, addresses, rank)

    def remove_members(self, caller: str, list_id: int, addresses: Iterable[str]) -> None:
        allow_list = self._owned_list(caller, list_id)
        for address in addresses:
            allow_list.members.pop(address.lower(), None)

    def transfer_ownership(self, caller: str, list_id: int, new_owner: str) -> None:
        allow_list = self._owned_list(caller, list_id)
        allow_list.owner = new_owner.lower()

    def _owned_list(self, caller: str, list_id: int) -> AllowList:
        allow_list = self.get(list_id)
        if caller.lower() != allow_list.owner:
            raise PermissionDeniedError(f"Caller does not own allow list {list_id}")
        return allow_list

    @staticmethod
    def _set_members(allow_list: AllowList, addresses: Iterable[str], rank: int) -> None:
        for address in addresses:
            allow_list.members[address.lower()] = rank
