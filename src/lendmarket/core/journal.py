"""
Operation-scoped undo journal.

State owners write through the journal instead of assigning directly. While
a transaction is open every write first records how to put the touched
entry back; ``rollback()`` replays those records newest first, ``commit()``
drops them. Outside a transaction writes are applied without recording.

Only touched entries are recorded, so the cost of an operation is
proportional to what it changes rather than to the size of the state.

Usage:
    journal = UndoJournal()
    journal.begin()
    journal.set_item(balances, "0xabc", 10)
    journal.rollback()  # balances no longer has "0xabc"
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Callable, MutableMapping, MutableSet

logger = logging.getLogger(__name__)

_MISSING = object()


def _restore_item(mapping: MutableMapping, key: Any, prior: Any) -> None:
    if prior is _MISSING:
        mapping.pop(key, None)
    else:
        mapping[key] = prior


def _restore_member(members: MutableSet, item: Any, was_member: bool) -> None:
    if was_member:
        members.add(item)
    else:
        members.discard(item)


class UndoJournal:
    """Records inverse writes for the currently open transaction."""

    def __init__(self) -> None:
        self.active = False
        self._undo: list[Callable[[], None]] = []

    def __len__(self) -> int:
        return len(self._undo)

    # ==================== Transaction boundary ====================

    def begin(self) -> None:
        if self.active:
            raise RuntimeError("Journal already has an open transaction")
        self._undo = []
        self.active = True

    def commit(self) -> None:
        self._undo = []
        self.active = False

    def rollback(self) -> int:
        """Undo every recorded write; returns how many were undone."""
        undone = len(self._undo)
        while self._undo:
            self._undo.pop()()
        self.active = False
        logger.debug(
            "Journal rolled back",
            extra={"event": "journal.rollback", "writes": undone},
        )
        return undone

    # ==================== Writes ====================

    def set_item(self, mapping: MutableMapping, key: Any, value: Any) -> None:
        self._record_item(mapping, key)
        mapping[key] = value

    def pop_item(self, mapping: MutableMapping, key: Any) -> Any:
        """Remove ``key`` if present and return its value (None when absent)."""
        if key not in mapping:
            return None
        self._record_item(mapping, key)
        return mapping.pop(key)

    def set_attr(self, obj: Any, name: str, value: Any) -> None:
        if self.active:
            self._undo.append(partial(setattr, obj, name, getattr(obj, name)))
        setattr(obj, name, value)

    def add_member(self, members: MutableSet, item: Any) -> None:
        self._record_member(members, item)
        members.add(item)

    def discard_member(self, members: MutableSet, item: Any) -> None:
        self._record_member(members, item)
        members.discard(item)

    def _record_item(self, mapping: MutableMapping, key: Any) -> None:
        if self.active:
            self._undo.append(partial(_restore_item, mapping, key, mapping.get(key, _MISSING)))

    def _record_member(self, members: MutableSet, item: Any) -> None:
        if self.active:
            self._undo.append(partial(_restore_member, members, item, item in members))
