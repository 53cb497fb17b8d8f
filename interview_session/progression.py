"""Pointer and lock logic over a round's ordered items."""
from __future__ import annotations

from typing import Optional

from .errors import InvalidTransition
from .models import Item, Navigation, Round


class ItemProgression:
    """Operates in place on ``round_.current_index``; performs no I/O.

    Only the current item is ever answerable. ``review_answered`` additionally
    lets clients view items that were already submitted.
    """

    def __init__(self, round_: Round, navigation: Navigation = "review_answered") -> None:
        self._round = round_
        self.navigation = navigation

    @property
    def current_index(self) -> int:
        return self._round.current_index

    @property
    def total(self) -> int:
        return len(self._round.items)

    def is_exhausted(self) -> bool:
        return self._round.current_index >= len(self._round.items)

    def current_item(self) -> Optional[Item]:
        if self.is_exhausted():
            return None
        return self._round.items[self._round.current_index]

    def advance(self) -> Optional[Item]:
        if self.is_exhausted():
            raise InvalidTransition(f"{self._round.kind} round has no item to advance past")
        self._round.current_index += 1
        return self.current_item()

    def is_locked(self, index: int) -> bool:
        """True when the item at ``index`` cannot be answered."""

        if self._round.status == "completed":
            return True
        return index != self._round.current_index

    def is_viewable(self, index: int) -> bool:
        if index < 0 or index >= len(self._round.items):
            return False
        if index == self._round.current_index and self._round.status != "completed":
            return True
        if self.navigation == "current_only":
            return False
        return index < self._round.current_index


__all__ = ["ItemProgression"]
