"""Linear undo/redo history over an opaque, immutable state value."""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class History(Generic[T]):
    """Ordered stack of committed states with a movable cursor.

    ``set_state`` either commits a new undo step (truncating any redo tail)
    or, with ``overwrite=True``, replaces the current entry in place.  The
    non-overwrite path skips updates whose result equals the current state.
    """

    def __init__(self, initial: T):
        self._entries: list[T] = [initial]
        self._index = 0

    @property
    def state(self) -> T:
        return self._entries[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    @property
    def index(self) -> int:
        return self._index

    def __len__(self) -> int:
        return len(self._entries)

    def set_state(self, updater: Callable[[T], T] | T, overwrite: bool = False) -> bool:
        """Apply ``updater`` to the current state.

        ``updater`` is either a function of the current state or the new
        state itself.  Returns True if the history changed.
        """
        current = self.state
        new_state = updater(current) if callable(updater) else updater

        if overwrite:
            self._entries[self._index] = new_state
            return True

        if new_state == current:
            return False

        del self._entries[self._index + 1 :]
        self._entries.append(new_state)
        self._index = len(self._entries) - 1
        return True

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        self._index -= 1
        logger.debug(f"Undo → entry {self._index}/{len(self._entries) - 1}")
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        self._index += 1
        logger.debug(f"Redo → entry {self._index}/{len(self._entries) - 1}")
        return True

    def reset(self, new_state: T) -> None:
        """Replace the whole stack with a single entry."""
        self._entries = [new_state]
        self._index = 0
