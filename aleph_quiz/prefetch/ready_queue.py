"""Bounded FIFO of prepared items waiting to be shown."""

from __future__ import annotations

from collections import deque

from aleph_quiz.exceptions import QueueFullError
from aleph_quiz.models import PreparedItem


class ReadyQueue:
    """FIFO holding at most `capacity` prepared items."""

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._items: deque[PreparedItem] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(tuple(self._items))

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.capacity

    @property
    def is_empty(self) -> bool:
        return not self._items

    def push(self, item: PreparedItem) -> None:
        if self.is_full:
            raise QueueFullError(
                f"ready queue already holds {self.capacity} item(s)"
            )
        self._items.append(item)

    def pop(self) -> PreparedItem | None:
        """Oldest item, or None when empty."""
        if not self._items:
            return None
        return self._items.popleft()

    def clear(self) -> None:
        self._items.clear()
