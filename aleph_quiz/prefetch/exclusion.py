"""Session-scoped memory of answers already handed out."""

from __future__ import annotations


class ExclusionTracker:
    """
    Growing set of correct answers the generator should not repeat.

    Answers are added when an item is generated, before it is shown, so the
    next request in the same refill burst already avoids them. Only clear()
    shrinks the set and that happens on session reset.
    """

    def __init__(self) -> None:
        self._keys: set[str] = set()

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def add(self, key: str) -> None:
        if key:
            self._keys.add(key)

    def snapshot(self) -> list[str]:
        """Sorted copy of the keys, safe to hand to the content source."""
        return sorted(self._keys)

    def clear(self) -> None:
        self._keys.clear()
