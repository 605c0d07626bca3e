"""Error types raised by aleph-quiz."""

from __future__ import annotations


class AlephQuizError(Exception):
    """Base class for all aleph-quiz errors."""


class GenerationError(AlephQuizError):
    """The content source could not produce a usable quiz item."""

    def __init__(self, message: str, level: int | None = None):
        super().__init__(message)
        self.level = level


class SessionStateError(AlephQuizError):
    """An operation was called in a session state that does not allow it."""


class QueueFullError(AlephQuizError):
    """A push was attempted on a ready queue already at capacity."""
