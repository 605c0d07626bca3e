"""Per-session mutable state owned by one SessionController."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import count

from aleph_quiz.models import PreparedItem, SessionStatus
from aleph_quiz.prefetch.exclusion import ExclusionTracker
from aleph_quiz.prefetch.ready_queue import ReadyQueue

_session_ids = count(1)


@dataclass(eq=False)
class SessionState:
    """
    Everything one session mutates.

    A new instance is built on every start(); in-flight work holds a
    reference to the instance it was started for and compares it against the
    controller's current one before touching anything.
    """

    level: int
    target_correct: int
    queue: ReadyQueue
    exclusions: ExclusionTracker = field(default_factory=ExclusionTracker)
    status: SessionStatus = SessionStatus.ACTIVE
    correct_count: int = 0
    current: PreparedItem | None = None
    fetch_in_progress: bool = False
    error: str | None = None
    session_id: int = field(default_factory=lambda: next(_session_ids))

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    @property
    def has_nothing_to_show(self) -> bool:
        return self.current is None and self.queue.is_empty
