"""
Speculative prefetch buffer for quiz sessions.

This package provides:
- MediaGate: waits for all of an item's media to load or fail
- ExclusionTracker: answers already handed out this session
- ReadyQueue: bounded FIFO of prepared items
- FetchCoordinator: single-flight loop that keeps the queue filled
- SessionController: progress tracking and the pull/advance interface
"""

from .coordinator import ContentSource, FetchCoordinator
from .exclusion import ExclusionTracker
from .media_gate import GateResult, MediaGate, MediaLoader
from .ready_queue import ReadyQueue
from .session import SessionController
from .state import SessionState

__all__ = [
    "ContentSource",
    "ExclusionTracker",
    "FetchCoordinator",
    "GateResult",
    "MediaGate",
    "MediaLoader",
    "ReadyQueue",
    "SessionController",
    "SessionState",
]
