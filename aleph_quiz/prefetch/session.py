"""
Session Controller: the presentation layer's handle on the prefetch buffer.

Tracks progress towards the level's target, moves prepared items from the
ready queue to the screen and keeps the Fetch Coordinator running until the
level is complete.

Usage:
    controller = SessionController(source, MediaGate(loader), buffer_target=3)
    controller.start(level=1, target_correct=5)

    view = await controller.wait_for_ready()
    ...
    controller.advance(was_correct=True)
"""

from __future__ import annotations

import asyncio
from typing import Callable

from loguru import logger

from aleph_quiz.config import get_settings
from aleph_quiz.exceptions import SessionStateError
from aleph_quiz.models import (
    GameType,
    SessionResult,
    SessionStatus,
    SessionView,
    ViewState,
)
from aleph_quiz.prefetch.coordinator import ContentSource, FetchCoordinator, UrlBuilder
from aleph_quiz.prefetch.exclusion import ExclusionTracker
from aleph_quiz.prefetch.media_gate import MediaGate
from aleph_quiz.prefetch.ready_queue import ReadyQueue
from aleph_quiz.prefetch.state import SessionState


class SessionController:
    """
    Owns one learner's session and its prefetch buffer.

    Every start() replaces the session state and coordinator wholesale, so
    nothing from a previous level can leak into the new one. Work still in
    flight for an old session is discarded by the liveness check when it
    resumes, and close() cancels it along with the current fetch.

    Requires a running event loop: start(), advance() and retry() schedule
    background fetches.
    """

    def __init__(
        self,
        source: ContentSource,
        media_gate: MediaGate,
        *,
        buffer_target: int | None = None,
        on_complete: Callable[[SessionResult], None] | None = None,
        media_timeout: float | None = None,
        game: GameType | None = None,
        url_builder: UrlBuilder | None = None,
    ):
        """
        Initialize the controller.

        Args:
            source: Content source generating quiz items
            media_gate: Gate used to settle each item's media
            buffer_target: Ready queue capacity K (defaults to settings)
            on_complete: Called once when a session reaches its target
            media_timeout: Seconds to wait on media before showing the item anyway
            game: Game type reported in the completion result
            url_builder: Override for media URL construction
        """
        if buffer_target is None:
            buffer_target = get_settings().buffer_target_size
        if buffer_target < 1:
            raise ValueError(f"buffer_target must be >= 1, got {buffer_target}")

        self.source = source
        self.media_gate = media_gate
        self.buffer_target = buffer_target
        self.media_timeout = media_timeout
        self.game = game
        self._on_complete = on_complete
        self._url_builder = url_builder

        self._state: SessionState | None = None
        self._coordinator: FetchCoordinator | None = None
        self._retired: list[FetchCoordinator] = []
        self._changed = asyncio.Event()
        self._closed = False

    async def __aenter__(self) -> SessionController:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ========================================
    # Introspection
    # ========================================

    @property
    def state(self) -> SessionState | None:
        return self._state

    @property
    def coordinator(self) -> FetchCoordinator | None:
        return self._coordinator

    @property
    def status(self) -> SessionStatus | None:
        return self._state.status if self._state else None

    @property
    def exclusions(self) -> ExclusionTracker | None:
        return self._state.exclusions if self._state else None

    @property
    def queue(self) -> ReadyQueue | None:
        return self._state.queue if self._state else None

    # ========================================
    # Presentation API
    # ========================================

    def start(self, level: int, target_correct: int | None = None) -> SessionView:
        """Begin a fresh session for a level, discarding any previous one."""
        if self._closed:
            raise SessionStateError("controller is closed")
        if target_correct is None:
            target_correct = get_settings().session_target_correct
        if level < 1:
            raise ValueError(f"level must be >= 1, got {level}")
        if target_correct < 1:
            raise ValueError(f"target_correct must be >= 1, got {target_correct}")

        state = SessionState(
            level=level,
            target_correct=target_correct,
            queue=ReadyQueue(self.buffer_target),
        )
        self._retire_coordinator()
        self._state = state
        self._coordinator = self._build_coordinator(state)

        logger.info(
            "Session {} started: level {}, {} correct to finish, buffer {}",
            state.session_id,
            level,
            target_correct,
            self.buffer_target,
        )
        self._notify()
        self._coordinator.ensure_filled()
        return self.view()

    def current(self) -> SessionView:
        return self.view()

    def view(self) -> SessionView:
        """Snapshot of what the learner should see now."""
        state = self._state
        if state is None:
            return SessionView(state=ViewState.CLOSED if self._closed else ViewState.PENDING)

        common = {
            "correct_count": state.correct_count,
            "target_correct": state.target_correct,
        }
        if state.status is SessionStatus.COMPLETE:
            return SessionView(state=ViewState.COMPLETE, **common)
        if self._closed:
            return SessionView(state=ViewState.CLOSED, **common)
        if state.status is SessionStatus.ERROR:
            return SessionView(state=ViewState.ERROR, error=state.error, **common)
        if state.current is not None:
            return SessionView(state=ViewState.READY, item=state.current, **common)
        return SessionView(state=ViewState.PENDING, **common)

    def advance(self, was_correct: bool) -> SessionView:
        """
        Report the learner's answer to the current item.

        A wrong answer changes nothing; the item stays up for another try.
        A right answer counts towards the target and moves to the next item.
        """
        state = self._require_state()
        if not was_correct:
            return self.view()

        if self._closed:
            raise SessionStateError("controller is closed")
        if state.status is not SessionStatus.ACTIVE:
            raise SessionStateError(f"cannot advance a {state.status.value} session")
        if state.current is None:
            raise SessionStateError("no item is being shown")

        state.correct_count += 1
        if state.correct_count >= state.target_correct:
            self._complete(state)
            return self.view()

        state.current = state.queue.pop()
        if state.current is None:
            logger.debug("Ready queue empty, learner is waiting")
        self._notify()
        self._coordinator.ensure_filled()
        return self.view()

    def retry(self) -> SessionView:
        """Try again after an error, keeping level, progress and exclusions."""
        state = self._require_state()
        if self._closed:
            raise SessionStateError("controller is closed")
        if state.status is not SessionStatus.ERROR:
            raise SessionStateError("retry is only available after an error")

        state.status = SessionStatus.ACTIVE
        state.error = None
        logger.info("Session {} retrying level {}", state.session_id, state.level)
        self._notify()
        self._coordinator.ensure_filled()
        return self.view()

    # ========================================
    # Async helpers
    # ========================================

    async def wait_for_change(self) -> SessionView:
        """Suspend until the view changes, then return it."""
        await self._changed.wait()
        return self.view()

    async def wait_for_ready(self) -> SessionView:
        """Suspend while the view is PENDING (a closed controller is never PENDING)."""
        view = self.view()
        while view.state is ViewState.PENDING:
            view = await self.wait_for_change()
        return view

    async def drain(self) -> None:
        """Wait until no fetch task is running."""
        while self._coordinator is not None and not self._coordinator.is_idle:
            await self._coordinator.task

    async def close(self) -> None:
        """End the session and stop every outstanding fetch, old sessions included."""
        self._closed = True
        self._notify()

        coordinators = [*self._retired, self._coordinator]
        self._retired = []
        for coordinator in coordinators:
            if coordinator is not None:
                await coordinator.cancel()

    # ========================================
    # Coordinator callbacks
    # ========================================

    def _is_live(self, state: SessionState) -> bool:
        return not self._closed and state is self._state and state.is_active

    def _handle_item_ready(self, state: SessionState) -> None:
        if state.current is None:
            state.current = state.queue.pop()
            self._notify()

    def _handle_generation_failed(self, state: SessionState, error: Exception) -> None:
        if not state.has_nothing_to_show:
            return
        state.status = SessionStatus.ERROR
        state.error = str(error) or type(error).__name__
        logger.error(
            "Session {} has nothing to show after generation failure: {}",
            state.session_id,
            state.error,
        )
        self._notify()

    # ========================================
    # Internals
    # ========================================

    def _build_coordinator(self, state: SessionState) -> FetchCoordinator:
        kwargs = {}
        if self._url_builder is not None:
            kwargs["url_builder"] = self._url_builder
        return FetchCoordinator(
            state,
            self.source,
            self.media_gate,
            is_live=self._is_live,
            on_item_ready=self._handle_item_ready,
            on_generation_failed=self._handle_generation_failed,
            media_timeout=self.media_timeout,
            **kwargs,
        )

    def _retire_coordinator(self) -> None:
        self._retired = [c for c in self._retired if not c.is_idle]
        if self._coordinator is not None and not self._coordinator.is_idle:
            self._retired.append(self._coordinator)

    def _require_state(self) -> SessionState:
        if self._state is None:
            raise SessionStateError("session has not been started")
        return self._state

    def _complete(self, state: SessionState) -> None:
        state.status = SessionStatus.COMPLETE
        state.current = None
        state.queue.clear()
        logger.info(
            "Session {} complete: {}/{} correct at level {}",
            state.session_id,
            state.correct_count,
            state.target_correct,
            state.level,
        )
        self._notify()

        if self._on_complete is not None:
            self._on_complete(
                SessionResult(
                    level=state.level,
                    correct_count=state.correct_count,
                    target_correct=state.target_correct,
                    game=self.game,
                )
            )

    def _notify(self) -> None:
        self._changed.set()
        self._changed = asyncio.Event()
