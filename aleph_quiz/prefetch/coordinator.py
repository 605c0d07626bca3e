"""
Fetch Coordinator: keeps the ready queue topped up.

One background task per refill burst. Each pass asks the content source for
a single item, records its answer in the exclusion tracker, waits for its
media to settle and pushes it onto the ready queue. The task keeps going
while the session is live and the queue has room, then exits; the next
ensure_filled() starts a new one.

At most one content source call is outstanding per coordinator: the
session's fetch_in_progress flag is held for the lifetime of the task.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol

from loguru import logger

from aleph_quiz.media import build_media_url, new_cache_key
from aleph_quiz.models import MediaRef, PreparedItem, QuizItem
from aleph_quiz.prefetch.media_gate import MediaGate
from aleph_quiz.prefetch.state import SessionState


class ContentSource(Protocol):
    """Produces one quiz item for a level, avoiding the excluded answers."""

    async def generate(self, level: int, excluded: list[str]) -> QuizItem: ...


LivenessCheck = Callable[[SessionState], bool]
UrlBuilder = Callable[[MediaRef, str], str]


class FetchCoordinator:
    """Single-flight refill loop bound to one session."""

    def __init__(
        self,
        state: SessionState,
        source: ContentSource,
        gate: MediaGate,
        *,
        is_live: LivenessCheck,
        on_item_ready: Callable[[SessionState], None],
        on_generation_failed: Callable[[SessionState, Exception], None],
        media_timeout: float | None = None,
        url_builder: UrlBuilder = build_media_url,
        key_factory: Callable[[], str] = new_cache_key,
    ):
        self.state = state
        self.source = source
        self.gate = gate
        self.media_timeout = media_timeout
        self._is_live = is_live
        self._on_item_ready = on_item_ready
        self._on_generation_failed = on_generation_failed
        self._url_builder = url_builder
        self._key_factory = key_factory
        self._task: asyncio.Task[None] | None = None

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    @property
    def is_idle(self) -> bool:
        return self._task is None or self._task.done()

    def ensure_filled(self) -> bool:
        """
        Start a refill task unless one is running or none is needed.

        Safe to call any number of times.

        Returns:
            True if a new task was started
        """
        state = self.state
        if not self._is_live(state) or state.fetch_in_progress or state.queue.is_full:
            return False

        state.fetch_in_progress = True
        self._task = asyncio.get_running_loop().create_task(
            self._fill_loop(),
            name=f"aleph-fill-{state.session_id}",
        )
        return True

    async def cancel(self) -> None:
        """Cancel the running task, if any, and wait for it to unwind."""
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _fill_loop(self) -> None:
        state = self.state
        try:
            while True:
                prepared = await self._fetch_one()
                if prepared is None:
                    return

                state.queue.push(prepared)
                logger.debug(
                    "Queued '{}' for session {} ({}/{})",
                    prepared.answer_key,
                    state.session_id,
                    len(state.queue),
                    state.queue.capacity,
                )
                self._on_item_ready(state)

                if not self._is_live(state) or state.queue.is_full:
                    return
        finally:
            state.fetch_in_progress = False

    async def _fetch_one(self) -> PreparedItem | None:
        """Generate and gate one item. None means stop the loop."""
        state = self.state
        excluded = state.exclusions.snapshot()
        logger.debug(
            "Requesting item for level {} ({} excluded)", state.level, len(excluded)
        )

        try:
            item = await self.source.generate(state.level, excluded)
        except Exception as e:
            if not self._is_live(state):
                logger.debug("Ignoring failure from stale session {}: {}", state.session_id, e)
                return None
            logger.warning("Generation failed for level {}: {}", state.level, e)
            self._on_generation_failed(state, e)
            return None

        if not self._is_live(state):
            logger.debug("Discarding stale item '{}'", item.answer_key)
            return None

        # Excluded before display so the next request in this burst skips it.
        state.exclusions.add(item.answer_key)

        refs = item.media_refs()
        keys = tuple(self._key_factory() for _ in refs)
        urls = tuple(self._url_builder(ref, key) for ref, key in zip(refs, keys))
        gate_result = await self.gate.open(urls, timeout=self.media_timeout)

        if not self._is_live(state):
            logger.debug("Discarding stale item '{}' after media load", item.answer_key)
            return None

        return PreparedItem(
            item=item,
            cache_keys=keys,
            media_urls=urls,
            degraded=gate_result.degraded,
        )
