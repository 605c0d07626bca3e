"""Unit tests for the Fetch Coordinator refill loop."""

import asyncio
from itertools import count

import pytest

from aleph_quiz.models import MediaStatus, SessionStatus
from aleph_quiz.prefetch.coordinator import FetchCoordinator
from aleph_quiz.prefetch.media_gate import MediaGate
from aleph_quiz.prefetch.ready_queue import ReadyQueue
from aleph_quiz.prefetch.state import SessionState


class Harness:
    """Coordinator wired to recording callbacks and a switchable liveness flag."""

    def __init__(self, source, loader, capacity=3, **kwargs):
        self.alive = True
        self.ready_events = []
        self.failures = []
        self.source = source
        self.state = SessionState(level=1, target_correct=5, queue=ReadyQueue(capacity))
        self.coordinator = FetchCoordinator(
            self.state,
            source,
            MediaGate(loader),
            is_live=lambda state: self.alive and state.is_active,
            on_item_ready=lambda state: self.ready_events.append(len(state.queue)),
            on_generation_failed=lambda state, error: self.failures.append(error),
            url_builder=lambda ref, key: f"img://{ref.prompt}?seed={key}",
            **kwargs,
        )

    async def run_until_idle(self):
        while not self.coordinator.is_idle:
            if self.source.pending:
                self.source.release()
            await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_fills_queue_to_capacity(source, media_loader):
    harness = Harness(source, media_loader, capacity=3)

    assert harness.coordinator.ensure_filled() is True
    await harness.coordinator.task

    assert len(harness.state.queue) == 3
    assert len(source.calls) == 3
    assert harness.ready_events == [1, 2, 3]
    assert harness.state.fetch_in_progress is False


@pytest.mark.asyncio
async def test_single_flight(make_source, media_loader):
    source = make_source(hold=True)
    harness = Harness(source, media_loader, capacity=3)

    assert harness.coordinator.ensure_filled() is True
    for _ in range(5):
        assert harness.coordinator.ensure_filled() is False
    await asyncio.sleep(0)

    assert len(source.calls) == 1
    assert harness.state.fetch_in_progress is True

    await harness.run_until_idle()

    assert source.max_in_flight == 1
    assert len(harness.state.queue) == 3


@pytest.mark.asyncio
async def test_no_fetch_when_full(source, media_loader):
    harness = Harness(source, media_loader, capacity=1)
    harness.coordinator.ensure_filled()
    await harness.coordinator.task

    assert harness.coordinator.ensure_filled() is False
    assert len(source.calls) == 1


@pytest.mark.asyncio
async def test_no_fetch_when_session_not_active(source, media_loader):
    harness = Harness(source, media_loader)
    harness.state.status = SessionStatus.COMPLETE

    assert harness.coordinator.ensure_filled() is False
    assert source.calls == []


@pytest.mark.asyncio
async def test_answers_excluded_before_display(source, media_loader):
    harness = Harness(source, media_loader, capacity=3)
    harness.coordinator.ensure_filled()
    await harness.coordinator.task

    excluded_per_call = [excluded for _, excluded in source.calls]
    assert excluded_per_call == [[], ["word-1"], ["word-1", "word-2"]]
    assert harness.state.exclusions.snapshot() == ["word-1", "word-2", "word-3"]


@pytest.mark.asyncio
async def test_cache_keys_pair_with_media(source, media_loader):
    keys = (f"k{n}" for n in count(1))
    harness = Harness(source, media_loader, capacity=1, key_factory=lambda: next(keys))
    harness.coordinator.ensure_filled()
    await harness.coordinator.task

    prepared = harness.state.queue.pop()
    assert prepared.cache_keys == ("k1", "k2", "k3", "k4")
    assert prepared.media_urls[1] == "img://a cat?seed=k2"
    assert media_loader.urls == list(prepared.media_urls)


@pytest.mark.asyncio
async def test_degraded_media_still_queued(source, make_loader):
    harness = Harness(source, make_loader(fail_matching="a cat"), capacity=1)
    harness.coordinator.ensure_filled()
    await harness.coordinator.task

    prepared = harness.state.queue.pop()
    assert prepared.degraded == frozenset({1})


@pytest.mark.asyncio
async def test_media_timeout_degrades_all_when_nothing_settles(source, make_loader):
    harness = Harness(source, make_loader(hold=True), capacity=1, media_timeout=0.01)
    harness.coordinator.ensure_filled()
    await harness.coordinator.task

    prepared = harness.state.queue.pop()
    assert prepared.degraded == frozenset({0, 1, 2, 3})


class CorrectPictureOnlyLoader:
    """Loads the correct option's picture and stalls on every other one."""

    async def resolve(self, url):
        if "picture of" not in url:
            await asyncio.Event().wait()
        return MediaStatus.LOADED


@pytest.mark.asyncio
async def test_media_timeout_keeps_pictures_that_loaded(source):
    harness = Harness(source, CorrectPictureOnlyLoader(), capacity=1, media_timeout=0.01)
    harness.coordinator.ensure_filled()
    await harness.coordinator.task

    prepared = harness.state.queue.pop()
    assert prepared.degraded == frozenset({1, 2, 3})


@pytest.mark.asyncio
async def test_stale_generation_result_discarded(make_source, media_loader):
    source = make_source(hold=True)
    harness = Harness(source, media_loader)
    harness.coordinator.ensure_filled()
    await asyncio.sleep(0)

    harness.alive = False
    source.release()
    await harness.coordinator.task

    assert harness.state.queue.is_empty
    assert len(harness.state.exclusions) == 0
    assert harness.ready_events == []
    assert len(source.calls) == 1
    assert harness.state.fetch_in_progress is False


@pytest.mark.asyncio
async def test_stale_result_after_media_discarded(source, make_loader):
    loader = make_loader(hold=True)
    harness = Harness(source, loader)
    harness.coordinator.ensure_filled()
    while not loader.urls:
        await asyncio.sleep(0)

    harness.alive = False
    loader.release_all()
    await harness.coordinator.task

    assert harness.state.queue.is_empty
    assert harness.ready_events == []


@pytest.mark.asyncio
async def test_generation_failure_reported_and_loop_stops(make_source, media_loader):
    source = make_source(fail_after=0)
    harness = Harness(source, media_loader)
    harness.coordinator.ensure_filled()
    await harness.coordinator.task

    assert len(harness.failures) == 1
    assert len(source.calls) == 1
    assert harness.state.fetch_in_progress is False


@pytest.mark.asyncio
async def test_failure_of_stale_session_not_reported(make_source, media_loader):
    source = make_source(hold=True, fail_after=0)
    harness = Harness(source, media_loader)
    harness.coordinator.ensure_filled()
    await asyncio.sleep(0)

    harness.alive = False
    source.release()
    await harness.coordinator.task

    assert harness.failures == []


@pytest.mark.asyncio
async def test_cancel_stops_outstanding_fetch(make_source, media_loader):
    source = make_source(hold=True)
    harness = Harness(source, media_loader)
    harness.coordinator.ensure_filled()
    await asyncio.sleep(0)

    await harness.coordinator.cancel()

    assert harness.coordinator.task.cancelled()
    assert source.in_flight == 0
    assert harness.state.fetch_in_progress is False
