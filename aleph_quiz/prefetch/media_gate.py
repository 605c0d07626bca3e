"""Barrier that waits for every media load of one item to settle."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Protocol, Sequence

from loguru import logger

from aleph_quiz.models import MediaStatus


class MediaLoader(Protocol):
    """Anything that can settle a media URL. Must not raise."""

    async def resolve(self, url: str) -> MediaStatus: ...


@dataclass(frozen=True)
class GateResult:
    """Outcome of one gate pass. Degraded indices point into the url list."""

    statuses: tuple[MediaStatus, ...]

    @property
    def degraded(self) -> frozenset[int]:
        return frozenset(
            index
            for index, status in enumerate(self.statuses)
            if status is not MediaStatus.LOADED
        )

    @property
    def all_loaded(self) -> bool:
        return not self.degraded


class MediaGate:
    """
    Resolve all media for an item and release once each one has settled.

    A failed load is recorded as degraded; the gate itself always resolves.
    By default it waits as long as the loader takes. Callers that pass a
    timeout get the statuses of the loads that finished in time, and the
    rest are cancelled and counted as FAILED.
    """

    def __init__(self, loader: MediaLoader):
        self.loader = loader

    async def open(self, urls: Sequence[str], timeout: float | None = None) -> GateResult:
        if not urls:
            return GateResult(statuses=())

        tasks = [asyncio.ensure_future(self.loader.resolve(url)) for url in urls]
        try:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        if pending:
            logger.warning(
                "Media not ready after {}s for {}/{} option(s), showing item anyway",
                timeout,
                len(pending),
                len(urls),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        statuses = []
        for url, task in zip(urls, tasks):
            if task in pending or task.cancelled():
                statuses.append(MediaStatus.FAILED)
            elif task.exception() is not None:
                logger.warning("Media loader raised for {}: {}", url, task.exception())
                statuses.append(MediaStatus.FAILED)
            else:
                statuses.append(task.result())

        result = GateResult(statuses=tuple(statuses))
        if result.degraded:
            logger.warning(
                "Media degraded for {}/{} option(s)", len(result.degraded), len(urls)
            )
        return result
