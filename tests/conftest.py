"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures and test doubles
for all tests.
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from aleph_quiz.config import get_settings  # noqa: E402
from aleph_quiz.exceptions import GenerationError  # noqa: E402
from aleph_quiz.models import LetterQuestion, MediaStatus, SentenceQuestion  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: End-to-end session tests with fakes")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Isolate every test from the developer's .env and cached settings."""
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Item Factories
# =============================================================================


def make_letter_item(word: str = "כלב", letter: str = "כ") -> LetterQuestion:
    return LetterQuestion.model_validate(
        {
            "targetLetter": letter,
            "questionText": "איזו מילה מתחילה באות",
            "options": [
                {"word": word, "isCorrect": True, "imagePrompt": f"picture of {word}"},
                {"word": "חתול", "isCorrect": False, "imagePrompt": "a cat"},
                {"word": "תפוח", "isCorrect": False, "imagePrompt": "a red apple"},
                {"word": "בית", "isCorrect": False, "imagePrompt": "a small house"},
            ],
        }
    )


def make_sentence_item(word: str = "אוכל") -> SentenceQuestion:
    return SentenceQuestion.model_validate(
        {
            "sentenceParts": ["הַכֶּלֶב ", " עֶצֶם"],
            "missingWord": word,
            "options": [word, "שׁוֹתֶה", "רָץ", "יָשֵׁן"],
            "imageDescription": "a dog eating a bone",
        }
    )


@pytest.fixture
def letter_item():
    return make_letter_item()


@pytest.fixture
def sentence_item():
    return make_sentence_item()


# =============================================================================
# Test Doubles
# =============================================================================


class FakeContentSource:
    """
    Controllable content source.

    Returns letter items with answers word-1, word-2, ... Set hold=True to
    park every call until release() is called; fail_after=n makes every call
    after the first n successful ones raise.
    """

    def __init__(self, hold: bool = False, fail_after: int | None = None):
        self.hold = hold
        self.fail_after = fail_after
        self.calls: list[tuple[int, list[str]]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.produced = 0
        self._waiting: list[asyncio.Event] = []

    @property
    def pending(self) -> int:
        return len(self._waiting)

    def release(self) -> None:
        self._waiting.pop(0).set()

    async def generate(self, level: int, excluded: list[str]):
        self.calls.append((level, list(excluded)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.hold:
                event = asyncio.Event()
                self._waiting.append(event)
                await event.wait()
            else:
                await asyncio.sleep(0)

            if self.fail_after is not None and self.produced >= self.fail_after:
                raise GenerationError("model unavailable", level=level)

            self.produced += 1
            return make_letter_item(word=f"word-{self.produced}")
        finally:
            self.in_flight -= 1


class FakeMediaLoader:
    """Media loader that records URLs. Failing URLs are matched by substring."""

    def __init__(self, fail_matching: str | None = None, hold: bool = False):
        self.fail_matching = fail_matching
        self.hold = hold
        self.urls: list[str] = []
        self._release = asyncio.Event()

    def release_all(self) -> None:
        self._release.set()

    async def resolve(self, url: str) -> MediaStatus:
        self.urls.append(url)
        if self.hold:
            await self._release.wait()
        if self.fail_matching and self.fail_matching in url:
            return MediaStatus.FAILED
        return MediaStatus.LOADED


@pytest.fixture
def source():
    return FakeContentSource()


@pytest.fixture
def make_source():
    return FakeContentSource


@pytest.fixture
def media_loader():
    return FakeMediaLoader()


@pytest.fixture
def make_loader():
    return FakeMediaLoader


@pytest.fixture
def make_item():
    return make_letter_item


async def _settle(controller, source: FakeContentSource | None = None, max_rounds: int = 1000) -> None:
    """Let background fetches run to completion, releasing held source calls."""
    for _ in range(max_rounds):
        coordinator = controller.coordinator
        if coordinator is None or coordinator.is_idle:
            return
        if source is not None and source.pending:
            source.release()
        await asyncio.sleep(0)
    raise AssertionError("fetch did not settle")


@pytest.fixture
def settle():
    return _settle
