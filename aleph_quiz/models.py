"""
Quiz data model.

Quiz items arrive from the content generator as JSON and are validated into
immutable pydantic models, one per game type. Every item knows its answer key
(used for de-duplication), how to present its choices and which media it
needs before it can be shown.

Prepared items, statuses and the session view are plain frozen dataclasses:
they are produced by the prefetch buffer, never parsed from the wire.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GameType(str, Enum):
    """Kinds of quiz the generator can produce."""

    LETTERS = "LETTERS"  # identify the word containing a letter
    NIKKUD = "NIKKUD"  # complete the missing diacritic
    SENTENCES = "SENTENCES"  # complete the missing word

    @property
    def max_level(self) -> int:
        """Highest playable level of this game."""
        return MAX_LEVELS[self]


MAX_LEVELS = {
    GameType.LETTERS: 3,
    GameType.NIKKUD: 4,
    GameType.SENTENCES: 3,
}


class MediaStatus(str, Enum):
    LOADED = "loaded"
    FAILED = "failed"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETE = "complete"
    ERROR = "error"


class ViewState(str, Enum):
    """What the presentation layer should show right now."""

    PENDING = "pending"
    READY = "ready"
    ERROR = "error"
    COMPLETE = "complete"
    CLOSED = "closed"


# =============================================================================
# Quiz Items
# =============================================================================


class MediaRef(BaseModel):
    """A visual description that becomes an image URL once seeded."""

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(min_length=1)


@dataclass(frozen=True)
class QuizOption:
    """One answer choice as shown to the learner."""

    text: str
    media: MediaRef | None = None


class _QuizModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class LetterOption(_QuizModel):
    word: str = Field(min_length=1)
    is_correct: bool = Field(alias="isCorrect")
    image_prompt: str = Field(alias="imagePrompt", min_length=1)


class LetterQuestion(_QuizModel):
    """Pick the pictured word that starts with / ends with / contains a letter."""

    game: ClassVar[GameType] = GameType.LETTERS

    target_letter: str = Field(alias="targetLetter", min_length=1)
    question_text: str = Field(alias="questionText")
    options: tuple[LetterOption, ...] = Field(min_length=2)

    @model_validator(mode="after")
    def _has_correct_option(self) -> "LetterQuestion":
        if not any(option.is_correct for option in self.options):
            raise ValueError("letter question has no correct option")
        return self

    @property
    def answer_key(self) -> str:
        return next(option.word for option in self.options if option.is_correct)

    @property
    def prompt_text(self) -> str:
        return f"{self.question_text} {self.target_letter}"

    def choices(self) -> list[QuizOption]:
        return [
            QuizOption(text=option.word, media=MediaRef(prompt=option.image_prompt))
            for option in self.options
        ]

    def media_refs(self) -> list[MediaRef]:
        return [MediaRef(prompt=option.image_prompt) for option in self.options]

    def is_correct(self, choice_index: int) -> bool:
        return self.options[choice_index].is_correct


class NikkudQuestion(_QuizModel):
    """Fill the missing vowel mark into a pictured word."""

    game: ClassVar[GameType] = GameType.NIKKUD

    word_without_nikkud: str = Field(alias="wordWithoutNikkud")
    full_word: str = Field(alias="fullWord", min_length=1)
    missing_nikkud_name: str = Field(default="", alias="missingNikkudName")
    missing_nikkud_symbol: str = Field(alias="missingNikkudSymbol", min_length=1)
    options: tuple[str, ...] = Field(min_length=2)
    image_description: str = Field(alias="imageDescription", min_length=1)

    @model_validator(mode="after")
    def _symbol_in_options(self) -> "NikkudQuestion":
        if self.missing_nikkud_symbol not in self.options:
            raise ValueError("missing nikkud symbol is not among the options")
        return self

    @property
    def answer_key(self) -> str:
        return self.full_word

    @property
    def prompt_text(self) -> str:
        return f"{self.word_without_nikkud} ({self.missing_nikkud_name})"

    def choices(self) -> list[QuizOption]:
        return [QuizOption(text=symbol) for symbol in self.options]

    def media_refs(self) -> list[MediaRef]:
        return [MediaRef(prompt=self.image_description)]

    def is_correct(self, choice_index: int) -> bool:
        return self.options[choice_index] == self.missing_nikkud_symbol


class SentenceQuestion(_QuizModel):
    """Complete a sentence with the missing word."""

    game: ClassVar[GameType] = GameType.SENTENCES

    sentence_parts: tuple[str, str] = Field(alias="sentenceParts")
    missing_word: str = Field(alias="missingWord", min_length=1)
    options: tuple[str, ...] = Field(min_length=2)
    image_description: str = Field(alias="imageDescription", min_length=1)

    @model_validator(mode="after")
    def _missing_word_in_options(self) -> "SentenceQuestion":
        if self.missing_word not in self.options:
            raise ValueError("missing word is not among the options")
        return self

    @property
    def answer_key(self) -> str:
        return self.missing_word

    @property
    def prompt_text(self) -> str:
        before, after = self.sentence_parts
        return f"{before}____{after}"

    def choices(self) -> list[QuizOption]:
        return [QuizOption(text=word) for word in self.options]

    def media_refs(self) -> list[MediaRef]:
        return [MediaRef(prompt=self.image_description)]

    def is_correct(self, choice_index: int) -> bool:
        return self.options[choice_index] == self.missing_word


QuizItem = Union[LetterQuestion, NikkudQuestion, SentenceQuestion]

QUESTION_MODELS: dict[GameType, type[_QuizModel]] = {
    GameType.LETTERS: LetterQuestion,
    GameType.NIKKUD: NikkudQuestion,
    GameType.SENTENCES: SentenceQuestion,
}


# =============================================================================
# Buffer Records
# =============================================================================


@dataclass(frozen=True)
class PreparedItem:
    """
    A quiz item whose media has settled and is ready to display.

    cache_keys[i] and media_urls[i] belong to item.media_refs()[i]. The keys
    are fixed per instance so the same URLs are requested at display time as
    were warmed during preparation.
    """

    item: QuizItem
    cache_keys: tuple[str, ...]
    media_urls: tuple[str, ...]
    degraded: frozenset[int] = frozenset()
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def answer_key(self) -> str:
        return self.item.answer_key

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded)


@dataclass(frozen=True)
class SessionView:
    """Snapshot of what the learner should see."""

    state: ViewState
    item: PreparedItem | None = None
    correct_count: int = 0
    target_correct: int = 0
    error: str | None = None


@dataclass(frozen=True)
class SessionResult:
    """Handed to the completion callback when a level is finished."""

    level: int
    correct_count: int
    target_correct: int
    game: GameType | None = None
