"""
Learner progress: coins, badges and unlocked levels.

Stored as a small JSON file. The prefetch buffer never touches it; the CLI
hands record_completion to the session controller as its completion callback.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from aleph_quiz.config import get_settings
from aleph_quiz.models import GameType, SessionResult

COINS_PER_LEVEL = 10
BADGE_LEVELS = {1: "beginner", 3: "champion"}


def _initial_levels() -> dict[GameType, int]:
    return {game: 1 for game in GameType}


class UserProgress(BaseModel):
    coins: int = 0
    badges: list[str] = Field(default_factory=list)
    unlocked_levels: dict[GameType, int] = Field(default_factory=_initial_levels)

    def unlocked(self, game: GameType) -> int:
        return min(self.unlocked_levels.get(game, 1), game.max_level)


class ProgressStore:
    """Load and save UserProgress to a JSON file."""

    def __init__(self, path: str | Path | None = None):
        if path is None:
            path = get_settings().progress_file
        self.path = Path(path).expanduser()
        self.progress = self.load()

    def load(self) -> UserProgress:
        if not self.path.exists():
            return UserProgress()
        try:
            return UserProgress.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable progress file {}: {}", self.path, e)
            return UserProgress()

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.progress.model_dump_json(indent=2), encoding="utf-8")

    def reset(self) -> None:
        self.progress = UserProgress()
        if self.path.exists():
            self.path.unlink()

    def record_completion(self, result: SessionResult) -> UserProgress:
        """
        Award a completed level.

        Grants coins, unlocks the next level when the highest unlocked one was
        just beaten (up to the game's last level) and hands out the level
        badges once each.
        """
        if result.game is None:
            logger.warning("Completion without a game type, nothing recorded")
            return self.progress

        progress = self.progress
        game = result.game
        progress.coins += COINS_PER_LEVEL

        highest = progress.unlocked(game)
        if result.level == highest and highest < game.max_level:
            progress.unlocked_levels[game] = highest + 1

        suffix = BADGE_LEVELS.get(result.level)
        if suffix:
            badge = f"{game.value} {suffix}"
            if badge not in progress.badges:
                progress.badges.append(badge)

        self.save()
        logger.info(
            "Recorded {} level {}: {} coins, {} badge(s)",
            game.value,
            result.level,
            progress.coins,
            len(progress.badges),
        )
        return progress
