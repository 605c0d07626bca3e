"""
Gemini-backed content source.

Asks the model for one quiz item per call and validates the JSON it returns
into the game's item model. The SDK call is blocking, so it runs in a worker
thread to keep the event loop (and the rest of the prefetch buffer) moving.

Usage:
    source = GeminiContentSource(GameType.LETTERS)
    item = await source.generate(level=1, excluded=["כלב"])
"""
from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Sequence

from loguru import logger
from pydantic import ValidationError

from aleph_quiz.config import get_settings
from aleph_quiz.exceptions import GenerationError
from aleph_quiz.generation.prompts import SYSTEM_PROMPT, get_prompt
from aleph_quiz.models import QUESTION_MODELS, GameType, QuizItem


class GeminiContentSource:
    """Generate quiz items for one game type with Gemini."""

    def __init__(
        self,
        game: GameType,
        api_key: str | None = None,
        model_name: str | None = None,
        temperature: float | None = None,
    ):
        """
        Initialize the source.

        Args:
            game: Which kind of question to generate
            api_key: Gemini API key (defaults to settings)
            model_name: Model name (defaults to settings)
            temperature: Sampling temperature (defaults to settings)
        """
        settings = get_settings()
        self.game = game
        self.api_key = api_key or settings.gemini_api_key
        self.model_name = model_name or settings.ai_model
        self.temperature = (
            temperature if temperature is not None else settings.generation_temperature
        )

        if not self.api_key:
            raise ValueError("Gemini API key required")

        self._client = None
        logger.debug("GeminiContentSource ready (game={}, model={})", game.value, self.model_name)

    @property
    def client(self):
        """Lazy-load Gemini client."""
        if self._client is None:
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._client = genai.GenerativeModel(
                model_name=self.model_name,
                system_instruction=SYSTEM_PROMPT,
            )
        return self._client

    async def generate(self, level: int, excluded: Sequence[str]) -> QuizItem:
        """
        Generate one quiz item.

        Args:
            level: Difficulty level (1 = easiest)
            excluded: Answers the model should avoid (best effort)

        Returns:
            Validated quiz item

        Raises:
            GenerationError: If the call fails or the payload is unusable
        """
        prompt = get_prompt(self.game, level, list(excluded))

        try:
            response = await asyncio.to_thread(
                self.client.generate_content,
                prompt,
                generation_config={
                    "temperature": self.temperature,
                    "response_mime_type": "application/json",
                },
            )
            text = response.text
        except Exception as e:
            raise GenerationError(f"Gemini request failed: {e}", level=level) from e

        return self.parse_item(text, level)

    def parse_item(self, text: str | None, level: int) -> QuizItem:
        """Validate raw model output into the game's item model."""
        data = parse_json_payload(text)
        if data is None:
            raise GenerationError("Gemini returned no JSON object", level=level)

        model = QUESTION_MODELS[self.game]
        try:
            item = model.model_validate(data)
        except ValidationError as e:
            raise GenerationError(
                f"Gemini returned an invalid {self.game.value} item: {e.error_count()} error(s)",
                level=level,
            ) from e

        logger.debug("Generated {} item '{}'", self.game.value, item.answer_key)
        return item


def parse_json_payload(text: str | None) -> dict[str, Any] | None:
    """Extract a JSON object from model output, tolerating code fences."""
    if not text:
        return None

    candidate = text.strip()
    code_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", candidate)
    if code_match:
        candidate = code_match.group(1).strip()
    else:
        json_match = re.search(r"\{[\s\S]*\}", candidate)
        if json_match:
            candidate = json_match.group(0)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None
