"""
Prompts for quiz item generation.

One builder per game type. Each maps the numeric level onto the difficulty
ladder of that game, asks for concrete, easy to picture nouns (every item is
illustrated) and spells out the JSON shape the parser expects.
"""
from __future__ import annotations

from typing import Callable, Sequence

from aleph_quiz.models import GameType

# =============================================================================
# System Prompt (Applied to All Generation)
# =============================================================================

SYSTEM_PROMPT = """You write short Hebrew reading exercises for children aged 5-7.

RULES:
1. Use CONCRETE NOUNS (animals, objects, food) that are easy to draw.
2. Image descriptions are simple English phrases (e.g. "a red apple").
3. Exactly one option is correct; distractors must be plausible but wrong.
4. Output a single valid JSON object and nothing else.
"""

# =============================================================================
# Difficulty Ladders
# =============================================================================

LETTER_POSITIONS = {
    1: "STARTING with",
    2: "ENDING with",
}
LETTER_POSITION_DEFAULT = "CONTAINING"

NIKKUD_LEVELS = [
    "Simple: Patach, Kamatz, Hirik",
    "Medium: Hatafim",
    "Advanced: Tzeire, Holam, Shuruk",
    "Expert: Dagesh, Mapiq",
]

SENTENCE_COMPLEXITY = {
    1: "simple 3 word sentence, fully vocalized (Nikkud).",
    2: "longer 5+ word sentence, fully vocalized.",
}
SENTENCE_COMPLEXITY_DEFAULT = "sentence with NO Nikkud."


def _exclusion_clause(excluded: Sequence[str]) -> str:
    if not excluded:
        return ""
    return (
        "\nDo NOT use any of these as the correct answer (already used): "
        + ", ".join(excluded)
        + "."
    )


def letter_prompt(level: int, excluded: Sequence[str] = ()) -> str:
    position = LETTER_POSITIONS.get(level, LETTER_POSITION_DEFAULT)
    return f"""Generate a quiz for a child to identify a Hebrew word {position} a specific letter.
Use 4 options, exactly one correct.{_exclusion_clause(excluded)}

Return JSON:
{{
  "targetLetter": "<the single Hebrew letter>",
  "questionText": "<the question in Hebrew, e.g. 'איזו מילה מתחילה באות'>",
  "options": [
    {{"word": "<Hebrew noun>", "isCorrect": true, "imagePrompt": "<English visual description>"}}
  ]
}}"""


def nikkud_prompt(level: int, excluded: Sequence[str] = ()) -> str:
    description = NIKKUD_LEVELS[max(0, min(level - 1, len(NIKKUD_LEVELS) - 1))]
    return f"""Generate a 'Complete the Nikkud' question for Hebrew level: {description}.
Use a CONCRETE NOUN that is easy to visualize.{_exclusion_clause(excluded)}

Return JSON:
{{
  "wordWithoutNikkud": "<the word with '_' placed right AFTER the letter missing its nikkud, e.g. 'ש_לום'>",
  "fullWord": "<the complete, correctly vocalized word>",
  "missingNikkudName": "<name of the missing nikkud, e.g. 'Kamatz'>",
  "missingNikkudSymbol": "<the missing nikkud symbol>",
  "options": ["<4 nikkud symbols, one of them correct>"],
  "imageDescription": "<English visual description of the word>"
}}"""


def sentence_prompt(level: int, excluded: Sequence[str] = ()) -> str:
    complexity = SENTENCE_COMPLEXITY.get(level, SENTENCE_COMPLEXITY_DEFAULT)
    return f"""Generate a Hebrew sentence completion question for a 6 year old. {complexity}
The context should be visual.{_exclusion_clause(excluded)}

Return JSON:
{{
  "sentenceParts": ["<text before the gap>", "<text after the gap>"],
  "missingWord": "<the word that fits the gap>",
  "options": ["<4 words: the correct one and 3 distractors>"],
  "imageDescription": "<English scene description illustrating the sentence>"
}}
sentenceParts MUST have exactly 2 strings and must not contain the missing word."""


PROMPT_BUILDERS: dict[GameType, Callable[[int, Sequence[str]], str]] = {
    GameType.LETTERS: letter_prompt,
    GameType.NIKKUD: nikkud_prompt,
    GameType.SENTENCES: sentence_prompt,
}


def get_prompt(game: GameType, level: int, excluded: Sequence[str] = ()) -> str:
    """Build the generation prompt for a game type and level."""
    return PROMPT_BUILDERS[game](level, excluded)
