"""Content sources that produce quiz items."""

from .gemini_source import GeminiContentSource, parse_json_payload
from .prompts import get_prompt

__all__ = [
    "GeminiContentSource",
    "get_prompt",
    "parse_json_payload",
]
