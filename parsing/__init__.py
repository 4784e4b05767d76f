# parsing/__init__.py
"""Extraction of story text and choices from model output."""

from __future__ import annotations

import re
from typing import Any

import structlog

from core.errors import ParseError
from models.story_models import CacheEntry

logger = structlog.get_logger(__name__)

CHOICE_PATTERN = re.compile(r"\[(.*?)\]")
# Leftovers from nested or unbalanced brackets
STRAY_BRACKETS = re.compile(r"[\[\]]")

INVALID_FORMAT_MESSAGE = "Invalid API response format"
NO_CHOICES_MESSAGE = "No choices found in the story response"

__all__ = [
    "CHOICE_PATTERN",
    "ParseError",
    "extract_candidate_text",
    "parse_story_response",
    "split_story_and_choices",
]


def _index(container: Any, key: int) -> Any:
    if isinstance(container, list) and len(container) > key:
        return container[key]
    return None


def _field(container: Any, key: str) -> Any:
    if isinstance(container, dict):
        return container.get(key)
    return None


def extract_candidate_text(envelope: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise ``ParseError``."""
    candidate = _index(_field(envelope, "candidates"), 0)
    part = _index(_field(_field(candidate, "content"), "parts"), 0)
    text = _field(part, "text")
    if not isinstance(text, str) or not text:
        logger.error("Upstream envelope is missing candidate text.", envelope=envelope)
        raise ParseError(INVALID_FORMAT_MESSAGE)
    return text


def split_story_and_choices(raw_text: str) -> CacheEntry:
    """Separate bracketed choices from the narrative.

    Choices keep their order of appearance, duplicates included. The story
    is the text with every bracketed token removed, then stripped. Stray
    brackets left by nested or unbalanced tokens are dropped from both.
    """
    choices = [
        STRAY_BRACKETS.sub("", choice) for choice in CHOICE_PATTERN.findall(raw_text)
    ]
    if not choices:
        logger.warning(
            "Model output contained no bracketed choices.",
            snippet=raw_text[:200],
        )
        raise ParseError(NO_CHOICES_MESSAGE)
    story_text = STRAY_BRACKETS.sub("", CHOICE_PATTERN.sub("", raw_text)).strip()
    return CacheEntry(story_text=story_text, choices=choices)


def parse_story_response(envelope: Any) -> CacheEntry:
    """Validate an upstream envelope and return its story segment and choices."""
    return split_story_and_choices(extract_candidate_text(envelope))
