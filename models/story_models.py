# models/story_models.py
"""Pydantic models for conversation state and story results."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StoryPhase(str, Enum):
    """Orchestrator request lifecycle."""

    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class StorySegment(BaseModel):
    """One generated passage and the choice that led to it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str
    choice_taken: str | None = Field(default=None, alias="choice")


class ConversationState(BaseModel):
    """Everything needed to resume a session.

    Serialized by alias so the stored JSON keeps the field names used by
    the browser client (``story``, ``choices``, ``previousChoices``,
    ``storyHistory``).
    """

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = ""
    current_story_text: str = Field(default="", alias="story")
    current_choices: list[str] = Field(default_factory=list, alias="choices")
    prior_choices: list[str] = Field(default_factory=list, alias="previousChoices")
    history: list[StorySegment] = Field(default_factory=list, alias="storyHistory")


class CacheEntry(BaseModel):
    """Parsed model output for one request context."""

    model_config = ConfigDict(frozen=True)

    story_text: str
    choices: list[str]


class StoryResult(BaseModel):
    """What a successful story request resolves to."""

    story_text: str
    choices: list[str]
    from_cache: bool = False
