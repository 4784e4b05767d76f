"""Central package for storyteller data models."""

from .story_models import (
    CacheEntry,
    ConversationState,
    StoryPhase,
    StoryResult,
    StorySegment,
)

__all__ = [
    "CacheEntry",
    "ConversationState",
    "StoryPhase",
    "StoryResult",
    "StorySegment",
]
