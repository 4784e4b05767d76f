# orchestration/story_cache.py
"""In-memory memoization of story requests."""

from __future__ import annotations

import json
from collections import OrderedDict
from collections.abc import Sequence

import structlog

from config import settings
from models.story_models import CacheEntry

logger = structlog.get_logger(__name__)


def make_cache_key(prompt: str, prior_choices: Sequence[str]) -> str:
    """Return a canonical, order-sensitive key for a request context."""
    return json.dumps(
        [prompt, list(prior_choices)], ensure_ascii=False, separators=(",", ":")
    )


class StoryCache:
    """LRU map from request context to parsed story output.

    A capacity of zero or less disables eviction.
    """

    def __init__(self, capacity: int = settings.STORY_CACHE_SIZE) -> None:
        self.capacity = capacity
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return entry

    def put(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry
        self._entries.move_to_end(key)
        if self.capacity > 0:
            while len(self._entries) > self.capacity:
                evicted_key, _ = self._entries.popitem(last=False)
                logger.debug("Evicted story cache entry.", key=evicted_key[:80])

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
