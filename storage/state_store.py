# storage/state_store.py
"""Durable persistence of the conversation state."""

from __future__ import annotations

import json
import os
import tempfile
from typing import Protocol

import structlog
from pydantic import ValidationError

from config import STATE_FILE_PATH, settings
from models.story_models import ConversationState

logger = structlog.get_logger(__name__)


class KeyValueStorage(Protocol):
    """Minimal string key-value storage."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryKeyValueStorage:
    """Dict-backed storage that lives as long as the process."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._items


class FileKeyValueStorage:
    """Storage kept in a single JSON object file.

    Every write replaces the whole file through a temporary file in the same
    directory, so readers see either the old or the new contents.
    """

    def __init__(self, file_path: str = STATE_FILE_PATH) -> None:
        self.file_path = file_path

    def _read_all(self) -> dict[str, str]:
        if not os.path.exists(self.file_path):
            return {}
        try:
            with open(self.file_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(
                "Could not read storage file. Treating it as empty.",
                file_path=self.file_path,
                error=str(e),
            )
            return {}
        if not isinstance(data, dict):
            logger.warning(
                "Storage file does not hold a JSON object. Treating it as empty.",
                file_path=self.file_path,
            )
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, items: dict[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self.file_path))
        os.makedirs(directory, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=directory, prefix=".storage-", suffix=".tmp", text=True
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, ensure_ascii=False)
            os.replace(temp_path, self.file_path)
        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

    def get_item(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._read_all()
        items[key] = value
        self._write_all(items)

    def remove_item(self, key: str) -> None:
        items = self._read_all()
        if key in items:
            del items[key]
            self._write_all(items)


class StateStore:
    """Save, load and clear the :class:`ConversationState` under one key."""

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = settings.STORAGE_KEY,
    ) -> None:
        self.storage = storage
        self.key = key

    def save(self, state: ConversationState) -> None:
        self.storage.set_item(self.key, state.model_dump_json(by_alias=True))

    def load(self) -> ConversationState:
        """Return the stored state, or an empty one if absent or unreadable."""
        raw = self.storage.get_item(self.key)
        if raw is None:
            return ConversationState()
        try:
            return ConversationState.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(
                "Stored conversation state is corrupt. Starting fresh.",
                key=self.key,
                error=str(e),
            )
            return ConversationState()

    def clear(self) -> None:
        self.storage.remove_item(self.key)
