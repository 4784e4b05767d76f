import json

from models.story_models import ConversationState, StorySegment
from storage.state_store import FileKeyValueStorage, MemoryKeyValueStorage, StateStore

KEY = "djx-story-state"


def _state() -> ConversationState:
    return ConversationState(
        prompt="A brave knight",
        current_story_text="The knight meets a dragon.",
        current_choices=["Fight", "Flee"],
        prior_choices=["Enter the forest"],
        history=[
            StorySegment(text="The knight rides out."),
            StorySegment(
                text="The knight meets a dragon.", choice_taken="Enter the forest"
            ),
        ],
    )


def test_save_then_load_round_trips():
    store = StateStore(MemoryKeyValueStorage(), key=KEY)
    state = _state()
    store.save(state)
    assert store.load() == state


def test_clear_then_load_returns_empty_state():
    storage = MemoryKeyValueStorage()
    store = StateStore(storage, key=KEY)
    store.save(_state())
    store.clear()
    assert KEY not in storage
    assert store.load() == ConversationState()


def test_saved_json_uses_browser_client_field_names():
    storage = MemoryKeyValueStorage()
    StateStore(storage, key=KEY).save(_state())
    data = json.loads(storage.get_item(KEY))
    assert set(data) == {"prompt", "story", "choices", "previousChoices", "storyHistory"}
    assert data["storyHistory"][0] == {"text": "The knight rides out.", "choice": None}


def test_load_accepts_state_written_by_browser_client():
    storage = MemoryKeyValueStorage()
    storage.set_item(
        KEY,
        json.dumps(
            {
                "prompt": "p",
                "story": "s",
                "choices": ["x"],
                "previousChoices": [],
                "storyHistory": [{"text": "s", "choice": None}],
            }
        ),
    )
    state = StateStore(storage, key=KEY).load()
    assert state.current_story_text == "s"
    assert state.history == [StorySegment(text="s")]


def test_corrupt_or_invalid_data_loads_empty_state():
    storage = MemoryKeyValueStorage()
    store = StateStore(storage, key=KEY)
    storage.set_item(KEY, "{not json")
    assert store.load() == ConversationState()
    storage.set_item(KEY, json.dumps({"choices": "not-a-list"}))
    assert store.load() == ConversationState()
    storage.set_item(KEY, json.dumps([1, 2, 3]))
    assert store.load() == ConversationState()


def test_file_storage_persists_across_instances(tmp_path):
    path = str(tmp_path / "nested" / "state.json")
    StateStore(FileKeyValueStorage(path), key=KEY).save(_state())

    reloaded = StateStore(FileKeyValueStorage(path), key=KEY).load()
    assert reloaded == _state()
    assert list(tmp_path.joinpath("nested").iterdir()) == [tmp_path / "nested" / "state.json"]


def test_file_storage_remove_keeps_other_keys(tmp_path):
    path = str(tmp_path / "state.json")
    storage = FileKeyValueStorage(path)
    storage.set_item("other", "value")
    storage.set_item(KEY, "{}")
    storage.remove_item(KEY)
    assert storage.get_item(KEY) is None
    assert storage.get_item("other") == "value"


def test_file_storage_treats_corrupt_file_as_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("garbage", encoding="utf-8")
    store = StateStore(FileKeyValueStorage(str(path)), key=KEY)
    assert store.load() == ConversationState()
    store.save(_state())
    assert store.load() == _state()
