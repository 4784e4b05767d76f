import pytest

from core.errors import ErrorKind, ParseError, StoryError
from parsing import extract_candidate_text, parse_story_response, split_story_and_choices


def _envelope(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_parse_story_response_extracts_story_and_choices():
    entry = parse_story_response(
        _envelope("The dragon roars. [Fight] [Flee] [Negotiate]")
    )
    assert entry.story_text == "The dragon roars."
    assert entry.choices == ["Fight", "Flee", "Negotiate"]
    assert "[" not in entry.story_text and "]" not in entry.story_text


def test_choices_keep_order_and_duplicates():
    entry = split_story_and_choices("[Run] The cave shakes. [Hide] [Run]\n")
    assert entry.choices == ["Run", "Hide", "Run"]
    assert entry.story_text == "The cave shakes."


def test_brackets_in_mid_text_are_removed_from_story():
    entry = split_story_and_choices("You may [Open the door] or wait.")
    assert entry.story_text == "You may  or wait."
    assert entry.choices == ["Open the door"]


def test_no_choices_is_invalid_response():
    with pytest.raises(ParseError) as excinfo:
        split_story_and_choices("The story simply ends here.")
    assert excinfo.value.kind is ErrorKind.INVALID_RESPONSE
    assert excinfo.value.retryable is False
    assert isinstance(excinfo.value, StoryError)


@pytest.mark.parametrize(
    "envelope",
    [
        None,
        {},
        {"candidates": []},
        {"candidates": [{}]},
        {"candidates": [{"content": {}}]},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{}]}}]},
        {"candidates": [{"content": {"parts": [{"text": ""}]}}]},
        {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
        {"candidates": "nope"},
    ],
)
def test_missing_candidate_text_is_invalid_response(envelope):
    with pytest.raises(ParseError) as excinfo:
        extract_candidate_text(envelope)
    assert excinfo.value.message == "Invalid API response format"


def test_extract_candidate_text_returns_first_part():
    envelope = {
        "candidates": [
            {"content": {"parts": [{"text": "first"}, {"text": "second"}]}},
            {"content": {"parts": [{"text": "other"}]}},
        ]
    }
    assert extract_candidate_text(envelope) == "first"


def test_nested_brackets_leave_no_artifacts():
    entry = split_story_and_choices("The [old] map [Go left [carefully]] ends.")
    assert entry.choices == ["old", "Go left carefully"]
    assert entry.story_text == "The  map  ends."
