import asyncio
import io
import sys
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import main
from core.errors import ErrorKind, StoryError
from models.story_models import StorySegment
from orchestration import cli_runner
from rich.console import Console
from ui.rich_display import StoryDisplay


def _orchestrator(**overrides):
    values = dict(
        story="The dragon roars.",
        choices=[],
        history=[],
        refresh_connectivity=AsyncMock(return_value=True),
        start_new_story=AsyncMock(),
        select_choice=AsyncMock(),
        reset_session=AsyncMock(),
        acknowledge=MagicMock(),
        aclose=AsyncMock(),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _display(*answers):
    display = MagicMock()
    display.ask.side_effect = list(answers)
    return display


def test_main_closes_orchestrator(monkeypatch, tmp_path):
    orchestrator = _orchestrator()
    built_with = []

    def fake_build(state_file):
        built_with.append(state_file)
        return orchestrator

    monkeypatch.setattr(cli_runner, "build_orchestrator", fake_build)
    monkeypatch.setattr(cli_runner, "StoryDisplay", lambda: _display("q"))
    monkeypatch.setattr(cli_runner, "setup_logging", lambda: None)
    state_file = str(tmp_path / "state.json")
    monkeypatch.setattr(sys, "argv", ["prog", "--state-file", state_file])

    main.main()

    assert built_with == [state_file]
    orchestrator.aclose.assert_awaited_once()


def test_loop_selects_numbered_choice_then_starts_new_story():
    orchestrator = _orchestrator(
        choices=["Fight", "Flee"],
        refresh_connectivity=AsyncMock(return_value=False),
    )
    display = _display("2", "A quiet village", "q")

    asyncio.run(cli_runner._run(orchestrator, display, None, False))

    display.show_offline.assert_called_once()
    orchestrator.select_choice.assert_awaited_once_with(1)
    orchestrator.start_new_story.assert_awaited_once_with("A quiet village")
    assert orchestrator.acknowledge.call_count == 2


def test_initial_prompt_and_reset_flag():
    orchestrator = _orchestrator()
    display = _display("q")

    asyncio.run(cli_runner._run(orchestrator, display, "A haunted ship", True))

    orchestrator.reset_session.assert_awaited_once()
    orchestrator.start_new_story.assert_awaited_once_with("A haunted ship")


def test_story_errors_are_shown_not_raised():
    failure = StoryError(ErrorKind.CONFIGURATION, "API key is not configured")
    orchestrator = _orchestrator(start_new_story=AsyncMock(side_effect=failure))
    display = _display("A lost city", "q")

    asyncio.run(cli_runner._run(orchestrator, display, None, False))

    display.show_error.assert_called_once_with("API key is not configured")
    orchestrator.acknowledge.assert_called_once()


def test_saved_history_is_shown_on_resume():
    history = [StorySegment(text="Once upon a time.")]
    orchestrator = _orchestrator(history=history)
    display = _display("q")

    asyncio.run(cli_runner._run(orchestrator, display, None, False))

    display.show_history.assert_called_once_with(history)


def test_story_display_numbers_choices():
    console = Console(file=io.StringIO(), record=True, width=80)
    StoryDisplay(console).show_story("The dragon roars.", ["Fight", "Flee"])

    output = console.export_text()
    assert "The dragon roars." in output
    assert "1. Fight" in output
    assert "2. Flee" in output


def test_blank_answers_are_skipped():
    orchestrator = _orchestrator()
    display = _display("", "   ", "q")

    asyncio.run(cli_runner._run(orchestrator, display, None, False))

    orchestrator.start_new_story.assert_not_awaited()
    assert display.ask.call_count == 3
