# orchestration/cli_runner.py
"""Command-line runner for the story orchestrator."""

from __future__ import annotations

import asyncio

import structlog

from config import STATE_FILE_PATH, settings
from core.errors import StoryError
from orchestration.story_orchestrator import StoryOrchestrator
from storage.state_store import FileKeyValueStorage, StateStore
from ui.rich_display import StoryDisplay
from utils.logging import setup_logging

logger = structlog.get_logger(__name__)

HELP_TEXT = "Enter a choice number, 'r' to reset, 'q' to quit, or type a new prompt."


def build_orchestrator(state_file: str = STATE_FILE_PATH) -> StoryOrchestrator:
    """Create an orchestrator that persists its session to ``state_file``."""
    store = StateStore(FileKeyValueStorage(state_file), key=settings.STORAGE_KEY)
    return StoryOrchestrator(settings, store=store)


async def _attempt(display: StoryDisplay, orchestrator: StoryOrchestrator, action) -> None:
    try:
        await action
    except StoryError as err:
        display.show_error(err.message)
    finally:
        orchestrator.acknowledge()


async def _run(
    orchestrator: StoryOrchestrator,
    display: StoryDisplay,
    prompt: str | None,
    reset: bool,
) -> None:
    if reset:
        await orchestrator.reset_session()
        display.show_info("Session cleared.")

    if not await orchestrator.refresh_connectivity():
        display.show_offline()

    if prompt:
        await _attempt(display, orchestrator, orchestrator.start_new_story(prompt))
    elif orchestrator.history:
        display.show_info("Resuming your saved adventure.")
        display.show_history(orchestrator.history)

    while True:
        if orchestrator.choices:
            display.show_story(orchestrator.story, orchestrator.choices)
            answer = (await asyncio.to_thread(display.ask, HELP_TEXT)).strip()
        else:
            answer = (
                await asyncio.to_thread(display.ask, "Enter a story prompt ('q' to quit):")
            ).strip()

        if not answer:
            continue
        if answer.lower() in {"q", "quit", "exit"}:
            return
        if answer.lower() == "r":
            await orchestrator.reset_session()
            display.show_info("Session cleared.")
            continue
        if answer.isdigit() and orchestrator.choices:
            result = orchestrator.select_choice(int(answer) - 1)
            await _attempt(display, orchestrator, result)
            continue
        await _attempt(display, orchestrator, orchestrator.start_new_story(answer))


def run(prompt: str | None = None, reset: bool = False, state_file: str = STATE_FILE_PATH) -> None:
    """Initialize the orchestrator and run the interactive story loop."""
    setup_logging()
    orchestrator = build_orchestrator(state_file)
    display = StoryDisplay()

    async def _main() -> None:
        try:
            await _run(orchestrator, display, prompt, reset)
        finally:
            await orchestrator.aclose()

    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        logger.info("Storyteller shutting down gracefully due to KeyboardInterrupt...")
    except Exception as main_err:  # pragma: no cover - entry point catch
        logger.critical(
            "Storyteller encountered an unhandled exception: %s",
            main_err,
            exc_info=True,
        )
