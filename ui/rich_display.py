# ui/rich_display.py
"""Terminal rendering of the story, its choices and errors."""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from models.story_models import StorySegment


class StoryDisplay:
    """Renders the current story state to the terminal with Rich."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def show_offline(self) -> None:
        self.console.print(
            Text("You are currently offline. Some features may be limited.", style="bold white on red")
        )

    def show_history(self, history: list[StorySegment]) -> None:
        for segment in history[:-1]:
            if segment.choice_taken:
                self.console.print(Text(f"> {segment.choice_taken}", style="yellow"))
            self.console.print(Text(segment.text, style="dim"))

    def show_story(self, story: str, choices: list[str]) -> None:
        lines = [
            Text(f"{index}. {choice}", style="bold yellow")
            for index, choice in enumerate(choices, start=1)
        ]
        self.console.print(
            Panel(
                Group(Text(story), Text(""), *lines),
                title="Your Adventure",
                border_style="yellow",
                expand=True,
            )
        )

    def show_error(self, message: str) -> None:
        self.console.print(Text(message, style="bold red"))

    def show_info(self, message: str) -> None:
        self.console.print(Text(message, style="cyan"))

    def ask(self, prompt: str) -> str:
        return self.console.input(f"[bold]{prompt}[/bold] ")
