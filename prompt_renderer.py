# prompt_renderer.py
"""Utilities for rendering LLM prompts using Jinja2 templates."""

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

PROMPTS_PATH = Path(__file__).parent / "prompts"
_env = Environment(
    loader=FileSystemLoader(PROMPTS_PATH),
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=False,
)

START_STORY_TEMPLATE = "start_story.j2"
CONTINUE_STORY_TEMPLATE = "continue_story.j2"


def render_prompt(template_name: str, context: dict[str, Any]) -> str:
    """Render a Jinja2 template from the prompts directory."""
    template = _env.get_template(template_name)
    return template.render(**context)


def render_story_prompt(story_prompt: str, prior_choices: Sequence[str]) -> str:
    """Render the opening prompt, or the continuation prompt once choices exist."""
    if prior_choices:
        return render_prompt(
            CONTINUE_STORY_TEMPLATE,
            {"story_prompt": story_prompt, "prior_choices": list(prior_choices)},
        )
    return render_prompt(START_STORY_TEMPLATE, {"story_prompt": story_prompt})
