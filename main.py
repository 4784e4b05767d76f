# main.py
"""CLI entry point for the DJX Storyteller."""

from __future__ import annotations

import argparse

from config import STATE_FILE_PATH
from orchestration.cli_runner import run


def main() -> None:
    """Parse command-line arguments and start the story loop."""
    parser = argparse.ArgumentParser(description="Interactive AI storytelling")
    parser.add_argument("--prompt", default=None, help="Start a new story from this prompt")
    parser.add_argument(
        "--reset", action="store_true", help="Clear the saved session before starting"
    )
    parser.add_argument(
        "--state-file", default=STATE_FILE_PATH, help="Where the session is persisted"
    )
    args = parser.parse_args()
    run(args.prompt, reset=args.reset, state_file=args.state_file)


if __name__ == "__main__":
    main()
