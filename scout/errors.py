"""Error handling utilities for SCOUT.

Provides the exception taxonomy used across the tool loop and
fail-resistant error handling for the CLI.
"""

from __future__ import annotations

import sys
from typing import Any, NoReturn


class ScoutError(Exception):
    """Base class for all SCOUT errors."""


class ToolCallError(ScoutError):
    """A tool call payload could not be turned into a typed call."""


class UnknownToolError(ToolCallError):
    """The payload names a tool outside the closed tool set."""

    def __init__(self, tool: Any) -> None:
        self.tool = tool
        super().__init__(f"Unknown tool: {tool}")


class ToolArgumentError(ToolCallError):
    """The payload's arguments are missing or malformed."""

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(f"Invalid arguments for {tool}: {message}")


class ModelTransportError(ScoutError):
    """The model transport failed to produce a reply."""


def _safe_print(text: str, file: Any = sys.stdout) -> None:
    """Print text safely, handling encoding errors on Windows.

    Args:
        text: Text to print
        file: File to print to (default: stdout)
    """
    try:
        print(text, file=file)
    except UnicodeEncodeError:
        # Fallback for systems that can't handle Unicode
        safe_text = text.encode("utf-8", errors="replace").decode("utf-8")
        try:
            print(safe_text, file=file)
        except UnicodeEncodeError:
            safe_text = text.encode("ascii", "ignore").decode("ascii")
            print(safe_text, file=file)


def handle_error(message: str, exit_code: int = 1, verbose: bool = False) -> NoReturn:
    """Handle errors gracefully without stack traces.

    Args:
        message: Short error message to display
        exit_code: Exit code to use (default: 1)
        verbose: If True, show full error details
    """
    if verbose:
        import traceback

        traceback.print_exc()

    _safe_print(f"Error: {message}", file=sys.stderr)
    sys.exit(exit_code)

