"""Output formatting for SCOUT."""

from __future__ import annotations

import sys
from typing import Protocol

import questionary
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.status import Status
from rich.table import Table

# Global console instance
_console: Console | None = None

EXCERPT_PREVIEW_CHARS = 300


class Renderer(Protocol):
    """Display surface the conversation loop reports to."""

    def add_message(self, role: str, text: str) -> None: ...

    def add_search_results(self, query: str, results: list[dict[str, str]]) -> None: ...

    def add_page_excerpt(self, url: str, text: str, has_more: bool) -> None: ...

    def begin_stream(self) -> None: ...

    def update_stream(self, text: str) -> None: ...

    def end_stream(self, text: str | None) -> None: ...

    def show_status(self, text: str) -> None: ...

    def clear_status(self) -> None: ...

    def set_input_enabled(self, enabled: bool) -> None: ...


def get_console() -> Console:
    """Get or create console instance."""
    global _console
    if _console is None:
        _console = Console(
            force_terminal=True,
            soft_wrap=True,
        )
    return _console


def set_plain_mode(plain: bool = True) -> None:
    """Set plain mode (no colors/emoji).

    Args:
        plain: Whether to use plain mode
    """
    global _console
    if plain:
        _console = Console(
            force_terminal=False,
            no_color=True,
            soft_wrap=True,
        )
    else:
        _console = Console(
            force_terminal=True,
            soft_wrap=True,
        )


def is_tty() -> bool:
    """Check if stdout is a TTY."""
    return sys.stdout.isatty()


def print_message(message: str, emoji: str = "", plain: bool = False) -> None:
    """Print a message with optional emoji.

    Args:
        message: Message to print
        emoji: Emoji prefix (ignored in plain mode)
        plain: Force plain mode
    """
    try:
        if plain or not is_tty():
            print(message)
        else:
            console = get_console()
            if emoji:
                console.print(f"{emoji} {message}")
            else:
                console.print(message)
    except UnicodeEncodeError:
        safe_message = message.encode("ascii", "ignore").decode("ascii")
        print(safe_message)


def print_markdown(text: str, plain: bool = False) -> None:
    """Print markdown-formatted text.

    Args:
        text: Markdown text to print
        plain: Force plain mode (prints as plain text)
    """
    try:
        if plain or not is_tty():
            print(text)
        else:
            console = get_console()
            console.print(Markdown(text))
    except UnicodeEncodeError:
        safe_text = text.encode("ascii", "ignore").decode("ascii")
        print(safe_text)


def print_result_summary(
    turns: int,
    tool_calls: int,
    duration_s: float,
    tokens: int,
    plain: bool = False,
) -> None:
    """Print conversation summary (verbose mode).

    Args:
        turns: Number of turns in the conversation
        tool_calls: Number of tool calls executed
        duration_s: Duration in seconds
        tokens: Token count
        plain: Force plain mode
    """
    line = f"Completed in {duration_s:.1f}s ({turns} turns, {tool_calls} tool calls, {tokens} tokens)"
    if plain or not is_tty():
        print(line)
    else:
        get_console().print(f"✨ {line}")


def print_error(message: str, plain: bool = False) -> None:
    """Print an error message.

    Args:
        message: Error message
        plain: Force plain mode
    """
    if plain or not is_tty():
        print(f"Error: {message}", file=sys.stderr)
    else:
        console = get_console()
        console.print(f"❌ Error: {message}", style="red")


def print_warning(message: str, plain: bool = False) -> None:
    """Print a warning message.

    Args:
        message: Warning message
        plain: Force plain mode
    """
    if plain or not is_tty():
        print(f"Warning: {message}")
    else:
        console = get_console()
        console.print(f"⚠️  {message}", style="yellow")


def print_success(message: str, plain: bool = False) -> None:
    """Print a success message.

    Args:
        message: Success message
        plain: Force plain mode
    """
    if plain or not is_tty():
        print(message)
    else:
        console = get_console()
        console.print(f"✅ {message}", style="green")


class ConsoleRenderer:
    """Terminal renderer built on rich.

    In plain mode everything is printed as plain text; streamed text is
    written incrementally as long as each update extends the previous one.
    """

    def __init__(self, plain: bool = False, echo_user: bool = True) -> None:
        self.plain = plain or not is_tty()
        self.input_enabled = True
        self.echo_user = echo_user
        self._status: Status | None = None
        self._live: Live | None = None
        self._streamed = ""

    def add_message(self, role: str, text: str) -> None:
        if role == "error":
            print_error(text, self.plain)
        elif role == "notice":
            print_warning(text, self.plain)
        elif role == "user":
            if self.echo_user:
                print_message(f"> {text}", plain=self.plain)
        elif role == "tool":
            if self.plain:
                print(text)
            else:
                get_console().print(Panel(text, title="tool result", border_style="dim"))
        else:
            print()
            print_markdown(text, self.plain)
            print()

    def add_search_results(self, query: str, results: list[dict[str, str]]) -> None:
        heading = f'Search results for "{query}" ({len(results)})'
        if self.plain:
            print(f"{heading}:")
            for i, r in enumerate(results, 1):
                print(f"  {i}. {r['title']} - {r['url']}")
            return

        table = Table(title=heading, show_lines=False, expand=True)
        table.add_column("#", justify="right", style="dim", no_wrap=True)
        table.add_column("Title")
        table.add_column("URL", style="cyan", overflow="fold")
        for i, r in enumerate(results, 1):
            table.add_row(str(i), r["title"], r["url"])
        get_console().print(table)

    def add_page_excerpt(self, url: str, text: str, has_more: bool) -> None:
        preview = text[:EXCERPT_PREVIEW_CHARS]
        if has_more or len(text) > EXCERPT_PREVIEW_CHARS:
            preview += "..."
        if self.plain:
            print(f"Read from: {url} ({len(text)} chars{', more available' if has_more else ''})")
            return
        get_console().print(Panel(preview, title=f"📄 {url}", border_style="dim"))

    def begin_stream(self) -> None:
        self.clear_status()
        self._streamed = ""
        if self.plain:
            return
        self._live = Live(
            Markdown(""),
            console=get_console(),
            refresh_per_second=8,
            transient=True,
        )
        self._live.start()

    def update_stream(self, text: str) -> None:
        if self._live is not None:
            self._live.update(Markdown(text))
        elif self.plain and text.startswith(self._streamed):
            sys.stdout.write(text[len(self._streamed) :])
            sys.stdout.flush()
        self._streamed = text

    def end_stream(self, text: str | None) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None
            if text:
                self.add_message("assistant", text)
        elif self.plain and self._streamed:
            print()
            if text and text != self._streamed:
                print(text)
        elif text:
            self.add_message("assistant", text)
        self._streamed = ""

    def show_status(self, text: str) -> None:
        if self.plain:
            print(f"[{text}]")
            return
        if self._live is not None:
            return
        if self._status is None:
            self._status = get_console().status(text)
            self._status.start()
        else:
            self._status.update(text)

    def clear_status(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def set_input_enabled(self, enabled: bool) -> None:
        self.input_enabled = enabled

    async def prompt_user(self, prompt: str = "scout>") -> str | None:
        """Read one line of user input, or None on EOF/abort."""
        return await questionary.text(prompt).ask_async()

    def clear_user_input(self) -> None:
        """Terminal input is consumed on read; nothing to clear."""
