"""CLI interface for SCOUT."""

from __future__ import annotations

import asyncio
import dataclasses
import os
import sys

import click

from scout import __version__, tools
from scout.config import (
    COT_GRAMMARS,
    SEARCH_ENGINES,
    Config,
    ensure_config,
    get_config_path,
)
from scout.conversation import Conversation, ask_sync
from scout.errors import handle_error
from scout.output import (
    ConsoleRenderer,
    is_tty,
    print_error,
    print_result_summary,
    print_success,
    print_warning,
    set_plain_mode,
)
from scout.session import Settings
from scout.transport import create_transport

REPL_HELP = """Commands:
  /clear                 Start a new conversation
  /settings              Show current settings
  /set <name> <on|off>   Change streaming, cot (enable_cot) or thinking (show_thinking)
  /tokens                Show token and tool call totals
  /help                  Show this help
  exit, quit, q          Leave"""

_TRUE_WORDS = ("on", "true", "yes", "1")
_FALSE_WORDS = ("off", "false", "no", "0")
_SETTING_ALIASES = {"cot": "enable_cot", "thinking": "show_thinking", "stream": "streaming"}


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("question", required=False)
@click.option("-q", "--question", "question_text", help="Explicit question string")
@click.option("--stream/--no-stream", default=None, help="Stream model output as it arrives")
@click.option("--cot/--no-cot", default=None, help="Ask for reasoning/answer formatted replies")
@click.option(
    "--show-thinking/--hide-thinking",
    default=None,
    help="Show or hide reasoning text when --cot is on",
)
@click.option("--grammar", type=click.Choice(COT_GRAMMARS), help="Reasoning marker grammar")
@click.option("--engine", type=click.Choice(SEARCH_ENGINES), help="Default search engine")
@click.option("--max-rounds", type=int, help="Max tool calls per message")
@click.option("-v", "--verbose", is_flag=True, help="Show tool calls and debug info")
@click.option("--plain", is_flag=True, help="Disable emoji/colors for scripting")
@click.option("--config", "show_config", is_flag=True, help="Print config file path")
@click.option("--edit-config", is_flag=True, help="Open config in $EDITOR")
@click.version_option(version=__version__, prog_name="scout")
def main(
    question: str | None,
    question_text: str | None,
    stream: bool | None,
    cot: bool | None,
    show_thinking: bool | None,
    grammar: str | None,
    engine: str | None,
    max_rounds: int | None,
    verbose: bool,
    plain: bool,
    show_config: bool,
    edit_config: bool,
) -> None:
    """SCOUT - Chat assistant that searches and reads the web.

    Examples:
        scout "what changed in the latest python release"
        scout --stream --cot -q "compare two sorting algorithms"
        echo "weather in Oslo" | scout --plain
        scout            (interactive mode)
    """
    # Handle plain mode
    if plain or not is_tty():
        set_plain_mode(True)
        plain = True

    # Handle config commands
    if show_config:
        click.echo(get_config_path())
        return

    if edit_config:
        config_path = get_config_path()
        editor = os.environ.get("EDITOR", "notepad" if sys.platform == "win32" else "nano")
        click.echo(f"Opening {config_path} in {editor}...")
        os.system(f'{editor} "{config_path}"')
        return

    try:
        config = ensure_config()
    except Exception as e:
        handle_error(f"Failed to load config: {e}", verbose=verbose)

    config = _apply_overrides(
        config,
        stream=stream,
        cot=cot,
        show_thinking=show_thinking,
        grammar=grammar,
        engine=engine,
        max_rounds=max_rounds,
    )

    # Get question from argument or option or stdin
    text = question or question_text

    if not text:
        # Check if stdin has data
        if not sys.stdin.isatty():
            text = sys.stdin.read().strip()

    if not text:
        # Enter interactive mode
        _interactive_mode(config, verbose, plain)
        return

    _run_question(text, config, verbose, plain)


def _apply_overrides(
    config: Config,
    stream: bool | None,
    cot: bool | None,
    show_thinking: bool | None,
    grammar: str | None,
    engine: str | None,
    max_rounds: int | None,
) -> Config:
    """Return a copy of config with CLI options applied."""
    changes: dict[str, object] = {}
    if stream is not None:
        changes["streaming"] = stream
    if cot is not None:
        changes["enable_cot"] = cot
    if show_thinking is not None:
        changes["show_thinking"] = show_thinking
    if grammar:
        changes["cot_grammar"] = grammar
    if engine:
        changes["search_engine"] = engine
    if max_rounds is not None:
        if max_rounds < 1:
            raise click.BadParameter("must be at least 1", param_hint="--max-rounds")
        changes["max_tool_rounds"] = max_rounds
    return dataclasses.replace(config, **changes) if changes else config


def _run_question(question: str, config: Config, verbose: bool, plain: bool) -> None:
    """Answer one question and exit."""
    renderer = ConsoleRenderer(plain=plain)

    try:
        answer, conversation, duration_s = ask_sync(question, config, renderer, verbose=verbose)
    except KeyboardInterrupt:
        print_warning("\nCancelled")
        sys.exit(130)
    except Exception as e:
        handle_error(f"Conversation failed: {e}", verbose=verbose)

    if verbose:
        print_result_summary(
            turns=len(conversation.history()),
            tool_calls=conversation.session.tool_calls,
            duration_s=duration_s,
            tokens=conversation.session.total_tokens,
            plain=plain,
        )

    if answer is None:
        sys.exit(1)


def _parse_switch(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise ValueError(f"Expected on/off, got '{value}'")


def _format_settings(settings: Settings) -> str:
    return "\n".join(
        f"  {name}: {'on' if value else 'off'}"
        for name, value in dataclasses.asdict(settings).items()
    )


def handle_command(conversation: Conversation, line: str) -> str | None:
    """Run a slash command from the REPL.

    Args:
        conversation: The active conversation
        line: Raw input line starting with "/"

    Returns:
        Text to show the user, or None if the command is unknown
    """
    parts = line.strip().split()
    command, args = parts[0].lower(), parts[1:]

    if command == "/clear":
        conversation.clear()
        return "Conversation cleared"

    if command == "/settings":
        return "Settings:\n" + _format_settings(conversation.settings)

    if command == "/set":
        if len(args) != 2:
            return "Usage: /set <streaming|cot|thinking> <on|off>"
        name = _SETTING_ALIASES.get(args[0].lower(), args[0].lower())
        try:
            settings = conversation.update_settings(**{name: _parse_switch(args[1])})
        except ValueError as e:
            return f"Error: {e}"
        return "Settings:\n" + _format_settings(settings)

    if command == "/tokens":
        session = conversation.session
        return f"Tokens: {session.total_tokens}, tool calls: {session.tool_calls}"

    if command == "/help":
        return REPL_HELP

    return None


async def _repl(config: Config, verbose: bool, plain: bool) -> None:
    # The prompt line already shows what was typed
    renderer = ConsoleRenderer(plain=plain, echo_user=False)
    transport = create_transport(config, verbose=verbose)
    conversation = Conversation(config, transport, renderer, verbose=verbose)

    try:
        while True:
            line = await renderer.prompt_user("scout>")
            if line is None or line.strip().lower() in ("exit", "quit", "q"):
                print_success("Bye!")
                break
            if not line.strip():
                continue

            if line.startswith("/"):
                reply = handle_command(conversation, line)
                click.echo(reply if reply is not None else f"Unknown command: {line.split()[0]}")
                continue

            await conversation.send(line)
            renderer.clear_user_input()
    finally:
        await transport.aclose()
        await tools.close_http_client()


def _interactive_mode(config: Config, verbose: bool, plain: bool) -> None:
    """Run interactive mode (REPL)."""
    print_success(f"Welcome to SCOUT interactive mode! ({config.provider}: {config.model})")
    print("Type /help for commands, 'exit' or Ctrl+C to quit\n")

    try:
        asyncio.run(_repl(config, verbose, plain))
    except KeyboardInterrupt:
        print_success("\nBye!")
    except Exception as e:
        print_error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
