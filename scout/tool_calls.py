"""Typed tool calls and their fingerprints."""

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Union

from scout.config import DEFAULT_CHUNK_LENGTH, SEARCH_ENGINES
from scout.errors import ToolArgumentError, UnknownToolError

URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


class ToolName(str, Enum):
    """The closed set of tools the model may call."""

    WEB_SEARCH = "web_search"
    READ_URL = "read_url"
    INSTANT_ANSWER = "instant_answer"


@dataclass(frozen=True)
class WebSearchArgs:
    query: str
    engine: str = "jina"


@dataclass(frozen=True)
class ReadUrlArgs:
    url: str
    start: int = 0
    length: int = DEFAULT_CHUNK_LENGTH


@dataclass(frozen=True)
class InstantAnswerArgs:
    query: str


ToolArgs = Union[WebSearchArgs, ReadUrlArgs, InstantAnswerArgs]


def _require_query(tool: str, arguments: dict[str, Any]) -> str:
    query = arguments.get("query")
    if not isinstance(query, str) or not query.strip():
        raise ToolArgumentError(tool, "query must be a non-empty string")
    return query.strip()


def _coerce_int(tool: str, name: str, value: Any, default: int, minimum: int) -> int:
    """Normalize an optional integer argument.

    Integral floats and numeric strings are accepted so that ``"0"``, ``0.0``
    and ``0`` all describe the same call.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        raise ToolArgumentError(tool, f"{name} must be an integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise ToolArgumentError(tool, f"{name} must be an integer")
    if value < minimum:
        raise ToolArgumentError(tool, f"{name} must be >= {minimum}")
    return value


def _parse_web_search(arguments: dict[str, Any], default_engine: str) -> WebSearchArgs:
    query = _require_query(ToolName.WEB_SEARCH.value, arguments)
    engine = arguments.get("engine") or default_engine
    if not isinstance(engine, str) or engine.lower() not in SEARCH_ENGINES:
        raise ToolArgumentError(
            ToolName.WEB_SEARCH.value, f"engine must be one of: {', '.join(SEARCH_ENGINES)}"
        )
    return WebSearchArgs(query=query, engine=engine.lower())


def _parse_read_url(arguments: dict[str, Any], default_length: int) -> ReadUrlArgs:
    tool = ToolName.READ_URL.value
    url = arguments.get("url")
    if not isinstance(url, str) or not URL_PATTERN.match(url.strip()):
        raise ToolArgumentError(tool, "url must start with http:// or https://")
    start = _coerce_int(tool, "start", arguments.get("start"), 0, 0)
    length = _coerce_int(tool, "length", arguments.get("length"), default_length, 1)
    return ReadUrlArgs(url=url.strip(), start=start, length=length)


def _parse_instant_answer(arguments: dict[str, Any]) -> InstantAnswerArgs:
    return InstantAnswerArgs(query=_require_query(ToolName.INSTANT_ANSWER.value, arguments))


@dataclass(frozen=True)
class ToolCall:
    """A validated tool invocation."""

    tool: ToolName
    arguments: ToolArgs
    skip_continue: bool = False

    @classmethod
    def from_payload(
        cls,
        payload: dict[str, Any],
        default_engine: str = "jina",
        default_length: int = DEFAULT_CHUNK_LENGTH,
    ) -> ToolCall:
        """Build a typed call from the model's JSON payload.

        The internal ``skipContinue`` flag is never honoured from a payload.

        Raises:
            UnknownToolError: If the tool name is not one of the three tools
            ToolArgumentError: If the arguments are missing or invalid
        """
        name = payload.get("tool")
        try:
            tool = ToolName(name)
        except ValueError:
            raise UnknownToolError(name) from None

        arguments = payload.get("arguments")
        if not isinstance(arguments, dict):
            raise ToolArgumentError(tool.value, "arguments must be an object")

        if tool is ToolName.WEB_SEARCH:
            args: ToolArgs = _parse_web_search(arguments, default_engine)
        elif tool is ToolName.READ_URL:
            args = _parse_read_url(arguments, default_length)
        else:
            args = _parse_instant_answer(arguments)
        return cls(tool=tool, arguments=args)

    @classmethod
    def read_url(
        cls,
        url: str,
        start: int = 0,
        length: int = DEFAULT_CHUNK_LENGTH,
        skip_continue: bool = False,
    ) -> ToolCall:
        """Shortcut for a read_url call."""
        return cls(
            ToolName.READ_URL,
            ReadUrlArgs(url=url, start=start, length=length),
            skip_continue,
        )

    def canonical(self) -> str:
        """Canonical JSON of the tool name and default-filled arguments."""
        return json.dumps(
            {"tool": self.tool.value, "arguments": asdict(self.arguments)},
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )

    def fingerprint(self) -> str:
        """Stable hash identifying this call within a conversation."""
        return hashlib.sha256(self.canonical().encode("utf-8")).hexdigest()

    def describe(self) -> str:
        """Short human-readable description for status lines."""
        args = self.arguments
        if isinstance(args, WebSearchArgs):
            return f'Searching web for "{args.query}"...'
        if isinstance(args, ReadUrlArgs):
            return f"Reading content from {args.url}..."
        return f'Retrieving instant answer for "{args.query}"...'


def fingerprint(call: ToolCall) -> str:
    """Fingerprint a tool call."""
    return call.fingerprint()
