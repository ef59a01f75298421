"""Unit tests for token_counter module."""

from __future__ import annotations

import pytest

from scout.session import Role, Turn
from scout.token_counter import (
    count_tokens,
    count_turns_tokens,
    get_encoding,
)


def test_count_tokens_empty() -> None:
    """Test counting tokens in empty string."""
    assert count_tokens("") == 0


def test_count_tokens_simple() -> None:
    """Test counting tokens in simple text."""
    text = "Hello, world!"
    tokens = count_tokens(text)
    assert tokens > 0
    assert tokens < len(text)  # Tokens < chars


def test_count_turns_empty() -> None:
    """Test counting tokens in empty turn list."""
    assert count_turns_tokens([]) == 0


def test_count_turns_includes_overhead() -> None:
    """Test that each turn adds role and formatting tokens."""
    turns = [
        Turn(Role.SYSTEM, "You are a helpful assistant."),
        Turn(Role.USER, "Hello!"),
    ]
    content_only = sum(count_tokens(t.content) for t in turns)
    assert count_turns_tokens(turns) > content_only + 2 * 3 - 1


def test_get_encoding_cached() -> None:
    """Test that encodings are cached."""
    assert get_encoding("cl100k_base") is get_encoding("cl100k_base")


def test_get_encoding_invalid() -> None:
    """Test loading an unknown encoding."""
    with pytest.raises(ValueError):
        get_encoding("no_such_encoding")
