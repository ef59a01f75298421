"""Token counting utilities for SCOUT.

Pure functions for counting tokens in text and conversation turns using
tiktoken. Used for the running token total when a transport does not report
usage (e.g. streamed chat completions).
"""

from __future__ import annotations

from collections.abc import Sequence

import tiktoken

from scout.session import Turn

# Module-level cache for encodings
_encoding_cache: dict[str, tiktoken.Encoding] = {}

__all__ = [
    "count_tokens",
    "count_turns_tokens",
    "get_encoding",
]


def get_encoding(encoding_name: str = "cl100k_base") -> tiktoken.Encoding:
    """Get tiktoken encoding with caching.

    Args:
        encoding_name: Name of the encoding (default: cl100k_base)

    Returns:
        tiktoken.Encoding object

    Raises:
        ValueError: If encoding cannot be loaded
    """
    if encoding_name in _encoding_cache:
        return _encoding_cache[encoding_name]

    try:
        encoding = tiktoken.get_encoding(encoding_name)
        _encoding_cache[encoding_name] = encoding
        return encoding
    except Exception as e:
        raise ValueError(f"Failed to load encoding '{encoding_name}': {e}") from e


def count_tokens(text: str, encoding: str = "cl100k_base") -> int:
    """Count tokens in a text string.

    Args:
        text: Text to count tokens for
        encoding: tiktoken encoding name (default: cl100k_base)

    Returns:
        Number of tokens in the text
    """
    if not text:
        return 0

    enc = get_encoding(encoding)
    return len(enc.encode(text))


def count_turns_tokens(turns: Sequence[Turn], encoding: str = "cl100k_base") -> int:
    """Count total tokens in a sequence of turns.

    Args:
        turns: Conversation turns
        encoding: tiktoken encoding name (default: cl100k_base)

    Returns:
        Total token count, including per-message overhead
    """
    if not turns:
        return 0

    enc = get_encoding(encoding)
    total_tokens = 0

    for turn in turns:
        total_tokens += len(enc.encode(turn.role.value))
        total_tokens += len(enc.encode(turn.content))
        # Add 3 tokens per message for formatting (OpenAI convention)
        total_tokens += 3

    return total_tokens
