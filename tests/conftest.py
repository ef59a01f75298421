"""Shared fixtures for SCOUT tests."""

from __future__ import annotations

from collections.abc import Sequence
from unittest.mock import MagicMock

import pytest

from scout import tools
from scout.config import DECISION_SYSTEM_PROMPT, Config
from scout.session import Turn


class FakeTransport:
    """Scripted model transport.

    ``replies`` answer conversation generations in order; ``decisions``
    answer pagination yes/no prompts. An exception in either list is raised
    instead of returned.
    """

    name = "fake"

    def __init__(self, replies: Sequence[object] = (), decisions: Sequence[object] = ()) -> None:
        self.replies = list(replies)
        self.decisions = list(decisions)
        self.calls: list[list[Turn]] = []
        self.decision_calls: list[list[Turn]] = []
        self.last_usage: int | None = 0
        self.closed = False

    async def generate(self, turns: Sequence[Turn]) -> str:
        turns = list(turns)
        if turns and turns[0].content == DECISION_SYSTEM_PROMPT:
            self.decision_calls.append(turns)
            reply = self.decisions.pop(0) if self.decisions else "NO"
        else:
            self.calls.append(turns)
            reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def generate_streaming(self, turns: Sequence[Turn], on_chunk) -> str:
        text = await self.generate(turns)
        full = ""
        step = max(len(text) // 3, 1)
        for i in range(0, len(text), step):
            delta = text[i : i + step]
            full += delta
            on_chunk(delta, full)
        return text

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> Config:
    return Config(api_key="test-key")


@pytest.fixture
def renderer() -> MagicMock:
    return MagicMock()


@pytest.fixture(autouse=True)
def empty_url_cache():
    tools.clear_url_cache()
    yield
    tools.clear_url_cache()


@pytest.fixture
def make_transport():
    return FakeTransport
