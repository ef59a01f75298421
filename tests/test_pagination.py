"""Unit tests for pagination module."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from scout.config import DECISION_SYSTEM_PROMPT
from scout.pagination import STOP_DECLINED, STOP_END, PageChunk, Paginator, is_affirmative
from scout.session import ChatSession, Role

URL = "https://example.com/article"


def make_paginator(make_transport, decisions=()):
    session = ChatSession(system_prompt="sys")
    session.append(Role.USER, "What does the article say?")
    transport = make_transport(decisions=decisions)
    renderer = MagicMock()
    return Paginator(session, transport, renderer), session, transport, renderer


@pytest.mark.asyncio
async def test_declined_after_first_chunk(make_transport):
    paginator, session, transport, renderer = make_paginator(make_transport, decisions=["NO"])

    result = await paginator.paginate(URL, "x" * 3000, 0, 1122)

    assert result.stop_reason == STOP_DECLINED
    assert len(result.chunks) == 1
    assert result.chunks[0].has_more
    assert len(transport.decision_calls) == 1

    turn = session.turns[-1]
    assert turn.role is Role.ASSISTANT
    assert turn.content.startswith(f"Read content from {URL} [0-1122 of 3000]:\n")
    assert turn.content.endswith("...")
    renderer.add_page_excerpt.assert_called_once_with(URL, "x" * 1122, True)


@pytest.mark.asyncio
async def test_reads_to_the_end(make_transport):
    paginator, session, transport, _ = make_paginator(make_transport, decisions=["YES", "yes, keep going"])

    result = await paginator.paginate(URL, "x" * 3000, 0, 1122)

    assert result.stop_reason == STOP_END
    assert [c.offset for c in result.chunks] == [0, 1122, 2244]
    assert [c.has_more for c in result.chunks] == [True, True, False]
    assert len(result.chunks[-1].text) == 3000 - 2244
    assert len(transport.decision_calls) == 2
    assert not session.turns[-1].content.endswith("...")


@pytest.mark.asyncio
async def test_decision_sees_only_chunk_and_question(make_transport):
    paginator, _, transport, _ = make_paginator(make_transport, decisions=["no"])

    await paginator.paginate(URL, "a" * 1122 + "b" * 100, 0, 1122)

    turns = transport.decision_calls[0]
    assert len(turns) == 2
    assert turns[0].content == DECISION_SYSTEM_PROMPT
    assert "What does the article say?" in turns[1].content
    assert "a" * 1122 in turns[1].content
    assert "b" * 100 not in turns[1].content


@pytest.mark.asyncio
async def test_decision_usage_counts_toward_total(make_transport):
    paginator, session, transport, _ = make_paginator(make_transport, decisions=["YES", "NO"])
    transport.last_usage = 5

    await paginator.paginate(URL, "x" * 3000, 0, 1122)

    assert session.total_tokens == 10


@pytest.mark.asyncio
async def test_decision_error_stops(make_transport):
    paginator, _, _, _ = make_paginator(make_transport, decisions=[RuntimeError("down")])

    result = await paginator.paginate(URL, "x" * 3000)

    assert result.stop_reason == STOP_DECLINED
    assert len(result.chunks) == 1


@pytest.mark.asyncio
async def test_short_page_needs_no_decision(make_transport):
    paginator, _, transport, _ = make_paginator(make_transport)

    result = await paginator.paginate(URL, "short page")

    assert result.stop_reason == STOP_END
    assert len(result.chunks) == 1
    assert transport.decision_calls == []


@pytest.mark.asyncio
async def test_empty_page_emits_one_empty_chunk(make_transport):
    paginator, session, _, _ = make_paginator(make_transport)

    result = await paginator.paginate(URL, "")

    assert len(result.chunks) == 1
    assert result.chunks[0].text == ""
    assert not result.chunks[0].has_more
    assert session.turns[-1].content == f"Read content from {URL} [0-0 of 0]:\n"


@pytest.mark.asyncio
async def test_start_offset(make_transport):
    paginator, _, _, _ = make_paginator(make_transport)

    result = await paginator.paginate(URL, "0123456789", start=4, length=3)

    assert result.chunks[0].text == "456"
    assert result.chunks[0].offset == 4


def test_page_chunk_end():
    chunk = PageChunk(url=URL, offset=10, text="abc", total=20, has_more=True)
    assert chunk.end == 13
    assert "[10-13 of 20]" in chunk.as_turn_text()


@pytest.mark.parametrize(
    "reply,expected",
    [
        ("YES", True),
        ("yes.", True),
        ("  **Yes**, more is useful", True),
        ("NO", False),
        ("Maybe", False),
        ("", False),
        ("I think yes", False),
    ],
)
def test_is_affirmative(reply, expected):
    assert is_affirmative(reply) is expected
