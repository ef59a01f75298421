"""Unit tests for session module."""

from __future__ import annotations

import pytest

from scout.config import Config
from scout.session import ChatSession, ExecutedCallSet, Role, Settings, Turn


def test_session_starts_with_system_turn():
    session = ChatSession(system_prompt="be helpful")
    assert session.turns == [Turn(Role.SYSTEM, "be helpful")]


def test_append_and_last_user_message():
    session = ChatSession(system_prompt="sys")
    session.append(Role.USER, "first")
    session.append(Role.ASSISTANT, "reply")
    session.append(Role.USER, "second")
    session.append(Role.ASSISTANT, "tool output")
    assert session.last_user_message() == "second"


def test_last_user_message_empty():
    assert ChatSession(system_prompt="sys").last_user_message() == ""


def test_second_system_turn_rejected():
    session = ChatSession(system_prompt="sys")
    with pytest.raises(ValueError):
        session.append(Role.SYSTEM, "again")


def test_window_keeps_system_turn():
    session = ChatSession(system_prompt="sys")
    for i in range(10):
        session.append(Role.USER, f"m{i}")

    window = session.window(3)
    assert [t.content for t in window] == ["sys", "m7", "m8", "m9"]
    assert session.window(0) == [Turn(Role.SYSTEM, "sys")]
    assert len(session.window(50)) == 11


def test_reset():
    session = ChatSession(system_prompt="sys")
    session.append(Role.USER, "hello")
    session.executed.add("abc")
    session.total_tokens = 10
    session.tool_calls = 2

    session.reset()

    assert session.turns == [Turn(Role.SYSTEM, "sys")]
    assert len(session.executed) == 0
    assert session.total_tokens == 0
    assert session.tool_calls == 0


def test_turn_to_message():
    assert Turn(Role.USER, "hi").to_message() == {"role": "user", "content": "hi"}


def test_executed_call_set():
    executed = ExecutedCallSet()
    assert executed.add("a") is True
    assert executed.add("a") is False
    assert "a" in executed
    assert len(executed) == 1
    executed.clear()
    assert "a" not in executed


def test_settings_from_config():
    settings = Settings.from_config(Config(api_key="k", streaming=True, show_thinking=False))
    assert settings == Settings(streaming=True, enable_cot=False, show_thinking=False)


def test_settings_update_is_whole():
    session = ChatSession(system_prompt="sys")
    before = session.settings
    after = session.update_settings(streaming=True, enable_cot=True)
    assert after == Settings(streaming=True, enable_cot=True, show_thinking=True)
    assert before == Settings()


def test_invalid_settings_update_changes_nothing():
    session = ChatSession(system_prompt="sys")
    with pytest.raises(ValueError):
        session.update_settings(streaming=True, color=True)
    with pytest.raises(ValueError):
        session.update_settings(enable_cot="yes")
    assert session.settings == Settings()
