"""Unit tests for extractor module."""

from __future__ import annotations

from scout.extractor import extract_tool_call


def test_bare_json_call():
    text = '{"tool":"web_search","arguments":{"query":"rust async"}}'
    assert extract_tool_call(text) == {"tool": "web_search", "arguments": {"query": "rust async"}}


def test_call_wrapped_in_prose():
    text = 'Let me look that up.\n{"tool": "read_url", "arguments": {"url": "https://a.com"}}\nOne moment.'
    call = extract_tool_call(text)
    assert call is not None
    assert call["tool"] == "read_url"
    assert call["arguments"]["url"] == "https://a.com"


def test_fenced_json_block():
    text = 'Sure:\n```json\n{"tool": "instant_answer", "arguments": {"query": "pi"}}\n```'
    assert extract_tool_call(text) == {"tool": "instant_answer", "arguments": {"query": "pi"}}


def test_fenced_block_preferred_over_bare_object():
    text = (
        '{"tool": "web_search", "arguments": {"query": "first"}}\n'
        '```json\n{"tool": "read_url", "arguments": {"url": "https://b.com"}}\n```'
    )
    assert extract_tool_call(text)["tool"] == "read_url"


def test_braces_inside_strings_are_ignored():
    text = 'Note {not json} then {"tool": "web_search", "arguments": {"query": "a } b {"}}'
    call = extract_tool_call(text)
    assert call == {"tool": "web_search", "arguments": {"query": "a } b {"}}


def test_skips_non_tool_objects():
    text = '{"answer": 42} and {"tool": "web_search", "arguments": {"query": "x"}}'
    assert extract_tool_call(text)["arguments"] == {"query": "x"}


def test_plain_text_has_no_call():
    assert extract_tool_call("The capital of France is Paris.") is None


def test_object_without_arguments_is_not_a_call():
    assert extract_tool_call('{"tool": "web_search"}') is None


def test_malformed_json_is_not_a_call():
    assert extract_tool_call('{"tool": "web_search", "arguments": {"query": }') is None


def test_partial_stream_text():
    assert extract_tool_call('{"tool": "web_search", "argum') is None


def test_non_string_input():
    assert extract_tool_call(None) is None  # type: ignore[arg-type]
