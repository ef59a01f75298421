"""Unit tests for segmenter module."""

from __future__ import annotations

import pytest

from scout.segmenter import (
    PLACEHOLDER,
    STEPS_GRAMMAR,
    THINKING_GRAMMAR,
    Segmenter,
    enhance_with_cot,
    format_for_display,
    get_grammar,
)
from scout.session import Settings

COT = Settings(enable_cot=True, show_thinking=True)
COT_HIDDEN = Settings(enable_cot=True, show_thinking=False)


def test_complete_reply_is_structured():
    segment = Segmenter().segment("Thinking: 6 times 7.\nAnswer: 42")
    assert segment.is_structured
    assert not segment.is_partial
    assert segment.stage == "answer"
    assert segment.reasoning == "6 times 7."
    assert segment.answer == "42"


def test_final_answer_marker_in_thinking_grammar():
    segment = Segmenter().segment("Thinking: hmm\nFinal Answer: 42")
    assert segment.reasoning == "hmm"
    assert segment.answer == "42"


def test_lowercase_answer_in_reasoning_does_not_split():
    segment = Segmenter().segment("Thinking: I recall the answer: depends on year. Answer: 42")
    assert segment.reasoning == "I recall the answer: depends on year."
    assert segment.answer == "42"


def test_lowercase_markers_are_plain_text():
    segment = Segmenter().segment("thinking: a\nanswer: b")
    assert not segment.is_structured
    assert segment.answer == "thinking: a\nanswer: b"


def test_reasoning_only_is_partial():
    segment = Segmenter().segment("Thinking: still working", is_open=True)
    assert segment.is_structured
    assert segment.is_partial
    assert segment.stage == "reasoning"
    assert segment.reasoning == "still working"


def test_no_markers_is_plain_answer():
    segment = Segmenter().segment("Just an answer.")
    assert not segment.is_structured
    assert not segment.is_partial
    assert segment.answer == "Just an answer."


def test_open_stream_without_markers_is_partial():
    assert Segmenter().segment("Just an", is_open=True).is_partial


def test_marker_after_other_text_is_malformed():
    segment = Segmenter().segment("Sure. Thinking: about it")
    assert not segment.is_structured
    assert segment.is_partial


def test_cached_answer_survives_later_update():
    segmenter = Segmenter()
    segmenter.segment("Thinking: a\nAnswer: 42")
    segment = segmenter.segment("", is_open=True)
    assert segment.answer == "42"


def test_reset_forgets_cache():
    segmenter = Segmenter()
    segmenter.segment("Thinking: a\nAnswer: 42")
    segmenter.reset()
    assert segmenter.segment("", is_open=True).answer == ""


def test_steps_grammar():
    segmenter = Segmenter(STEPS_GRAMMAR)
    segment = segmenter.segment("Step 1: understand\nStep 2: solve\nFinal Answer: done")
    assert segment.is_structured
    assert segment.reasoning == "understand\nStep 2: solve"
    assert segment.answer == "done"


def test_display_with_thinking():
    segment = Segmenter().segment("Thinking: 6 times 7.\nAnswer: 42")
    assert format_for_display(segment, COT) == "Thinking: 6 times 7.\n\nAnswer: 42"


def test_display_hides_thinking():
    segment = Segmenter().segment("Thinking: 6 times 7.\nAnswer: 42")
    assert format_for_display(segment, COT_HIDDEN) == "42"


def test_display_placeholder_while_reasoning_hidden():
    segment = Segmenter().segment("Thinking: 6 times", is_open=True)
    assert format_for_display(segment, COT_HIDDEN) == PLACEHOLDER


def test_display_partial_reasoning_shown():
    segment = Segmenter().segment("Thinking: 6 times", is_open=True)
    assert format_for_display(segment, COT) == "Thinking: 6 times"


def test_display_without_cot_is_raw_answer():
    segment = Segmenter().segment("Thinking: a\nAnswer: b")
    assert format_for_display(segment, Settings()) == "b"


def test_display_placeholder_for_empty_open_stream():
    segment = Segmenter().segment("", is_open=True)
    assert format_for_display(segment, COT) == PLACEHOLDER


def test_enhance_with_cot():
    message = enhance_with_cot("What is 6x7?", THINKING_GRAMMAR)
    assert message.startswith("What is 6x7?\n\n")
    assert "Thinking:" in message
    assert "Answer:" in message


def test_get_grammar():
    assert get_grammar("steps") is STEPS_GRAMMAR
    with pytest.raises(ValueError):
        get_grammar("haiku")


def test_segment_is_idempotent():
    segmenter = Segmenter()
    text = "Thinking: weigh options\nAnswer: pick B"
    assert segmenter.segment(text) == segmenter.segment(text)
    assert segmenter.segment(text, is_open=True) == segmenter.segment(text, is_open=True)
