"""Reasoning/answer segmentation of chain-of-thought replies.

When chain-of-thought is enabled the model is asked to answer in a
"reasoning marker ... answer marker" layout. The segmenter splits a
possibly partial reply along those markers so the renderer can show the
reasoning, the answer, or a placeholder while the stream is still open.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from scout.session import Settings

PLACEHOLDER = "working…"


class CotGrammar:
    """A named reasoning/answer convention.

    Marker patterns are compiled once here and reused for every call.
    """

    def __init__(
        self,
        name: str,
        reasoning_pattern: str,
        answer_pattern: str,
        reasoning_label: str,
        answer_label: str,
        instruction: str,
    ) -> None:
        self.name = name
        # Case-sensitive, so "the answer:" in prose is not a marker
        self.reasoning_re = re.compile(reasoning_pattern)
        self.answer_re = re.compile(answer_pattern)
        self.reasoning_label = reasoning_label
        self.answer_label = answer_label
        self.instruction = instruction

    def __repr__(self) -> str:
        return f"CotGrammar({self.name!r})"


THINKING_GRAMMAR = CotGrammar(
    name="thinking",
    reasoning_pattern=r"Thinking:",
    answer_pattern=r"(?:Final\s+)?Answer:",
    reasoning_label="Thinking:",
    answer_label="Answer:",
    instruction=(
        "I'd like you to use Chain of Thought reasoning. Please think step-by-step before "
        "providing your final answer. Format your response like this:\n"
        "Thinking: [detailed reasoning process, exploring different angles and considerations]\n"
        "Answer: [your final, concise answer based on the reasoning above]"
    ),
)

STEPS_GRAMMAR = CotGrammar(
    name="steps",
    reasoning_pattern=r"Step\s*1\s*:",
    answer_pattern=r"Final Answer:",
    reasoning_label="Reasoning:",
    answer_label="Final Answer:",
    instruction=(
        "Chain of Thought Instructions:\n"
        "Step 1: Understand - briefly rephrase the core problem or question.\n"
        "Step 2: Deconstruct - break the problem down into smaller, logical steps.\n"
        "Step 3: Execute & Explain - work through each step and show your reasoning.\n"
        "Step 4: Synthesize - combine the findings into a conclusion.\n"
        'Finally, state the answer clearly and concisely, prefixed exactly with "Final Answer:".\n'
        "Label each step as shown above, starting with \"Step 1:\"."
    ),
)

GRAMMARS = {grammar.name: grammar for grammar in (THINKING_GRAMMAR, STEPS_GRAMMAR)}


def get_grammar(name: str) -> CotGrammar:
    """Get a built-in grammar by name.

    Raises:
        ValueError: If no grammar has that name
    """
    try:
        return GRAMMARS[name]
    except KeyError:
        raise ValueError(f"Unknown CoT grammar: {name}") from None


def enhance_with_cot(message: str, grammar: CotGrammar = THINKING_GRAMMAR) -> str:
    """Append the grammar's reasoning instructions to a user message."""
    return f"{message}\n\n{grammar.instruction}"


@dataclass(frozen=True)
class Segment:
    """Result of segmenting a reply."""

    reasoning: str
    answer: str
    is_structured: bool
    is_partial: bool
    stage: str | None = None


class Segmenter:
    """Splits replies into reasoning and answer.

    The last non-empty reasoning and answer are cached so that a later
    partial update which no longer yields an answer does not blank the
    display. Call ``reset`` at the start of each model turn.
    """

    def __init__(self, grammar: CotGrammar = THINKING_GRAMMAR) -> None:
        self.grammar = grammar
        self._last_reasoning = ""
        self._last_answer = ""

    def reset(self) -> None:
        self._last_reasoning = ""
        self._last_answer = ""

    def _remember(self, reasoning: str, answer: str) -> tuple[str, str]:
        if reasoning:
            self._last_reasoning = reasoning
        if answer:
            self._last_answer = answer
        return reasoning or self._last_reasoning, answer or self._last_answer

    def segment(self, text: str, is_open: bool = False) -> Segment:
        """Segment the text seen so far.

        Args:
            text: Full text accumulated for the current reply
            is_open: Whether the stream is still delivering text

        Returns:
            Segment describing reasoning, answer and structure
        """
        text = text or ""
        reasoning_match = self.grammar.reasoning_re.search(text)

        if reasoning_match is None:
            return Segment(
                reasoning="",
                answer=text.strip() or self._last_answer,
                is_structured=False,
                is_partial=is_open,
            )

        answer_match = self.grammar.answer_re.search(text, reasoning_match.end())
        if answer_match is not None:
            reasoning, answer = self._remember(
                text[reasoning_match.end() : answer_match.start()].strip(),
                text[answer_match.end() :].strip(),
            )
            return Segment(
                reasoning=reasoning,
                answer=answer,
                is_structured=True,
                is_partial=False,
                stage="answer",
            )

        reasoning, answer = self._remember(text[reasoning_match.end() :].strip(), "")
        preamble = text[: reasoning_match.start()]
        if not preamble.strip():
            return Segment(
                reasoning=reasoning,
                answer=answer,
                is_structured=True,
                is_partial=True,
                stage="reasoning",
            )

        # Marker buried after other text, or an answer marker only before it.
        return Segment(
            reasoning=reasoning,
            answer=answer,
            is_structured=False,
            is_partial=True,
        )


def format_for_display(
    segment: Segment,
    settings: Settings,
    grammar: CotGrammar = THINKING_GRAMMAR,
) -> str:
    """Render a segment according to the CoT display settings."""
    if not settings.enable_cot or not segment.is_structured:
        if not segment.answer and segment.is_partial:
            return PLACEHOLDER
        return segment.answer

    if settings.show_thinking:
        if segment.is_partial and segment.stage == "reasoning":
            return f"{grammar.reasoning_label} {segment.reasoning}"
        if segment.is_partial:
            return segment.reasoning
        return (
            f"{grammar.reasoning_label} {segment.reasoning}\n\n"
            f"{grammar.answer_label} {segment.answer}"
        )

    return segment.answer or PLACEHOLDER
