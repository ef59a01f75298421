"""Conversation loop for SCOUT.

``Conversation.send`` runs one user message to completion. Generation
and tool dispatch alternate until a reply contains no tool call. Each
resume after a tool result goes through a small task queue rather than a
recursive call, so a long tool chain never deepens the stack and the
number of rounds stays bounded.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from enum import Enum
from typing import Any

from scout import tools
from scout.config import FINAL_ANSWER_PROMPT, Config, get_system_prompt
from scout.dispatcher import DispatchOutcome, ToolDispatcher
from scout.errors import ModelTransportError
from scout.extractor import extract_tool_call
from scout.output import Renderer
from scout.segmenter import (
    PLACEHOLDER,
    CotGrammar,
    Segmenter,
    enhance_with_cot,
    format_for_display,
    get_grammar,
)
from scout.session import ChatSession, Role, Settings, Turn
from scout.token_counter import count_turns_tokens
from scout.transport import ModelTransport, create_transport

DUPLICATE_STOP_NOTICE = "Tool call already executed; stopping."


class LoopState(str, Enum):
    """Where the loop is in handling the current message."""

    AWAITING_INPUT = "awaiting_input"
    GENERATING = "generating"
    TOOL_CALL_DETECTED = "tool_call_detected"
    DISPATCHING = "dispatching"
    FINALIZING = "finalizing"
    IDLE = "idle"


class Conversation:
    """Owns one conversation: its session, dispatcher and model transport."""

    def __init__(
        self,
        config: Config,
        transport: ModelTransport,
        renderer: Renderer,
        settings: Settings | None = None,
        grammar: CotGrammar | None = None,
        verbose: bool = False,
    ) -> None:
        self.config = config
        self.transport = transport
        self.renderer = renderer
        self.verbose = verbose
        self.grammar = grammar or get_grammar(config.cot_grammar)
        self.session = ChatSession(
            system_prompt=get_system_prompt(config.chunk_length),
            settings=settings or Settings.from_config(config),
        )
        self.dispatcher = ToolDispatcher(self.session, transport, renderer, config, verbose=verbose)
        self.segmenter = Segmenter(self.grammar)
        self.state = LoopState.AWAITING_INPUT
        self._resumed = False
        self._stream_open = False

    @property
    def settings(self) -> Settings:
        return self.session.settings

    def history(self) -> list[Turn]:
        """Get a copy of the turns so far."""
        return list(self.session.turns)

    def update_settings(self, **changes: Any) -> Settings:
        """Apply a complete settings update (see ``Settings.updated``)."""
        settings = self.session.update_settings(**changes)
        if self.verbose:
            print(f"[Conversation] Settings updated: {settings}")
        return settings

    def clear(self) -> None:
        """Start over: only the system turn, no executed calls, empty URL cache."""
        self.session.reset()
        self.segmenter.reset()
        tools.clear_url_cache()
        self.state = LoopState.AWAITING_INPUT

    def _should_resume(self, outcome: DispatchOutcome) -> bool:
        if not outcome.wants_continue:
            return False
        if outcome.duplicate:
            return self.config.duplicate_continuation == "always" or not self._resumed
        return True

    def _on_chunk(self, delta: str, full_text: str) -> None:
        settings = self.session.settings
        if settings.enable_cot:
            segment = self.segmenter.segment(full_text, is_open=True)
            self.renderer.update_stream(format_for_display(segment, settings, self.grammar))
        else:
            self.renderer.update_stream(full_text)

    def _close_stream(self, text: str | None) -> None:
        if self._stream_open:
            self._stream_open = False
            self.renderer.end_stream(text)

    def _count_tokens(self, window: list[Turn], reply: str) -> None:
        usage = self.transport.last_usage
        if isinstance(usage, int):
            self.session.total_tokens += usage
            return
        try:
            self.session.total_tokens += count_turns_tokens(
                [*window, Turn(Role.ASSISTANT, reply)], self.config.tokenizer_encoding
            )
        except ValueError as e:
            if self.verbose:
                print(f"[Tokens] Unable to count tokens: {e}")

    async def _generate(self) -> str:
        self.state = LoopState.GENERATING
        settings = self.session.settings
        window = self.session.window(self.config.context_window)
        timeout = self.config.generation_timeout
        self.segmenter.reset()

        if settings.streaming:
            self.renderer.begin_stream()
            self._stream_open = True
            if settings.enable_cot:
                self.renderer.update_stream(PLACEHOLDER)
            text = await asyncio.wait_for(
                self.transport.generate_streaming(window, self._on_chunk), timeout
            )
        else:
            self.renderer.show_status("Waiting for AI response...")
            text = await asyncio.wait_for(self.transport.generate(window), timeout)
            self.renderer.clear_status()

        self._count_tokens(window, text)
        return text

    def _finalize(self, text: str) -> str:
        self.state = LoopState.FINALIZING
        settings = self.session.settings
        display = text
        if settings.enable_cot:
            segment = self.segmenter.segment(text, is_open=False)
            if self.verbose and segment.reasoning:
                print(f"[CoT] Reasoning: {segment.reasoning[:200]}")
            display = format_for_display(segment, settings, self.grammar)

        self.session.append(Role.ASSISTANT, text)
        if self._stream_open:
            self._close_stream(display)
        else:
            self.renderer.add_message("assistant", display)
        self.state = LoopState.IDLE
        return display

    async def _force_final_answer(self) -> str:
        self.renderer.add_message(
            "notice",
            f"Tool round limit ({self.config.max_tool_rounds}) reached, requesting final answer",
        )
        self.session.append(Role.USER, FINAL_ANSWER_PROMPT)
        return self._finalize(await self._generate())

    async def send(self, message: str) -> str | None:
        """Handle one user message until the model answers without tools.

        Args:
            message: The user's message

        Returns:
            The displayed answer, or None if the turn was aborted or stopped
            on a repeated tool call
        """
        message = message.strip()
        if not message:
            return None

        self.renderer.set_input_enabled(False)
        self.renderer.add_message("user", message)

        settings = self.session.settings
        content = enhance_with_cot(message, self.grammar) if settings.enable_cot else message
        self.session.append(Role.USER, content)

        self._resumed = False
        rounds = 0
        pending: deque[int] = deque([0])

        try:
            while pending:
                pending.popleft()
                text = await self._generate()

                payload = extract_tool_call(text)
                if payload is None:
                    return self._finalize(text)

                self.state = LoopState.TOOL_CALL_DETECTED
                self._close_stream(None)
                self.session.append(Role.ASSISTANT, text)
                if self.verbose:
                    print(f"[Conversation] Tool call detected: {payload}")

                if rounds >= self.config.max_tool_rounds:
                    return await self._force_final_answer()
                rounds += 1

                self.state = LoopState.DISPATCHING
                outcome = await self.dispatcher.execute(payload)

                if self._should_resume(outcome):
                    self._resumed = True
                    pending.append(rounds)
                elif outcome.duplicate:
                    self.renderer.add_message("notice", DUPLICATE_STOP_NOTICE)

            self.state = LoopState.IDLE
            return None

        except ModelTransportError as e:
            self.renderer.add_message("error", f"Error: {e}")
            return None
        except asyncio.TimeoutError:
            self.renderer.add_message(
                "error",
                f"Generation cancelled: no response within {self.config.generation_timeout}s",
            )
            return None
        except asyncio.CancelledError:
            self.renderer.add_message("error", "Generation cancelled")
            raise
        except Exception as e:
            if self.verbose:
                print(f"[Conversation] Unexpected error: {e!r}")
            self.renderer.add_message("error", f"Error: {e}")
            return None
        finally:
            self._close_stream(None)
            self.renderer.clear_status()
            self.renderer.set_input_enabled(True)
            if self.state is not LoopState.IDLE:
                self.state = LoopState.IDLE


async def ask(
    question: str,
    config: Config,
    renderer: Renderer,
    settings: Settings | None = None,
    verbose: bool = False,
) -> tuple[str | None, Conversation]:
    """Ask a single question in a fresh conversation.

    Returns:
        Tuple of (displayed answer or None, the conversation)
    """
    transport = create_transport(config, verbose=verbose)
    conversation = Conversation(config, transport, renderer, settings=settings, verbose=verbose)
    try:
        answer = await conversation.send(question)
    finally:
        await transport.aclose()
        await tools.close_http_client()
    return answer, conversation


def ask_sync(
    question: str,
    config: Config,
    renderer: Renderer,
    settings: Settings | None = None,
    verbose: bool = False,
) -> tuple[str | None, Conversation, float]:
    """Synchronous wrapper for ``ask``.

    Returns:
        Tuple of (answer, conversation, duration in seconds)
    """
    start_time = time.time()
    # Use a new event loop to avoid conflicts with existing loops
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        answer, conversation = loop.run_until_complete(
            ask(question, config, renderer, settings=settings, verbose=verbose)
        )
    finally:
        loop.close()
    return answer, conversation, time.time() - start_time
