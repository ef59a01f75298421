"""Model transports for the SCOUT conversation loop.

Two calling conventions are supported behind one capability:

- ``OpenAITransport``: OpenAI-compatible chat completions, where the whole
  turn list goes out in a single request.
- ``GeminiTransport``: a session convention, where one message is sent
  together with the prior history and the reply carries candidates made of
  text parts.

Both expose ``generate(turns)`` and ``generate_streaming(turns, on_chunk)``,
and both return the complete reply text.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from typing import Any, Protocol

import httpx
import openai
from openai import AsyncOpenAI

from scout.config import GEMINI_BASE_URL, Config
from scout.errors import ModelTransportError
from scout.session import Role, Turn

ChunkCallback = Callable[[str, str], None]

# Sent as the session message when the history already ends with tool output.
CONTINUE_MESSAGE = "Continue, using the tool results above."


class ModelTransport(Protocol):
    """Capability the conversation loop needs from a model backend."""

    name: str
    last_usage: int | None

    async def generate(self, turns: Sequence[Turn]) -> str: ...

    async def generate_streaming(self, turns: Sequence[Turn], on_chunk: ChunkCallback) -> str: ...

    async def aclose(self) -> None: ...


class OpenAITransport:
    """Chat-completions transport built on the openai SDK."""

    name = "openai"

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        max_tokens: int = 4096,
        verbose: bool = False,
    ) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.verbose = verbose
        self.last_usage: int | None = None

    async def generate(self, turns: Sequence[Turn]) -> str:
        self.last_usage = None
        if self.verbose:
            print(f"[LLM] Calling {self.model}... ({len(turns)} turns)")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[turn.to_message() for turn in turns],
                max_tokens=self.max_tokens,
            )
        except openai.APIError as e:
            raise ModelTransportError(f"{self.model}: {e}") from e

        if response.usage:
            self.last_usage = response.usage.total_tokens
            if self.verbose:
                print(
                    f"[LLM] Tokens: {response.usage.total_tokens} (prompt: {response.usage.prompt_tokens}, completion: {response.usage.completion_tokens})"
                )

        if not response.choices:
            raise ModelTransportError(f"{self.model}: empty response")
        return response.choices[0].message.content or ""

    async def generate_streaming(self, turns: Sequence[Turn], on_chunk: ChunkCallback) -> str:
        self.last_usage = None
        if self.verbose:
            print(f"[LLM] Streaming from {self.model}... ({len(turns)} turns)")

        full_text = ""
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=[turn.to_message() for turn in turns],
                max_tokens=self.max_tokens,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content or ""
                if delta:
                    full_text += delta
                    on_chunk(delta, full_text)
        except openai.APIError as e:
            raise ModelTransportError(f"{self.model}: {e}") from e

        return full_text

    async def aclose(self) -> None:
        await self.client.close()


def _candidate_text(result: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = result.get("candidates") or []
    if not candidates:
        return ""
    content = candidates[0].get("content") or {}
    parts = content.get("parts")
    if parts:
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    return content.get("text", "")


class GeminiSession:
    """One Gemini chat session: a message plus history in, candidates out."""

    def __init__(self, transport: GeminiTransport) -> None:
        self.transport = transport

    async def send_message(self, message: str, history: Sequence[Turn]) -> dict[str, Any]:
        """Send ``message`` after ``history`` and return the raw result.

        Raises:
            ModelTransportError: On HTTP failure or an undecodable reply
        """
        transport = self.transport
        client = transport.get_client()
        try:
            response = await client.post(
                transport.endpoint("generateContent"),
                json=transport.build_payload(history, message),
                headers=transport.headers(),
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ModelTransportError(
                f"{transport.model}: HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ModelTransportError(f"{transport.model}: {e}") from e


class GeminiTransport:
    """Session-style transport for the Gemini generateContent API."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = GEMINI_BASE_URL,
        max_tokens: int = 4096,
        timeout: float = 120.0,
        verbose: bool = False,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.verbose = verbose
        self.last_usage: int | None = None
        self._client = client

    def get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def endpoint(self, method: str) -> str:
        return f"{self.base_url}/models/{self.model}:{method}"

    def headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    def build_payload(self, history: Sequence[Turn], message: str) -> dict[str, Any]:
        """Build a generateContent request body.

        The system turn becomes ``systemInstruction``; consecutive turns of
        the same role are merged into one content entry.
        """
        system_text = ""
        contents: list[dict[str, Any]] = []
        for turn in [*history, Turn(Role.USER, message)]:
            if turn.role is Role.SYSTEM:
                system_text = turn.content
                continue
            if not turn.content:
                continue
            role = "model" if turn.role is Role.ASSISTANT else "user"
            if contents and contents[-1]["role"] == role:
                contents[-1]["parts"].append({"text": turn.content})
            else:
                contents.append({"role": role, "parts": [{"text": turn.content}]})

        payload: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {"maxOutputTokens": self.max_tokens},
        }
        if system_text:
            payload["systemInstruction"] = {"parts": [{"text": system_text}]}
        return payload

    def start_session(self) -> GeminiSession:
        return GeminiSession(self)

    @staticmethod
    def split_turns(turns: Sequence[Turn]) -> tuple[list[Turn], str]:
        """Split turns into (history, message) for the session convention."""
        if turns and turns[-1].role is Role.USER:
            return list(turns[:-1]), turns[-1].content
        return list(turns), CONTINUE_MESSAGE

    def _record_usage(self, result: dict[str, Any]) -> None:
        usage = result.get("usageMetadata") or {}
        total = usage.get("totalTokenCount")
        if isinstance(total, int):
            self.last_usage = total

    async def generate(self, turns: Sequence[Turn]) -> str:
        self.last_usage = None
        history, message = self.split_turns(turns)
        if self.verbose:
            print(f"[LLM] Calling {self.model}... ({len(history)} history turns)")

        result = await self.start_session().send_message(message, history)
        self._record_usage(result)

        if not result.get("candidates"):
            feedback = result.get("promptFeedback") or {}
            reason = feedback.get("blockReason", "no candidates returned")
            raise ModelTransportError(f"{self.model}: {reason}")
        return _candidate_text(result)

    async def generate_streaming(self, turns: Sequence[Turn], on_chunk: ChunkCallback) -> str:
        self.last_usage = None
        history, message = self.split_turns(turns)
        if self.verbose:
            print(f"[LLM] Streaming from {self.model}... ({len(history)} history turns)")

        full_text = ""
        client = self.get_client()
        try:
            async with client.stream(
                "POST",
                self.endpoint("streamGenerateContent"),
                params={"alt": "sse"},
                json=self.build_payload(history, message),
                headers=self.headers(),
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    try:
                        event = json.loads(line[5:].strip())
                    except ValueError:
                        continue
                    self._record_usage(event)
                    delta = _candidate_text(event)
                    if delta:
                        full_text += delta
                        on_chunk(delta, full_text)
        except httpx.HTTPStatusError as e:
            raise ModelTransportError(f"{self.model}: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ModelTransportError(f"{self.model}: {e}") from e

        return full_text

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def create_transport(config: Config, verbose: bool = False) -> ModelTransport:
    """Create the transport selected by ``config.provider``."""
    if config.provider == "gemini":
        base_url = config.base_url
        if "openai.com" in base_url:
            base_url = GEMINI_BASE_URL
        return GeminiTransport(
            api_key=config.api_key,
            model=config.model,
            base_url=base_url,
            max_tokens=config.max_output_tokens,
            timeout=float(config.generation_timeout),
            verbose=verbose,
        )

    client = AsyncOpenAI(base_url=config.base_url, api_key=config.api_key)
    return OpenAITransport(
        client=client,
        model=config.model,
        max_tokens=config.max_output_tokens,
        verbose=verbose,
    )
