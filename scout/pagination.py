"""Chunked delivery of fetched pages.

A page read by ``read_url`` is handed to the model one slice at a time.
After every slice that leaves content behind, the model is asked a narrow
yes/no question about that slice alone; anything but a clear "yes" ends
pagination.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from scout.config import DECISION_SYSTEM_PROMPT, DEFAULT_CHUNK_LENGTH, get_decision_prompt
from scout.output import Renderer
from scout.session import ChatSession, Role, Turn
from scout.transport import ModelTransport

STOP_END = "end"
STOP_DECLINED = "declined"


@dataclass(frozen=True)
class PageChunk:
    """One slice of a fetched page."""

    url: str
    offset: int
    text: str
    total: int
    has_more: bool

    @property
    def end(self) -> int:
        return self.offset + len(self.text)

    def as_turn_text(self) -> str:
        suffix = "..." if self.has_more else ""
        return (
            f"Read content from {self.url} [{self.offset}-{self.end} of {self.total}]:\n"
            f"{self.text}{suffix}"
        )


@dataclass
class PaginationResult:
    """Chunks emitted for one read_url call and why pagination stopped."""

    chunks: list[PageChunk] = field(default_factory=list)
    stop_reason: str = STOP_END


def is_affirmative(reply: str) -> bool:
    """Check whether a decision reply starts with "yes"."""
    cleaned = (reply or "").strip().lstrip("*_`\"' ").lower()
    return cleaned.startswith("yes")


class Paginator:
    """Emits page chunks into the session and asks whether to continue."""

    def __init__(
        self,
        session: ChatSession,
        transport: ModelTransport,
        renderer: Renderer,
        verbose: bool = False,
    ) -> None:
        self.session = session
        self.transport = transport
        self.renderer = renderer
        self.verbose = verbose

    async def should_continue(self, chunk: PageChunk) -> bool:
        """Ask the model whether the next chunk is worth reading.

        Only the current chunk and the latest user question are sent, never
        the conversation. Errors and unclear replies mean "stop".
        """
        prompt = get_decision_prompt(self.session.last_user_message(), chunk.text)
        try:
            reply = await self.transport.generate(
                [Turn(Role.SYSTEM, DECISION_SYSTEM_PROMPT), Turn(Role.USER, prompt)]
            )
        except Exception as e:
            if self.verbose:
                print(f"[read_url] Decision error: {e}")
            return False

        usage = self.transport.last_usage
        if isinstance(usage, int):
            self.session.total_tokens += usage

        if self.verbose:
            print(f'[read_url] Decision reply: "{reply.strip()[:40]}"')
        return is_affirmative(reply)

    async def paginate(
        self,
        url: str,
        content: str,
        start: int = 0,
        length: int = DEFAULT_CHUNK_LENGTH,
    ) -> PaginationResult:
        """Append chunks of ``content`` starting at ``start``.

        Emits at most ``ceil(len(content) / length)`` chunks (one empty
        chunk for an empty page); the last chunk of a run that reaches the
        end reports ``has_more=False``.
        """
        total = len(content)
        offset = max(start, 0)
        chunk_size = length if length > 0 else DEFAULT_CHUNK_LENGTH
        result = PaginationResult()

        while True:
            text = content[offset : offset + chunk_size]
            has_more = offset + chunk_size < total
            chunk = PageChunk(url=url, offset=offset, text=text, total=total, has_more=has_more)
            result.chunks.append(chunk)

            self.session.append(Role.ASSISTANT, chunk.as_turn_text())
            self.renderer.add_page_excerpt(url, text, has_more)

            if self.verbose:
                print(
                    f"[read_url] url={url}, fullLength={total}, offset={offset}, snippetLength={len(text)}, hasMore={has_more}"
                )

            if not has_more:
                result.stop_reason = STOP_END
                return result

            if not await self.should_continue(chunk):
                result.stop_reason = STOP_DECLINED
                return result

            offset += chunk_size
            self.renderer.show_status(f"Fetching more content from {url}...")
