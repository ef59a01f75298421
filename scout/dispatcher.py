"""Tool dispatch for the SCOUT conversation loop."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from scout import tools
from scout.config import Config
from scout.errors import ToolCallError
from scout.output import Renderer
from scout.pagination import Paginator
from scout.session import ChatSession, Role
from scout.tool_calls import (
    URL_PATTERN,
    InstantAnswerArgs,
    ReadUrlArgs,
    ToolCall,
    WebSearchArgs,
)
from scout.transport import ModelTransport


@dataclass(frozen=True)
class DispatchOutcome:
    """What happened to one dispatched call."""

    executed: bool
    duplicate: bool = False
    wants_continue: bool = True


class ToolDispatcher:
    """Runs tool calls against the backends and records them in the session.

    Each distinct call (by fingerprint) runs at most once per conversation.
    The dispatcher never resumes generation itself; it reports whether the
    caller should.
    """

    def __init__(
        self,
        session: ChatSession,
        transport: ModelTransport,
        renderer: Renderer,
        config: Config,
        verbose: bool = False,
    ) -> None:
        self.session = session
        self.renderer = renderer
        self.config = config
        self.verbose = verbose
        self.paginator = Paginator(session, transport, renderer, verbose=verbose)

    def _append_result(self, text: str) -> None:
        self.session.append(Role.ASSISTANT, text)

    def _append_error(self, text: str) -> None:
        self.session.append(Role.ASSISTANT, text)
        self.renderer.add_message("error", text)

    async def execute(self, call: ToolCall | dict[str, Any]) -> DispatchOutcome:
        """Execute a tool call once.

        Args:
            call: A typed call, or the raw payload found in model output

        Returns:
            DispatchOutcome describing execution and whether to resume
        """
        if not isinstance(call, ToolCall):
            try:
                call = ToolCall.from_payload(
                    call,
                    default_engine=self.config.search_engine,
                    default_length=self.config.chunk_length,
                )
            except ToolCallError as e:
                if self.verbose:
                    print(f"[Dispatcher] Rejected call: {e}")
                self._append_error(f"Tool call rejected: {e}")
                return DispatchOutcome(executed=False)

        if not self.session.executed.add(call.fingerprint()):
            if self.verbose:
                print(f"[Dispatcher] Skipping duplicate call: {call.canonical()}")
            return DispatchOutcome(
                executed=False, duplicate=True, wants_continue=not call.skip_continue
            )

        if self.verbose:
            print(f"[Dispatcher] Executing: {call.canonical()}")

        self.session.tool_calls += 1
        self.renderer.show_status(call.describe())
        try:
            args = call.arguments
            if isinstance(args, WebSearchArgs):
                await self._web_search(args)
            elif isinstance(args, ReadUrlArgs):
                await self._read_url(args)
            elif isinstance(args, InstantAnswerArgs):
                await self._instant_answer(args)
        finally:
            self.renderer.clear_status()

        return DispatchOutcome(executed=True, wants_continue=not call.skip_continue)

    async def _web_search(self, args: WebSearchArgs) -> None:
        result = await tools.web_search(
            args.query,
            engine=args.engine,
            jina_key=self.config.jina_key,
            verbose=self.verbose,
            timeout=self.config.tool_timeout,
        )

        if "error" in result:
            if self.verbose:
                print(f"[Dispatcher] Web search failed: {result['error']}")
            fallback = (
                f'Unable to retrieve search results for "{args.query}". '
                "Proceeding with available knowledge."
            )
            self.session.append(Role.ASSISTANT, fallback)
            self.renderer.add_message("notice", fallback)
            return

        items = result.get("results", [])
        lines = [f"{i}. {r['title']} ({r['url']}) - {r['snippet']}" for i, r in enumerate(items, 1)]
        self._append_result(f'Search results for "{args.query}" ({len(items)}):\n' + "\n".join(lines))
        self.renderer.add_search_results(args.query, items)

        # Fetch-ahead: read every hit without resuming generation.
        for item in items:
            if not URL_PATTERN.match(item["url"]):
                if self.verbose:
                    print(f"[Dispatcher] Not prefetching non-http URL: {item['url']}")
                continue
            prefetch = ToolCall.read_url(
                item["url"], 0, self.config.chunk_length, skip_continue=True
            )
            try:
                await self.execute(prefetch)
            except Exception as e:
                if self.verbose:
                    print(f"[Dispatcher] Prefetch failed for {item['url']}: {e}")
                continue

    async def _read_url(self, args: ReadUrlArgs) -> None:
        page = await tools.read_url(
            args.url,
            jina_key=self.config.jina_key,
            verbose=self.verbose,
            timeout=self.config.tool_timeout,
        )

        if "error" in page:
            self._append_error(f"Unable to read content from {args.url}: {page['error']}")
            return

        await self.paginator.paginate(args.url, page["content"], args.start, args.length)

    async def _instant_answer(self, args: InstantAnswerArgs) -> None:
        result = await tools.instant_answer(
            args.query,
            verbose=self.verbose,
            timeout=self.config.tool_timeout,
        )

        if "error" in result:
            self._append_error(f'Instant answer lookup failed for "{args.query}": {result["error"]}')
            return

        text = json.dumps(result["data"], indent=2, ensure_ascii=False)
        self._append_result(text)
        self.renderer.add_message("tool", text)
