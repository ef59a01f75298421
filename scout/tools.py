"""Tool backends for the SCOUT tool loop.

Each backend returns a plain dictionary. Failures are reported in an
``error`` key instead of being raised, so the dispatcher can turn them into
conversation turns.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
from duckduckgo_search import DDGS

from scout.tool_calls import URL_PATTERN

JINA_SEARCH_URL = "https://s.jina.ai/"
JINA_READER_URL = "https://r.jina.ai/"
INSTANT_ANSWER_URL = "https://api.duckduckgo.com/"

DEFAULT_MAX_RESULTS = 5

ResultCallback = Callable[[dict[str, str]], None]

# In-memory cache for fetched URLs: {url: raw_content}
_url_cache: dict[str, str] = {}

# Shared HTTP client for connection pooling
_http_client: httpx.AsyncClient | None = None

__all__ = [
    "clear_url_cache",
    "close_http_client",
    "get_http_client",
    "instant_answer",
    "read_url",
    "web_search",
]


def clear_url_cache() -> None:
    """Clear the URL cache (call whenever a conversation is reset)."""
    _url_cache.clear()


def get_http_client(timeout: float = 30.0) -> httpx.AsyncClient:
    """Get or create shared HTTP client with connection pooling.

    Args:
        timeout: Request timeout in seconds

    Returns:
        Shared httpx.AsyncClient instance
    """
    global _http_client
    if _http_client is None:
        limits = httpx.Limits(max_connections=10, max_keepalive_connections=5)
        _http_client = httpx.AsyncClient(timeout=timeout, limits=limits, follow_redirects=True)
    return _http_client


async def close_http_client() -> None:
    """Close the shared HTTP client."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def _normalize_result(item: dict[str, Any]) -> dict[str, str] | None:
    """Map a backend hit onto {title, url, snippet}."""
    url = (item.get("url") or item.get("href") or "").strip()
    if not URL_PATTERN.match(url):
        return None
    return {
        "title": (item.get("title") or url).strip(),
        "url": url,
        "snippet": (item.get("snippet") or item.get("description") or item.get("body") or "").strip(),
    }


def _parse_jina_text(raw_text: str) -> list[dict[str, Any]]:
    """Parse Jina's text format: [1] Title: ... [1] URL Source: ... [1] Description: ..."""
    results = []
    current: dict[str, Any] = {}

    for line in raw_text.split("\n"):
        line = line.strip()
        if not line:
            continue

        if line.startswith("[") and "] Title:" in line:
            if current:
                results.append(current)
            current = {"title": line.split("] Title:", 1)[1].strip()}
        elif "] URL Source:" in line:
            current["url"] = line.split("] URL Source:", 1)[1].strip()
        elif "] Description:" in line:
            current["description"] = line.split("] Description:", 1)[1].strip()

    if current:
        results.append(current)
    return results


async def _search_jina(
    client: httpx.AsyncClient, query: str, jina_key: str, verbose: bool = False
) -> list[dict[str, Any]]:
    headers = {"Accept": "application/json"}
    if jina_key:
        headers["Authorization"] = f"Bearer {jina_key}"

    if verbose:
        print(f"  [Jina Search] Query: {query}")

    response = await client.get(JINA_SEARCH_URL, params={"q": query}, headers=headers)
    response.raise_for_status()

    if verbose:
        print(f"  [Jina Search] Status: {response.status_code}")

    try:
        data = response.json()
    except ValueError:
        if verbose:
            print("  [Jina Search] Parsing as text format")
        return _parse_jina_text(response.text)

    if isinstance(data, dict):
        data = data.get("data") or []
    return data if isinstance(data, list) else []


async def _search_duckduckgo(query: str, max_results: int, verbose: bool = False) -> list[dict[str, Any]]:
    if verbose:
        print(f"  [DuckDuckGo] Query: {query}")

    def _run() -> list[dict[str, Any]]:
        return list(DDGS().text(query, max_results=max_results) or [])

    return await asyncio.to_thread(_run)


async def web_search(
    query: str,
    engine: str = "jina",
    on_result: ResultCallback | None = None,
    jina_key: str = "",
    verbose: bool = False,
    timeout: int = 30,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> dict[str, Any]:
    """Search the web.

    Args:
        query: Search query
        engine: "jina" or "duckduckgo"
        on_result: Called once per normalized result, in order
        jina_key: Jina AI API key (optional)
        verbose: Show detailed logs
        timeout: Timeout in seconds for API calls (default: 30)
        max_results: Maximum number of results to keep

    Returns:
        Dictionary with normalized results, or an ``error`` key on failure
    """
    if verbose:
        print(f"[Web Search] {engine}: {query}")

    try:
        if engine == "duckduckgo":
            hits = await _search_duckduckgo(query, max_results, verbose)
        else:
            client = get_http_client(timeout=float(timeout))
            hits = await _search_jina(client, query, jina_key, verbose)
    except httpx.HTTPStatusError as e:
        error_msg = f"HTTP {e.response.status_code}: {e.response.text[:200]}"
        if verbose:
            print(f"  [Web Search] ERROR: {error_msg}")
        return {"query": query, "engine": engine, "error": error_msg, "results": []}
    except Exception as e:
        if verbose:
            print(f"  [Web Search] ERROR: {e}")
        return {"query": query, "engine": engine, "error": str(e) or type(e).__name__, "results": []}

    results = []
    for hit in hits:
        if not isinstance(hit, dict):
            continue
        result = _normalize_result(hit)
        if result is None:
            continue
        results.append(result)
        if on_result is not None:
            on_result(result)
        if len(results) >= max_results:
            break

    if verbose:
        print(f"[Web Search] Completed with {len(results)} results")

    return {"query": query, "engine": engine, "results": results}


async def _get_single(
    client: httpx.AsyncClient, url: str, jina_key: str, verbose: bool = False
) -> str:
    """Fetch content from a single URL through Jina Reader."""
    headers = {
        "X-Retain-Images": "none",
        "X-Timeout": "40",
    }
    if jina_key:
        headers["Authorization"] = f"Bearer {jina_key}"

    if verbose:
        print(f"  [Jina Reader] URL: {url}")

    response = await client.get(f"{JINA_READER_URL}{url}", headers=headers)
    response.raise_for_status()

    if verbose:
        print(f"  [Jina Reader] Status: {response.status_code}")
        print(f"  [Jina Reader] Content length: {len(response.text)} chars")

    return response.text


async def read_url(
    url: str,
    jina_key: str = "",
    verbose: bool = False,
    timeout: int = 30,
) -> dict[str, Any]:
    """Fetch the full text of a page.

    Args:
        url: Page URL
        jina_key: Jina AI API key (optional)
        verbose: Show detailed logs
        timeout: Timeout in seconds for API calls (default: 30)

    Returns:
        Dictionary with the page content, or an ``error`` key on failure
    """
    if url in _url_cache:
        if verbose:
            print(f"  [Jina Reader] Cache hit for: {url}")
        return {"url": url, "content": _url_cache[url]}

    client = get_http_client(timeout=float(timeout))
    try:
        content = await _get_single(client, url, jina_key, verbose)
    except httpx.HTTPStatusError as e:
        error_msg = f"HTTP {e.response.status_code}: {e.response.text[:200]}"
        if verbose:
            print(f"  [Jina Reader] ERROR: {error_msg}")
        return {"url": url, "error": error_msg, "content": ""}
    except Exception as e:
        if verbose:
            print(f"  [Jina Reader] ERROR: {e}")
        return {"url": url, "error": str(e) or type(e).__name__, "content": ""}

    _url_cache[url] = content
    return {"url": url, "content": content}


async def instant_answer(
    query: str,
    verbose: bool = False,
    timeout: int = 30,
) -> dict[str, Any]:
    """Look up a DuckDuckGo Instant Answer.

    Args:
        query: Lookup query
        verbose: Show detailed logs
        timeout: Timeout in seconds for API calls (default: 30)

    Returns:
        Dictionary with the decoded API object under ``data``, or an ``error`` key
    """
    client = get_http_client(timeout=float(timeout))
    params = {"q": query, "format": "json", "no_html": "1", "skip_disambig": "1"}

    if verbose:
        print(f"[Instant Answer] Query: {query}")

    try:
        response = await client.get(INSTANT_ANSWER_URL, params=params)
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as e:
        error_msg = f"HTTP {e.response.status_code}"
        if verbose:
            print(f"  [Instant Answer] ERROR: {error_msg}")
        return {"query": query, "error": error_msg}
    except Exception as e:
        if verbose:
            print(f"  [Instant Answer] ERROR: {e}")
        return {"query": query, "error": str(e) or type(e).__name__}

    return {"query": query, "data": data}
