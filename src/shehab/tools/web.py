"""Web search tool."""

from __future__ import annotations

from urllib import parse as urllib_parse

import httpx
from pydantic import BaseModel, Field

from shehab.tools.registry import ToolDefinition

MAX_RESULTS = 3
USER_AGENT = "shehab-web-tools/1.0"


class SearchWebInput(BaseModel):
    query: str = Field(..., description="Search query")


class WebSearch:
    """Search via an Ollama-compatible ``/web_search`` endpoint."""

    def __init__(self, client: httpx.AsyncClient, *, api_base: str, api_key: str | None) -> None:
        self._client = client
        self._api_base = _normalize_api_base(api_base)
        self._api_key = api_key

    async def search(self, query: str) -> str:
        if not self._api_key:
            return "Search Error: web search api key is not configured"
        if not self._api_base:
            return "Search Error: invalid web search api base url"

        try:
            response = await self._client.post(
                f"{self._api_base}/web_search",
                json={"query": query, "max_results": MAX_RESULTS},
                headers={"Authorization": f"Bearer {self._api_key}", "User-Agent": USER_AGENT},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text.strip()
            if detail:
                return f"Search Error: http {exc.response.status_code}: {detail}"
            return f"Search Error: http {exc.response.status_code}"
        except (httpx.HTTPError, ValueError) as exc:
            return f"Search Error: {exc!s}"

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list) or not results:
            return "No results found."
        return _format_search_results(results[:MAX_RESULTS])


def _format_search_results(results: list[object]) -> str:
    blocks: list[str] = []
    for item in results:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "(untitled)")
        content = str(item.get("content") or "")
        url = str(item.get("url") or "")
        blocks.append(f"Title: {title}\nDescription: {content}\nLink: {url}")
    return "\n\n".join(blocks) if blocks else "No results found."


def _normalize_api_base(raw_api_base: str) -> str | None:
    normalized = raw_api_base.strip().rstrip("/")
    if not normalized:
        return None

    parsed = urllib_parse.urlparse(normalized)
    if parsed.scheme in {"http", "https"} and parsed.netloc:
        return normalized
    return None


def create_search_tool(search: WebSearch) -> ToolDefinition:
    async def _handler(params: SearchWebInput) -> str:
        return await search.search(params.query)

    return ToolDefinition.from_model(
        SearchWebInput,
        _handler,
        name="search_web",
        description="Search the internet",
        notice="🌍 Searching the web...",
    )
