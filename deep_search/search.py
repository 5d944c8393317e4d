"""
Web search providers.

Both providers call Tavily, either directly through `TavilyClient` or through
an MCP JSON-RPC search tool, and normalize the response into `SearchResult`
records. Tavily has no text filters, so include/exclude text is applied to the
returned page content.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from tavily import TavilyClient

from research_state import SearchResult

from .collaborators import SearchFilters
from .mcp_client import MCPServerConfig, MCPToolClient

logger = logging.getLogger(__name__)

MCP_SEARCH_TOOL = "web_search"


def search_arguments(query: str, result_count: int, filters: Optional[SearchFilters]) -> Dict[str, Any]:
    """Build Tavily search arguments; raw page content is always requested."""
    arguments: Dict[str, Any] = {
        "query": query,
        "max_results": result_count,
        "search_depth": "advanced",
        "include_raw_content": True,
    }
    if filters is None:
        return arguments
    if filters.include_domains:
        arguments["include_domains"] = list(filters.include_domains)
    if filters.exclude_domains:
        arguments["exclude_domains"] = list(filters.exclude_domains)
    if filters.start_published_date:
        arguments["start_date"] = filters.start_published_date[:10]
    if filters.end_published_date:
        arguments["end_date"] = filters.end_published_date[:10]
    return arguments


def normalize_results(response: Any) -> List[SearchResult]:
    if isinstance(response, dict):
        entries = response.get("results") or response.get("data") or []
    elif isinstance(response, list):
        entries = response
    else:
        entries = []
    if not isinstance(entries, list):
        entries = [entries]

    results: List[SearchResult] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        url = entry.get("url") or entry.get("link")
        if not url:
            continue
        results.append(
            SearchResult(
                title=entry.get("title") or url,
                url=url,
                content=entry.get("raw_content") or entry.get("content") or entry.get("snippet") or "",
                published_date=entry.get("published_date") or entry.get("publishedDate"),
            )
        )
    return results


def apply_text_filters(results: List[SearchResult], filters: Optional[SearchFilters]) -> List[SearchResult]:
    if filters is None or not (filters.include_text or filters.exclude_text):
        return results
    include = [phrase.lower() for phrase in filters.include_text or [] if phrase]
    exclude = [phrase.lower() for phrase in filters.exclude_text or [] if phrase]
    kept: List[SearchResult] = []
    for result in results:
        text = f"{result.title}\n{result.content}".lower()
        if any(phrase not in text for phrase in include):
            continue
        if any(phrase in text for phrase in exclude):
            continue
        kept.append(result)
    if len(kept) != len(results):
        logger.info("Text filters kept %d of %d results.", len(kept), len(results))
    return kept


class TavilySearchProvider:
    def __init__(self, *, api_key: Optional[str] = None, client: Optional[TavilyClient] = None) -> None:
        if client is None:
            if not api_key:
                raise EnvironmentError("TAVILY_API_KEY is not set.")
            client = TavilyClient(api_key=api_key)
        self._client = client

    def search(self, query: str, result_count: int, filters: Optional[SearchFilters] = None) -> List[SearchResult]:
        arguments = search_arguments(query, result_count, filters)
        logger.info("Executing Tavily search for: %s", query)
        response = self._client.search(**arguments)
        results = apply_text_filters(normalize_results(response), filters)
        for index, result in enumerate(results):
            logger.debug("Search result %d: %s (%s)", index, result.title, result.url)
        return results


class McpSearchProvider:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        tool_name: str = MCP_SEARCH_TOOL,
        request_timeout: float = 60,
        tool_client: Optional[MCPToolClient] = None,
    ) -> None:
        if tool_client is None:
            if not base_url:
                raise EnvironmentError("TAVILY_MCP_BASE_URL is not set.")
            tool_client = MCPToolClient(
                config=MCPServerConfig(base_url=base_url, api_key=api_key, tool_name=tool_name),
                request_timeout=request_timeout,
            )
        self._tool_client = tool_client

    def search(self, query: str, result_count: int, filters: Optional[SearchFilters] = None) -> List[SearchResult]:
        arguments = search_arguments(query, result_count, filters)
        logger.info("Executing MCP search for: %s", query)
        response = self._tool_client.call_tool(**arguments)
        return apply_text_filters(normalize_results(response), filters)
